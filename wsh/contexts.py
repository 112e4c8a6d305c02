r"""
wsh context model: flags and (nestable) command contexts.

Overview
- Flag: immutable descriptor of a named option living inside a context.
  • short: single lowercase letter ("o" for -o), optional.
  • long: long name ("offline" for --offline), optional (one of short/long is required).
  • argname: label of the value the flag consumes ("days" for --from <days>); absent
    for boolean flags.
  • descr: human-readable description.

- Context: one addressable command scope identified by an uppercase letter.
  • letter/name/descr/script: identity, help text, external script ("" ⇒ built-in).
  • flags: ordered tuple of Flag.
  • children: mapping letter → Context (sub-contexts); a node has at most one parent.
  • path: letters from the root to this node (("T", "O") addresses -TO).

Introspection & representation
- ContextType metaclass provides stable __repr__/__rich_repr__ and exposes selected
  fields via read-only properties declared in __introspectable__/__displayable__.

Validation highlights
- Context letters must match r"[A-Z]"; flag shorts must match r"[a-z]" and cannot be
  the reserved "h" (help).
- Long names must match r"[A-Za-z0-9][\w.-]*" and cannot be the reserved "help".
- Duplicate short or long names inside one context are rejected.
- A letter can be claimed by a single child per parent.

Quick example:
    >>> time = Context("T", "time", "Time tracking", "/plugins/time", [
    ...     Flag("o", "offline", descr="Offline mode"),
    ...     Flag("f", "from", "days", "Days ago"),
    ... ])
    >>> overtime = time.context("O", "overtime", "Overtime", flags=[Flag("s", "start", "time", "Start")])
    >>> overtime.path
    ('T', 'O')
"""
import functools
import operator
import os
import re

from .utils import *


class ContextType(type):
    """
    Metaclass that turns model classes into introspectable descriptors.

    Responsibilities
    - Provide stable, readable __repr__/__rich_repr__ implementations for
      diagnostics and help output.
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in messages.
    - __displayable__ (if set) narrows which properties are shown by __rich_repr__;
      otherwise __introspectable__ is used.
    """
    __introspectable__ = ()
    __displayable__ = Unset

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            """
            Return a concise, stable representation with key metadata.

            Example
            - flag(short='o', long='offline', argname=None, descr='Offline mode')
            """
            return f"{type(self).__typename__}({
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            })"
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in coalesce(type(self).__displayable__, type(self).__introspectable__):
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_text(cls, metadata, key, /):
    """
    Internal: normalize an optional, non-empty text field (descr, argname).

    Raises
    - TypeError: if the value is not a string or Unset.
    - ValueError: if the value is a string but empty after trimming.
    """
    if not isinstance(value := metadata[key], str | Unset):
        raise TypeError(f"{cls.__typename__} {key!r} must be a string")
    elif isinstance(value, str) and not (value := value.strip()):
        raise ValueError(f"{cls.__typename__} {key!r} cannot be empty")
    metadata[key] = coalesce(value)


def _sanitize_long(cls, metadata, key, /):
    if not isinstance(value := metadata[key], str | Unset):
        raise TypeError(f"{cls.__typename__} {key!r} must be a string")
    elif isinstance(value, str) and not re.fullmatch(r"[A-Za-z0-9][\w.-]*", value):
        raise ValueError(f"{cls.__typename__} {key!r} must be a valid long name, got {value!r}")
    elif value == "help":
        raise ValueError(f"{cls.__typename__} {key!r} cannot be 'help' (reserved)")
    metadata[key] = coalesce(value)


def _sanitize_flag_metadata(cls, metadata, /):
    """
    Internal: validate and normalize flag metadata.

    Responsibilities
    - short: Unset or one lowercase ASCII letter other than "h".
    - long: Unset or a valid long name other than "help".
    - at least one of short/long must be present.
    - argname/descr: Unset or non-empty strings.

    Side effects
    - Mutates the provided metadata dict in place (Unset becomes None).
    """
    if not isinstance(short := metadata["short"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'short' must be a string")
    elif isinstance(short, str) and not re.fullmatch(r"[a-z]", short):
        raise ValueError(f"{cls.__typename__} 'short' must be a single lowercase letter, got {short!r}")
    elif short == "h":
        raise ValueError(f"{cls.__typename__} 'short' cannot be 'h' (reserved)")
    metadata["short"] = coalesce(short)

    _sanitize_long(cls, metadata, "long")

    if metadata["short"] is None and metadata["long"] is None:
        raise TypeError(f"{cls.__typename__} must specify at least one of 'short' or 'long'")

    _sanitize_text(cls, metadata, "argname")
    _sanitize_text(cls, metadata, "descr")


def _sanitize_context_metadata(cls, metadata, /):
    """
    Internal: validate and normalize context metadata.

    Responsibilities
    - letter: one uppercase ASCII letter.
    - name: defaults to the lowercased letter; must be a valid long name.
    - descr: Unset or non-empty string.
    - script: path-like or string; Unset inherits the parent's script ("" at root).
    - flags: iterable of Flag with unique short and long names.
    - parent: Context or Unset.
    """
    if not isinstance(letter := metadata["letter"], str):
        raise TypeError(f"{cls.__typename__} 'letter' must be a string")
    elif not re.fullmatch(r"[A-Z]", letter):
        raise ValueError(f"{cls.__typename__} 'letter' must be a single uppercase letter, got {letter!r}")

    if not isinstance(parent := metadata["parent"], Context | Unset):
        raise TypeError(f"{cls.__typename__} 'parent' must be a context")

    metadata["name"] = coalesce(metadata["name"], letter.lower())
    _sanitize_long(cls, metadata, "name")
    _sanitize_text(cls, metadata, "descr")

    if not isinstance(script := metadata["script"], str | os.PathLike | Unset):
        raise TypeError(f"{cls.__typename__} 'script' must be a path")
    metadata["script"] = os.fspath(coalesce(script, getattr(parent, "script", "")))

    flags = []
    shorts = set()
    longs = set()
    for flag in metadata["flags"]:
        if not isinstance(flag, Flag):
            raise TypeError(f"{cls.__typename__} 'flags' must contain flags only")
        if flag.short is not None:
            if flag.short in shorts:
                raise ValueError(f"{cls.__typename__} -{letter} declares flag -{flag.short} twice")
            shorts.add(flag.short)
        if flag.long is not None:
            if flag.long in longs:
                raise ValueError(f"{cls.__typename__} -{letter} declares flag --{flag.long} twice")
            longs.add(flag.long)
        flags.append(flag)
    metadata["flags"] = tuple(flags)


def _attach_to_parent(self, parent):
    """
    Register this context under its parent, enforcing unique letters.

    Raises
    - ValueError: when the letter is already claimed by a different sibling.
    """
    if getattr(parent, "_children", {}).setdefault(self.letter, self) is self:
        return
    raise ValueError(f"{type(self).__typename__} -{self.letter} is already defined under {"".join(parent.path)}")


class Flag(metaclass=ContextType):
    """
    Named option of a context.

    Flags are immutable once built. A flag is "valued" when it declares an
    argname; valued flags consume the next command-line token, boolean flags
    record the literal "true".
    """

    __introspectable__ = (
        "short",
        "long",
        "argname",
        "descr",
    )

    def __new__(cls, short=Unset, long=Unset, argname=Unset, descr=Unset):
        metadata = {
            "short": short,
            "long": long,
            "argname": argname,
            "descr": descr,
        }
        _sanitize_flag_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def key(self):
        """
        Name under which a parsed value is stored: long name if any, else the short letter.
        """
        return self._long if self._long is not None else self._short

    @property
    def valued(self):
        return self._argname is not None


class Context(metaclass=ContextType):
    """
    Addressable command scope owning flags and nested sub-contexts.

    Lifecycle
    - Built once (directly, by the self-description grammar, or from a wire
      document) and never deleted; children attach themselves at construction.
    - Root contexts (no parent) are stored in a Registry; nested ones are reached
      through their parent's children mapping.

    Notes
    - Collections are exposed as copies; use context()/flag()/child() to work with them.
    """

    __introspectable__ = (
        "letter",
        "name",
        "descr",
        "script",
        "flags",
        "children",
        "parent",
    )

    # parent is left out to keep representations acyclic
    __displayable__ = (
        "letter",
        "name",
        "descr",
        "script",
        "flags",
        "children",
    )

    def __new__(cls, letter, /, name=Unset, descr=Unset, script=Unset, flags=(), *, parent=Unset):
        """
        Construct a context and attach it to its parent (if any).

        Parameters
        - letter: str
          Single uppercase letter addressing the context.
        - name: str | Unset
          Long name (defaults to the lowercased letter).
        - descr: str | Unset
          Short description (None when Unset).
        - script: str | PathLike | Unset
          External script path; "" marks a built-in. Unset inherits from parent.
        - flags: Iterable[Flag]
          Flags in declaration order (duplicates are rejected).
        - parent: Context | Unset
          Parent context; the new node is attached under parent.children[letter].

        Raises
        - TypeError/ValueError on invalid metadata or a letter clash under parent.
        """
        metadata = {
            "letter": letter,
            "name": name,
            "descr": descr,
            "script": script,
            "flags": flags,
            "parent": parent,
        }
        _sanitize_context_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, coalesce(object))
        self._children = {}

        _attach_to_parent(self, self.parent)
        return self

    @property
    def root(self):
        """
        Return the topmost context of this node's tree.
        """
        child, parent = self, self._parent
        while parent:
            child, parent = parent, parent._parent
        return child

    @property
    def path(self):
        """
        Return the context path from the root to this node as a tuple of letters.
        """
        path = [(context := self).letter]
        while context._parent:
            path.append((context := context._parent).letter)
        return tuple(reversed(path))

    @property
    def builtin(self):
        return not self._script

    def context(self, letter, /, *args, **kwargs):
        """
        Create a sub-context attached under this context.

        Thin convenience wrapper around Context(...) that injects parent=self.
        """
        return Context(letter, *args, parent=self, **kwargs)

    def child(self, letter, /):
        """
        Return the direct sub-context bound to letter, or None.
        """
        return self._children.get(letter)

    def flag(self, *, short=Unset, long=Unset):
        """
        Find a flag by short letter or by long name (first match wins).

        Exactly one of short/long must be given; returns None when nothing matches.
        """
        if (short is Unset) == (long is Unset):
            raise TypeError("flag() takes exactly one of 'short' or 'long'")
        attribute, wanted = ("_short", short) if short is not Unset else ("_long", long)
        for flag in self._flags:
            if getattr(flag, attribute) == wanted:
                return flag
        return None


__all__ = (
    "Flag",
    "Context",
)
