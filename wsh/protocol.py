"""
wsh self-description protocol: how a plugin declares its own context.

Two halves, kept independent from process launching so each can be tested alone.

1. Token grammar (what a plugin passes to `wsh args --register ...`)

    definition  := header body
    header      := "--<long>" DESCR          (letter = first char of long, upper-cased)
                 | "-<UPPER>" DESCR          (long = lower-cased letter)
                 | "-<UPPER>" "--<long>" DESCR
    body        := { subcontext | flag }
    subcontext  := "-<UPPER>" [ "--<long>" ] DESCR { flag }   (ends at the next -<UPPER>)
    flag        := [ "-<lower>" ] [ "--<long>" ] [ ARGNAME ] DESCR

   A flag takes an ARGNAME when two or more non-switch tokens (not starting with
   "-") follow its names; with exactly one, that token is the description.

   parse_definition(tokens, script=...) -> Context

2. Wire document (what the registration sub-command prints for the parent)

    {"version": 1, "letter": "T", "name": "time", "descr": "Time tracking",
     "script": "/plugins/time",
     "flags": [{"short": "o", "long": "offline", "argname": null, "descr": "Offline mode"}],
     "children": {"O": {"letter": "O", "name": "overtime", ...}}}

   encode/decode work on plain dicts, dumps/loads on text. Children nest as deep as
   the interpreter recursion limit allows.

Failures
- Every malformed input raises ProtocolError naming the violated clause; model
  validation errors (duplicate flags, reserved names, ...) are reported the same way.
"""
import json
import re
import shlex

from .contexts import Context, Flag
from .faults import *
from .utils import *

VERSION = 1


def _fault(message, /, **options):
    return ProtocolError(
        message,
        title="malformed self-description",
        code=FaultCode.PROTOCOL_ERROR,
        hint=options.pop("hint", "see 'wsh -Ah' for the registration grammar"),
        docs=getdoc(FaultCode.PROTOCOL_ERROR),
        **options
    )


def _is_context(token):
    return token is not None and re.fullmatch(r"-[A-Z]", token) is not None


def _is_switch(token):
    return token is not None and token.startswith("-")


class _Definition:
    """
    Cursor over registration tokens with 1-based positions for messages.
    """

    def __init__(self, tokens):
        self._tokens = tokens
        self._index = 0

    def __bool__(self):
        return self._index < len(self._tokens)

    @property
    def position(self):
        return ordinal(self._index + 1)

    def peek(self, offset=0):
        try:
            return self._tokens[self._index + offset]
        except IndexError:
            return None

    def pop(self):
        token = self.peek()
        self._index += 1
        return token

    def description(self, after):
        # a description is any token that does not look like a switch
        if (token := self.peek()) is None or _is_switch(token):
            raise _fault(
                "missing description after %s at %s position" % (after, self.position),
                clause="description",
                index=self._index + 1,
            )
        return self.pop()

    def header(self, *, nested=False):
        """
        Parse a context header; returns (letter, name, descr).
        """
        token = self.peek()
        if token is None:
            raise _fault(
                "expected a context header (e.g., -T or --time) but the definition is empty",
                clause="header",
            )

        if token.startswith("--") and not nested:
            name = self.pop()[2:]
            if not re.fullmatch(r"[A-Za-z]", letter := name[:1].upper()):
                raise _fault(
                    "cannot derive a context letter from %r at %s position" % (token, ordinal(self._index)),
                    clause="header",
                    token=token,
                    index=self._index,
                )
            return letter, name, self.description(token)

        if re.fullmatch(r"-\w", token):
            letter = self.pop()[1]
            if not _is_context(token):
                raise _fault(
                    "context short flag must be a capital letter, got %r at %s position" % (token, ordinal(self._index)),
                    clause="header",
                    token=token,
                    index=self._index,
                )
            if (following := self.peek()) is not None and following.startswith("--"):
                name = self.pop()[2:]
                return letter, name, self.description("%s %s" % (token, following))
            return letter, letter.lower(), self.description(token)

        raise _fault(
            "expected context flag (e.g., -T or --time), got %r at %s position" % (token, self.position),
            clause="header",
            token=token,
            index=self._index + 1,
        )

    def flag(self):
        """
        Parse one flag definition; returns a Flag.
        """
        start = self._index + 1
        short = long = argname = Unset

        if (token := self.peek()) is not None and re.fullmatch(r"-[a-z]", token):
            short = self.pop()[1]
        if (token := self.peek()) is not None and token.startswith("--"):
            long = self.pop()[2:]

        if short is Unset and long is Unset:
            raise _fault(
                "flag must have at least a short or a long name, got %r at %s position" % (token, ordinal(start)),
                clause="flag-name",
                token=token,
                index=start,
            )

        spelled = " ".join(self._tokens[start - 1:self._index])

        # count the non-switch tokens right after the names
        count = 0
        while (token := self.peek(count)) is not None and not _is_switch(token):
            count += 1

        if count >= 2:
            argname = self.pop()
        descr = self.description(spelled)

        try:
            return Flag(short, long, argname, descr)
        except (TypeError, ValueError) as exception:
            raise _fault(
                "invalid flag %r at %s position: %s" % (spelled, ordinal(start), exception),
                clause="flag",
                index=start,
            ) from None

    def body(self, *, nested=False):
        """
        Parse flags and (for the root) sub-context definitions.

        Returns (flags, children) where children is a list of (header, flags).
        """
        flags = []
        children = []
        while self:
            if _is_context(self.peek()):
                if nested:
                    break
                header = self.header(nested=True)
                children.append((header, self.body(nested=True)[0]))
                continue
            flags.append(self.flag())
        return flags, children


def parse_definition(tokens, /, *, script=""):
    """
    Build a Context from registration tokens.

    Parameters
    - tokens: Iterable[str] | str
      The grammar tokens (a string is split with shlex).
    - script: str
      Script path stamped on the context and its sub-contexts.

    Raises
    - ProtocolError: when any clause of the grammar is violated.
    """
    definition = _Definition(shlex.split(tokens) if isinstance(tokens, str) else list(tokens))

    letter, name, descr = definition.header()
    flags, children = definition.body()

    try:
        context = Context(letter, name, descr, script, flags)
        for (letter, name, descr), flags in children:
            context.context(letter, name, descr, flags=flags)
    except (TypeError, ValueError) as exception:
        raise _fault(
            "invalid context definition: %s" % exception,
            clause="context",
        ) from None
    return context


def _encode(context):
    return {
        "letter": context.letter,
        "name": context.name,
        "descr": context.descr,
        "script": context.script,
        "flags": [
            {
                "short": flag.short,
                "long": flag.long,
                "argname": flag.argname,
                "descr": flag.descr,
            } for flag in context.flags
        ],
        "children": {letter: _encode(child) for letter, child in sorted(context.children.items())},
    }


def encode(context, /):
    """
    Return the wire document (a JSON-ready dict) describing context and its subtree.
    """
    if not isinstance(context, Context):
        raise TypeError("encode() argument must be a context")
    return {"version": VERSION} | _encode(context)


def _field(document, key, types, default=Unset, /, *, where):
    """
    Fetch a typed field; null and absent optional fields come back as Unset/default.
    """
    try:
        value = document[key]
    except KeyError:
        if default is Unset:
            raise _fault("missing field %r in %s" % (key, where), clause="document", field=key) from None
        return default
    if value is None and default is not Unset:
        return default
    if not isinstance(value, types):
        raise _fault("field %r in %s has the wrong type" % (key, where), clause="document", field=key)
    return value


def _decode(document, parent, script, where):
    if not isinstance(document, dict):
        raise _fault("%s must be a JSON object" % where, clause="document")

    letter = _field(document, "letter", str, where=where)
    flags = []
    for index, entry in enumerate(_field(document, "flags", list, [], where=where), 1):
        if not isinstance(entry, dict):
            raise _fault("flag #%d in %s must be a JSON object" % (index, where), clause="document")
        flags.append(Flag(**{
            key: Unset if entry.get(key) is None else entry[key]
            for key in ("short", "long", "argname", "descr")
        }))

    context = Context(
        letter,
        _field(document, "name", str, None, where=where) or Unset,
        _field(document, "descr", str, None, where=where) or Unset,
        _field(document, "script", str, "", where=where) or script,
        flags,
        parent=parent,
    )

    for key, child in _field(document, "children", dict, {}, where=where).items():
        _decode(child, context, Unset, "sub-context -%s of -%s" % (key, letter))
        if context.child(key) is None:
            raise _fault("sub-context key %r does not match its letter" % key, clause="document", field=key)
    return context


def decode(document, /, *, script=""):
    """
    Build a Context tree from a wire document.

    Parameters
    - document: dict
      Parsed JSON object (see module docs for the schema).
    - script: str
      Script used when the document carries an empty one.

    Raises
    - ProtocolError: unknown version, missing/ill-typed fields or invalid model data.
    """
    if not isinstance(document, dict):
        raise _fault("self-description must be a JSON object", clause="document")
    if document.get("version") != VERSION:
        raise _fault(
            "unsupported self-description version %r" % (document.get("version"),),
            clause="version",
            hint="emit documents with \"version\": %d" % VERSION,
        )
    try:
        return _decode(document, Unset, script, "self-description")
    except RecursionError:
        raise _fault("self-description nests too deeply", clause="context") from None
    except (TypeError, ValueError) as exception:
        raise _fault("invalid self-description: %s" % exception, clause="context") from None


def dumps(context, /):
    return json.dumps(encode(context))


def loads(text, /, *, script=""):
    """
    Parse exactly one JSON document (surrounding whitespace allowed) into a Context.
    """
    if isinstance(text, bytes):
        text = text.decode("utf-8", errors="replace")
    try:
        document = json.loads(text)
    except (ValueError, RecursionError) as exception:
        raise _fault(
            "plugin output is not a single JSON document: %s" % exception,
            clause="document",
            hint="the plugin must print only the output of 'wsh args --register ...'",
        ) from None
    return decode(document, script=script)


__all__ = (
    "VERSION",
    "parse_definition",
    "encode",
    "decode",
    "dumps",
    "loads",
)
