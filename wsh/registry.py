"""
wsh context registry: the forest of root contexts.

What this module provides
- Registry: concurrency-safe store of root contexts keyed by letter.
  • register(context): idempotent on (letter, script); a different script for a
    claimed letter is a RegistrationConflictError and the tree is left untouched.
  • lookup(path): walks roots then sub-contexts; fails closed (None) on an empty
    path or on the first missing segment.
  • roots(): snapshot of root contexts (unordered; sort by letter for display).
  • find(name, current): long-name search among current's children, then roots.
- register_builtins(registry): installs the built-in S (shell) and A (args) contexts.

Concurrency
- A single lock serializes every read and write. Registration is rare and mostly
  happens during plugin bootstrap; lookups are frequent and cheap.
"""
import threading

from .contexts import Context, Flag
from .faults import *
from .utils import *

SHELL = "S"
ARGS = "A"


class Registry:
    """
    Root namespace of 26 letters, each bound to at most one root Context.

    Nodes are never removed; the first registrant of a letter wins.
    """

    def __init__(self):
        self._roots = {}
        self._lock = threading.Lock()

    def register(self, context, /):
        """
        Insert a root context.

        Returns
        - the registered node (the pre-existing one when the call was a no-op).

        Raises
        - TypeError: when context is not a root Context.
        - RegistrationConflictError: when the letter is bound to another script.
        """
        if not isinstance(context, Context):
            raise TypeError("register() argument must be a context")
        if context.parent is not None:
            raise TypeError("register() argument must be a root context")

        with self._lock:
            existing = self._roots.setdefault(context.letter, context)

        if existing is context or existing.script == context.script:
            return existing

        raise RegistrationConflictError(
            "context -%s already registered by %s, ignoring %s" % (
                context.letter, existing.script or "(built-in)", context.script or "(built-in)"
            ),
            title="registration conflict",
            code=FaultCode.REGISTRATION_CONFLICT,
            hint="rename the context letter of one of the plugins",
            letter=context.letter,
            existing=existing.script,
            rejected=context.script,
            docs=getdoc(FaultCode.REGISTRATION_CONFLICT),
        )

    def lookup(self, path, /):
        """
        Resolve a context path (iterable of letters or a string like "TO").

        Returns None for an empty path or as soon as a segment is missing.
        """
        letters = iter(path)
        with self._lock:
            try:
                context = self._roots.get(next(letters))
            except StopIteration:
                return None
            for letter in letters:
                if context is None:
                    break
                context = context.child(letter)
        return context

    def roots(self):
        with self._lock:
            return tuple(self._roots.values())

    def find(self, name, /, current=None):
        """
        Find a context by long name: first among current's sub-contexts, then among roots.
        """
        if current is not None:
            for child in current.children.values():
                if child.name == name:
                    return child
        for context in self.roots():
            if context.name == name:
                return context
        return None

    def __contains__(self, letter):
        with self._lock:
            return letter in self._roots

    def __iter__(self):
        return iter(sorted(context.letter for context in self.roots()))

    def __len__(self):
        with self._lock:
            return len(self._roots)

    def __repr__(self):
        return f"registry({", ".join("-" + letter for letter in self)})"


def register_builtins(registry, /):
    """
    Install the built-in contexts.

    - S (shell): default context for bare flags; runs the wrapped shell.
    - A (args): the argument helper used by plugins (`wsh args --register ...`).
    """
    registry.register(Context(SHELL, "shell", "Run the wrapped shell (default context)", "", [
        Flag("c", "command", "command", "Run a single command and exit"),
        Flag("r", "reload", descr="Reload configuration and plugins"),
    ]))
    registry.register(Context(ARGS, "args", "Argument parser operations", "", [
        Flag("r", "register", descr="Register plugin flags"),
    ]))
    return registry


__all__ = (
    "Registry",
    "register_builtins",
    "SHELL",
    "ARGS",
)
