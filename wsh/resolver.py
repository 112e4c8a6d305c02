"""
wsh argument resolution engine.

Turns a token list into a ParseResult against a Registry. Resolution is a single
left-to-right pass with a cursor (the current context):

Token classes
- "--help"              → help requested.
- "--"                  → unknown flag (there is no end-of-options marker).
- "--<name>"            → a flag of the current context (boolean: "true"; valued:
                          consumes the next token verbatim), otherwise a context with
                          that long name (current's sub-contexts first, then roots)
                          whose letter is appended to the path.
- "-<cluster>"          → one switch per character:
                          • "h": help requested.
                          • uppercase: sub-context of the cursor, else a root (which
                            resets the path).
                          • lowercase: short flag of the cursor; a valued flag must be
                            the last character of its cluster and consumes the next token.
- anything else         → positional argument, kept in order.

Defaults
- A flag met before any context is resolved against S (shell); the result then names
  S as its context while the path stays empty.

Failures
- UnknownContextError, UnknownFlagError, MissingFlagArgumentError; all carry the
  1-based token position and are raised on the first problem, so no partial result
  ever escapes.

Examples
    -T --offline --from 5      → path ['T'], flags {'offline': 'true', 'from': '5'}
    -TOs 09:00 notes           → path ['T', 'O'], flags {'start': '09:00'}, args ['notes']
    -c "ls -la"                → context S, flags {'command': 'ls -la'}
"""
import difflib
import shlex
import sys
from collections import deque
from collections.abc import Iterable

from .faults import *
from .registry import SHELL, Registry
from .utils import *


class ParseResult:
    """
    Outcome of one resolution.

    Attributes
    - path: list of context letters (only switched-to contexts, never the S default).
    - context: resolved Context or None.
    - flags: dict of flag key → value ("true" for boolean flags).
    - args: positional arguments in order.
    - help: whether -h / --help was seen.
    """

    def __init__(self):
        self.path = []
        self.context = None
        self.flags = {}
        self.args = []
        self.help = False

    def environ(self):
        """
        Return the flags as the environment mapping handed to a plugin script.
        """
        return dict(self.flags)

    def __eq__(self, other):
        if not isinstance(other, ParseResult):
            return NotImplemented
        return (
            self.path == other.path and
            self.context is other.context and
            self.flags == other.flags and
            self.args == other.args and
            self.help == other.help
        )

    def __repr__(self):
        return "parse-result(path=%r, context=%r, flags=%r, args=%r, help=%r)" % (
            self.path,
            "".join(self.context.path) if self.context is not None else None,
            self.flags,
            self.args,
            self.help,
        )


class Resolver:
    """
    Stateful parser bound to a registry; parse() may be called repeatedly.
    """

    def __init__(self, registry, /):
        if not isinstance(registry, Registry):
            raise TypeError("Resolver() argument must be a registry")
        self._registry = registry
        self._tokens = deque()
        self._index = 0
        self._current = None

    def _route(self):
        if self._current is None:
            return "wsh"
        return "wsh -%s" % "".join(self._current.path)

    def _default(self, result):
        # bare flags live in the shell context until a context is named
        if self._current is None and (shell := self._registry.lookup(SHELL)) is not None:
            self._current = result.context = shell

    def _switch(self, context, result):
        self._current = result.context = context
        result.path = list(context.path)

    def _value(self, flag, input, start):
        if not self._tokens:
            raise MissingFlagArgumentError(
                "flag %r at %s position requires a value <%s>" % (input, ordinal(start), flag.argname),
                title="missing flag value",
                code=FaultCode.MISSING_FLAG_ARGUMENT,
                hint="pass the value after a space (for example: %s <%s>)" % (input, flag.argname),
                input=input,
                index=start,
                docs=getdoc(FaultCode.MISSING_FLAG_ARGUMENT),
            )
        self._index += 1
        return self._tokens.popleft()

    def _unknown_flag(self, input, start, candidates):
        suggestions = difflib.get_close_matches(input, candidates, 5)
        try:
            hint = "did you mean %r? you can also run '%s -h' to see all flags" % (suggestions[0], self._route())
        except IndexError:
            hint = "try '%s -h' to see all available flags" % self._route()
        return UnknownFlagError(
            "unknown flag %r at %s position" % (input, ordinal(start)),
            title="unknown flag",
            code=FaultCode.UNKNOWN_FLAG,
            hint=hint,
            input=input,
            index=start,
            suggestions=suggestions,
            docs=getdoc(FaultCode.UNKNOWN_FLAG),
        )

    def _long(self, token, result):
        start = self._index
        if not (name := token[2:]):
            # no end-of-options marker: a bare "--" is an unknown flag
            raise self._unknown_flag(token, start, [])
        if name == "help":
            result.help = True
            return

        self._default(result)
        if self._current is not None and (flag := self._current.flag(long=name)) is not None:
            result.flags[flag.key] = self._value(flag, token, start) if flag.valued else "true"
            return

        if (context := self._registry.find(name, self._current)) is not None:
            # unlike a short root letter, a long name extends the path
            self._current = result.context = context
            result.path.append(context.letter)
            return

        candidates = ["--" + context.name for context in self._registry.roots()]
        if self._current is not None:
            candidates += ["--" + flag.long for flag in self._current.flags if flag.long is not None]
            candidates += ["--" + child.name for child in self._current.children.values()]
        raise self._unknown_flag(token, start, candidates)

    def _cluster(self, token, result):
        start = self._index
        letters = token[1:]
        for offset, letter in enumerate(letters, 1):
            if letter == "h":
                result.help = True
                continue

            if "A" <= letter <= "Z":
                context = self._current.child(letter) if self._current is not None else None
                if context is None and (context := self._registry.lookup(letter)) is None:
                    suggestions = ["-" + root for root in self._registry]
                    raise UnknownContextError(
                        "unknown context '-%s' in %r at %s position" % (letter, token, ordinal(start)),
                        title="unknown context",
                        code=FaultCode.UNKNOWN_CONTEXT,
                        hint="run 'wsh --help' to see available contexts (%s)" % ", ".join(suggestions),
                        input=token,
                        letter=letter,
                        index=start,
                        suggestions=suggestions,
                        docs=getdoc(FaultCode.UNKNOWN_CONTEXT),
                    )
                self._switch(context, result)
                continue

            self._default(result)
            if self._current is None or (flag := self._current.flag(short=letter)) is None:
                candidates = [] if self._current is None else [
                    "-" + flag.short for flag in self._current.flags if flag.short is not None
                ]
                raise self._unknown_flag("-" + letter, start, candidates)

            if not flag.valued:
                result.flags[flag.key] = "true"
                continue

            if offset != len(letters):
                raise MissingFlagArgumentError(
                    "flag '-%s' in %r at %s position requires a value and must end its cluster" % (
                        letter, token, ordinal(start)
                    ),
                    title="missing flag value",
                    code=FaultCode.MISSING_FLAG_ARGUMENT,
                    hint="move '-%s' to the end of the cluster (for example: -%s%s <%s>)" % (
                        letter, letters.replace(letter, "", 1), letter, flag.argname
                    ),
                    input=token,
                    index=start,
                    docs=getdoc(FaultCode.MISSING_FLAG_ARGUMENT),
                )
            result.flags[flag.key] = self._value(flag, "-" + letter, start)

    def parse(self, tokens=Unset, /):
        """
        Resolve tokens into a ParseResult.

        Parameters
        - tokens:
          • Unset: read tokens from sys.argv[1:].
          • str: shell-like string; will be split via shlex.split.
          • Iterable[str]: pre-tokenized sequence, taken verbatim (empty values are kept).

        Raises
        - TypeError: when tokens is not Unset/str/Iterable[str].
        - UnknownContextError, UnknownFlagError, MissingFlagArgumentError.
        """
        if tokens is Unset:
            tokens = sys.argv[1:]
        elif isinstance(tokens, str):
            tokens = shlex.split(tokens)
        elif isinstance(tokens, Iterable):
            tokens = list(tokens)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("parse() argument must be a string or an iterable of strings")
        else:
            raise TypeError("parse() argument must be a string or an iterable of strings")

        self._tokens = deque(tokens)
        self._index = 0
        self._current = None

        result = ParseResult()
        while self._tokens:
            token = self._tokens.popleft()
            self._index += 1

            if token.startswith("--"):
                self._long(token, result)
            elif token.startswith("-") and len(token) > 1:
                self._cluster(token, result)
            else:
                result.args.append(token)
        return result


def resolve(registry, tokens=Unset, /):
    """
    Shortcut for Resolver(registry).parse(tokens).
    """
    return Resolver(registry).parse(tokens)


__all__ = (
    "ParseResult",
    "Resolver",
    "resolve",
)
