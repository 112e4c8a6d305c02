"""
wsh faults (errors and warnings) and rendering.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues
  (errors and warnings). Codes are grouped by domain to keep copy consistent
  and make logs/searches predictable.
- CommandException / CommandWarning: base types that carry message + options and
  know how to render themselves in a friendly, lowercased, and actionable way.
- trigger(): central entry point to surface any fault (respecting shell/deferred/fancy/colorful).
- getdoc(): optional description lookup for a code from the host application.

UX goals
- Position-first messages for parse faults (“unknown flag '-x' at second position”).
- Soft but technical language: short titles, one-sentence bodies, a single clear hint.
- Lowercased tone with readable styling (configurable via __styles__ in __main__).

Integration
- Library code raises faults directly with their options (title/code/hint/...).
- The CLI surfaces them through trigger(fault, shell=True, ...): errors are rendered
  via rich and map to exit status 1, warnings are rendered and execution goes on.
- Outside shell mode errors are raised and warnings go through warnings.warn.
"""
import copy
import inspect
import sys
import warnings
from abc import ABC
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console, Group
from rich.panel import Panel
from rich.text import Text

from .utils import Unset

console = Console(stderr=True)


class FaultCode(IntEnum):
    """
    canonical fault codes used across wsh (stable identifiers).

    grouping (by high-level domain)
    - resolution (111xx)
      • UNKNOWN_CONTEXT, UNKNOWN_FLAG, MISSING_FLAG_ARGUMENT
    - registry (112xx)
      • REGISTRATION_CONFLICT
    - plugins (113xx)
      • PROTOCOL_ERROR, PLUGIN_TIMEOUT, EXECUTION_FAILURE
    - warnings (12xxx)
      • REGISTRATION_CONFLICT_WARNING, PLUGIN_LOAD_FAILURE

    rationale
    - codes are discoverable (searchable in logs and docs) and normalized to a string
      via normalize() so hosts can remap them if desired.
    """
    # --- resolution errors (111xx) ---
    UNKNOWN_CONTEXT               = 11101
    UNKNOWN_FLAG                  = 11111
    MISSING_FLAG_ARGUMENT         = 11112

    # --- registry errors (112xx) ---
    REGISTRATION_CONFLICT         = 11201

    # --- plugin errors (113xx) ---
    PROTOCOL_ERROR                = 11301
    PLUGIN_TIMEOUT                = 11302
    EXECUTION_FAILURE             = 11303

    # --- warnings (12xxx) ---
    REGISTRATION_CONFLICT_WARNING = 12201
    PLUGIN_LOAD_FAILURE           = 12301

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette, title):
    """
    Build the rich renderable shared by errors and warnings.

    Layout
    - header: "[ prog — code | Title ]"
    - body: the message
    - hint: "→ hint" (omitted when the fault has none)
    """
    main = __import__("__main__")
    options = fault.options
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = options.get("colorful", False)
    fancy = options.get("fancy", False)

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if not colorful:
            return Text(str(fragment))
        if isinstance(fragment, Text):
            return fragment
        return Text(str(fragment), styles[style])

    prog = text(getattr(main, "__prog__", options.get("prog", "wsh")), "prog-name")
    code = options.get("code")

    header = Text.assemble(
        "[ ",
        prog,
        " — ",
        text(code.normalize() if isinstance(code, FaultCode) else "-", "code"),
        " | ",
        text(str(options.get("title", type(fault).__name__)).title(), title),
        " ]"
    )
    message = text(fault.message, title.replace("title", "message"))
    parts = [message]
    if hint := options.get("hint"):
        parts.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))

    if fancy:
        return Panel(Group(*parts), title=header, title_align="left")

    return Group(header, *parts)


class CommandException(Exception):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __getattr__(self, name):
        # expose fault context (input, index, script, ...) as attributes
        try:
            return self.__dict__["options"][name]
        except KeyError:
            raise AttributeError(name) from None

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title

            # body
            "error-message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
        }, "error-title")

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            raise self from None
        console.print(self)
        if self.options.get("deferred", False):
            return
        sys.exit(1)

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UnknownContextError(CommandException): ...
class UnknownFlagError(CommandException): ...
class MissingFlagArgumentError(CommandException): ...
class RegistrationConflictError(CommandException): ...
class ProtocolError(CommandException): ...
class PluginTimeoutError(CommandException): ...
class ExecutionFailureError(CommandException): ...


class CommandWarning(ABC, Warning):
    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __getattr__(self, name):
        try:
            return self.__dict__["options"][name]
        except KeyError:
            raise AttributeError(name) from None

    def __rich__(self):
        return _render(self, {
            # header parts
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",  # softer pinky title for warnings

            # body
            "warning-message": "#D6D6DE",  # slightly lighter gray body
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
        }, "warning-title")

    def __trigger__(self) -> None:
        if not self.options.get("shell", False):
            return warnings.warn(self, stacklevel=len(inspect.stack()))
        console.print(self)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class RegistrationConflictWarning(CommandWarning): ...
class PluginLoadWarning(CommandWarning): ...


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - in shell mode, rendering happens via rich console; otherwise, exceptions are raised.

    typical options
    - shell, fancy, colorful, deferred, title, code, hint, docs, and any other
      context the reporter may want to show (e.g., input/index/script).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    copy.replace(fault, **options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be an fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "CommandException",
    "UnknownContextError",
    "UnknownFlagError",
    "MissingFlagArgumentError",
    "RegistrationConflictError",
    "ProtocolError",
    "PluginTimeoutError",
    "ExecutionFailureError",
    "CommandWarning",
    "RegistrationConflictWarning",
    "PluginLoadWarning",
    "FaultCode",
    "trigger",
    "getdoc",
)
