"""
wsh configuration read from the process environment.

Variables
- WSH_PLUGIN_DIR      plugin directory override (default: ~/.config/wsh/plugins)
- WSH_PLUGIN_TIMEOUT  per-plugin self-description time limit in seconds (default: 10)
- WSH_PLUGIN_WORKERS  upper bound of concurrent plugin launches (default: one per plugin)
- NO_COLOR            disable colours in rendered faults and help
- WSH_FANCY           render faults and help inside panels when set to a true value

Plugin contract (exported to plugins, never read here)
- WSH_BINARY          command that re-invokes wsh (used as `$WSH_BINARY args --register ...`)
- WSH_PLUGIN_SCRIPT   path of the plugin being loaded

Every reader takes an optional mapping so callers and tests can pass their own
environment; malformed numbers raise ValueError naming the variable.
"""
import os
import shlex
import shutil
import sys

from .utils import *

DEFAULT_PLUGIN_DIR = os.path.join("~", ".config", "wsh", "plugins")
DEFAULT_TIMEOUT = 10.0


def _number(environ, name, type, default, /):
    if not (value := environ.get(name, "").strip()):
        return default
    try:
        number = type(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}") from None
    if number <= 0:
        raise ValueError(f"{name} must be positive, got {value!r}")
    return number


def plugin_dir(environ=Unset, /):
    environ = coalesce(environ, os.environ)
    return environ.get("WSH_PLUGIN_DIR") or os.path.expanduser(DEFAULT_PLUGIN_DIR)


def plugin_timeout(environ=Unset, /):
    return _number(coalesce(environ, os.environ), "WSH_PLUGIN_TIMEOUT", float, DEFAULT_TIMEOUT)


def plugin_workers(environ=Unset, /):
    """
    Return the worker bound, or None for one worker per discovered plugin.
    """
    return _number(coalesce(environ, os.environ), "WSH_PLUGIN_WORKERS", int, None)


def render_options(environ=Unset, /):
    environ = coalesce(environ, os.environ)
    return {
        "colorful": not environ.get("NO_COLOR"),
        "fancy": environ.get("WSH_FANCY", "").strip().lower() in ("1", "true", "yes", "on"),
    }


def binary(argv0=Unset, /):
    """
    Return the command plugins must run to reach this program.

    When started as `python -m wsh` there is no executable of our own, so the
    interpreter invocation is returned as a shell-joined command line.
    """
    argv0 = coalesce(argv0, sys.argv[0])
    if not argv0 or os.path.basename(argv0) == "__main__.py":
        return shlex.join([sys.executable, "-m", "wsh"])
    return os.path.abspath(shutil.which(argv0) or argv0)


__all__ = (
    "DEFAULT_PLUGIN_DIR",
    "DEFAULT_TIMEOUT",
    "plugin_dir",
    "plugin_timeout",
    "plugin_workers",
    "render_options",
    "binary",
)
