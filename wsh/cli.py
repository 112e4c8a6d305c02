"""
wsh command-line entry point.

Invocation forms
- wsh args --register <definition...>
    plugin side of the self-description protocol: parse the definition, print the
    JSON document for the parent process and exit 0.
- wsh args <tokens...>
    resolve tokens and print shell-evaluable assignments:
        command='ls -la'
        WSH_ARGS='notes today'
- wsh [tokens...]
    bootstrap plugins, resolve tokens and dispatch:
    • -h / --help          → help for the resolved context path.
    • no context, or -S    → the wrapped shell ($SHELL or /bin/sh).
    • -A                   → help of the args helper.
    • plugin context       → execute its script with the flags in the environment.

Exit status
- 0 on success, 1 on parse/protocol faults, the child's status after dispatch,
  executor.INTERNAL_ERROR when a plugin script cannot be run.
"""
import os
import shlex
import subprocess
import sys

from rich.console import Console

from . import config, help
from .executor import INTERNAL_ERROR, execute
from .faults import *
from .loader import load_plugins
from .protocol import dumps, parse_definition
from .registry import ARGS, SHELL, Registry, register_builtins
from .resolver import resolve
from .utils import *


def _report(fault, options):
    trigger(fault, shell=True, deferred=True, **options)


def bootstrap(registry, options, /):
    """
    Load plugins into registry; every fault is reported as a warning.
    """
    faults = load_plugins(
        registry,
        config.binary(),
        directory=config.plugin_dir(),
        timeout=config.plugin_timeout(),
        workers=config.plugin_workers(),
    )
    for fault in faults:
        if isinstance(fault, CommandException):
            fault = PluginLoadWarning(
                "plugin skipped: %s" % fault.message,
                **(fault.options | {"code": FaultCode.PLUGIN_LOAD_FAILURE, "docs": getdoc(FaultCode.PLUGIN_LOAD_FAILURE)})
            )
        _report(fault, options)
    return registry


def run_shell(flags, args, /):
    """
    Run the wrapped shell: one-shot with --command, interactive otherwise.
    """
    shell = os.environ.get("SHELL") or "/bin/sh"
    if (command := flags.get("command")) is not None:
        argv = [shell, "-c", command, shell, *args]
    else:
        argv = [shell, *args]
    try:
        completed = subprocess.run(argv, check=False)
    except OSError as exception:
        raise ExecutionFailureError(
            "shell %s could not be launched: %s" % (shell, exception.strerror or exception),
            title="shell launch failed",
            code=FaultCode.EXECUTION_FAILURE,
            hint="point SHELL to an installed shell",
            script=shell,
            docs=getdoc(FaultCode.EXECUTION_FAILURE),
        ) from None
    return 128 - completed.returncode if completed.returncode < 0 else completed.returncode


def _register(tokens, options):
    if len(tokens) < 2:
        console = Console(stderr=True)
        console.print("usage: wsh args --register -<LETTER> [--<name>] <descr> [flag definitions...]")
        console.print("   or: wsh args --register --<name> <descr> [flag definitions...]")
        return 1

    try:
        context = parse_definition(tokens, script=os.environ.get("WSH_PLUGIN_SCRIPT", ""))
    except ProtocolError as fault:
        _report(fault, options)
        return 1

    try:
        register_builtins(Registry()).register(context)
    except RegistrationConflictError as fault:
        _report(RegistrationConflictWarning(fault.message, **(fault.options | {
            "code": FaultCode.REGISTRATION_CONFLICT_WARNING,
            "docs": getdoc(FaultCode.REGISTRATION_CONFLICT_WARNING),
        })), options)

    sys.stdout.write(dumps(context) + "\n")
    sys.stdout.flush()
    return 0


def _parse(tokens, options):
    registry = register_builtins(Registry())
    # a plugin being loaded must not trigger a nested bootstrap
    if "WSH_BINARY" not in os.environ:
        bootstrap(registry, options)

    try:
        result = resolve(registry, tokens)
    except CommandException as fault:
        _report(fault, options)
        return 1

    lines = ["%s=%s" % (key, shlex.quote(value)) for key, value in sorted(result.environ().items())]
    lines.append("WSH_ARGS=%s" % shlex.quote(shlex.join(result.args)))
    sys.stdout.write("\n".join(lines) + "\n")
    sys.stdout.flush()
    return 0


def args(tokens, /, **options):
    """
    Handle `wsh args ...` and return the exit status.
    """
    if not tokens:
        _report(ProtocolError(
            "no arguments provided to 'wsh args'",
            title="missing arguments",
            code=FaultCode.PROTOCOL_ERROR,
            hint="use 'wsh args --register ...' from a plugin or 'wsh args <flags...>' to parse",
            docs=getdoc(FaultCode.PROTOCOL_ERROR),
        ), options)
        return 1
    if tokens[0] == "--register":
        return _register(tokens[1:], options)
    return _parse(tokens, options)


def main(argv=Unset, /, *, shell=run_shell):
    """
    Run wsh with argv (defaults to sys.argv[1:]) and return the exit status.

    shell is the collaborator invoked for the S context; it receives the flag
    map and the positional arguments and returns an exit status.
    """
    argv = list(coalesce(argv, sys.argv[1:]))
    options = config.render_options()

    try:
        if argv[:1] == ["args"]:
            return args(argv[1:], **options)

        registry = bootstrap(register_builtins(Registry()), options)
    except ValueError as exception:
        Console(stderr=True).print("wsh: %s" % exception, markup=False, highlight=False)
        return 1

    try:
        result = resolve(registry, argv)
    except CommandException as fault:
        _report(fault, options)
        return 1

    if result.help:
        return 0 if help.render(registry, result.context.path if result.path else (), **options) else 1

    context = result.context
    try:
        if context is None or context is registry.lookup(SHELL):
            if "reload" in result.flags and "command" not in result.flags:
                registry = bootstrap(register_builtins(Registry()), options)
                Console().print("reloaded contexts: %s" % ", ".join("-" + letter for letter in registry))
                return 0
            return shell(result.flags, result.args)

        if context is registry.lookup(ARGS):
            help.render(registry, context.path, **options)
            return 0

        return execute(context, result.flags, result.args)
    except ExecutionFailureError as fault:
        _report(fault, options)
        return INTERNAL_ERROR


__all__ = (
    "main",
    "args",
    "bootstrap",
    "run_shell",
)
