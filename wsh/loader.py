"""
wsh plugin discovery & bootstrap.

Phases
1. find_plugins(directory): direct, non-hidden, executable entries of the plugin
   directory (a missing directory simply yields no candidates).
2. run_plugin(script, binary, timeout=...): launch one plugin with WSH_BINARY and
   WSH_PLUGIN_SCRIPT exported, capture its stdout (stderr passes through), kill the
   whole process group on timeout, then parse the captured self-description.
3. load_plugins(registry, binary, ...): fan out one worker per plugin (optionally
   bounded), join all of them, then register every parsed context from the calling
   thread in script order.

Fault policy
- A timed-out, crashing or malformed plugin only loses itself; its fault is returned.
- Any other exception raised while loading one plugin becomes its ExecutionFailureError.
- Registration conflicts become RegistrationConflictWarning entries.
- Nothing here raises for plugin problems: the caller decides how to surface faults.
"""
import contextlib
import os
import signal
import stat
import subprocess
from concurrent.futures import ThreadPoolExecutor

from . import config
from .faults import *
from .protocol import loads
from .utils import *


def find_plugins(directory, /):
    """
    Return the sorted list of plugin candidates inside directory.

    Raises
    - NotADirectoryError: when directory exists but is not a directory.
    """
    try:
        entries = os.scandir(directory)
    except FileNotFoundError:
        return []

    scripts = []
    with entries:
        for entry in entries:
            if entry.name.startswith(".") or entry.is_dir():
                continue
            try:
                mode = entry.stat().st_mode
            except OSError:
                continue
            if stat.S_IMODE(mode) & 0o111:
                scripts.append(entry.path)
    return sorted(scripts)


def run_plugin(script, binary, /, *, timeout=config.DEFAULT_TIMEOUT):
    """
    Execute one plugin in self-description mode and return its Context.

    Raises
    - PluginTimeoutError: the plugin ran longer than timeout seconds (it is killed).
    - ExecutionFailureError: the plugin could not be launched.
    - ProtocolError: non-zero exit status or malformed output.
    """
    name = os.path.basename(script)
    environ = os.environ | {"WSH_BINARY": binary, "WSH_PLUGIN_SCRIPT": script}

    try:
        process = subprocess.Popen(
            [script],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            env=environ,
            start_new_session=True,
        )
    except OSError as exception:
        raise ExecutionFailureError(
            "plugin %s could not be launched: %s" % (name, exception.strerror or exception),
            title="plugin launch failed",
            code=FaultCode.EXECUTION_FAILURE,
            hint="check the shebang line and permissions of %s" % script,
            script=script,
            docs=getdoc(FaultCode.EXECUTION_FAILURE),
        ) from None

    with process:
        try:
            stdout, _ = process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            # the plugin may have spawned helpers; take the whole session down
            with contextlib.suppress(ProcessLookupError):
                os.killpg(process.pid, signal.SIGKILL)
            process.wait()
            raise PluginTimeoutError(
                "plugin %s timed out after %gs" % (name, timeout),
                title="plugin timed out",
                code=FaultCode.PLUGIN_TIMEOUT,
                hint="plugins must only register themselves when WSH_BINARY is set",
                script=script,
                timeout=timeout,
                docs=getdoc(FaultCode.PLUGIN_TIMEOUT),
            ) from None

    if process.returncode != 0:
        raise ProtocolError(
            "plugin %s exited with status %d while registering" % (name, process.returncode),
            title="malformed self-description",
            code=FaultCode.PROTOCOL_ERROR,
            hint="run '%s' with WSH_BINARY set to see its errors" % script,
            script=script,
            status=process.returncode,
            docs=getdoc(FaultCode.PROTOCOL_ERROR),
        )

    try:
        return loads(stdout, script=script)
    except ProtocolError as fault:
        raise ProtocolError("plugin %s: %s" % (name, fault.message), **(fault.options | {"script": script})) from None


def load_plugins(registry, binary, /, *, directory=Unset, timeout=Unset, workers=Unset):
    """
    Discover, run and register every plugin; return the collected faults.

    Parameters
    - registry: Registry receiving the parsed contexts.
    - binary: str, exported to plugins as WSH_BINARY.
    - directory: plugin directory (defaults to config.plugin_dir()).
    - timeout: per-plugin time limit in seconds (defaults to config.plugin_timeout()).
    - workers: concurrency bound; None/Unset means one worker per plugin.

    Returns
    - tuple of faults ordered by script path: CommandException subclasses for
      plugins that were dropped, CommandWarning subclasses for registration
      conflicts and an unreadable plugin directory.
    """
    directory = coalesce(directory, config.plugin_dir())
    timeout = coalesce(timeout, config.plugin_timeout())
    workers = coalesce(workers, config.plugin_workers())

    try:
        scripts = find_plugins(directory)
    except OSError as exception:
        return (PluginLoadWarning(
            "cannot read plugin directory %s: %s" % (directory, exception.strerror or exception),
            title="plugin directory unreadable",
            code=FaultCode.PLUGIN_LOAD_FAILURE,
            hint="point WSH_PLUGIN_DIR to a directory of executable plugins",
            directory=directory,
            docs=getdoc(FaultCode.PLUGIN_LOAD_FAILURE),
        ),)

    if not scripts:
        return ()

    # join-all: leaving the with-block waits for every worker
    with ThreadPoolExecutor(max_workers=min(workers or len(scripts), len(scripts))) as executor:
        futures = [executor.submit(run_plugin, script, binary, timeout=timeout) for script in scripts]

    faults = []
    for script, future in zip(scripts, futures):
        try:
            context = future.result()
        except CommandException as fault:
            faults.append(fault)
            continue
        except Exception as exception:
            faults.append(ExecutionFailureError(
                "plugin %s failed while loading: %s" % (os.path.basename(script), exception),
                title="plugin load failed",
                code=FaultCode.EXECUTION_FAILURE,
                hint="run '%s' with WSH_BINARY set to see its errors" % script,
                script=script,
                docs=getdoc(FaultCode.EXECUTION_FAILURE),
            ))
            continue

        try:
            registry.register(context)
        except RegistrationConflictError as fault:
            faults.append(RegistrationConflictWarning(fault.message, **(fault.options | {
                "title": "plugin not registered",
                "code": FaultCode.REGISTRATION_CONFLICT_WARNING,
                "script": script,
                "docs": getdoc(FaultCode.REGISTRATION_CONFLICT_WARNING),
            })))

    return tuple(faults)


__all__ = (
    "find_plugins",
    "run_plugin",
    "load_plugins",
)
