"""
wsh resolved-plugin execution.

execute(context, flags, args) launches context.script with the flag map added to
the environment and the positional arguments as process arguments, waits for it
and returns its exit status:
- normal exit        → the child's own status, verbatim.
- killed by signal n → 128 + n (shell convention).
- cannot run at all  → ExecutionFailureError; callers report it and exit with
                       INTERNAL_ERROR, outside the child's own 0–125 range.
"""
import os
import subprocess

from .faults import *

INTERNAL_ERROR = 127
BOOTSTRAP_VARIABLES = ("WSH_BINARY", "WSH_PLUGIN_SCRIPT")


def execute(context, flags, args, /):
    """
    Run the script behind context and return its exit status.

    Raises
    - ExecutionFailureError: the context has no script, the script is missing,
      or launching it failed.
    """
    route = "-" + "".join(context.path)
    if not context.script:
        raise ExecutionFailureError(
            "context %s has no script to execute" % route,
            title="nothing to execute",
            code=FaultCode.EXECUTION_FAILURE,
            hint="run 'wsh %sh' to see what this context offers" % route,
            context=context,
            docs=getdoc(FaultCode.EXECUTION_FAILURE),
        )
    if not os.path.isfile(context.script):
        raise ExecutionFailureError(
            "plugin script %s of context %s does not exist" % (context.script, route),
            title="plugin script missing",
            code=FaultCode.EXECUTION_FAILURE,
            hint="reinstall the plugin or remove it from the plugin directory",
            context=context,
            script=context.script,
            docs=getdoc(FaultCode.EXECUTION_FAILURE),
        )

    # a leftover WSH_BINARY would put the plugin back in self-description mode
    environ = {key: value for key, value in os.environ.items() if key not in BOOTSTRAP_VARIABLES}
    try:
        completed = subprocess.run([context.script, *args], env=environ | dict(flags), check=False)
    except OSError as exception:
        raise ExecutionFailureError(
            "plugin script %s could not be launched: %s" % (context.script, exception.strerror or exception),
            title="plugin launch failed",
            code=FaultCode.EXECUTION_FAILURE,
            hint="check the shebang line and permissions of %s" % context.script,
            context=context,
            script=context.script,
            docs=getdoc(FaultCode.EXECUTION_FAILURE),
        ) from None

    if completed.returncode < 0:
        return 128 - completed.returncode
    return completed.returncode


__all__ = (
    "INTERNAL_ERROR",
    "BOOTSTRAP_VARIABLES",
    "execute",
)
