"""
Plugin execution tests (environment injection and exit status propagation).

Scope
- Validate that flags reach the script as environment variables and positional
  arguments as process arguments.
- Validate exit status propagation, signal mapping and execution faults.

Conventions
- Test method names follow CamelCase per project convention.
- Scripts are throw-away /bin/sh files in a temporary directory.
"""

from __future__ import annotations

import os
import tempfile
import unittest
from unittest import TestCase, mock

from wsh import Context, execute
from wsh.faults import ExecutionFailureError, FaultCode


class TestExecute(TestCase):
    """Launching the script behind a resolved context."""

    def setUp(self):
        directory = tempfile.TemporaryDirectory()
        self.addCleanup(directory.cleanup)
        self.directory = directory.name

    def script(self, body):
        path = os.path.join(self.directory, "plugin")
        with open(path, "w") as file:
            file.write("#!/bin/sh\n" + body + "\n")
        os.chmod(path, 0o755)
        return path

    def testFlagsAndArgumentsReachTheScript(self):
        output = os.path.join(self.directory, "output")
        context = Context("D", "demo", "Demo", self.script(
            'printf "%%s|%%s|%%s|%%s" "$message" "$verbose" "$1" "$2" > %s' % output
        ))
        status = execute(context, {"message": "hello world", "verbose": "true"}, ["one", "two words"])
        self.assertEqual(status, 0)
        with open(output) as file:
            self.assertEqual(file.read(), "hello world|true|one|two words")

    def testBootstrapVariablesAreNotLeaked(self):
        output = os.path.join(self.directory, "output")
        context = Context("D", "demo", "Demo", self.script('printf "%%s" "$WSH_BINARY" > %s' % output))
        with mock.patch.dict(os.environ, {"WSH_BINARY": "/usr/local/bin/wsh"}):
            self.assertEqual(execute(context, {}, []), 0)
        with open(output) as file:
            self.assertEqual(file.read(), "")

    def testExitStatusIsPropagated(self):
        context = Context("D", "demo", "Demo", self.script("exit 42"))
        self.assertEqual(execute(context, {}, []), 42)

    def testSignalMapsToShellConvention(self):
        context = Context("D", "demo", "Demo", self.script("kill -TERM $$"))
        self.assertEqual(execute(context, {}, []), 128 + 15)

    def testBuiltinContextRaises(self):
        with self.assertRaises(ExecutionFailureError) as context:
            execute(Context("S", "shell"), {}, [])
        self.assertEqual(context.exception.code, FaultCode.EXECUTION_FAILURE)

    def testMissingScriptRaises(self):
        context = Context("D", "demo", "Demo", os.path.join(self.directory, "missing"))
        with self.assertRaises(ExecutionFailureError):
            execute(context, {}, [])

    def testUnlaunchableScriptRaises(self):
        path = self.script("exit 0")
        os.chmod(path, 0o644)
        with self.assertRaises(ExecutionFailureError):
            execute(Context("D", "demo", "Demo", path), {}, [])


if __name__ == "__main__":
    unittest.main()
