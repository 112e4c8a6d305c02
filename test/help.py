"""
Help rendering tests.

Conventions
- Test method names follow CamelCase per project convention.
- Output goes to a plain rich Console writing into a StringIO.
"""

from __future__ import annotations

import contextlib
import io
import unittest
from unittest import TestCase

from rich.console import Console

from wsh import Context, Flag, Registry, register_builtins
from wsh.help import render


class TestHelp(TestCase):
    def setUp(self):
        self.registry = register_builtins(Registry())
        time = Context("T", "time", "Time tracking", "/plugins/time", [
            Flag("o", "offline", descr="Offline mode"),
            Flag(long="from", argname="days", descr="Days ago"),
        ])
        time.context("O", "overtime", "Overtime")
        self.registry.register(time)
        self.output = io.StringIO()
        self.console = Console(file=self.output, width=120, color_system=None)

    def testTopLevelListsRootsInOrder(self):
        self.assertTrue(render(self.registry, console=self.console))
        output = self.output.getvalue()
        self.assertIn("usage: wsh", output)
        self.assertLess(output.index("--args"), output.index("--shell"))
        self.assertLess(output.index("--shell"), output.index("--time"))

    def testContextHelp(self):
        self.assertTrue(render(self.registry, "T", console=self.console, fancy=True))
        output = self.output.getvalue()
        self.assertIn("wsh -T", output)
        self.assertIn("-o, --offline", output)
        self.assertIn("--from <days>", output)
        self.assertIn("-TO", output)
        self.assertIn("script: /plugins/time", output)

    def testBuiltinHelpHasNoScript(self):
        render(self.registry, ["S"], console=self.console)
        output = self.output.getvalue()
        self.assertIn("-c, --command <command>", output)
        self.assertNotIn("script:", output)

    def testUnknownPath(self):
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            self.assertFalse(render(self.registry, "TX", console=self.console))
        self.assertIn("unknown context: -TX", stderr.getvalue())
        self.assertEqual(self.output.getvalue(), "")


if __name__ == "__main__":
    unittest.main()
