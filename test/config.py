"""
Configuration tests (environment readers).

Conventions
- Test method names follow CamelCase per project convention.
- Readers receive explicit mappings; the process environment is never touched.
"""

from __future__ import annotations

import os
import shlex
import sys
import unittest
from unittest import TestCase

from wsh import config


class TestConfig(TestCase):
    def testPluginDirectory(self):
        self.assertEqual(config.plugin_dir({"WSH_PLUGIN_DIR": "/opt/wsh"}), "/opt/wsh")
        self.assertEqual(config.plugin_dir({}), os.path.expanduser(os.path.join("~", ".config", "wsh", "plugins")))

    def testPluginTimeout(self):
        self.assertEqual(config.plugin_timeout({}), 10.0)
        self.assertEqual(config.plugin_timeout({"WSH_PLUGIN_TIMEOUT": "2.5"}), 2.5)
        for value in ("soon", "0", "-1"):
            with self.subTest(value=value), self.assertRaises(ValueError) as context:
                config.plugin_timeout({"WSH_PLUGIN_TIMEOUT": value})
            self.assertIn("WSH_PLUGIN_TIMEOUT", str(context.exception))

    def testPluginWorkers(self):
        self.assertIsNone(config.plugin_workers({}))
        self.assertEqual(config.plugin_workers({"WSH_PLUGIN_WORKERS": "4"}), 4)
        with self.assertRaises(ValueError):
            config.plugin_workers({"WSH_PLUGIN_WORKERS": "1.5"})

    def testRenderOptions(self):
        self.assertEqual(config.render_options({}), {"colorful": True, "fancy": False})
        self.assertEqual(config.render_options({"NO_COLOR": "1", "WSH_FANCY": "yes"}), {"colorful": False, "fancy": True})

    def testBinary(self):
        self.assertEqual(config.binary("/usr/local/bin/wsh"), "/usr/local/bin/wsh")
        self.assertEqual(config.binary("/src/wsh/__main__.py"), shlex.join([sys.executable, "-m", "wsh"]))


if __name__ == "__main__":
    unittest.main()
