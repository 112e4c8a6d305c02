"""
Self-description protocol tests (registration grammar and wire document).

Scope
- Validate the three header forms, flag arity detection and sub-contexts.
- Validate grammar faults (missing description, lowercase header, bad flags).
- Validate that the wire document preserves letters, names, flags and nesting.
- Validate wire document faults (version, types, trailing garbage).

Conventions
- Test method names follow CamelCase per project convention.
- Tests use the public API (parse_definition, encode, decode, dumps, loads).
"""

from __future__ import annotations

import json
import unittest
from unittest import TestCase

from wsh import parse_definition, encode, decode, dumps, loads, Context, Flag
from wsh.faults import ProtocolError, FaultCode


def _signature(context):
    return (
        context.letter,
        context.name,
        context.descr,
        context.script,
        [(flag.short, flag.long, flag.argname, flag.descr) for flag in context.flags],
        {letter: _signature(child) for letter, child in context.children.items()},
    )


class TestDefinitionGrammar(TestCase):
    """Registration tokens into Context trees."""

    def testShortAndLongHeader(self):
        context = parse_definition(["-T", "--time", "Time tracking"])
        self.assertEqual((context.letter, context.name, context.descr), ("T", "time", "Time tracking"))

    def testShortOnlyHeaderDerivesName(self):
        context = parse_definition(["-T", "Time tracking"])
        self.assertEqual((context.letter, context.name), ("T", "t"))

    def testLongOnlyHeaderDerivesLetter(self):
        context = parse_definition(["--time", "Time tracking"])
        self.assertEqual((context.letter, context.name), ("T", "time"))

    def testFlagArityFromTrailingTokens(self):
        context = parse_definition([
            "-T", "--time", "Time tracking",
            "-o", "--offline", "Offline mode",
            "-f", "--from", "days", "Days ago",
            "--verbose", "Verbose output",
            "-q", "Quiet",
        ])
        self.assertEqual([(flag.short, flag.long, flag.argname, flag.descr) for flag in context.flags], [
            ("o", "offline", None, "Offline mode"),
            ("f", "from", "days", "Days ago"),
            (None, "verbose", None, "Verbose output"),
            ("q", None, None, "Quiet"),
        ])

    def testSubContextsEndAtNextContextHeader(self):
        context = parse_definition([
            "-T", "--time", "Time tracking",
            "-o", "--offline", "Offline mode",
            "-O", "--overtime", "Overtime",
            "-s", "--start", "time", "Start time",
            "-R", "Reports",
            "-w", "--week", "Weekly report",
        ])
        self.assertEqual([flag.key for flag in context.flags], ["offline"])
        self.assertEqual(sorted(context.children), ["O", "R"])
        self.assertEqual([flag.key for flag in context.child("O").flags], ["start"])
        self.assertEqual(context.child("R").name, "r")
        self.assertEqual(context.child("R").path, ("T", "R"))
        self.assertEqual([flag.key for flag in context.child("R").flags], ["week"])

    def testScriptIsStampedOnWholeTree(self):
        context = parse_definition("-T --time 'Time tracking' -O --overtime Overtime", script="/plugins/time")
        self.assertEqual(context.script, "/plugins/time")
        self.assertEqual(context.child("O").script, "/plugins/time")

    def testStringTokensAreShellSplit(self):
        context = parse_definition("-D --demo 'Demo plugin' -m --message msg 'Message to display'")
        self.assertEqual(context.descr, "Demo plugin")
        self.assertEqual(context.flag(long="message").argname, "msg")

    def testEmptyDefinitionRaises(self):
        with self.assertRaises(ProtocolError) as context:
            parse_definition([])
        self.assertEqual(context.exception.code, FaultCode.PROTOCOL_ERROR)

    def testMissingDescriptionRaises(self):
        with self.assertRaises(ProtocolError) as context:
            parse_definition(["-T", "--time"])
        self.assertIn("missing description", context.exception.message)
        with self.assertRaises(ProtocolError):
            parse_definition(["-T", "--time", "Time", "-o", "--offline"])

    def testLowercaseHeaderRaises(self):
        with self.assertRaises(ProtocolError) as context:
            parse_definition(["-t", "Time"])
        self.assertIn("capital letter", context.exception.message)

    def testNamelessFlagRaises(self):
        with self.assertRaises(ProtocolError):
            parse_definition(["-T", "Time", "stray", "description"])

    def testReservedFlagRaises(self):
        with self.assertRaises(ProtocolError):
            parse_definition(["-T", "Time", "-h", "Hijacked help"])

    def testDuplicateFlagRaises(self):
        with self.assertRaises(ProtocolError):
            parse_definition(["-T", "Time", "-o", "Offline", "-o", "Other"])


class TestWireDocument(TestCase):
    """Context trees to and from the JSON document."""

    def setUp(self):
        self.context = Context("T", "time", "Time tracking", "/plugins/time", [
            Flag("o", "offline", descr="Offline mode"),
            Flag(long="from", argname="days", descr="Days ago"),
        ])
        overtime = self.context.context("O", "overtime", "Overtime", flags=[Flag("s", "start", "time", "Start")])
        overtime.context("D", "detail", "Details")

    def testEncodeShape(self):
        document = encode(self.context)
        self.assertEqual(document["version"], 1)
        self.assertEqual(document["letter"], "T")
        self.assertEqual(document["flags"][1], {"short": None, "long": "from", "argname": "days", "descr": "Days ago"})
        self.assertEqual(document["children"]["O"]["children"]["D"]["name"], "detail")

    def testDocumentPreservesTree(self):
        decoded = loads(dumps(self.context))
        self.assertEqual(_signature(decoded), _signature(self.context))
        self.assertEqual(decoded.child("O").child("D").path, ("T", "O", "D"))

    def testRegisteredDefinitionSurvivesTheWire(self):
        context = parse_definition([
            "-T", "--time", "Time tracking",
            "-f", "--from", "days", "Days ago",
            "-O", "--overtime", "Overtime",
            "-s", "--start", "time", "Start time",
            "-v", "Verbose",
        ], script="/plugins/time")
        decoded = loads(dumps(context))
        self.assertEqual(_signature(decoded), _signature(context))
        self.assertEqual(decoded.child("O").flag(long="start").argname, "time")
        self.assertEqual(decoded.child("O").path, ("T", "O"))

    def testDeepNestingRaises(self):
        with self.assertRaises(ProtocolError):
            loads('{"version": 1, "children": {"A": ' * 5000 + "{}" + "}}" * 5000)

    def testMissingScriptIsStamped(self):
        document = encode(self.context) | {"script": ""}
        document["children"]["O"]["script"] = ""
        decoded = decode(document, script="/plugins/elsewhere")
        self.assertEqual(decoded.script, "/plugins/elsewhere")
        self.assertEqual(decoded.child("O").script, "/plugins/elsewhere")

    def testSurroundingWhitespaceIsAccepted(self):
        self.assertEqual(loads("\n  %s \n" % dumps(self.context)).name, "time")
        self.assertEqual(loads(dumps(self.context).encode()).name, "time")

    def testTrailingOutputRaises(self):
        with self.assertRaises(ProtocolError):
            loads(dumps(self.context) + "\nregistered!")

    def testUnknownVersionRaises(self):
        with self.assertRaises(ProtocolError):
            decode(encode(self.context) | {"version": 2})

    def testIllTypedFieldsRaise(self):
        for override in ({"letter": 1}, {"flags": {}}, {"children": []}, {"name": 3}):
            with self.subTest(override=override), self.assertRaises(ProtocolError):
                decode(encode(self.context) | override)

    def testInvalidModelDataRaises(self):
        with self.assertRaises(ProtocolError):
            decode(encode(self.context) | {"letter": "t"})
        with self.assertRaises(ProtocolError):
            decode(encode(self.context) | {"flags": [{"short": "h"}]})

    def testMismatchedChildKeyRaises(self):
        document = json.loads(dumps(self.context))
        document["children"]["X"] = document["children"].pop("O")
        with self.assertRaises(ProtocolError):
            decode(document)

    def testNonObjectRaises(self):
        with self.assertRaises(ProtocolError):
            loads("[1, 2, 3]")


if __name__ == "__main__":
    unittest.main()
