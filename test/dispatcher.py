"""
Dispatcher tests (token walking, value forms, handler firing and usage faults).

Scope
- Left-to-right, immediate handler firing with `current`/`original`/`without`.
- Inline, attached and spaced values, required vs optional arity, '--' and '-'.
- Usage faults: malformed, unknown (with suggestions), flag assignment,
  missing value, empty inline value, conversion; delegated handler errors.
- Deprecated spellings and terminators.

Conventions
- Test method names follow CamelCase per project convention.
- Tests dispatch against the shipped COMMAND_LINE with recording handlers.
"""

from __future__ import annotations

import io
import unittest
from unittest import TestCase

from specrunner.faults import (
    ConversionError,
    DelegatedOptionError,
    EmptyValueError,
    FlagAssignmentError,
    MalformedTokenError,
    OptionValueRequiredError,
    UnknownSwitchError,
    UsageError,
)
from specrunner.grammar import COMMAND_LINE, LoadOrder, banner
from specrunner.parser import Dispatcher, Match


class Recorder(dict):
    """handler mapping that records (name, value) for every COMMAND_LINE entry."""

    def __init__(self):
        super().__init__()
        self.calls = []
        for name, descriptor in COMMAND_LINE.items():
            if hasattr(descriptor, "metavar"):
                self[name] = lambda value, name=name: self.calls.append((name, value))
            else:
                self[name] = lambda name=name: self.calls.append((name, None))


class TestDispatching(TestCase):
    """successful walks."""

    def setUp(self):
        self.err = io.StringIO()
        self.handlers = Recorder()
        self.dispatcher = Dispatcher(COMMAND_LINE, self.handlers, self.err, banner())

    def testHandlersFireLeftToRight(self):
        positionals = self.dispatcher(["a_spec.rb", "-R", "--format", "html", "-c", "b_spec.rb"])
        self.assertEqual(self.handlers.calls, [("reverse", None), ("format", "html"), ("colour", None)])
        self.assertEqual(positionals, ["a_spec.rb", "b_spec.rb"])

    def testInlineValues(self):
        self.dispatcher(["--format=html:out.html", "-l=12"])
        self.assertEqual(self.handlers.calls, [("format", "html:out.html"), ("line", 12)])

    def testValuesAreConverted(self):
        self.dispatcher(["--timeout", "2.5", "--loadby", "mtime"])
        self.assertEqual(self.handlers.calls, [("timeout", 2.5), ("loadby", LoadOrder.MTIME)])

    def testRequiredValueTakesTheNextTokenWhateverItIs(self):
        self.dispatcher(["--require", "-weird.rb"])
        self.assertEqual(self.handlers.calls, [("require", "-weird.rb")])

    def testOptionalValueSkipsSwitches(self):
        self.dispatcher(["--diff", "-c", "--diff", "context"])
        self.assertEqual(self.handlers.calls, [("diff", None), ("colour", None), ("diff", "context")])

    def testOptionalValueAtTheEnd(self):
        self.dispatcher(["--example"])
        self.assertEqual(self.handlers.calls, [("example", None)])

    def testDoubleDashEndsOptions(self):
        positionals = self.dispatcher(["-R", "--", "--reverse", "-"])
        self.assertEqual(self.handlers.calls, [("reverse", None)])
        self.assertEqual(positionals, ["--reverse", "-"])

    def testLoneDashIsPositional(self):
        self.assertEqual(self.dispatcher(["-"]), ["-"])

    def testCurrentAndWithout(self):
        seen = []

        def generate(path):
            seen.append((self.dispatcher.current, self.dispatcher.without(self.dispatcher.current)))

        self.handlers["generate_options"] = generate
        self.dispatcher(["a_spec.rb", "-G", "spec.opts", "-R"])
        self.assertEqual(seen, [(Match("generate_options", "-G", "spec.opts", 1, 3), ["a_spec.rb", "-R"])])
        self.assertIsNone(self.dispatcher.current)
        self.assertEqual(self.dispatcher.original, ("a_spec.rb", "-G", "spec.opts", "-R"))

    def testInlineMatchCoversOneToken(self):
        seen = []
        self.handlers["generate_options"] = lambda path: seen.append(self.dispatcher.without(self.dispatcher.current))
        self.dispatcher(["-G=spec.opts", "-R"])
        self.assertEqual(seen, [["-R"]])

    def testAttachedShortValues(self):
        self.dispatcher(["-l5", "-fprogress", "-rhelper.rb", "-t0.5"])
        self.assertEqual(self.handlers.calls, [
            ("line", 5),
            ("format", "progress"),
            ("require", "helper.rb"),
            ("timeout", 0.5),
        ])

    def testAttachedMatchCoversOneToken(self):
        seen = []
        self.handlers["generate_options"] = lambda path: seen.append(
            (self.dispatcher.current, self.dispatcher.without(self.dispatcher.current))
        )
        self.dispatcher(["-Gspec.opts", "-R"])
        self.assertEqual(seen, [(Match("generate_options", "-G", "spec.opts", 0, 1), ["-R"])])

    def testFlagsDoNotTakeAttachedValues(self):
        with self.assertRaises(UnknownSwitchError):
            self.dispatcher(["-Rc"])

    def testTerminatorStopsTheWalk(self):
        positionals = self.dispatcher(["a_spec.rb", "--drb", "-R", "b_spec.rb"])
        self.assertTrue(self.dispatcher.transferred)
        self.assertEqual(self.handlers.calls, [("drb", None)])
        self.assertEqual(positionals, ["a_spec.rb"])

    def testWalkWithoutTerminatorIsNotTransferred(self):
        self.dispatcher(["-R"])
        self.assertFalse(self.dispatcher.transferred)

    def testMissingHandlersAreIgnored(self):
        del self.handlers["reverse"]
        self.dispatcher(["-R", "-c"])
        self.assertEqual(self.handlers.calls, [("colour", None)])

    def testDeprecatedSpellingWarnsAndStillWorks(self):
        self.dispatcher(["--specification", "is empty"])
        self.assertEqual(self.handlers.calls, [("specification", "is empty")])
        self.assertIn("deprecated", self.err.getvalue())
        self.assertIn("--example", self.err.getvalue())


class TestUsageFaults(TestCase):
    """failed walks."""

    def setUp(self):
        self.err = io.StringIO()
        self.handlers = Recorder()
        self.dispatcher = Dispatcher(COMMAND_LINE, self.handlers, self.err, banner())

    def testUnknownSwitchSuggestsCloseMatches(self):
        with self.assertRaises(UnknownSwitchError) as context:
            self.dispatcher(["--formt", "html"])
        self.assertEqual(context.exception.options["suggestions"][0], "--format")
        self.assertIn("Usage: spec", self.err.getvalue())
        self.assertEqual(context.exception.status, 64)

    def testHandlersBeforeTheFaultHaveFired(self):
        with self.assertRaises(UsageError):
            self.dispatcher(["-R", "--nope"])
        self.assertEqual(self.handlers.calls, [("reverse", None)])

    def testMalformedToken(self):
        with self.assertRaises(MalformedTokenError):
            self.dispatcher(["--9"])

    def testFlagAssignment(self):
        with self.assertRaises(FlagAssignmentError):
            self.dispatcher(["--reverse=yes"])

    def testMissingRequiredValue(self):
        with self.assertRaises(OptionValueRequiredError):
            self.dispatcher(["a_spec.rb", "--line"])

    def testEmptyInlineValue(self):
        with self.assertRaises(EmptyValueError):
            self.dispatcher(["--format="])

    def testConversionFailure(self):
        with self.assertRaises(ConversionError) as context:
            self.dispatcher(["--line", "twelve"])
        self.assertIn("--line", str(context.exception))
        self.assertEqual(self.handlers.calls, [])

    def testHandlerFailuresAreDelegated(self):
        def broken():
            raise RuntimeError("boom")

        self.handlers["reverse"] = broken
        with self.assertRaises(DelegatedOptionError) as context:
            self.dispatcher(["-R"])
        self.assertIsInstance(context.exception.__cause__, RuntimeError)
        self.assertIn("boom", self.err.getvalue())
        self.assertEqual(context.exception.status, 70)

    def testFaultsRaisedByHandlersPassThrough(self):
        def refuse(value):
            raise ConversionError("refused")

        self.handlers["format"] = refuse
        with self.assertRaises(ConversionError):
            self.dispatcher(["-f", "html"])


if __name__ == "__main__":
    unittest.main()
