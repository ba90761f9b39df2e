"""
Configuration tests (the accumulator option handlers write into).

Scope
- parse_* helpers: diff modes, example selection (names and files), formatter
  requests, heckle targets and the options-file writer.
- Snapshot equality.

Conventions
- Test method names follow CamelCase per project convention.
"""

from __future__ import annotations

import os.path
import shlex
import tempfile
import unittest
from unittest import TestCase

from specrunner.configuration import DiffMode, FormatterRequest, RunConfiguration
from specrunner.grammar import LoadOrder


class TestDefaults(TestCase):
    """a fresh configuration."""

    def testDefaults(self):
        configuration = RunConfiguration()
        self.assertEqual(configuration.examples, [])
        self.assertIsNone(configuration.line_number)
        self.assertEqual(configuration.formatters, [])
        self.assertIs(configuration.diff, DiffMode.OFF)
        self.assertIs(configuration.loadby, LoadOrder.ALPHABETICAL)
        self.assertFalse(configuration.reverse)
        self.assertIsNone(configuration.timeout)

    def testSnapshotEquality(self):
        one, two = RunConfiguration(), RunConfiguration()
        one.parse_require("a")
        self.assertNotEqual(one, two)
        two.parse_require("a")
        self.assertEqual(one, two)
        self.assertEqual(one.snapshot()["requires"], ("a",))

    def testConfigurationsAreUnhashable(self):
        with self.assertRaises(TypeError):
            hash(RunConfiguration())


class TestParseDiff(TestCase):
    """--diff values."""

    def testNoValueMeansUnified(self):
        configuration = RunConfiguration()
        configuration.parse_diff(None)
        self.assertIs(configuration.diff, DiffMode.UNIFIED)

    def testBuiltinAliases(self):
        configuration = RunConfiguration()
        configuration.parse_diff("c")
        self.assertIs(configuration.diff, DiffMode.CONTEXT)
        configuration.parse_diff("unified")
        self.assertIs(configuration.diff, DiffMode.UNIFIED)

    def testCustomDiffer(self):
        configuration = RunConfiguration()
        configuration.parse_diff("Custom::Differ")
        self.assertIs(configuration.diff, DiffMode.CUSTOM)
        self.assertEqual(configuration.differ, "Custom::Differ")

    def testGarbageRejected(self):
        with self.assertRaises(ValueError):
            RunConfiguration().parse_diff("not a class")


class TestParseExample(TestCase):
    """--example values."""

    def testNameSelectsOneExample(self):
        configuration = RunConfiguration()
        configuration.parse_example("is empty initially")
        self.assertEqual(configuration.examples, ["is empty initially"])
        self.assertIsNone(configuration.example_file)

    def testFileSelectsEveryLine(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "failing.txt")
            with open(path, "w", encoding="utf-8") as file:
                file.write("Stack is empty\n\nStack accepts pushes\n")
            configuration = RunConfiguration()
            configuration.parse_example(path)
        self.assertEqual(configuration.examples, ["Stack is empty", "Stack accepts pushes"])
        self.assertEqual(configuration.example_file, path)

    def testEmptyFileSelectsEverything(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "failing.txt")
            open(path, "w").close()
            configuration = RunConfiguration()
            configuration.parse_example("something")
            configuration.parse_example(path)
        self.assertEqual(configuration.examples, [])

    def testNoneClearsTheSelection(self):
        configuration = RunConfiguration()
        configuration.parse_example("x")
        configuration.parse_example(None)
        self.assertEqual(configuration.examples, [])


class TestParseFormat(TestCase):
    """--format values."""

    def testAliasesAreCanonicalized(self):
        configuration = RunConfiguration()
        configuration.parse_format("s")
        self.assertEqual(configuration.formatters, [FormatterRequest("specdoc", None)])

    def testDestinationsAndOrderArePreserved(self):
        configuration = RunConfiguration()
        configuration.parse_format("progress:out.txt")
        configuration.parse_format("h:report.html")
        self.assertEqual(configuration.formatters, [
            FormatterRequest("progress", "out.txt"),
            FormatterRequest("html", "report.html"),
        ])

    def testNamespacedFormatterKeepsItsColons(self):
        configuration = RunConfiguration()
        configuration.parse_format("My::Formatter:C:/reports/out.txt")
        self.assertEqual(configuration.formatters, [FormatterRequest("My::Formatter", "C:/reports/out.txt")])

    def testDottedFormatter(self):
        configuration = RunConfiguration()
        configuration.parse_format("reports.formatters.Json")
        self.assertEqual(configuration.formatters, [FormatterRequest("reports.formatters.Json", None)])

    def testEmptyDestinationRejected(self):
        with self.assertRaises(ValueError):
            RunConfiguration().parse_format("html:")

    def testGarbageRejected(self):
        with self.assertRaises(ValueError):
            RunConfiguration().parse_format("no such format")


class TestParseHeckle(TestCase):
    """--heckle targets."""

    def testModulesClassesAndMethods(self):
        configuration = RunConfiguration()
        for target in ("Some::Module", "Some::Class", "Some::Fabulous#method", "pkg.module.function"):
            configuration.parse_heckle(target)
            self.assertEqual(configuration.heckle, target)

    def testGarbageRejected(self):
        with self.assertRaises(ValueError):
            RunConfiguration().parse_heckle("#method")


class TestParseGenerateOptions(TestCase):
    """--generate-options writer."""

    def testArgumentsAreWrittenOnePerLine(self):
        args = ["spec/stack_spec.rb", "--format", "html:report.html", "-r", "helper file.rb"]
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "spec.opts")
            configuration = RunConfiguration()
            configuration.parse_generate_options(path, args)
            with open(path, encoding="utf-8") as file:
                content = file.read()
        self.assertEqual(configuration.generated_options, path)
        self.assertEqual(len(content.splitlines()), len(args))
        self.assertEqual(shlex.split(content), args)


if __name__ == "__main__":
    unittest.main()
