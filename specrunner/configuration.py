"""
Run configuration: the accumulator that option handlers mutate while parsing.

A RunConfiguration is created fresh per resolution, mutated by the handlers the
resolution driver binds to the grammar (one per option, in command-line order)
and by the driver's post-parse validation, and finally handed to the caller.

Field semantics
- scalar fields (line_number, timeout, diff, loadby, runner, heckle, ...): the
  last occurrence wins.
- sequence fields (formatters, requires, files): occurrences accumulate in the
  order given; nothing is deduplicated or reordered.
- examples: an empty list means "run all examples".

Two configurations compare equal when their snapshots (field name -> value)
are equal; this is what "parsing the same vector twice is deterministic"
means in practice.
"""
import enum
import os.path
import re
import shlex
from typing import NamedTuple

from .grammar import BUILT_IN_FORMATTERS, LoadOrder


class DiffMode(enum.Enum):
    OFF = "off"
    UNIFIED = "unified"
    CONTEXT = "context"
    CUSTOM = "custom"


_DIFFERS = {
    "unified": DiffMode.UNIFIED,
    "u": DiffMode.UNIFIED,
    "context": DiffMode.CONTEXT,
    "c": DiffMode.CONTEXT,
}

# Custom formatter/differ class references: "pkg.module.Class" or "Some::Class".
_CLASS_NAME = re.compile(r"[A-Za-z_]\w*((\.|::)[A-Za-z_]\w*)*")

# Mutation targets: "Some::Module", "Some::Class", "Some::Fabulous#method" (or dotted).
_HECKLE_TARGET = re.compile(r"[A-Za-z_]\w*((\.|::)[A-Za-z_]\w*)*([#.][A-Za-z_]\w*[?!=]?)?")


class FormatterRequest(NamedTuple):
    """
    one --format occurrence; `where` is a destination path, or None for the output stream.
    """
    format: str
    where: str | None = None


class RunConfiguration:
    """
    Mutable run configuration (see module docstring for field semantics).
    """

    __introspectable__ = (
        "examples",
        "example_file",
        "line_number",
        "formatters",
        "diff",
        "differ",
        "requires",
        "backtrace",
        "loadby",
        "reverse",
        "colour",
        "timeout",
        "heckle",
        "dry_run",
        "runner",
        "drb",
        "generated_options",
        "files",
    )

    def __init__(self):
        self.examples = []
        self.example_file = None
        self.line_number = None
        self.formatters = []
        self.diff = DiffMode.OFF
        self.differ = None
        self.requires = []
        self.backtrace = False
        self.loadby = LoadOrder.ALPHABETICAL
        self.reverse = False
        self.colour = False
        self.timeout = None
        self.heckle = None
        self.dry_run = False
        self.runner = None
        self.drb = False
        self.generated_options = None
        self.files = []

    def snapshot(self):
        """field name -> value, with sequences copied into tuples."""
        return {
            name: tuple(value) if isinstance(value, list) else value
            for name, value in map(lambda name: (name, getattr(self, name)), self.__introspectable__)
        }

    def __eq__(self, other):
        if not isinstance(other, RunConfiguration):
            return NotImplemented
        return self.snapshot() == other.snapshot()

    __hash__ = None

    def __rich_repr__(self):
        yield from self.snapshot().items()

    def __repr__(self):
        return "run-configuration(%s)" % ", ".join("%s=%r" % item for item in self.snapshot().items())

    def parse_diff(self, differ=None):
        """
        --diff [FORMAT]: no value or unified|u selects unified diffs, context|c
        context diffs; anything else names a custom differ class.
        """
        if differ is None:
            self.diff, self.differ = DiffMode.UNIFIED, None
        elif differ in _DIFFERS:
            self.diff, self.differ = _DIFFERS[differ], None
        elif _CLASS_NAME.fullmatch(differ):
            self.diff, self.differ = DiffMode.CUSTOM, differ
        else:
            raise ValueError("%r is neither a builtin diff format nor a differ class name" % differ)

    def parse_example(self, example):
        """
        --example NAME|FILE_NAME: an existing file contributes one example name
        per non-blank line (an empty file selects everything); any other value
        is an example name. Replaces any previous selection.
        """
        if example is None:
            self.examples, self.example_file = [], None
        elif os.path.isfile(example):
            with open(example, encoding="utf-8") as file:
                self.examples = [line.strip() for line in file.read().splitlines() if line.strip()]
            self.example_file = example
        else:
            self.examples, self.example_file = [example], None

    def parse_format(self, format):
        """
        --format FORMAT[:WHERE]: builtin aliases are canonicalized, other
        formats must look like a class reference. Requests accumulate in order.
        """
        # "Custom::Formatter:out.txt" keeps the "::" as part of the class name
        if "::" in format:
            name, separator, where = _split_namespaced(format)
        else:
            name, separator, where = format.partition(":")
        if name in BUILT_IN_FORMATTERS:
            name = BUILT_IN_FORMATTERS[name]
        elif not _CLASS_NAME.fullmatch(name):
            raise ValueError("%r is neither a builtin format nor a formatter class name" % name)
        if separator and not where:
            raise ValueError("format %r has an empty destination after ':'" % format)
        self.formatters.append(FormatterRequest(name, where or None))

    def parse_require(self, path):
        self.requires.append(path)

    def parse_heckle(self, target):
        if not _HECKLE_TARGET.fullmatch(target):
            raise ValueError("%r is not a module, class or method reference" % target)
        self.heckle = target

    def parse_generate_options(self, path, args):
        """
        --generate-options PATH: write `args` (the original vector minus this
        option) to PATH in the format --options reads back: one shell-quoted
        argument per line.
        """
        with open(path, "w", encoding="utf-8") as file:
            file.writelines(shlex.quote(arg) + "\n" for arg in args)
        self.generated_options = path


def _split_namespaced(format):
    # split "A::B::C:where" on the first ':' that is not part of a '::'
    if match := re.search(r"(?<!:):(?!:)", format):
        return format[:match.start()], ":", format[match.end():]
    return format, "", ""


__all__ = (
    "DiffMode",
    "FormatterRequest",
    "RunConfiguration",
)
