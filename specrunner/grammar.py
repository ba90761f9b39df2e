r"""
specrunner option grammar: descriptors, the command-line table and the banner.

Overview
- Descriptors
  • Option: named, value-bearing option with one or more spellings (e.g., -f/--format)
    and a required (nargs=None) or optional (nargs="?") value.
  • Flag: named, presence-only switch (no payload), e.g., -R/--reverse.

- Table
  • COMMAND_LINE: read-only mapping from symbolic name to descriptor. It is the
    single source consulted by the parser *and* by the usage banner, so help text
    and behaviour cannot drift apart.
  • SWITCHES: read-only index from every spelling to its symbolic name.
  • BUILT_IN_FORMATTERS: format aliases accepted by --format.

- Rendering
  • banner(): the usage banner generated from COMMAND_LINE alone.
  • version(): the version line.

Metadata (sanitized on construction)
- name: symbolic name (python identifier), unique within the table.
- names: spellings validated as shell-style switches; duplicates rejected.
- descr: help lines (tuple of str); " " lines render as blank spacers.
- metavar/type/nargs (Option only): label, converter, arity.
- deprecated/successor: the spelling still works, a warning names the successor.
- terminator: parsing stops once the handler returns (alternate control paths).

Validation highlights
- Spellings must match r"--?[^\W\d_](-?[^\W_]+)*" and be unique across the table.
"""
import enum
import functools
import operator
import re
from types import MappingProxyType

from rich.text import Text

from .utils import *


class LoadOrder(enum.Enum):
    """strategy used to order spec files before loading them."""
    ALPHABETICAL = "alphabetical"
    MTIME = "mtime"


def loadby(strategy, /):
    """
    converter for --loadby; unknown strategies raise ValueError with the valid ones.
    """
    try:
        return LoadOrder(strategy.strip().lower())
    except ValueError:
        raise ValueError("unknown strategy %r (expected one of: %s)" % (
            strategy, ", ".join(order.value for order in LoadOrder)
        )) from None


# Aliases accepted by --format, mapped to their canonical formatter names.
BUILT_IN_FORMATTERS = MappingProxyType({
    "specdoc": "specdoc",
    "s": "specdoc",
    "html": "html",
    "h": "html",
    "rdoc": "rdoc",
    "r": "rdoc",
    "progress": "progress",
    "p": "progress",
    "failing_examples": "failing_examples",
    "e": "failing_examples",
    "failing_behaviours": "failing_behaviours",
    "b": "failing_behaviours",
})


class DescriptorType(type):
    """
    Metaclass that turns descriptor classes into introspectable, read-only records.

    Responsibilities
    - Expose selected fields as read-only properties using mirror() for all
      names listed in __introspectable__.
    - Provide stable, readable __repr__/__rich_repr__ implementations.

    Conventions
    - __typename__ is derived from the class name (camel-case split with hyphens)
      and used in validation messages.
    """
    __introspectable__ = ()

    def __new__(cls, name, bases, namespace, **options):
        self = super().__new__(
            cls,
            name,
            bases,
            namespace | {
                "__typename__": re.sub(r"(?<!^)(?=[A-Z])", r"-", name).lower(),
            } | {
                name: mirror(name) for name in namespace.get("__introspectable__", ())
            },
        )

        @rename("__repr__")
        def __repr__(self):
            return "%s(%s)" % (
                type(self).__typename__,
                ", ".join(map(functools.partial(operator.mod, "%s=%r"), self.__rich_repr__()))
            )
        self.__repr__ = __repr__

        @rename("__rich_repr__")
        def __rich_repr__(self):
            for name in type(self).__introspectable__:
                yield name, getattr(self, name)
        self.__rich_repr__ = __rich_repr__

        return self


def _sanitize_metadata(cls, metadata, /):
    """
    Internal: validate the symbolic name and normalize help lines.

    - name: non-empty python identifier.
    - descr: a string or an iterable of strings; stored as a tuple of lines.
    - successor: Unset or a spelling (only meaningful when deprecated).
    """
    if not isinstance(name := metadata["name"], str) or not name.isidentifier():
        raise TypeError(f"{cls.__typename__} 'name' must be an identifier")

    descr = metadata["descr"]
    if isinstance(descr, str):
        descr = (descr,)
    lines = []
    for line in descr:
        if not isinstance(line, str):
            raise TypeError(f"{cls.__typename__} 'descr' must be strings")
        lines.append(line.rstrip())
    if not any(lines):
        raise ValueError(f"{cls.__typename__} 'descr' cannot be empty")
    metadata["descr"] = tuple(lines)

    if not isinstance(metadata["successor"], str | Unset):
        raise TypeError(f"{cls.__typename__} 'successor' must be a string")
    metadata["successor"] = coalesce(metadata["successor"])


def _sanitize_named_metadata(cls, metadata, /):
    r"""
    Internal: validate spellings.

    Each spelling must be a non-empty string matching a shell-style option
    pattern ("-x", "--long", "--long-name"). Duplicates are rejected. Spellings
    are stored shorts first, then longs, each in declaration order.
    """
    names = []
    if not metadata["names"]:
        raise TypeError(f"{cls.__typename__} must specify at least one spelling")

    for name in metadata["names"]:
        if not isinstance(name, str):
            raise TypeError(f"{cls.__typename__} spellings must be strings")
        elif not (name := name.strip()):
            raise ValueError(f"{cls.__typename__} spellings cannot be empty-strings")
        elif not re.fullmatch(r"--?[^\W\d_](-?[^\W_]+)*", name):
            raise ValueError(f"{cls.__typename__} spellings must be valid shell-style option names")
        elif name in names:
            raise ValueError(f"{cls.__typename__} spellings cannot contain duplicates")
        names.append(name)

    metadata["names"] = tuple(sorted(names, key=lambda x: x.startswith("--")))


def _sanitize_parametric_metadata(cls, metadata, /):
    """
    Internal: validate value-bearing fields.

    - metavar: non-empty string.
    - type: callable converter.
    - nargs: None (a value is required) or "?" (the value is optional).
    """
    if not isinstance(metavar := metadata["metavar"], str):
        raise TypeError(f"{cls.__typename__} 'metavar' must be a string")
    elif not (metavar := metavar.strip()):
        raise ValueError(f"{cls.__typename__} 'metavar' cannot be empty")
    metadata["metavar"] = metavar

    if not callable(metadata["type"]):
        raise TypeError(f"{cls.__typename__} 'type' must be callable")

    if metadata["nargs"] not in (None, "?"):
        raise ValueError(f"{cls.__typename__} 'nargs' must be None or '?'")


class Option(metaclass=DescriptorType):
    """
    Named, value-bearing option descriptor.

    Properties
    - The names listed in __introspectable__ are exposed as read-only attributes.
    - arity: "required" or "optional".
    """

    __introspectable__ = (
        "name",
        "names",
        "metavar",
        "type",
        "nargs",
        "descr",
        "deprecated",
        "successor",
        "terminator",
    )

    def __new__(
            cls,
            name,
            /,
            *names,
            metavar,
            descr,
            type=str,
            nargs=None,
            deprecated=False,
            successor=Unset,
            terminator=False,
    ):
        metadata = {
            "name": name,
            "names": names,
            "metavar": metavar,
            "type": type,
            "nargs": nargs,
            "descr": descr,
            "deprecated": bool(deprecated),
            "successor": successor,
            "terminator": bool(terminator),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)
        _sanitize_parametric_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    @property
    def arity(self):
        return "optional" if self.nargs == "?" else "required"

    @property
    def signature(self):
        """spellings and metavar as shown in the banner, e.g. '-D, --diff [FORMAT]'."""
        metavar = "[%s]" % self.metavar if self.nargs == "?" else self.metavar
        return ", ".join(self.names) + " " + metavar


class Flag(metaclass=DescriptorType):
    """
    Named, presence-only switch descriptor.
    """

    __introspectable__ = (
        "name",
        "names",
        "descr",
        "deprecated",
        "successor",
        "terminator",
    )

    def __new__(
            cls,
            name,
            /,
            *names,
            descr,
            deprecated=False,
            successor=Unset,
            terminator=False,
    ):
        metadata = {
            "name": name,
            "names": names,
            "descr": descr,
            "deprecated": bool(deprecated),
            "successor": successor,
            "terminator": bool(terminator),
        }
        _sanitize_metadata(cls, metadata)
        _sanitize_named_metadata(cls, metadata)

        self = super().__new__(cls)
        for name, object in metadata.items():
            setattr(self, "_" + name, object)
        return self

    arity = "none"

    @property
    def signature(self):
        return ", ".join(self.names)


def table(*descriptors):
    """
    Build a read-only (name -> descriptor) table and its (spelling -> name) index.

    Raises ValueError when a symbolic name or a spelling appears twice.
    """
    entries = {}
    switches = {}
    for descriptor in descriptors:
        if descriptor.name in entries:
            raise ValueError(f"table name {descriptor.name!r} is already in use")
        entries[descriptor.name] = descriptor
        for spelling in descriptor.names:
            if spelling in switches:
                raise ValueError(f"table spelling {spelling!r} is already in use")
            switches[spelling] = descriptor.name
    return MappingProxyType(entries), MappingProxyType(switches)


COMMAND_LINE, SWITCHES = table(
    Option("diff", "-D", "--diff", metavar="FORMAT", nargs="?", descr=(
        "Show diff of objects that are expected to be equal when they are not",
        "Builtin formats: unified|u|context|c",
        "You can also specify a custom differ class",
        "(in which case you should also specify --require)",
    )),
    Flag("colour", "-c", "--colour", "--color", descr="Show coloured (red/green) output"),
    Option("example", "-e", "--example", metavar="NAME|FILE_NAME", nargs="?", descr=(
        "Execute example(s) with matching name(s). If the argument is",
        "the path to an existing file (typically generated by a previous",
        "run using --format failing_examples:file.txt), then the examples",
        "on each line of that file will be executed. If the file is empty,",
        "all examples will be run (as if --example was not specified).",
        " ",
        "If the argument is not an existing file, then it is treated as",
        "an example name directly, causing just the example matching",
        "that name to run",
    )),
    Option("specification", "-s", "--specification", metavar="NAME", nargs="?", deprecated=True, successor="--example", descr=(
        "DEPRECATED - use -e instead",
        "(This will be removed when autotest works with -e)",
    )),
    Option("line", "-l", "--line", metavar="LINE_NUMBER", type=int, descr=(
        "Execute behaviour or specification at given line.",
        "(does not work for dynamically generated specs)",
    )),
    Option("format", "-f", "--format", metavar="FORMAT[:WHERE]", descr=(
        "Specifies what format to use for output. Specify WHERE to tell",
        "the formatter where to write the output. All built-in formats",
        "expect WHERE to be a file name, and will write to the output",
        "stream if it's not specified. The --format option may be specified",
        "several times if you want several outputs",
        " ",
        "Builtin formats: ",
        "progress|p           : Text progress",
        "specdoc|s            : Example doc as text",
        "rdoc|r               : Example doc as RDoc",
        "html|h               : A nice HTML report",
        "failing_examples|e   : Write all failing examples - input for --example",
        "failing_behaviours|b : Write all failing behaviours - input for --example",
        " ",
        "FORMAT can also be the name of a custom formatter class",
        "(in which case you should also specify --require to load it)",
    )),
    Option("require", "-r", "--require", metavar="FILE", descr=(
        "Require FILE before running specs",
        "Useful for loading custom formatters or other extensions.",
        "If this option is used it must come before the others",
    )),
    Flag("backtrace", "-b", "--backtrace", descr="Output full backtrace"),
    Option("loadby", "-L", "--loadby", metavar="STRATEGY", type=loadby, descr=(
        "Specify the strategy by which spec files should be loaded.",
        "STRATEGY can currently only be 'mtime' (File modification time)",
        "By default, spec files are loaded in alphabetical order if --loadby",
        "is not specified.",
    )),
    Flag("reverse", "-R", "--reverse", descr="Run examples in reverse order"),
    Option("timeout", "-t", "--timeout", metavar="FLOAT", type=float, descr=(
        "Interrupt and fail each example that doesn't complete in the",
        "specified time",
    )),
    Option("heckle", "-H", "--heckle", metavar="CODE", descr=(
        "If all examples pass, this will mutate the classes and methods",
        "identified by CODE little by little and run all the examples again",
        "for each mutation. The intent is that for each mutation, at least",
        "one example *should* fail, and you will be told if this is not the",
        "case. CODE should be either Some::Module, Some::Class or",
        "Some::Fabulous#method",
    )),
    Flag("dry_run", "-d", "--dry-run", descr="Invokes formatters without executing the examples."),
    Option("options_file", "-O", "--options", metavar="PATH", terminator=True, descr="Read options from a file"),
    Option("generate_options", "-G", "--generate-options", metavar="PATH", descr="Generate an options file for --options"),
    Option("runner", "-U", "--runner", metavar="RUNNER", descr="Use a custom BehaviourRunner."),
    Flag("drb", "-X", "--drb", terminator=True, descr="Run examples via DRb. (For example against script/spec_server)"),
    Flag("version", "-v", "--version", descr="Show version"),
    Flag("help", "-h", "--help", descr="You're looking at it"),
)


def banner(*, colorful=False, indent=4, width=32):
    """
    Render the usage banner from COMMAND_LINE.

    Layout (mirrors classic option summaries)
    - "Usage: spec (FILE|DIRECTORY|GLOB)+ [options]" and a blank line.
    - one row per descriptor in table order: the signature indented by `indent`,
      the first help line starting at column indent + width + 1 (or on the next
      line when the signature is wider), continuation lines aligned under it.
    """
    styles = {
        "usage-label": "bold #00E6FF",
        "program-name": "bold #FF4D94",
        "signature": "bold #22C55E",
        "deprecated-signature": "bold #F97316 strike",
        "argument-description": "#9CA3AF",
    }

    def styler(style):
        return styles[style] if colorful else ""

    column = indent + width + 1
    text = Text()
    text.append("Usage", styler("usage-label")).append(": ")
    text.append("spec", styler("program-name")).append(" (FILE|DIRECTORY|GLOB)+ [options]\n")

    for descriptor in COMMAND_LINE.values():
        text.append("\n")
        signature = descriptor.signature
        text.append(" " * indent)
        text.append(signature, styler("deprecated-signature" if descriptor.deprecated else "signature"))
        first, *rest = descriptor.descr
        if len(signature) > width:
            text.append("\n").append(" " * column)
        else:
            text.append(" " * (column - indent - len(signature)))
        text.append(first.strip(), styler("argument-description"))
        for line in rest:
            text.append("\n")
            if line.strip():
                text.append(" " * column).append(line, styler("argument-description"))

    return text


def version(*, colorful=False):
    """Render the version line: "specrunner <version>"."""
    from . import __title__, __version__

    return Text.assemble(
        (__title__, "bold #FF4D94" if colorful else ""),
        " ",
        (__version__, "bold #00E6FF" if colorful else ""),
    )


__all__ = (
    "LoadOrder",
    "loadby",
    "BUILT_IN_FORMATTERS",
    "Option",
    "Flag",
    "table",
    "COMMAND_LINE",
    "SWITCHES",
    "banner",
    "version",
)

# Remove the internal metaclass from the module namespace; not part of the public API.
del DescriptorType
