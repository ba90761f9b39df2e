"""
specrunner resolution driver: argument vector -> RunConfiguration (or None).

resolve() binds one handler per COMMAND_LINE entry to a fresh RunConfiguration,
lets the Dispatcher fire them left to right, then runs the post-parse steps:

1. an alternate path fired (--options, --drb): return its outcome untouched.
2. no positional arguments: NoFilesWarning (fatal only on a terminating
   error channel, and only when the caller asked for the warning).
3. --line: check it against --example and the positional arguments, then
   translate the line into an example name with the scanner.
4. no --format at all: a single progress formatter on the output channel.
5. hand the configuration back.

A None outcome means control was transferred and the caller must not go on
with the normal flow.
"""
import functools
import os.path
import shlex

from .channels import channel
from .configuration import FormatterRequest, RunConfiguration
from .faults import *
from .grammar import COMMAND_LINE, banner, version
from .parser import Dispatcher
from .scanner import spec_name_for
from .utils import *

MAX_OPTIONS_DEPTH = 8


class Resolution:
    """
    one resolution pass: the configuration being built, the dispatcher filling
    it and the outcome of an alternate path, if one fired.
    """

    def __init__(self, err, out, *, remote=None, depth=0):
        self.err = channel(err)
        self.out = channel(out)
        self.remote = remote
        self.depth = depth
        self.configuration = RunConfiguration()
        self.outcome = None
        self.banner = banner(colorful=self.err.colorful)
        self.dispatcher = Dispatcher(COMMAND_LINE, self.handlers(), self.err, self.banner)

    def handlers(self):
        configuration = self.configuration

        def setter(name, value=Unset):
            if value is Unset:
                return rename(lambda object: setattr(configuration, name, object), name)
            return rename(lambda: setattr(configuration, name, value), name)

        return {
            "diff": self._converting(configuration.parse_diff),
            "colour": setter("colour", True),
            "example": self._converting(configuration.parse_example),
            "specification": self._converting(configuration.parse_example),
            "line": setter("line_number"),
            "format": self._converting(configuration.parse_format),
            "require": configuration.parse_require,
            "backtrace": setter("backtrace", True),
            "loadby": setter("loadby"),
            "reverse": setter("reverse", True),
            "timeout": setter("timeout"),
            "heckle": self._converting(configuration.parse_heckle),
            "dry_run": setter("dry_run", True),
            "options_file": self.parse_options_file,
            "generate_options": self.parse_generate_options,
            "runner": setter("runner"),
            "drb": self.parse_drb,
            "version": self.print_version,
            "help": self.print_help,
        }

    def _converting(self, callable):
        """report a ValueError raised by `callable` as a bad option value."""

        @functools.wraps(callable)
        def wrapper(value):
            try:
                callable(value)
            except ValueError as exception:
                match = self.dispatcher.current
                self.dispatcher.usage(ConversionError(
                    "invalid value %r for option %r at %s position" % (value, match.input, ordinal(match.start + 1)),
                    title="invalid option value",
                    code=FaultCode.CONVERSION_ERROR,
                    input=match.input,
                    index=match.start,
                    hint=str(exception),
                    docs=getdoc(FaultCode.CONVERSION_ERROR),
                ))

        return wrapper

    def parse_options_file(self, path):
        """
        --options PATH: splice the file's arguments after the original vector
        (minus this option) and resolve the result from scratch.
        """
        if self.depth >= MAX_OPTIONS_DEPTH:
            trigger(OptionsFileError(
                "options file %r is nested more than %d levels deep" % (path, MAX_OPTIONS_DEPTH),
                title="options file nested too deeply",
                code=FaultCode.OPTIONS_FILE,
                path=path,
                hint="check whether the options files include each other",
                docs=getdoc(FaultCode.OPTIONS_FILE),
            ), channel=self.err)

        try:
            with open(path, encoding="utf-8") as file:
                extra = shlex.split(file.read(), comments=True)
        except (OSError, ValueError) as exception:
            trigger(OptionsFileError(
                "cannot read options file %r" % path,
                title="unreadable options file",
                code=FaultCode.OPTIONS_FILE,
                path=path,
                hint=getattr(exception, "strerror", None) or str(exception),
                docs=getdoc(FaultCode.OPTIONS_FILE),
                exception=exception,
            ), channel=self.err)

        args = self.dispatcher.without(self.dispatcher.current) + extra
        self.outcome = resolve(args, self.err, self.out, False, remote=self.remote, depth=self.depth + 1)

    def parse_generate_options(self, path):
        self.configuration.parse_generate_options(path, self.dispatcher.without(self.dispatcher.current))
        self.out.puts(
            "",
            "Options written to %s. You can now use these options with:" % path,
            "spec --options %s" % path,
        )

    def parse_drb(self):
        """
        --drb: hand the original vector (minus this flag) to the remote delegate.
        """
        self.configuration.drb = True
        args = self.dispatcher.without(self.dispatcher.current)
        if self.remote is None:
            trigger(NoRemoteRunnerWarning(
                "No server is running",
                title="no remote runner",
                code=FaultCode.NO_REMOTE_RUNNER,
                args=args,
                hint="start a spec server or run without --drb",
                docs=getdoc(FaultCode.NO_REMOTE_RUNNER),
            ), channel=self.err)
        else:
            self.remote(args, self.err, self.out)
        self.outcome = None

    def print_version(self):
        self.out.puts(version(colorful=self.out.colorful))
        if self.out.terminates:
            raise RunnerExit(0)

    def print_help(self):
        self.out.puts(banner(colorful=self.out.colorful))
        if self.out.terminates:
            raise RunnerExit(0)

    def resolve_line(self):
        """
        translate --line into an example name, or fail with the status that
        matches what is wrong with the arguments.
        """
        configuration = self.configuration
        if configuration.examples:
            trigger(MutuallyExclusiveOptionsError(
                "You cannot use both --line and --example",
                title="mutually exclusive options",
                code=FaultCode.MUTUALLY_EXCLUSIVE,
                hint="keep either --line or --example",
                docs=getdoc(FaultCode.MUTUALLY_EXCLUSIVE),
            ), channel=self.err)

        if len(configuration.files) != 1:
            trigger(TooManyPathsError(
                "Only one file can be specified when using the --line option: %r" % configuration.files,
                title="one file expected",
                code=FaultCode.TOO_MANY_PATHS,
                paths=tuple(configuration.files),
                hint="pass exactly one spec file together with --line",
                docs=getdoc(FaultCode.TOO_MANY_PATHS),
            ), channel=self.err)

        path, = configuration.files
        if os.path.isdir(path):
            trigger(DirectoryGivenError(
                "You must specify one file, not a directory when using the --line option",
                title="file expected",
                code=FaultCode.DIRECTORY_GIVEN,
                path=path,
                hint="pass a spec file inside %r instead" % path,
                docs=getdoc(FaultCode.DIRECTORY_GIVEN),
            ), channel=self.err)
        if not os.path.isfile(path):
            trigger(MissingPathError(
                "%s does not exist" % path,
                title="missing file",
                code=FaultCode.MISSING_PATH,
                path=path,
                hint="check the spelling of the path",
                docs=getdoc(FaultCode.MISSING_PATH),
            ), channel=self.err)

        try:
            with open(path, encoding="utf-8") as source:
                example = spec_name_for(source, configuration.line_number)
        except (OSError, UnicodeDecodeError) as exception:
            trigger(UnreadablePathError(
                "cannot read %s" % path,
                title="unreadable file",
                code=FaultCode.UNREADABLE_PATH,
                path=path,
                hint=getattr(exception, "strerror", None) or "the file is not valid UTF-8 text",
                docs=getdoc(FaultCode.UNREADABLE_PATH),
                exception=exception,
            ), channel=self.err)
        if example is None:
            trigger(UnresolvedLineWarning(
                "no example or group encloses line %d of %s" % (configuration.line_number, path),
                title="unresolved line",
                code=FaultCode.UNRESOLVED_LINE,
                path=path,
                line=configuration.line_number,
                hint="all examples will run",
                docs=getdoc(FaultCode.UNRESOLVED_LINE),
            ), channel=self.err)
        configuration.parse_example(example)

    def __call__(self, args, warn_if_no_files=True):
        configuration = self.configuration
        configuration.files = self.dispatcher(args)

        if self.dispatcher.transferred:
            return self.outcome

        if not configuration.files and warn_if_no_files:
            trigger(NoFilesWarning(
                "No files specified.",
                title="no files specified",
                code=FaultCode.NO_FILES,
                hint="pass at least one FILE, DIRECTORY or GLOB",
                docs=getdoc(FaultCode.NO_FILES),
            ), channel=self.err, banner=self.banner)

        if configuration.line_number is not None:
            self.resolve_line()

        if not configuration.formatters:
            configuration.formatters.append(FormatterRequest("progress", None))

        return configuration


def resolve(args, err, out, warn_if_no_files=True, *, remote=None, depth=0):
    """
    Resolve `args` into a RunConfiguration.

    - err/out: Channel or text stream (bare streams never terminate the host).
    - warn_if_no_files: report a missing FILE|DIRECTORY|GLOB.
    - remote: delegate called as remote(args, err, out) for --drb.
    - depth: --options nesting level of this call.

    Returns None when an alternate path took over (--options returns whatever
    its nested resolution returned). Faults are reported on `err` and raised.
    """
    return Resolution(err, out, remote=remote, depth=depth)(args, warn_if_no_files)


def run(args, err, out, warn_if_no_files=True, *, runner, remote=None):
    """
    Resolve `args` and hand the configuration to `runner(configuration, err, out)`.

    Returns the runner's result, or None when control was transferred.
    """
    err, out = channel(err), channel(out)
    if (configuration := resolve(args, err, out, warn_if_no_files, remote=remote)) is None:
        return None
    return runner(configuration, err, out)


__all__ = (
    "MAX_OPTIONS_DEPTH",
    "Resolution",
    "resolve",
    "run",
)
