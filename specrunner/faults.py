"""
specrunner faults (errors and warnings), rendering and exit statuses.

Scope
- FaultCode: canonical, stable numeric identifiers for all user-facing issues
  (errors and warnings). Codes are grouped by domain to keep copy consistent
  and make logs/searches predictable.
- RunnerError / RunnerWarning: base types that carry message + options and
  know how to render themselves (rich) on the injected error channel.
- RunnerExit: a request to end the host process with a given status. Raised
  only when the channel that received the terminal message may terminate the
  host; the process entry point is the only place that turns it into an exit.
- trigger(): central entry point to surface any fault.
- getdoc(): optional description lookup for a code from the host application.

Exit statuses
- every RunnerError subclass declares the process status the entry point
  should use for it (see the `status` class attributes below).

Integration
- the parser and the resolution driver call trigger(fault, channel=..., ...).
- errors are rendered and raised; warnings are rendered and parsing goes on.
"""
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Group
from rich.text import Text

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes used across the runner front end (stable identifiers).

    grouping (by high-level domain)
    - switches (1111x/1112x/1113x)
      • MALFORMED_TOKEN, UNKNOWN_SWITCH, FLAG_ASSIGNMENT, OPTION_VALUE_REQUIRED,
        EMPTY_VALUE, CONVERSION_ERROR, DELEGATED_ERROR
    - resolution (113xx)
      • MUTUALLY_EXCLUSIVE, DIRECTORY_GIVEN, MISSING_PATH, TOO_MANY_PATHS,
        UNREADABLE_PATH, OPTIONS_FILE
    - warnings (12xxx)
      • DEPRECATED_OPTION, NO_FILES, UNRESOLVED_LINE, NO_REMOTE_RUNNER

    normalize() allows host remapping to custom labels while keeping code-stability.
    """
    # --- switch errors (111xx) ---
    MALFORMED_TOKEN             = 11111
    UNKNOWN_SWITCH              = 11112
    FLAG_ASSIGNMENT             = 11113
    OPTION_VALUE_REQUIRED       = 11117
    EMPTY_VALUE                 = 11123
    CONVERSION_ERROR            = 11124
    DELEGATED_ERROR             = 11131

    # --- resolution errors (113xx) ---
    MUTUALLY_EXCLUSIVE          = 11301
    DIRECTORY_GIVEN             = 11311
    MISSING_PATH                = 11312
    TOO_MANY_PATHS              = 11313
    UNREADABLE_PATH             = 11314
    OPTIONS_FILE                = 11321

    # --- warnings (12xxx) ---
    DEPRECATED_OPTION           = 12112
    NO_FILES                    = 12201
    UNRESOLVED_LINE             = 12202
    NO_REMOTE_RUNNER            = 12203

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__
        to override numeric ids with friendlier labels. when no mapping
        is present, the numeric value is returned as a string.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


def _render(fault, palette, title_style):
    main = __import__("__main__")
    styles = defaultdict(str, palette | getattr(main, "__styles__", {}))
    colorful = fault.options.get("colorful", getattr(fault.options.get("channel"), "colorful", False))

    def text(fragment, style=""):
        if not fragment:
            return Text("")
        if isinstance(fragment, Text):
            return fragment if colorful else Text(fragment.plain)
        return Text(str(fragment), styles[style] if colorful else "")

    prog = text(getattr(main, "__prog__", "spec"), "prog-name")
    title = fault.options.get("title", type(fault).__name__)
    code = fault.options.get("code")

    header = Text.assemble(
        "[ ",
        prog,
        ":",
        text(code.normalize() if code else "", "code"),
        " | ",
        text(title.title(), title_style),
        " ]"
    )
    renders = [header, text(fault.message, "message")]
    if hint := fault.options.get("hint"):
        renders.append(Text.assemble(text(" → ", "hint-arrow"), text(hint, "hint")))
    if docs := fault.options.get("docs"):
        renders.append(text(docs, "docs"))
    return Group(*renders)


class RunnerError(Exception):
    """
    base class of every fatal fault.

    `status` is the process exit status the entry point uses for this fault.
    """
    status = 1

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-title": "bold #FF4DA6",  # friendly pinky title
            "message": "#C8C8D0",  # soft light gray message
            "hint-arrow": "#9CE19C dim",  # gentle green arrow
            "hint": "italic #9CE19C",  # gentle green hint text
            "docs": "underline #00E5FF dim",  # documentation footer
        }, "error-title")

    def __str__(self):
        return str(self.message)

    def __trigger__(self):
        if channel := self.options.get("channel"):
            channel.puts(self)
            if banner := self.options.get("banner"):
                channel.puts(banner)
        raise self from self.options.get("exception")

    def __replace__(self, *unused, **overrides):
        assert not unused, "unused arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class UsageError(RunnerError):
    """unrecognized flag or malformed value; reported together with the usage banner."""
    status = 64


class MalformedTokenError(UsageError): ...
class UnknownSwitchError(UsageError): ...
class FlagAssignmentError(UsageError): ...
class OptionValueRequiredError(UsageError): ...
class EmptyValueError(UsageError): ...
class ConversionError(UsageError): ...


class MutuallyExclusiveOptionsError(RunnerError):
    status = 4


class InputPathError(RunnerError):
    """the positional arguments cannot be used to resolve --line."""


class DirectoryGivenError(InputPathError):
    status = 1


class MissingPathError(InputPathError):
    status = 2


class TooManyPathsError(InputPathError):
    status = 3


class UnreadablePathError(InputPathError):
    status = 2


class OptionsFileError(RunnerError):
    status = 66


class DelegatedOptionError(RunnerError):
    status = 70


class RunnerWarning(Warning):
    """
    base class of every non-fatal fault: rendered, then parsing goes on.
    """

    def __init__(self, message=Unset, /, **options):
        assert isinstance(message, str | Unset)
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    def __rich__(self):
        return _render(self, {
            "prog-name": "bold #E6E6F0",  # near-white program name
            "code": "bold #FFB400",  # amber fault code for warnings
            "warning-title": "bold #FFC2E0",  # softer pinky title for warnings
            "message": "#D6D6DE",  # slightly lighter gray body
            "hint-arrow": "#B8EFAF dim",  # softer green arrow
            "hint": "italic #B8EFAF",  # softer green hint text
            "docs": "underline #FFB400 dim",  # documentation footer
        }, "warning-title")

    def __str__(self):
        return str(self.message)

    def __trigger__(self):
        if channel := self.options.get("channel"):
            channel.puts(self)
            if banner := self.options.get("banner"):
                channel.puts(banner)

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class DeprecatedOptionWarning(RunnerWarning): ...
class UnresolvedLineWarning(RunnerWarning): ...
class NoRemoteRunnerWarning(RunnerWarning): ...


class NoFilesWarning(RunnerWarning):
    """
    no file, directory or glob was given.

    fatal only on a terminating channel: the process ends with status 6.
    library callers (and the --options re-expansion) keep going.
    """
    status = 6

    def __trigger__(self):
        super().__trigger__()
        channel = self.options.get("channel")
        if channel and channel.terminates:
            raise RunnerExit(self.status)


class RunnerExit(Exception):
    """
    request to end the host process with `status`.

    raised only for terminating channels (help/version on the real output,
    missing files on the real error stream).
    """

    def __init__(self, status=0, /):
        super().__init__(status)
        self.status = status


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see base classes).
    - options are merged into the fault via __replace__(**options) before triggering.
    - errors are rendered on options["channel"] (if any) and raised;
      warnings are rendered and control returns to the caller.

    typical options
    - channel, banner, colorful, title, code, hint, docs, and any other
      context the reporter may want to show (e.g., input/index/argument).
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


def getdoc(code, /):
    """
    optional documentation fetch for a fault code.

    the host application may expose a __docs__ mapping in __main__ where keys
    are FaultCode instances and values are short documentation strings.
    """
    if not isinstance(code, FaultCode):
        raise TypeError("getdoc() argument must be a fault-code")
    try:
        return getattr(__import__("__main__"), "__docs__", {})[code]
    except KeyError:
        return None


__all__ = (
    "FaultCode",
    "RunnerError",
    "UsageError",
    "MalformedTokenError",
    "UnknownSwitchError",
    "FlagAssignmentError",
    "OptionValueRequiredError",
    "EmptyValueError",
    "ConversionError",
    "MutuallyExclusiveOptionsError",
    "InputPathError",
    "DirectoryGivenError",
    "MissingPathError",
    "TooManyPathsError",
    "UnreadablePathError",
    "OptionsFileError",
    "DelegatedOptionError",
    "RunnerWarning",
    "DeprecatedOptionWarning",
    "UnresolvedLineWarning",
    "NoRemoteRunnerWarning",
    "NoFilesWarning",
    "RunnerExit",
    "trigger",
    "getdoc",
)
