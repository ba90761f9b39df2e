"""
specrunner argument dispatcher: walk an argument vector against an option table.

Contract
- tokens are consumed left to right; every recognized option fires its handler
  immediately (no "parse everything, then apply" phase).
- while a handler runs, `current` describes the match being handled and
  `original` is the untouched vector, so a handler can rebuild a clean vector
  without itself (`without(current)`).
- positional tokens (anything not starting with '-', a lone '-', and every
  token after '--') are collected in order and returned.
- a terminator descriptor stops the walk once its handler returns;
  `transferred` tells the caller that control went elsewhere.

Value forms
- inline: '--name=value', '-n=value' (an empty inline value is an error).
- attached, short spellings only: '-n5', '-fhtml'.
- spaced, required arity: the next token, whatever it looks like.
- spaced, optional arity: the next token only if it does not start with '-'.

Failures are UsageError subclasses, rendered on the error channel together with
the usage banner and raised. RunnerError (and RunnerExit) escaping a handler
propagate unchanged; any other exception is wrapped in DelegatedOptionError.
"""
import difflib
import re
from typing import Any, NamedTuple

from .channels import channel
from .faults import *
from .grammar import Flag, Option
from .utils import *


class Match(NamedTuple):
    """
    one matched option: symbolic name, spelling as typed, converted value
    (None for flags and omitted optional values) and its [start, stop) slice
    of the original vector.
    """
    name: str
    input: str
    value: Any
    start: int
    stop: int


def _prog():
    return getattr(__import__("__main__"), "__prog__", "spec")


class Dispatcher:
    """
    Dispatch an argument vector to per-option handlers.

    Parameters
    - table: mapping of symbolic name -> Option/Flag descriptor.
    - handlers: mapping of symbolic name -> callable; flags are called with no
      arguments, options with their converted value (None when an optional
      value was omitted). Names without a handler are accepted and ignored.
    - err: Channel (or text stream) receiving usage errors and warnings.
    - banner: renderable printed after every usage error.
    """

    def __init__(self, table, handlers, err, banner=None):
        self.table = table
        self.handlers = handlers
        self.err = channel(err)
        self.banner = banner
        self.switches = {
            spelling: name
            for name, descriptor in table.items()
            for spelling in descriptor.names
        }
        self.original = ()
        self.current = None
        self.transferred = False

    def without(self, match, /):
        """copy of the original vector with `match`'s tokens removed."""
        return [*self.original[:match.start], *self.original[match.stop:]]

    def usage(self, fault, /, **options):
        trigger(fault, channel=self.err, banner=self.banner, **options)

    def _resolve_token(self, token, index):
        """
        split a switch-like token into (descriptor, input, inline value or None).

        a short option spelling may carry its value attached ('-l5', '-fhtml').
        """
        short, attached = token[:2], token[2:]
        if token not in self.switches and short in self.switches and attached and not attached.startswith("="):
            if isinstance(descriptor := self.table[self.switches[short]], Option):
                return descriptor, short, attached

        match = re.fullmatch(r"(?P<input>--?[^\W\d_](-?[^\W_]+)*)(=(?P<value>[^\r\n]*))?", token)
        if not match:
            self.usage(MalformedTokenError(
                "bad form of option or flag %r at %s position" % (token, ordinal(index + 1)),
                title="malformed option or flag",
                code=FaultCode.MALFORMED_TOKEN,
                hint="try '%s --help' to see valid spellings and forms (e.g., --name=value)" % _prog(),
                token=token,
                index=index,
                docs=getdoc(FaultCode.MALFORMED_TOKEN),
            ))

        input, value = match["input"], match["value"]
        try:
            descriptor = self.table[self.switches[input]]
        except KeyError:
            suggestions = difflib.get_close_matches(input, self.switches.keys(), 5)
            try:
                hint = "did you mean %r? you can also run '%s --help' to see all options" % (suggestions[0], _prog())
            except IndexError:
                hint = "try '%s --help' to see all available options" % _prog()
            self.usage(UnknownSwitchError(
                "unknown option or flag %r at %s position" % (input, ordinal(index + 1)),
                title="unknown option or flag",
                code=FaultCode.UNKNOWN_SWITCH,
                input=input,
                index=index,
                suggestions=suggestions,
                hint=hint,
                docs=getdoc(FaultCode.UNKNOWN_SWITCH),
            ))

        if value is not None:
            if isinstance(descriptor, Flag):
                self.usage(FlagAssignmentError(
                    "flag %r at %s position cannot have an inline value" % (input, ordinal(index + 1)),
                    title="flag cannot take a value",
                    code=FaultCode.FLAG_ASSIGNMENT,
                    input=input,
                    index=index,
                    argument=descriptor,
                    hint="remove everything from '=' (for example: %s)" % input,
                    docs=getdoc(FaultCode.FLAG_ASSIGNMENT),
                ))
            if not value:
                self.usage(EmptyValueError(
                    "empty inline value for option %r at %s position" % (input, ordinal(index + 1)),
                    title="empty inline value",
                    code=FaultCode.EMPTY_VALUE,
                    input=input,
                    index=index,
                    argument=descriptor,
                    hint="add a value after '=' (for example: %s=%s)" % (input, descriptor.metavar),
                    docs=getdoc(FaultCode.EMPTY_VALUE),
                ))

        return descriptor, input, value

    def _getvalue(self, descriptor, input, value, index):
        """
        take the value of an option (inline or spaced) and convert it.

        returns (converted value or None, stop index).
        """
        stop = index + 1
        if value is None:
            following = self.original[stop] if stop < len(self.original) else None
            if descriptor.nargs is None:
                if following is None:
                    self.usage(OptionValueRequiredError(
                        "option %r at %s position requires a value" % (input, ordinal(index + 1)),
                        title="missing option value",
                        code=FaultCode.OPTION_VALUE_REQUIRED,
                        input=input,
                        index=index,
                        argument=descriptor,
                        hint="provide a value (e.g., %s %s)" % (input, descriptor.metavar),
                        docs=getdoc(FaultCode.OPTION_VALUE_REQUIRED),
                    ))
                value, stop = following, stop + 1
            elif following is not None and not following.startswith("-"):
                value, stop = following, stop + 1
            else:
                return None, stop

        try:
            return descriptor.type(value), stop
        except (ValueError, TypeError) as exception:
            self.usage(ConversionError(
                "invalid value %r for option %r at %s position" % (value, input, ordinal(index + 1)),
                title="invalid option value",
                code=FaultCode.CONVERSION_ERROR,
                input=input,
                index=index,
                argument=descriptor,
                hint=str(exception) or "expected %s" % descriptor.metavar,
                docs=getdoc(FaultCode.CONVERSION_ERROR),
            ))

    def _handle(self, match, descriptor):
        """
        run the bound handler for `match`; faults and exit requests pass
        through, anything else is wrapped.
        """
        if (handler := self.handlers.get(match.name)) is None:
            return
        self.current = match
        try:
            if isinstance(descriptor, Option):
                handler(match.value)
            else:
                handler()
        except (RunnerError, RunnerExit):
            raise
        except Exception as exception:
            kind = "option" if isinstance(descriptor, Option) else "flag"
            trigger(
                DelegatedOptionError(
                    "something occurred in %s %r at %s position" % (kind, match.input, ordinal(match.start + 1)),
                    title="delegated %s error" % kind,
                    code=FaultCode.DELEGATED_ERROR,
                    input=match.input,
                    index=match.start,
                    argument=descriptor,
                    hint="%s: %s" % (type(exception).__name__, exception),
                    docs=getdoc(FaultCode.DELEGATED_ERROR),
                    exception=exception,
                ),
                channel=self.err,
            )
        finally:
            self.current = None

    def __call__(self, args, /):
        """
        walk `args`, firing handlers; return the positional arguments in order.
        """
        self.original = tuple(args)
        self.current = None
        self.transferred = False

        positionals = []
        index = 0
        while index < len(self.original):
            token = self.original[index]
            if token == "--":
                positionals.extend(self.original[index + 1:])
                break
            if token == "-" or not token.startswith("-"):
                positionals.append(token)
                index += 1
                continue

            descriptor, input, value = self._resolve_token(token, index)

            if descriptor.deprecated:
                if descriptor.successor:
                    hint = "use %r instead; run '%s --help' to see details" % (descriptor.successor, _prog())
                else:
                    hint = "run '%s --help' to see current usage and alternatives" % _prog()
                kind = "option" if isinstance(descriptor, Option) else "flag"
                trigger(
                    DeprecatedOptionWarning(
                        "%s %r at %s position is deprecated" % (kind, input, ordinal(index + 1)),
                        title="deprecated %s" % kind,
                        code=FaultCode.DEPRECATED_OPTION,
                        input=input,
                        index=index,
                        argument=descriptor,
                        hint=hint,
                        docs=getdoc(FaultCode.DEPRECATED_OPTION),
                    ),
                    channel=self.err,
                )

            if isinstance(descriptor, Option):
                value, stop = self._getvalue(descriptor, input, value, index)
            else:
                stop = index + 1
            self._handle(Match(descriptor.name, input, value, index, stop), descriptor)

            if descriptor.terminator:
                self.transferred = True
                break
            index = stop

        return positionals


__all__ = (
    "Match",
    "Dispatcher",
)
