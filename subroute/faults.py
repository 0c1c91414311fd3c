"""
Subroute faults (flag parsing errors) and their rendering.

Scope
- FaultCode: stable numeric identifiers for every runtime parse failure, so
  hosts can search logs and remap labels.
- ErrorHandling: what a flag set does after reporting a fault (raise to the
  caller, exit the process, or escalate to a FlagPanic).
- FlagError and subclasses: carry the message plus options, and know how to
  render themselves (rich) and how to apply the policy (__trigger__).
- trigger(): the single entry point used by flag sets to surface a fault.

Programmer errors (duplicate command names, empty usage, second dispatch) are
not faults: they raise ValueError/TypeError/RuntimeError at the faulty call and
never pass through this module.

Host configuration
- __styles__ in __main__ overrides any palette entry used by __rich__.
- __codes__ in __main__ maps FaultCode members to friendlier labels.
"""
import sys
from collections import defaultdict
from enum import IntEnum
from types import MappingProxyType

from rich.console import Console
from rich.text import Text

from .utils import Unset


class FaultCode(IntEnum):
    """
    canonical fault codes raised while parsing flags (stable identifiers).

    grouping
    - syntax (2110x)
      • BAD_SYNTAX, UNDEFINED_FLAG, MISSING_VALUE, INVALID_VALUE
    - requests (2120x)
      • HELP_REQUESTED (not a failure; usage was printed on request)
    """
    # --- syntax errors (2110x) ---
    BAD_SYNTAX      = 21101
    UNDEFINED_FLAG  = 21102
    MISSING_VALUE   = 21103
    INVALID_VALUE   = 21104

    # --- requests (2120x) ---
    HELP_REQUESTED  = 21201

    def normalize(self):
        """
        return a host-normalized string for this code.

        the host application can provide a __codes__ mapping in __main__ to
        override numeric ids; without one the numeric value is returned.
        """
        return str(getattr(__import__("__main__"), "__codes__", {}).get(self, self.value))


class ErrorHandling(IntEnum):
    """
    policy applied by a flag set after a parse fault has been reported.

    - CONTINUE: raise the FlagError to the caller (recoverable).
    - EXIT: terminate the process; status 0 for a help request, 2 otherwise.
    - PANIC: raise FlagPanic chained to the fault; never swallowed by a dispatcher.
    """
    CONTINUE = 0
    EXIT = 1
    PANIC = 2


class FlagError(Exception):
    """
    Base type for runtime flag parsing faults.

    Options recognized by __trigger__
    - output: writer receiving the report (no report when absent).
    - usage: zero-argument callable printing usage after the report.
    - errors: ErrorHandling policy (CONTINUE when absent).
    - flag: name of the offending flag, when known.
    """
    code = Unset

    def __init__(self, message, /, **options):
        if not isinstance(message, str):
            raise TypeError(f"{type(self).__name__} message must be a string")
        super().__init__(message)
        self.message = message
        self.options = MappingProxyType(options)

    @property
    def flag(self):
        return self.options.get("flag")

    def __str__(self):
        return self.message

    def __rich__(self):
        styles = defaultdict(str, {
            "code": "bold #00E5FF",  # neon cyan fault code
            "error-message": "#FF4DA6",  # friendly pinky message
        } | getattr(__import__("__main__"), "__styles__", {}))

        if self.code is Unset:
            return Text(self.message, styles["error-message"])
        return Text.assemble(
            (self.message, styles["error-message"]),
            " ",
            ("[%s]" % self.code.normalize(), styles["code"]),
        )

    def __report__(self, output):
        Console(file=output, highlight=False, soft_wrap=True).print(self)

    def __trigger__(self):
        if (output := self.options.get("output")) is not None:
            self.__report__(output)
            if callable(usage := self.options.get("usage")):
                usage()

        match self.options.get("errors", ErrorHandling.CONTINUE):
            case ErrorHandling.EXIT:
                sys.exit(0 if isinstance(self, HelpRequested) else 2)
            case ErrorHandling.PANIC:
                raise FlagPanic(self.message) from self
            case _:
                raise self from None

    def __replace__(self, *unused, **overrides):
        assert not unused, "positional arguments are not allowed"
        return type(self)(self.message, **{**self.options, **overrides})


class FlagSyntaxError(FlagError):
    code = FaultCode.BAD_SYNTAX


class UndefinedFlagError(FlagError):
    code = FaultCode.UNDEFINED_FLAG


class MissingValueError(FlagError):
    code = FaultCode.MISSING_VALUE


class InvalidValueError(FlagError):
    code = FaultCode.INVALID_VALUE


class HelpRequested(FlagError):
    """
    Raised after usage was printed because -h or -help was given.

    Only the report is special: the usage is printed but no error line is.
    """
    code = FaultCode.HELP_REQUESTED

    def __init__(self, message="help requested", /, **options):
        super().__init__(message, **options)

    def __report__(self, output):
        pass


class FlagPanic(RuntimeError):
    """
    Escalated fault raised under ErrorHandling.PANIC; the cause is the FlagError.
    """


def trigger(fault, /, **options):
    """
    surface a fault with the given runtime options.

    contract
    - fault must provide __trigger__ and __replace__ methods (see FlagError).
    - options are merged into the fault via __replace__(**options) before triggering.
    - the call never returns normally: it raises or exits per the errors policy.
    """
    if (
        not hasattr(fault, "__trigger__") or
        not callable(fault.__trigger__) or
        not hasattr(fault, "__replace__") or
        not callable(fault.__replace__)
    ):
        raise TypeError("trigger() argument must have a __trigger__ and __replace__ methods")
    fault.__replace__(**options).__trigger__()


__all__ = (
    "FaultCode",
    "ErrorHandling",
    "FlagError",
    "FlagSyntaxError",
    "UndefinedFlagError",
    "MissingValueError",
    "InvalidValueError",
    "HelpRequested",
    "FlagPanic",
    "trigger",
)
