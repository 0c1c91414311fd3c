"""
Subroute flags: the name-value flag primitive used by every command.

What this module provides
- Value types: BoolValue, IntValue, FloatValue, StringValue, DurationValue,
  FuncValue. Any object with set(text) and __str__ can be registered through
  FlagSet.var(); an optional boolean attribute marks presence-only flags.
- Flag: one registered flag (name, usage, target value, default text).
- FlagSet: registration, parsing and introspection for one command.

Token grammar
- '-name' or '--name' (boolean flags become true; others take the next token)
- '-name=value' or '--name=value'
- parsing stops at the first non-flag token, at a lone '-', or after '--'
  (which is consumed); the remaining tokens are the positional arguments.
- '-h'/'-help' (when not registered) print the usage and raise HelpRequested.

Faults
- Every parse failure is reported to the flag set's output followed by its
  usage, then the ErrorHandling policy decides between raising, exiting and
  panicking (see subroute.faults.trigger).

The dispatcher only relies on the capability declared by the Bindable protocol
(see flags.pyi); FlagSet is the implementation it builds by default.
"""
import datetime
import re
import sys

from .faults import *
from .utils import *


_TRUE = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def _parse_bool(text):
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError("parse error")


class BoolValue:
    typename = ""
    zero = "false"
    boolean = True

    def __init__(self, value=False):
        self._value = bool(value)

    def set(self, text):
        self._value = _parse_bool(text)

    def get(self):
        return self._value

    def __str__(self):
        return "true" if self._value else "false"


class IntValue:
    typename = "int"
    zero = "0"

    def __init__(self, value=0):
        self._value = int(value)

    def set(self, text):
        try:
            self._value = int(text, 0)
        except ValueError:
            raise ValueError("parse error") from None

    def get(self):
        return self._value

    def __str__(self):
        return str(self._value)


class FloatValue:
    typename = "float"
    zero = "0"

    def __init__(self, value=0.0):
        self._value = float(value)

    def set(self, text):
        try:
            self._value = float(text)
        except ValueError:
            raise ValueError("parse error") from None

    def get(self):
        return self._value

    def __str__(self):
        text = repr(self._value)
        return text[:-2] if text.endswith(".0") else text


class StringValue:
    typename = "string"
    zero = ""

    def __init__(self, value=""):
        self._value = str(value)

    def set(self, text):
        self._value = text

    def get(self):
        return self._value

    def __str__(self):
        return self._value


_DURATION_UNITS = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,  # U+00B5 micro sign
    "μs": 1,  # U+03BC greek mu
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}
_DURATION_PART = re.compile(r"([0-9]*(?:\.[0-9]*)?)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text, /):
    """
    Parse a duration such as "300ms", "-1.5h" or "2h45m" into a timedelta.

    A bare "0" is accepted; every other component needs a unit
    (ns, us, µs, ms, s, m, h). Sub-microsecond parts are rounded.
    """
    if not isinstance(text, str):
        raise TypeError("parse_duration() argument must be a string")

    body = text
    sign = 1
    if body[:1] in ("-", "+"):
        sign = -1 if body[0] == "-" else 1
        body = body[1:]
    if body == "0":
        return datetime.timedelta(0)
    if not body:
        raise ValueError(f"invalid duration {text!r}")

    total = 0.0
    position = 0
    while position < len(body):
        match = _DURATION_PART.match(body, position)
        if not match or match[1] in ("", "."):
            raise ValueError(f"invalid duration {text!r}")
        total += float(match[1]) * _DURATION_UNITS[match[2]]
        position = match.end()
    try:
        return datetime.timedelta(microseconds=round(sign * total))
    except OverflowError:
        raise ValueError(f"invalid duration {text!r}") from None


def _fraction(value, scale):
    whole, rest = divmod(value, scale)
    if not rest:
        return str(whole)
    return "%d.%s" % (whole, str(rest).rjust(len(str(scale)) - 1, "0").rstrip("0"))


def format_duration(delta, /):
    """
    Format a timedelta the conventional way: "1h0m0s", "1m30s", "1.5s", "250ms", "0s".
    """
    if not isinstance(delta, datetime.timedelta):
        raise TypeError("format_duration() argument must be a timedelta")

    micro = delta // datetime.timedelta(microseconds=1)
    sign = "-" if micro < 0 else ""
    micro = abs(micro)

    if not micro:
        return "0s"
    if micro < 1_000:
        return f"{sign}{micro}µs"
    if micro < 1_000_000:
        return sign + _fraction(micro, 1_000) + "ms"

    hours, micro = divmod(micro, 3_600_000_000)
    minutes, micro = divmod(micro, 60_000_000)
    seconds = _fraction(micro, 1_000_000) + "s"
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}"
    if minutes:
        return f"{sign}{minutes}m{seconds}"
    return sign + seconds


class DurationValue:
    typename = "duration"
    zero = "0s"

    def __init__(self, value=datetime.timedelta(0)):
        if not isinstance(value, datetime.timedelta):
            raise TypeError("duration default must be a timedelta")
        self._value = value

    def set(self, text):
        self._value = parse_duration(text)

    def get(self):
        return self._value

    def __str__(self):
        return format_duration(self._value)


class FuncValue:
    """
    Calls a function with the raw text each time the flag is seen.
    """
    typename = "value"
    zero = ""

    def __init__(self, callback):
        if not callable(callback):
            raise TypeError("function flag callback must be callable")
        self._callback = callback

    def set(self, text):
        self._callback(text)

    def get(self):
        return None

    def __str__(self):
        return ""


class Flag:
    """
    A registered flag.

    - name: flag name without dashes.
    - usage: help text (a back-quoted word becomes the type name in listings).
    - target: the Value object receiving parsed text.
    - default: text form of the value at registration time.
    - value: the current (parsed or default) Python value.
    """
    name = mirror("name")
    usage = mirror("usage")
    target = mirror("target")
    default = mirror("default")

    def __init__(self, name, usage, target):
        self._name = name
        self._usage = usage
        self._target = target
        self._default = str(target)

    @property
    def value(self):
        getter = getattr(self._target, "get", None)
        return getter() if callable(getter) else self._target

    @property
    def boolean(self):
        return bool(getattr(self._target, "boolean", False))

    def unquote(self):
        """
        Return (typename, usage) for listings.

        A back-quoted word in the usage is the typename and is printed
        unquoted; otherwise the typename comes from the value type
        ("" for booleans, "value" for unknown types).
        """
        usage = self._usage
        start = usage.find("`")
        if start >= 0:
            end = usage.find("`", start + 1)
            if end >= 0:
                return usage[start + 1:end], usage[:start] + usage[start + 1:end] + usage[end + 1:]
        if self.boolean:
            return "", usage
        return getattr(self._target, "typename", "value"), usage

    def __repr__(self):
        return f"flag(name={self._name!r}, default={self._default!r})"


class FlagSet:
    """
    Set of flags belonging to one command (or to the top-level program).

    Parameters
    - name: str, shown in the default usage header ("Usage of NAME:").
    - errors: ErrorHandling applied after a reported parse fault.
    - output: writer for reports and usage; sys.stderr when Unset.

    Registration methods return the Flag; read Flag.value after parsing.
    """
    name = mirror("name")
    errors = mirror("errors")
    parsed = mirror("parsed")

    def __init__(self, name, errors=ErrorHandling.CONTINUE, output=Unset):
        if not isinstance(name, str):
            raise TypeError("flagset 'name' must be a string")
        self._name = name
        self._errors = ErrorHandling(errors)
        self._output = output
        self._formal = {}
        self._actual = {}
        self._args = []
        self._parsed = False
        self._usage = rename(lambda: self._default_usage(), "usage")

    @property
    def output(self):
        return coalesce(self._output, sys.stderr)

    @output.setter
    def output(self, output):
        if not callable(getattr(output, "write", None)):
            raise TypeError("flagset 'output' must be a writer")
        self._output = output

    @property
    def usage(self):
        """
        Zero-argument callable printing the usage; used on faults and on -h.
        """
        return self._usage

    @usage.setter
    def usage(self, usage):
        if not callable(usage):
            raise TypeError("flagset 'usage' must be callable")
        self._usage = usage

    def _default_usage(self):
        if self._name:
            self.output.write(f"Usage of {self._name}:\n")
        else:
            self.output.write("Usage:\n")
        self.output.write(self.defaults())

    # ── registration ────────────────────────────────────────────────────────

    def var(self, target, name, usage=""):
        """
        Register any value object implementing set(text) and __str__.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("flag name must be a non-empty string")
        if name.startswith("-"):
            raise ValueError(f"flag {name!r} begins with -")
        if "=" in name:
            raise ValueError(f"flag {name!r} contains =")
        if not isinstance(usage, str):
            raise TypeError(f"flag {name!r} usage must be a string")
        if not callable(getattr(target, "set", None)):
            raise TypeError(f"flag {name!r} value must implement set()")
        if name in self._formal:
            if self._name:
                raise ValueError(f"{self._name} flag redefined: {name}")
            raise ValueError(f"flag redefined: {name}")
        self._formal[name] = flag = Flag(name, usage, target)
        return flag

    def boolean(self, name, default=False, usage=""):
        return self.var(BoolValue(default), name, usage)

    def integer(self, name, default=0, usage=""):
        return self.var(IntValue(default), name, usage)

    def number(self, name, default=0.0, usage=""):
        return self.var(FloatValue(default), name, usage)

    def string(self, name, default="", usage=""):
        return self.var(StringValue(default), name, usage)

    def duration(self, name, default=datetime.timedelta(0), usage=""):
        return self.var(DurationValue(default), name, usage)

    def function(self, name, usage, callback):
        return self.var(FuncValue(callback), name, usage)

    # ── introspection ───────────────────────────────────────────────────────

    def lookup(self, name):
        return self._formal.get(name)

    def flags(self):
        """
        Registered flags sorted by name.
        """
        return [self._formal[name] for name in sorted(self._formal)]

    def visited(self):
        """
        Flags that were set by parse() or set(), sorted by name.
        """
        return [self._actual[name] for name in sorted(self._actual)]

    @property
    def args(self):
        return list(self._args)

    @property
    def narg(self):
        return len(self._args)

    @property
    def nflag(self):
        return len(self._actual)

    def arg(self, index):
        """
        The index-th positional argument, or "" when it does not exist.
        """
        if 0 <= index < len(self._args):
            return self._args[index]
        return ""

    def set(self, name, text):
        """
        Set a flag from its text form, as if it had been given on the command line.
        """
        try:
            flag = self._formal[name]
        except KeyError:
            raise UndefinedFlagError(f"no such flag -{name}", flag=name) from None
        try:
            flag.target.set(text)
        except ValueError as exception:
            raise InvalidValueError(f"invalid value {text!r} for flag -{name}: {exception}", flag=name) from None
        self._actual[name] = flag

    def defaults(self):
        """
        Render the default listing of all registered flags.

        One entry per flag, sorted by name:
            "  -name type" + ("\\t" or "\\n    \\t") + usage [+ " (default X)"] + "\\n"
        """
        lines = []
        for flag in self.flags():
            typename, usage = flag.unquote()
            line = f"  -{flag.name}"
            if typename:
                line += " " + typename
            # one-letter untyped flags keep their usage on the same line
            line += "\t" if len(line) <= 4 else "\n    \t"
            line += usage.replace("\n", "\n    \t")
            if flag.default != getattr(flag.target, "zero", ""):
                if isinstance(flag.target, StringValue):
                    line += ' (default "%s")' % flag.default.replace("\\", "\\\\").replace('"', '\\"')
                else:
                    line += f" (default {flag.default})"
            lines.append(line + "\n")
        return "".join(lines)

    # ── parsing ─────────────────────────────────────────────────────────────

    def _fail(self, fault):
        trigger(fault, output=self.output, usage=self.usage, errors=self._errors)

    def _parse_one(self):
        if not self._args:
            return False
        token = self._args[0]
        if len(token) < 2 or token[0] != "-":
            return False

        dashes = 1
        if token[1] == "-":
            dashes += 1
            if len(token) == 2:
                # '--' terminates the flags
                self._args = self._args[1:]
                return False

        name = token[dashes:]
        if not name or name[0] in "-=":
            self._fail(FlagSyntaxError(f"bad flag syntax: {token}", flag=token))
        self._args = self._args[1:]

        value = Unset
        if "=" in name:
            name, value = name.split("=", 1)

        try:
            flag = self._formal[name]
        except KeyError:
            if name in ("help", "h"):
                self._fail(HelpRequested(flag=name))
            self._fail(UndefinedFlagError(f"flag provided but not defined: -{name}", flag=name))

        if flag.boolean:
            try:
                flag.target.set(coalesce(value, "true"))
            except ValueError as exception:
                self._fail(InvalidValueError(f"invalid boolean value {value!r} for -{name}: {exception}", flag=name))
        else:
            if value is Unset and self._args:
                value, self._args = self._args[0], self._args[1:]
            if value is Unset:
                self._fail(MissingValueError(f"flag needs an argument: -{name}", flag=name))
            try:
                flag.target.set(value)
            except ValueError as exception:
                self._fail(InvalidValueError(f"invalid value {value!r} for flag -{name}: {exception}", flag=name))

        self._actual[name] = flag
        return True

    def parse(self, args):
        """
        Parse flags from args (without the command name); the rest become positionals.

        Raises
        - FlagError subclasses under ErrorHandling.CONTINUE.
        - FlagPanic under ErrorHandling.PANIC.
        - SystemExit under ErrorHandling.EXIT.
        """
        if isinstance(args, str):
            raise TypeError("parse() argument must be an iterable of strings")
        args = list(args)
        if not all(isinstance(arg, str) for arg in args):
            raise TypeError("parse() argument must be an iterable of strings")

        self._parsed = True
        self._args = args
        while self._parse_one():
            pass

    def __repr__(self):
        return f"flagset(name={self._name!r}, flags={sorted(self._formal)!r})"


__all__ = (
    "BoolValue",
    "IntValue",
    "FloatValue",
    "StringValue",
    "DurationValue",
    "FuncValue",
    "Flag",
    "FlagSet",
    "ErrorHandling",
    "parse_duration",
    "format_duration",
)
