"""
Subroute utilities (internal helpers shared by the flag, usage and command layers)

Overview
- UnsetType / Unset
  • Singleton sentinel meaning “argument not provided”, distinct from None.
  • Falsey, printable as "Unset", and non-subclassable.

- coalesce(value, default=None)
  • Replace Unset with a concrete default while preserving None/0/""/[].

- rename(callable, name) / @rename("name")
  • Give generated closures (handlers, usage printers) stable names so that
    tracebacks and reprs stay readable.

- mirror("attr")
  • Read-only property factory exposing a private backing field (self._attr).

- firstline(text)
  • The first line of a block of text, without its terminator.

Stability and contract
- Names in __all__ are re-used across the package; the rest is internal.
"""
import functools
from types import FunctionType, UnionType
from typing import final


@final
class UnsetType:
    """
    Internal sentinel type representing a value that was not provided.

    Dispatcher options such as the top-level builder or the not-found formatter
    are optional; None could be passed by mistake, so the API defaults to Unset
    and resolves the concrete value with coalesce().
    """

    def __or__(self, other, /):
        """
        Stand for UnsetType inside unions, so `str | Unset` works with isinstance.
        """
        if isinstance(other, (type, UnionType)):
            return other | UnsetType
        return NotImplemented

    __ror__ = __or__

    @functools.cache
    def __new__(cls):
        return super().__new__(cls)

    def __bool__(self):
        return False

    def __repr__(self):
        return "Unset"

    def __init_subclass__(cls, **options):
        raise TypeError("type 'UnsetType' is not an acceptable base type")


def coalesce(object, default=None, /):
    """
    Return object unless it is Unset, in which case return default.

    Examples
    - coalesce("name", "fallback") -> "name"
    - coalesce(Unset, "fallback")  -> "fallback"
    - coalesce(None, "fallback")   -> None
    """
    return object if object is not Unset else default


def rename(*parameters):
    """
    Name a generated closure, or return a decorator naming the next one.

    Forms
    - rename(function, name) -> function
    - rename(name)           -> decorator

    Only plain functions (def or lambda) are accepted. Bound methods and
    builtins cannot carry their own name; wrap them in a lambda first.
    """
    match parameters:
        case (function, str() as name):
            if not isinstance(function, FunctionType):
                raise TypeError(f"rename() expects a function or lambda, not {type(function).__name__!r}")
            function.__name__ = function.__qualname__ = name
            return function
        case (_, _):
            raise TypeError("rename() second argument must be a string")
        case (str() as name,):
            return rename(lambda function: rename(function, name), "rename")
        case (_,):
            raise TypeError("@rename() argument must be a string")
        case _:
            raise TypeError("rename takes 1 to 2 arguments but %d were given" % len(parameters))


def mirror(name, /):
    """
    Define a read-only property that mirrors a private backing attribute.

    The generated property reads "_{name}" from the instance. Registered
    commands and dispatcher options are fixed after construction, so only a
    getter is published.
    """
    if not isinstance(name, str):
        raise TypeError("mirror() argument must be a string")

    @rename(name)
    def getter(self):
        return getattr(self, "_" + name)

    return property(getter)


def firstline(text, /):
    """
    Return the first line of text without its line terminator.
    """
    if not isinstance(text, str):
        raise TypeError("firstline() argument must be a string")
    return text.split("\n", 1)[0].rstrip("\r")


Unset = UnsetType()
"""
Internal sentinel for “not provided”. Materialize with coalesce().
"""


__all__ = (
    # Functions
    "coalesce",
    "rename",
    "mirror",
    "firstline",

    # Types
    "UnsetType",

    # Constants
    "Unset",
)
