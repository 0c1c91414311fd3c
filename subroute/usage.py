"""
Usage rendering: placeholder substitution for help texts.

Placeholders (literal, case- and whitespace-sensitive)
- {{flags}}     → the default listing of a flag set (empty when it has no flags)
- {{commands}}  → one line per command: the name padded to the longest name
                  plus GUTTER spaces, then its title

Top-level usage always ends with a line terminator (one is appended when the
template does not provide it). Subcommand usage is substituted once at
registration and otherwise left as written.
"""
import re

from .utils import firstline


FLAGS = "{{flags}}"
COMMANDS = "{{commands}}"
GUTTER = 3

_PLACEHOLDERS = re.compile("|".join(map(re.escape, (FLAGS, COMMANDS))))


def validate(usage, /):
    """
    Reject usage texts a command cannot be registered with.

    Raises
    - TypeError: usage is not a string.
    - ValueError: usage is empty, or its first line holds a placeholder
      (the first line is the summary shown before any expansion).
    """
    if not isinstance(usage, str):
        raise TypeError("usage must be a string")
    if not usage:
        raise ValueError("usage must be a non-empty string")
    if any(placeholder in firstline(usage) for placeholder in (FLAGS, COMMANDS)):
        raise ValueError(f"usage first line must not contain {FLAGS} or {COMMANDS}")
    return usage


def listing(commands, width, /):
    """
    Render (name, title) pairs sorted by name, names padded to width + GUTTER.
    """
    return "".join(
        f"{name.ljust(width + GUTTER)}{title}\n" for name, title in sorted(commands)
    )


def substitute(usage, flagset, /):
    """
    Replace every {{flags}} in usage with the flag set's default listing.
    """
    if FLAGS not in usage:
        return usage
    return usage.replace(FLAGS, flagset.defaults())


def render(template, flagset, commands, width, /):
    """
    Render a top-level usage template.

    Parameters
    - template: str with zero or more placeholders.
    - flagset: object providing defaults() (the top-level flag set).
    - commands: iterable of (name, title) pairs.
    - width: length of the longest command name.

    Both placeholders are replaced in a single pass, so a flag usage that
    happens to contain "{{commands}}" is copied verbatim.
    """
    cache = {}

    def replace(match):
        token = match[0]
        if token not in cache:
            if token == FLAGS:
                cache[token] = flagset.defaults()
            else:
                cache[token] = listing(commands, width)
        return cache[token]

    text = _PLACEHOLDERS.sub(replace, template)
    if text and not text.endswith("\n"):
        text += "\n"
    return text


__all__ = (
    "FLAGS",
    "COMMANDS",
    "GUTTER",
    "validate",
    "listing",
    "substitute",
    "render",
)
