"""
Subroute command layer: register subcommands and route one argument vector.

What this module provides
- Command: an immutable registry entry (name, title, rendered usage, flag
  set, handler) created by Dispatcher.register().
- Dispatcher: the registry plus the routing engine. A dispatcher routes at
  most one argument vector over its lifetime.
- invoke(dispatcher, prompt): convenience runner normalizing sys.argv, shell
  strings or token iterables before calling Dispatcher.exec().

Registration
- A builder receives a fresh flag set scoped to the command, registers its
  flags and returns the zero-argument handler that will run after parsing:

      def build(flags):
          verbose = flags.boolean("v", False, "print more")

          def handler():
              flags.output.write("verbose\\n" if verbose.value else "quiet\\n")

          return handler

      dispatcher.register("run", "run the thing", "usage: run [flags]\\n{{flags}}", build)

Routing (Dispatcher.exec)
- []                → top-level handler
- ["-x", ...]       → parse everything with the top-level flag set, then the
                      top-level handler (a help request is not an error here)
- ["name", ...]     → parse the rest with that command's flag set, then its
                      handler; faults and handler exceptions propagate as-is
- ["unknown", ...]  → not-found text (or the full usage) written to the output

Errors
- Mistakes in the calling code (duplicate or empty names, empty usage,
  placeholders in the first usage line, non-callable builders, a second
  exec) raise ValueError/TypeError/RuntimeError immediately.
- Runtime parse failures are subroute.faults.FlagError subclasses.
"""
import logging
import os.path
import shlex
import sys
from collections.abc import Iterable

from .faults import HelpRequested, ErrorHandling
from .flags import FlagSet
from .usage import validate, substitute, render
from .utils import *


logger = logging.getLogger(__name__)


class Command:
    """
    A registered subcommand.

    Fields are read-only; commands cannot be updated or removed once registered.
    The usage is stored with {{flags}} already substituted.
    """
    name = mirror("name")
    title = mirror("title")
    usage = mirror("usage")
    flagset = mirror("flagset")
    handler = mirror("handler")

    def __init__(self, name, title, usage, flagset, handler):
        self._name = name
        self._title = title
        self._usage = usage
        self._flagset = flagset
        self._handler = handler

    def __call__(self, args):
        """
        Parse args with this command's own flag set, then run the handler.
        """
        self._flagset.parse(args)
        return self._handler()

    def __repr__(self):
        return f"command(name={self._name!r}, title={self._title!r})"


class Dispatcher:
    """
    Registry of subcommands and one-shot router for an argument vector.

    Parameters
    - output: writer (any object with write(str)) receiving every rendered
      text; it is also the output of every flag set created here.
    - errors: ErrorHandling handed to the top-level and every command flag set.
    - template: top-level usage template ({{flags}} and {{commands}}).
    - builder: optional callable(flagset) -> handler for the top-level
      behaviour; without it, the top-level handler writes the usage.
    - notfound: optional callable(name) -> str for unknown command names;
      without it, the full usage is written instead.
    - name: program name for the top-level flag set (basename of argv[0]).
    - factory: callable(name, errors, output) -> flag set; FlagSet by default.
      Any object offering the Bindable capability (see flags.pyi) works.

    Lifecycle
    - idle: commands may be registered.
    - executed: exec() has been called; calling it again is a RuntimeError.
      The latch is not synchronized; exec() must not race with itself.
    """
    name = mirror("name")
    output = mirror("output")
    errors = mirror("errors")
    template = mirror("template")
    flagset = mirror("flagset")
    executed = mirror("executed")

    def __init__(
            self,
            output,
            errors=ErrorHandling.CONTINUE,
            template="",
            builder=Unset,
            notfound=Unset,
            *,
            name=Unset,
            factory=Unset
    ):
        if not callable(getattr(output, "write", None)):
            raise TypeError("dispatcher 'output' must be a writer")
        if not isinstance(template, str):
            raise TypeError("dispatcher 'template' must be a string")
        if not callable(builder) and builder is not Unset:
            raise TypeError("dispatcher 'builder' must be callable")
        if not callable(notfound) and notfound is not Unset:
            raise TypeError("dispatcher 'notfound' must be callable")
        if not isinstance(name, str | Unset):
            raise TypeError("dispatcher 'name' must be a string")
        if not callable(factory) and factory is not Unset:
            raise TypeError("dispatcher 'factory' must be callable")

        try:
            self._errors = ErrorHandling(errors)
        except ValueError:
            raise ValueError(f"dispatcher 'errors' must be one of {[member.name for member in ErrorHandling]}") from None

        self._output = output
        self._template = template
        self._notfound = notfound
        self._name = coalesce(name, os.path.basename(sys.argv[0]))
        self._factory = coalesce(factory, FlagSet)
        self._commands = {}
        self._width = 0
        self._executed = False

        self._flagset = self._factory(self._name, self._errors, self._output)
        self._flagset.usage = rename(lambda: self._output.write(self.usage()), "usage")

        if builder is Unset:
            self._handler = rename(lambda: self._output.write(self.usage()), "handler")
        elif not callable(handler := builder(self._flagset)):
            raise TypeError("dispatcher 'builder' must return a callable handler")
        else:
            self._handler = handler

    # ── registry ────────────────────────────────────────────────────────────

    def register(self, name, title, usage, builder, /):
        """
        Register a subcommand.

        Parameters
        - name: non-empty str, unique, not starting with '-'.
        - title: str, one-line summary shown in the {{commands}} listing.
        - usage: non-empty str, full help; {{flags}} is replaced by the
          command's flag listing. Its first line cannot hold a placeholder.
        - builder: callable(flagset) -> zero-argument handler. Runs once, now.

        Returns
        - The registered Command.

        Raises
        - TypeError/ValueError for any invalid argument or a duplicate name.
        """
        if not isinstance(name, str):
            raise TypeError("command 'name' must be a string")
        if not name:
            raise ValueError("command 'name' must be a non-empty string")
        if name.startswith("-"):
            raise ValueError(f"command name {name!r} cannot start with '-'")
        if name in self._commands:
            raise ValueError(f"command name {name!r} is already in use")
        if not isinstance(title, str):
            raise TypeError("command 'title' must be a string")
        validate(usage)
        if not callable(builder):
            raise TypeError("command 'builder' must be callable")

        flagset = self._factory(name, self._errors, self._output)
        if not callable(handler := builder(flagset)):
            raise TypeError(f"command {name!r} builder must return a callable handler")

        usage = substitute(usage, flagset)
        flagset.usage = rename(lambda: self._output.write(usage), "usage")

        self._commands[name] = command = Command(name, title, usage, flagset, handler)
        self._width = max(self._width, len(name))
        logger.debug("registered command %r", name)
        return command

    def command(self, name, title, usage, /):
        """
        Decorator form of register(): the decorated function is the builder.

            @dispatcher.command("run", "run the thing", "usage: run\\n{{flags}}")
            def run(flags):
                ...
                return handler
        """
        @rename("command")
        def wrapper(builder, /):
            return self.register(name, title, usage, builder)

        return wrapper

    def lookup(self, name, /):
        """
        Return (title, usage, found) for a command name; ("", "", False) if absent.
        """
        try:
            command = self._commands[name]
        except KeyError:
            return "", "", False
        return command.title, command.usage, True

    def commands(self):
        """
        All registered command names, sorted lexicographically.
        """
        return sorted(self._commands)

    def __contains__(self, name):
        return name in self._commands

    def __getitem__(self, name):
        return self._commands[name]

    def __len__(self):
        return len(self._commands)

    # ── rendering ───────────────────────────────────────────────────────────

    def usage(self):
        """
        Render the top-level usage from the template.
        """
        return render(
            self._template,
            self._flagset,
            [(name, command.title) for name, command in self._commands.items()],
            self._width,
        )

    def notfound(self, name, /):
        """
        Text shown for an unknown command name.
        """
        if self._notfound is Unset:
            return self.usage()
        return str(self._notfound(name))

    # ── execution ───────────────────────────────────────────────────────────

    def exec(self, args, /):
        """
        Route one argument vector (without the program name).

        Returns
        - The handler's return value, or None for help requests and unknown names.

        Raises
        - RuntimeError: exec() was already called on this dispatcher.
        - FlagError: a parse failure (except a top-level help request).
        - Anything the selected handler raises, unchanged.
        """
        if self._executed:
            raise RuntimeError("dispatcher exec() invoked more than once")
        self._executed = True

        if isinstance(args, str) or not isinstance(args, Iterable):
            raise TypeError("exec() argument must be an iterable of strings")
        args = list(args)
        if not all(isinstance(arg, str) for arg in args):
            raise TypeError("exec() argument must be an iterable of strings")

        if not args:
            logger.debug("no arguments, running top-level handler")
            return self._handler()

        if args[0].startswith("-"):
            logger.debug("flag-prefixed arguments, running top-level handler")
            try:
                self._flagset.parse(args)
            except HelpRequested:
                return None
            return self._handler()

        try:
            command = self._commands[args[0]]
        except KeyError:
            logger.debug("command %r not found", args[0])
            self._output.write(self.notfound(args[0]))
            return None

        logger.debug("dispatching to command %r", command.name)
        return command(args[1:])

    def __invoke__(self, prompt=Unset):
        """
        Execute with a token stream.

        - Unset: read tokens from sys.argv[1:].
        - str: shell-like string split with shlex.split.
        - Iterable[str]: pre-tokenized sequence.
        """
        if prompt is Unset:
            tokens = sys.argv[1:]
        elif isinstance(prompt, str):
            tokens = shlex.split(prompt)
        elif isinstance(prompt, Iterable):
            tokens = list(prompt)
            if not all(isinstance(token, str) for token in tokens):
                raise TypeError("__invoke__() argument must be a string or an iterable of strings")
        else:
            raise TypeError("__invoke__() argument must be a string or an iterable of strings")
        return self.exec(tokens)

    def __repr__(self):
        return f"dispatcher(name={self._name!r}, commands={self.commands()!r})"


def invoke(dispatcher, prompt=Unset, /):
    """
    Convenience runner for dispatchers.

    Parameters
    - dispatcher: an object providing __invoke__(prompt).
    - prompt: Unset (sys.argv[1:]), a shell-like str, or an iterable of str.

    Returns
    - Whatever the routed handler returned.
    """
    if hasattr(dispatcher, "__invoke__") and callable(dispatcher.__invoke__):
        return dispatcher.__invoke__(prompt)

    target = "argument" if prompt is Unset else "first argument"
    raise TypeError(f"invoke() {target} must implement __invoke__ method")


__all__ = (
    "Command",
    "Dispatcher",
    "invoke",
)
