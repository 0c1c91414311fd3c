"""
Optional "help" subcommand.

    helper(dispatcher, "help", "show help", "usage: help [command]\\n")

    prog help          → full top-level usage
    prog help NAME     → usage of NAME
    prog help UNKNOWN  → the dispatcher's not-found text
"""
from .utils import rename


def helper(dispatcher, name, title, usage, /):
    """
    Register a help subcommand named name on dispatcher and return it.

    The handler reads its first positional argument and resolves it with
    dispatcher.lookup(), the same direct lookup exec() performs.
    """
    def build(flagset):
        @rename(name)
        def handler():
            if not flagset.narg:
                text = dispatcher.usage()
            else:
                _, text, found = dispatcher.lookup(target := flagset.arg(0))
                if not found:
                    text = dispatcher.notfound(target)
            dispatcher.output.write(text)

        return handler

    return dispatcher.register(name, title, usage, build)


__all__ = (
    "helper",
)
