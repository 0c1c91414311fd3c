import sys

from rich.pretty import pprint

from subroute import *

dispatcher = Dispatcher(
    sys.stdout,
    ErrorHandling.EXIT,
    "usage: main.py [flags] <command> [args]\n\nflags:\n{{flags}}\ncommands:\n{{commands}}",
    notfound=lambda name: f"unknown command {name!r}, try 'main.py help'\n",
)


@dispatcher.command("greet", "print a greeting", "usage: greet [flags] NAME\n\nflags:\n{{flags}}")
def greet(flags):
    loud = flags.boolean("loud", False, "shout the greeting")
    times = flags.integer("n", 1, "repeat the greeting `count` times")

    def handler():
        text = "hello, %s" % (flags.arg(0) or "world")
        for _ in range(times.value):
            flags.output.write((text.upper() + "!" if loud.value else text) + "\n")

    return handler


@dispatcher.command("inspect", "pretty-print the dispatcher", "usage: inspect\n")
def inspect(flags):
    return lambda: pprint(dispatcher)


helper(dispatcher, "help", "show help for a command", "usage: help [command]\n")


if __name__ == '__main__':
    invoke(dispatcher)
