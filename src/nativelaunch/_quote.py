"""Quote-if-needed for command lines that a shell will parse."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class ShellDialect:
    """Characters a shell treats specially and how to neutralize them.

    ``escapes`` are applied in order before wrapping in ``quote``; an escape
    character that is itself escaped must come first.
    """

    name: str
    dangerous: frozenset[str]
    escapes: tuple[tuple[str, str], ...]
    quote: str


# Inside a quoted token cmd treats ^ & | < > ( ) literally, so only % and "
# need escaping. %% collapses to % in batch files only: on a plain
# ``cmd /c`` line it reaches the program doubled.
CMD = ShellDialect(
    name="cmd",
    dangerous=frozenset(' \t&|<>^%()"'),
    escapes=(("%", "%%"), ('"', '""')),
    quote='"',
)

POSIX = ShellDialect(
    name="posix",
    dangerous=frozenset(" \t\n&|<>;()$`\\\"'*?[]#~=%!{}"),
    escapes=(("'", "'\"'\"'"),),
    quote="'",
)


def quote_if_needed(arg: str, dialect: ShellDialect = CMD) -> str:
    """Return ``arg`` unchanged when safe, else escaped and quoted."""
    if not arg:
        return dialect.quote * 2
    if not any(ch in dialect.dangerous for ch in arg):
        return arg
    for raw, escaped in dialect.escapes:
        arg = arg.replace(raw, escaped)
    return f"{dialect.quote}{arg}{dialect.quote}"


def join_command(argv: Iterable[str], dialect: ShellDialect = CMD) -> str:
    return " ".join(quote_if_needed(a, dialect) for a in argv)
