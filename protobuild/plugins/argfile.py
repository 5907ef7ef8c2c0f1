from __future__ import annotations

from typing import Iterable, TextIO

_NEEDS_QUOTES = set(" \t\r\n\"'\\#")


def quote_java_argfile_arg(arg: str) -> str:
    """
    Quote one argument for a `java @file` argument file.

    The java launcher splits on whitespace, honours double quotes, treats a
    leading # as a comment and processes backslash escapes inside quotes.
    """
    if arg and not any(c in _NEEDS_QUOTES for c in arg):
        return arg
    escaped = (
        arg.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


class ArgumentFileBuilder:
    def __init__(self) -> None:
        self._args: list[str] = []

    def add(self, arg: str) -> "ArgumentFileBuilder":
        self._args.append(arg)
        return self

    def extend(self, args: Iterable[str]) -> "ArgumentFileBuilder":
        self._args.extend(args)
        return self

    @property
    def args(self) -> list[str]:
        return list(self._args)

    def render(self) -> str:
        return "".join(quote_java_argfile_arg(a) + "\n" for a in self._args)

    def write(self, out: TextIO) -> None:
        out.write(self.render())
