"""
Quoting for generated launcher scripts.

POSIX shell and Windows batch quoting are unrelated algorithms. A launcher
picks one of them and never mixes the two.
"""

from __future__ import annotations

import re
import shlex
from typing import Sequence

# Characters that never need quoting in a batch file line.
_BATCH_SAFE_RE = re.compile(r"^[A-Za-z0-9_\-+=/\\:.,@]+$")


def posix_quote(args: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in args)


def batch_quote_arg(arg: str) -> str:
    if any(c in arg for c in "\r\n\0"):
        raise ValueError(f"Cannot represent {arg!r} in a batch file")
    if arg and _BATCH_SAFE_RE.match(arg):
        return arg
    # Inside double quotes only % (variable expansion) and " itself are special.
    # Characters like & | < > ^ have no safe unquoted escape, so always quote.
    escaped = arg.replace("%", "%%").replace('"', '""')
    return f'"{escaped}"'


def batch_quote(args: Sequence[str]) -> str:
    return " ".join(batch_quote_arg(a) for a in args)
