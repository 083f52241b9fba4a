"""Cargo-style status lines on stderr."""

from __future__ import annotations

import shlex
import sys
from typing import TextIO

_GREEN = "\x1b[1;32m"
_RED = "\x1b[1;31m"
_CYAN = "\x1b[1;36m"
_RESET = "\x1b[0m"


def _stream(stream: TextIO | None) -> TextIO:
    return stream if stream is not None else sys.stderr


def _paint(text: str, color: str, stream: TextIO) -> str:
    isatty = getattr(stream, "isatty", None)
    if isatty is not None and isatty():
        return f"{color}{text}{_RESET}"
    return text


def status(verb: str, detail: str, *, stream: TextIO | None = None) -> None:
    """Print `   Profiling detail` with the verb right-aligned to 12 columns."""
    out = _stream(stream)
    print(f"{_paint(verb.rjust(12), _GREEN, out)} {detail}", file=out)


def error(message: str, *, stream: TextIO | None = None) -> None:
    out = _stream(stream)
    print(f"{_paint('error', _RED, out)}: {message}", file=out)


def command(argv: list[str], *, stream: TextIO | None = None) -> None:
    """Echo an external command (used with --verbose)."""
    out = _stream(stream)
    print(f"{_paint('Running'.rjust(12), _CYAN, out)} `{shlex.join(argv)}`", file=out)
