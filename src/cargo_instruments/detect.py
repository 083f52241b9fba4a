"""Detect which generation of Xcode Instruments is installed."""

from __future__ import annotations

import re
import subprocess
from collections.abc import Callable
from pathlib import Path

from .errors import ToolchainError, VersionParseError
from .model import MacosVersion, ToolVariant

XCTRACE_MIN_MACOS = MacosVersion(10, 15, 0)

# Homebrew's install script uses the same marker to detect the Command Line Tools.
CLT_GIT_PATH = Path("/Library/Developer/CommandLineTools/usr/bin/git")
INSTRUMENTS_BINARY_PATH = Path("/usr/bin/instruments")

_NUMERIC_RE = re.compile(r"[0-9]+")
_INSTALL_HINT = "Install the Xcode Command Line Tools: xcode-select --install"


def parse_macos_version(text: str) -> MacosVersion:
    """Parse `sw_vers -productVersion` output.

    Truncated versions are zero-padded, so `"11.2"` parses as `11.2.0` and
    `"11"` as `11.0.0`.
    """
    s = text.strip()
    parts = s.split(".")
    if len(parts) > 3:
        raise VersionParseError(f"invalid version: {s!r}")
    if not all(_NUMERIC_RE.fullmatch(p) for p in parts):
        raise VersionParseError(f"cannot parse version: {s!r}")
    nums = [int(p) for p in parts] + [0] * (3 - len(parts))
    return MacosVersion(major=nums[0], minor=nums[1], patch=nums[2])


def macos_version() -> MacosVersion:
    try:
        proc = subprocess.run(["sw_vers", "-productVersion"], capture_output=True, check=False)
    except FileNotFoundError as e:
        raise ToolchainError("macOS version cannot be determined (sw_vers not found)", hint=_INSTALL_HINT) from e
    if proc.returncode != 0:
        raise ToolchainError("macOS version cannot be determined", hint=_INSTALL_HINT)
    return parse_macos_version(proc.stdout.decode(errors="replace"))


def detect_tool(version: MacosVersion, *, exists: Callable[[Path], bool] = Path.exists) -> ToolVariant:
    """Pick the tool generation for `version` given a filesystem probe."""
    if version >= XCTRACE_MIN_MACOS:
        if exists(CLT_GIT_PATH):
            return "xctrace"
    elif exists(INSTRUMENTS_BINARY_PATH):
        return "instruments"
    raise ToolchainError(f"Xcode Instruments is not installed (macOS {version}).", hint=_INSTALL_HINT)


def detect() -> ToolVariant:
    return detect_tool(macos_version())
