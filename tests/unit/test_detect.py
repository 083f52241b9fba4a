from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from cargo_instruments import detect
from cargo_instruments.errors import ToolchainError, VersionParseError
from cargo_instruments.model import MacosVersion


def test_parse_macos_version_full_and_truncated() -> None:
    assert detect.parse_macos_version("2.3.4") == MacosVersion(2, 3, 4)
    assert detect.parse_macos_version("11.1") == MacosVersion(11, 1, 0)
    assert detect.parse_macos_version("11") == MacosVersion(11, 0, 0)
    assert detect.parse_macos_version("10.15.7\n") == MacosVersion(10, 15, 7)


@pytest.mark.parametrize("text", ["11.2.3.4", "eleven", "11.x", "11..2", "", "11.2-beta"])
def test_parse_macos_version_rejects_malformed(text: str) -> None:
    with pytest.raises(VersionParseError):
        detect.parse_macos_version(text)


def test_version_ordering_against_threshold() -> None:
    assert MacosVersion(11, 2, 0) >= detect.XCTRACE_MIN_MACOS
    assert MacosVersion(10, 15, 0) >= detect.XCTRACE_MIN_MACOS
    assert MacosVersion(10, 14, 6) < detect.XCTRACE_MIN_MACOS


def test_detect_tool_selects_xctrace_on_modern_macos() -> None:
    version = detect.parse_macos_version("11.2")
    assert version == MacosVersion(11, 2, 0)
    assert detect.detect_tool(version, exists=lambda p: p == detect.CLT_GIT_PATH) == "xctrace"


def test_detect_tool_selects_legacy_binary_on_old_macos() -> None:
    version = MacosVersion(10, 14, 6)
    assert detect.detect_tool(version, exists=lambda p: p == detect.INSTRUMENTS_BINARY_PATH) == "instruments"


def test_detect_tool_does_not_fall_back_across_generations() -> None:
    # Legacy binary present on a modern OS without Command Line Tools is not usable.
    with pytest.raises(ToolchainError) as excinfo:
        detect.detect_tool(MacosVersion(12, 0, 0), exists=lambda p: p == detect.INSTRUMENTS_BINARY_PATH)
    assert "Command Line Tools" in str(excinfo.value)

    with pytest.raises(ToolchainError):
        detect.detect_tool(MacosVersion(10, 13, 0), exists=lambda p: p == detect.CLT_GIT_PATH)


def test_macos_version_runs_sw_vers(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout=b"13.4.1\n", stderr=b"")

    monkeypatch.setattr(detect.subprocess, "run", fake_run)
    assert detect.macos_version() == MacosVersion(13, 4, 1)
    assert calls == [["sw_vers", "-productVersion"]]


def test_macos_version_failure_is_toolchain_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        detect.subprocess,
        "run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 1, stdout=b"", stderr=b"boom"),
    )
    with pytest.raises(ToolchainError) as excinfo:
        detect.macos_version()
    assert excinfo.value.hint == detect._INSTALL_HINT
    assert "xcode-select --install" in str(excinfo.value)


def test_detect_composes_probe_and_version(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(detect, "macos_version", lambda: MacosVersion(14, 0, 0))
    monkeypatch.setattr(detect, "CLT_GIT_PATH", tmp_path / "git")
    with pytest.raises(ToolchainError):
        detect.detect()
