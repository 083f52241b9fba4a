from __future__ import annotations

import subprocess
from pathlib import Path

from .errors import ProfilingError
from .model import TraceOutcome


def _decode_or(data: bytes, placeholder: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return placeholder


def run_profile(cmd: list[str], *, trace_path: Path) -> TraceOutcome:
    """Run the profiler to completion.

    Output is captured for error reporting only. On success the precomputed
    trace path is returned as-is; the file itself is not inspected.
    """
    try:
        proc = subprocess.run(cmd, capture_output=True, check=False)
    except FileNotFoundError as e:
        raise ProfilingError(f"instruments errored: {cmd[0]} not found") from e

    if proc.returncode != 0:
        stderr = _decode_or(proc.stderr, "failed to capture stderr")
        stdout = _decode_or(proc.stdout, "failed to capture stdout")
        raise ProfilingError(f"instruments errored: {stderr} {stdout}")

    return TraceOutcome(trace_path=trace_path, command=tuple(cmd))


def open_trace(trace_path: Path) -> None:
    """Open the trace in Instruments.app."""
    try:
        proc = subprocess.run(["open", str(trace_path)], check=False)
    except FileNotFoundError as e:
        raise ProfilingError(f"failed to open trace file {trace_path}: `open` not found") from e
    if proc.returncode != 0:
        raise ProfilingError(f"failed to open trace file {trace_path}")
