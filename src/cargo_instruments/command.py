from __future__ import annotations

import os
import subprocess
from collections.abc import Sequence
from pathlib import Path

from .model import ToolVariant


def find_tty(pid: int | None = None) -> str | None:
    """Return the controlling terminal device of `pid` (default: this process).

    `ps` reports `?`/`??` for processes without a terminal; that, an empty
    answer, or a failing `ps` all yield None.
    """
    pid = os.getpid() if pid is None else pid
    try:
        proc = subprocess.run(["ps", "otty=", str(pid)], capture_output=True, check=False)
    except FileNotFoundError:
        return None
    if proc.returncode != 0:
        return None
    return tty_device(proc.stdout.decode(errors="replace"))


def tty_device(ps_output: str) -> str | None:
    tokens = ps_output.split()
    if not tokens or set(tokens[0]) == {"?"}:
        return None
    return f"/dev/{tokens[0]}"


def profiling_command(
    variant: ToolVariant,
    *,
    template_name: str,
    trace_path: Path,
    time_limit: int | None,
    target_path: Path,
    target_args: Sequence[str] = (),
    tty: str | None = None,
) -> list[str]:
    """
    Build the profiler argv for a tool generation.

    xctrace:

        xcrun xctrace record --template T [--time-limit Nms] --output TRACE
            [--target-stdin TTY --target-stdout TTY] --launch -- TARGET ARGS...

    legacy instruments:

        instruments -t T -D TRACE [-l N] TARGET ARGS...
    """
    if variant == "xctrace":
        cmd = ["xcrun", "xctrace", "record", "--template", template_name]
        if time_limit is not None:
            cmd += ["--time-limit", f"{time_limit}ms"]
        cmd += ["--output", str(trace_path)]
        # Route the target's stdin/stdout to the user's terminal.
        if tty is not None:
            cmd += ["--target-stdin", tty, "--target-stdout", tty]
        cmd += ["--launch", "--"]
    elif variant == "instruments":
        cmd = ["instruments", "-t", template_name, "-D", str(trace_path)]
        if time_limit is not None:
            cmd += ["-l", str(time_limit)]
    else:
        raise AssertionError(f"Unhandled tool variant: {variant}")

    return [*cmd, str(target_path), *target_args]
