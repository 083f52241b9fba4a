from __future__ import annotations

from datetime import datetime
from pathlib import Path


def trace_dir(workspace_root: Path) -> Path:
    return workspace_root / "target" / "instruments"


def trace_timestamp(now: datetime) -> str:
    """Format `now` as `YYYY-MM-DD_HHMMSS-mmm` (millisecond resolution)."""
    return f"{now.strftime('%Y-%m-%d_%H%M%S')}-{now.microsecond // 1000:03d}"


def trace_filename(target_path: Path, template_name: str, now: datetime) -> str:
    stem = target_path.stem
    if not stem:
        raise ValueError(f"invalid target path {target_path}")
    return f"{stem}_{template_name.replace(' ', '-')}_{trace_timestamp(now)}.trace"


def plan_trace_path(
    *,
    target_path: Path,
    template_name: str,
    explicit_path: Path | None,
    workspace_root: Path,
    now: datetime | None = None,
) -> Path:
    """
    Return where the trace should be written.

    An explicit path is returned unchanged (Instruments appends a new run if the
    trace already exists). Otherwise the trace goes under
    `<workspace_root>/target/instruments/`, which is created if missing.
    """
    if explicit_path is not None:
        return explicit_path

    out_dir = trace_dir(workspace_root)
    out_dir.mkdir(parents=True, exist_ok=True)
    return out_dir / trace_filename(target_path, template_name, now or datetime.now())
