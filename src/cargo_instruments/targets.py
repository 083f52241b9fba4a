"""Resolve, validate, and locate the build target to profile."""

from __future__ import annotations

import warnings
from collections.abc import Iterable
from pathlib import Path

from .errors import TargetError
from .model import Bench, Bin, BuildResult, BuildTarget, CompiledArtifact, DeclaredTarget, Example, Main, Test


def resolve_target(
    *,
    example: str | None = None,
    bin: str | None = None,
    bench: str | None = None,
    harness: str | None = None,
    test: str | None = None,
) -> BuildTarget:
    """
    Build the target from the CLI selectors.

    The CLI makes `--example/--bin/--bench/--harness` mutually exclusive. If
    several are set anyway, precedence is example > bin > bench > harness, and
    a `UserWarning` names the selectors that were ignored.
    """
    selected = [(flag, v) for flag, v in (("example", example), ("bin", bin), ("bench", bench), ("harness", harness)) if v]
    if len(selected) > 1:
        ignored = ", ".join(f"--{flag} {v}" for flag, v in selected[1:])
        warnings.warn(f"multiple targets selected; using --{selected[0][0]} {selected[0][1]}, ignoring {ignored}", stacklevel=2)

    if example:
        return Example(example)
    if bin:
        return Bin(bin)
    if bench:
        return Bench(bench)
    if harness:
        return Test(harness, test or "")
    return Main()


def _matches(target: BuildTarget, declared: DeclaredTarget) -> bool:
    if isinstance(target, Main):
        return "bin" in declared.kind
    if isinstance(target, Bin):
        return "bin" in declared.kind and declared.name == target.name
    if isinstance(target, Example):
        return "example" in declared.kind and declared.name == target.name
    if isinstance(target, Bench):
        return "bench" in declared.kind and declared.name == target.name
    if isinstance(target, Test):
        return "test" in declared.kind and declared.name == target.harness
    raise AssertionError(f"Unhandled target: {target!r}")


def validate_target(target: BuildTarget, declared: Iterable[DeclaredTarget]) -> None:
    """Fail fast if `target` is not declared by the selected package(s)."""
    if not any(_matches(target, d) for d in declared):
        raise TargetError(f"missing target {target}")


def _find_harness(result: BuildResult, name: str) -> Path | None:
    for target_name, path in result.tests:
        if target_name == name:
            return path
    return None


def select_artifact(target: BuildTarget, result: BuildResult) -> CompiledArtifact:
    """Collapse the build result to the single executable to profile."""
    if isinstance(target, Bench):
        path = _find_harness(result, target.name)
        if path is None:
            raise TargetError(f"no benchmark harness '{target.name}' found in build output")
        return CompiledArtifact(path=path, kind="bench")
    if isinstance(target, Test):
        path = _find_harness(result, target.harness)
        if path is None:
            raise TargetError(f"no test harness '{target.harness}' found in build output")
        return CompiledArtifact(path=path, kind="test")

    binaries = list(result.binaries)
    if not binaries:
        raise TargetError(f"no targets found for {target}")
    if len(binaries) > 1:
        raise TargetError(f"unexpectedly built multiple targets: {[str(p) for p in binaries]}")
    return CompiledArtifact(path=binaries[0], kind="binary")
