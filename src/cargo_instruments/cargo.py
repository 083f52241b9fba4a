"""
Thin adapter over the `cargo` CLI.

- `cargo metadata` provides the workspace root and the declared targets used to
  validate the selection before building.
- `cargo build --message-format=json-render-diagnostics` compiles the selected
  target; `compiler-artifact` messages on stdout report the executables while
  cargo keeps rendering human-readable diagnostics on stderr.
"""

from __future__ import annotations

import json
import os
import shutil
import subprocess
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import attrs
from jsonschema import Draft202012Validator

from . import shell
from .config import CargoOpts
from .errors import BuildError, TargetError, ToolchainError
from .model import Bench, Bin, BuildResult, BuildTarget, DeclaredTarget, Example, Main, Test

CARGO_METADATA_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["packages", "workspace_root", "workspace_members"],
    "properties": {
        "workspace_root": {"type": "string"},
        "workspace_members": {"type": "array", "items": {"type": "string"}},
        "packages": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["name", "id", "manifest_path", "targets"],
                "properties": {
                    "name": {"type": "string"},
                    "id": {"type": "string"},
                    "manifest_path": {"type": "string"},
                    "targets": {
                        "type": "array",
                        "items": {
                            "type": "object",
                            "required": ["name", "kind"],
                            "properties": {
                                "name": {"type": "string"},
                                "kind": {"type": "array", "items": {"type": "string"}},
                            },
                        },
                    },
                },
            },
        },
    },
}


@attrs.define(frozen=True, slots=True)
class CargoPackage:
    name: str
    manifest_path: Path
    targets: tuple[DeclaredTarget, ...]
    is_member: bool = True


@attrs.define(frozen=True, slots=True)
class CargoMetadata:
    workspace_root: Path
    packages: tuple[CargoPackage, ...]


def cargo_command() -> str:
    """Return the cargo executable (`$CARGO` wins, as set by cargo for subcommands)."""
    env = os.environ.get("CARGO")
    if env:
        return env
    found = shutil.which("cargo")
    if found is None:
        raise ToolchainError("cargo not found on PATH", hint="Install Rust via https://rustup.rs or set CARGO.")
    return found


def validate_metadata(obj: Any) -> None:
    validator = Draft202012Validator(CARGO_METADATA_SCHEMA)
    errors = sorted(validator.iter_errors(obj), key=lambda e: e.json_path)
    if errors:
        msg = "\n".join(f"- {e.json_path}: {e.message}" for e in errors[:10])
        raise BuildError(f"unexpected `cargo metadata` output:\n{msg}")


def parse_metadata(obj: Any) -> CargoMetadata:
    validate_metadata(obj)
    members = set(obj["workspace_members"])
    packages = tuple(
        CargoPackage(
            name=p["name"],
            manifest_path=Path(p["manifest_path"]),
            targets=tuple(DeclaredTarget(name=t["name"], kind=tuple(t["kind"])) for t in p["targets"]),
            is_member=p["id"] in members,
        )
        for p in obj["packages"]
    )
    return CargoMetadata(workspace_root=Path(obj["workspace_root"]), packages=packages)


def metadata_command(manifest_path: Path | None) -> list[str]:
    cmd = [cargo_command(), "metadata", "--format-version", "1", "--no-deps"]
    if manifest_path is not None:
        cmd += ["--manifest-path", str(manifest_path)]
    return cmd


def load_metadata(manifest_path: Path | None = None, *, verbose: bool = False) -> CargoMetadata:
    cmd = metadata_command(manifest_path)
    if verbose:
        shell.command(cmd)
    proc = subprocess.run(cmd, capture_output=True, check=False)
    if proc.returncode != 0:
        raise BuildError(f"`cargo metadata` failed:\n{proc.stderr.decode(errors='replace').strip()}")
    try:
        obj = json.loads(proc.stdout)
    except json.JSONDecodeError as e:
        raise BuildError(f"`cargo metadata` produced invalid JSON: {e}") from e
    return parse_metadata(obj)


def _find_manifest(start: Path) -> Path | None:
    for d in (start, *start.parents):
        if (d / "Cargo.toml").is_file():
            return d / "Cargo.toml"
    return None


def select_packages(
    metadata: CargoMetadata,
    *,
    package: str | None,
    manifest_path: Path | None = None,
    cwd: Path | None = None,
) -> list[CargoPackage]:
    """Return the package(s) whose targets are searched for the selection.

    `-p NAME` picks that package. Otherwise the package owning the nearest
    manifest is used; a virtual workspace root falls back to every member.
    """
    if package is not None:
        for p in metadata.packages:
            if p.name == package:
                return [p]
        raise TargetError(f"package `{package}` not found in workspace {metadata.workspace_root}")

    manifest = manifest_path if manifest_path is not None else _find_manifest(cwd or Path.cwd())
    if manifest is not None:
        resolved = manifest.resolve()
        for p in metadata.packages:
            if p.manifest_path.resolve() == resolved:
                return [p]
    return [p for p in metadata.packages if p.is_member]


def declared_targets(packages: Iterable[CargoPackage]) -> list[DeclaredTarget]:
    return [t for p in packages for t in p.targets]


def _target_args(target: BuildTarget) -> list[str]:
    if isinstance(target, Main):
        return []
    if isinstance(target, Bin):
        return ["--bin", target.name]
    if isinstance(target, Example):
        return ["--example", target.name]
    if isinstance(target, Bench):
        return ["--bench", target.name]
    if isinstance(target, Test):
        return ["--test", target.harness]
    raise AssertionError(f"Unhandled target: {target!r}")


def build_command(opts: CargoOpts) -> list[str]:
    cmd = [cargo_command(), "build", "--message-format=json-render-diagnostics"]
    if opts.manifest_path is not None:
        cmd += ["--manifest-path", str(opts.manifest_path)]
    if opts.package is not None:
        cmd += ["--package", opts.package]
    cmd += ["--profile", opts.profile]
    if opts.features:
        cmd += ["--features", ",".join(opts.features)]
    if opts.all_features:
        cmd.append("--all-features")
    if opts.no_default_features:
        cmd.append("--no-default-features")
    return [*cmd, *_target_args(opts.target)]


def parse_build_messages(lines: Iterable[str]) -> BuildResult:
    """Collect executables from `cargo build` JSON messages.

    Harness executables (bench/test kinds, or built with the test profile) are
    keyed by target name; everything else is a primary binary.
    """
    binaries: list[Path] = []
    tests: list[tuple[str, Path]] = []
    for line in lines:
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            msg = json.loads(line)
        except json.JSONDecodeError:
            continue
        if msg.get("reason") != "compiler-artifact" or not msg.get("executable"):
            continue
        target = msg.get("target") or {}
        kinds = set(target.get("kind") or [])
        if "custom-build" in kinds:
            continue
        is_test = bool((msg.get("profile") or {}).get("test"))
        exe = Path(msg["executable"])
        if is_test or kinds & {"bench", "test"}:
            tests.append((str(target.get("name", "")), exe))
        else:
            binaries.append(exe)
    return BuildResult(binaries=tuple(binaries), tests=tuple(tests))


def build(opts: CargoOpts, *, verbose: bool = False) -> BuildResult:
    """Compile the selected target; diagnostics go straight to the user's stderr."""
    cmd = build_command(opts)
    if verbose:
        shell.command(cmd)
    proc = subprocess.run(cmd, stdout=subprocess.PIPE, check=False)
    if proc.returncode != 0:
        raise BuildError(f"could not compile {opts.target} (cargo exited with status {proc.returncode})")
    return parse_build_messages(proc.stdout.decode(errors="replace").splitlines())
