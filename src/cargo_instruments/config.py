from __future__ import annotations

import re
from pathlib import Path

import attrs

from .model import BuildTarget
from .targets import resolve_target


@attrs.define(frozen=True, slots=True)
class CargoOpts:
    """Options forwarded to `cargo metadata` / `cargo build`."""

    target: BuildTarget
    profile: str
    package: str | None = None
    features: tuple[str, ...] = ()
    all_features: bool = False
    no_default_features: bool = False
    manifest_path: Path | None = None


def parse_features(features: str | None) -> tuple[str, ...]:
    """Split a `--features` value on whitespace/commas (sorted, de-duplicated)."""
    if not features:
        return ()
    return tuple(sorted({f for f in re.split(r"[\s,]+", features) if f}))


@attrs.define(frozen=True, slots=True)
class AppConfig:
    """Validated command-line configuration for one run."""

    template_name: str | None = None
    list_templates: bool = False
    package: str | None = None
    example: str | None = None
    bin: str | None = None
    bench: str | None = None
    harness: str | None = None
    test: str | None = None
    release: bool = False
    profile: str | None = None
    trace_filepath: Path | None = None
    time_limit: int | None = None
    no_open: bool = False
    features: str | None = None
    manifest_path: Path | None = None
    all_features: bool = False
    no_default_features: bool = False
    target_args: tuple[str, ...] = ()
    verbose: bool = False

    @property
    def should_open(self) -> bool:
        return not self.no_open

    def cargo_profile(self) -> str:
        if self.profile:
            return self.profile
        return "release" if self.release else "dev"

    def get_target(self) -> BuildTarget:
        return resolve_target(example=self.example, bin=self.bin, bench=self.bench, harness=self.harness, test=self.test)

    def to_cargo_opts(self) -> CargoOpts:
        return CargoOpts(
            target=self.get_target(),
            profile=self.cargo_profile(),
            package=self.package,
            features=parse_features(self.features),
            all_features=self.all_features,
            no_default_features=self.no_default_features,
            manifest_path=self.manifest_path,
        )
