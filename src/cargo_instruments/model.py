from __future__ import annotations

from pathlib import Path
from typing import Literal, Union

import attrs

# "xctrace": `xcrun xctrace` (macOS >= 10.15 with Command Line Tools).
# "instruments": the legacy `/usr/bin/instruments` binary.
ToolVariant = Literal["xctrace", "instruments"]
ArtifactKind = Literal["binary", "bench", "test"]


@attrs.define(frozen=True, slots=True, order=True)
class MacosVersion:
    major: int
    minor: int = 0
    patch: int = 0

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@attrs.define(frozen=True, slots=True)
class TemplateCatalog:
    standard_templates: tuple[str, ...]
    custom_templates: tuple[str, ...] = ()


@attrs.define(frozen=True, slots=True)
class Main:
    def __str__(self) -> str:
        return "src/main.rs"


@attrs.define(frozen=True, slots=True)
class Bin:
    name: str

    def __str__(self) -> str:
        return f"bin/{self.name}.rs"


@attrs.define(frozen=True, slots=True)
class Example:
    name: str

    def __str__(self) -> str:
        return f"examples/{self.name}.rs"


@attrs.define(frozen=True, slots=True)
class Bench:
    name: str

    def __str__(self) -> str:
        return f"bench {self.name}"


@attrs.define(frozen=True, slots=True)
class Test:
    __test__ = False  # not a pytest test class

    harness: str
    test_name: str = ""

    def __str__(self) -> str:
        return f"test {self.harness} {self.test_name}"


BuildTarget = Union[Main, Bin, Example, Bench, Test]


@attrs.define(frozen=True, slots=True)
class DeclaredTarget:
    """A target listed in a package manifest (from `cargo metadata`)."""

    name: str
    kind: tuple[str, ...]


@attrs.define(frozen=True, slots=True)
class CompiledArtifact:
    path: Path
    kind: ArtifactKind


@attrs.define(frozen=True, slots=True)
class BuildResult:
    """Executables reported by `cargo build`.

    `binaries` holds ordinary bin/example executables. `tests` holds
    `(target name, path)` pairs for test and benchmark harnesses.
    """

    binaries: tuple[Path, ...] = ()
    tests: tuple[tuple[str, Path], ...] = ()


@attrs.define(frozen=True, slots=True)
class TraceRequest:
    template_name: str
    trace_path: Path
    time_limit: int | None = None
    target_args: tuple[str, ...] = ()
    open_trace: bool = True


@attrs.define(frozen=True, slots=True)
class TraceOutcome:
    trace_path: Path
    command: tuple[str, ...]
