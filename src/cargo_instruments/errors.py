"""Error taxonomy for a profiling run.

Every error is terminal for the run; the CLI prints it and exits non-zero.
"""

from __future__ import annotations


class CargoInstrumentsError(Exception):
    """Base error carrying an optional remediation hint."""

    hint: str | None

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        msg = super().__str__()
        if self.hint:
            return f"{msg}\nHint: {self.hint}"
        return msg


class ToolchainError(CargoInstrumentsError):
    """A required external tool (or a supported macOS) is missing."""


class VersionParseError(CargoInstrumentsError):
    """The macOS version string could not be parsed."""


class TargetError(CargoInstrumentsError):
    """The requested build target is missing or ambiguous."""


class TemplateListError(CargoInstrumentsError):
    """The template listing command failed or produced unexpected output."""


class BuildError(CargoInstrumentsError):
    """Cargo failed to describe or compile the project."""


class ProfilingError(CargoInstrumentsError):
    """The profiler exited non-zero, or the trace could not be opened."""
