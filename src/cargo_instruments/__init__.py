"""Profile Cargo targets with Xcode Instruments.

This package builds a single binary, example, benchmark, or test harness with
cargo and records a trace of it with `xcrun xctrace` (or the legacy
`instruments` binary on older macOS), writing the `.trace` file under
`target/instruments/` unless an explicit output path is given.
"""

from __future__ import annotations

__version__ = "0.4.8"
