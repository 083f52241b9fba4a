from __future__ import annotations

import argparse
import sys
from pathlib import Path

from . import __version__, app
from .config import AppConfig

EPILOG = """example:
    cargo instruments -t time    Profile main binary with the (recommended) Time Profiler.
"""


def _positive_int(v: str) -> int:
    n = int(v)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"expected a positive number of milliseconds, got {v}")
    return n


def build_parser() -> argparse.ArgumentParser:
    """Build the `cargo instruments` CLI parser."""
    parser = argparse.ArgumentParser(
        prog="cargo instruments",
        description="Profile a binary with Xcode Instruments. By default, builds and profiles your main binary.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-l", "--list-templates", action="store_true", help="List available templates.")
    parser.add_argument(
        "-t",
        "--template",
        dest="template_name",
        metavar="TEMPLATE",
        default=None,
        help="Instruments template to run (full name or alias: time, alloc, io, sys).",
    )
    parser.add_argument("-p", "--package", metavar="NAME", default=None, help="Package in which to look for the target.")

    target = parser.add_mutually_exclusive_group()
    target.add_argument("--example", metavar="NAME", default=None, help="Example binary to run.")
    target.add_argument("--bin", metavar="NAME", default=None, help="Binary to run.")
    target.add_argument("--bench", metavar="NAME", default=None, help="Benchmark target to run.")
    target.add_argument("--harness", metavar="NAME", default=None, help="Test harness target to run.")
    parser.add_argument("--test", metavar="NAME", default=None, help="Test to run within --harness.")

    parser.add_argument("--release", action="store_true", help="Build with the release profile.")
    parser.add_argument("--profile", metavar="NAME", default=None, help="Build with the named cargo profile.")
    parser.add_argument(
        "-o",
        "--output",
        dest="trace_filepath",
        type=Path,
        metavar="PATH",
        default=None,
        help="Output .trace file (default: target/instruments/{name}_{template}_{date}.trace). "
        "If the file exists, a new run is added.",
    )
    parser.add_argument(
        "--time-limit",
        type=_positive_int,
        metavar="MILLIS",
        default=None,
        help="Limit recording time (ms); the program is terminated when exceeded.",
    )
    # Opening is the default; `--open` is still accepted and has no effect.
    parser.add_argument("--open", action="store_true", help=argparse.SUPPRESS)
    parser.add_argument("--no-open", action="store_true", help="Do not open the trace file in Instruments.app.")
    parser.add_argument("--features", metavar="FEATURES", default=None, help="Features to pass to cargo.")
    parser.add_argument("--manifest-path", type=Path, metavar="PATH", default=None, help="Path to Cargo.toml.")
    parser.add_argument("--all-features", action="store_true", help="Activate all features.")
    parser.add_argument("--no-default-features", action="store_true", help="Do not activate default features.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print the external commands being run.")
    parser.add_argument(
        "target_args",
        nargs=argparse.REMAINDER,
        metavar="ARGS",
        help="Arguments passed to the target binary. Use `--` before flags.",
    )
    return parser


def parse_config(argv: list[str] | None = None) -> AppConfig:
    parser = build_parser()
    args = list(argv) if argv is not None else sys.argv[1:]
    # cargo invokes subcommands as `cargo-instruments instruments ...`.
    if args and args[0] == "instruments":
        args = args[1:]
    ns = parser.parse_args(args)

    if not ns.list_templates and ns.template_name is None:
        parser.error("the following arguments are required: -t/--template (or pass --list-templates)")
    if ns.release and ns.profile is not None:
        parser.error("argument --release: not allowed with argument --profile")
    if ns.test is not None and ns.harness is None:
        parser.error("argument --test: requires --harness")

    target_args = list(ns.target_args)
    if target_args and target_args[0] == "--":
        target_args = target_args[1:]

    return AppConfig(
        template_name=ns.template_name,
        list_templates=ns.list_templates,
        package=ns.package,
        example=ns.example,
        bin=ns.bin,
        bench=ns.bench,
        harness=ns.harness,
        test=ns.test,
        release=ns.release,
        profile=ns.profile,
        trace_filepath=ns.trace_filepath,
        time_limit=ns.time_limit,
        no_open=ns.no_open,
        features=ns.features,
        manifest_path=ns.manifest_path,
        all_features=ns.all_features,
        no_default_features=ns.no_default_features,
        target_args=tuple(target_args),
        verbose=ns.verbose,
    )


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint. Returns process exit code."""
    return app.run(parse_config(argv))


if __name__ == "__main__":
    raise SystemExit(main())
