"""Sequence a profiling run: detect, build, profile, report."""

from __future__ import annotations

from pathlib import Path

from . import cargo, detect, shell
from .command import find_tty, profiling_command
from .config import AppConfig, CargoOpts
from .errors import CargoInstrumentsError
from .model import BuildTarget, CompiledArtifact, Test, TraceRequest
from .paths import plan_trace_path
from .runner import open_trace, run_profile
from .targets import select_artifact, validate_target
from .templates import list_templates, render_template_catalog, resolve_template_name


def _display_path(path: Path, root: Path) -> str:
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)


def build_target(config: AppConfig, opts: CargoOpts) -> tuple[CompiledArtifact, Path]:
    """Validate and compile the selected target; return it with the workspace root."""
    metadata = cargo.load_metadata(config.manifest_path, verbose=config.verbose)
    packages = cargo.select_packages(metadata, package=config.package, manifest_path=config.manifest_path)
    validate_target(opts.target, cargo.declared_targets(packages))
    result = cargo.build(opts, verbose=config.verbose)
    return select_artifact(opts.target, result), metadata.workspace_root


def trace_request(
    config: AppConfig, target: BuildTarget, artifact: CompiledArtifact, workspace_root: Path
) -> TraceRequest:
    """Resolve the template and trace path; `config.template_name` must be set."""
    if config.template_name is None:
        raise ValueError("template_name is required unless listing templates")
    template_name = resolve_template_name(config.template_name)
    trace_path = plan_trace_path(
        target_path=artifact.path,
        template_name=template_name,
        explicit_path=config.trace_filepath,
        workspace_root=workspace_root,
    )
    target_args = config.target_args
    # libtest takes the test name filter as its first positional argument.
    if isinstance(target, Test) and target.test_name:
        target_args = (target.test_name, *target_args)
    return TraceRequest(
        template_name=template_name,
        trace_path=trace_path,
        time_limit=config.time_limit,
        target_args=tuple(target_args),
        open_trace=config.should_open,
    )


def profile(config: AppConfig) -> None:
    tool = detect.detect()

    if config.list_templates:
        print(render_template_catalog(list_templates(tool)), end="")
        return
    if config.template_name is None:
        raise ValueError("template_name is required unless listing templates")

    opts = config.to_cargo_opts()
    artifact, workspace_root = build_target(config, opts)
    request = trace_request(config, opts.target, artifact, workspace_root)

    shell.status(
        "Profiling",
        f"{_display_path(artifact.path, workspace_root)} with template '{request.template_name}'",
    )
    cmd = profiling_command(
        tool,
        template_name=request.template_name,
        trace_path=request.trace_path,
        time_limit=request.time_limit,
        target_path=artifact.path,
        target_args=request.target_args,
        tty=find_tty() if tool == "xctrace" else None,
    )
    if config.verbose:
        shell.command(cmd)
    outcome = run_profile(cmd, trace_path=request.trace_path)

    shell.status("Trace file", str(outcome.trace_path))

    if request.open_trace:
        open_trace(outcome.trace_path)


def run(config: AppConfig) -> int:
    """Run once and return the process exit code."""
    try:
        profile(config)
    except CargoInstrumentsError as e:
        shell.error(str(e))
        return 1
    return 0
