from __future__ import annotations

import json
import subprocess
from pathlib import Path
from typing import Any

import pytest

from cargo_instruments import cargo
from cargo_instruments.config import CargoOpts
from cargo_instruments.errors import BuildError, TargetError, ToolchainError
from cargo_instruments.model import Bench, Bin, Example, Main, Test


def _metadata(root: Path) -> dict[str, Any]:
    return {
        "workspace_root": str(root),
        "workspace_members": ["tries 0.1.0 (path+file:///w/tries)", "helper 0.1.0 (path+file:///w/helper)"],
        "target_directory": str(root / "target"),
        "version": 1,
        "packages": [
            {
                "name": "tries",
                "id": "tries 0.1.0 (path+file:///w/tries)",
                "manifest_path": str(root / "tries" / "Cargo.toml"),
                "targets": [
                    {"name": "tries", "kind": ["bin"], "src_path": "src/main.rs"},
                    {"name": "parse", "kind": ["bench"], "src_path": "benches/parse.rs"},
                ],
            },
            {
                "name": "helper",
                "id": "helper 0.1.0 (path+file:///w/helper)",
                "manifest_path": str(root / "helper" / "Cargo.toml"),
                "targets": [{"name": "mandelbrot", "kind": ["example"]}],
            },
        ],
    }


@pytest.fixture(autouse=True)
def _cargo_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CARGO", "/opt/cargo/bin/cargo")


def test_cargo_command_prefers_env() -> None:
    assert cargo.cargo_command() == "/opt/cargo/bin/cargo"


def test_cargo_command_missing(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.delenv("CARGO")
    monkeypatch.setenv("PATH", str(tmp_path))
    with pytest.raises(ToolchainError):
        cargo.cargo_command()


def test_parse_metadata(tmp_path: Path) -> None:
    meta = cargo.parse_metadata(_metadata(tmp_path))
    assert meta.workspace_root == tmp_path
    assert [p.name for p in meta.packages] == ["tries", "helper"]
    assert [t.name for t in meta.packages[0].targets] == ["tries", "parse"]
    assert meta.packages[0].targets[1].kind == ("bench",)


def test_parse_metadata_rejects_unexpected_shape(tmp_path: Path) -> None:
    obj = _metadata(tmp_path)
    del obj["packages"][0]["targets"]
    obj["workspace_root"] = 3
    with pytest.raises(BuildError) as excinfo:
        cargo.parse_metadata(obj)
    assert "workspace_root" in str(excinfo.value)
    assert "targets" in str(excinfo.value)


def test_load_metadata_runs_cargo(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        return subprocess.CompletedProcess(cmd, 0, stdout=json.dumps(_metadata(tmp_path)).encode(), stderr=b"")

    monkeypatch.setattr(cargo.subprocess, "run", fake_run)
    meta = cargo.load_metadata(tmp_path / "Cargo.toml")
    assert meta.workspace_root == tmp_path
    assert calls == [
        [
            "/opt/cargo/bin/cargo",
            "metadata",
            "--format-version",
            "1",
            "--no-deps",
            "--manifest-path",
            str(tmp_path / "Cargo.toml"),
        ]
    ]


def test_load_metadata_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        cargo.subprocess,
        "run",
        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 101, stdout=b"", stderr=b"could not find Cargo.toml"),
    )
    with pytest.raises(BuildError, match="could not find Cargo.toml"):
        cargo.load_metadata()


def test_select_packages(tmp_path: Path) -> None:
    meta = cargo.parse_metadata(_metadata(tmp_path))

    assert [p.name for p in cargo.select_packages(meta, package="helper")] == ["helper"]
    with pytest.raises(TargetError, match="nope"):
        cargo.select_packages(meta, package="nope")

    by_manifest = cargo.select_packages(meta, package=None, manifest_path=tmp_path / "tries" / "Cargo.toml")
    assert [p.name for p in by_manifest] == ["tries"]

    (tmp_path / "tries" / "src").mkdir(parents=True)
    (tmp_path / "tries" / "Cargo.toml").write_text("[package]\nname = 'tries'\n")
    by_cwd = cargo.select_packages(meta, package=None, cwd=tmp_path / "tries" / "src")
    assert [p.name for p in by_cwd] == ["tries"]

    # Virtual workspace root: search every member.
    (tmp_path / "Cargo.toml").write_text("[workspace]\nmembers = ['tries', 'helper']\n")
    all_members = cargo.select_packages(meta, package=None, cwd=tmp_path)
    assert [p.name for p in all_members] == ["tries", "helper"]
    assert [t.name for t in cargo.declared_targets(all_members)] == ["tries", "parse", "mandelbrot"]


@pytest.mark.parametrize(
    ("target", "tail"),
    [
        (Main(), []),
        (Bin("helper"), ["--bin", "helper"]),
        (Example("mandelbrot"), ["--example", "mandelbrot"]),
        (Bench("parse"), ["--bench", "parse"]),
        (Test("integration", "round_trip"), ["--test", "integration"]),
    ],
)
def test_build_command_target_filters(target, tail: list[str]) -> None:
    cmd = cargo.build_command(CargoOpts(target=target, profile="dev"))
    assert cmd == ["/opt/cargo/bin/cargo", "build", "--message-format=json-render-diagnostics", "--profile", "dev", *tail]


def test_build_command_all_options() -> None:
    opts = CargoOpts(
        target=Example("mandelbrot"),
        profile="release",
        package="helper",
        features=("im", "svg"),
        all_features=True,
        no_default_features=True,
        manifest_path=Path("/w/Cargo.toml"),
    )
    assert cargo.build_command(opts) == [
        "/opt/cargo/bin/cargo",
        "build",
        "--message-format=json-render-diagnostics",
        "--manifest-path",
        "/w/Cargo.toml",
        "--package",
        "helper",
        "--profile",
        "release",
        "--features",
        "im,svg",
        "--all-features",
        "--no-default-features",
        "--example",
        "mandelbrot",
    ]


def _artifact(name: str, kind: list[str], exe: str | None, *, test: bool = False) -> str:
    return json.dumps(
        {
            "reason": "compiler-artifact",
            "target": {"name": name, "kind": kind},
            "profile": {"test": test},
            "executable": exe,
        }
    )


def test_parse_build_messages() -> None:
    lines = [
        _artifact("libc", ["lib"], None),
        _artifact("build-script-build", ["custom-build"], "/w/target/debug/build/x/build-script-build"),
        _artifact("tries", ["bin"], "/w/target/debug/tries"),
        _artifact("parse", ["bench"], "/w/target/release/deps/parse-abc", test=True),
        _artifact("integration", ["test"], "/w/target/debug/deps/integration-def", test=True),
        json.dumps({"reason": "build-finished", "success": True}),
        "not json",
        "{broken",
    ]
    result = cargo.parse_build_messages(lines)
    assert result.binaries == (Path("/w/target/debug/tries"),)
    assert result.tests == (
        ("parse", Path("/w/target/release/deps/parse-abc")),
        ("integration", Path("/w/target/debug/deps/integration-def")),
    )


def test_build_runs_cargo_and_parses(monkeypatch: pytest.MonkeyPatch) -> None:
    out = "\n".join([_artifact("tries", ["bin"], "/w/target/debug/tries")]).encode()
    calls: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        calls.append(cmd)
        assert kwargs["stdout"] == subprocess.PIPE
        return subprocess.CompletedProcess(cmd, 0, stdout=out)

    monkeypatch.setattr(cargo.subprocess, "run", fake_run)
    result = cargo.build(CargoOpts(target=Main(), profile="dev"))
    assert result.binaries == (Path("/w/target/debug/tries"),)
    assert calls[0][1] == "build"


def test_build_failure_is_build_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cargo.subprocess, "run", lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 101, stdout=b""))
    with pytest.raises(BuildError, match="could not compile bin/helper.rs"):
        cargo.build(CargoOpts(target=Bin("helper"), profile="dev"))
