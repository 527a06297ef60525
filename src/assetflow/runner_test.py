"""Tests for project loading, planning and whole runs (including the CLI)."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from assetflow.cli import cli
from assetflow.errors import ConfigurationError
from assetflow.model import AssetType
from assetflow.runner import load_project, make_config, plan, run_build

PROJECT = """
from assetflow import project, unit

def project_definition():
    return project(
        unit("core", "ts", "less"),
        unit("widgets", "ts", needs=["core"]),
        unit("app", "ts", "css", needs=["widgets"]),
        unit("tools", "ts"),
        ts="{ts}",
        less="exit 0",
        css="exit 3",
    )
"""


def write_project(tmp_path: Path, ts: str = "exit 0", body: str = PROJECT) -> Path:
    path = tmp_path / "assetflow_project.py"
    path.write_text(textwrap.dedent(body.replace("{ts}", ts)))
    return path


def test_load_project_definition(tmp_path: Path) -> None:
    proj = load_project(write_project(tmp_path))

    assert [u.name for u in proj.units] == ["core", "widgets", "app", "tools"]
    assert proj.commands[AssetType.CSS] == "exit 3"
    # unit paths are anchored at the project file
    assert proj.units[0].path == (tmp_path / "core").resolve()


def test_load_units_and_commands_constants(tmp_path: Path) -> None:
    path = write_project(tmp_path, body="""
        from assetflow import unit

        UNITS = [unit("a", "less")]
        COMMANDS = {"less": "lessc main.less"}
    """)

    proj = load_project(path)

    assert [u.name for u in proj.units] == ["a"]
    assert proj.commands == {AssetType.LESS: "lessc main.less"}


def test_load_project_without_definition(tmp_path: Path) -> None:
    path = write_project(tmp_path, body="X = 1\n")
    with pytest.raises(ConfigurationError, match="must define"):
        load_project(path)


def test_load_missing_project(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="not found"):
        load_project(tmp_path / "nope.py")


def test_make_config_validates() -> None:
    assert make_config(max_parallelism=None).max_parallelism >= 1
    with pytest.raises(ConfigurationError, match="Invalid run configuration"):
        make_config(max_parallelism=0)


def test_plan_per_asset_type(tmp_path: Path) -> None:
    proj = load_project(write_project(tmp_path))

    stages = plan(proj, make_config(production=True, roots=["app"]))

    assert list(stages) == [AssetType.TS, AssetType.LESS, AssetType.CSS]
    assert stages[AssetType.TS] == [["core"], ["widgets"], ["app"]]
    assert stages[AssetType.LESS] == [["core"]]
    assert stages[AssetType.CSS] == [["app"]]


def test_run_build_batch_success(tmp_path: Path) -> None:
    proj = load_project(write_project(tmp_path))

    outcome = run_build(proj, make_config(max_parallelism=2))

    assert outcome.success
    assert outcome.results == {
        "ts:core": "changed",
        "ts:widgets": "changed",
        "ts:app": "changed",
        "ts:tools": "changed",
        "less:core": "changed",
        "css:app": "unchanged",
    }


def test_run_build_batch_failure_names_unit(tmp_path: Path) -> None:
    proj = load_project(write_project(tmp_path, ts="test {unit} != widgets"))

    outcome = run_build(proj, make_config(max_parallelism=1))

    assert not outcome.success
    assert [f.unit for f in outcome.failures] == ["widgets"]
    assert "ts:app" not in outcome.results


def test_cli_build(tmp_path: Path) -> None:
    path = write_project(tmp_path)

    result = CliRunner().invoke(cli, ["build", "--project", str(path), "-t", "2"])

    assert result.exit_code == 0, result.output
    assert "Assets compiled successfully" in result.output
    assert "ts:app: CHANGED" in result.output


def test_cli_build_failure_exit_code(tmp_path: Path) -> None:
    path = write_project(tmp_path, ts="exit 1")

    result = CliRunner().invoke(cli, ["build", "--project", str(path)])

    assert result.exit_code == 1


def test_cli_plan(tmp_path: Path) -> None:
    path = write_project(tmp_path)

    result = CliRunner().invoke(cli, ["plan", "--project", str(path), "-u", "widgets"])

    assert result.exit_code == 0, result.output
    assert "Stage 1: core" in result.output
    assert "Stage 2: widgets" in result.output
    assert "app" not in result.output


def test_cli_unknown_unit(tmp_path: Path) -> None:
    path = write_project(tmp_path)

    result = CliRunner().invoke(cli, ["plan", "--project", str(path), "-u", "nope"])

    assert result.exit_code == 1


def test_asset_types_probed_next_to_project_file(tmp_path: Path, monkeypatch) -> None:
    repo = tmp_path / "repo"
    (repo / "core" / "assets" / "ts").mkdir(parents=True)
    (repo / "core" / "assets" / "ts" / "app.ts").write_text("export {}")
    path = write_project(repo, body="""
        from assetflow import unit

        UNITS = [unit("core")]
    """)
    monkeypatch.chdir(tmp_path)

    proj = load_project(path)

    assert proj.units[0].types == frozenset({AssetType.TS})
    assert plan(proj, make_config())[AssetType.TS] == [["core"]]
