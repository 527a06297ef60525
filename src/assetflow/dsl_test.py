"""Tests for the project-file helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from assetflow.dsl import Project, build, command, fill_types, probe_asset_types, project, unit
from assetflow.model import AssetType


def test_probe_asset_types(tmp_path: Path) -> None:
    assets = tmp_path / "assets"
    (assets / "ts").mkdir(parents=True)
    (assets / "ts" / "app.ts").write_text("export {}")
    (assets / "e2e" / "specs").mkdir(parents=True)
    (assets / "e2e" / "specs" / "login.ts").write_text("")
    (assets / "less").mkdir()
    (assets / "less" / "main.less").write_text("")
    (assets / "css").mkdir()
    (assets / "css" / "imports.css").write_text("")

    assert probe_asset_types(assets) == frozenset(AssetType)


def test_probe_missing_folder(tmp_path: Path) -> None:
    assert probe_asset_types(tmp_path / "nope") == frozenset()


def test_probe_partial(tmp_path: Path) -> None:
    (tmp_path / "ts").mkdir()
    (tmp_path / "ts" / "other.ts").write_text("")   # no app.ts entry
    (tmp_path / "theme.less").write_text("")

    assert probe_asset_types(tmp_path) == frozenset({AssetType.LESS})


def test_unit_with_explicit_types() -> None:
    u = unit("app", "ts", AssetType.LESS, needs=["core"])

    assert u.types == frozenset({AssetType.TS, AssetType.LESS})
    assert u.dependencies == ["core"]
    assert u.path == Path("app")
    assert u.assets_dir == Path("app") / "assets"


def test_unit_rejects_unknown_type() -> None:
    with pytest.raises(ValueError, match="Unknown asset type 'sass'"):
        unit("app", "sass")


def test_builder() -> None:
    u = build("app").with_types("ts").depends_on("core", "lib").at("plugins/app").with_assets("web").build()

    assert u.types == frozenset({AssetType.TS})
    assert u.dependencies == ["core", "lib"]
    assert u.path == Path("plugins/app")
    assert u.assets_dir == Path("web")


def test_project_collects_commands() -> None:
    p = project(
        unit("core", "ts"),
        commands=[command("less", "lessc main.less")],
        ts="npx tsc",
    )

    assert isinstance(p, Project)
    assert [u.name for u in p.units] == ["core"]
    assert p.commands == {AssetType.LESS: "lessc main.less", AssetType.TS: "npx tsc"}


def test_unit_types_probed_later(tmp_path: Path) -> None:
    u = unit("app", path=tmp_path / "app")
    assert u.types is None

    (tmp_path / "app" / "assets" / "less").mkdir(parents=True)
    (tmp_path / "app" / "assets" / "less" / "main.less").write_text("")
    fill_types([u])

    assert u.types == frozenset({AssetType.LESS})
