# dsl.py
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from .model import AssetType, Unit

TypeLike = Union[AssetType, str]

# entry file that marks a stylesheet bundle
CSS_ENTRY_FILE = "imports.css"


def asset_type_of(value: TypeLike) -> AssetType:
    if isinstance(value, AssetType):
        return value
    try:
        return AssetType(str(value).lower())
    except ValueError:
        known = ", ".join(t.value for t in AssetType)
        raise ValueError(f"Unknown asset type {value!r} (known: {known})") from None


def probe_asset_types(assets_dir: str | Path) -> frozenset[AssetType]:
    """
    Detect which asset types a unit has from its assets folder layout:
      ts/app.ts          -> ts
      e2e/**/*.ts        -> e2e
      **/*.less          -> less
      css/imports.css    -> css
    """
    root = Path(assets_dir)
    if not root.is_dir():
        return frozenset()

    found = set()
    if (root / "ts" / "app.ts").is_file():
        found.add(AssetType.TS)
    e2e = root / "e2e"
    if e2e.is_dir() and next(e2e.rglob("*.ts"), None) is not None:
        found.add(AssetType.E2E)
    if next(root.rglob("*.less"), None) is not None:
        found.add(AssetType.LESS)
    if (root / "css" / CSS_ENTRY_FILE).is_file():
        found.add(AssetType.CSS)
    return frozenset(found)


def fill_types(units: Iterable[Unit]) -> None:
    """Probe the asset types of every unit declared without explicit ones."""
    for u in units:
        if u.types is None:
            u.types = probe_asset_types(u.assets_dir)


# ---------------------------------------------------------------------
# Functional Unit helper
# ---------------------------------------------------------------------

def unit(
    name: str,
    *types: TypeLike,  # allow: unit("x", "ts", "less")
    needs: Optional[List[str]] = None,
    path: str | Path | None = None,
    assets: str | Path | None = None,
) -> Unit:
    """
    Declare a build unit. Without explicit types they are probed from the assets
    folder once the project is loaded and unit paths are anchored (see fill_types).
    `path` defaults to a folder named after the unit.
    """
    unit_path = Path(path) if path is not None else Path(name)
    assets_path = Path(assets) if assets is not None else None
    resolved = frozenset(asset_type_of(t) for t in types) if types else None

    return Unit(
        name=name,
        types=resolved,
        dependencies=list(needs or []),
        path=unit_path,
        assets=assets_path,
    )


# ---------------------------------------------------------------------
# Builder API
# ---------------------------------------------------------------------

class UnitBuilder:
    def __init__(self, name: str):
        self.name = name
        self._needs: list[str] = []
        self._types: list[AssetType] = []
        self._path: Optional[Path] = None
        self._assets: Optional[Path] = None

    def depends_on(self, *unit_names: str):
        self._needs.extend(unit_names)
        return self

    def with_types(self, *types: TypeLike):
        self._types.extend(asset_type_of(t) for t in types)
        return self

    def at(self, path: str | Path):
        self._path = Path(path)
        return self

    def with_assets(self, assets: str | Path):
        self._assets = Path(assets)
        return self

    def build(self) -> Unit:
        return unit(
            self.name,
            *self._types,
            needs=self._needs,
            path=self._path,
            assets=self._assets,
        )


def build(name: str) -> UnitBuilder:
    """Convenience: build('core').with_types('ts').build()"""
    return UnitBuilder(name)


# ---------------------------------------------------------------------
# Project (single-file story)
# ---------------------------------------------------------------------

@dataclass
class Project:
    units: List[Unit]
    commands: Dict[AssetType, str] = field(default_factory=dict)


def command(asset_type: TypeLike, template: str) -> Dict[AssetType, str]:
    """One compile command template, e.g. command("ts", "npx tsc -p {assets}/ts")."""
    return {asset_type_of(asset_type): template}


def project(*units: Unit, commands: Optional[Iterable[Dict[AssetType, str]]] = None, **by_type: str) -> Project:
    """
    Project definition helper.

    Users can write:
        from assetflow import project, unit

        def project_definition():
            return project(
                unit("core", "ts", "less"),
                unit("app", "ts", needs=["core"]),
                ts="npx tsc -p {assets}/ts",
            )
    """
    merged: Dict[AssetType, str] = {}
    for c in commands or ():
        merged.update(c)
    for key, template in by_type.items():
        merged[asset_type_of(key)] = template
    return Project(units=list(units), commands=merged)
