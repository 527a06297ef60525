# model.py
from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, Field


class AssetType(str, Enum):
    """Kinds of assets a unit can carry. Each one gets its own job graph."""
    E2E = "e2e"    # test/integration-language compile
    TS = "ts"      # primary-language compile
    LESS = "less"  # stylesheet compile
    CSS = "css"    # stylesheet-bundle compile

    @property
    def watch_subdir(self) -> str:
        return self.value

    @property
    def watch_suffixes(self) -> Tuple[str, ...]:
        return WATCH_SUFFIXES[self]


# Scheduling priority: longest dependency chains first.
PRIORITY: Tuple[AssetType, ...] = (AssetType.E2E, AssetType.TS, AssetType.LESS, AssetType.CSS)

WATCH_SUFFIXES: Dict[AssetType, Tuple[str, ...]] = {
    AssetType.E2E: (".ts",),
    AssetType.TS: (".ts", ".htm", ".html"),
    AssetType.LESS: (".less",),
    AssetType.CSS: (".css",),
}


def active_types(production: bool) -> List[AssetType]:
    """Asset types in priority order; production builds drop the test type."""
    return [t for t in PRIORITY if not (production and t is AssetType.E2E)]


@dataclass
class Unit:
    """
    A build unit (one project/plugin).

    `dependencies` are declared outgoing edges (unit names).
    `dependents` is the inverse, filled in once by the registry.
    `types` is None until probed from the assets folder.
    """
    name: str
    types: Optional[FrozenSet[AssetType]]
    dependencies: List[str] = field(default_factory=list)
    path: Path = Path(".")
    assets: Optional[Path] = None

    dependents: List[str] = field(default_factory=list, init=False, repr=False)

    @property
    def assets_dir(self) -> Path:
        return self.assets if self.assets is not None else self.path / "assets"

    def has(self, asset_type: AssetType) -> bool:
        return self.types is not None and asset_type in self.types


@dataclass(frozen=True)
class CompileRequest:
    """What the scheduler hands to the executor for one job."""
    unit_name: str
    asset_type: AssetType
    assets_path: Path
    dependency_paths: Tuple[Path, ...] = ()
    production: bool = False


class CompileStatus(str, Enum):
    CHANGED = "changed"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class CompileResult:
    status: CompileStatus
    error: str | None = None

    @classmethod
    def changed(cls) -> CompileResult:
        return cls(CompileStatus.CHANGED)

    @classmethod
    def unchanged(cls) -> CompileResult:
        return cls(CompileStatus.UNCHANGED)

    @classmethod
    def failed(cls, error: str) -> CompileResult:
        return cls(CompileStatus.FAILED, error)

    @property
    def ok(self) -> bool:
        return self.status is not CompileStatus.FAILED

    @property
    def output_changed(self) -> bool:
        # failures count as changed so dependents retry once the failure is fixed
        return self.status is not CompileStatus.UNCHANGED


def default_parallelism() -> int:
    c = os.cpu_count() or 2
    return max(1, c - 1)


class RunConfig(BaseModel):
    """Run configuration consumed by the scheduler."""
    watch: bool = False
    production: bool = False
    max_parallelism: int = Field(default_factory=default_parallelism, ge=1)
    debounce_seconds: float = Field(default=0.5, gt=0)
    roots: List[str] = Field(default_factory=list)


@dataclass(frozen=True)
class JobFailure:
    unit: str
    asset_type: AssetType
    error: str

    def __str__(self) -> str:
        return f"[{self.unit}] {self.asset_type.value}: {self.error}"


@dataclass
class RunOutcome:
    """Result of a whole run. `results` maps "<type>:<unit>" to the last status."""
    success: bool = True
    results: Dict[str, str] = field(default_factory=dict)
    failures: List[JobFailure] = field(default_factory=list)
