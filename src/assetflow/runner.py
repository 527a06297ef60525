# runner.py
from __future__ import annotations

import runpy
import signal
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError

from .compiler import CommandCompiler
from .dag import UnitRegistry, select_units
from .dsl import Project, asset_type_of, fill_types
from .errors import ConfigurationError
from .executor import Executor, PoolExecutor
from .model import AssetType, RunConfig, RunOutcome, Unit, active_types
from .scheduler import Scheduler, StopRequested
from .ui.console import get_console

DEFAULT_PROJECT_FILE = "assetflow_project.py"


# ----------------------------------------------------------------------
# Project loading (local file/module)
# ----------------------------------------------------------------------

def load_project(path: str | Path) -> Project:
    """
    Load a project from a python file path.

    The file must define one of:
      - project_definition() -> Project | List[Unit]
      - PROJECT = project(...)
      - UNITS = [Unit, ...]  (optionally COMMANDS = {"ts": "...", ...})
    """
    project_path = Path(path).expanduser().resolve()
    if not project_path.exists():
        raise ConfigurationError(f"Project file not found: {project_path}")
    if project_path.suffix != ".py":
        raise ConfigurationError(f"Project file must be a .py file, got: {project_path.name}")

    module_name = f"assetflow_project_{project_path.stem}"
    globals_dict = runpy.run_path(str(project_path), run_name=module_name)

    loaded: Any = None
    if "project_definition" in globals_dict and callable(globals_dict["project_definition"]):
        loaded = globals_dict["project_definition"]()
    elif "PROJECT" in globals_dict:
        loaded = globals_dict["PROJECT"]
    elif "UNITS" in globals_dict:
        loaded = globals_dict["UNITS"]

    if isinstance(loaded, Project):
        project = loaded
    elif isinstance(loaded, list):
        project = Project(units=loaded)
    else:
        raise ConfigurationError(
            "Project file must define project_definition(), PROJECT or UNITS",
            {"file": project_path.name},
        )

    if not all(isinstance(u, Unit) for u in project.units):
        raise ConfigurationError("Project units must all be Unit objects (use assetflow.unit(...))")

    extra = globals_dict.get("COMMANDS")
    if extra:
        project.commands.update(_parse_commands(extra))

    _anchor(project, project_path.parent)
    fill_types(project.units)
    return project


def _parse_commands(raw: Mapping[Any, str]) -> Dict[AssetType, str]:
    try:
        return {asset_type_of(k): str(v) for k, v in raw.items()}
    except ValueError as e:
        raise ConfigurationError(str(e)) from e


def _anchor(project: Project, base_dir: Path) -> None:
    # relative unit paths are relative to the project file
    for u in project.units:
        if not u.path.is_absolute():
            u.path = (base_dir / u.path).resolve()
        if u.assets is not None and not u.assets.is_absolute():
            u.assets = (base_dir / u.assets).resolve()


def make_config(**options: Any) -> RunConfig:
    """Build a RunConfig, dropping unset (None) options so defaults apply."""
    try:
        return RunConfig(**{k: v for k, v in options.items() if v is not None})
    except ValidationError as e:
        problems = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        raise ConfigurationError("Invalid run configuration", {"problems": "; ".join(problems)}) from e


def build_registry(units: List[Unit], config: RunConfig) -> UnitRegistry:
    fill_types(units)
    return UnitRegistry(select_units(units, config.roots))


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def plan(project: Project, config: RunConfig) -> Dict[AssetType, List[List[str]]]:
    """Dependency stages per active asset type. Compiles nothing."""
    registry = build_registry(project.units, config)
    return {t: registry.type_graph(t).stages() for t in active_types(config.production)}


def run_build(
    project: Project,
    config: RunConfig,
    *,
    executor: Optional[Executor] = None,
    handle_signals: bool = False,
) -> RunOutcome:
    """
    Compile the project. Batch mode returns when done or on the first failure;
    watch mode returns once stopped (SIGINT/SIGTERM when handle_signals).
    """
    console = get_console()
    registry = build_registry(project.units, config)

    if executor is None:
        compiler = CommandCompiler(project.commands, verbose=console.debug)
        executor = PoolExecutor(compiler, max_workers=config.max_parallelism)

    scheduler = Scheduler(executor, registry, config)
    previous = {}
    if handle_signals:
        def _stop(signum, frame):
            console.print_info(f"\nReceived signal {signum}, stopping...")
            scheduler.post(StopRequested())

        for sig in (signal.SIGINT, signal.SIGTERM):
            previous[sig] = signal.signal(sig, _stop)

    try:
        outcome = scheduler.run()
    finally:
        scheduler.stop()
        for sig, handler in previous.items():
            signal.signal(sig, handler)
        # in-flight jobs finish, their results are discarded
        executor.shutdown()

    return outcome
