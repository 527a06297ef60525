from .dsl import unit, build, command, project, probe_asset_types, UnitBuilder, Project
from .runner import run_build, load_project
from .model import AssetType, Unit, CompileRequest, CompileResult, RunConfig

__all__ = [
    "unit", "build", "command", "project", "probe_asset_types", "UnitBuilder", "Project",
    "run_build", "load_project",
    "AssetType", "Unit", "CompileRequest", "CompileResult", "RunConfig",
]
