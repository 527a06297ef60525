# compiler.py
from __future__ import annotations

import os
import subprocess
from typing import Dict, Mapping

from .errors import CompileFailure
from .model import AssetType, CompileRequest, CompileResult
from .ui.console import get_console

# A command exits with this code to report "nothing changed" (dependents stay as they are).
UNCHANGED_EXIT_CODE = 3

TOOL_HINTS = {
    "npx": "Install Node.js (includes npx) or fix PATH.",
    "tsc": "Install TypeScript (e.g., npm install -g typescript).",
    "lessc": "Install less (e.g., npm install -g less).",
}


class CommandCompiler:
    """
    Compile backend that runs one shell command per asset type.

    Command templates may use {unit}, {assets}, {deps} and {mode}; the same
    values are exported as ASSETFLOW_* environment variables.
    """

    def __init__(self, commands: Mapping[AssetType, str] | None = None, *, verbose: bool = False):
        self.commands: Dict[AssetType, str] = dict(commands or {})
        self.verbose = verbose

    def __call__(self, request: CompileRequest) -> CompileResult:
        return self.compile(request)

    def compile(self, request: CompileRequest) -> CompileResult:
        console = get_console()
        asset_type = request.asset_type.value
        template = self.commands.get(request.asset_type)
        if not template:
            console.print_debug(f"[{request.unit_name}] no {asset_type} command configured, skipping")
            return CompileResult.unchanged()

        values = _placeholders(request)
        cmd = render_command(template, values)

        env = os.environ.copy()
        env.update({f"ASSETFLOW_{k.upper()}": v for k, v in values.items()})
        env["ASSETFLOW_TYPE"] = asset_type

        console.print_compile_start(request.unit_name, asset_type)
        console.print_debug(f"[{request.unit_name}] executing command '{cmd}'")

        try:
            proc = subprocess.run(
                cmd,
                shell=True,
                cwd=str(request.assets_path) if request.assets_path.is_dir() else None,
                env=env,
                text=True,
                capture_output=True,   # so you can show output on failure
            )
        except OSError as e:
            raise CompileFailure(
                unit=request.unit_name,
                asset_type=asset_type,
                message=f"could not start command: {e}",
                details={"cmd": cmd},
            ) from e

        console.print_debug(f"[{request.unit_name}] {asset_type} return code: {proc.returncode}")
        if self.verbose and proc.stdout:
            console.print_info(proc.stdout.rstrip())

        if proc.returncode == 0:
            return CompileResult.changed()
        if proc.returncode == UNCHANGED_EXIT_CODE:
            return CompileResult.unchanged()

        output = (proc.stderr or proc.stdout or "")[-4000:]
        details = {"cmd": cmd}
        tool = cmd.split()[0] if cmd.split() else ""
        if proc.returncode == 127 and tool in TOOL_HINTS:
            details["hint"] = TOOL_HINTS[tool]
        raise CompileFailure(
            unit=request.unit_name,
            asset_type=asset_type,
            message="command failed",
            exit_code=proc.returncode,
            output=output.rstrip(),
            details=details,
        )


def _placeholders(request: CompileRequest) -> Dict[str, str]:
    return {
        "unit": request.unit_name,
        "assets": str(request.assets_path),
        "deps": os.pathsep.join(str(p) for p in request.dependency_paths),
        "mode": "production" if request.production else "development",
    }


def render_command(template: str, values: Mapping[str, str]) -> str:
    """Substitute the known {placeholders}; any other braces are left for the shell."""
    cmd = template
    for key, value in values.items():
        cmd = cmd.replace("{" + key + "}", value)
    return cmd
