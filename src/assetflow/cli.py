# cli.py
from __future__ import annotations

import sys
from pathlib import Path

import click

from assetflow.errors import AssetflowError, ConfigurationError
from assetflow.model import active_types
from assetflow.runner import DEFAULT_PROJECT_FILE, load_project, make_config, plan, run_build
from assetflow.ui.console import Console, get_console, set_console


def discover_project(project_arg: str | None) -> Path:
    """
    Discover the project file from argument or default.

    Raises:
        SystemExit: If the project file cannot be found
    """
    console = get_console()

    project_path = Path(project_arg) if project_arg else Path(DEFAULT_PROJECT_FILE)
    if not project_path.exists() and project_path.suffix != ".py":
        project_path = Path(str(project_path) + ".py")
    if not project_path.exists():
        console.print_error(
            "Project file not found",
            f"Could not find project file: {project_path}",
            suggestion=f"Create {DEFAULT_PROJECT_FILE} or specify a different path:\n  assetflow build --project my_project.py",
        )
        sys.exit(1)
    return project_path


def _load(ctx, project: str | None, **options):
    console = get_console()
    project_path = discover_project(project)
    try:
        config = make_config(**options)
        return project_path, load_project(project_path), config
    except AssetflowError as e:
        console.print_error("Invalid project", str(e))
    except Exception as e:
        console.print_error(
            "Failed to load project",
            f"Could not load project from {project_path}",
            details=[str(e)],
        )
        if ctx.obj.get("debug", False):
            console.print_exception(e)
    sys.exit(1)


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and scheduling decisions)",
)
@click.pass_context
def cli(ctx, debug):
    """assetflow: incremental, dependency-aware asset builds."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@click.option("--project", default=None, help=f"Project file path (defaults to {DEFAULT_PROJECT_FILE})")
@click.option("--unit", "-u", "units", multiple=True, help="Build only this unit and its dependencies (repeatable)")
@click.option("--watch", "-w", is_flag=True, default=False, help="Keep watching sources and recompile on change")
@click.option("--production", "-P", is_flag=True, default=False, help="Production build (skips e2e assets)")
@click.option("--threads", "-t", default=None, type=int, envvar="ASSETFLOW_THREADS", help="Maximum number of parallel compile jobs")
@click.pass_context
def build(ctx, project, units, watch, production, threads):
    """Compile all assets in dependency order."""
    console = get_console()
    project_path, proj, config = _load(
        ctx,
        project,
        watch=watch,
        production=production,
        max_parallelism=threads,
        roots=list(units),
    )

    try:
        console.print_run_started(
            project=project_path.name,
            unit_count=len(proj.units),
            threads=config.max_parallelism,
            watch=config.watch,
            production=config.production,
        )

        outcome = run_build(proj, config, handle_signals=config.watch)

        console.print_results(outcome.results)
        console.print_summary(outcome.success, outcome.failures)
        if not outcome.success:
            sys.exit(1)

    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except ConfigurationError as e:
        console.print_error("Invalid project", str(e))
        sys.exit(1)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command(name="plan")
@click.option("--project", default=None, help=f"Project file path (defaults to {DEFAULT_PROJECT_FILE})")
@click.option("--unit", "-u", "units", multiple=True, help="Plan only this unit and its dependencies (repeatable)")
@click.option("--production", "-P", is_flag=True, default=False, help="Production build (skips e2e assets)")
@click.pass_context
def plan_cmd(ctx, project, units, production):
    """Show compile stages per asset type without compiling."""
    console = get_console()
    _, proj, config = _load(ctx, project, production=production, roots=list(units))

    try:
        stages = plan(proj, config)
    except ConfigurationError as e:
        console.print_error("Invalid project", str(e))
        sys.exit(1)

    for asset_type in active_types(config.production):
        console.print_plan(asset_type.value, stages[asset_type])


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
