"""Console output formatting utilities for assetflow."""

from __future__ import annotations

import sys
from typing import Iterable, Optional

GREEN_CHECK = "✓"
RED_CROSS = "✗"


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_header(self, title: str) -> None:
        """Print a section header."""
        print(f"\n{title}")
        print("-" * len(title))

    def print_run_started(
        self,
        project: str,
        unit_count: int,
        threads: int,
        watch: bool,
        production: bool,
    ) -> None:
        """Print run start information."""
        mode = "production" if production else "development"
        print("\nBUILD STARTED")
        print(f"Project: {project}")
        print(f"Units: {unit_count}")
        print(f"Threads: {threads}")
        print(f"Mode: {mode}{' (watching)' if watch else ''}")
        print()

    def print_scheduled(self, unit: str, asset_type: str) -> None:
        """Print scheduling decision (debug only)."""
        self.print_debug(f"(Scheduler) scheduling {asset_type} compile step for {unit}")

    def print_compile_start(self, unit: str, asset_type: str) -> None:
        print(f"⟲ [{unit}] starting {asset_type} compilation...")

    def print_compile_done(self, unit: str, asset_type: str, status: str) -> None:
        suffix = " (unchanged)" if status == "unchanged" else ""
        print(f"{GREEN_CHECK} [{unit}] {asset_type} finished{suffix}")

    def print_failure(
        self,
        unit: str,
        asset_type: str,
        reason: str,
    ) -> None:
        """
        Print compile failure message.

        Args:
            unit: Failing unit name
            asset_type: Asset type of the failing job
            reason: Failure reason/error message
        """
        print(f"{RED_CROSS} [{unit}] {asset_type} compilation FAILED", file=sys.stderr)
        if self.debug:
            print(f"Error details: {reason}", file=sys.stderr)
        else:
            # Show first line of error for non-debug mode
            error_line = reason.split('\n')[0] if reason else "Unknown error"
            print(f"Error: {error_line}", file=sys.stderr)

    def print_recompiling(self, unit: str, asset_type: str) -> None:
        print(f"===> Recompiling {unit} ({asset_type})")

    def print_watching(self) -> None:
        print()
        print(f"{GREEN_CHECK} Compilation completed - watching files...")
        print()

    def print_watch_error(self, unit: str, asset_type: str, error: object) -> None:
        print(f"{RED_CROSS} [{unit}] {asset_type} watcher failed: {error}", file=sys.stderr)

    def print_plan(self, asset_type: str, stages: list[list[str]]) -> None:
        """Print the dependency stages of one asset type."""
        self.print_header(f"{asset_type} ({sum(len(s) for s in stages)} units)")
        if not stages:
            print("  (nothing to compile)")
        for idx, stage in enumerate(stages):
            print(f"  Stage {idx + 1}: {', '.join(stage)}")

    def print_results(self, results: dict[str, str]) -> None:
        """Print final results summary."""
        print("\n" + "=" * 40)
        print("RESULTS")
        print("=" * 40)
        for job, status in results.items():
            print(f"  {job}: {status.upper()}")

    def print_summary(self, success: bool, failures: Iterable[object] = ()) -> None:
        print()
        if success:
            print(f"{GREEN_CHECK} Assets compiled successfully")
        else:
            print(f"{RED_CROSS} COMPILATION FAILED - please check errors in output above", file=sys.stderr)
            for failure in failures:
                print(f"  {failure}".split("\n")[0], file=sys.stderr)
        print()

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: BaseException) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
