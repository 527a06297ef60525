# scheduler.py
from __future__ import annotations

import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from functools import partial
from typing import Callable, Dict, List, Optional, Union

from .dag import UnitRegistry
from .executor import Executor
from .model import (
    AssetType,
    CompileRequest,
    CompileResult,
    JobFailure,
    RunConfig,
    RunOutcome,
    active_types,
)
from .tracker import JobTracker
from .ui.console import get_console
from .watch import WatchRegistry

# ----------------------------------------------------------------------
# Control messages
# ----------------------------------------------------------------------
# Everything that happens outside the control thread (a compile finishing,
# a debounced file change, a stop request) arrives as one of these.


@dataclass(frozen=True)
class JobFinished:
    asset_type: AssetType
    unit: str
    result: CompileResult


@dataclass(frozen=True)
class SourcesChanged:
    asset_type: AssetType
    unit: str


@dataclass(frozen=True)
class StopRequested:
    pass


Event = Union[JobFinished, SourcesChanged, StopRequested]

WatchFactory = Callable[[Callable[[AssetType, str], None]], WatchRegistry]


def _result_of(fut: Future) -> CompileResult:
    if fut.cancelled():
        return CompileResult.failed("compile job was cancelled")
    exc = fut.exception()
    if exc is not None:
        return CompileResult.failed(str(exc) or type(exc).__name__)
    result = fut.result()
    if not isinstance(result, CompileResult):
        return CompileResult.failed(f"compile step returned {result!r} instead of a CompileResult")
    return result


class Scheduler:
    """
    Drives one JobTracker per asset type to quiescence on a shared executor.

    All tracker transitions happen on the thread that calls start()/run()/
    process_event(). Other threads only post() messages.

    Batch mode: run() returns once nothing is pending or processing, or on
    the first compile failure. Watch mode: run() keeps going until stop().
    """

    def __init__(
        self,
        executor: Executor,
        registry: UnitRegistry,
        config: RunConfig | None = None,
        *,
        watch_factory: WatchFactory | None = None,
    ):
        self.executor = executor
        self.registry = registry
        self.config = config or RunConfig()

        self.trackers: Dict[AssetType, JobTracker] = {
            t: JobTracker.from_graph(registry.type_graph(t))
            for t in active_types(self.config.production)
        }

        self.watches: Optional[WatchRegistry] = None
        if self.config.watch:
            factory = watch_factory or self._default_watches
            self.watches = factory(self._on_sources_changed)

        self.outcome = RunOutcome()
        self.completed = False
        self.idle = False
        self._events: "queue.Queue[Event]" = queue.Queue()
        self._control_thread: Optional[threading.Thread] = None

    def _default_watches(self, on_change: Callable[[AssetType, str], None]) -> WatchRegistry:
        return WatchRegistry(on_change, debounce_seconds=self.config.debounce_seconds)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Schedule the first round of jobs. Does not block."""
        self._control_thread = threading.current_thread()
        self._schedule_next()

    def run(self, poll_interval: float = 0.2) -> RunOutcome:
        """Start and process messages until the run completes."""
        self.start()
        while not self.completed:
            self.process_event(timeout=poll_interval)
        return self.outcome

    def stop(self) -> None:
        """Close all watches and complete the run. Safe to call from any thread."""
        if self._control_thread is None or threading.current_thread() is self._control_thread:
            self._finish()
        else:
            self.post(StopRequested())

    def post(self, event: Event) -> None:
        self._events.put(event)

    def process_event(self, timeout: float | None = None) -> bool:
        """Handle one queued message. Returns False if none arrived in time."""
        try:
            if timeout is None:
                event = self._events.get_nowait()
            else:
                event = self._events.get(timeout=timeout)
        except queue.Empty:
            return False
        self.dispatch(event)
        return True

    def process_pending(self) -> int:
        """Handle every message queued so far. Returns how many were handled."""
        handled = 0
        while self.process_event():
            handled += 1
        return handled

    def dispatch(self, event: Event) -> None:
        if isinstance(event, JobFinished):
            self._on_job_finished(event)
        elif isinstance(event, SourcesChanged):
            self._on_dirty(event)
        elif isinstance(event, StopRequested):
            self._finish()
        else:
            raise TypeError(f"Unknown scheduler event: {event!r}")

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def _schedule_next(self) -> None:
        """
        One job per asset type per round, in priority order, while capacity lasts.
        No capacity -> back off without trying lower priority types.
        """
        while not self.completed:
            scheduled = False
            for asset_type, tracker in self.trackers.items():
                if not self.executor.has_capacity():
                    return
                name = tracker.next_ready()
                if name is None:
                    continue
                self._submit(asset_type, tracker, name)
                scheduled = True

            if scheduled:
                continue

            if not any(t.has_in_flight() for t in self.trackers.values()):
                self._on_quiescent()
            return

    def _submit(self, asset_type: AssetType, tracker: JobTracker, name: str) -> None:
        unit = self.registry[name]
        request = CompileRequest(
            unit_name=unit.name,
            asset_type=asset_type,
            assets_path=unit.assets_dir,
            dependency_paths=tuple(self.registry[d].path for d in unit.dependencies),
            production=self.config.production,
        )

        get_console().print_scheduled(name, asset_type.value)
        self.idle = False
        tracker.mark_processing(name)
        try:
            fut = self.executor.submit(request)
        except Exception as e:
            self.post(JobFinished(asset_type, name, CompileResult.failed(f"could not submit: {e}")))
            return
        fut.add_done_callback(partial(self._post_result, asset_type, name))

    def _post_result(self, asset_type: AssetType, name: str, fut: Future) -> None:
        # runs on a worker thread: hand the result to the control thread only
        self.post(JobFinished(asset_type, name, _result_of(fut)))

    def _on_sources_changed(self, asset_type: AssetType, name: str) -> None:
        self.post(SourcesChanged(asset_type, name))

    # ------------------------------------------------------------------
    # Message handlers (control thread)
    # ------------------------------------------------------------------

    def _on_job_finished(self, event: JobFinished) -> None:
        console = get_console()
        if self.completed:
            console.print_debug(f"(Scheduler) discarding result of {event.asset_type.value}:{event.unit}")
            return

        tracker = self.trackers[event.asset_type]
        result = event.result
        first = tracker.mark_completed(event.unit, result.output_changed)
        self.outcome.results[f"{event.asset_type.value}:{event.unit}"] = result.status.value

        if first and self.watches is not None:
            self.watches.register(self.registry[event.unit], event.asset_type)

        if result.ok:
            console.print_compile_done(event.unit, event.asset_type.value, result.status.value)
        else:
            failure = JobFailure(event.unit, event.asset_type, result.error or "compile failed")
            self.outcome.failures.append(failure)
            console.print_failure(event.unit, event.asset_type.value, failure.error)
            if not self.config.watch:
                self.outcome.success = False
                self._finish()
                return

        self._schedule_next()

    def _on_dirty(self, event: SourcesChanged) -> None:
        if self.completed:
            return
        tracker = self.trackers.get(event.asset_type)
        if tracker is None or event.unit not in tracker:
            return
        get_console().print_recompiling(event.unit, event.asset_type.value)
        tracker.mark_dirty(event.unit)
        self._schedule_next()

    def _on_quiescent(self) -> None:
        if self.config.watch:
            if not self.idle:
                self.idle = True
                get_console().print_watching()
            return
        self._finish()

    def _finish(self) -> None:
        if self.completed:
            return
        self.completed = True
        if self.watches is not None:
            self.watches.close_all()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def asset_types(self) -> List[AssetType]:
        return list(self.trackers)

    def in_flight(self) -> int:
        return sum(len(t.in_flight()) for t in self.trackers.values())
