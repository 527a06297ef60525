# tracker.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from .dag import TypeGraph
from .errors import ContractViolation
from .model import AssetType


class JobState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"  # queued or running, at most one per job
    COMPLETED = "completed"


@dataclass
class _Job:
    name: str
    dependencies: Tuple[int, ...] = ()
    dependents: Tuple[int, ...] = ()
    state: JobState = JobState.PENDING
    completed_once: bool = False
    # set by mark_dirty while PROCESSING, applied when the run completes
    dirty: bool = False


class JobTracker:
    """
    Job state machine for one asset type.

    Lifecycle per job:
        pending -> processing -> completed
        completed -> pending   (dependency changed, or sources changed)

    Jobs live in a list; edges are indices into that list.
    """

    def __init__(self, asset_type: AssetType):
        self.asset_type = asset_type
        self._jobs: List[_Job] = []
        self._index: Dict[str, int] = {}

    def __repr__(self) -> str:
        return f"JobTracker({self.asset_type.value}, jobs={len(self._jobs)})"

    @classmethod
    def from_graph(cls, graph: TypeGraph) -> JobTracker:
        tracker = cls(asset_type=graph.asset_type)
        for node in graph.nodes:
            tracker._index[node.name] = len(tracker._jobs)
            tracker._jobs.append(_Job(name=node.name))
        for node in graph.nodes:
            job = tracker._jobs[tracker._index[node.name]]
            job.dependencies = tuple(tracker._index[d] for d in node.dependencies)
            job.dependents = tuple(tracker._index[d] for d in node.dependents)
        return tracker

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._jobs)

    @property
    def names(self) -> List[str]:
        return [j.name for j in self._jobs]

    def state(self, name: str) -> JobState:
        return self._job(name).state

    def has_completed_once(self, name: str) -> bool:
        return self._job(name).completed_once

    def _ready_names(self) -> Iterator[str]:
        for j in self._jobs:
            if j.state is JobState.PENDING and all(
                self._jobs[d].state is JobState.COMPLETED for d in j.dependencies
            ):
                yield j.name

    def ready(self) -> List[str]:
        """Every pending job whose dependencies have all completed, in declaration order."""
        return list(self._ready_names())

    def next_ready(self) -> Optional[str]:
        return next(self._ready_names(), None)

    def in_flight(self) -> List[str]:
        return [j.name for j in self._jobs if j.state is JobState.PROCESSING]

    def has_in_flight(self) -> bool:
        return any(j.state is JobState.PROCESSING for j in self._jobs)

    def is_done(self) -> bool:
        return all(j.state is JobState.COMPLETED for j in self._jobs)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def mark_processing(self, name: str) -> None:
        job = self._job(name)
        if job.state is not JobState.PENDING:
            raise ContractViolation(
                f"[{self.asset_type.value}] cannot start '{name}': state is {job.state.value}, expected pending"
            )
        job.state = JobState.PROCESSING

    def mark_completed(self, name: str, changed: bool) -> bool:
        """
        Finish a processing job. Returns True on the job's first completion.

        If `changed`, completed direct dependents go back to pending;
        pending/processing ones are left alone (they will pick up the new output).
        """
        job = self._job(name)
        if job.state is not JobState.PROCESSING:
            raise ContractViolation(
                f"[{self.asset_type.value}] cannot complete '{name}': state is {job.state.value}, expected processing"
            )

        first = not job.completed_once
        job.completed_once = True

        if job.dirty:
            job.dirty = False
            job.state = JobState.PENDING
        else:
            job.state = JobState.COMPLETED

        if changed:
            for d in job.dependents:
                dependent = self._jobs[d]
                if dependent.state is JobState.COMPLETED:
                    dependent.state = JobState.PENDING

        return first

    def mark_dirty(self, name: str) -> None:
        """Sources changed. A running job is not preempted; it re-runs after it completes."""
        job = self._job(name)
        if job.state is JobState.PROCESSING:
            job.dirty = True
        else:
            job.state = JobState.PENDING

    def _job(self, name: str) -> _Job:
        try:
            return self._jobs[self._index[name]]
        except KeyError:
            raise ContractViolation(f"[{self.asset_type.value}] unknown job: {name}") from None
