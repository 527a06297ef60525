# executor.py
from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, List, Protocol

from .model import CompileRequest, CompileResult

CompileFn = Callable[[CompileRequest], CompileResult]


class Executor(Protocol):
    """
    What the scheduler needs from a worker pool.

    - has_capacity(): fewer than the configured maximum in flight
    - submit(request): accepted immediately whenever has_capacity() was True
    - shutdown(): wait for in-flight work, then release resources
    """

    def has_capacity(self) -> bool: ...

    def submit(self, request: CompileRequest) -> Future[CompileResult]: ...

    def shutdown(self) -> None: ...


class PoolExecutor:
    """
    Thread pool running one compile function per request.

    A job counts as in flight until its future is done, so a pool with
    capacity always has an idle worker for the next submission.
    """

    def __init__(self, compile_fn: CompileFn, max_workers: int):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers
        self._compile_fn = compile_fn
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="assetflow")
        self._pending: List[Future] = []

    @property
    def in_flight(self) -> int:
        self._pending = [f for f in self._pending if not f.done()]
        return len(self._pending)

    def has_capacity(self) -> bool:
        return self.in_flight < self.max_workers

    def submit(self, request: CompileRequest) -> Future[CompileResult]:
        fut = self._pool.submit(self._compile_fn, request)
        self._pending.append(fut)
        return fut

    def shutdown(self) -> None:
        self._pool.shutdown(wait=True)
        self._pending.clear()
