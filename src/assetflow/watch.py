"""
Watch mode: observe unit source folders and report debounced changes.

Nothing in here touches job state. Observer and timer threads only call the
`on_change(asset_type, unit)` callback, which the scheduler turns into a
message for its control loop.
"""

from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .model import AssetType, Unit
from .ui.console import get_console

DEBOUNCE_SECONDS = 0.5

_RELEVANT_EVENTS = {"created", "modified", "deleted", "moved"}

ChangeCallback = Callable[[AssetType, str], None]


class Debouncer:
    """Collapses a burst of triggers into one callback, `delay` seconds after the last one."""

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()

    def trigger(self) -> None:
        """Register an event. Resets the debounce timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()

            self._timer = threading.Timer(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._timer is not None

    def _fire(self) -> None:
        with self._lock:
            if self._timer is None:
                return
            self._timer = None
        self.callback()

    def cancel(self) -> None:
        """Cancel any pending debounce timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None


class WatchHandle(FileSystemEventHandler):
    """Watch on one (asset type, unit) source folder."""

    def __init__(
        self,
        unit: str,
        asset_type: AssetType,
        directory: Path,
        on_change: ChangeCallback,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        on_lost: Optional[Callable[[WatchHandle], None]] = None,
    ):
        super().__init__()
        self.unit = unit
        self.asset_type = asset_type
        self.directory = directory
        # events before the watch is fully established are not changes
        self.ready = False
        self.closed = False
        self.watch = None
        self._debouncer = Debouncer(debounce_seconds, self._fire)
        self._on_change = on_change
        self._on_lost = on_lost

    def is_relevant(self, event: FileSystemEvent) -> bool:
        if event.event_type not in _RELEVANT_EVENTS:
            return False
        if event.is_directory:
            # folder removal/rename may drop sources; folder "modified" is just noise
            return event.event_type in ("deleted", "moved")
        paths = [os.fsdecode(event.src_path)]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(os.fsdecode(dest))
        return any(p.endswith(self.asset_type.watch_suffixes) for p in paths)

    def on_any_event(self, event: FileSystemEvent) -> None:
        if not self.ready or self.closed:
            return
        if self._is_root_gone(event):
            self._lose(event)
            return
        if not self.is_relevant(event):
            return
        get_console().print_debug(
            f"(Watch) [{self.unit}] {self.asset_type.value} {event.event_type}: {os.fsdecode(event.src_path)}"
        )
        self._debouncer.trigger()

    def _is_root_gone(self, event: FileSystemEvent) -> bool:
        if event.event_type not in ("deleted", "moved"):
            return False
        return Path(os.fsdecode(event.src_path)) == self.directory

    def _lose(self, event: FileSystemEvent) -> None:
        # the watched folder itself went away: this watch can never fire again
        get_console().print_watch_error(
            self.unit, self.asset_type.value, OSError(f"watch folder {event.event_type}: {self.directory}")
        )
        self.close()
        if self._on_lost is not None:
            self._on_lost(self)

    def _fire(self) -> None:
        if self.closed:
            return
        self._on_change(self.asset_type, self.unit)

    def close(self) -> None:
        self.closed = True
        self.ready = False
        self._debouncer.cancel()


class WatchRegistry:
    """
    All watches of one scheduler run. `close_all()` releases every one of them.
    """

    def __init__(
        self,
        on_change: ChangeCallback,
        *,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        observer_factory: Callable[[], Observer] = Observer,
    ):
        self._on_change = on_change
        self.debounce_seconds = debounce_seconds
        self._observer_factory = observer_factory
        self._observer: Optional[Observer] = None
        self._handles: Dict[Tuple[AssetType, str], WatchHandle] = {}

    def __len__(self) -> int:
        return len(self._handles)

    def get(self, asset_type: AssetType, unit: str) -> Optional[WatchHandle]:
        return self._handles.get((asset_type, unit))

    def register(self, unit: Unit, asset_type: AssetType) -> Optional[WatchHandle]:
        """
        Start watching the unit's folder for this asset type.
        A watch that cannot be established is reported and closed; returns None.
        """
        key = (asset_type, unit.name)
        if key in self._handles:
            return self._handles[key]

        directory = unit.assets_dir / asset_type.watch_subdir
        handle = WatchHandle(
            unit.name,
            asset_type,
            directory,
            self._on_change,
            debounce_seconds=self.debounce_seconds,
            on_lost=self._forget,
        )

        try:
            if not directory.is_dir():
                raise FileNotFoundError(f"watch folder not found: {directory}")
            observer = self._ensure_observer()
            handle.watch = observer.schedule(handle, str(directory), recursive=True)
        except OSError as e:
            get_console().print_watch_error(unit.name, asset_type.value, e)
            handle.close()
            return None

        handle.ready = True
        self._handles[key] = handle
        get_console().print_debug(f"(Watch) [{unit.name}] watching {directory}")
        return handle

    def _forget(self, handle: WatchHandle) -> None:
        # runs on the observer thread; close_all() unschedules what is left
        key = (handle.asset_type, handle.unit)
        if self._handles.get(key) is handle:
            self._handles.pop(key, None)

    def _ensure_observer(self) -> Observer:
        if self._observer is None:
            observer = self._observer_factory()
            observer.daemon = True
            observer.start()
            self._observer = observer
        return self._observer

    def close_all(self) -> None:
        for handle in list(self._handles.values()):
            handle.close()
        self._handles.clear()

        if self._observer is not None:
            self._observer.unschedule_all()
            self._observer.stop()
            if self._observer is not threading.current_thread():
                self._observer.join()
            self._observer = None
