"""Debounced, single-flight regeneration driven by watchdog events."""

from __future__ import annotations

import logging
import queue
import time
from pathlib import Path
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import SiteError, WatchError

LOGGER = logging.getLogger(__name__)

WATCHED_EVENT_TYPES = frozenset({"created", "modified", "deleted", "moved"})
_STOP = object()


class ChangeHandler(FileSystemEventHandler):
    def __init__(self, notify: Callable[[FileSystemEvent], None]) -> None:
        super().__init__()
        self._notify = notify

    def on_any_event(self, event: FileSystemEvent) -> None:
        # opened/closed events fire when the generator itself reads sources
        if event.event_type not in WATCHED_EVENT_TYPES:
            return
        self._notify(event)


class RegenerationLoop:
    """Sequential consumer that turns bursts of change events into rebuilds.

    After the first event of a burst the loop keeps draining the queue until
    it has been quiet for ``debounce_seconds`` (or ``max_wait_seconds`` have
    passed), then calls ``rebuild`` once on its own thread. Events that
    arrive while a rebuild runs stay queued and lead to exactly one more
    rebuild, so at most one rebuild is ever in flight.
    """

    def __init__(
        self,
        rebuild: Callable[[], object],
        debounce_seconds: float = 0.1,
        max_wait_seconds: float = 2.0,
        poll_seconds: float = 0.5,
        health_check: Callable[[], bool] | None = None,
    ) -> None:
        self._rebuild = rebuild
        self._debounce_seconds = debounce_seconds
        self._max_wait_seconds = max(max_wait_seconds, debounce_seconds)
        self._poll_seconds = poll_seconds
        self._health_check = health_check
        self._events: queue.Queue[object] = queue.Queue()
        self.runs = 0

    def notify(self, event: object = None) -> None:
        self._events.put(event)

    def stop(self) -> None:
        self._events.put(_STOP)

    def _check_health(self) -> None:
        if self._health_check is not None and not self._health_check():
            raise WatchError("Filesystem watcher stopped unexpectedly")

    def _wait_for_change(self) -> bool:
        while True:
            try:
                item = self._events.get(timeout=self._poll_seconds)
            except queue.Empty:
                self._check_health()
                continue
            return item is not _STOP

    def _settle(self) -> tuple[int, bool]:
        count = 1
        deadline = time.monotonic() + self._max_wait_seconds
        while True:
            timeout = min(self._debounce_seconds, deadline - time.monotonic())
            if timeout <= 0:
                return count, True
            try:
                item = self._events.get(timeout=timeout)
            except queue.Empty:
                return count, True
            if item is _STOP:
                return count, False
            count += 1

    def regenerate(self) -> bool:
        self.runs += 1
        try:
            self._rebuild()
        except SiteError as exc:
            LOGGER.error("Error regenerating site: %s", exc)
            return False
        except Exception:
            LOGGER.exception("Unexpected error regenerating site")
            return False
        return True

    def run(self) -> None:
        """Block until stop() is called; WatchError ends the loop."""
        while self._wait_for_change():
            count, keep_running = self._settle()
            if not keep_running:
                break
            LOGGER.info("Changes detected (%d events), regenerating site...", count)
            self.regenerate()
            self._check_health()


class SiteWatcher:
    def __init__(self, paths: list[Path]) -> None:
        self._paths = [Path(path) for path in paths]
        self._observer: Observer | None = None

    def start(self, notify: Callable[[FileSystemEvent], None]) -> None:
        if self._observer is not None:
            return
        observer = Observer()
        handler = ChangeHandler(notify)
        try:
            for path in self._paths:
                if not path.is_dir():
                    raise WatchError(f"Watch directory does not exist or is not a directory: {path}")
                observer.schedule(handler, str(path), recursive=True)
            observer.start()
        except OSError as exc:
            raise WatchError(f"Cannot watch {', '.join(map(str, self._paths))}: {exc}") from exc
        self._observer = observer
        LOGGER.info("Watching %s", ", ".join(map(str, self._paths)))

    def is_alive(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def stop(self) -> None:
        observer = self._observer
        if observer is not None:
            observer.stop()
            observer.join(timeout=5.0)
            self._observer = None
