"""File watchers backed by OS change notifications, with a polling fallback."""

from __future__ import annotations

import errno
import os
import queue
import threading
from collections import Counter

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from fbwatch.poller import Event, NoSuchWatchError, Op, PollingWatcher

_OPS = {
    "created": Op.CREATE,
    "modified": Op.WRITE,
    "deleted": Op.REMOVE,
    "moved": Op.RENAME,
}


class _Handler(FileSystemEventHandler):
    def __init__(self, watcher: EventWatcher) -> None:
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._watcher._dispatch(event)


class EventWatcher:
    """Watch files and directories (one level deep) through OS notifications.

    Changes arrive as :class:`~fbwatch.poller.Event` objects on the queue from
    :meth:`events`.
    """

    def __init__(self) -> None:
        self._events: queue.Queue[Event] = queue.Queue()
        self._errors: queue.Queue[OSError] = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._names: dict[str, str] = {}
        self._dirs: set[str] = set()
        self._scheduled: dict[str, object] = {}
        self._refs: Counter[str] = Counter()
        self._handler = _Handler(self)
        self._observer = Observer()
        self._observer.start()

    def add(self, name: str) -> None:
        """Start watching ``name``."""
        path = os.path.abspath(name)
        with self._lock:
            if self._closed:
                raise RuntimeError("watcher is closed")
            if not os.path.exists(path):
                raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)
            if path in self._names:
                return
            is_dir = os.path.isdir(path)
            target = path if is_dir else os.path.dirname(path)
            if target not in self._scheduled:
                self._scheduled[target] = self._observer.schedule(
                    self._handler, target, recursive=False
                )
            self._refs[target] += 1
            self._names[path] = name
            if is_dir:
                self._dirs.add(path)

    def remove(self, name: str) -> None:
        """Stop watching ``name``."""
        path = os.path.abspath(name)
        with self._lock:
            if self._closed:
                raise RuntimeError("watcher is closed")
            if path not in self._names:
                raise NoSuchWatchError()
            del self._names[path]
            if path in self._dirs:
                self._dirs.discard(path)
                target = path
            else:
                target = os.path.dirname(path)
            self._refs[target] -= 1
            if self._refs[target] <= 0:
                del self._refs[target]
                self._observer.unschedule(self._scheduled.pop(target))

    def close(self) -> None:
        """Stop all watching; the watcher cannot be used afterwards."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._names.clear()
            self._dirs.clear()
            self._scheduled.clear()
            self._refs.clear()
        self._observer.stop()
        self._observer.join()

    def events(self) -> queue.Queue[Event]:
        """Queue of change events."""
        return self._events

    def errors(self) -> queue.Queue[OSError]:
        """Queue of errors reported while watching."""
        return self._errors

    def __enter__(self) -> EventWatcher:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _dispatch(self, event: FileSystemEvent) -> None:
        op = _OPS.get(event.event_type)
        if op is None or (event.is_directory and op is Op.WRITE):
            return
        self._emit(event.src_path, op)
        if event.event_type == "moved":
            self._emit(event.dest_path, Op.CREATE)

    def _emit(self, raw_path, op: Op) -> None:
        path = os.path.abspath(os.fsdecode(raw_path))
        with self._lock:
            name = self._resolve(path)
        if name is not None:
            self._events.put(Event(name, op))

    def _resolve(self, path: str) -> str | None:
        if path in self._names:
            return self._names[path]
        parent = os.path.dirname(path)
        if parent in self._dirs:
            return os.path.join(self._names[parent], os.path.basename(path))
        return None


def new_polling_watcher(interval: float) -> PollingWatcher:
    """Return a watcher that polls every ``interval`` seconds."""
    return PollingWatcher(interval)


def new_event_watcher() -> EventWatcher:
    """Return a watcher driven by OS change notifications."""
    return EventWatcher()


def new_watcher(interval: float) -> EventWatcher | PollingWatcher:
    """Return an event watcher, or a polling watcher if notifications are unavailable."""
    try:
        return new_event_watcher()
    except OSError:
        return new_polling_watcher(interval)