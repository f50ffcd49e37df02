"""Poll-based file watcher for systems where event-based watching is unavailable."""

from __future__ import annotations

import enum
import errno
import os
import queue
import stat
import threading
from dataclasses import dataclass, field


class Op(enum.Flag):
    """Kinds of change reported for a watched path."""

    CREATE = enum.auto()
    WRITE = enum.auto()
    REMOVE = enum.auto()
    RENAME = enum.auto()
    CHMOD = enum.auto()


@dataclass(frozen=True)
class Event:
    """A change of ``op`` kind to the path ``name``."""

    name: str
    op: Op


class PollerClosedError(RuntimeError):
    """The watcher has been closed."""

    def __init__(self, message: str = "poller is closed") -> None:
        super().__init__(message)


class NoSuchWatchError(LookupError):
    """The path to remove is not being watched."""

    def __init__(self, message: str = "watch does not exist") -> None:
        super().__init__(message)


class WatchExistsError(ValueError):
    """The path is already being watched."""

    def __init__(self, message: str = "watch exists") -> None:
        super().__init__(message)


def _is_dir(info: os.stat_result) -> bool:
    return stat.S_ISDIR(info.st_mode)


def check_change(before: os.stat_result | None, after: os.stat_result | None) -> Op:
    """Compare two stat results of one path; ``Op(0)`` means no change."""
    if before is None and after is not None:
        return Op.CREATE
    if before is not None and after is None:
        return Op.REMOVE
    if before is None or after is None:
        return Op(0)
    if _is_dir(before) or _is_dir(after):
        return Op(0)
    if before.st_mode != after.st_mode:
        return Op.CHMOD
    if before.st_mtime_ns != after.st_mtime_ns or before.st_size != after.st_size:
        return Op.WRITE
    return Op(0)


@dataclass
class _Snapshot:
    """Stat state of a file, or of a directory and its direct entries."""

    info: os.stat_result | None = None
    entries: dict[str, os.stat_result] = field(default_factory=dict)


def _record(path: str) -> _Snapshot:
    try:
        info = os.stat(path)
    except FileNotFoundError:
        return _Snapshot()
    snapshot = _Snapshot(info)
    if _is_dir(info):
        try:
            with os.scandir(path) as entries:
                for entry in entries:
                    try:
                        snapshot.entries[entry.name] = entry.stat(follow_symlinks=False)
                    except FileNotFoundError:
                        continue
        except FileNotFoundError:
            pass
    return snapshot


def _diff(filename: str, before: _Snapshot, after: _Snapshot) -> list[Event]:
    op = check_change(before.info, after.info)
    if op:
        return [Event(filename, op)]
    if before.info is None or not _is_dir(before.info):
        return []
    events = []
    for name in sorted(before.entries.keys() | after.entries.keys()):
        op = check_change(before.entries.get(name), after.entries.get(name))
        if op:
            events.append(Event(os.path.join(filename, name), op))
    return events


class _WatchedItem:
    """A watched file or directory and its last recorded state."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        self.last = _record(filename)

    def poll(self) -> list[Event]:
        try:
            current = _record(self.filename)
        except OSError:
            self.last = _Snapshot()
            raise
        events = _diff(self.filename, self.last, current)
        self.last = current
        return events


class PollingWatcher:
    """Watch files and directories by comparing stat snapshots every ``interval`` seconds.

    Directories are watched one level deep. Changes arrive on the queue from
    :meth:`events`, failures to read a path on the queue from :meth:`errors`.
    """

    def __init__(self, interval: float) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self._watches: dict[str, threading.Event] = {}
        self._events: queue.Queue[Event] = queue.Queue()
        self._errors: queue.Queue[OSError] = queue.Queue()
        self._lock = threading.Lock()
        self._closed = False

    def add(self, name: str) -> None:
        """Start polling ``name`` in a background thread."""
        with self._lock:
            if self._closed:
                raise PollerClosedError()
            item = _WatchedItem(name)
            if item.last.info is None:
                raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), name)
            if name in self._watches:
                raise WatchExistsError()
            stop = threading.Event()
            self._watches[name] = stop
            threading.Thread(
                target=self._watch,
                args=(item, stop),
                name=f"poll:{name}",
                daemon=True,
            ).start()

    def remove(self, name: str) -> None:
        """Stop polling ``name``."""
        with self._lock:
            if self._closed:
                raise PollerClosedError()
            try:
                stop = self._watches.pop(name)
            except KeyError:
                raise NoSuchWatchError() from None
            stop.set()

    def close(self) -> None:
        """Stop every watch; the watcher cannot be used afterwards."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for stop in self._watches.values():
                stop.set()
            self._watches.clear()

    def events(self) -> queue.Queue[Event]:
        """Queue of change events."""
        return self._events

    def errors(self) -> queue.Queue[OSError]:
        """Queue of errors met while polling."""
        return self._errors

    def __enter__(self) -> PollingWatcher:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _watch(self, item: _WatchedItem, stop: threading.Event) -> None:
        while not stop.wait(self.interval):
            try:
                events = item.poll()
            except OSError as exc:
                self._errors.put(exc)
                continue
            for event in events:
                self._events.put(event)