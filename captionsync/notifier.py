"""Filesystem notifications for a single caption artifact."""

import logging
import os
import threading
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[str], None]

class _ArtifactEventHandler(FileSystemEventHandler):
    """Forwards events that land on one file; everything else in the directory is ignored."""

    def __init__(self, path: str, on_change: ChangeCallback):
        super().__init__()
        self.path = path
        self.on_change = on_change

    def _matches(self, candidate) -> bool:
        if not candidate:
            return False
        if isinstance(candidate, bytes):
            candidate = os.fsdecode(candidate)
        return os.path.abspath(candidate) == self.path

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            self.on_change(self.path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            self.on_change(self.path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Atomic writes show up as a temp file moved onto the artifact
        if not event.is_directory and self._matches(event.dest_path):
            self.on_change(self.path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory and self._matches(event.src_path):
            self.on_change(self.path)

class Subscription:
    """A live watch on one path. ``cancel`` stops it and may be called repeatedly."""

    def __init__(self, path: str, observer):
        self.path = path
        self._observer = observer
        self._lock = threading.Lock()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join()
        logger.debug(f"Stopped watching {self.path}")

class ChangeNotifier:
    """Creates one watchdog observer per subscription."""

    def __init__(self, observer_factory=Observer):
        self.observer_factory = observer_factory

    def subscribe(self, path: str, on_change: ChangeCallback) -> Subscription:
        """
        Calls ``on_change(path)`` from the observer thread whenever the file at
        ``path`` is created, modified, replaced or deleted.

        The parent directory has to exist; the file itself does not, so a
        session can wait for captions that have not been transcribed yet.
        """
        path = os.path.abspath(path)
        directory = os.path.dirname(path)
        handler = _ArtifactEventHandler(path, on_change)
        observer = self.observer_factory()
        observer.schedule(handler, directory, recursive=False)
        observer.start()
        logger.debug(f"Watching {path} for changes")
        return Subscription(path, observer)
