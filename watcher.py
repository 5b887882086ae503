"""
watcher.py

File change notification for the open map file.

``MapSession`` only depends on the small ``FileWatcher`` protocol, so tests
can drive reloads synchronously.  ``QtFileWatcher`` is the real
implementation: editors that save by writing a temp file and renaming it
make ``QFileSystemWatcher`` drop the path, so the path is re-added after
every notification, and bursts of events are coalesced by a single-shot
timer.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional, Protocol

from PyQt6.QtCore import QFileSystemWatcher, QObject, QTimer

from debug_trace import trace

log = logging.getLogger(__name__)


class FileWatcher(Protocol):
    """Collaborator notified when a watched file changes on disk."""

    def watch(self, path: str, on_change: Callable[[], None]) -> None:
        ...

    def stop(self) -> None:
        ...


class QtFileWatcher(QObject):
    """``QFileSystemWatcher`` with debounce and rename recovery.

    Args:
        debounce_ms: Quiet period before ``on_change`` fires.
        parent: Optional Qt parent.
    """

    def __init__(self, debounce_ms: int = 100, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._path: Optional[str] = None
        self._on_change: Optional[Callable[[], None]] = None

        self._fs = QFileSystemWatcher(self)
        self._fs.fileChanged.connect(self._on_file_changed)

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(debounce_ms)
        self._timer.timeout.connect(self._fire)

    @property
    def path(self) -> Optional[str]:
        return self._path

    def watch(self, path: str, on_change: Callable[[], None]) -> None:
        """Start watching *path*, replacing any previously watched file."""
        self.stop()
        self._path = os.path.abspath(path)
        self._on_change = on_change
        if not self._fs.addPath(self._path):
            log.warning("Cannot watch %s", self._path)
        trace(f"watching {self._path}", "WATCH")

    def stop(self) -> None:
        self._timer.stop()
        files = self._fs.files()
        if files:
            self._fs.removePaths(files)
        if self._path:
            trace(f"stopped watching {self._path}", "WATCH")
        self._path = None
        self._on_change = None

    def _on_file_changed(self, path: str) -> None:
        trace(f"change event for {path}", "WATCH")
        self._timer.start()

    def _fire(self) -> None:
        if self._path is None or self._on_change is None:
            return
        # Atomic-rename saves remove the watched inode
        if self._path not in self._fs.files() and os.path.exists(self._path):
            self._fs.addPath(self._path)
        self._on_change()
