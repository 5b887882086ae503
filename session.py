"""
session.py

MapSession - owner of the map source text and its parsed document.

Every change to the text, whether typed in an editor, produced by a drag on
the canvas or reloaded from disk, goes through one transaction:

    replace buffer -> parse -> diff against the previous document -> commit

Each transaction takes the next revision number; a parse result whose
revision is no longer current when it is about to be committed is dropped,
so a slow parse can never overwrite a newer one.  Consumers listen to the Qt
signals rather than polling.
"""

from __future__ import annotations

import logging
import os
import time
from typing import Callable, Dict, Optional, Set

from PyQt6.QtCore import QObject, pyqtSignal

from canvas.positions import CoordinateMapper
from debug_trace import trace, trace_call
from models import GlitchInfo, WardleyMap
from settings import AppSettings, get_settings
from wardley.changes import GlitchTracker
from wardley.parser import WardleyParser
from wardley.patcher import update_evolve_maturity, update_position
from watcher import FileWatcher

log = logging.getLogger(__name__)


class MapSession(QObject):
    """Text buffer, current document and change cues for one map.

    Signals:
        document_changed(WardleyMap): A new document was committed.
        text_changed(str): The session rewrote the text (edit or reload).
        file_error(str): Reading or writing the open file failed.

    Args:
        settings: Application settings; the global settings when omitted.
        watcher: File watcher used by ``open_file``; no monitoring if None.
        clock: Time source for change cues.
        parent: Optional Qt parent.
    """

    document_changed = pyqtSignal(object)
    text_changed = pyqtSignal(str)
    file_error = pyqtSignal(str)

    def __init__(self, settings: Optional[AppSettings] = None,
                 watcher: Optional[FileWatcher] = None,
                 clock: Callable[[], float] = time.monotonic,
                 parent: Optional[QObject] = None):
        super().__init__(parent)
        self._settings = settings or get_settings().settings
        self._watcher = watcher
        self._parser = WardleyParser()
        self._glitches = GlitchTracker(
            duration=self._settings.glitch.duration,
            epsilon=self._settings.glitch.epsilon,
            clock=clock,
        )

        self._text = ""
        self._document = WardleyMap()
        self._previous: Optional[WardleyMap] = None
        self._loaded = False
        self._revision = 0
        self._path: Optional[str] = None

    # ─────────────────────────────────────────────────────────
    # State
    # ─────────────────────────────────────────────────────────

    @property
    def text(self) -> str:
        return self._text

    @property
    def document(self) -> WardleyMap:
        return self._document

    @property
    def previous_document(self) -> Optional[WardleyMap]:
        return self._previous

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def error_lines(self) -> Set[int]:
        return self._document.error_lines

    @property
    def path(self) -> Optional[str]:
        return self._path

    def mapper(self) -> CoordinateMapper:
        """Coordinate mapper for the current document and canvas settings."""
        return CoordinateMapper.for_map(self._document, self._settings.canvas)

    # ─────────────────────────────────────────────────────────
    # Transactions
    # ─────────────────────────────────────────────────────────

    def on_text_changed(self, text: str) -> WardleyMap:
        """Replace the buffer with *text*, re-parse and commit.

        Identical text is a no-op once a document has been committed.

        Returns:
            The committed document (the unchanged one for a no-op).
        """
        if self._loaded and text == self._text:
            return self._document

        self._revision += 1
        revision = self._revision
        self._text = text
        document = self._parser.parse(text)
        self._commit(revision, document)
        return self._document

    def _commit(self, revision: int, document: WardleyMap) -> bool:
        if revision != self._revision:
            trace(f"dropping stale parse r{revision} (current r{self._revision})", "SESSION")
            return False

        previous = self._document if self._loaded else None
        self._glitches.record(previous, document)
        self._previous = previous
        self._document = document
        self._loaded = True
        trace(f"committed r{revision}: {len(document.elements)} elements, "
              f"{len(document.errors)} errors", "SESSION")
        self.document_changed.emit(document)
        return True

    def _replace_text(self, text: str, persist: bool) -> None:
        self.on_text_changed(text)
        # a document_changed handler may already have committed newer text
        self.text_changed.emit(self._text)
        if persist and self._path and self._settings.editor.write_back:
            self.save_to_disk()

    def apply_position_edit(self, name: str, visibility: float, maturity: float) -> bool:
        """Move the declaration of *name* and commit the patched text.

        Returns:
            True when a declaration was rewritten, False when none matched.
        """
        patched = update_position(self._text, name, visibility, maturity,
                                  self._settings.editor.coordinate_precision)
        if patched is None:
            log.info("No component, anchor, submap or note matches %r", name)
            return False
        self._replace_text(patched, persist=True)
        return True

    def move_element_to_point(self, name: str, x: float, y: float) -> bool:
        """Move *name* to a drawing-surface position given in pixels."""
        visibility, maturity = self.mapper().to_normalized(x, y)
        return self.apply_position_edit(name, visibility, maturity)

    def apply_evolve_edit(self, name: str, maturity: float) -> bool:
        """Rewrite the maturity of ``evolve <name>`` and commit."""
        patched = update_evolve_maturity(self._text, name, maturity,
                                         self._settings.editor.coordinate_precision)
        if patched is None:
            log.info("No evolve statement for %r", name)
            return False
        self._replace_text(patched, persist=True)
        return True

    def sample_glitches(self, now: Optional[float] = None) -> Dict[str, GlitchInfo]:
        """Animation progress of live change cues, keyed by element name."""
        return self._glitches.sample(now)

    # ─────────────────────────────────────────────────────────
    # File I/O
    # ─────────────────────────────────────────────────────────

    def _read(self, path: str) -> Optional[str]:
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            log.error("Cannot read %s: %s", path, e)
            self.file_error.emit(f"Cannot read {path}: {e}")
            return None

    @trace_call("SESSION")
    def open_file(self, path: str) -> bool:
        """Load *path*, commit it and start monitoring it for changes.

        On failure the current text and document are left untouched.
        """
        text = self._read(path)
        if text is None:
            return False
        if self._watcher is not None:
            self._watcher.stop()
        self._path = os.path.abspath(path)
        self._replace_text(text, persist=False)
        if self._watcher is not None:
            self._watcher.watch(self._path, self.reload_from_disk)
        return True

    def reload_from_disk(self) -> bool:
        """Re-read the open file; returns True if the text changed."""
        if self._path is None:
            return False
        text = self._read(self._path)
        if text is None or text == self._text:
            return False
        trace(f"reloading {self._path}", "SESSION")
        self._replace_text(text, persist=False)
        return True

    def save_to_disk(self) -> bool:
        """Write the buffer to the open file, byte for byte."""
        if self._path is None:
            return False
        try:
            with open(self._path, "w", encoding="utf-8", newline="") as f:
                f.write(self._text)
        except OSError as e:
            log.error("Cannot write %s: %s", self._path, e)
            self.file_error.emit(f"Cannot write {self._path}: {e}")
            return False
        trace(f"saved {self._path}", "SESSION")
        return True

    def stop_monitoring(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
