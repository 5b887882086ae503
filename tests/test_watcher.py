"""Tests for watcher.py: QFileSystemWatcher with debounce.

Events are delivered through the Qt event loop, so each test spins a
QEventLoop until the callback fires or a timeout expires.
"""
from __future__ import annotations

import pytest
from PyQt6.QtCore import QEventLoop, QTimer

from watcher import QtFileWatcher


def _wait_for(predicate, timeout_ms=3000):
    loop = QEventLoop()
    poll = QTimer()
    poll.timeout.connect(lambda: loop.quit() if predicate() else None)
    poll.start(10)
    QTimer.singleShot(timeout_ms, loop.quit)
    loop.exec()
    poll.stop()
    return predicate()


@pytest.fixture()
def watcher(qapp):
    w = QtFileWatcher(debounce_ms=20)
    yield w
    w.stop()


class TestQtFileWatcher:

    def test_watch_sets_path(self, watcher, tmp_path):
        path = tmp_path / "map.owm"
        path.write_text("title A\n", encoding="utf-8")
        watcher.watch(str(path), lambda: None)
        assert watcher.path == str(path)

    def test_change_fires_callback(self, watcher, tmp_path):
        path = tmp_path / "map.owm"
        path.write_text("title A\n", encoding="utf-8")
        calls = []
        watcher.watch(str(path), lambda: calls.append(1))
        path.write_text("title B\n", encoding="utf-8")
        assert _wait_for(lambda: calls)

    def test_stop_clears_state(self, watcher, tmp_path):
        path = tmp_path / "map.owm"
        path.write_text("title A\n", encoding="utf-8")
        watcher.watch(str(path), lambda: None)
        watcher.stop()
        assert watcher.path is None
