"""Tests for settings.py: TOML-backed settings with defaults."""
from __future__ import annotations

import sys

import pytest
from settings import AppSettings, SettingsManager

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


@pytest.fixture()
def manager(tmp_path):
    return SettingsManager(config_dir=tmp_path)


class TestDefaults:

    def test_missing_file_gives_defaults(self, manager):
        assert manager.settings == AppSettings()
        assert not manager.get_settings_path().exists()

    def test_default_values(self):
        s = AppSettings()
        assert (s.canvas.width, s.canvas.height, s.canvas.padding) == (500, 600, 20)
        assert s.glitch.duration == 0.8
        assert s.glitch.epsilon == 0.001
        assert s.editor.coordinate_precision == 2
        assert s.editor.write_back is True
        assert s.watcher.debounce_ms == 100
        assert s.logging.level == "WARNING"


class TestPersistence:

    def test_ensure_file_complete_writes_all_sections(self, manager):
        manager.ensure_file_complete()
        with open(manager.get_settings_path(), "rb") as f:
            data = tomllib.load(f)
        assert set(data) == {"canvas", "glitch", "editor", "watcher", "logging"}

    def test_round_trip(self, tmp_path, manager):
        manager.settings.canvas.width = 1024
        manager.settings.editor.write_back = False
        manager.settings.logging.trace = True
        manager.save()

        reloaded = SettingsManager(config_dir=tmp_path)
        assert reloaded.settings.canvas.width == 1024
        assert reloaded.settings.editor.write_back is False
        assert reloaded.settings.logging.trace is True

    def test_partial_file_keeps_other_defaults(self, tmp_path):
        (tmp_path / "settings.toml").write_text("[glitch]\nduration = 1.5\n", encoding="utf-8")
        s = SettingsManager(config_dir=tmp_path).settings
        assert s.glitch.duration == 1.5
        assert s.glitch.epsilon == 0.001
        assert s.canvas.width == 500

    def test_corrupt_file_falls_back(self, tmp_path):
        (tmp_path / "settings.toml").write_text("[canvas\nwidth = ", encoding="utf-8")
        assert SettingsManager(config_dir=tmp_path).settings == AppSettings()

    def test_bad_value_falls_back(self, tmp_path):
        (tmp_path / "settings.toml").write_text('[canvas]\nwidth = "wide"\n', encoding="utf-8")
        assert SettingsManager(config_dir=tmp_path).settings == AppSettings()

    def test_to_toml(self, manager):
        text = manager.to_toml()
        assert "[editor]" in text
        assert "coordinate_precision = 2" in text
