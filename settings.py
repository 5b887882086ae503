"""
settings.py

User options for WardleySync (canvas geometry, change cues, editing and
logging), kept in a TOML file under the per-user config directory that
platformdirs reports.

Locations:
    - Windows: %APPDATA%/wardleysync/settings.toml
    - macOS: ~/Library/Application Support/wardleysync/settings.toml
    - Linux: ~/.config/wardleysync/settings.toml

Every field has a default. A settings.toml that is missing or cannot be
parsed yields the defaults rather than an error.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

import platformdirs

# tomllib is stdlib from 3.11; tomli provides the same API before that
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "wardleysync"

log = logging.getLogger(__name__)

# Created lazily by get_settings()
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Return the process-wide SettingsManager, creating it on first use."""
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


# =============================================================================
# Setting groups
# =============================================================================

@dataclass
class CanvasSettings:
    """Drawing surface geometry used by the coordinate mapper.

    Defaults:
        width: 500
        height: 600
        padding: 20
    """
    width: float = 500.0    # Default: 500 pixels
    height: float = 600.0   # Default: 600 pixels
    padding: float = 20.0   # Default: 20 pixels


@dataclass
class GlitchSettings:
    """Change-highlight animation settings.

    Defaults:
        duration: 0.8
        epsilon: 0.001
    """
    duration: float = 0.8     # Default: 0.8 seconds
    epsilon: float = 0.001    # Default: moves smaller than this are ignored


@dataclass
class EditorSettings:
    """Text write-back settings.

    Defaults:
        coordinate_precision: 2
        write_back: True
    """
    coordinate_precision: int = 2   # Default: 2 decimals, e.g. [0.45, 0.70]
    write_back: bool = True         # Default: save patched text to the open file


@dataclass
class WatcherSettings:
    """File watching settings.

    Defaults:
        debounce_ms: 100
    """
    debounce_ms: int = 100  # Default: 100 milliseconds


@dataclass
class LoggingSettings:
    """Logging settings.

    Defaults:
        level: "WARNING"
        trace: False
        log_file: ""
    """
    level: str = "WARNING"  # Default: "WARNING"
    trace: bool = False     # Default: False (category trace records off)
    log_file: str = ""      # Default: "" (stderr only)


@dataclass
class AppSettings:
    """All setting groups, one per settings.toml section.

    Attributes:
        canvas: Drawing surface settings.
        glitch: Change-highlight settings.
        editor: Text write-back settings.
        watcher: File watching settings.
        logging: Logging settings.
    """
    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    glitch: GlitchSettings = field(default_factory=GlitchSettings)
    editor: EditorSettings = field(default_factory=EditorSettings)
    watcher: WatcherSettings = field(default_factory=WatcherSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Owns the AppSettings instance and its settings.toml file.

    Nothing is written until ``save`` or ``ensure_file_complete``; until then a
    missing file simply means defaults.

    Args:
        app_name: Application name used for the config directory.
        config_dir: Explicit directory overriding the platform location.
    """

    def __init__(self, app_name: str = APP_NAME,
                 config_dir: Optional[Union[str, Path]] = None):
        if config_dir is None:
            self.settings_dir = Path(platformdirs.user_config_dir(app_name))
        else:
            self.settings_dir = Path(config_dir)
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()

    def ensure_file_complete(self) -> None:
        """Write the file if it is missing so users can find and edit it."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Read settings.toml.

        Returns:
            Settings from the file, or defaults when it is absent or cannot
            be read as valid settings.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)
            return self._parse_toml(data)
        except (OSError, tomllib.TOMLDecodeError, AttributeError, TypeError, ValueError) as e:
            log.warning("Ignoring unreadable settings file %s: %s", self.settings_file, e)
            return AppSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Overlay the sections present in *data* onto default settings."""
        settings = AppSettings()

        canvas = data.get("canvas", {})
        settings.canvas.width = float(canvas.get("width", settings.canvas.width))
        settings.canvas.height = float(canvas.get("height", settings.canvas.height))
        settings.canvas.padding = float(canvas.get("padding", settings.canvas.padding))

        glitch = data.get("glitch", {})
        settings.glitch.duration = float(glitch.get("duration", settings.glitch.duration))
        settings.glitch.epsilon = float(glitch.get("epsilon", settings.glitch.epsilon))

        editor = data.get("editor", {})
        settings.editor.coordinate_precision = int(
            editor.get("coordinate_precision", settings.editor.coordinate_precision))
        settings.editor.write_back = bool(editor.get("write_back", settings.editor.write_back))

        watcher = data.get("watcher", {})
        settings.watcher.debounce_ms = int(watcher.get("debounce_ms", settings.watcher.debounce_ms))

        lg = data.get("logging", {})
        settings.logging.level = str(lg.get("level", settings.logging.level))
        settings.logging.trace = bool(lg.get("trace", settings.logging.trace))
        settings.logging.log_file = str(lg.get("log_file", settings.logging.log_file))

        return settings

    def save(self) -> None:
        """Write every section to settings.toml, creating the directory."""
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """One table per setting group, keyed by the TOML section name."""
        s = self.settings
        return {
            "canvas": {
                "width": s.canvas.width,
                "height": s.canvas.height,
                "padding": s.canvas.padding,
            },
            "glitch": {
                "duration": s.glitch.duration,
                "epsilon": s.glitch.epsilon,
            },
            "editor": {
                "coordinate_precision": s.editor.coordinate_precision,
                "write_back": s.editor.write_back,
            },
            "watcher": {
                "debounce_ms": s.watcher.debounce_ms,
            },
            "logging": {
                "level": s.logging.level,
                "trace": s.logging.trace,
                "log_file": s.logging.log_file,
            },
        }

    def to_toml(self) -> str:
        """Current settings rendered as TOML text (used by `wardleysync settings`)."""
        return tomli_w.dumps(self._to_toml_dict())

    def get_settings_path(self) -> Path:
        """Location of settings.toml, whether or not it exists yet."""
        return self.settings_file
