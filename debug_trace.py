"""
debug_trace.py

Logging setup and category-tagged trace instrumentation.
Tracing is switched on by ``[logging] trace = true`` in settings.toml.
"""

from __future__ import annotations

import logging
import sys
from functools import wraps
from typing import Optional

from settings import LoggingSettings

_log = logging.getLogger("wardleysync.trace")

# Set by configure_logging(); trace() is a no-op while False
DEBUG_TRACE = False

_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)s] %(name)s: %(message)s"
_DATEFMT = "%H:%M:%S"

_handlers: list = []


def configure_logging(cfg: Optional[LoggingSettings] = None) -> None:
    """Install stderr (and optional file) handlers on the root logger.

    Safe to call more than once; previously installed handlers are replaced.
    """
    global DEBUG_TRACE
    cfg = cfg or LoggingSettings()
    root = logging.getLogger()
    close_log()

    formatter = logging.Formatter(_FORMAT, _DATEFMT)
    stream = logging.StreamHandler(sys.stderr)
    stream.setFormatter(formatter)
    _handlers.append(stream)
    if cfg.log_file:
        try:
            fh = logging.FileHandler(cfg.log_file, mode="w", encoding="utf-8")
        except OSError as e:
            print(f"Cannot open log file {cfg.log_file}: {e}", file=sys.stderr)
        else:
            fh.setFormatter(formatter)
            _handlers.append(fh)
    for h in _handlers:
        root.addHandler(h)

    level = logging.getLevelName(cfg.level.upper())
    if not isinstance(level, int):
        level = logging.WARNING
    DEBUG_TRACE = cfg.trace
    root.setLevel(logging.DEBUG if DEBUG_TRACE else level)


def trace(msg: str, category: str = "INFO") -> None:
    """Emit a trace record tagged with *category*."""
    if not DEBUG_TRACE:
        return
    _log.debug("[%s] %s", category, msg)


def trace_exception(msg: str = "Exception") -> None:
    """Emit the current exception with traceback."""
    if not DEBUG_TRACE:
        return
    _log.exception("[ERROR] %s", msg)


def trace_call(category: str = "CALL"):
    """Decorator to trace function calls."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            func_name = func.__qualname__
            trace(f">>> {func_name}", category)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                trace(f"!!! {func_name} raised {type(e).__name__}: {e}", "ERROR")
                raise
            trace(f"<<< {func_name}", category)
            return result
        return wrapper
    return decorator


def close_log() -> None:
    """Detach and close handlers installed by configure_logging()."""
    root = logging.getLogger()
    while _handlers:
        h = _handlers.pop()
        root.removeHandler(h)
        h.close()
