"""
main.py

WardleySync - command line entry point

Parse Wardley Map DSL files, patch element positions in place and watch a
file for live re-parsing.

Usage:
    wardleysync parse map.owm [--json] [--strict]
    wardleysync move map.owm "Cup of Tea" 0.79 0.61 [--write]
    wardleysync move map.owm "Cup of Tea" 310 180 --pixels --write
    wardleysync evolve map.owm Kettle 0.70 [--write]
    wardleysync watch map.owm
    wardleysync settings [--path]

Exit status:
    0 success, 1 parse errors under --strict or an edit that matched
    nothing, 2 unreadable input.
"""

from __future__ import annotations

import argparse
import json
import signal
import sys
from dataclasses import replace
from typing import List, Optional

from canvas.positions import CoordinateMapper
from debug_trace import close_log, configure_logging, trace, trace_exception
from models import WardleyMap
from settings import get_settings
from wardley.parser import parse
from wardley.patcher import update_evolve_maturity, update_position

EXIT_OK = 0
EXIT_NO_MATCH = 1
EXIT_PARSE_ERRORS = 1
EXIT_UNREADABLE = 2


def _read_text(path: str) -> Optional[str]:
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        print(f"wardleysync: cannot read {path}: {e}", file=sys.stderr)
        return None


def _write_text(path: str, text: str) -> bool:
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        print(f"wardleysync: cannot write {path}: {e}", file=sys.stderr)
        return False
    return True


def _summary(wmap: WardleyMap) -> str:
    lines = [f"title: {wmap.title}"]
    for label, items in (
        ("elements", wmap.elements),
        ("anchors", wmap.anchors),
        ("submaps", wmap.submaps),
        ("links", wmap.links),
        ("evolved", wmap.evolved),
        ("pipelines", wmap.pipelines),
        ("notes", wmap.notes),
        ("annotations", wmap.annotations),
    ):
        if items:
            lines.append(f"{label}: {len(items)}")
    for el in wmap.elements:
        lines.append(f"  {el.name} [{el.visibility}, {el.maturity}]")
    for err in wmap.errors:
        lines.append(f"line {err.line}: {err.message}")
    return "\n".join(lines)


# ═══════════════════════════════════════════════════════════
# Commands
# ═══════════════════════════════════════════════════════════

def cmd_parse(args: argparse.Namespace) -> int:
    text = _read_text(args.file)
    if text is None:
        return EXIT_UNREADABLE
    wmap, errors = parse(text)
    if args.json:
        print(json.dumps(wmap.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(_summary(wmap))
    if args.strict and errors:
        return EXIT_PARSE_ERRORS
    return EXIT_OK


def _emit_patched(args: argparse.Namespace, patched: str) -> int:
    if args.write:
        return EXIT_OK if _write_text(args.file, patched) else EXIT_UNREADABLE
    sys.stdout.write(patched)
    return EXIT_OK


def cmd_move(args: argparse.Namespace) -> int:
    text = _read_text(args.file)
    if text is None:
        return EXIT_UNREADABLE
    settings = get_settings().settings
    visibility, maturity = args.visibility, args.maturity
    if args.pixels:
        mapper = CoordinateMapper.for_map(parse(text)[0], settings.canvas)
        # Positional values are x, y in pixels here
        visibility, maturity = mapper.to_normalized(args.visibility, args.maturity)
    patched = update_position(text, args.name, visibility, maturity,
                              settings.editor.coordinate_precision)
    if patched is None:
        print(f"wardleysync: no declaration named {args.name!r}", file=sys.stderr)
        return EXIT_NO_MATCH
    return _emit_patched(args, patched)


def cmd_evolve(args: argparse.Namespace) -> int:
    text = _read_text(args.file)
    if text is None:
        return EXIT_UNREADABLE
    settings = get_settings().settings
    patched = update_evolve_maturity(text, args.name, args.maturity,
                                     settings.editor.coordinate_precision)
    if patched is None:
        print(f"wardleysync: no evolve statement for {args.name!r}", file=sys.stderr)
        return EXIT_NO_MATCH
    return _emit_patched(args, patched)


def cmd_watch(args: argparse.Namespace) -> int:
    from PyQt6.QtCore import QCoreApplication, QTimer

    from session import MapSession
    from watcher import QtFileWatcher

    app = QCoreApplication.instance() or QCoreApplication(sys.argv)
    settings = get_settings().settings
    watcher = QtFileWatcher(settings.watcher.debounce_ms)
    session = MapSession(settings, watcher)

    def on_document(wmap: WardleyMap) -> None:
        changed = sorted(session.sample_glitches())
        print(f"[r{session.revision}] {wmap.title}: {len(wmap.elements)} elements, "
              f"{len(wmap.errors)} errors", flush=True)
        for name in changed:
            print(f"  changed: {name}", flush=True)
        for err in wmap.errors:
            print(f"  line {err.line}: {err.message}", flush=True)

    session.document_changed.connect(on_document)
    session.file_error.connect(lambda msg: print(msg, file=sys.stderr, flush=True))
    if not session.open_file(args.file):
        return EXIT_UNREADABLE

    signal.signal(signal.SIGINT, lambda *_: app.quit())
    # Let the interpreter run signal handlers while Qt owns the loop
    ticker = QTimer()
    ticker.timeout.connect(lambda: None)
    ticker.start(200)

    code = app.exec()
    session.stop_monitoring()
    return code


def cmd_settings(args: argparse.Namespace) -> int:
    manager = get_settings()
    manager.ensure_file_complete()
    if args.path:
        print(manager.get_settings_path())
    else:
        print(manager.to_toml(), end="")
    return EXIT_OK


# ═══════════════════════════════════════════════════════════
# Entry point
# ═══════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wardleysync",
        description="Parse, patch and watch Wardley Map DSL files.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    parser.add_argument("--trace", action="store_true", help="Enable category trace records")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("parse", help="Parse a map and report its contents")
    p.add_argument("file", help="Map source file")
    p.add_argument("--json", action="store_true", help="Print the document as JSON")
    p.add_argument("--strict", action="store_true", help="Exit 1 when the map has errors")
    p.set_defaults(func=cmd_parse)

    p = sub.add_parser("move", help="Rewrite the coordinates of one declaration")
    p.add_argument("file", help="Map source file")
    p.add_argument("name", help="Component, anchor or submap name (or note text)")
    p.add_argument("visibility", type=float, help="New visibility (or x with --pixels)")
    p.add_argument("maturity", type=float, help="New maturity (or y with --pixels)")
    p.add_argument("--pixels", action="store_true",
                   help="Interpret the position as canvas x, y pixels")
    p.add_argument("--write", action="store_true", help="Save in place instead of printing")
    p.set_defaults(func=cmd_move)

    p = sub.add_parser("evolve", help="Rewrite the maturity of an evolve statement")
    p.add_argument("file", help="Map source file")
    p.add_argument("name", help="Evolved component name")
    p.add_argument("maturity", type=float, help="New maturity")
    p.add_argument("--write", action="store_true", help="Save in place instead of printing")
    p.set_defaults(func=cmd_evolve)

    p = sub.add_parser("watch", help="Re-parse a file whenever it changes")
    p.add_argument("file", help="Map source file")
    p.set_defaults(func=cmd_watch)

    p = sub.add_parser("settings", help="Show the settings file")
    p.add_argument("--path", action="store_true", help="Print only the file location")
    p.set_defaults(func=cmd_settings)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point."""
    args = build_parser().parse_args(argv)

    log_cfg = replace(get_settings().settings.logging)
    if args.verbose:
        log_cfg.level = "DEBUG"
    if args.trace:
        log_cfg.trace = True
    configure_logging(log_cfg)

    trace(f"command {args.command}", "MAIN")
    try:
        return args.func(args)
    finally:
        close_log()


if __name__ == "__main__":
    # Set up global exception handler to catch crashes
    def excepthook(exc_type, exc_value, exc_tb):
        import traceback
        trace("UNCAUGHT EXCEPTION:", "CRASH")
        trace("".join(traceback.format_exception(exc_type, exc_value, exc_tb)), "CRASH")
        close_log()
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = excepthook

    try:
        sys.exit(main())
    except Exception as e:
        trace(f"FATAL: {type(e).__name__}: {e}", "CRASH")
        trace_exception("Fatal exception")
        close_log()
        raise
