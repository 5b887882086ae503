"""
wardley/patcher.py

Minimal edits of map source text.

A drag on the canvas must change exactly one coordinate pair and leave
every other byte (comments, spacing, decorators, other statements) as the
user wrote it.  Matching is done against the comment-stripped view of each
line so commented-out declarations are never touched; the replacement is
applied to the raw line.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from debug_trace import trace
from wardley.extractors import EVOLVE_MATURITY_RE, starts_with_keyword
from wardley.parser import nested_block_lines, strip_comments

log = logging.getLogger(__name__)

_POSITIONED_KEYWORDS = ("component", "anchor", "submap")


def _format_pair(visibility: float, maturity: float, precision: int) -> str:
    return f"{visibility:.{precision}f}, {maturity:.{precision}f}"


def _replace_bracket(line: str, start: int, inner: str) -> Optional[str]:
    """Replace the interior of the first ``[...]`` at or after *start*."""
    open_idx = line.find("[", start)
    if open_idx < 0:
        return None
    close_idx = line.find("]", open_idx)
    if close_idx < 0:
        return None
    return line[:open_idx + 1] + inner + line[close_idx:]


def _declaration_pattern(name: str) -> re.Pattern:
    keywords = "|".join(_POSITIONED_KEYWORDS)
    return re.compile(r"(?<![\w])(?:" + keywords + r")\s+" + re.escape(name) + r"\s*(?=\[)")


def _note_matches(stripped: str, name: str) -> bool:
    if not starts_with_keyword(stripped, "note"):
        return False
    text = stripped.strip()[len("note"):]
    bracket = text.find("[")
    if bracket >= 0:
        text = text[:bracket]
    return name in text


def update_position(text: str, name: str, visibility: float, maturity: float,
                    precision: int = 2) -> Optional[str]:
    """Rewrite the coordinates of the first declaration named *name*.

    Components, anchors and submaps match by exact name; notes match when
    *name* occurs in the note text.  Component lines inside pipeline bodies
    are never rewritten.

    Args:
        text: Full map source.
        name: Element name (or note text fragment) to move.
        visibility: New visibility, written as given.
        maturity: New maturity, written as given.
        precision: Decimal places for the written values.

    Returns:
        The patched source, or None when no declaration matches.
    """
    raw_lines = text.split("\n")
    stripped_lines = strip_comments(text).split("\n")
    in_bodies = nested_block_lines(stripped_lines)
    decl = _declaration_pattern(name)
    inner = _format_pair(visibility, maturity, precision)

    for idx, stripped in enumerate(stripped_lines):
        raw = raw_lines[idx]
        patched = None
        if any(starts_with_keyword(stripped, kw) for kw in _POSITIONED_KEYWORDS):
            if idx in in_bodies or not decl.match(stripped.strip()):
                continue
            m = decl.search(raw)
            if m is None:
                continue
            patched = _replace_bracket(raw, m.end(), inner)
        elif _note_matches(stripped, name):
            keyword_at = raw.find("note")
            patched = _replace_bracket(raw, keyword_at, inner)

        if patched is not None:
            raw_lines[idx] = patched
            trace(f"moved {name!r} on line {idx + 1} to [{inner}]", "PATCH")
            return "\n".join(raw_lines)

    log.debug("no declaration named %r to move", name)
    return None


def update_evolve_maturity(text: str, name: str, maturity: float,
                           precision: int = 2) -> Optional[str]:
    """Rewrite the maturity token of the first ``evolve <name>`` statement.

    Returns:
        The patched source, or None when no evolve statement names *name*.
    """
    raw_lines = text.split("\n")
    stripped_lines = strip_comments(text).split("\n")
    header = re.compile(r"evolve\s+" + re.escape(name) + r"(?=\s|->)")

    for idx, stripped in enumerate(stripped_lines):
        if not starts_with_keyword(stripped, "evolve"):
            continue
        if not header.match(stripped.strip()):
            continue
        raw = raw_lines[idx]
        m = header.search(raw)
        if m is None:
            continue
        token = EVOLVE_MATURITY_RE.search(raw, m.end())
        if token is None:
            continue
        value = f"{maturity:.{precision}f}"
        raw_lines[idx] = raw[:token.start(1)] + value + raw[token.end(1):]
        trace(f"evolved {name!r} on line {idx + 1} to {value}", "PATCH")
        return "\n".join(raw_lines)

    log.debug("no evolve statement for %r", name)
    return None


def apply_position_edit(text: str, name: str, visibility: float, maturity: float,
                        precision: int = 2) -> str:
    """Like ``update_position`` but returns *text* unchanged when nothing matches."""
    patched = update_position(text, name, visibility, maturity, precision)
    return text if patched is None else patched


def apply_evolve_edit(text: str, name: str, maturity: float, precision: int = 2) -> str:
    """Like ``update_evolve_maturity`` but returns *text* unchanged when nothing matches."""
    patched = update_evolve_maturity(text, name, maturity, precision)
    return text if patched is None else patched


def matching_lines(text: str, name: str) -> List[int]:
    """1-based lines declaring *name* as a component, anchor or submap."""
    decl = _declaration_pattern(name)
    stripped_lines = strip_comments(text).split("\n")
    in_bodies = nested_block_lines(stripped_lines)
    return [
        idx + 1 for idx, line in enumerate(stripped_lines)
        if idx not in in_bodies and decl.match(line.strip())
    ]
