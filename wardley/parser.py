"""
wardley/parser.py

Whole-document parsing for the Wardley Map DSL.

The parser is a fixed sequence of independent passes over the
comment-stripped text.  Each pass owns one statement kind, returns the
entities it recognised plus the errors it hit, and never sees the output of
another pass.  A malformed line costs only its own entity: the error is
recorded with its 1-based line number and parsing carries on.

Usage::

    from wardley.parser import parse

    wmap, errors = parse(text)
    for el in wmap.elements:
        print(el.name, el.visibility, el.maturity)
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, List, Optional, Set, Tuple, TypeVar

from debug_trace import trace
from models import (
    AnnotationPosition,
    DEFAULT_EVOLUTION,
    EvolutionLabel,
    MapPresentation,
    MapSize,
    ParseError,
    Pipeline,
    WardleyMap,
)
from wardley.extractors import (
    ACCELERATOR_KEYWORDS,
    ATTITUDE_KEYWORDS,
    METHOD_KEYWORDS,
    LineSyntaxError,
    WardleySyntaxError,
    is_link_candidate,
    parse_accelerator_line,
    parse_anchor_line,
    parse_annotation_line,
    parse_annotations_position_line,
    parse_attitude_line,
    parse_component_line,
    parse_evolution_line,
    parse_evolve_line,
    parse_link_line,
    parse_method_line,
    parse_note_line,
    parse_pipeline_child_line,
    parse_pipeline_header,
    parse_size_line,
    parse_style_line,
    parse_title_line,
    parse_url_line,
    starts_with_keyword,
)

log = logging.getLogger(__name__)

T = TypeVar("T")
PassResult = Tuple[List[T], List[ParseError]]


# ═══════════════════════════════════════════════════════════
# Pre-processing
# ═══════════════════════════════════════════════════════════

def _line_comment_index(line: str, start: int) -> int:
    """Index of a ``//`` comment at or after *start*, ignoring ``://``."""
    idx = line.find("//", start)
    while idx > 0 and line[idx - 1] == ":":
        idx = line.find("//", idx + 2)
    return idx


def strip_comments(text: str) -> str:
    """Remove ``//`` line comments and ``/* ... */`` block comments.

    The result has exactly as many lines as *text*; a fully commented line
    becomes empty so later passes report the original line numbers.  Lines
    whose trimmed text starts with ``url`` keep their ``//``, and so does
    any ``//`` directly after a colon.
    """
    out = []
    in_block = False
    for line in text.split("\n"):
        keep = []
        pos = 0
        url_line = line.strip().startswith("url")
        while pos <= len(line):
            if in_block:
                end = line.find("*/", pos)
                if end < 0:
                    break
                in_block = False
                pos = end + 2
                continue
            block = line.find("/*", pos)
            comment = -1 if url_line else _line_comment_index(line, pos)
            if comment >= 0 and (block < 0 or comment < block):
                keep.append(line[pos:comment])
                break
            if block >= 0:
                keep.append(line[pos:block])
                in_block = True
                pos = block + 2
                continue
            keep.append(line[pos:])
            break
        out.append("".join(keep).rstrip())
    return "\n".join(out)


def nested_block_lines(lines: List[str]) -> Set[int]:
    """Return indices of lines inside ``{ ... }`` bodies, braces included.

    A body opens on a line starting with ``{`` or after a header line ending
    with ``{``; the header itself is not part of the body.  A body that is
    never closed is not masked.
    """
    result: Set[int] = set()
    pending: Optional[Set[int]] = None
    for i, line in enumerate(lines):
        t = line.strip()
        if pending is None:
            if t.startswith("{"):
                if "}" in t[1:]:
                    result.add(i)
                else:
                    pending = {i}
            elif t.endswith("{"):
                pending = set()
            continue
        pending.add(i)
        if "}" in t:
            result |= pending
            pending = None
    return result


def mask_nested_blocks(text: str) -> str:
    """Blank every line inside a ``{ ... }`` body, keeping line numbering."""
    lines = text.split("\n")
    hidden = nested_block_lines(lines)
    return "\n".join("" if i in hidden else line for i, line in enumerate(lines))


# ═══════════════════════════════════════════════════════════
# Passes
# ═══════════════════════════════════════════════════════════

def _collect(lines: List[str], accept: Callable[[str], Optional[str]],
             build: Callable[[str, int, str], T]) -> PassResult:
    """Run *build* on every line *accept* recognises.

    *accept* returns the keyword that matched (or None); *build* gets the
    line, its 1-based number and that keyword.
    """
    items: List[T] = []
    errors: List[ParseError] = []
    for idx, line in enumerate(lines):
        keyword = accept(line)
        if keyword is None:
            continue
        line_no = idx + 1
        try:
            items.append(build(line, line_no, keyword))
        except WardleySyntaxError as e:
            errors.append(ParseError(line_no, e.message, e.kind))
    return items, errors


def _keyword(*keywords: str) -> Callable[[str], Optional[str]]:
    def accept(line: str) -> Optional[str]:
        for kw in keywords:
            if starts_with_keyword(line, kw):
                return kw
        return None
    return accept


def extract_title(lines: List[str]) -> Tuple[str, List[ParseError]]:
    """First ``title`` statement wins; default ``Untitled Map``."""
    titles, errors = _collect(lines, _keyword("title"),
                              lambda ln, no, kw: parse_title_line(ln, no))
    return (titles[0] if titles else WardleyMap.title), errors


def extract_evolution(lines: List[str]) -> Tuple[List[EvolutionLabel], List[ParseError]]:
    stages, errors = _collect(lines, _keyword("evolution"),
                              lambda ln, no, kw: parse_evolution_line(ln, no))
    return (stages[0] if stages else list(DEFAULT_EVOLUTION)), errors


def extract_presentation(lines: List[str]) -> Tuple[MapPresentation, List[ParseError]]:
    styles, errors = _collect(lines, _keyword("style"),
                              lambda ln, no, kw: parse_style_line(ln, no))
    positions, errs = _collect(lines, _keyword("annotations"),
                               lambda ln, no, kw: parse_annotations_position_line(ln, no))
    errors += errs
    sizes, errs = _collect(lines, _keyword("size"),
                           lambda ln, no, kw: parse_size_line(ln, no))
    errors += errs
    return MapPresentation(
        style=styles[-1] if styles else MapPresentation.style,
        annotations=positions[-1] if positions else AnnotationPosition(),
        size=sizes[-1] if sizes else MapSize(),
    ), errors


def extract_elements(lines: List[str]) -> PassResult:
    """Components outside any ``{ }`` body; pipeline children are not elements."""
    masked = mask_nested_blocks("\n".join(lines)).split("\n")
    return _collect(masked, _keyword("component"),
                    lambda ln, no, kw: parse_component_line(ln, no, "component"))


def extract_submaps(lines: List[str]) -> PassResult:
    return _collect(lines, _keyword("submap"),
                    lambda ln, no, kw: parse_component_line(ln, no, "submap"))


def extract_anchors(lines: List[str]) -> PassResult:
    return _collect(lines, _keyword("anchor"),
                    lambda ln, no, kw: parse_anchor_line(ln, no))


def extract_notes(lines: List[str]) -> PassResult:
    return _collect(lines, _keyword("note"),
                    lambda ln, no, kw: parse_note_line(ln, no))


def extract_evolved(lines: List[str]) -> PassResult:
    return _collect(lines, _keyword("evolve"),
                    lambda ln, no, kw: parse_evolve_line(ln, no))


def extract_annotations(lines: List[str]) -> PassResult:
    return _collect(lines, _keyword("annotation"),
                    lambda ln, no, kw: parse_annotation_line(ln, no))


def extract_urls(lines: List[str]) -> PassResult:
    return _collect(lines, _keyword("url"),
                    lambda ln, no, kw: parse_url_line(ln, no))


def extract_attitudes(lines: List[str]) -> PassResult:
    return _collect(lines, _keyword(*ATTITUDE_KEYWORDS), parse_attitude_line)


def extract_accelerators(lines: List[str]) -> PassResult:
    return _collect(lines, _keyword(*ACCELERATOR_KEYWORDS), parse_accelerator_line)


def extract_methods(lines: List[str]) -> PassResult:
    return _collect(lines, _keyword(*METHOD_KEYWORDS), parse_method_line)


def extract_links(lines: List[str]) -> PassResult:
    """Links in line order; lines with no operator are skipped silently."""
    links = []
    errors = []
    for idx, line in enumerate(lines):
        if not is_link_candidate(line):
            continue
        try:
            link = parse_link_line(line, idx + 1)
        except WardleySyntaxError as e:
            errors.append(ParseError(idx + 1, e.message, e.kind))
            continue
        if link is not None:
            links.append(link)
    return links, errors


def _pipeline_body(lines: List[str], header_idx: int) -> Optional[range]:
    """Line indices of the ``{ }`` body belonging to the header at *header_idx*.

    The body must open on the header line itself or on the next non-blank
    line.  A body with no closing ``}`` raises LineSyntaxError on the header.
    """
    if lines[header_idx].rstrip().endswith("{"):
        start = header_idx + 1
    else:
        start = None
        for j in range(header_idx + 1, len(lines)):
            t = lines[j].strip()
            if not t:
                continue
            if t.startswith("{"):
                start = j + 1
                if "}" in t[1:]:
                    return range(start, start)
            break
        if start is None:
            return None
    for k in range(start, len(lines)):
        if "}" in lines[k]:
            return range(start, k)
    raise LineSyntaxError("unclosed '{' in pipeline body", header_idx + 1)


def extract_pipelines(lines: List[str]) -> PassResult:
    """Pipelines with their child components.

    Children collapse the span to ``[min, max]`` of their maturities and make
    the pipeline visible.
    """
    pipelines: List[Pipeline] = []
    errors: List[ParseError] = []
    body_lines = nested_block_lines(lines)
    for idx, line in enumerate(lines):
        if idx in body_lines or not starts_with_keyword(line, "pipeline"):
            continue
        try:
            pipeline = parse_pipeline_header(line, idx + 1)
        except WardleySyntaxError as e:
            errors.append(ParseError(idx + 1, e.message, e.kind))
            continue

        try:
            body = _pipeline_body(lines, idx)
        except WardleySyntaxError as e:
            errors.append(ParseError(idx + 1, e.message, e.kind))
            body = None
        children = []
        for k in body or ():
            if not starts_with_keyword(lines[k], "component"):
                continue
            try:
                children.append(parse_pipeline_child_line(lines[k], k + 1))
            except WardleySyntaxError as e:
                errors.append(ParseError(k + 1, e.message, e.kind))

        if children:
            maturities = [c.maturity for c in children]
            pipeline = replace(
                pipeline,
                hidden=False,
                maturity1=min(maturities),
                maturity2=max(maturities),
                components=children,
            )
        pipelines.append(pipeline)
    return pipelines, errors


# ═══════════════════════════════════════════════════════════
# Parser
# ═══════════════════════════════════════════════════════════

class WardleyParser:
    """Runs every extraction pass and assembles a ``WardleyMap``.

    Stateless; one instance may parse any number of documents.
    """

    def parse(self, text: str) -> WardleyMap:
        """Parse *text* into a fresh document.

        Never raises for malformed input: problems are collected on
        ``WardleyMap.errors``, sorted by line.
        """
        lines = strip_comments(text).split("\n")
        errors: List[ParseError] = []

        def run(result):
            value, errs = result
            errors.extend(errs)
            return value

        wmap = WardleyMap(
            title=run(extract_title(lines)),
            evolution=run(extract_evolution(lines)),
            presentation=run(extract_presentation(lines)),
            notes=run(extract_notes(lines)),
            annotations=run(extract_annotations(lines)),
            elements=run(extract_elements(lines)),
            pipelines=run(extract_pipelines(lines)),
            evolved=run(extract_evolved(lines)),
            anchors=run(extract_anchors(lines)),
            links=run(extract_links(lines)),
            submaps=run(extract_submaps(lines)),
            urls=run(extract_urls(lines)),
            attitudes=run(extract_attitudes(lines)),
            accelerators=run(extract_accelerators(lines)),
            methods=run(extract_methods(lines)),
            errors=sorted(errors, key=lambda e: e.line),
        )

        trace(
            f"parsed {len(lines)} lines: {len(wmap.elements)} elements, "
            f"{len(wmap.links)} links, {len(wmap.errors)} errors",
            "PARSE",
        )
        if wmap.errors:
            log.debug("parse produced %d error(s), first on line %d",
                      len(wmap.errors), wmap.errors[0].line)
        return wmap


_default_parser = WardleyParser()


def parse(text: str) -> Tuple[WardleyMap, List[ParseError]]:
    """Parse *text*, returning the document and its errors."""
    wmap = _default_parser.parse(text)
    return wmap, wmap.errors
