"""
wardley/extractors.py

Per-statement extraction for the Wardley Map DSL.

Each ``parse_*_line`` function turns one source line into one entity and
raises ``LineSyntaxError`` (or ``ConfigurationError``) when the statement is
recognised but malformed.  They need no document context, so they can be
tested one line at a time; the passes in ``wardley.parser`` drive them over a
whole document and turn exceptions into ``ParseError`` records.

Statement shapes::

    component Name [vis, mat] label [x, y] inertia (buy) (market) evolve 0.8 url(ref)
    anchor Name [vis, mat]
    evolve Name->Override 0.62 label [16, 5]
    pipeline Name [m1, m2]
    note text [vis, mat]
    annotation 1 [[v1, m1], [v2, m2]] text
    pioneers [v1, m1, v2, m2] width height
    Start+'value'>End; context
"""

from __future__ import annotations

import re
from typing import List, Optional, Tuple

from models import (
    Accelerator,
    AnnotationOccurrence,
    AnnotationPosition,
    Attitude,
    ComponentDecorators,
    DEFAULT_LABEL,
    ErrorKind,
    EvolutionLabel,
    EvolvedElement,
    LabelOffset,
    MapAnchor,
    MapAnnotation,
    MapElement,
    MapLink,
    MapMethod,
    MapNote,
    MapSize,
    MapURL,
    Pipeline,
    PipelineComponent,
)


# ═══════════════════════════════════════════════════════════
# Exceptions
# ═══════════════════════════════════════════════════════════

class WardleySyntaxError(Exception):
    """Base for problems found while extracting a single statement."""

    kind = ErrorKind.LINE_SYNTAX

    def __init__(self, message: str, line: int = 0):
        self.message = message
        self.line = line
        super().__init__(f"line {line}: {message}" if line else message)


class LineSyntaxError(WardleySyntaxError):
    """A recognised statement with a malformed bracket or missing token."""


class ConfigurationError(WardleySyntaxError):
    """A map-level setting that cannot be applied (e.g. a bad ``evolution``)."""

    kind = ErrorKind.CONFIGURATION


# ═══════════════════════════════════════════════════════════
# Keywords
# ═══════════════════════════════════════════════════════════

ATTITUDE_KEYWORDS = ("pioneers", "settlers", "townplanners")
ACCELERATOR_KEYWORDS = ("accelerator", "deaccelerator")
METHOD_KEYWORDS = ("buy", "build", "outsource")

# Lines whose first token is one of these are declarations, never links
LINK_RESERVED_KEYWORDS = frozenset({
    "evolution", "anchor", "evolve", "component", "style", "build",
    "buy", "outsource", "title", "annotation", "annotations",
    "pipeline", "note", "pioneers", "settlers", "townplanners",
    "submap", "url", "accelerator", "deaccelerator", "size",
    "market", "ecosystem",
})

_DECORATOR_SPACING = {
    "buy": 2,
    "build": 2,
    "outsource": 2,
    "market": 2,
    "ecosystem": 3,
}


def starts_with_keyword(text: str, keyword: str) -> bool:
    """True when the trimmed *text* begins with *keyword* as a whole token.

    ``annotation`` does not match ``annotations [..]`` and ``build`` does
    not match ``Builder->Shop``.
    """
    t = text.strip()
    if not t.startswith(keyword):
        return False
    rest = t[len(keyword):]
    return rest == "" or rest[0].isspace()


def _after_keyword(line: str, keyword: str) -> str:
    return line.strip()[len(keyword):].strip()


# ═══════════════════════════════════════════════════════════
# Field helpers
# ═══════════════════════════════════════════════════════════

_NUMBER_RE = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")
_LABEL_RE = re.compile(r"\blabel\s*\[([^\]]*)\]")
_INERTIA_RE = re.compile(r"\binertia\b")
_INLINE_EVOLVE_RE = re.compile(r"\bevolve\s+(" + _NUMBER_RE.pattern + r")")
_REF_RE = re.compile(r"\burl\(([^)]*)\)")
_DECORATOR_RE = re.compile(r"(?<!url)\(([^)]*)\)")

# Whitespace followed by digit* "." digit+; shared with the text patcher
EVOLVE_MATURITY_RE = re.compile(r"\s(\d*\.\d+)(?![\d.])")


def parse_number(token: str, what: str, line: int = 0) -> float:
    """Parse a plain decimal, rejecting ``nan``/``inf`` and stray text."""
    tok = token.strip()
    if not _NUMBER_RE.fullmatch(tok):
        raise LineSyntaxError(f"invalid {what} {tok!r}", line)
    return float(tok)


def split_bracket(text: str, line: int = 0) -> Optional[Tuple[str, str, str]]:
    """Split *text* around its first ``[...]`` group.

    Returns:
        ``(before, inside, after)`` or None when *text* has no ``[``.

    Raises:
        LineSyntaxError: If the ``[`` is never closed.
    """
    open_idx = text.find("[")
    if open_idx < 0:
        return None
    close_idx = text.find("]", open_idx)
    if close_idx < 0:
        raise LineSyntaxError("unclosed '[' in coordinates", line)
    return text[:open_idx], text[open_idx + 1:close_idx], text[close_idx + 1:]


def parse_coordinates(inside: str, count: int, what: str, line: int = 0) -> List[float]:
    """Parse a comma-separated bracket interior holding exactly *count* numbers."""
    parts = [p.strip() for p in inside.split(",")]
    if len(parts) != count or any(p == "" for p in parts):
        raise LineSyntaxError(
            f"expected {count} comma-separated values in {what}, got [{inside.strip()}]",
            line,
        )
    return [parse_number(p, what, line) for p in parts]


def _required_position(rest: str, what: str, line: int) -> Tuple[str, float, float, str]:
    """Split ``Name [vis, mat] tail`` into its parts; the bracket is mandatory."""
    split = split_bracket(rest, line)
    if split is None:
        raise LineSyntaxError(f"{what} is missing [visibility, maturity]", line)
    before, inside, after = split
    vis, mat = parse_coordinates(inside, 2, f"{what} coordinates", line)
    return before.strip(), vis, mat, after


def extract_label(tail: str, spacing: int = 0, line: int = 0) -> LabelOffset:
    """Read ``label [x, y]`` from *tail*, else the default offset scaled by *spacing*."""
    m = _LABEL_RE.search(tail)
    if not m:
        return DEFAULT_LABEL.scaled(spacing)
    x, y = parse_coordinates(m.group(1), 2, "label offset", line)
    return LabelOffset(x, y)


def extract_decorators(tail: str) -> Tuple[ComponentDecorators, int, bool]:
    """Collect parenthesised decorators from the text after the coordinates.

    Returns:
        ``(decorators, label_spacing, inertia)``; ``(inertia)`` is accepted
        as a decorator spelling of the inertia marker.
    """
    flags = {}
    spacing = 0
    inertia = False
    for group in _DECORATOR_RE.findall(tail):
        for token in group.split(","):
            token = token.strip().lower()
            if token in _DECORATOR_SPACING:
                flags[token] = True
                spacing = max(spacing, _DECORATOR_SPACING[token])
            elif token == "inertia":
                inertia = True
    return ComponentDecorators(**flags), spacing, inertia


def extract_ref(tail: str) -> Optional[str]:
    m = _REF_RE.search(tail)
    if not m:
        return None
    return m.group(1).strip() or None


def extract_inline_evolve(tail: str, line: int = 0) -> Optional[float]:
    m = _INLINE_EVOLVE_RE.search(tail)
    if not m:
        return None
    return parse_number(m.group(1), "evolve maturity", line)


# ═══════════════════════════════════════════════════════════
# Statement parsers
# ═══════════════════════════════════════════════════════════

def parse_title_line(line: str, line_no: int = 0) -> str:
    title = _after_keyword(line, "title")
    if not title:
        raise LineSyntaxError("title statement has no text", line_no)
    return title


def parse_evolution_line(line: str, line_no: int = 0) -> List[EvolutionLabel]:
    """``evolution A->B->C->D`` into four stage labels."""
    rest = _after_keyword(line, "evolution")
    parts = [p.strip() for p in rest.split("->")]
    if len(parts) < 4 or any(not p for p in parts[:4]):
        raise ConfigurationError(
            "evolution needs four stages separated by '->'; using defaults",
            line_no,
        )
    return [EvolutionLabel(p) for p in parts[:4]]


def parse_style_line(line: str, line_no: int = 0) -> str:
    style = _after_keyword(line, "style")
    if not style:
        raise LineSyntaxError("style statement has no name", line_no)
    return style


def parse_size_line(line: str, line_no: int = 0) -> MapSize:
    split = split_bracket(_after_keyword(line, "size"), line_no)
    if split is None:
        raise LineSyntaxError("size is missing [width, height]", line_no)
    w, h = parse_coordinates(split[1], 2, "size", line_no)
    return MapSize(w, h)


def parse_annotations_position_line(line: str, line_no: int = 0) -> AnnotationPosition:
    split = split_bracket(_after_keyword(line, "annotations"), line_no)
    if split is None:
        raise LineSyntaxError("annotations is missing [visibility, maturity]", line_no)
    vis, mat = parse_coordinates(split[1], 2, "annotations position", line_no)
    return AnnotationPosition(vis, mat)


def parse_component_line(line: str, line_no: int = 0, keyword: str = "component") -> MapElement:
    """Parse a ``component`` or ``submap`` declaration."""
    rest = _after_keyword(line, keyword)
    name, vis, mat, tail = _required_position(rest, keyword, line_no)
    if not name:
        raise LineSyntaxError(f"{keyword} has no name", line_no)

    decorators, spacing, paren_inertia = extract_decorators(tail)
    evolve_maturity = extract_inline_evolve(tail, line_no)
    return MapElement(
        line=line_no,
        name=name,
        visibility=vis,
        maturity=mat,
        inertia=paren_inertia or bool(_INERTIA_RE.search(tail)),
        evolving=evolve_maturity is not None,
        evolve_maturity=evolve_maturity,
        label=extract_label(tail, spacing, line_no),
        decorators=decorators,
        increase_label_spacing=spacing,
        url=extract_ref(tail),
        submap=keyword == "submap",
    )


def parse_anchor_line(line: str, line_no: int = 0) -> MapAnchor:
    name, vis, mat, _tail = _required_position(_after_keyword(line, "anchor"), "anchor", line_no)
    if not name:
        raise LineSyntaxError("anchor has no name", line_no)
    return MapAnchor(line_no, name, vis, mat)


def parse_note_line(line: str, line_no: int = 0) -> MapNote:
    text, vis, mat, _tail = _required_position(_after_keyword(line, "note"), "note", line_no)
    if not text:
        raise LineSyntaxError("note has no text", line_no)
    return MapNote(line_no, text, vis, mat)


def parse_accelerator_line(line: str, line_no: int = 0,
                           keyword: str = "accelerator") -> Accelerator:
    name, vis, mat, _tail = _required_position(_after_keyword(line, keyword), keyword, line_no)
    if not name:
        raise LineSyntaxError(f"{keyword} has no name", line_no)
    return Accelerator(line_no, name, vis, mat, deaccelerator=keyword == "deaccelerator")


def parse_evolve_line(line: str, line_no: int = 0) -> EvolvedElement:
    """``evolve Name[->Override] <maturity> [label [x, y]] [(decorators)]``."""
    rest = " " + _after_keyword(line, "evolve")
    m = EVOLVE_MATURITY_RE.search(rest)
    if m is None:
        raise LineSyntaxError("evolve is missing a maturity value", line_no)
    target = rest[:m.start()].strip()
    tail = rest[m.end():]

    override = ""
    if "->" in target:
        target, override = (p.strip() for p in target.split("->", 1))
    if not target:
        raise LineSyntaxError("evolve has no component name", line_no)

    decorators, spacing, _inertia = extract_decorators(tail)
    return EvolvedElement(
        line=line_no,
        name=target,
        maturity=float(m.group(1)),
        override=override,
        label=extract_label(tail, spacing, line_no),
        decorators=decorators,
        increase_label_spacing=spacing,
    )


def parse_pipeline_header(line: str, line_no: int = 0) -> Pipeline:
    """``pipeline Name [m1, m2]`` (visible) or bare ``pipeline Name`` (hidden)."""
    rest = _after_keyword(line, "pipeline")
    if rest.endswith("{"):
        rest = rest[:-1].rstrip()
    split = split_bracket(rest, line_no)
    if split is None:
        name = rest
        if not name:
            raise LineSyntaxError("pipeline has no name", line_no)
        return Pipeline(line=line_no, name=name)

    name = split[0].strip()
    if not name:
        raise LineSyntaxError("pipeline has no name", line_no)
    m1, m2 = parse_coordinates(split[1], 2, "pipeline maturity range", line_no)
    return Pipeline(line=line_no, name=name, hidden=False, maturity1=m1, maturity2=m2)


def parse_pipeline_child_line(line: str, line_no: int = 0) -> PipelineComponent:
    """``component Name [maturity]`` inside a pipeline body."""
    split = split_bracket(_after_keyword(line, "component"), line_no)
    if split is None:
        raise LineSyntaxError("pipeline component is missing [maturity]", line_no)
    name = split[0].strip()
    if not name:
        raise LineSyntaxError("pipeline component has no name", line_no)
    (maturity,) = parse_coordinates(split[1], 1, "pipeline component maturity", line_no)
    return PipelineComponent(
        line=line_no,
        name=name,
        maturity=maturity,
        label=extract_label(split[2], 0, line_no),
    )


def _parse_occurrences(rest: str, line_no: int) -> Tuple[List[AnnotationOccurrence], str]:
    """Read ``[v, m]`` or ``[[v1, m1], [v2, m2], ...]`` plus the trailing text."""
    start = rest.find("[")
    if start < 0:
        raise LineSyntaxError("annotation is missing [visibility, maturity]", line_no)

    depth = 0
    end = -1
    for i in range(start, len(rest)):
        if rest[i] == "[":
            depth += 1
        elif rest[i] == "]":
            depth -= 1
            if depth == 0:
                end = i
                break
    if end < 0:
        raise LineSyntaxError("unclosed '[' in annotation", line_no)

    body = rest[start + 1:end].strip()
    if body.startswith("["):
        groups = re.findall(r"\[([^\[\]]*)\]", body)
    else:
        groups = [body]
    if not groups:
        raise LineSyntaxError("annotation has no positions", line_no)

    occurrences = []
    for g in groups:
        vis, mat = parse_coordinates(g, 2, "annotation position", line_no)
        occurrences.append(AnnotationOccurrence(vis, mat))
    return occurrences, rest[end + 1:].strip()


def parse_annotation_line(line: str, line_no: int = 0) -> MapAnnotation:
    rest = _after_keyword(line, "annotation")
    m = re.match(r"(\d+)\s*", rest)
    if m is None:
        raise LineSyntaxError("annotation is missing its number", line_no)
    occurrences, text = _parse_occurrences(rest[m.end():], line_no)
    return MapAnnotation(line_no, int(m.group(1)), occurrences, text)


def parse_url_line(line: str, line_no: int = 0) -> MapURL:
    rest = _after_keyword(line, "url")
    split = split_bracket(rest, line_no)
    if split is None:
        raise LineSyntaxError("url is missing [address]", line_no)
    name, address = split[0].strip(), split[1].strip()
    if not name:
        raise LineSyntaxError("url has no name", line_no)
    if not address:
        raise LineSyntaxError("url has an empty address", line_no)
    return MapURL(line_no, name, address)


def parse_attitude_line(line: str, line_no: int = 0, keyword: str = "pioneers") -> Attitude:
    split = split_bracket(_after_keyword(line, keyword), line_no)
    if split is None:
        raise LineSyntaxError(f"{keyword} is missing [v1, m1, v2, m2]", line_no)
    v1, m1, v2, m2 = parse_coordinates(split[1], 4, f"{keyword} area", line_no)
    size = split[2].split()
    return Attitude(
        line=line_no,
        attitude=keyword,
        visibility=v1,
        maturity=m1,
        visibility2=v2,
        maturity2=m2,
        width=size[0] if len(size) > 0 else None,
        height=size[1] if len(size) > 1 else None,
    )


def parse_method_line(line: str, line_no: int = 0, keyword: str = "buy") -> MapMethod:
    name = _after_keyword(line, keyword)
    if not name:
        raise LineSyntaxError(f"{keyword} has no component name", line_no)
    return MapMethod(line_no, name, ComponentDecorators(**{keyword: True}))


# ═══════════════════════════════════════════════════════════
# Links
# ═══════════════════════════════════════════════════════════

_FLOW_VALUE_RE = re.compile(r"^(?P<start>.*?)\+'(?P<value>[^']*)'(?P<op><>|>|<)(?P<end>.*)$")

# Checked in order; "+<>" must be tried before "+<"
_PLAIN_OPERATORS = (
    # operator, flow, future, past
    ("+>", True, False, False),
    ("+<>", True, False, True),
    ("+<", True, True, False),
    ("->", False, False, False),
)

_VALUE_OPERATOR_FLAGS = {
    # op, future, past
    ">": (True, False),
    "<>": (True, True),
    "<": (False, True),
}


def is_link_candidate(line: str) -> bool:
    """True unless the line is blank, a block brace, or starts with a reserved keyword."""
    t = line.strip()
    if not t or t[0] in "{}":
        return False
    first = re.split(r"[\s\[]", t, maxsplit=1)[0]
    return first not in LINK_RESERVED_KEYWORDS


def _split_context(end: str) -> Tuple[str, Optional[str]]:
    if ";" not in end:
        return end.strip(), None
    target, context = end.split(";", 1)
    return target.strip(), context.strip() or None


def parse_link_line(line: str, line_no: int = 0) -> Optional[MapLink]:
    """Parse a link statement.

    Returns:
        The link, or None when the line holds no link operator.

    Raises:
        LineSyntaxError: If an operator is present but an endpoint is empty.
    """
    text = line.strip()

    m = _FLOW_VALUE_RE.match(text)
    if m:
        future, past = _VALUE_OPERATOR_FLAGS[m.group("op")]
        start = m.group("start").strip()
        end, context = _split_context(m.group("end"))
        link = MapLink(start, end, flow=True, future=future, past=past,
                       context=context, flow_value=m.group("value"))
    else:
        for op, flow, future, past in _PLAIN_OPERATORS:
            if op in text:
                start, end = text.split(op, 1)
                end, context = _split_context(end)
                link = MapLink(start.strip(), end, flow=flow, future=future,
                               past=past, context=context)
                break
        else:
            return None

    if not link.start or not link.end:
        raise LineSyntaxError("link needs both a start and an end name", line_no)
    return link
