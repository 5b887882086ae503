"""
models.py

Document model for parsed Wardley Map text.

Every parse produces a fresh ``WardleyMap``; entities are frozen so an old
snapshot can be diffed safely against a new one.  Cross-references (links,
evolve targets) are plain names resolved by lookup, never object pointers.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Union


# ----------------------------
# Shared value types
# ----------------------------

@dataclass(frozen=True)
class LabelOffset:
    """Pixel offset of an element label relative to its marker."""
    x: float = 5.0
    y: float = -10.0

    def scaled(self, factor: int) -> "LabelOffset":
        """Return the offset multiplied by a label-spacing factor (0 = unchanged)."""
        if factor <= 0:
            return self
        return LabelOffset(self.x * factor, self.y * factor)


DEFAULT_LABEL = LabelOffset()


@dataclass(frozen=True)
class ComponentDecorators:
    """Parenthesised decorator flags, e.g. ``(buy)`` or ``(market)``."""
    ecosystem: bool = False
    market: bool = False
    buy: bool = False
    build: bool = False
    outsource: bool = False


@dataclass(frozen=True)
class EvolutionLabel:
    """One of the four named stages along the maturity axis."""
    line1: str
    line2: str = ""


DEFAULT_EVOLUTION: List[EvolutionLabel] = [
    EvolutionLabel("Genesis"),
    EvolutionLabel("Custom-Built"),
    EvolutionLabel("Product", "(+rental)"),
    EvolutionLabel("Commodity", "(+utility)"),
]


# ----------------------------
# Errors
# ----------------------------

class ErrorKind(Enum):
    """Category of a per-line parse problem."""
    LINE_SYNTAX = "line_syntax"
    CONFIGURATION = "configuration"


@dataclass(frozen=True)
class ParseError:
    """A problem found on one source line.

    Attributes:
        line: 1-based source line number.
        message: Human-readable description.
        kind: Error category.
    """
    line: int
    message: str = ""
    kind: ErrorKind = ErrorKind.LINE_SYNTAX


# ----------------------------
# Positioned entities
# ----------------------------

@dataclass(frozen=True)
class MapElement:
    """A ``component`` (or ``submap``) declaration.

    Attributes:
        line: 1-based line of the declaring statement.
        name: Declared name, unique among elements.
        visibility: Value-chain position, 1 = user facing.  Not clamped.
        maturity: Evolution position, 0 = genesis.  Not clamped.
        inertia: ``inertia`` marker present.
        evolving: An inline ``evolve <m>`` was given.
        evolve_maturity: Target maturity of the inline evolve, if any.
        label: Label offset in pixels.
        decorators: Decorator flags.
        increase_label_spacing: Label spacing factor implied by decorators.
        url: External reference from ``url(...)``.
        submap: Declared with the ``submap`` keyword.
    """
    line: int
    name: str
    visibility: float
    maturity: float
    inertia: bool = False
    evolving: bool = False
    evolve_maturity: Optional[float] = None
    label: LabelOffset = DEFAULT_LABEL
    decorators: ComponentDecorators = field(default_factory=ComponentDecorators)
    increase_label_spacing: int = 0
    url: Optional[str] = None
    submap: bool = False


@dataclass(frozen=True)
class MapAnchor:
    line: int
    name: str
    visibility: float
    maturity: float


@dataclass(frozen=True)
class MapNote:
    line: int
    text: str
    visibility: float
    maturity: float


@dataclass(frozen=True)
class Accelerator:
    line: int
    name: str
    visibility: float
    maturity: float
    deaccelerator: bool = False


# ----------------------------
# Relational entities
# ----------------------------

@dataclass(frozen=True)
class MapLink:
    """A dependency (``->``) or flow (``+>`` family) between two names.

    Endpoints are weak references: a link whose names do not resolve is
    simply not drawn.
    """
    start: str
    end: str
    flow: bool = False
    future: bool = False
    past: bool = False
    context: Optional[str] = None
    flow_value: Optional[str] = None


@dataclass(frozen=True)
class EvolvedElement:
    """Projection of an existing element onto a new maturity.

    ``name`` joins to ``MapElement.name``; ``override`` is the optional
    display name of the evolved position.
    """
    line: int
    name: str
    maturity: float
    override: str = ""
    label: LabelOffset = DEFAULT_LABEL
    decorators: ComponentDecorators = field(default_factory=ComponentDecorators)
    increase_label_spacing: int = 0

    @property
    def display_name(self) -> str:
        return self.override or self.name


@dataclass(frozen=True)
class PipelineComponent:
    line: int
    name: str
    maturity: float
    label: LabelOffset = DEFAULT_LABEL


@dataclass(frozen=True)
class Pipeline:
    """A maturity band grouping interchangeable components.

    A bare ``pipeline Name`` is hidden until children give it a span.
    """
    line: int
    name: str
    hidden: bool = True
    maturity1: float = 0.2
    maturity2: float = 0.8
    components: List[PipelineComponent] = field(default_factory=list)


@dataclass(frozen=True)
class AnnotationOccurrence:
    visibility: float
    maturity: float


@dataclass(frozen=True)
class MapAnnotation:
    line: int
    number: int
    occurrences: List[AnnotationOccurrence] = field(default_factory=list)
    text: str = ""


@dataclass(frozen=True)
class MapURL:
    line: int
    name: str
    url: str


@dataclass(frozen=True)
class Attitude:
    """A ``pioneers`` / ``settlers`` / ``townplanners`` area."""
    line: int
    attitude: str
    visibility: float
    maturity: float
    visibility2: float
    maturity2: float
    width: Optional[str] = None
    height: Optional[str] = None


@dataclass(frozen=True)
class MapMethod:
    """A standalone ``buy`` / ``build`` / ``outsource`` statement."""
    line: int
    name: str
    decorators: ComponentDecorators = field(default_factory=ComponentDecorators)


# ----------------------------
# Presentation
# ----------------------------

@dataclass(frozen=True)
class AnnotationPosition:
    visibility: float = 0.9
    maturity: float = 0.1


@dataclass(frozen=True)
class MapSize:
    """Canvas size override; ``0 x 0`` means no override."""
    width: float = 0.0
    height: float = 0.0

    @property
    def is_set(self) -> bool:
        return self.width > 0 and self.height > 0


@dataclass(frozen=True)
class MapPresentation:
    style: str = "plain"
    annotations: AnnotationPosition = field(default_factory=AnnotationPosition)
    size: MapSize = field(default_factory=MapSize)


# ----------------------------
# Document root
# ----------------------------

Positioned = Union[MapElement, MapAnchor]


@dataclass(frozen=True)
class WardleyMap:
    """Root of a parsed map.  Built fresh by every parse."""
    title: str = "Untitled Map"
    elements: List[MapElement] = field(default_factory=list)
    links: List[MapLink] = field(default_factory=list)
    anchors: List[MapAnchor] = field(default_factory=list)
    evolved: List[EvolvedElement] = field(default_factory=list)
    pipelines: List[Pipeline] = field(default_factory=list)
    annotations: List[MapAnnotation] = field(default_factory=list)
    notes: List[MapNote] = field(default_factory=list)
    evolution: List[EvolutionLabel] = field(default_factory=lambda: list(DEFAULT_EVOLUTION))
    submaps: List[MapElement] = field(default_factory=list)
    urls: List[MapURL] = field(default_factory=list)
    attitudes: List[Attitude] = field(default_factory=list)
    accelerators: List[Accelerator] = field(default_factory=list)
    methods: List[MapMethod] = field(default_factory=list)
    presentation: MapPresentation = field(default_factory=MapPresentation)
    errors: List[ParseError] = field(default_factory=list)

    def element_named(self, name: str) -> Optional[MapElement]:
        """Return the first component declared as *name*, or None."""
        for el in self.elements:
            if el.name == name:
                return el
        return None

    def positioned_named(self, name: str) -> Optional[Positioned]:
        """Resolve a link endpoint by name across elements, anchors and submaps.

        Evolved elements resolve under their display name.  Returns None for
        unresolved names; callers skip drawing rather than failing.
        """
        for el in self.elements:
            if el.name == name:
                return el
        for anchor in self.anchors:
            if anchor.name == name:
                return anchor
        for sub in self.submaps:
            if sub.name == name:
                return sub
        for ev in self.evolved:
            if ev.display_name == name:
                base = self.element_named(ev.name)
                if base is not None:
                    return MapElement(
                        line=ev.line,
                        name=ev.display_name,
                        visibility=base.visibility,
                        maturity=ev.maturity,
                        label=ev.label,
                        decorators=ev.decorators,
                    )
        return None

    @property
    def error_lines(self) -> Set[int]:
        return {e.line for e in self.errors}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to plain JSON-compatible data."""
        d = asdict(self)
        d["errors"] = [
            {"line": e.line, "message": e.message, "kind": e.kind.value}
            for e in self.errors
        ]
        return d


# ----------------------------
# Change cues
# ----------------------------

@dataclass(frozen=True)
class GlitchEntry:
    """A transient highlight for an element that appeared or moved.

    Attributes:
        element_name: Name of the highlighted element.
        start_time: Clock value when the change was detected.
        is_new: True for a newly introduced element, False for a moved one.
    """
    element_name: str
    start_time: float
    is_new: bool

    DURATION = 0.8

    def expired(self, now: float, duration: float = DURATION) -> bool:
        return now - self.start_time >= duration


@dataclass(frozen=True)
class GlitchInfo:
    """Per-frame animation state handed to the renderer."""
    progress: float
    is_new: bool
