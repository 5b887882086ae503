"""
canvas/positions.py

Conversion between normalized map coordinates and drawing-surface pixels.

Maturity runs left to right across the surface; visibility runs bottom to
top, so the vertical axis is inverted.  Both directions are exact inverses,
which matters because a dragged pixel position is written back to the map
text as the authoritative coordinate.
"""

from __future__ import annotations

from typing import Optional, Tuple

from PyQt6.QtCore import QPointF

from models import WardleyMap
from settings import CanvasSettings


class CoordinateMapper:
    """Map ``(visibility, maturity)`` in ``[0, 1]`` onto a padded surface.

    Args:
        width: Surface width in pixels.
        height: Surface height in pixels.
        padding: Inset applied on every edge.

    Raises:
        ValueError: If the padding leaves no drawable area.
    """

    def __init__(self, width: float = 500.0, height: float = 600.0, padding: float = 20.0):
        if width - 2 * padding <= 0 or height - 2 * padding <= 0:
            raise ValueError(
                f"Surface {width}x{height} too small for padding {padding}"
            )
        self.width = float(width)
        self.height = float(height)
        self.padding = float(padding)

    @classmethod
    def for_map(cls, wmap: Optional[WardleyMap] = None,
                canvas: Optional[CanvasSettings] = None) -> "CoordinateMapper":
        """Build a mapper from canvas settings, honouring a map's ``size`` override."""
        canvas = canvas or CanvasSettings()
        width, height = canvas.width, canvas.height
        if wmap is not None and wmap.presentation.size.is_set:
            width = wmap.presentation.size.width
            height = wmap.presentation.size.height
        return cls(width, height, canvas.padding)

    @property
    def _span_x(self) -> float:
        return self.width - 2 * self.padding

    @property
    def _span_y(self) -> float:
        return self.height - 2 * self.padding

    def maturity_to_x(self, maturity: float) -> float:
        return self.padding + maturity * self._span_x

    def visibility_to_y(self, visibility: float) -> float:
        return self.padding + (1.0 - visibility) * self._span_y

    def x_to_maturity(self, x: float) -> float:
        return (x - self.padding) / self._span_x

    def y_to_visibility(self, y: float) -> float:
        return 1.0 - (y - self.padding) / self._span_y

    def to_surface(self, visibility: float, maturity: float) -> Tuple[float, float]:
        """Return ``(x, y)`` pixels for a map position."""
        return self.maturity_to_x(maturity), self.visibility_to_y(visibility)

    def to_normalized(self, x: float, y: float) -> Tuple[float, float]:
        """Return ``(visibility, maturity)`` for a surface position."""
        return self.y_to_visibility(y), self.x_to_maturity(x)

    def point(self, visibility: float, maturity: float) -> QPointF:
        x, y = self.to_surface(visibility, maturity)
        return QPointF(x, y)

    def from_point(self, pt: QPointF) -> Tuple[float, float]:
        return self.to_normalized(pt.x(), pt.y())

    @staticmethod
    def clamp(visibility: float, maturity: float) -> Tuple[float, float]:
        """Clamp a position into the unit square for drawing.

        Parsed values are kept verbatim; only the renderer clamps.
        """
        return min(max(visibility, 0.0), 1.0), min(max(maturity, 0.0), 1.0)
