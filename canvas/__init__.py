"""
canvas package

Drawing-surface geometry shared by renderers and drag handling.
"""

from canvas.positions import CoordinateMapper

__all__ = [
    "CoordinateMapper",
]
