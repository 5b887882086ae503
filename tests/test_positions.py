"""Tests for canvas/positions.py: normalized <-> pixel coordinates."""
from __future__ import annotations

import pytest
from PyQt6.QtCore import QPointF

from canvas.positions import CoordinateMapper
from models import MapPresentation, MapSize, WardleyMap
from settings import CanvasSettings


class TestCoordinateMapper:

    @pytest.fixture()
    def mapper(self):
        return CoordinateMapper(500, 600, 20)

    def test_maturity_edges(self, mapper):
        assert mapper.maturity_to_x(0.0) == 20
        assert mapper.maturity_to_x(1.0) == 480

    def test_visibility_is_inverted(self, mapper):
        assert mapper.visibility_to_y(1.0) == 20
        assert mapper.visibility_to_y(0.0) == 580

    def test_to_surface(self, mapper):
        assert mapper.to_surface(0.5, 0.5) == (250, 300)

    @pytest.mark.parametrize("value", [0.0, 0.001, 0.25, 0.5, 0.73, 0.999, 1.0])
    def test_round_trip(self, mapper, value):
        assert mapper.y_to_visibility(mapper.visibility_to_y(value)) == pytest.approx(value, abs=1e-3)
        assert mapper.x_to_maturity(mapper.maturity_to_x(value)) == pytest.approx(value, abs=1e-3)

    def test_to_normalized_inverts_to_surface(self, mapper):
        x, y = mapper.to_surface(0.79, 0.61)
        vis, mat = mapper.to_normalized(x, y)
        assert vis == pytest.approx(0.79)
        assert mat == pytest.approx(0.61)

    def test_qt_points(self, mapper):
        pt = mapper.point(1.0, 0.0)
        assert isinstance(pt, QPointF)
        assert (pt.x(), pt.y()) == (20, 20)
        vis, mat = mapper.from_point(QPointF(480, 580))
        assert (vis, mat) == pytest.approx((0.0, 1.0))

    def test_padding_too_large(self):
        with pytest.raises(ValueError):
            CoordinateMapper(30, 600, 20)

    def test_clamp(self):
        assert CoordinateMapper.clamp(1.2, -0.1) == (1.0, 0.0)
        assert CoordinateMapper.clamp(0.4, 0.6) == (0.4, 0.6)


class TestForMap:

    def test_canvas_settings(self):
        mapper = CoordinateMapper.for_map(None, CanvasSettings(width=800, height=400, padding=10))
        assert (mapper.width, mapper.height, mapper.padding) == (800, 400, 10)

    def test_map_size_overrides_canvas(self):
        wmap = WardleyMap(presentation=MapPresentation(size=MapSize(1000, 900)))
        mapper = CoordinateMapper.for_map(wmap, CanvasSettings())
        assert (mapper.width, mapper.height) == (1000, 900)
        assert mapper.padding == 20

    def test_defaults(self):
        mapper = CoordinateMapper.for_map()
        assert (mapper.width, mapper.height, mapper.padding) == (500, 600, 20)
