import math

import pytest
from PIL import Image

from route_animator.core.models import RouteStyle
from route_animator.core.path import (
    dash_segments,
    draw_route,
    polyline_length,
    trace_path,
    visible_marker_count,
)

L_SHAPE = [(0, 0), (10, 0), (10, 10)]


class TestTracePath:
    def test_half_way_ends_at_corner(self):
        trace = trace_path(L_SHAPE, 0.5)
        assert trace.tip == pytest.approx((10, 0))
        assert trace.drawn_length == pytest.approx(10)
        assert trace.total_length == pytest.approx(20)
        assert not trace.complete

    @pytest.mark.parametrize("t", [0.1, 0.25, 0.6, 0.75, 0.9])
    def test_drawn_length_matches_progress(self, t):
        trace = trace_path(L_SHAPE, t)
        assert polyline_length(trace.points) == pytest.approx(20 * t)

    def test_partial_segment_tip_and_heading(self):
        trace = trace_path(L_SHAPE, 0.75)
        assert trace.tip == pytest.approx((10, 5))
        assert trace.segment_index == 1
        assert trace.heading == pytest.approx(math.pi / 2)

    def test_zero_draws_nothing(self):
        trace = trace_path(L_SHAPE, 0)
        assert trace.empty
        assert trace.tip is None

    def test_one_draws_everything(self):
        trace = trace_path(L_SHAPE, 1)
        assert trace.complete
        assert trace.points == ((0, 0), (10, 0), (10, 10))

    def test_coincident_points_are_a_dot(self):
        trace = trace_path([(3, 3), (3, 3)], 0.5)
        assert trace.degenerate
        assert trace.points == ((3, 3),)

    def test_fewer_than_two_points(self):
        assert trace_path([(1, 1)], 1).empty


class TestMarkers:
    @pytest.mark.parametrize(
        ("t", "expected"),
        [(0, 0), (0.01, 1), (0.5, 3), (0.99, 4), (1, 4)],
    )
    def test_visible_marker_count(self, t, expected):
        assert visible_marker_count(4, t) == expected


class TestDashSegments:
    def test_solid_is_one_piece(self):
        assert list(dash_segments(L_SHAPE, ())) == [L_SHAPE]

    def test_dashes_cover_on_intervals(self):
        pieces = list(dash_segments([(0, 0), (30, 0)], (10, 5)))
        assert [polyline_length(p) for p in pieces] == pytest.approx([10, 10])
        assert pieces[1][0] == pytest.approx((15, 0))


class TestDrawRoute:
    def _canvas(self):
        return Image.new("RGBA", (40, 40), "#000000")

    def test_nothing_drawn_at_zero(self):
        image = self._canvas()
        draw_route(image, [(5, 5), (35, 5)], 0, RouteStyle(color="#ff0000"))
        assert image.convert("RGB").getextrema() == ((0, 0), (0, 0), (0, 0))

    def test_complete_route_is_painted(self):
        image = self._canvas()
        trace = draw_route(image, [(5, 20), (35, 20)], 1, RouteStyle(color="#ff0000"))
        assert trace.complete
        red, _, _, _ = image.getpixel((20, 20))
        assert red > 200

    def test_same_time_same_pixels(self):
        """Pulsing is a function of time, so frames are reproducible."""
        style = RouteStyle(color="#00ff00")
        first, second = self._canvas(), self._canvas()
        draw_route(first, [(5, 5), (35, 35)], 0.5, style, time_ms=1234, show_markers=True)
        draw_route(second, [(5, 5), (35, 35)], 0.5, style, time_ms=1234, show_markers=True)
        assert first.tobytes() == second.tobytes()
