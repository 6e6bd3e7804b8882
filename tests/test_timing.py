import pytest

from route_animator.core.timing import local_progress, resolve_routes, route_window


class TestLocalProgress:
    def test_window(self, route_factory):
        route = route_factory((0, 0), (1, 0), delay_ms=1000, duration_ms=2000)
        assert route_window(route, 10000) == pytest.approx((0.1, 0.3))

    @pytest.mark.parametrize(
        ("progress", "expected"),
        [(0.0, 0.0), (0.1, 0.0), (0.2, 0.5), (0.3, 1.0), (0.9, 1.0)],
    )
    def test_linear_inside_window(self, route_factory, progress, expected):
        route = route_factory((0, 0), (1, 0), delay_ms=1000, duration_ms=2000)
        assert local_progress(route, progress, 10000) == pytest.approx(expected)

    def test_zero_duration_jumps(self, route_factory):
        route = route_factory((0, 0), (1, 0), delay_ms=5000, duration_ms=0)
        assert local_progress(route, 0.49, 10000) == 0.0
        assert local_progress(route, 0.51, 10000) == 1.0

    def test_zero_total_duration(self, route):
        assert local_progress(route, 0.5, 0) == 0.0


class TestResolveRoutes:
    def test_sequential_routes(self, route_factory):
        first = route_factory((0, 0), (1, 0), delay_ms=0, duration_ms=5000)
        second = route_factory((0, 0), (1, 0), delay_ms=5000, duration_ms=5000)
        frames = resolve_routes([first, second], 0.25, 10000, easing="linear")
        assert [f.local_progress for f in frames] == pytest.approx([0.5, 0.0])

    def test_skips_hidden_and_short_routes(self, route_factory):
        hidden = route_factory((0, 0), (1, 0), visible=False)
        single = route_factory((0, 0))
        shown = route_factory((0, 0), (1, 0))
        frames = resolve_routes([hidden, single, shown], 0.5, 1000)
        assert [f.route.id for f in frames] == [shown.id]

    def test_sorted_by_start_stable(self, route_factory):
        late = route_factory((0, 0), (1, 0), delay_ms=500, name="late")
        a = route_factory((0, 0), (1, 0), name="a")
        b = route_factory((0, 0), (1, 0), name="b")
        frames = resolve_routes([late, a, b], 0.5, 1000)
        assert [f.route.name for f in frames] == ["a", "b", "late"]

    def test_route_easing_overrides_global(self, route_factory):
        route = route_factory((0, 0), (1, 0), duration_ms=1000)
        route = route.model_copy(
            update={"animation": route.animation.model_copy(update={"easing": "easeInQuad"})}
        )
        (frame,) = resolve_routes([route], 0.5, 1000, easing="linear")
        assert frame.eased_progress == pytest.approx(0.25)
