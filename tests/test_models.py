import pytest
from pydantic import ValidationError

from route_animator.core.models import (
    BRANCH_DELAY_MS,
    DASH_PATTERNS,
    Route,
    RouteAnimation,
    RouteStyle,
    VideoSettings,
    Waypoint,
    branch_from,
    extend_route,
)
from route_animator.exceptions import ExportValidationError


class TestRoute:
    def test_defaults(self):
        route = Route()
        assert route.style.color == "#007bff"
        assert route.style.stroke_width == 3.0
        assert route.animation.duration_ms == 3000.0
        assert route.visible
        assert not route.drawable

    def test_camel_case_wire_format(self):
        route = Route.model_validate(
            {
                "waypoints": [{"x": 1, "y": 2}, {"x": 3, "y": 4}],
                "style": {"color": "#ff0000", "strokeWidth": 5, "dashPattern": [10, 5]},
                "animation": {"delayMs": 100, "durationMs": 900},
            }
        )
        assert route.drawable
        assert route.style.dash_pattern == DASH_PATTERNS["dashed"]
        assert route.animation.delay_ms == 100
        dumped = route.model_dump(by_alias=True)
        assert dumped["style"]["strokeWidth"] == 5

    def test_bad_color_rejected(self):
        with pytest.raises(ValidationError):
            RouteStyle(color="blue")

    def test_non_positive_dash_rejected(self):
        with pytest.raises(ValidationError):
            RouteStyle(dash_pattern=(4, 0))

    def test_negative_delay_rejected(self):
        with pytest.raises(ValidationError):
            RouteAnimation(delay_ms=-1)

    def test_extend_route_returns_copy(self, route):
        longer = extend_route(route, Waypoint(x=0, y=10))
        assert len(longer.waypoints) == 4
        assert len(route.waypoints) == 3
        assert longer.id == route.id


class TestVideoSettings:
    def test_defaults(self):
        settings = VideoSettings()
        assert (settings.width, settings.height, settings.fps) == (1920, 1080, 30)
        assert settings.background_color == "#1e1e1e"
        assert settings.format == "mp4"

    def test_unknown_format_rejected(self):
        with pytest.raises(ValidationError):
            VideoSettings(format="avi")


class TestBranchFrom:
    def test_branch_copies_waypoint_and_delays(self, route_factory):
        parent = route_factory((0, 0), (5, 5), (9, 9), delay_ms=200)
        branch = branch_from(parent, 1)
        assert branch.parent_route_id == parent.id
        assert branch.waypoints == (Waypoint(x=5, y=5),)
        assert branch.branch_waypoint == Waypoint(x=5, y=5)
        assert branch.animation.delay_ms == 200 + BRANCH_DELAY_MS
        assert branch.is_branch
        assert not branch.drawable

    def test_parent_without_delay(self, route):
        assert branch_from(route, 0).animation.delay_ms == BRANCH_DELAY_MS

    def test_branch_is_independent_of_parent(self, route):
        """Editing the parent afterwards does not move the branch."""
        branch = branch_from(route, 2)
        moved = route.model_copy(update={"waypoints": (Waypoint(x=99, y=99),)})
        assert moved.waypoints[0] != branch.waypoints[0]
        assert branch.waypoints[0] == Waypoint(x=10, y=10)

    @pytest.mark.parametrize("index", [-1, 3, 10])
    def test_out_of_range_index(self, route, index):
        with pytest.raises(ExportValidationError, match="does not exist"):
            branch_from(route, index)
