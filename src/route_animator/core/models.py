"""Routes, waypoints and video settings shared by the renderer and the API."""

from __future__ import annotations

import re
import uuid
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from route_animator.exceptions import ExportValidationError

HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

DASH_PATTERNS: dict[str, tuple[float, ...]] = {
    "solid": (),
    "dashed": (10.0, 5.0),
    "dotted": (2.0, 3.0),
}
"""Dash presets offered by the route editor."""

BRANCH_DELAY_MS = 500
"""Extra delay a branch waits after its parent route starts."""


class _Model(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


def _check_color(value: str) -> str:
    if not HEX_COLOR.match(value):
        msg = f"{value!r} is not a #rgb or #rrggbb color"
        raise ValueError(msg)
    return value


class Waypoint(_Model):
    """A point in background-image pixel coordinates."""

    x: float
    y: float


class RouteStyle(_Model):
    color: str = "#007bff"
    stroke_width: float = Field(default=3.0, gt=0)
    dash_pattern: tuple[float, ...] = ()

    @field_validator("color")
    @classmethod
    def _valid_color(cls, value: str) -> str:
        return _check_color(value)

    @field_validator("dash_pattern")
    @classmethod
    def _positive_dashes(cls, value: tuple[float, ...]) -> tuple[float, ...]:
        if any(d <= 0 for d in value):
            msg = "dash lengths must be positive"
            raise ValueError(msg)
        return value


class RouteAnimation(_Model):
    delay_ms: float = Field(default=0.0, ge=0)
    duration_ms: float = Field(default=3000.0, ge=0)
    easing: str | None = None


class Route(_Model):
    """
    Ordered polyline with style and timing.

    A route with fewer than two waypoints is kept (the editor may still be
    adding points to it) but is never drawn.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    name: str = ""
    waypoints: tuple[Waypoint, ...] = ()
    style: RouteStyle = RouteStyle()
    visible: bool = True
    animation: RouteAnimation = RouteAnimation()
    parent_route_id: str | None = None
    branch_waypoint: Waypoint | None = None

    @property
    def drawable(self) -> bool:
        return len(self.waypoints) >= 2  # noqa: PLR2004

    @property
    def is_branch(self) -> bool:
        return self.parent_route_id is not None


class VideoSettings(_Model):
    width: int = Field(default=1920, ge=16, le=7680)
    height: int = Field(default=1080, ge=16, le=7680)
    fps: int = Field(default=30, ge=1, le=120)
    background_color: str = "#1e1e1e"
    format: Literal["mp4", "webm"] = "mp4"
    quality: Literal["low", "medium", "high"] = "high"

    @field_validator("background_color")
    @classmethod
    def _valid_background(cls, value: str) -> str:
        return _check_color(value)


def branch_from(
    parent: Route,
    waypoint_index: int,
    *,
    name: str | None = None,
    style: RouteStyle | None = None,
    duration_ms: float = 3000.0,
) -> Route:
    """
    Start a new route at one of ``parent``'s waypoints.

    The branch copies the waypoint by value; moving the parent's waypoint
    later does not move the branch. The branch starts ``BRANCH_DELAY_MS``
    after its parent's own delay.

    Raises:
        ExportValidationError: ``waypoint_index`` is outside the parent route.

    """
    if not 0 <= waypoint_index < len(parent.waypoints):
        msg = (
            f"Waypoint {waypoint_index} does not exist on route "
            f"{parent.name or parent.id}"
        )
        raise ExportValidationError(msg)
    source = parent.waypoints[waypoint_index]
    return Route(
        name=name or f"Branch from {parent.name or parent.id}",
        waypoints=(Waypoint(x=source.x, y=source.y),),
        style=style or parent.style,
        animation=RouteAnimation(
            delay_ms=parent.animation.delay_ms + BRANCH_DELAY_MS,
            duration_ms=duration_ms,
            easing=parent.animation.easing,
        ),
        parent_route_id=parent.id,
        branch_waypoint=source,
    )


def extend_route(route: Route, *points: Waypoint) -> Route:
    """Return a copy of ``route`` with ``points`` appended."""
    return route.model_copy(update={"waypoints": (*route.waypoints, *points)})


__all__ = [
    "BRANCH_DELAY_MS",
    "DASH_PATTERNS",
    "Route",
    "RouteAnimation",
    "RouteStyle",
    "VideoSettings",
    "Waypoint",
    "branch_from",
    "extend_route",
]
