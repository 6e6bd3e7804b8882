"""Shared pytest fixtures."""

from __future__ import annotations

import base64
import io

import pytest
from PIL import Image

from route_animator.core.models import Route, RouteAnimation, VideoSettings, Waypoint


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def now_ms(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class FakeScheduler:
    """Records scheduled callbacks; tests fire them by hand."""

    def __init__(self):
        self.pending: dict[int, object] = {}
        self.cancelled: list[int] = []
        self._next = 0

    def call_later(self, delay_ms, callback):
        self._next += 1
        self.pending[self._next] = callback
        return self._next

    def cancel(self, handle):
        self.cancelled.append(handle)
        self.pending.pop(handle, None)

    def fire_next(self) -> None:
        handle = min(self.pending)
        self.pending.pop(handle)()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


def make_route(*points, delay_ms=0.0, duration_ms=1000.0, **kwargs) -> Route:
    return Route(
        waypoints=tuple(Waypoint(x=x, y=y) for x, y in points),
        animation=RouteAnimation(delay_ms=delay_ms, duration_ms=duration_ms),
        **kwargs,
    )


@pytest.fixture
def route() -> Route:
    """An L-shaped route of length 20."""
    return make_route((0, 0), (10, 0), (10, 10), name="L")


@pytest.fixture
def small_settings() -> VideoSettings:
    return VideoSettings(width=64, height=48, fps=10)


@pytest.fixture
def png_bytes() -> bytes:
    bio = io.BytesIO()
    Image.new("RGB", (32, 24), "#336699").save(bio, format="PNG")
    return bio.getvalue()


@pytest.fixture
def png_data_url(png_bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def route_factory():
    return make_route
