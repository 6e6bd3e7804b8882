"""Per-route timing windows on the global timeline."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from route_animator.core.easing import apply_easing
from route_animator.core.models import Route


@dataclass(frozen=True)
class RouteFrame:
    """One route's state for a single global progress value."""

    route: Route
    start: float
    end: float
    local_progress: float
    eased_progress: float


def route_window(route: Route, total_duration_ms: float) -> tuple[float, float]:
    """Return ``(start, end)`` of ``route`` as fractions of the timeline."""
    if total_duration_ms <= 0:
        return 0.0, 0.0
    start = route.animation.delay_ms / total_duration_ms
    end = start + route.animation.duration_ms / total_duration_ms
    return start, end


def local_progress(route: Route, progress: float, total_duration_ms: float) -> float:
    """
    Map global progress onto the route's own ``[0, 1]`` progress.

    Zero at or before the route's start, one at or after its end, linear in
    between. A zero-duration route jumps straight from 0 to 1.
    """
    if total_duration_ms <= 0:
        return 0.0
    start, end = route_window(route, total_duration_ms)
    if progress <= start:
        return 0.0
    if progress >= end:
        return 1.0
    return (progress - start) / (end - start)


def resolve_routes(
    routes: Iterable[Route],
    progress: float,
    total_duration_ms: float,
    easing: str | None = None,
) -> list[RouteFrame]:
    """
    Compute the drawing progress of every visible, drawable route.

    Args:
        routes: Route snapshot in editor order.
        progress: Global progress, already eased.
        total_duration_ms: Length of the whole animation.
        easing: Global easing, used for routes without their own.

    Returns:
        Route frames sorted by start time. Routes that start together keep
        their input order.

    """
    frames = []
    for route in routes:
        if not route.visible or not route.drawable:
            continue
        start, end = route_window(route, total_duration_ms)
        local = local_progress(route, progress, total_duration_ms)
        eased = apply_easing(route.animation.easing or easing, local)
        frames.append(RouteFrame(route, start, end, local, eased))
    # sorted() is stable, ties keep editor order
    return sorted(frames, key=lambda frame: frame.start)


__all__ = ["RouteFrame", "local_progress", "resolve_routes", "route_window"]
