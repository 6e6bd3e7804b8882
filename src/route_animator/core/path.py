"""
Partial drawing of a route polyline.

:func:`trace_path` is pure geometry: for a progress ``t`` it returns exactly
the part of the polyline whose length is ``t * total_length``.
:func:`draw_route` paints that trace with Pillow, together with the moving
tip, the completion halo and (in the editor preview only) waypoint markers.
"""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass

import numpy as np
from PIL import Image, ImageColor, ImageDraw

from route_animator.core.models import RouteStyle

Point = tuple[float, float]

START_MARKER_COLOR = "#28a745"
END_MARKER_COLOR = "#dc3545"
MARKER_COLOR = "#ffffff"


@dataclass(frozen=True)
class PathTrace:
    points: tuple[Point, ...]
    """Drawn polyline, ending at the tip."""
    tip: Point | None
    heading: float
    """Direction of travel (radians) of the segment being drawn."""
    segment_index: int
    drawn_length: float
    total_length: float
    complete: bool

    @property
    def empty(self) -> bool:
        return not self.points

    @property
    def degenerate(self) -> bool:
        """Every waypoint coincides: draw a dot, not a stroke."""
        return bool(self.points) and self.total_length == 0


def _empty_trace(total_length: float = 0.0) -> PathTrace:
    return PathTrace((), None, 0.0, 0, 0.0, total_length, complete=False)


def trace_path(points: Sequence[Point], t: float) -> PathTrace:
    """
    Cut the polyline ``points`` at ``t`` of its total length.

    Args:
        points: Ordered vertices; fewer than two yields an empty trace.
        t: Eased local progress. ``t <= 0`` draws nothing, ``t >= 1`` draws
            the whole polyline and marks the trace complete.

    Returns:
        The drawn part of the polyline and where its tip is heading.

    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(pts) < 2:  # noqa: PLR2004
        return _empty_trace()

    deltas = np.diff(pts, axis=0)
    lengths = np.hypot(deltas[:, 0], deltas[:, 1])
    ends = np.cumsum(lengths)
    total = float(ends[-1])

    if t <= 0:
        return _empty_trace(total)

    if total == 0:
        dot = (float(pts[0, 0]), float(pts[0, 1]))
        return PathTrace((dot,), dot, 0.0, 0, 0.0, 0.0, complete=t >= 1)

    if t >= 1:
        moving = np.flatnonzero(lengths)
        last = int(moving[-1])
        heading = math.atan2(deltas[last, 1], deltas[last, 0])
        drawn = tuple((float(x), float(y)) for x, y in pts)
        return PathTrace(drawn, drawn[-1], heading, last, total, total, complete=True)

    target = total * t
    # first segment whose end lies beyond the target length
    index = min(int(np.searchsorted(ends, target, side="right")), len(lengths) - 1)
    start = float(ends[index] - lengths[index])
    fraction = (target - start) / float(lengths[index])
    tip_arr = pts[index] + deltas[index] * fraction
    tip = (float(tip_arr[0]), float(tip_arr[1]))

    drawn = [(float(x), float(y)) for x, y in pts[: index + 1]]
    if fraction > 0:
        drawn.append(tip)
    heading = math.atan2(deltas[index, 1], deltas[index, 0])
    return PathTrace(tuple(drawn), tip, heading, index, target, total, complete=False)


def polyline_length(points: Sequence[Point]) -> float:
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    if len(pts) < 2:  # noqa: PLR2004
        return 0.0
    deltas = np.diff(pts, axis=0)
    return float(np.hypot(deltas[:, 0], deltas[:, 1]).sum())


def visible_marker_count(total_waypoints: int, t: float) -> int:
    """Number of waypoint markers shown at progress ``t``."""
    if total_waypoints <= 0 or t <= 0:
        return 0
    return min(total_waypoints, math.floor(total_waypoints * t) + 1)


def dash_segments(points: Sequence[Point], pattern: Sequence[float]) -> Iterator[list[Point]]:
    """Split a polyline into the "on" pieces of a dash pattern."""
    if not pattern:
        yield list(points)
        return
    pattern = list(pattern) * (2 if len(pattern) % 2 else 1)
    dash_index = 0
    remaining = pattern[0]
    current: list[Point] = [points[0]]
    for (x0, y0), (x1, y1) in zip(points, points[1:], strict=False):
        seg_len = math.hypot(x1 - x0, y1 - y0)
        pos = 0.0
        while seg_len - pos > remaining:
            pos += remaining
            f = pos / seg_len
            split = (x0 + (x1 - x0) * f, y0 + (y1 - y0) * f)
            if dash_index % 2 == 0:
                current.append(split)
                yield current
            current = [split]
            dash_index = (dash_index + 1) % len(pattern)
            remaining = pattern[dash_index]
        remaining -= seg_len - pos
        current.append((x1, y1))
    if dash_index % 2 == 0 and len(current) > 1:
        yield current


def _rgba(color: str, alpha: float = 1.0) -> tuple[int, int, int, int]:
    r, g, b = ImageColor.getrgb(color)[:3]
    return r, g, b, max(0, min(255, round(alpha * 255)))


def _dot(draw: ImageDraw.ImageDraw, center: Point, radius: float, fill, outline=None, width=0):
    x, y = center
    draw.ellipse(
        (x - radius, y - radius, x + radius, y + radius),
        fill=fill,
        outline=outline,
        width=width,
    )


def _stroke(
    draw: ImageDraw.ImageDraw,
    points: Sequence[Point],
    color: tuple[int, int, int, int],
    width: float,
    dash: Sequence[float],
) -> None:
    line_width = max(1, round(width))
    for piece in dash_segments(points, dash):
        draw.line(piece, fill=color, width=line_width, joint="curve")
        # round caps
        for end in (piece[0], piece[-1]):
            _dot(draw, end, line_width / 2, color)


def _pulse(time_ms: float, rate: float, depth: float) -> float:
    return math.sin(time_ms * rate) * depth + (1 - depth)


def draw_route(  # noqa: PLR0913
    image: Image.Image,
    points: Sequence[Point],
    t: float,
    style: RouteStyle,
    *,
    scale: float = 1.0,
    show_markers: bool = False,
    time_ms: float = 0.0,
) -> PathTrace:
    """
    Paint ``points`` (already in canvas pixels) at progress ``t``.

    ``time_ms`` only drives the pulsing of the tip and completion indicators,
    so rendering the same frame twice gives the same pixels. Waypoint markers
    are an editing aid and are drawn only when ``show_markers`` is set.
    """
    trace = trace_path(points, t)
    if trace.empty:
        return trace

    draw = ImageDraw.Draw(image, "RGBA")
    width = max(1.0, style.stroke_width * scale)
    dash = [d * scale for d in style.dash_pattern]

    if trace.degenerate:
        _dot(draw, trace.points[0], width, _rgba(style.color))
    elif trace.complete:
        _stroke(draw, trace.points, _rgba(style.color), width + 2, dash)
        halo = _pulse(time_ms, 0.005, 0.2)
        _dot(draw, trace.points[-1], 8 * scale, _rgba(style.color, halo))
    else:
        _stroke(draw, trace.points, _rgba(style.color, 0.7), width, dash)
        _draw_tip(draw, trace, style.color, width, scale, time_ms)

    if show_markers:
        _draw_markers(draw, points, t, style.color, scale, time_ms)
    return trace


def _draw_tip(draw, trace: PathTrace, color: str, width: float, scale: float, time_ms: float):
    _dot(draw, trace.tip, width * 1.5, _rgba(color, _pulse(time_ms, 0.01, 0.3)))

    size = 15 * scale * _pulse(time_ms, 0.008, 0.4)
    cos_h, sin_h = math.cos(trace.heading), math.sin(trace.heading)
    tx, ty = trace.tip
    arrow = [
        (tx + px * cos_h - py * sin_h, ty + px * sin_h + py * cos_h)
        for px, py in ((size, 0.0), (-size * 0.5, -size * 0.5), (-size * 0.5, size * 0.5))
    ]
    draw.polygon(arrow, fill=_rgba(color, 0.8))


def _draw_markers(draw, points: Sequence[Point], t: float, color: str, scale: float, time_ms: float):
    total = len(points)
    shown = visible_marker_count(total, t)
    radius = 4 * scale
    outline_width = max(1, round(2 * scale))
    for index, point in enumerate(points[:shown]):
        if index == 0:
            fill, outline = _rgba(START_MARKER_COLOR), _rgba(MARKER_COLOR)
        elif index == total - 1 and t >= 1:
            fill, outline = _rgba(END_MARKER_COLOR), _rgba(MARKER_COLOR)
        elif index == shown - 1 and t < 1:
            fill = _rgba(color, _pulse(time_ms, 0.01, 0.3))
            outline = _rgba(MARKER_COLOR)
        else:
            fill, outline = _rgba(MARKER_COLOR), _rgba(color)
        _dot(draw, point, radius, fill, outline, outline_width)


__all__ = [
    "PathTrace",
    "dash_segments",
    "draw_route",
    "polyline_length",
    "trace_path",
    "visible_marker_count",
]
