"""Turn the animation into an ordered sequence of raster frames."""

from __future__ import annotations

import base64
import binascii
import io
import logging
import math
from collections import deque
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path

import httpx
from PIL import Image, UnidentifiedImageError

from route_animator.core.easing import apply_easing
from route_animator.core.models import Route, VideoSettings
from route_animator.core.path import Point, draw_route
from route_animator.core.timing import resolve_routes
from route_animator.exceptions import BackgroundImageError

logger = logging.getLogger(__name__)

BackgroundRef = bytes | str


@dataclass(frozen=True)
class FitTransform:
    """Maps background-image pixels onto the centred, aspect-fit canvas."""

    scale: float
    offset_x: float
    offset_y: float

    @classmethod
    def fit(cls, source_size: tuple[int, int], canvas_size: tuple[int, int]) -> FitTransform:
        src_w, src_h = source_size
        dst_w, dst_h = canvas_size
        scale = min(dst_w / max(src_w, 1), dst_h / max(src_h, 1))
        return cls(
            scale=scale,
            offset_x=(dst_w - src_w * scale) / 2,
            offset_y=(dst_h - src_h * scale) / 2,
        )

    def apply(self, x: float, y: float) -> Point:
        return self.offset_x + x * self.scale, self.offset_y + y * self.scale


def _decode(data: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data)) as src_image:
            return src_image.convert("RGB")
    except (UnidentifiedImageError, OSError) as exc:
        msg = f"Background image could not be decoded: {exc}"
        raise BackgroundImageError(msg) from exc


def load_background(
    ref: BackgroundRef,
    *,
    upload_folder: Path | None = None,
    fetch_timeout_s: float = 10.0,
) -> Image.Image:
    """
    Resolve a background image reference into an RGB image.

    ``ref`` may be raw image bytes, a ``data:image/...;base64,`` URL, an
    ``http(s)://`` URL, or the name of a file in ``upload_folder``.

    Raises:
        BackgroundImageError: The reference cannot be resolved or decoded.

    """
    if isinstance(ref, bytes):
        return _decode(ref)

    if ref.startswith("data:"):
        _, _, payload = ref.partition(",")
        try:
            return _decode(base64.b64decode(payload, validate=True))
        except binascii.Error as exc:
            msg = "Background data URL is not valid base64"
            raise BackgroundImageError(msg) from exc

    if ref.startswith(("http://", "https://")):
        try:
            response = httpx.get(ref, timeout=fetch_timeout_s, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            msg = f"Background image could not be fetched: {exc}"
            raise BackgroundImageError(msg) from exc
        return _decode(response.content)

    if upload_folder is None:
        msg = f"Unsupported background image reference: {ref[:40]!r}"
        raise BackgroundImageError(msg)
    base = upload_folder.resolve()
    target = (base / Path(ref).name).resolve()
    if target.parent != base or not target.is_file():
        msg = f"Background image {Path(ref).name!r} not found"
        raise BackgroundImageError(msg)
    return _decode(target.read_bytes())


@dataclass(frozen=True)
class Scene:
    """Everything needed to render any frame of one animation."""

    routes: tuple[Route, ...]
    settings: VideoSettings
    total_duration_ms: float
    easing: str = "easeInOutCubic"
    background: Image.Image | None = None

    @property
    def canvas_size(self) -> tuple[int, int]:
        return self.settings.width, self.settings.height

    def transform(self) -> FitTransform:
        if self.background is None:
            return FitTransform(1.0, 0.0, 0.0)
        return FitTransform.fit(self.background.size, self.canvas_size)


def frame_count(fps: int, total_duration_ms: float) -> int:
    return math.ceil(fps * total_duration_ms / 1000)


def frame_time(index: int, fps: int, total_duration_ms: float) -> float:
    """Timeline position of frame ``index``; the final frame sits on the end."""
    if index >= frame_count(fps, total_duration_ms) - 1:
        return max(0.0, float(total_duration_ms))
    return min(index * 1000 / fps, total_duration_ms)


def _base_canvas(scene: Scene, transform: FitTransform) -> Image.Image:
    canvas = Image.new("RGBA", scene.canvas_size, scene.settings.background_color)
    if scene.background is not None:
        w, h = scene.background.size
        size = (max(1, round(w * transform.scale)), max(1, round(h * transform.scale)))
        fitted = scene.background.resize(size, Image.Resampling.BILINEAR)
        canvas.paste(fitted, (round(transform.offset_x), round(transform.offset_y)))
    return canvas


def _draw_routes(
    canvas: Image.Image,
    scene: Scene,
    transform: FitTransform,
    progress: float,
    *,
    time_ms: float,
    show_markers: bool,
) -> None:
    for frame in resolve_routes(scene.routes, progress, scene.total_duration_ms, scene.easing):
        points = [transform.apply(wp.x, wp.y) for wp in frame.route.waypoints]
        draw_route(
            canvas,
            points,
            frame.eased_progress,
            frame.route.style,
            scale=transform.scale,
            show_markers=show_markers,
            time_ms=time_ms,
        )


def render_frame(scene: Scene, time_ms: float, *, show_markers: bool = False) -> Image.Image:
    """Render the animation at ``time_ms`` as an RGB image."""
    transform = scene.transform()
    canvas = _base_canvas(scene, transform)
    if scene.total_duration_ms > 0:
        progress = apply_easing(scene.easing, time_ms / scene.total_duration_ms)
    else:
        progress = 0.0
    _draw_routes(canvas, scene, transform, progress, time_ms=time_ms, show_markers=show_markers)
    return canvas.convert("RGB")


def render_still(scene: Scene) -> Image.Image:
    """Render every route fully drawn, for single-image exports."""
    transform = scene.transform()
    canvas = _base_canvas(scene, transform)
    # every route at t=1, even one whose window runs past the timeline
    for route in scene.routes:
        if not route.visible or not route.drawable:
            continue
        draw_route(
            canvas,
            [transform.apply(wp.x, wp.y) for wp in route.waypoints],
            1.0,
            route.style,
            scale=transform.scale,
            time_ms=scene.total_duration_ms,
        )
    return canvas.convert("RGB")


def iter_frames(
    scene: Scene,
    *,
    workers: int = 1,
    should_stop: Callable[[], bool] | None = None,
) -> Iterator[tuple[int, Image.Image]]:
    """
    Lazily yield ``(index, frame)`` for every frame of the animation.

    With ``workers > 1`` frames are rendered on a thread pool through a
    window of ``2 * workers`` pending frames; they are still yielded in strict
    index order. ``should_stop`` is polled between frames and ends the
    sequence early when it returns true.
    """
    fps = scene.settings.fps
    total = frame_count(fps, scene.total_duration_ms)
    times: Sequence[float] = [frame_time(i, fps, scene.total_duration_ms) for i in range(total)]
    logger.debug(f"[FRAMES] {total} frames at {fps}fps, workers={workers}")

    if workers <= 1:
        for index, time_ms in enumerate(times):
            if should_stop is not None and should_stop():
                return
            yield index, render_frame(scene, time_ms)
        return

    window = 2 * workers
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="frame") as pool:
        pending: deque[Future[Image.Image]] = deque()
        next_index = 0
        for index in range(total):
            while next_index < total and len(pending) < window:
                pending.append(pool.submit(render_frame, scene, times[next_index]))
                next_index += 1
            if should_stop is not None and should_stop():
                for future in pending:
                    future.cancel()
                return
            yield index, pending.popleft().result()


__all__ = [
    "BackgroundRef",
    "FitTransform",
    "Scene",
    "frame_count",
    "frame_time",
    "iter_frames",
    "load_background",
    "render_frame",
    "render_still",
]
