"""
Export tiers, from best to most basic.

Each strategy states which capabilities it needs. The orchestrator runs the
first strategy the process can support; a strategy that fails fails the job,
the next tier is never tried.
"""

from __future__ import annotations

import json
import logging
import shutil
import tempfile
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from PIL import Image

from route_animator.core.frames import (
    BackgroundRef,
    Scene,
    frame_count,
    iter_frames,
    render_still,
)
from route_animator.core.models import Route, VideoSettings
from route_animator.core.timing import route_window
from route_animator.exceptions import CapabilityError, ExportCancelledError
from route_animator.web.workers.capabilities import Capabilities
from route_animator.web.workers.encoder import MEDIA_TYPES, FFmpegEncoder, frame_filename

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportPayload:
    """The validated content of one export request."""

    routes: tuple[Route, ...]
    settings: VideoSettings
    total_duration_ms: float
    background: BackgroundRef
    easing: str = "easeInOutCubic"


@dataclass(frozen=True)
class Artifact:
    path: Path
    media_type: str


@dataclass
class ExportContext:
    job_id: str
    payload: ExportPayload
    export_folder: Path
    capabilities: Capabilities
    report: Callable[[float, str], None]
    is_cancelled: Callable[[], bool]
    load_background: Callable[[BackgroundRef], Image.Image]
    encoder: FFmpegEncoder | None = None
    render_threads: int = 1

    def check_cancelled(self) -> None:
        if self.is_cancelled():
            raise ExportCancelledError

    def output_path(self, kind: str, extension: str) -> Path:
        return self.export_folder / f"route_{kind}_{self.job_id}{extension}"

    def scene(self) -> Scene:
        """Decode the background and bundle the render inputs."""
        background = self.load_background(self.payload.background)
        return Scene(
            routes=self.payload.routes,
            settings=self.payload.settings,
            total_duration_ms=self.payload.total_duration_ms,
            easing=self.payload.easing,
            background=background,
        )


class ExportStrategy:
    name: str = ""

    def is_available(self, capabilities: Capabilities) -> bool:
        raise NotImplementedError

    def run(self, ctx: ExportContext) -> Artifact:
        raise NotImplementedError


class VideoStrategy(ExportStrategy):
    """Render every frame to PNG, then encode them with ffmpeg."""

    name = "video"

    def is_available(self, capabilities: Capabilities) -> bool:
        return capabilities.rasterizer and capabilities.encoder

    def run(self, ctx: ExportContext) -> Artifact:
        if ctx.encoder is None:
            msg = "Video export needs an encoder"
            raise CapabilityError(msg)
        settings = ctx.payload.settings

        ctx.report(5, "setup")
        frames_dir = Path(tempfile.mkdtemp(prefix=f"route_frames_{ctx.job_id}_"))
        try:
            scene = ctx.scene()
            ctx.report(10, "background loaded")
            ctx.check_cancelled()

            total = frame_count(settings.fps, ctx.payload.total_duration_ms)
            logger.info(f"[EXPORT] job={ctx.job_id} rendering {total} frames")
            for index, frame in iter_frames(
                scene,
                workers=ctx.render_threads,
                should_stop=ctx.is_cancelled,
            ):
                frame.save(frames_dir / frame_filename(index), format="PNG")
                ctx.report(10 + 70 * (index + 1) / total, "rendering frames")
            ctx.check_cancelled()

            ctx.report(85, "encoding")
            output = ctx.output_path("video", f".{settings.format}")
            try:
                ctx.encoder.encode(ctx.job_id, frames_dir, output, settings)
                ctx.check_cancelled()
            except BaseException:
                # no job will ever point at a partial or cancelled video
                output.unlink(missing_ok=True)
                raise
            ctx.report(95, "finalizing")
            return Artifact(output, MEDIA_TYPES[settings.format])
        finally:
            try:
                shutil.rmtree(frames_dir)
            except OSError as exc:
                logger.warning(f"[EXPORT] job={ctx.job_id} could not remove {frames_dir}: {exc}")


class StillImageStrategy(ExportStrategy):
    """No encoder: one PNG with every route fully drawn."""

    name = "still"

    def is_available(self, capabilities: Capabilities) -> bool:
        return capabilities.rasterizer

    def run(self, ctx: ExportContext) -> Artifact:
        ctx.report(5, "setup")
        scene = ctx.scene()
        ctx.report(10, "background loaded")
        ctx.check_cancelled()

        image = render_still(scene)
        ctx.report(60, "rendering image")
        ctx.check_cancelled()

        output = ctx.output_path("image", ".png")
        image.save(output, format="PNG")
        ctx.report(90, "finalizing")
        return Artifact(output, "image/png")


def build_manifest(job_id: str, payload: ExportPayload, reason: str) -> dict:
    """Describe the animation without rendering it."""
    total = payload.total_duration_ms
    routes = []
    for index, route in enumerate(payload.routes):
        start, end = route_window(route, total)
        routes.append(
            {
                **route.model_dump(mode="json", by_alias=True),
                "name": route.name or f"Route {index + 1}",
                "waypointCount": len(route.waypoints),
                "window": {"start": start, "end": end},
            }
        )
    return {
        "id": job_id,
        "type": "route_animation_manifest",
        "created": datetime.now(timezone.utc).isoformat(),
        "reason": reason,
        "animation": {
            "totalDurationMs": total,
            "easing": payload.easing,
            "frameCount": frame_count(payload.settings.fps, total),
            "routeCount": len(routes),
            "waypointCount": sum(len(route.waypoints) for route in payload.routes),
        },
        "settings": payload.settings.model_dump(mode="json", by_alias=True),
        "routes": routes,
    }


class ManifestStrategy(ExportStrategy):
    """Nothing can be drawn: export a JSON description instead."""

    name = "manifest"

    def is_available(self, capabilities: Capabilities) -> bool:  # noqa: ARG002
        return True

    def run(self, ctx: ExportContext) -> Artifact:
        ctx.report(5, "setup")
        manifest = build_manifest(
            ctx.job_id,
            ctx.payload,
            reason="Rendering is not available on this server",
        )
        ctx.report(50, "writing manifest")
        ctx.check_cancelled()

        output = ctx.output_path("manifest", ".json")
        output.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
        return Artifact(output, "application/json")


DEFAULT_STRATEGIES: tuple[ExportStrategy, ...] = (
    VideoStrategy(),
    StillImageStrategy(),
    ManifestStrategy(),
)


def select_strategy(
    capabilities: Capabilities,
    strategies: tuple[ExportStrategy, ...] = DEFAULT_STRATEGIES,
) -> ExportStrategy:
    for strategy in strategies:
        if strategy.is_available(capabilities):
            return strategy
    msg = "No export strategy is available"
    raise CapabilityError(msg)


__all__ = [
    "DEFAULT_STRATEGIES",
    "Artifact",
    "ExportContext",
    "ExportPayload",
    "ExportStrategy",
    "ManifestStrategy",
    "StillImageStrategy",
    "VideoStrategy",
    "build_manifest",
    "select_strategy",
]
