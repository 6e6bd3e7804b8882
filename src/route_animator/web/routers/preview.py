import io
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from route_animator.config import Settings
from route_animator.core.frames import Scene, load_background, render_frame
from route_animator.core.models import VideoSettings
from route_animator.exceptions import BackgroundImageError
from route_animator.web.constants import PREVIEW_WIDTH
from route_animator.web.dependencies import get_app_settings
from route_animator.web.schemas import PreviewRequest

router = APIRouter(
    prefix="/preview",
    tags=["preview"],
)


def _preview_settings(settings: VideoSettings) -> VideoSettings:
    if settings.width <= PREVIEW_WIDTH:
        return settings
    height = max(16, round(settings.height * PREVIEW_WIDTH / settings.width))
    return settings.model_copy(update={"width": PREVIEW_WIDTH, "height": height})


@router.post("", response_class=StreamingResponse)
async def preview(
    body: PreviewRequest,
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> StreamingResponse:
    """Render one frame of the animation at ``timeMs`` as a PNG."""

    def _render_png() -> bytes:
        background = None
        if body.background_image:
            background = load_background(
                body.background_image,
                upload_folder=settings.upload_folder,
                fetch_timeout_s=settings.fetch_timeout_s,
            )
        scene = Scene(
            routes=tuple(body.routes),
            settings=_preview_settings(body.settings),
            total_duration_ms=body.total_duration_ms,
            easing=body.easing,
            background=background,
        )
        image = render_frame(scene, body.time_ms, show_markers=body.show_markers)
        bio = io.BytesIO()
        image.save(bio, format="PNG")
        return bio.getvalue()

    try:
        png = await run_in_threadpool(_render_png)
    except BackgroundImageError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.message,
        ) from exc

    return StreamingResponse(io.BytesIO(png), media_type="image/png")


__all__ = ["router"]
