"""Request and response bodies for the HTTP API."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from route_animator.core.models import Route, VideoSettings


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExportRequest(_Body):
    routes: list[Route] = Field(default_factory=list)
    settings: VideoSettings = Field(default_factory=VideoSettings)
    total_duration_ms: float
    background_image: str | None = Field(
        default=None,
        validation_alias=AliasChoices("backgroundImage", "backgroundImageRef", "background_image"),
        serialization_alias="backgroundImage",
    )
    """A ``data:`` URL, an ``http(s)`` URL or the name of an uploaded file."""
    easing: str = "easeInOutCubic"


class PreviewRequest(ExportRequest):
    time_ms: float = Field(default=0.0, ge=0.0)
    show_markers: bool = True


class ExportAccepted(_Body):
    job_id: str
    status: str = "queued"


__all__ = ["ExportAccepted", "ExportRequest", "PreviewRequest"]
