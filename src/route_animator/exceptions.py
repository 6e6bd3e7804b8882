"""
Exceptions raised by the animation core and the export pipeline.

Validation problems are raised synchronously to the caller. Everything that
goes wrong while a job runs is captured into the job's ``error_message`` by the
export worker and is only visible through status polling.
"""


class RouteAnimatorError(Exception):
    """Base class for all route animator errors."""

    message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.message
        super().__init__(self.message)


class ExportValidationError(RouteAnimatorError):
    """The export request cannot be accepted (no routes, no image, ...)."""

    message = "Invalid export request"


class CapabilityError(RouteAnimatorError):
    """A strategy was run without the rasterizer or encoder it needs."""

    message = "Required capability is not available"


class EncodingError(RouteAnimatorError):
    """The external encoder failed, timed out or could not be started."""

    message = "Video encoding failed"


class BackgroundImageError(RouteAnimatorError):
    """The background image reference could not be resolved or decoded."""

    message = "Background image could not be loaded"


class ExportCancelledError(RouteAnimatorError):
    """Raised between frames or stages once a job has been cancelled."""

    message = "Export cancelled"


class JobNotFoundError(RouteAnimatorError):
    """No job with the requested id exists (never issued, or evicted)."""

    message = "Job not found"


class InvalidTransitionError(RouteAnimatorError):
    """A job was asked to move to a state its current state cannot reach."""

    message = "Invalid job state transition"


__all__ = [
    "BackgroundImageError",
    "CapabilityError",
    "EncodingError",
    "ExportCancelledError",
    "ExportValidationError",
    "InvalidTransitionError",
    "JobNotFoundError",
    "RouteAnimatorError",
]
