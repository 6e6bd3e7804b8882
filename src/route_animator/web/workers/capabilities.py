"""Startup probe for the rasterizer and the external video encoder."""

from __future__ import annotations

import logging
import shutil
import subprocess
from dataclasses import dataclass

from PIL import features

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Capabilities:
    """What this process can produce, decided once at startup."""

    rasterizer: bool
    encoder: bool
    ffmpeg_path: str | None = None

    def to_dict(self) -> dict:
        return {"rasterizer": self.rasterizer, "encoder": self.encoder}


def _rasterizer_available() -> bool:
    # PNG output needs Pillow's zlib codec
    return bool(features.check_codec("zlib"))


def _encoder_path(ffmpeg_path: str, timeout_s: float) -> str | None:
    resolved = shutil.which(ffmpeg_path)
    if resolved is None:
        return None
    try:
        subprocess.run(  # noqa: S603
            [resolved, "-hide_banner", "-version"],
            capture_output=True,
            check=True,
            timeout=timeout_s,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning(f"[CAPABILITIES] {resolved} is present but unusable: {exc}")
        return None
    return resolved


def probe_capabilities(ffmpeg_path: str = "ffmpeg", timeout_s: float = 10.0) -> Capabilities:
    """Check for Pillow PNG support and a working ffmpeg binary."""
    rasterizer = _rasterizer_available()
    encoder = _encoder_path(ffmpeg_path, timeout_s) if rasterizer else None
    capabilities = Capabilities(
        rasterizer=rasterizer,
        encoder=encoder is not None,
        ffmpeg_path=encoder,
    )
    logger.info(
        f"[CAPABILITIES] rasterizer={capabilities.rasterizer}, "
        f"encoder={capabilities.encoder} ({encoder or 'not found'})"
    )
    return capabilities


__all__ = ["Capabilities", "probe_capabilities"]
