"""FFmpeg invocation that turns a numbered PNG sequence into a video file."""

from __future__ import annotations

import logging
import subprocess
import threading
from pathlib import Path

from route_animator.core.models import VideoSettings
from route_animator.exceptions import EncodingError

logger = logging.getLogger(__name__)

FRAME_PATTERN = "frame_%06d.png"

# CRF per container and quality (lower is better)
_CRF = {
    "mp4": {"high": 18, "medium": 23, "low": 28},
    "webm": {"high": 24, "medium": 31, "low": 38},
}

MEDIA_TYPES = {
    "mp4": "video/mp4",
    "webm": "video/webm",
}


def frame_filename(index: int) -> str:
    return FRAME_PATTERN % index


class FFmpegEncoder:
    """
    Runs ffmpeg as a tracked subprocess.

    Every running process is registered under its job id so that
    :meth:`terminate_all` can tear them down on shutdown.
    """

    def __init__(self, ffmpeg_path: str, timeout_s: float = 600.0):
        self.ffmpeg_path = ffmpeg_path
        self.timeout_s = timeout_s
        self._lock = threading.Lock()
        self._processes: dict[str, subprocess.Popen] = {}

    def build_command(
        self,
        frames_dir: Path,
        output_path: Path,
        settings: VideoSettings,
    ) -> list[str]:
        crf = str(_CRF[settings.format][settings.quality])
        cmd = [
            self.ffmpeg_path,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            "-framerate", str(settings.fps),
            "-i", str(frames_dir / FRAME_PATTERN),
            # yuv420p needs even dimensions
            "-vf", "pad=ceil(iw/2)*2:ceil(ih/2)*2",
            "-pix_fmt", "yuv420p",
        ]
        if settings.format == "webm":
            cmd += ["-c:v", "libvpx-vp9", "-b:v", "0", "-crf", crf]
        else:
            cmd += ["-c:v", "libx264", "-preset", "medium", "-crf", crf, "-movflags", "+faststart"]
        cmd.append(str(output_path))
        return cmd

    def encode(
        self,
        job_id: str,
        frames_dir: Path,
        output_path: Path,
        settings: VideoSettings,
    ) -> Path:
        """
        Encode ``frames_dir/frame_%06d.png`` into ``output_path``.

        Blocks until ffmpeg exits. Raises :class:`EncodingError` on a non-zero
        exit, a timeout, or when ffmpeg cannot be started.
        """
        cmd = self.build_command(frames_dir, output_path, settings)
        logger.info(f"[ENCODE] job={job_id} command: {' '.join(cmd)}")
        try:
            proc = subprocess.Popen(  # noqa: S603
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as exc:
            msg = f"Could not start ffmpeg: {exc}"
            raise EncodingError(msg) from exc

        with self._lock:
            self._processes[job_id] = proc
        try:
            _, stderr = proc.communicate(timeout=self.timeout_s)
        except subprocess.TimeoutExpired as exc:
            proc.kill()
            proc.communicate()
            msg = f"ffmpeg timed out after {self.timeout_s:.0f}s"
            raise EncodingError(msg) from exc
        finally:
            with self._lock:
                self._processes.pop(job_id, None)

        if proc.returncode != 0:
            tail = (stderr or "").strip()[-2000:]
            msg = f"ffmpeg exited with code {proc.returncode}: {tail}"
            raise EncodingError(msg)
        logger.info(f"[ENCODE] job={job_id} finished: {output_path.name}")
        return output_path

    def terminate(self, job_id: str) -> None:
        with self._lock:
            proc = self._processes.get(job_id)
        if proc is not None and proc.poll() is None:
            logger.warning(f"[ENCODE] terminating ffmpeg for job {job_id}")
            proc.terminate()

    def terminate_all(self, grace_s: float = 5.0) -> None:
        with self._lock:
            procs = list(self._processes.items())
        for job_id, proc in procs:
            if proc.poll() is not None:
                continue
            logger.warning(f"[ENCODE] terminating ffmpeg for job {job_id}")
            proc.terminate()
            try:
                proc.wait(timeout=grace_s)
            except subprocess.TimeoutExpired:
                proc.kill()


__all__ = ["FRAME_PATTERN", "MEDIA_TYPES", "FFmpegEncoder", "frame_filename"]
