from __future__ import annotations

import logging
import queue as _queue
import threading
from collections.abc import Iterable, Mapping
from functools import partial
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from route_animator.config import Settings
from route_animator.core.frames import BackgroundRef, load_background
from route_animator.core.models import Route, VideoSettings
from route_animator.exceptions import (
    EncodingError,
    ExportCancelledError,
    ExportValidationError,
    JobNotFoundError,
)
from route_animator.web.workers import JobSnapshot, JobStatus, JobStore
from route_animator.web.workers.capabilities import Capabilities, probe_capabilities
from route_animator.web.workers.encoder import FFmpegEncoder
from route_animator.web.workers.strategies import (
    DEFAULT_STRATEGIES,
    ExportContext,
    ExportPayload,
    ExportStrategy,
    select_strategy,
)

logger = logging.getLogger(__name__)

CANCELLED_MESSAGE = "Export cancelled"


def _coerce_routes(routes: Iterable[Route | Mapping[str, Any]]) -> tuple[Route, ...]:
    try:
        return tuple(
            route if isinstance(route, Route) else Route.model_validate(route) for route in routes
        )
    except ValidationError as exc:
        msg = f"Invalid route data: {exc.errors()[0]['msg']}"
        raise ExportValidationError(msg) from exc


def _coerce_settings(settings: VideoSettings | Mapping[str, Any] | None) -> VideoSettings:
    if isinstance(settings, VideoSettings):
        return settings
    try:
        return VideoSettings.model_validate(settings or {})
    except ValidationError as exc:
        msg = f"Invalid video settings: {exc.errors()[0]['msg']}"
        raise ExportValidationError(msg) from exc


class ExportOrchestrator:
    """
    Owns export jobs from submission to a completed artifact or an error.

    Submitted jobs go onto a queue consumed by a fixed pool of worker threads.
    The export tier is chosen once, from the capabilities passed in, and is
    the same for every job this orchestrator runs. A background thread evicts
    jobs older than ``max_age_ms`` every ``cleanup_interval_s`` seconds.

    Args:
        capabilities: Result of :func:`probe_capabilities` at startup.
        export_folder: Where artifacts are written.
        upload_folder: Resolves background references given as file names.
        store: Job store, a fresh one by default.
        strategies: Export tiers in order of preference.
        encoder: Video encoder; built from ``capabilities`` when omitted.
        workers: Number of jobs processed concurrently.
        render_threads: Threads rendering frames inside one job.
        fetch_timeout_s: Timeout for background images given as URLs.
        max_age_ms: Age after which the cleanup sweep evicts a job.
        cleanup_interval_s: Delay between cleanup sweeps.
        encode_timeout_s: Time limit for one ffmpeg run.

    """

    def __init__(  # noqa: PLR0913
        self,
        capabilities: Capabilities,
        *,
        export_folder: Path,
        upload_folder: Path | None = None,
        store: JobStore | None = None,
        strategies: tuple[ExportStrategy, ...] = DEFAULT_STRATEGIES,
        encoder: FFmpegEncoder | None = None,
        workers: int = 2,
        render_threads: int = 1,
        fetch_timeout_s: float = 10.0,
        max_age_ms: float = 24 * 60 * 60 * 1000,
        cleanup_interval_s: float = 60 * 60,
        encode_timeout_s: float = 600.0,
    ):
        self.capabilities = capabilities
        self.export_folder = export_folder
        self.upload_folder = upload_folder
        self.store = store if store is not None else JobStore()
        self.strategy = select_strategy(capabilities, strategies)
        if encoder is None and capabilities.encoder and capabilities.ffmpeg_path:
            encoder = FFmpegEncoder(capabilities.ffmpeg_path, timeout_s=encode_timeout_s)
        self.encoder = encoder
        self.workers = max(1, workers)
        self.render_threads = max(1, render_threads)
        self.fetch_timeout_s = fetch_timeout_s
        self.max_age_ms = max_age_ms
        self.cleanup_interval_s = cleanup_interval_s

        self.queue: _queue.Queue = _queue.Queue()
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        logger.info(f"[EXPORT] export tier: {self.strategy.name}")

    @classmethod
    def from_settings(cls, settings: Settings) -> ExportOrchestrator:
        capabilities = probe_capabilities(settings.ffmpeg_path)
        return cls(
            capabilities,
            export_folder=settings.export_folder,
            upload_folder=settings.upload_folder,
            workers=settings.export_workers,
            render_threads=settings.render_threads,
            fetch_timeout_s=settings.fetch_timeout_s,
            max_age_ms=settings.job_max_age_ms,
            cleanup_interval_s=settings.cleanup_interval_s,
            encode_timeout_s=settings.encode_timeout_s,
        )

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def submit(
        self,
        routes: Iterable[Route | Mapping[str, Any]],
        settings: VideoSettings | Mapping[str, Any] | None,
        total_duration_ms: float,
        background: BackgroundRef | None,
        easing: str = "easeInOutCubic",
    ) -> str:
        """
        Validate an export request and queue it.

        Returns the new job id immediately; rendering and encoding happen on
        a worker thread.

        Raises:
            ExportValidationError: No drawable visible route, no background
                image, a non-positive duration or malformed settings. No job
                is created.

        """
        route_list = _coerce_routes(routes)
        if not route_list:
            msg = "No routes provided for video generation"
            raise ExportValidationError(msg)
        if not any(route.visible and route.drawable for route in route_list):
            msg = "No visible routes with at least two waypoints"
            raise ExportValidationError(msg)
        if not background:
            msg = "A background image is required"
            raise ExportValidationError(msg)
        if total_duration_ms is None or total_duration_ms <= 0:
            msg = "totalDurationMs must be positive"
            raise ExportValidationError(msg)

        payload = ExportPayload(
            routes=route_list,
            settings=_coerce_settings(settings),
            total_duration_ms=float(total_duration_ms),
            background=background,
            easing=easing,
        )
        job = self.store.create()
        self.queue.put((job.id, payload))
        logger.info(
            f"[EXPORT] job={job.id} queued: {len(route_list)} routes, "
            f"{payload.settings.width}x{payload.settings.height}@{payload.settings.fps}fps, "
            f"{payload.total_duration_ms:.0f}ms"
        )
        return job.id

    def get_status(self, job_id: str) -> JobSnapshot:
        """Latest committed snapshot; raises :class:`JobNotFoundError`."""
        return self.store.get(job_id)

    def list_jobs(self) -> list[JobSnapshot]:
        return self.store.snapshots()

    def cancel(self, job_id: str) -> bool:
        """Request cancellation; the job stops at the next frame or stage."""
        flagged = self.store.cancel(job_id)
        if flagged:
            logger.info(f"[EXPORT] job={job_id} cancellation requested")
            if self.encoder is not None:
                self.encoder.terminate(job_id)
        return flagged

    def cleanup(self, max_age_ms: float | None = None, now: float | None = None) -> int:
        """Evict jobs older than ``max_age_ms`` and delete their artifacts."""
        if max_age_ms is None:
            max_age_ms = self.max_age_ms
        evicted = self.store.evict_older_than(max_age_ms, now=now)
        for snapshot in evicted:
            if not snapshot.done and self.encoder is not None:
                self.encoder.terminate(snapshot.id)
            if snapshot.output_ref is not None:
                self._delete_artifact(snapshot.output_ref)
        if evicted:
            logger.info(f"[CLEANUP] evicted {len(evicted)} job(s)")
        return len(evicted)

    def start(self) -> None:
        if self._threads:
            return
        self._stop.clear()
        for i in range(self.workers):
            thread = threading.Thread(target=self.worker, name=f"export-{i}", daemon=True)
            thread.start()
            self._threads.append(thread)
        cleaner = threading.Thread(target=self._cleanup_loop, name="export-cleanup", daemon=True)
        cleaner.start()
        self._threads.append(cleaner)

    def shutdown(self, timeout_s: float = 10.0) -> None:
        """Stop the workers, cancel running jobs and kill running encoders."""
        logger.info("[EXPORT] shutting down")
        self._stop.set()
        self.store.cancel_all()
        if self.encoder is not None:
            self.encoder.terminate_all()
        for _ in range(self.workers):
            self.queue.put(None)
        for thread in self._threads:
            thread.join(timeout=timeout_s)
        self._threads = []

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def worker(self) -> None:
        """Process queued jobs until a ``None`` sentinel arrives."""
        while True:
            item = self.queue.get()
            if item is None:
                self.queue.task_done()
                break
            job_id, payload = item
            try:
                self.process(job_id, payload)
            finally:
                self.queue.task_done()

    def _cleanup_loop(self) -> None:
        while not self._stop.wait(self.cleanup_interval_s):
            self.cleanup()

    def process(self, job_id: str, payload: ExportPayload) -> None:
        """Run one job to a terminal state. Never raises."""
        try:
            self.store.transition(
                job_id,
                JobStatus.PROCESSING,
                tier=self.strategy.name,
                stage="starting",
            )
        except JobNotFoundError:
            logger.info(f"[EXPORT] job={job_id} was evicted before it started")
            return
        if self.store.is_cancelled(job_id):
            self._fail(job_id, CANCELLED_MESSAGE)
            return

        ctx = ExportContext(
            job_id=job_id,
            payload=payload,
            export_folder=self.export_folder,
            capabilities=self.capabilities,
            report=partial(self.store.report, job_id),
            is_cancelled=partial(self.store.is_cancelled, job_id),
            load_background=partial(
                load_background,
                upload_folder=self.upload_folder,
                fetch_timeout_s=self.fetch_timeout_s,
            ),
            encoder=self.encoder,
            render_threads=self.render_threads,
        )
        logger.info(f"[EXPORT] job={job_id} processing with tier {self.strategy.name}")
        try:
            artifact = self.strategy.run(ctx)
            ctx.check_cancelled()
        except ExportCancelledError:
            self._fail(job_id, CANCELLED_MESSAGE)
            return
        except EncodingError as exc:
            message = CANCELLED_MESSAGE if ctx.is_cancelled() else exc.message
            self._fail(job_id, message)
            return
        except JobNotFoundError:
            logger.info(f"[EXPORT] job={job_id} was evicted while running")
            return
        except Exception as exc:
            logger.exception(f"[EXPORT] job={job_id} failed")
            self._fail(job_id, str(exc) or exc.__class__.__name__)
            return

        try:
            self.store.complete(job_id, artifact.path, artifact.media_type)
        except JobNotFoundError:
            self._delete_artifact(artifact.path)
            return
        logger.info(f"[EXPORT] job={job_id} completed: {artifact.path.name}")

    def _fail(self, job_id: str, message: str) -> None:
        try:
            self.store.fail(job_id, message)
        except JobNotFoundError:
            return
        logger.warning(f"[EXPORT] job={job_id} failed: {message}")

    @staticmethod
    def _delete_artifact(path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning(f"[CLEANUP] could not delete {path}: {exc}")


__all__ = ["CANCELLED_MESSAGE", "ExportOrchestrator"]
