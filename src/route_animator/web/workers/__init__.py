"""
In-memory store for export jobs.

Jobs live in a lock-guarded dict. Each job is written by the worker that
processes it; status polls read immutable :class:`JobSnapshot` copies and
never wait on rendering or encoding.
"""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from route_animator.exceptions import InvalidTransitionError, JobNotFoundError


class JobStatus(Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.QUEUED: frozenset({JobStatus.PROCESSING}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.ERROR}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.ERROR: frozenset(),
}


@dataclass(frozen=True)
class JobSnapshot:
    id: str
    status: JobStatus
    progress_percent: int
    created_at: float
    """Milliseconds, from the store's clock."""
    stage: str | None = None
    tier: str | None = None
    output_ref: Path | None = None
    media_type: str | None = None
    error_message: str | None = None

    @property
    def done(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.ERROR)

    def to_dict(self) -> dict:
        return {
            "jobId": self.id,
            "status": self.status.value,
            "progressPercent": self.progress_percent,
            "stage": self.stage,
            "tier": self.tier,
            "errorMessage": self.error_message,
            "outputRef": self.output_ref.name if self.output_ref else None,
        }


@dataclass
class _Entry:
    snapshot: JobSnapshot
    cancelled: threading.Event = field(default_factory=threading.Event)


def wall_clock_ms() -> float:
    return time.time() * 1000.0


class JobStore:
    """Keyed job map enforcing the job lifecycle."""

    def __init__(self, clock: Callable[[], float] = wall_clock_ms):
        self.clock = clock
        self._lock = threading.Lock()
        self._jobs: dict[str, _Entry] = {}

    def create(self) -> JobSnapshot:
        snapshot = JobSnapshot(
            id=uuid.uuid4().hex,
            status=JobStatus.QUEUED,
            progress_percent=0,
            created_at=self.clock(),
            stage="queued",
        )
        with self._lock:
            self._jobs[snapshot.id] = _Entry(snapshot)
        return snapshot

    def _entry(self, job_id: str) -> _Entry:
        entry = self._jobs.get(job_id)
        if entry is None:
            msg = f"Job {job_id} not found"
            raise JobNotFoundError(msg)
        return entry

    def get(self, job_id: str) -> JobSnapshot:
        with self._lock:
            return self._entry(job_id).snapshot

    def __contains__(self, job_id: str) -> bool:
        with self._lock:
            return job_id in self._jobs

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def snapshots(self) -> list[JobSnapshot]:
        with self._lock:
            snapshots = [entry.snapshot for entry in self._jobs.values()]
        return sorted(snapshots, key=lambda s: s.created_at)

    def transition(self, job_id: str, status: JobStatus, **changes) -> JobSnapshot:
        with self._lock:
            entry = self._entry(job_id)
            current = entry.snapshot.status
            if entry.snapshot.done or (status is not current and status not in _TRANSITIONS[current]):
                msg = f"Job {job_id} cannot move from {current.value} to {status.value}"
                raise InvalidTransitionError(msg)
            if status is JobStatus.COMPLETED and changes.get("output_ref") is None:
                msg = f"Job {job_id} cannot complete without an output"
                raise InvalidTransitionError(msg)
            if status is not JobStatus.COMPLETED:
                changes.pop("output_ref", None)
                changes.pop("media_type", None)
            entry.snapshot = replace(entry.snapshot, status=status, **changes)
            return entry.snapshot

    def report(self, job_id: str, percent: float, stage: str | None = None) -> JobSnapshot:
        """Raise a processing job's progress; progress never goes backwards."""
        with self._lock:
            entry = self._entry(job_id)
            snap = entry.snapshot
            if snap.done:
                return snap
            changes: dict = {"progress_percent": max(snap.progress_percent, min(100, int(percent)))}
            if stage is not None:
                changes["stage"] = stage
            entry.snapshot = replace(snap, **changes)
            return entry.snapshot

    def complete(self, job_id: str, output_ref: Path, media_type: str) -> JobSnapshot:
        return self.transition(
            job_id,
            JobStatus.COMPLETED,
            progress_percent=100,
            stage="done",
            output_ref=output_ref,
            media_type=media_type,
        )

    def fail(self, job_id: str, message: str) -> JobSnapshot:
        return self.transition(job_id, JobStatus.ERROR, stage="failed", error_message=message)

    def cancel(self, job_id: str) -> bool:
        """Flag a job for cancellation; returns False for finished jobs."""
        with self._lock:
            entry = self._entry(job_id)
            if entry.snapshot.done:
                return False
            entry.cancelled.set()
            return True

    def cancel_all(self) -> None:
        with self._lock:
            for entry in self._jobs.values():
                if not entry.snapshot.done:
                    entry.cancelled.set()

    def is_cancelled(self, job_id: str) -> bool:
        with self._lock:
            entry = self._jobs.get(job_id)
            # evicted jobs count as cancelled
            return entry is None or entry.cancelled.is_set()

    def evict_older_than(self, max_age_ms: float, now: float | None = None) -> list[JobSnapshot]:
        """Remove and return every job older than ``max_age_ms``."""
        if now is None:
            now = self.clock()
        with self._lock:
            stale = [
                job_id
                for job_id, entry in self._jobs.items()
                if now - entry.snapshot.created_at > max_age_ms
            ]
            evicted = []
            for job_id in stale:
                entry = self._jobs.pop(job_id)
                entry.cancelled.set()
                evicted.append(entry.snapshot)
        return evicted


__all__ = ["JobSnapshot", "JobStatus", "JobStore", "wall_clock_ms"]
