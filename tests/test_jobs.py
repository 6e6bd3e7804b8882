from pathlib import Path

import pytest

from route_animator.exceptions import InvalidTransitionError, JobNotFoundError
from route_animator.web.workers import JobStatus, JobStore


@pytest.fixture
def store(clock):
    return JobStore(clock=clock.now_ms)


class TestJobLifecycle:
    def test_create_is_queued(self, store):
        job = store.create()
        assert job.status is JobStatus.QUEUED
        assert job.progress_percent == 0
        assert job.id in store

    def test_unknown_id_is_not_found(self, store):
        store.create()
        with pytest.raises(JobNotFoundError):
            store.get("never-issued")

    def test_happy_path(self, store):
        job = store.create()
        store.transition(job.id, JobStatus.PROCESSING, tier="still")
        store.report(job.id, 40, "rendering")
        done = store.complete(job.id, Path("out.png"), "image/png")
        assert done.status is JobStatus.COMPLETED
        assert done.progress_percent == 100
        assert done.to_dict()["outputRef"] == "out.png"

    def test_completed_job_cannot_go_back(self, store):
        job = store.create()
        store.transition(job.id, JobStatus.PROCESSING)
        store.complete(job.id, Path("out.png"), "image/png")
        with pytest.raises(InvalidTransitionError):
            store.transition(job.id, JobStatus.PROCESSING)

    def test_error_is_terminal(self, store):
        job = store.create()
        store.transition(job.id, JobStatus.PROCESSING)
        store.fail(job.id, "boom")
        with pytest.raises(InvalidTransitionError):
            store.fail(job.id, "again")
        assert store.get(job.id).error_message == "boom"

    def test_queued_cannot_fail_directly(self, store):
        """A job reaches error only through processing."""
        job = store.create()
        with pytest.raises(InvalidTransitionError):
            store.fail(job.id, "boom")
        assert store.get(job.id).status is JobStatus.QUEUED

    def test_queued_cannot_complete(self, store):
        job = store.create()
        with pytest.raises(InvalidTransitionError):
            store.complete(job.id, Path("x.png"), "image/png")

    def test_output_only_when_completed(self, store):
        job = store.create()
        store.transition(job.id, JobStatus.PROCESSING, output_ref=Path("early.png"))
        assert store.get(job.id).output_ref is None

    def test_progress_never_decreases(self, store):
        job = store.create()
        store.transition(job.id, JobStatus.PROCESSING)
        store.report(job.id, 60)
        store.report(job.id, 30)
        assert store.get(job.id).progress_percent == 60

    def test_status_dict(self, store):
        job = store.create()
        assert store.get(job.id).to_dict() == {
            "jobId": job.id,
            "status": "queued",
            "progressPercent": 0,
            "stage": "queued",
            "tier": None,
            "errorMessage": None,
            "outputRef": None,
        }


class TestCancellation:
    def test_cancel_sets_flag(self, store):
        job = store.create()
        assert store.cancel(job.id)
        assert store.is_cancelled(job.id)

    def test_cancel_finished_job_is_noop(self, store):
        job = store.create()
        store.transition(job.id, JobStatus.PROCESSING)
        store.fail(job.id, "boom")
        assert not store.cancel(job.id)
        assert not store.is_cancelled(job.id)

    def test_cancel_unknown(self, store):
        with pytest.raises(JobNotFoundError):
            store.cancel("nope")


class TestEviction:
    def test_max_age_boundary(self, store, clock):
        """A job created at T with max age M survives T+M-1 and is gone at T+M+1."""
        clock.now = 1_000
        job = store.create()
        assert store.evict_older_than(500, now=1_000 + 500 - 1) == []
        assert job.id in store
        evicted = store.evict_older_than(500, now=1_000 + 500 + 1)
        assert [snap.id for snap in evicted] == [job.id]
        assert job.id not in store
        with pytest.raises(JobNotFoundError):
            store.get(job.id)

    def test_evicted_job_counts_as_cancelled(self, store, clock):
        job = store.create()
        store.evict_older_than(0, now=clock.now + 1)
        assert store.is_cancelled(job.id)
