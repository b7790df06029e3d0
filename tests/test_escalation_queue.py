"""Tests for the bounded background escalation queue."""

import asyncio

import pytest

from pulsecheck_brain.escalation.orchestrator import (
    ClassificationJob,
    EscalationOutcome,
    OutcomeState,
)
from pulsecheck_brain.escalation.queue import EscalationQueue


def _job(n: int = 0) -> ClassificationJob:
    return ClassificationJob(
        user_id="user-1234567890",
        conversation_id=f"conv-{n}",
        message=f"message {n}",
        trigger_message_id=f"msg-{n}",
    )


class _Processor:
    """Records processed jobs; optionally blocks until released."""

    def __init__(self, state: OutcomeState = OutcomeState.NO_ACTION, error: Exception | None = None):
        self.processed: list[ClassificationJob] = []
        self.release = asyncio.Event()
        self.release.set()
        self.state = state
        self.error = error

    async def __call__(self, job: ClassificationJob) -> EscalationOutcome:
        await self.release.wait()
        self.processed.append(job)
        if self.error is not None:
            raise self.error
        return EscalationOutcome(state=self.state)


# ---------------------------------------------------------------------------
# submit()
# ---------------------------------------------------------------------------


class TestSubmit:

    @pytest.mark.asyncio
    async def test_submit_before_start_drops(self):
        queue = EscalationQueue(_Processor())
        assert queue.submit(_job()) is False
        assert queue.stats["dropped"] == 1

    @pytest.mark.asyncio
    async def test_submit_processes_job(self):
        processor = _Processor()
        queue = EscalationQueue(processor, worker_count=1)
        queue.start()

        assert queue.submit(_job(1)) is True
        await queue.shutdown(timeout=1.0)

        assert [j.conversation_id for j in processor.processed] == ["conv-1"]
        assert queue.stats["submitted"] == 1
        assert queue.stats["processed"] == 1
        assert queue.stats["failed"] == 0

    @pytest.mark.asyncio
    async def test_full_queue_drops_without_blocking(self):
        processor = _Processor()
        processor.release.clear()
        queue = EscalationQueue(processor, max_size=2, worker_count=1)
        queue.start()

        results = [queue.submit(_job(i)) for i in range(5)]
        # One job may already be held by the blocked worker
        await asyncio.sleep(0)
        results.append(queue.submit(_job(99)))

        assert results[:2] == [True, True]
        assert False in results
        assert queue.stats["dropped"] == results.count(False)

        processor.release.set()
        await queue.shutdown(timeout=1.0)


# ---------------------------------------------------------------------------
# Failure accounting
# ---------------------------------------------------------------------------


class TestFailures:

    @pytest.mark.asyncio
    async def test_processor_exception_counted_and_worker_survives(self):
        processor = _Processor(error=RuntimeError("boom"))
        queue = EscalationQueue(processor, worker_count=1)
        queue.start()

        queue.submit(_job(1))
        queue.submit(_job(2))
        await queue.shutdown(timeout=1.0)

        assert len(processor.processed) == 2
        assert queue.stats["failed"] == 2
        assert queue.stats["processed"] == 2

    @pytest.mark.asyncio
    async def test_record_failed_outcome_counted(self):
        queue = EscalationQueue(_Processor(state=OutcomeState.RECORD_FAILED), worker_count=1)
        queue.start()
        queue.submit(_job())
        await queue.shutdown(timeout=1.0)
        assert queue.stats["failed"] == 1

    @pytest.mark.asyncio
    async def test_worker_consumes_the_queue_it_was_given(self):
        processor = _Processor()
        queue = EscalationQueue(processor, worker_count=1)
        jobs: asyncio.Queue = asyncio.Queue()
        jobs.put_nowait(_job(7))

        # Never started, so the instance has no queue of its own
        worker = asyncio.create_task(queue._worker(0, jobs))
        await asyncio.wait_for(jobs.join(), timeout=1.0)
        worker.cancel()
        await asyncio.gather(worker, return_exceptions=True)

        assert [j.conversation_id for j in processor.processed] == ["conv-7"]
        assert queue.stats["processed"] == 1


# ---------------------------------------------------------------------------
# shutdown()
# ---------------------------------------------------------------------------


class TestShutdown:

    @pytest.mark.asyncio
    async def test_drains_pending_jobs(self):
        processor = _Processor()
        queue = EscalationQueue(processor, worker_count=2)
        queue.start()
        for i in range(10):
            queue.submit(_job(i))

        await queue.shutdown(timeout=1.0)

        assert len(processor.processed) == 10
        assert queue.stats["pending"] == 0
        assert queue.is_running is False

    @pytest.mark.asyncio
    async def test_rejects_after_shutdown(self):
        queue = EscalationQueue(_Processor())
        queue.start()
        await queue.shutdown(timeout=1.0)
        assert queue.submit(_job()) is False

    @pytest.mark.asyncio
    async def test_drain_timeout_cancels_workers(self):
        processor = _Processor()
        processor.release.clear()
        queue = EscalationQueue(processor, worker_count=1)
        queue.start()
        queue.submit(_job())

        await queue.shutdown(timeout=0.05)

        assert processor.processed == []
        assert queue.is_running is False
