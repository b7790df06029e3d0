"""
Bounded background queue for escalation classification.

The chat handler persists a turn and calls submit(); submit never blocks
and never raises. Worker tasks drain the queue through
EscalationOrchestrator.process, so the chat response is never delayed by
classification. When the queue is full the job is dropped and counted.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from .orchestrator import ClassificationJob, EscalationOutcome, OutcomeState

logger = logging.getLogger("pulsecheck.escalation.queue")

JobProcessor = Callable[[ClassificationJob], Awaitable[EscalationOutcome]]


class EscalationQueue:
    """
    asyncio.Queue with a fixed pool of workers.

    Each job runs to completion exactly once: no retries and no
    cancellation mid-job except at the end of the shutdown grace period.
    """

    def __init__(
        self,
        processor: JobProcessor,
        max_size: int = 256,
        worker_count: int = 2,
    ) -> None:
        self._processor = processor
        self._max_size = max_size
        self._worker_count = worker_count
        self._queue: Optional[asyncio.Queue[ClassificationJob]] = None
        self._workers: list[asyncio.Task] = []
        self._running = False
        self._total_submitted = 0
        self._total_dropped = 0
        self._total_processed = 0
        self._total_failed = 0

    # -- Public API -------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Create the queue and spawn workers on the running loop."""
        if self._running:
            return
        self._queue = asyncio.Queue(maxsize=self._max_size)
        self._workers = [
            asyncio.create_task(self._worker(i, self._queue), name=f"escalation-worker-{i}")
            for i in range(self._worker_count)
        ]
        self._running = True
        logger.info(
            "Escalation queue started (workers=%d, max_size=%d)",
            self._worker_count, self._max_size,
        )

    def submit(self, job: ClassificationJob) -> bool:
        """
        Enqueue a job without waiting.

        Returns:
            True if queued, False if the queue is full or not running
        """
        if not self._running or self._queue is None:
            self._total_dropped += 1
            logger.warning(
                "Escalation queue not running, dropped job for conversation %s",
                job.conversation_id,
            )
            return False

        try:
            self._queue.put_nowait(job)
        except asyncio.QueueFull:
            self._total_dropped += 1
            logger.warning(
                "Escalation queue full (%d), dropped job for conversation %s",
                self._max_size, job.conversation_id,
            )
            return False

        self._total_submitted += 1
        return True

    async def shutdown(self, timeout: float = 30.0) -> None:
        """Stop accepting jobs, drain what is pending, then stop workers."""
        if not self._running or self._queue is None:
            return
        self._running = False

        pending = self._queue.qsize()
        if pending:
            logger.info("Draining %d escalation job(s) before shutdown", pending)
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Escalation queue drain timed out after %.1fs (%d job(s) abandoned)",
                timeout, self._queue.qsize(),
            )

        for task in self._workers:
            task.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("Escalation queue stopped: %s", self.stats)

    @property
    def stats(self) -> dict[str, Any]:
        """Return queue statistics."""
        return {
            "running": self._running,
            "pending": self._queue.qsize() if self._queue else 0,
            "submitted": self._total_submitted,
            "dropped": self._total_dropped,
            "processed": self._total_processed,
            "failed": self._total_failed,
        }

    # -- Internal ---------------------------------------------------------

    async def _worker(self, index: int, queue: asyncio.Queue) -> None:
        while True:
            job = await queue.get()
            try:
                outcome = await self._processor(job)
                self._total_processed += 1
                if outcome.state == OutcomeState.RECORD_FAILED:
                    self._total_failed += 1
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._total_processed += 1
                self._total_failed += 1
                logger.error(
                    "Escalation worker %d failed on conversation %s: %s",
                    index, job.conversation_id, e,
                )
            finally:
                queue.task_done()
