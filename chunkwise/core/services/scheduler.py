"""
Bounded-concurrency chunk transfer scheduler.

A single control loop owns the pending queue and the in-flight map. Each
dispatched chunk runs in its own task and reports its outcome back over a
per-run asyncio.Queue, so the queue and the uploaded set are only ever
mutated by the loop.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Deque, Dict, Optional, Set, Tuple

from ..domain.chunks import ChunkDescriptor, ChunkProgress, FileHandle, UploadProgress
from ..domain.exceptions import RetryExhaustedError, ServerError, TransportError
from ..interfaces.upload import ChunkProgressCallback, IChunkTransport, ProgressCallback

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3

# Nudges the control loop out of its wait after pause/resume/cancel.
_WAKE = object()

_RETRYABLE = (TransportError, ServerError)


@dataclass
class RetryPolicy:
    """
    Per-chunk retry behaviour.

    The defaults retry immediately and forever. A positive base_delay enables
    exponential backoff capped at max_delay; max_attempts bounds the number
    of failures tolerated for a single chunk.
    """
    base_delay: float = 0.0
    max_delay: float = 30.0
    max_attempts: Optional[int] = None

    def delay_for(self, failures: int) -> float:
        """Seconds to wait before sending a chunk that has failed ``failures`` times."""
        if failures <= 0 or self.base_delay <= 0:
            return 0.0
        return min(self.max_delay, self.base_delay * (2 ** (failures - 1)))

    def is_exhausted(self, failures: int) -> bool:
        return self.max_attempts is not None and failures >= self.max_attempts


class TransferScheduler:
    """
    Drains a chunk queue through the transport with a fixed concurrency ceiling.

    Failed chunks go back to the front of the queue and are retried before
    untouched ones. Pausing stops new dispatches while in-flight transfers
    finish; cancelling additionally discards the results of anything still
    in flight. Failure counts persist across runs until clear_failures() or
    cancel(), so a paused and resumed drain keeps its retry budget.
    """

    def __init__(self, transport: IChunkTransport, retry_policy: Optional[RetryPolicy] = None):
        self._transport = transport
        self._retry_policy = retry_policy or RetryPolicy()
        self._paused = False
        self._generation = 0
        self._channel: Optional[asyncio.Queue[Any]] = None
        self._in_flight: Dict[str, ChunkDescriptor] = {}
        self._failures: Dict[str, int] = {}
        self._tasks: Set[asyncio.Task[None]] = set()

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_running(self) -> bool:
        """True while a run() call is active."""
        return self._channel is not None

    @property
    def in_flight(self) -> int:
        """Number of transfers currently dispatched by the active run."""
        return len(self._in_flight)

    @property
    def retry_policy(self) -> RetryPolicy:
        return self._retry_policy

    def failures(self, chunk_name: str) -> int:
        """Failed attempts recorded for a chunk since the last reset."""
        return self._failures.get(chunk_name, 0)

    def clear_failures(self) -> None:
        """Forget recorded failures, restoring the full retry budget of every chunk."""
        self._failures.clear()

    def pause(self) -> None:
        """Stop dequeuing chunks. In-flight transfers run to completion."""
        self._paused = True

    def resume(self) -> None:
        """Allow dispatching again and wake an active run."""
        self._paused = False
        self._wake()

    def cancel(self) -> None:
        """Abandon the active run. Results of in-flight transfers are discarded."""
        self._generation += 1
        self._paused = False
        self.clear_failures()
        self._wake()
        # Detach the abandoned run so a new one can start right away.
        self._channel = None
        self._in_flight = {}

    async def run(
        self,
        source: FileHandle,
        queue: Deque[ChunkDescriptor],
        uploaded: Set[str],
        concurrency: int = DEFAULT_CONCURRENCY,
        on_chunk_progress: Optional[ChunkProgressCallback] = None,
        on_overall_progress: Optional[ProgressCallback] = None
    ) -> None:
        """
        Transfer queued chunks until the queue drains, the scheduler is
        paused with nothing in flight, or the run is cancelled.

        Args:
            source: File the chunks are read from
            queue: Pending chunks, consumed from the left
            uploaded: Names of confirmed chunks, extended on success
            concurrency: Maximum simultaneous transfers
            on_chunk_progress: Per-chunk byte progress hook
            on_overall_progress: Hook fired after each confirmed chunk

        Raises:
            RetryExhaustedError: A chunk failed more often than the policy allows
            ReadError: A chunk could not be read from the source file
        """
        if concurrency <= 0:
            raise ValueError(f"concurrency must be positive, got {concurrency}")
        if self._channel is not None:
            raise RuntimeError("TransferScheduler.run() is already active")
        if not queue:
            return

        generation = self._generation
        channel: asyncio.Queue[Any] = asyncio.Queue()
        in_flight: Dict[str, ChunkDescriptor] = {}
        self._channel = channel
        self._in_flight = in_flight
        fatal: Optional[BaseException] = None

        try:
            while generation == self._generation:
                while (fatal is None and not self._paused and queue
                       and len(in_flight) < concurrency):
                    chunk = queue.popleft()
                    in_flight[chunk.name] = chunk
                    self._spawn(self._transfer(source, chunk, generation, channel, on_chunk_progress))

                if not in_flight:
                    break

                outcome = await channel.get()
                if outcome is _WAKE or generation != self._generation:
                    continue

                chunk, error = outcome
                in_flight.pop(chunk.name, None)

                if error is None:
                    uploaded.add(chunk.name)
                    self._failures.pop(chunk.name, None)
                    self._report_progress(uploaded, len(queue) + len(in_flight), on_overall_progress)
                    continue

                # Failed chunks are retried ahead of untouched ones.
                queue.appendleft(chunk)

                if not isinstance(error, _RETRYABLE):
                    logger.error(f"Chunk {chunk.name} failed fatally: {error}")
                    fatal = fatal or error
                    continue

                failures = self._failures.get(chunk.name, 0) + 1
                self._failures[chunk.name] = failures
                logger.warning(f"Chunk {chunk.name} failed (attempt {failures}), requeued: {error}")

                if fatal is None and self._retry_policy.is_exhausted(failures):
                    fatal = RetryExhaustedError(chunk.name, failures, error)
        finally:
            if generation == self._generation:
                # Interrupted mid-transfer: unconfirmed chunks go back in front.
                queue.extendleft(reversed(list(in_flight.values())))
            if self._channel is channel:
                self._channel = None
                self._in_flight = {}

        if fatal is not None and generation == self._generation:
            raise fatal

    def _report_progress(
        self,
        uploaded: Set[str],
        unconfirmed: int,
        callback: Optional[ProgressCallback]
    ) -> None:
        total = len(uploaded) + unconfirmed
        percent = len(uploaded) * 100 // total if total else 100
        logger.debug(f"Upload progress: {len(uploaded)}/{total} chunks ({percent}%)")
        if callback:
            callback(UploadProgress(uploaded=len(uploaded), total=total, percent=percent))

    def _spawn(self, coro: Any) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _wake(self) -> None:
        if self._channel is not None:
            self._channel.put_nowait(_WAKE)

    async def _transfer(
        self,
        source: FileHandle,
        chunk: ChunkDescriptor,
        generation: int,
        channel: 'asyncio.Queue[Any]',
        on_chunk_progress: Optional[ChunkProgressCallback]
    ) -> None:
        """Send one chunk and post the outcome to the run's channel."""

        def report(percent: int) -> None:
            if on_chunk_progress and generation == self._generation:
                on_chunk_progress(ChunkProgress(index=chunk.index, filename=chunk.name, percent=percent))

        outcome: Tuple[ChunkDescriptor, Optional[BaseException]]
        try:
            delay = self._retry_policy.delay_for(self._failures.get(chunk.name, 0))
            if delay > 0:
                logger.debug(f"Backing off {delay:.2f}s before retrying {chunk.name}")
                await asyncio.sleep(delay)

            data = await source.read_range(chunk.start, chunk.end)
            await self._transport.upload_chunk(chunk, data, report)
            outcome = (chunk, None)
        except Exception as e:
            outcome = (chunk, e)

        channel.put_nowait(outcome)
