"""Priority job queue with bounded concurrency and start spacing.

Jobs start when fewer than ``concurrency`` jobs are running, at least
``interval`` seconds have passed since the previous start, and the queue is
not paused. Among queued jobs the highest priority starts first; equal
priorities start in submission order. A running job is never preempted, but
it is cancelled and failed with :class:`JobTimeoutError` once it exceeds the
per-job timeout.
"""

import asyncio
import heapq
import itertools
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from analysis_queue.config.models import QueueConfig
from analysis_queue.errors import JobClearedError, JobTimeoutError, QueueClosedError
from analysis_queue.models.status import QueueStatus

logger = logging.getLogger("analysis_queue.jobs.queue")

T = TypeVar("T")


class _Entry:
    """A queued unit of work."""

    __slots__ = ("priority", "seq", "fn", "future", "label")

    def __init__(
        self,
        priority: int,
        seq: int,
        fn: Callable[[], Awaitable[Any]],
        future: asyncio.Future,
        label: str,
    ):
        self.priority = priority
        self.seq = seq
        self.fn = fn
        self.future = future
        self.label = label

    def __lt__(self, other: "_Entry") -> bool:
        return (-self.priority, self.seq) < (-other.priority, other.seq)


class JobQueue:
    """In-process scheduler for coroutine jobs."""

    def __init__(
        self,
        concurrency: int = 1,
        interval: float = 0.0,
        timeout: Optional[float] = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the job queue.

        Args:
            concurrency: Maximum jobs running at once.
            interval: Minimum seconds between job starts.
            timeout: Per-job execution ceiling in seconds (None disables it).
            clock: Monotonic clock; must match the event loop's clock.
        """
        if concurrency < 1:
            raise ValueError("concurrency must be positive")
        if interval < 0:
            raise ValueError("interval cannot be negative")

        self._concurrency = concurrency
        self._interval = interval
        self._timeout = timeout
        self._clock = clock

        self._heap: list[_Entry] = []
        self._seq = itertools.count()
        self._pending = 0
        self._paused = False
        self._closed = False
        self._last_start: Optional[float] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    @classmethod
    def from_config(cls, config: QueueConfig) -> "JobQueue":
        """Create a queue from a :class:`QueueConfig`."""
        return cls(
            concurrency=config.concurrency,
            interval=config.interval_seconds,
            timeout=config.job_timeout_seconds,
        )

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def interval(self) -> float:
        return self._interval

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @property
    def size(self) -> int:
        """Jobs waiting to start."""
        return len(self._heap)

    @property
    def pending(self) -> int:
        """Jobs currently running."""
        return self._pending

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_idle(self) -> bool:
        return not self._heap and self._pending == 0

    @property
    def is_closed(self) -> bool:
        return self._closed

    def status(self) -> QueueStatus:
        """Snapshot of queue depth and state. Never blocks."""
        return QueueStatus(
            queue_size=len(self._heap),
            pending=self._pending,
            is_paused=self._paused,
            is_idle=self.is_idle,
        )

    def add(
        self,
        fn: Callable[[], Awaitable[T]],
        priority: int = 0,
        label: Optional[str] = None,
    ) -> "asyncio.Future[T]":
        """Enqueue a job.

        The job is counted in :attr:`size` as soon as this returns.

        Args:
            fn: Zero-argument coroutine function to run.
            priority: Higher values start first.
            label: Identifier used in log messages and errors.

        Returns:
            Future resolved with ``fn``'s result, or failed with its error,
            :class:`JobTimeoutError` or :class:`JobClearedError`.

        Raises:
            QueueClosedError: If the queue has been closed.
        """
        if self._closed:
            raise QueueClosedError("Job queue is closed")

        loop = asyncio.get_running_loop()
        seq = next(self._seq)
        entry = _Entry(priority, seq, fn, loop.create_future(), label or f"#{seq}")
        entry.future.add_done_callback(lambda _f: self._forget(entry))

        heapq.heappush(self._heap, entry)
        self._idle.clear()
        logger.debug(f"[Queue] Added job {entry.label} (priority {priority}). Size: {self.size}")

        self._pump()
        return entry.future

    async def run(
        self,
        fn: Callable[[], Awaitable[T]],
        priority: int = 0,
        label: Optional[str] = None,
    ) -> T:
        """Enqueue a job and wait for its result."""
        return await self.add(fn, priority=priority, label=label)

    def pause(self) -> None:
        """Stop starting new jobs. Running jobs continue. Idempotent."""
        self._ensure_open()
        if self._paused:
            return
        self._paused = True
        self._cancel_timer()
        logger.info("[Queue] Queue has been paused")

    def resume(self) -> None:
        """Start dequeuing again. Idempotent."""
        self._ensure_open()
        if not self._paused:
            return
        self._paused = False
        logger.info("[Queue] Queue has been resumed")
        self._pump()

    def clear(self) -> int:
        """Drop every job that has not started yet.

        Each dropped job's future fails with :class:`JobClearedError`, so
        nothing waiting on it hangs. Running jobs are unaffected.

        Returns:
            Number of jobs dropped.
        """
        self._ensure_open()
        return self._drain()

    async def on_idle(self) -> None:
        """Wait until no job is queued or running."""
        await self._idle.wait()

    def close(self) -> int:
        """Drop queued jobs and refuse new ones.

        Returns:
            Number of queued jobs dropped.
        """
        if self._closed:
            return 0
        dropped = self._drain()
        self._closed = True
        logger.info("[Queue] Queue has been closed")
        return dropped

    def _ensure_open(self) -> None:
        if self._closed:
            raise QueueClosedError("Job queue is closed")

    def _drain(self) -> int:
        entries, self._heap = self._heap, []
        self._cancel_timer()
        dropped = 0
        for entry in entries:
            if not entry.future.done():
                entry.future.set_exception(JobClearedError(entry.label))
                dropped += 1
        logger.warning(f"[Queue] Queue has been cleared ({dropped} jobs dropped)")
        self._check_idle()
        return dropped

    def _forget(self, entry: _Entry) -> None:
        """Remove an entry whose caller gave up before it started."""
        if entry.future.cancelled() and entry in self._heap:
            self._heap.remove(entry)
            heapq.heapify(self._heap)
            self._check_idle()

    def _check_idle(self) -> None:
        if self.is_idle and not self._idle.is_set():
            self._idle.set()
            logger.info("[Queue] All jobs completed. Queue is idle.")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _pump(self) -> None:
        """Start as many queued jobs as the limits allow."""
        self._cancel_timer()
        if self._paused or self._closed:
            return

        while self._heap and self._pending < self._concurrency:
            loop = asyncio.get_running_loop()
            now = self._clock()
            if self._last_start is not None:
                delay = self._last_start + self._interval - now
                if delay > 0:
                    self._timer = loop.call_later(delay, self._pump)
                    return

            entry = heapq.heappop(self._heap)
            if entry.future.done():
                continue

            self._pending += 1
            self._last_start = now
            logger.info(f"[Queue] Processing job {entry.label}. Size: {self.size}, Pending: {self.pending}")
            task = loop.create_task(self._execute(entry))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        self._check_idle()

    async def _execute(self, entry: _Entry) -> None:
        """Run one job and settle its future."""
        try:
            if self._timeout is None:
                result = await entry.fn()
            else:
                result = await asyncio.wait_for(entry.fn(), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(f"[Queue] Job {entry.label} exceeded {self._timeout:g}s timeout")
            self._settle(entry, error=JobTimeoutError(entry.label, self._timeout))
        except asyncio.CancelledError:
            entry.future.cancel()
            raise
        except Exception as e:
            self._settle(entry, error=e)
        else:
            self._settle(entry, result=result)
        finally:
            self._pending -= 1
            self._pump()
            self._check_idle()

    @staticmethod
    def _settle(entry: _Entry, result: Any = None, error: Optional[BaseException] = None) -> None:
        if entry.future.done():
            return
        if error is not None:
            entry.future.set_exception(error)
        else:
            entry.future.set_result(result)
