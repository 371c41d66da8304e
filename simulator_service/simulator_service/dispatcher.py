"""Concurrent batch dispatch over a per-batch worker pool."""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .collector import ResultCollector, elapsed_parts
from .exceptions import ConfigurationError, SimulatorError
from .logger import logger
from .schemas import BatchResult, TaskOutcome

TaskBody = Callable[[], str]
TaskBuilder = Callable[[int], TaskBody]


class DispatcherState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DRAINING = "draining"
    COMPLETED = "completed"


@dataclass(frozen=True)
class PoolSize:
    """Thread bounds of the worker pool.

    ``min_threads`` is a hard floor that may not exceed ``max_threads``; the
    pool never grows past it, so it is also the effective capacity.
    """

    min_threads: int
    max_threads: int

    def validate(self) -> None:
        if self.min_threads < 1 or self.max_threads < 1:
            raise ConfigurationError(
                f"thread counts must be positive: minThreads[{self.min_threads}] maxThreads[{self.max_threads}]"
            )
        if self.min_threads > self.max_threads:
            raise ConfigurationError(
                f"minThreads[{self.min_threads}] cannot exceed maxThreads[{self.max_threads}]"
            )

    @property
    def capacity(self) -> int:
        return min(self.min_threads, self.max_threads)


def run_task(index: int, body: TaskBody) -> TaskOutcome:
    """Run one task body and turn whatever happens into an outcome."""
    try:
        order_id = body()
    except Exception as e:
        logger.error(f"ERROR Task {index}: {type(e).__name__}: {e}")
        return TaskOutcome.failed(index, str(e) or type(e).__name__, order_id=getattr(e, "order_id", None))
    logger.debug(f"Task {index} stored orderId[{order_id}]")
    return TaskOutcome.succeeded(index, order_id)


class Dispatcher:
    """Runs batches of independent order tasks.

    A new thread pool is built for every batch and shut down when the batch
    ends. Submission never rejects: tasks beyond the pool capacity wait in the
    executor's queue.
    """

    def __init__(
        self,
        pool_size: PoolSize,
        batch_timeout: Optional[float] = None,
        collector: Optional[ResultCollector] = None,
        thread_name_prefix: str = "pizza-task",
    ):
        """Initialize the dispatcher.

        Args:
            pool_size: Worker pool bounds, validated when a batch starts
            batch_timeout: Seconds to wait for all outcomes, None waits forever
            collector: Result collector, built from ``batch_timeout`` if omitted
            thread_name_prefix: Prefix for worker thread names
        """
        self.pool_size = pool_size
        self.collector = collector or ResultCollector(timeout=batch_timeout)
        self.thread_name_prefix = thread_name_prefix
        self.state = DispatcherState.IDLE
        self._lock = threading.Lock()

    def run_batch(self, n: int, task_builder: TaskBuilder) -> BatchResult:
        """Run ``n`` tasks and return their outcomes in index order.

        Args:
            n: Number of tasks
            task_builder: Returns the body of task ``index``

        Returns:
            BatchResult: Exactly ``n`` outcomes

        Raises:
            ConfigurationError: If the pool bounds or ``n`` are invalid; no task runs
        """
        if n < 0:
            raise ConfigurationError(f"number of orders must be non-negative, got {n}")
        self.pool_size.validate()

        if not self._lock.acquire(blocking=False):
            raise SimulatorError("a batch is already running on this dispatcher")
        try:
            return self._run(n, task_builder)
        finally:
            self._lock.release()

    def _run(self, n: int, task_builder: TaskBuilder) -> BatchResult:
        capacity = self.pool_size.capacity
        logger.info(
            f"ThreadPoolCreation: minThreads[{self.pool_size.min_threads}] | "
            f"maxThreads[{self.pool_size.max_threads}] | capacity[{capacity}]"
        )
        executor = ThreadPoolExecutor(max_workers=capacity, thread_name_prefix=self.thread_name_prefix)
        self.state = DispatcherState.RUNNING
        started_at = self.collector.now()
        logger.info(f"Tasks Start! at {started_at.isoformat()} | tasks={n}")

        futures = []
        result = None
        try:
            for index in range(n):
                futures.append(executor.submit(run_task, index, task_builder(index)))
            self.state = DispatcherState.DRAINING
            result = self.collector.collect(futures, started_at)
        finally:
            hung = any(not future.done() for future in futures)
            executor.shutdown(wait=not hung)
            self.state = DispatcherState.COMPLETED if result is not None else DispatcherState.IDLE

        minutes, seconds = elapsed_parts(result.started_at, result.finished_at)
        logger.info(
            f"Task Ended! at {result.finished_at.isoformat()} | ok={result.succeeded} failed={result.failed} | "
            f"Time Taken! -- {minutes} minutes {seconds} seconds"
        )
        return result
