"""Reassembles task outcomes into an index-ordered batch result."""

import time
from concurrent.futures import CancelledError, Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from typing import Callable, Optional

from .logger import logger
from .schemas import BatchResult, TaskOutcome


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def elapsed_seconds(started_at: datetime, finished_at: datetime) -> float:
    """Absolute wall-clock distance between two instants, in seconds."""
    return abs((finished_at - started_at).total_seconds())


def elapsed_parts(started_at: datetime, finished_at: datetime) -> tuple[int, int]:
    """Split the elapsed time into whole minutes and remainder seconds."""
    total = int(elapsed_seconds(started_at, finished_at))
    return total // 60, total % 60


class ResultCollector:
    """Waits on task handles in index order, never in completion order.

    Attributes:
        timeout: Optional budget in seconds for the whole collection. Handles
            still pending once it is spent become failed outcomes.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        clock: Callable[[], datetime] = utcnow,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.timeout = timeout
        self._clock = clock
        self._monotonic = monotonic

    def now(self) -> datetime:
        return self._clock()

    def collect(self, futures: list[Future], started_at: datetime) -> BatchResult:
        """Build the batch result from one future per task.

        Args:
            futures: Task handles, positioned by task index.
            started_at: When the batch started.

        Returns:
            BatchResult: One outcome per future, in index order.
        """
        deadline = None if self.timeout is None else self._monotonic() + self.timeout
        outcomes = [self._wait(index, future, deadline) for index, future in enumerate(futures)]
        finished_at = self._clock()
        return BatchResult(
            outcomes=outcomes,
            started_at=started_at,
            finished_at=finished_at,
            elapsed_seconds=elapsed_seconds(started_at, finished_at),
        )

    def _wait(self, index: int, future: Future, deadline: Optional[float]) -> TaskOutcome:
        remaining = None if deadline is None else max(0.0, deadline - self._monotonic())
        try:
            outcome = future.result(timeout=remaining)
        except FutureTimeoutError:
            future.cancel()
            logger.error(f"Task {index} still running after {self.timeout}s, reporting it as failed")
            return TaskOutcome.failed(index, f"timed out after {self.timeout}s")
        except CancelledError:
            return TaskOutcome.failed(index, "cancelled")
        except Exception as e:
            # Task bodies report their own failures; this only covers a broken handle.
            logger.error(f"Task {index} raised through its handle: {e}")
            return TaskOutcome.failed(index, f"{type(e).__name__}: {e}")

        if outcome.task_index != index:
            return outcome.model_copy(update={"task_index": index})
        return outcome
