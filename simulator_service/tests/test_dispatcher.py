"""Tests for batch dispatch, task bodies and result collection."""

import threading
import time
from concurrent.futures import Future
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from simulator_service.collector import ResultCollector, elapsed_parts, elapsed_seconds
from simulator_service.dispatcher import Dispatcher, DispatcherState, PoolSize, run_task
from simulator_service.exceptions import ConfigurationError
from simulator_service.schemas import TaskOutcome
from simulator_service.tasks import order_task_builder


def _returning(index):
    return lambda: f"order-{index}"


@pytest.mark.parametrize("n", [0, 1, 7, 25])
def test_batch_has_one_outcome_per_task(n):
    """Every task gets exactly one outcome, indexed 0..n-1."""
    result = Dispatcher(PoolSize(4, 4)).run_batch(n, _returning)

    assert len(result.outcomes) == n
    assert [outcome.task_index for outcome in result.outcomes] == list(range(n))
    assert all(outcome.success for outcome in result.outcomes)
    assert [outcome.order_id for outcome in result.outcomes] == [f"order-{i}" for i in range(n)]


def test_delayed_task_keeps_its_position():
    """A slow task is reported at its own index, not where it finished."""
    finished = []
    lock = threading.Lock()

    def builder(index):
        def body():
            if index == 2:
                time.sleep(0.3)
            with lock:
                finished.append(index)
            return f"order-{index}"

        return body

    result = Dispatcher(PoolSize(5, 5)).run_batch(5, builder)

    assert finished[-1] == 2
    assert result.outcomes[2].task_index == 2
    assert result.outcomes[2].order_id == "order-2"


def test_one_failing_order_does_not_affect_the_others(order_factory, base_time, make_backend):
    """A backend rejecting one order id yields exactly one failed outcome."""
    backend = make_backend(fail_when=lambda order: order.order_id.startswith("20240101120005"))
    builder = order_task_builder(order_factory, backend, "ORDERED", base_time=base_time)

    result = Dispatcher(PoolSize(3, 3)).run_batch(10, builder)

    assert len(result.outcomes) == 10
    failed = [outcome for outcome in result.outcomes if not outcome.success]
    assert len(failed) == 1
    assert failed[0].task_index == 4
    assert "rejected" in failed[0].error_detail
    assert failed[0].order_id.startswith("20240101120005")
    assert result.succeeded == 9
    assert len(backend.submitted) == 10


def test_inverted_pool_bounds_are_rejected_before_any_task(recording_backend):
    """min-threads above max-threads is a configuration error with no backend calls."""
    backend = recording_backend
    builder = Mock()

    dispatcher = Dispatcher(PoolSize(min_threads=50, max_threads=10))
    with pytest.raises(ConfigurationError):
        dispatcher.run_batch(5, builder)

    builder.assert_not_called()
    assert backend.submitted == []
    assert dispatcher.state is DispatcherState.IDLE


@pytest.mark.parametrize("bounds", [(0, 5), (3, 0), (-1, -1)])
def test_non_positive_pool_bounds_are_rejected(bounds):
    """Thread counts must be positive."""
    with pytest.raises(ConfigurationError):
        PoolSize(*bounds).validate()


def test_negative_batch_size_is_rejected():
    """A negative number of orders is a configuration error."""
    with pytest.raises(ConfigurationError):
        Dispatcher(PoolSize(1, 1)).run_batch(-1, _returning)


def test_pool_capacity_is_the_smaller_bound(order_factory, base_time, make_backend):
    """No more than min-threads tasks run at the same time."""
    backend = make_backend(delay=0.05)
    builder = order_task_builder(order_factory, backend, "ORDERED", base_time=base_time)

    result = Dispatcher(PoolSize(2, 8)).run_batch(8, builder)

    assert PoolSize(2, 8).capacity == 2
    assert result.succeeded == 8
    assert 1 <= backend.peak_active <= 2


def test_dispatcher_reaches_completed_state():
    """A finished batch leaves the dispatcher completed."""
    dispatcher = Dispatcher(PoolSize(2, 2))
    assert dispatcher.state is DispatcherState.IDLE

    dispatcher.run_batch(3, _returning)

    assert dispatcher.state is DispatcherState.COMPLETED


def test_batch_timeout_turns_hung_tasks_into_failures():
    """Tasks still running when the batch timeout elapses are reported as failed."""
    release = threading.Event()

    def builder(index):
        def body():
            if index == 1:
                release.wait(5)
            return f"order-{index}"

        return body

    try:
        result = Dispatcher(PoolSize(3, 3), batch_timeout=0.2).run_batch(3, builder)
    finally:
        release.set()

    assert len(result.outcomes) == 3
    assert result.outcomes[0].success
    assert not result.outcomes[1].success
    assert "timed out" in result.outcomes[1].error_detail
    assert result.outcomes[2].success


def test_run_task_converts_exceptions_into_outcomes():
    """Any exception in a task body becomes a failed outcome."""

    def body():
        raise KeyError("resJSONDB")

    outcome = run_task(3, body)

    assert outcome == TaskOutcome(task_index=3, success=False, error_detail="'resJSONDB'")


def test_database_tasks_spread_orders_across_seconds(order_factory, base_time, recording_backend):
    """Database mode offsets task i by i + 1 seconds."""
    backend = recording_backend
    builder = order_task_builder(order_factory, backend, "ORDERED", base_time=base_time)

    result = Dispatcher(PoolSize(4, 4)).run_batch(4, builder)

    prefixes = [outcome.order_id[:14] for outcome in result.outcomes]
    assert prefixes == ["20240101120001", "20240101120002", "20240101120003", "20240101120004"]


def test_service_tasks_read_the_clock_when_they_run(order_factory, recording_backend):
    """Microservice mode uses offset zero and the time of execution."""
    backend = recording_backend
    clock = Mock(return_value=datetime(2024, 6, 1, 9, 30, 15))
    builder = order_task_builder(order_factory, backend, "ORDERED", clock=clock)

    body = builder(3)
    clock.assert_not_called()
    order_id = body()

    clock.assert_called_once()
    assert order_id.startswith("20240601093015")


def test_collector_waits_in_index_order_and_reports_broken_handles():
    """A handle that raises still fills its slot."""
    done = Future()
    done.set_result(TaskOutcome.succeeded(0, "a"))
    broken = Future()
    broken.set_exception(RuntimeError("worker died"))
    started = datetime(2024, 1, 1, tzinfo=timezone.utc)

    result = ResultCollector(clock=lambda: started + timedelta(seconds=75)).collect([done, broken], started)

    assert [outcome.success for outcome in result.outcomes] == [True, False]
    assert "worker died" in result.outcomes[1].error_detail
    assert (result.minutes, result.seconds) == (1, 15)


def test_elapsed_time_is_never_negative():
    """Clock skew cannot produce a negative duration."""
    start = datetime(2024, 1, 1, 12, 0, 0)
    end = start - timedelta(minutes=2, seconds=5)

    assert elapsed_seconds(start, end) == 125
    assert elapsed_parts(start, end) == (2, 5)

    result = ResultCollector(clock=lambda: end).collect([], start)
    assert result.elapsed_seconds >= 0
    assert (result.minutes, result.seconds) == (2, 5)
