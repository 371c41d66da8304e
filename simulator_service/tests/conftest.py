"""Test fixtures for the simulator service tests."""

import random
import threading
import time
from datetime import datetime

import pytest

from simulator_service.backends import DatabaseBackend
from simulator_service.exceptions import BackendError
from simulator_service.factory import OrderFactory

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)


class RecordingBackend:
    """In-memory backend that records every submitted order id.

    Attributes:
        fail_when: Optional predicate on the order; matching orders raise BackendError.
        delay: Seconds to sleep inside every submit.
    """

    name = "recording"

    def __init__(self, fail_when=None, delay=0.0):
        self.fail_when = fail_when
        self.delay = delay
        self.submitted = []
        self.closed = False
        self.active = 0
        self.peak_active = 0
        self._lock = threading.Lock()

    def submit(self, order, payment):
        with self._lock:
            self.submitted.append(order.order_id)
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.fail_when is not None and self.fail_when(order):
                raise BackendError(f"rejected {order.order_id}", order_id=order.order_id)
            return order.order_id
        finally:
            with self._lock:
                self.active -= 1

    def close(self):
        self.closed = True


@pytest.fixture
def base_time():
    """Fixed base timestamp for database mode batches."""
    return BASE_TIME


@pytest.fixture
def order_factory():
    """Create an order factory with a seeded random source.

    Returns:
        OrderFactory: Factory producing reproducible orders.
    """
    return OrderFactory(rng=random.Random(42))


@pytest.fixture
def recording_backend():
    """Backend that accepts everything and remembers it."""
    return RecordingBackend()


@pytest.fixture
def make_backend():
    """Build recording backends with custom failure predicates or delays.

    Returns:
        Callable: ``make_backend(fail_when=None, delay=0.0)``
    """
    return RecordingBackend


@pytest.fixture
def sample_documents(order_factory, base_time):
    """One order and payment generated at the base time."""
    return order_factory.create(base_time, 1, "ORDERED")


@pytest.fixture
def database_backend(tmp_path):
    """Database backend on a temporary SQLite file with the schema in place.

    Yields:
        DatabaseBackend: Backend ready for inserts.
    """
    backend = DatabaseBackend(f"sqlite:///{tmp_path / 'orders.db'}", pool_size=4)
    backend.ensure_schema()
    yield backend
    backend.close()


@pytest.fixture
def sim_config_payload():
    """Minimal microservice simulation request body."""
    return {
        "sim-config": {
            "num-orders": 3,
            "pizza-status": "ORDERED",
            "min-threads": 2,
            "max-threads": 4,
            "microservice": {
                "url": "http://orchestrator:8080",
                "connection-timeout": 5000,
                "response-timeout": 10000,
            },
        }
    }
