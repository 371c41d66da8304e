"""Task bodies that generate one order and hand it to a backend."""

from datetime import datetime
from typing import Callable, Optional

from .backends import OrderBackend
from .collector import utcnow
from .dispatcher import TaskBody, TaskBuilder
from .factory import OrderFactory
from .logger import logger


def order_task_builder(
    factory: OrderFactory,
    backend: OrderBackend,
    status: str,
    base_time: Optional[datetime] = None,
    clock: Callable[[], datetime] = utcnow,
) -> TaskBuilder:
    """Return a builder producing the body of task ``index``.

    With a ``base_time`` (database mode) task ``index`` generates its order at
    ``base_time + index + 1`` seconds so order ids spread across distinct
    seconds. Without one (microservice mode) every task uses offset 0 and the
    clock reading taken when the task actually runs.
    """

    def build(index: int) -> TaskBody:
        offset = 0 if base_time is None else index + 1

        def body() -> str:
            moment = clock() if base_time is None else base_time
            order, payment = factory.create(moment, offset, status)
            logger.debug(f"PIZZA ORDER [{index}] -> {backend.name}: {order.model_dump_json(by_alias=True)}")
            return backend.submit(order, payment)

        return body

    return build
