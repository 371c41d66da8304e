"""Exception hierarchy for the simulator service."""

from typing import Optional


class SimulatorError(Exception):
    """Base class for all simulator errors."""


class ConfigurationError(SimulatorError):
    """Raised when a batch cannot be built from its configuration.

    Covers malformed dates, invalid thread pool sizes and missing backend
    fields. Raised before any task runs.
    """


class BackendError(SimulatorError):
    """Raised when a backend fails to accept a single order."""

    def __init__(self, message: str, order_id: Optional[str] = None):
        super().__init__(message)
        self.order_id = order_id


class PartialPersistenceError(BackendError):
    """The order row was stored but the payment row was not.

    Order and payment inserts are not wrapped in a shared transaction, so the
    order side effect remains after this error.
    """
