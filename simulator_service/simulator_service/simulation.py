"""Turns a validated ``sim-config`` into a dispatched batch."""

from typing import Callable, Optional

from sqlalchemy.exc import ArgumentError

from .backends import DatabaseBackend, OrderBackend, ServiceBackend
from .config import ServiceSettings
from .dispatcher import Dispatcher, PoolSize
from .exceptions import BackendError, ConfigurationError
from .factory import OrderFactory, parse_base_time
from .logger import logger
from .schemas import BatchResult, MicroserviceConfig, SimConfig
from .tasks import order_task_builder

BackendFactory = Callable[[SimConfig, ServiceSettings, PoolSize], OrderBackend]


def build_backend(sim_config: SimConfig, settings: ServiceSettings, pool_size: PoolSize) -> OrderBackend:
    """Construct the backend selected by the request.

    The database block wins when both blocks are present.
    """
    if sim_config.database is not None:
        db = sim_config.database
        logger.info(f"DATA-BASE MODE ON | connection-string={db.connection_string} | user={db.user}")
        try:
            backend = DatabaseBackend(
                db.connection_string,
                user=db.user,
                password=db.password,
                client_credentials=db.client_credentials,
                keystore_password=db.keystore_password,
                truststore_password=db.truststore_password,
                pool_size=pool_size.capacity,
            )
        except ArgumentError as e:
            raise ConfigurationError(f"invalid connection-string: {e}") from e
        if settings.ensure_schema:
            try:
                backend.ensure_schema()
            except Exception:
                backend.close()
                raise
        return backend

    ms = sim_config.microservice
    logger.info(
        f"MICROSERVICE MODE ON | url={ms.url} | connection-timeout={ms.connection_timeout}ms | "
        f"response-timeout={ms.response_timeout}ms"
    )
    backend = service_backend_for(ms, settings.http_pool_size or pool_size.max_threads)
    try:
        logger.info(f"Orchestrator version: {backend.version()}")
    except BackendError as e:
        logger.warning(f"Orchestrator version unavailable: {e}")
    return backend


def service_backend_for(ms: MicroserviceConfig, pool_size: int) -> ServiceBackend:
    return ServiceBackend(
        ms.url,
        connect_timeout_ms=ms.connection_timeout,
        response_timeout_ms=ms.response_timeout,
        pool_size=pool_size,
    )


class SimulationHandler:
    """Validates batch settings, builds the backend and runs the dispatcher."""

    def __init__(self, settings: ServiceSettings, backend_factory: Optional[BackendFactory] = None):
        self.settings = settings
        self.backend_factory = backend_factory or build_backend

    def pool_size_for(self, sim_config: SimConfig) -> PoolSize:
        min_threads = self.settings.min_threads if sim_config.min_threads is None else sim_config.min_threads
        max_threads = self.settings.max_threads if sim_config.max_threads is None else sim_config.max_threads
        return PoolSize(min_threads=min_threads, max_threads=max_threads)

    def run(self, sim_config: SimConfig) -> BatchResult:
        """Run one simulation batch.

        Args:
            sim_config: Validated request configuration

        Returns:
            BatchResult: One outcome per requested order

        Raises:
            ConfigurationError: If the batch cannot be built; no backend is created
        """
        pool_size = self.pool_size_for(sim_config)
        pool_size.validate()

        base_time = None
        if sim_config.database is not None:
            base_time = parse_base_time(sim_config.database.date_format, sim_config.database.date_ini)
            logger.info(f"DATE-INI: {base_time.isoformat()}")

        factory = OrderFactory(surcharge_max=self.settings.surcharge_max)
        dispatcher = Dispatcher(pool_size, batch_timeout=self.settings.batch_timeout)
        backend = self.backend_factory(sim_config, self.settings, pool_size)
        try:
            builder = order_task_builder(factory, backend, sim_config.pizza_status, base_time=base_time)
            return dispatcher.run_batch(sim_config.num_orders, builder)
        finally:
            backend.close()

    def list_orders(self, ms: MicroserviceConfig) -> list:
        """Fetch every order the orchestrator currently holds.

        Raises:
            BackendError: If the orchestrator cannot be reached or answers badly
        """
        backend = service_backend_for(ms, 1)
        try:
            orders = backend.get_all_orders()
        finally:
            backend.close()
        logger.info(f"Orchestrator returned {len(orders)} orders")
        return orders
