"""Order backends: database persistence and the remote order service."""

from typing import Optional, Protocol

from logging_utils.config import get_backend_logger
from requests import RequestException, Session
from requests.adapters import HTTPAdapter
from sqlalchemy import create_engine, select
from sqlalchemy.engine import Engine, make_url

from .exceptions import BackendError, PartialPersistenceError
from .factory import TOPPINGS
from .logger import SERVICE_NAME
from .schemas import OrderDocument, PaymentDocument, order_envelope
from .tables import ingredients, metadata, payments, pizza_orders

db_logger = get_backend_logger(SERVICE_NAME, "database")
ms_logger = get_backend_logger(SERVICE_NAME, "microservice")


class OrderBackend(Protocol):
    """Protocol shared by every order backend."""

    name: str

    def submit(self, order: OrderDocument, payment: PaymentDocument) -> str:
        """Submit one order and its payment.

        Args:
            order: The order document
            payment: The payment paired with the order

        Returns:
            str: Correlation identifier of the stored order

        Raises:
            BackendError: If the backend did not accept the order
        """
        ...

    def close(self) -> None:
        """Release the connection pool or HTTP client."""
        ...


class DatabaseBackend:
    """Persists orders through a SQLAlchemy engine.

    The engine is the single connection pool of the batch. Every statement
    checks a connection out of it and returns it on every exit path.

    Order and payment are inserted in two separately committed statements,
    so a failing payment leaves the order row behind.
    """

    name = "database"

    def __init__(
        self,
        connection_string: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        client_credentials: Optional[str] = None,
        keystore_password: Optional[str] = None,
        truststore_password: Optional[str] = None,
        pool_size: Optional[int] = None,
        engine: Optional[Engine] = None,
    ):
        """Create the backend and its engine.

        Args:
            connection_string: SQLAlchemy database URL
            user: Database user, merged into the URL when it has none
            password: Database password, merged into the URL when it has none
            client_credentials: Directory holding the client wallet (Oracle)
            keystore_password: Wallet password (Oracle)
            truststore_password: Trust store password (Oracle)
            pool_size: Size of the connection pool
            engine: Pre-built engine, mostly for tests
        """
        if engine is not None:
            self.engine = engine
            return

        url = make_url(connection_string)
        backend_name = url.get_backend_name()
        if backend_name != "sqlite":
            if user and not url.username:
                url = url.set(username=user)
            if password and not url.password:
                url = url.set(password=password)

        engine_kwargs = {"pool_pre_ping": True}
        if pool_size:
            engine_kwargs["pool_size"] = pool_size
        connect_args = self._tls_connect_args(backend_name, client_credentials, keystore_password, truststore_password)
        if connect_args:
            engine_kwargs["connect_args"] = connect_args

        db_logger.info(f"Creating engine | url={url.render_as_string(hide_password=True)} | pool_size={pool_size}")
        self.engine = create_engine(url, **engine_kwargs)

    @staticmethod
    def _tls_connect_args(
        backend_name: str,
        client_credentials: Optional[str],
        keystore_password: Optional[str],
        truststore_password: Optional[str],
    ) -> dict:
        if not any((client_credentials, keystore_password, truststore_password)):
            return {}
        if backend_name != "oracle":
            db_logger.warning(f"Ignoring wallet settings for {backend_name} database")
            return {}
        args = {}
        if client_credentials:
            args["config_dir"] = client_credentials
            args["wallet_location"] = client_credentials
        if keystore_password:
            args["wallet_password"] = keystore_password
        return args

    def ensure_schema(self) -> None:
        """Create the order tables and seed one counter row per topping."""
        metadata.create_all(self.engine)
        with self.engine.begin() as conn:
            existing = set(conn.execute(select(ingredients.c.NAME)).scalars())
            missing = [{"NAME": name, "CONSUMED": 0} for name in TOPPINGS if name not in existing]
            if missing:
                conn.execute(ingredients.insert(), missing)

    def insert_order(self, order: OrderDocument) -> None:
        with self.engine.begin() as conn:
            conn.execute(pizza_orders.insert().values(ID=order.order_id, DATA=order.model_dump_json(by_alias=True)))
        db_logger.debug(f"PizzaOrder with orderId[{order.order_id}] inserted OK!")

    def insert_payment(self, payment: PaymentDocument) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                payments.insert().values(
                    PAYMENTCODE=payment.payment_id,
                    ORDERID=payment.order_id,
                    PAYMENTTIME=payment.payment_time,
                    PAYMENTMETHOD=payment.payment_method,
                    ORIGINALPRICE=float(payment.original_price),
                    TOTALPAID=float(payment.total_paid),
                    CUSTOMERID=payment.customer_id,
                    SERVICESURVEY=int(payment.service_survey),
                )
            )
        db_logger.debug(f"Payment for orderId[{payment.order_id}] inserted OK!")

    def update_ingredients(self, order: OrderDocument) -> bool:
        """Bump consumption counters for the order's toppings, best effort.

        Returns:
            bool: True if the counters were updated
        """
        try:
            with self.engine.begin() as conn:
                for topping in order.pizza_ordered.toppings:
                    conn.execute(
                        ingredients.update()
                        .where(ingredients.c.NAME == topping)
                        .values(CONSUMED=ingredients.c.CONSUMED + 1)
                    )
            return True
        except Exception as e:
            db_logger.warning(f"Ingredient counters not updated for orderId[{order.order_id}]: {e}")
            return False

    def submit(self, order: OrderDocument, payment: PaymentDocument) -> str:
        order_id = order.order_id
        try:
            self.insert_order(order)
        except Exception as e:
            db_logger.error(f"ERROR [{order_id}] order insert failed: {e}")
            raise BackendError(f"ERROR [{order_id}] {e}", order_id=order_id) from e

        try:
            self.insert_payment(payment)
        except Exception as e:
            db_logger.error(f"ERROR [{order_id}] payment insert failed after order insert: {e}")
            raise PartialPersistenceError(f"ERROR [{order_id}] payment not stored: {e}", order_id=order_id) from e

        self.update_ingredients(order)
        return order_id

    def close(self) -> None:
        self.engine.dispose()
        db_logger.info("Engine disposed")


class ServiceBackend:
    """Submits orders to the remote order orchestrator over HTTP.

    One ``requests.Session`` with a pooled adapter is shared by all tasks of
    a batch. Timeouts are fixed at construction.
    """

    name = "microservice"

    def __init__(
        self,
        base_url: str,
        connect_timeout_ms: int,
        response_timeout_ms: int,
        pool_size: int = 10,
    ):
        """Create the HTTP client.

        Args:
            base_url: Base URL of the orchestrator
            connect_timeout_ms: Connect timeout in milliseconds
            response_timeout_ms: Read timeout in milliseconds
            pool_size: Maximum pooled connections to the orchestrator
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = (connect_timeout_ms / 1000, response_timeout_ms / 1000)
        self.session = Session()
        adapter = HTTPAdapter(pool_connections=1, pool_maxsize=pool_size)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        ms_logger.info(f"Creating RestClient. base URL: {self.base_url} | timeout={self.timeout}")

    def _call(self, method: str, path: str, payload: Optional[dict] = None):
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except RequestException as e:
            raise BackendError(f"{method} {path} failed: {e}") from e
        except ValueError as e:
            raise BackendError(f"{method} {path} returned invalid JSON: {e}") from e

    def version(self) -> dict:
        return self._call("GET", "/version")

    def get_all_orders(self) -> list:
        return self._call("GET", "/getAllOrders")

    def create_order(self, envelope: dict) -> dict:
        return self._call("POST", "/createOrder", envelope)

    def change_status(self, order_id: str, status: str) -> dict:
        return self._call("PUT", "/changeStatus", {"orderId": order_id, "status": status})

    def submit(self, order: OrderDocument, payment: PaymentDocument) -> str:
        created = self.create_order(order_envelope(order, payment))
        try:
            order_id = str(created["resJSONDB"]["orderId"])
        except (KeyError, TypeError) as e:
            raise BackendError(f"createOrder response has no resJSONDB.orderId: {created}") from e

        ms_logger.debug(f"Pizza created with orderId[{order_id}], changing status to {order.status}")
        try:
            response = self.change_status(order_id, order.status)
        except BackendError as e:
            ms_logger.error(f"ERROR [{order_id}] created but status not changed: {e}")
            raise BackendError(f"ERROR [{order_id}] status not changed: {e}", order_id=order_id) from e
        ms_logger.debug(f"changeStatus response for orderId[{order_id}]: {response}")
        return order_id

    def close(self) -> None:
        self.session.close()
        ms_logger.info("RestClient closed")
