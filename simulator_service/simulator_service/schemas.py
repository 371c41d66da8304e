"""Pydantic models for synthetic pizza orders, task outcomes and requests."""

from datetime import datetime
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PaymentMethod = Literal["AMEX", "MASTERCARD", "VISA", "CASH"]


class _WireModel(BaseModel):
    """Immutable document serialized with the order service's camelCase names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_wire(self) -> dict:
        """Dump the document using wire field names."""
        return self.model_dump(by_alias=True)


class Street(_WireModel):
    name: str = "SimStreet"
    longitude: str = Field("-3.692763", alias="long")
    latitude: str = Field("40.484408", alias="lat")


class CustomerAddress(_WireModel):
    """Delivery address of a synthetic customer."""

    street: Street = Field(default_factory=Street)
    number: str
    door: str
    email: str
    citycode: str
    city: str = "Madrid"


class CustomerContact(_WireModel):
    telephone: str
    email: str


class Customer(_WireModel):
    customer_id: CustomerContact = Field(..., alias="customerId")


class PizzaSelection(_WireModel):
    """A base pizza plus three distinct toppings."""

    base_type: str = Field(..., alias="baseType")
    topping1: str
    topping2: str
    topping3: str

    @model_validator(mode="after")
    def check_distinct_toppings(self):
        if len({self.topping1, self.topping2, self.topping3}) != 3:
            raise ValueError("toppings must be distinct")
        return self

    @property
    def toppings(self) -> list[str]:
        return [self.topping1, self.topping2, self.topping3]


class OrderDocument(_WireModel):
    """A synthetic pizza order.

    Attributes:
        order_id: ``YYYYMMDDHHmmss`` plus a three digit random suffix.
        date_time_order_taken: ISO-8601 timestamp with milliseconds and ``Z``.
        taken_by_employee: Employee code of the simulated order taker.
        customer: Customer contact record.
        pizza_ordered: Base pizza and toppings.
        total_price: Price label such as ``"14$"``.
        customer_address: Delivery address.
        status: Caller supplied status label, passed through verbatim.
    """

    order_id: str = Field(..., alias="orderId")
    date_time_order_taken: str = Field(..., alias="dateTimeOrderTaken")
    taken_by_employee: str = Field("sim001", alias="takenByEmployee")
    customer: Customer
    pizza_ordered: PizzaSelection = Field(..., alias="pizzaOrdered")
    total_price: str = Field(..., alias="totalPrice")
    customer_address: CustomerAddress = Field(..., alias="customerAdress")
    status: str


class PaymentDocument(_WireModel):
    """Payment paired 1:1 with an :class:`OrderDocument`."""

    payment_id: str = Field(..., alias="paymentid")
    payment_time: str = Field(..., alias="paymentTime")
    order_id: str = Field(..., alias="orderId")
    payment_method: PaymentMethod = Field(..., alias="paymentMethod")
    service_survey: str = Field(..., alias="serviceSurvey")
    total_paid: str = Field(..., alias="totalPaid")
    customer_id: str = Field("sim345", alias="customerId")
    original_price: str = Field(..., alias="originalPrice")

    @model_validator(mode="after")
    def check_original_price(self):
        if float(self.original_price) < float(self.total_paid):
            raise ValueError("originalPrice cannot be lower than totalPaid")
        return self


def order_envelope(order: OrderDocument, payment: PaymentDocument) -> dict:
    """Build the body the order service expects on ``createOrder``."""
    return {"order": order.to_wire(), "payment": payment.to_wire(), "status": order.status}


class TaskOutcome(BaseModel):
    """Result of one task, keyed by its position in the batch."""

    model_config = ConfigDict(frozen=True)

    task_index: int = Field(..., ge=0)
    order_id: Optional[str] = None
    success: bool
    error_detail: Optional[str] = None

    @classmethod
    def succeeded(cls, task_index: int, order_id: str) -> "TaskOutcome":
        return cls(task_index=task_index, order_id=order_id, success=True)

    @classmethod
    def failed(cls, task_index: int, error_detail: str, order_id: Optional[str] = None) -> "TaskOutcome":
        return cls(task_index=task_index, order_id=order_id, success=False, error_detail=error_detail)

    def to_response(self) -> dict:
        entry = {"order": self.task_index, "orderId": self.order_id if self.success else False}
        if not self.success:
            entry["error"] = self.error_detail
        return entry


class BatchResult(BaseModel):
    """Ordered outcomes of a batch plus timing."""

    outcomes: list[TaskOutcome]
    started_at: datetime
    finished_at: datetime
    elapsed_seconds: float = Field(..., ge=0)

    @model_validator(mode="after")
    def check_index_order(self):
        for position, outcome in enumerate(self.outcomes):
            if outcome.task_index != position:
                raise ValueError(f"outcome at position {position} has task_index {outcome.task_index}")
        return self

    @property
    def minutes(self) -> int:
        return int(self.elapsed_seconds // 60)

    @property
    def seconds(self) -> int:
        return int(self.elapsed_seconds) - self.minutes * 60

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.success)

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded

    def to_response(self) -> dict:
        return {
            "orders": [outcome.to_response() for outcome in self.outcomes],
            "elapsed": {"minutes": self.minutes, "seconds": self.seconds},
        }


ThreadCount = Union[int, str]


class DatabaseConfig(BaseModel):
    """``sim-config -> database`` block."""

    model_config = ConfigDict(populate_by_name=True)

    date_ini: str = Field(..., alias="date-ini")
    date_format: str = Field(..., alias="date-format")
    connection_string: str = Field(..., alias="connection-string", min_length=1)
    client_credentials: str = Field(..., alias="client-credentials")
    keystore_password: str = Field(..., alias="keystore-password")
    truststore_password: str = Field(..., alias="truststore-password")
    user: str
    password: str


class MicroserviceConfig(BaseModel):
    """``sim-config -> microservice`` block."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., min_length=1)
    connection_timeout: int = Field(..., alias="connection-timeout", gt=0)
    response_timeout: int = Field(..., alias="response-timeout", gt=0)


class SimConfig(BaseModel):
    """Configuration of one simulation batch.

    Attributes:
        num_orders: Number of orders to generate.
        pizza_status: Status label stamped on every generated order.
        min_threads: Optional override of the default pool floor.
        max_threads: Optional override of the default pool ceiling.
        database: Database backend settings.
        microservice: Order service backend settings.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "num-orders": 10,
                "pizza-status": "ORDERED",
                "microservice": {
                    "url": "http://orchestrator:8080",
                    "connection-timeout": 5000,
                    "response-timeout": 10000,
                },
            }
        },
    )

    num_orders: int = Field(..., alias="num-orders", ge=0)
    pizza_status: str = Field(..., alias="pizza-status")
    min_threads: Optional[ThreadCount] = Field(None, alias="min-threads")
    max_threads: Optional[ThreadCount] = Field(None, alias="max-threads")
    database: Optional[DatabaseConfig] = None
    microservice: Optional[MicroserviceConfig] = None

    @field_validator("min_threads", "max_threads")
    def coerce_thread_count(cls, v):
        """Accept thread counts given either as numbers or numeric strings.

        Args:
            v: Raw value from the request.

        Returns:
            int: Parsed thread count.

        Raises:
            ValueError: If the value is not an integer.
        """
        if v is None:
            return v
        if isinstance(v, str):
            if not v.strip().lstrip("-").isdigit():
                raise ValueError("type missmatch")
            return int(v)
        return v

    @model_validator(mode="after")
    def check_backend_present(self):
        if self.database is None and self.microservice is None:
            raise ValueError("No sim-config -> database or microservice connection provided")
        return self

    @property
    def backend_selector(self) -> Literal["database", "microservice"]:
        return "database" if self.database is not None else "microservice"


class SimulationRequest(BaseModel):
    """Body of ``POST /simulator``."""

    model_config = ConfigDict(populate_by_name=True)

    sim_config: SimConfig = Field(..., alias="sim-config")


class OrdersRequest(BaseModel):
    """Body of ``POST /simulator/orders``."""

    microservice: MicroserviceConfig
