"""Synthetic pizza order generation."""

import random
import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from .exceptions import ConfigurationError
from .schemas import (
    Customer,
    CustomerAddress,
    CustomerContact,
    OrderDocument,
    PaymentDocument,
    PizzaSelection,
)

TOPPINGS = ("Tuna", "Onions", "BBQ Sauce", "Tomatos", "Mushrooms")
PIZZA_SIZES = ("Small", "Medium", "Large", "X-Large")
PIZZA_BASES = (
    "BACON SPINACH ALFREDO",
    "CHEESE BASIC",
    "HAWAIIAN CHICKEN",
    "MEAT LOVER",
    "PEPPERONI",
    "PREMIUM GARDEN VEGGIE",
    "SUPREME",
    "ULTIMATE CHEESE LOVER",
)
PAYMENT_METHODS = {0: "AMEX", 1: "MASTERCARD", 2: "VISA"}
PAYMENT_DRAW_BOUND = 4
SIM_EMAIL = "ivan.smith@sim-email.es"

# Java SimpleDateFormat tokens accepted in date-format, longest first.
_JAVA_TOKENS = {
    "yyyy": "%Y",
    "yy": "%y",
    "MM": "%m",
    "dd": "%d",
    "HH": "%H",
    "hh": "%I",
    "mm": "%M",
    "ss": "%S",
    "SSS": "%f",
    "a": "%p",
}
_JAVA_PATTERN = re.compile(r"'[^']*'|yyyy|yy|MM|dd|HH|hh|mm|ss|SSS|a")


def to_strptime_format(date_format: str) -> str:
    """Translate a Java style date pattern into a ``strptime`` format.

    Formats already containing ``%`` directives are returned unchanged.
    """
    if "%" in date_format:
        return date_format

    def replace(match: re.Match) -> str:
        token = match.group(0)
        if token.startswith("'"):
            return token[1:-1]
        return _JAVA_TOKENS[token]

    return _JAVA_PATTERN.sub(replace, date_format)


def parse_base_time(date_format: str, value: str) -> datetime:
    """Parse the ``date-ini`` of a database simulation.

    Args:
        date_format: ``strptime`` or Java style pattern, e.g. ``dd/MM/yyyy HH:mm:ss``.
        value: Date string to parse.

    Returns:
        datetime: Parsed base time.

    Raises:
        ConfigurationError: If the value does not match the format.
    """
    try:
        return datetime.strptime(value, to_strptime_format(date_format))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"date-ini {value!r} does not match date-format {date_format!r}: {e}") from e


def format_order_time(moment: datetime) -> str:
    """Render ``yyyy-MM-ddTHH:mm:ss.SSSZ``."""
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc).replace(tzinfo=None)
    return f"{moment:%Y-%m-%dT%H:%M:%S}.{moment.microsecond // 1000:03d}Z"


class OrderFactory:
    """Builds one order and its payment per call.

    The factory holds no mutable state apart from its random source and may
    be shared by every task of a batch.

    Attributes:
        surcharge_max: Exclusive upper bound of the surcharge added to the
            paid price to obtain the original price.
    """

    def __init__(self, surcharge_max: int = 3, rng: Optional[random.Random] = None):
        if surcharge_max < 1:
            raise ConfigurationError(f"surcharge_max must be at least 1, got {surcharge_max}")
        self.surcharge_max = surcharge_max
        self._rng = rng or random.Random()

    def create(self, base_time: datetime, offset_seconds: int, status: str) -> tuple[OrderDocument, PaymentDocument]:
        """Create an order and payment for ``base_time + offset_seconds``.

        Args:
            base_time: Base timestamp of the batch.
            offset_seconds: Non-negative seconds added to spread order ids.
            status: Status label, stored verbatim.

        Returns:
            tuple[OrderDocument, PaymentDocument]: The paired documents.
        """
        if offset_seconds < 0:
            raise ValueError(f"offset_seconds must be non-negative, got {offset_seconds}")

        moment = base_time + timedelta(seconds=offset_seconds)
        taken_at = format_order_time(moment)
        order_id = self.order_id_for(moment)
        total_price = self._rng.randrange(10, 20)
        original_price = total_price + self._rng.randrange(0, self.surcharge_max)
        toppings = self.pick_toppings()

        order = OrderDocument(
            order_id=order_id,
            date_time_order_taken=taken_at,
            customer=Customer(
                customer_id=CustomerContact(
                    telephone=str(self._rng.randrange(601000000, 678000000)),
                    email=SIM_EMAIL,
                )
            ),
            pizza_ordered=PizzaSelection(
                base_type=self.pick_base_pizza(),
                topping1=toppings[0],
                topping2=toppings[1],
                topping3=toppings[2],
            ),
            total_price=f"{total_price}$",
            customer_address=CustomerAddress(
                number=str(self._rng.randrange(1, 100)),
                door=str(self._rng.randrange(1, 5)),
                email=SIM_EMAIL,
                citycode=str(self._rng.randrange(28001, 28039)),
            ),
            status=status,
        )
        payment = PaymentDocument(
            payment_id=f"p{order_id}",
            payment_time=taken_at,
            order_id=order_id,
            payment_method=payment_method_for(self._rng.randrange(0, PAYMENT_DRAW_BOUND)),
            service_survey=str(self._rng.randrange(1, 6)),
            total_paid=str(total_price),
            original_price=str(original_price),
        )
        return order, payment

    def order_id_for(self, moment: datetime) -> str:
        # 24-hour clock; the suffix makes collisions unlikely, not impossible.
        return f"{moment:%Y%m%d%H%M%S}{self._rng.randint(100, 999)}"

    def pick_toppings(self) -> list[str]:
        candidates = list(TOPPINGS)
        selected = []
        for _ in range(3):
            selected.append(candidates.pop(self._rng.randrange(len(candidates))))
        return selected

    def pick_base_pizza(self) -> str:
        return f"{self._rng.choice(PIZZA_SIZES)} {self._rng.choice(PIZZA_BASES)}"


def payment_method_for(code: int) -> str:
    """Map a draw code to a payment method; codes beyond 2 are CASH."""
    return PAYMENT_METHODS.get(code, "CASH")
