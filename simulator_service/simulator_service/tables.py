"""Table layout used by the database backend."""

from sqlalchemy import Column, DateTime, Float, Integer, MetaData, String, Table, Text, func

metadata = MetaData()

pizza_orders = Table(
    "PIZZAORDER",
    metadata,
    Column("ID", String(32), primary_key=True),
    Column("DATA", Text, nullable=False),
    Column("TIMESTAMP", DateTime, server_default=func.current_timestamp()),
)

payments = Table(
    "PAYMENTS",
    metadata,
    Column("PAYMENTCODE", String(33), primary_key=True),
    Column("ORDERID", String(32), nullable=False),
    Column("PAYMENTTIME", String(32), nullable=False),
    Column("PAYMENTMETHOD", String(16), nullable=False),
    Column("ORIGINALPRICE", Float, nullable=False),
    Column("TOTALPAID", Float, nullable=False),
    Column("CUSTOMERID", String(32), nullable=False),
    Column("SERVICESURVEY", Integer),
)

ingredients = Table(
    "INGREDIENTS",
    metadata,
    Column("NAME", String(32), primary_key=True),
    Column("CONSUMED", Integer, nullable=False, default=0),
)
