from sqlalchemy import Table, Column, Integer, BigInteger, Enum, DateTime, MetaData

from order_processing.domain.models import OrderStatus

metadata = MetaData()


orders_tbl = Table(
    "orders",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("product_id", BigInteger, nullable=False),
    Column("quantity", Integer, nullable=False),
    Column("amount", BigInteger, nullable=False),
    Column("status", Enum(OrderStatus, name="orderstatus"), nullable=False, default=OrderStatus.CREATED),
    Column("created_at", DateTime(timezone=True), nullable=False),
)
