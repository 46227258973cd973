from typing import Optional
from sqlalchemy import select, insert, update
from sqlalchemy.ext.asyncio import AsyncSession

from order_processing.domain.models import Order, OrderStatus
from order_processing.infrastructure.db_schema import orders_tbl
from order_processing.application.interfaces import OrderRepository


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        result = await self._session.execute(
            select(orders_tbl).where(orders_tbl.c.id == order_id)
        )
        row = result.fetchone()
        return self._to_domain(row) if row else None

    async def save(self, order: Order) -> Order:
        if order.id is None:
            stmt = insert(orders_tbl).values(
                product_id=order.product_id,
                quantity=order.quantity,
                amount=order.amount,
                status=order.status,
                created_at=order.created_at
            )
            result = await self._session.execute(stmt)
            order_id = result.inserted_primary_key[0]
        else:
            # created_at is set once and never rewritten
            stmt = (
                update(orders_tbl)
                .where(orders_tbl.c.id == order.id)
                .values(
                    product_id=order.product_id,
                    quantity=order.quantity,
                    amount=order.amount,
                    status=order.status
                )
            )
            await self._session.execute(stmt)
            order_id = order.id
        return order.model_copy(update={"id": order_id})

    def _to_domain(self, row) -> Order:
        """DB → Domain"""
        return Order(
            id=row.id,
            product_id=row.product_id,
            quantity=row.quantity,
            amount=row.amount,
            status=OrderStatus(row.status),
            created_at=row.created_at
        )
