import asyncio
import logging

from order_processing.domain.models import OrderDetails, ProductDetails
from order_processing.domain.exceptions import (
    OrderNotFoundError, ProductNotFoundError, InventoryServiceError
)
from order_processing.application.interfaces import InventoryService, PaymentsService


logger = logging.getLogger(__name__)


class GetOrderDetailsUseCase:
    def __init__(
        self,
        unit_of_work,
        inventory_service: InventoryService,
        payments_service: PaymentsService,
        product_fallback: bool = True,
    ):
        self._uow = unit_of_work
        self._inventory = inventory_service
        self._payments = payments_service
        self._product_fallback = product_fallback

    async def __call__(self, order_id: int) -> OrderDetails:
        logger.info(f"Get order details for order {order_id}")

        async with self._uow() as uow:
            order = await uow.orders.get_by_id(order_id)
            if not order:
                raise OrderNotFoundError(f"Order {order_id} not found")

        # Both fetches are scheduled before either is awaited
        product_task = asyncio.create_task(self._product_details(order.product_id))
        payment_task = asyncio.create_task(self._payments.get_payment_by_order_id(order_id))

        try:
            product_details = await product_task
        except BaseException:
            payment_task.cancel()
            await asyncio.gather(payment_task, return_exceptions=True)
            raise
        payment_details = await payment_task

        return OrderDetails(
            order_id=order.id,
            order_date=order.created_at,
            order_status=order.status,
            amount=order.amount,
            product_details=product_details,
            payment_details=payment_details,
        )

    async def _product_details(self, product_id: int) -> ProductDetails:
        try:
            return await self._inventory.get_product(product_id)
        except ProductNotFoundError:
            raise
        except InventoryServiceError as e:
            if not self._product_fallback:
                raise
            logger.warning(f"Product service failed for product {product_id}, fallback used: {e}")
            return ProductDetails.unavailable(product_id)
