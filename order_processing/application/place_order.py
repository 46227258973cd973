import logging
import uuid
from datetime import datetime, timezone
from pydantic import BaseModel

from order_processing.domain.models import (
    Order, OrderStatus, PaymentMode, PaymentRequest, PaymentResult
)
from order_processing.application.interfaces import InventoryService, PaymentsService


logger = logging.getLogger(__name__)


class PlaceOrderDTO(BaseModel):
    product_id: int
    quantity: int
    total_amount: int
    payment_mode: PaymentMode


class PlaceOrderUseCase:
    """
    Order placement saga: reserve inventory, persist the order, charge the
    payment and finalize the status.

    There is no compensation. Once the inventory is reduced the order is
    always persisted and ends in PLACED or PAYMENT_FAILED; only the
    reservation step can fail the call.
    """

    def __init__(
        self,
        unit_of_work,
        inventory_service: InventoryService,
        payments_service: PaymentsService,
    ):
        self._uow = unit_of_work
        self._inventory = inventory_service
        self._payments = payments_service

    async def __call__(self, order_data: PlaceOrderDTO) -> int:
        logger.info(f"Placing order: product {order_data.product_id}, quantity {order_data.quantity}")

        # 1. Reserve inventory (InsufficientQuantityError / ProductNotFoundError propagate)
        await self._inventory.reduce_quantity(order_data.product_id, order_data.quantity)
        logger.info(f"Reduced quantity of product {order_data.product_id} by {order_data.quantity}")

        # 2. Persist the order
        order = Order(
            product_id=order_data.product_id,
            quantity=order_data.quantity,
            amount=order_data.total_amount,
            status=OrderStatus.CREATED,
            created_at=datetime.now(timezone.utc),
        )
        async with self._uow() as uow:
            order = await uow.orders.save(order)
            await uow.commit()
        logger.info(f"Order created: {order.id}")

        # 3-4. Charge the payment
        payment_request = PaymentRequest(
            order_id=order.id,
            amount=order_data.total_amount,
            reference_number=str(uuid.uuid4()),
            payment_mode=order_data.payment_mode,
        )
        logger.info(f"Calling payment service for order {order.id}")
        try:
            result = await self._payments.submit_payment(payment_request)
        except Exception as e:
            # The order is already committed; any payment error ends it as PAYMENT_FAILED
            logger.exception(f"Payment call raised for order {order.id}")
            result = PaymentResult(success=False, error_message=f"{type(e).__name__}: {e}")

        # 5. Resolve the terminal status
        if result.success:
            logger.info(f"Payment {result.payment_id} done for order {order.id}, status PLACED")
            order.resolve(OrderStatus.PLACED)
        else:
            logger.error(f"Payment failed for order {order.id}: {result.error_message}, status PAYMENT_FAILED")
            order.resolve(OrderStatus.PAYMENT_FAILED)

        # 6. Persist the terminal status
        async with self._uow() as uow:
            await uow.orders.save(order)
            await uow.commit()

        logger.info(f"Order placed: {order.id} ({order.status.value})")
        return order.id
