from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from order_processing.domain.exceptions import OrderStatusError


UNAVAILABLE = "Unavailable"


class OrderStatus(str, Enum):
    CREATED = "CREATED"
    PLACED = "PLACED"
    PAYMENT_FAILED = "PAYMENT_FAILED"


TERMINAL_STATUSES = (OrderStatus.PLACED, OrderStatus.PAYMENT_FAILED)


class PaymentMode(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    UPI = "UPI"


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in code"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Order(BaseModel):
    """Domain Entity: order in the local ledger"""
    id: Optional[int] = None
    product_id: int
    quantity: int
    amount: int
    status: OrderStatus
    created_at: datetime

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def resolve(self, status: OrderStatus) -> None:
        """Business rule: CREATED moves exactly once to PLACED or PAYMENT_FAILED"""
        if self.is_terminal():
            raise OrderStatusError(f"Order {self.id} is already {self.status.value}")
        if status not in TERMINAL_STATUSES:
            raise OrderStatusError(f"{status.value} is not a terminal status")
        self.status = status


class ProductDetails(WireModel):
    """Value Object: product from the catalog service"""
    product_id: int
    product_name: str
    price: int
    quantity: int

    @classmethod
    def unavailable(cls, product_id: int) -> "ProductDetails":
        return cls(product_id=product_id, product_name=UNAVAILABLE, price=0, quantity=0)


class PaymentDetails(WireModel):
    """Value Object: payment from the payment service"""
    payment_id: int
    status: str
    payment_mode: Optional[PaymentMode] = None
    amount: int
    payment_date: datetime
    order_id: int

    @classmethod
    def unavailable(cls, order_id: int) -> "PaymentDetails":
        return cls(
            payment_id=0,
            status=UNAVAILABLE,
            payment_mode=None,
            amount=0,
            payment_date=datetime.now(timezone.utc),
            order_id=order_id,
        )


class PaymentRequest(WireModel):
    order_id: int
    amount: int
    reference_number: str
    payment_mode: PaymentMode


class PaymentResult(BaseModel):
    """Outcome of a payment submission, consumed when the order status is resolved"""
    success: bool
    payment_id: Optional[int] = None
    error_message: Optional[str] = None


class OrderDetails(WireModel):
    """Read-time aggregate of order, product and payment"""
    order_id: int
    order_date: datetime
    order_status: OrderStatus
    amount: int
    product_details: ProductDetails
    payment_details: PaymentDetails
