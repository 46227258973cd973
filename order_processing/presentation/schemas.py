from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime

from order_processing.domain.models import (
    OrderStatus, PaymentMode, ProductDetails, PaymentDetails
)


class _CamelSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlaceOrderRequest(_CamelSchema):
    product_id: int
    quantity: int = Field(..., gt=0)
    total_amount: int = Field(..., gt=0)
    payment_mode: PaymentMode


class OrderResponse(_CamelSchema):
    order_id: int
    order_date: datetime
    order_status: OrderStatus
    amount: int
    product_details: ProductDetails
    payment_details: PaymentDetails

    @classmethod
    def from_domain(cls, details):
        return cls(
            order_id=details.order_id,
            order_date=details.order_date,
            order_status=details.order_status,
            amount=details.amount,
            product_details=details.product_details,
            payment_details=details.payment_details
        )


class ErrorResponse(BaseModel):
    detail: str
