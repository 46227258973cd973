from abc import ABC, abstractmethod
from typing import Optional
from order_processing.domain.models import (
    Order, ProductDetails, PaymentDetails, PaymentRequest, PaymentResult
)


class OrderRepository(ABC):
    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def save(self, order: Order) -> Order:
        """Insert when order.id is None (the store assigns the id), update otherwise"""
        pass


class InventoryService(ABC):
    @abstractmethod
    async def reduce_quantity(self, product_id: int, quantity: int) -> str:
        pass

    @abstractmethod
    async def get_product(self, product_id: int) -> ProductDetails:
        pass


class PaymentsService(ABC):
    @abstractmethod
    async def submit_payment(self, payment_request: PaymentRequest) -> PaymentResult:
        pass

    @abstractmethod
    async def get_payment_by_order_id(self, order_id: int) -> PaymentDetails:
        pass
