import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import pytest

from order_processing.application.interfaces import (
    OrderRepository, InventoryService, PaymentsService
)
from order_processing.domain.models import (
    Order, ProductDetails, PaymentDetails, PaymentMode, PaymentRequest, PaymentResult
)


class InMemoryOrderRepository(OrderRepository):
    def __init__(self):
        self.rows = {}
        self.saved = []
        self._next_id = 1

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        row = self.rows.get(order_id)
        return row.model_copy() if row else None

    async def save(self, order: Order) -> Order:
        if order.id is None:
            order = order.model_copy(update={"id": self._next_id})
            self._next_id += 1
        self.saved.append(order.model_copy())
        self.rows[order.id] = order.model_copy()
        return order.model_copy()


class FakeUnitOfWork:
    def __init__(self, repository=None):
        self.orders = repository or InMemoryOrderRepository()
        self.commits = 0

    @asynccontextmanager
    async def __call__(self):
        yield self

    async def commit(self):
        self.commits += 1


class StubInventory(InventoryService):
    def __init__(self, product=None, reduce_error=None, product_error=None, delay=0.0, events=None):
        self.product = product
        self.reduce_error = reduce_error
        self.product_error = product_error
        self.delay = delay
        self.events = events if events is not None else []
        self.reduce_calls = []

    async def reduce_quantity(self, product_id: int, quantity: int) -> str:
        self.reduce_calls.append((product_id, quantity))
        if self.reduce_error:
            raise self.reduce_error
        return "Product quantity reduced"

    async def get_product(self, product_id: int) -> ProductDetails:
        self.events.append("product:start")
        try:
            await asyncio.sleep(self.delay)
            if self.product_error:
                raise self.product_error
            return self.product or make_product(product_id)
        finally:
            self.events.append("product:end")


class StubPayments(PaymentsService):
    def __init__(self, result=None, details=None, details_error=None, delay=0.0, events=None, submit_error=None):
        self.result = result or PaymentResult(success=True, payment_id=7)
        self.submit_error = submit_error
        self.details = details
        self.details_error = details_error
        self.delay = delay
        self.events = events if events is not None else []
        self.submitted = []
        self.cancelled = False

    async def submit_payment(self, payment_request: PaymentRequest) -> PaymentResult:
        self.submitted.append(payment_request)
        if self.submit_error:
            raise self.submit_error
        return self.result

    async def get_payment_by_order_id(self, order_id: int) -> PaymentDetails:
        self.events.append("payment:start")
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        self.events.append("payment:end")
        if self.details_error:
            raise self.details_error
        return self.details or make_payment(order_id)


def make_product(product_id=42, **overrides) -> ProductDetails:
    data = dict(product_id=product_id, product_name="Keyboard", price=250, quantity=10)
    data.update(overrides)
    return ProductDetails(**data)


def make_payment(order_id=1, **overrides) -> PaymentDetails:
    data = dict(
        payment_id=11,
        status="SUCCESS",
        payment_mode=PaymentMode.CARD,
        amount=500,
        payment_date=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        order_id=order_id,
    )
    data.update(overrides)
    return PaymentDetails(**data)


@pytest.fixture
def repository():
    return InMemoryOrderRepository()


@pytest.fixture
def unit_of_work(repository):
    return FakeUnitOfWork(repository)
