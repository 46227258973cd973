import httpx
import logging
from typing import Optional
from pydantic import ValidationError

from order_processing.domain.models import (
    ProductDetails, PaymentDetails, PaymentRequest, PaymentResult
)
from order_processing.domain.exceptions import (
    InsufficientQuantityError, ProductNotFoundError, InventoryServiceError,
    PaymentServiceError, PaymentDetailsNotFoundError, CircuitBreakerOpenError
)
from order_processing.infrastructure.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)


class _HTTPClient:
    def __init__(self, base_url: str, timeout: float, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={"accept": "*/*"},
        )


class HTTPInventoryClient(_HTTPClient):
    async def reduce_quantity(self, product_id: int, quantity: int) -> str:
        try:
            async with self._client() as client:
                response = await client.put(
                    f"/product/reduceQuantity/{product_id}",
                    params={"quantity": quantity},
                )
        except httpx.RequestError as e:
            logger.error(f"Product catalog service connection error: {e}")
            raise InventoryServiceError(f"Product catalog service unavailable: {e}") from e

        if response.status_code == 400:
            raise InsufficientQuantityError(product_id, quantity)
        if response.status_code == 404:
            raise ProductNotFoundError(f"Product {product_id} not found")
        if not response.is_success:
            raise InventoryServiceError(f"Product catalog service error: {response.status_code}")
        return response.text

    async def get_product(self, product_id: int) -> ProductDetails:
        try:
            async with self._client() as client:
                response = await client.get(f"/product/{product_id}")
        except httpx.RequestError as e:
            logger.error(f"Product catalog service connection error: {e}")
            raise InventoryServiceError(f"Product catalog service unavailable: {e}") from e

        if response.status_code == 404:
            raise ProductNotFoundError(f"Product {product_id} not found")
        if not response.is_success:
            raise InventoryServiceError(f"Product catalog service error: {response.status_code}")
        try:
            return ProductDetails.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise InventoryServiceError(f"Product catalog service returned an invalid body: {e}") from e


class HTTPPaymentsClient(_HTTPClient):
    def __init__(
        self,
        base_url: str,
        timeout: float,
        circuit_breaker: CircuitBreaker,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, timeout, transport)
        self._breaker = circuit_breaker

    async def submit_payment(self, payment_request: PaymentRequest) -> PaymentResult:
        """Single attempt; every failure is reported in the result, never raised"""
        try:
            async with self._client() as client:
                response = await client.post(
                    "/payment",
                    json=payment_request.model_dump(mode="json", by_alias=True),
                )
        except (httpx.HTTPError, httpx.StreamError) as e:
            logger.error(f"Payment service connection error: {e}")
            return PaymentResult(success=False, error_message=f"Payment service unavailable: {e}")

        if not response.is_success:
            logger.error(f"Payment service error: {response.status_code} - {response.text}")
            return PaymentResult(success=False, error_message=f"Payment service error: {response.status_code}")

        try:
            payment_id = int(response.json())
        except (ValueError, TypeError) as e:
            return PaymentResult(success=False, error_message=f"Payment service returned an invalid body: {e}")
        return PaymentResult(success=True, payment_id=payment_id)

    async def get_payment_by_order_id(self, order_id: int) -> PaymentDetails:
        """Guarded by the circuit breaker; falls back to a placeholder unless the payment does not exist"""
        try:
            return await self._breaker.call(
                self._fetch_payment, order_id, ignore=(PaymentDetailsNotFoundError,)
            )
        except CircuitBreakerOpenError as e:
            logger.warning(f"Payment details for order {order_id} not fetched, fallback used: {e}")
        except PaymentServiceError as e:
            logger.error(f"Payment service failed, fallback executed: {e}")
        return PaymentDetails.unavailable(order_id)

    async def _fetch_payment(self, order_id: int) -> PaymentDetails:
        try:
            async with self._client() as client:
                response = await client.get(f"/payment/order/{order_id}")
        except httpx.RequestError as e:
            raise PaymentServiceError(f"Payment service unavailable: {e}") from e

        if response.status_code == 404:
            raise PaymentDetailsNotFoundError(f"Payment details not found for order {order_id}")
        if not response.is_success:
            raise PaymentServiceError(f"Payment service error: {response.status_code}")
        try:
            return PaymentDetails.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise PaymentServiceError(f"Payment service returned an invalid body: {e}") from e
