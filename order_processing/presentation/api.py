import logging
from fastapi import APIRouter, Depends, HTTPException, status

from order_processing.presentation.schemas import PlaceOrderRequest, OrderResponse, ErrorResponse
from order_processing.application.place_order import PlaceOrderUseCase, PlaceOrderDTO
from order_processing.application.get_order_details import GetOrderDetailsUseCase
from order_processing.domain.exceptions import (
    InsufficientQuantityError, ProductNotFoundError, OrderNotFoundError,
    PaymentDetailsNotFoundError, DownstreamServiceError
)
from order_processing.infrastructure.unit_of_work import UnitOfWork
from order_processing.infrastructure.http_clients import HTTPInventoryClient, HTTPPaymentsClient
from order_processing.infrastructure.circuit_breaker import CircuitBreaker
from order_processing.database import AsyncSessionLocal
from order_processing.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()

# Shared by every request of this process
payment_circuit_breaker = CircuitBreaker(
    name="paymentService",
    window_size=settings.CIRCUIT_BREAKER_WINDOW_SIZE,
    minimum_calls=settings.CIRCUIT_BREAKER_MINIMUM_CALLS,
    failure_rate_threshold=settings.CIRCUIT_BREAKER_FAILURE_RATE,
    open_timeout=settings.CIRCUIT_BREAKER_OPEN_TIMEOUT,
    half_open_calls=settings.CIRCUIT_BREAKER_HALF_OPEN_CALLS,
)


# Use case factories
def get_inventory_client():
    return HTTPInventoryClient(settings.INVENTORY_BASE_URL, settings.HTTP_TIMEOUT)


def get_payments_client():
    return HTTPPaymentsClient(settings.PAYMENT_BASE_URL, settings.HTTP_TIMEOUT, payment_circuit_breaker)


def get_place_order_use_case(
    inventory: HTTPInventoryClient = Depends(get_inventory_client),
    payments: HTTPPaymentsClient = Depends(get_payments_client),
):
    return PlaceOrderUseCase(UnitOfWork(AsyncSessionLocal), inventory, payments)


def get_order_details_use_case(
    inventory: HTTPInventoryClient = Depends(get_inventory_client),
    payments: HTTPPaymentsClient = Depends(get_payments_client),
):
    return GetOrderDetailsUseCase(
        UnitOfWork(AsyncSessionLocal), inventory, payments, settings.PRODUCT_FALLBACK_ENABLED
    )


@router.post(
    "/placeOrder",
    response_model=int,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    status_code=status.HTTP_201_CREATED
)
async def place_order(
    request: PlaceOrderRequest,
    use_case: PlaceOrderUseCase = Depends(get_place_order_use_case)
):
    """Place an order, returns the order id"""
    try:
        dto = PlaceOrderDTO(
            product_id=request.product_id,
            quantity=request.quantity,
            total_amount=request.total_amount,
            payment_mode=request.payment_mode
        )
        return await use_case(dto)
    except InsufficientQuantityError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ProductNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DownstreamServiceError as e:
        logger.error(f"Order placement failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Service unavailable: {e}")


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}
)
async def get_order_details(
    order_id: int,
    use_case: GetOrderDetailsUseCase = Depends(get_order_details_use_case)
):
    """Order with its product and payment details"""
    try:
        details = await use_case(order_id)
        return OrderResponse.from_domain(details)
    except (OrderNotFoundError, ProductNotFoundError, PaymentDetailsNotFoundError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except DownstreamServiceError as e:
        logger.error(f"Order details failed for order {order_id}: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Service unavailable: {e}")
