class DomainException(Exception):
    pass


class InsufficientQuantityError(DomainException):
    def __init__(self, product_id: int, quantity: int):
        self.product_id = product_id
        self.quantity = quantity
        super().__init__(f"Product {product_id} does not have sufficient quantity for {quantity} unit(s)")


class ProductNotFoundError(DomainException):
    pass


class OrderNotFoundError(DomainException):
    pass


class PaymentDetailsNotFoundError(DomainException):
    pass


class OrderStatusError(DomainException):
    """Raised when an order that already reached a terminal status is resolved again."""


class DownstreamServiceError(DomainException):
    """Transport failure: the downstream service is unreachable or answered unexpectedly."""


class InventoryServiceError(DownstreamServiceError):
    pass


class PaymentServiceError(DownstreamServiceError):
    pass


class CircuitBreakerOpenError(PaymentServiceError):
    pass
