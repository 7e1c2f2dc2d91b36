# orders/exceptions.py
from core.exceptions import StoreError, PersistenceError  # noqa: F401
from promotions.exceptions import CouponInvalidError  # noqa: F401


class EmptyCartError(StoreError):
    default_message = 'Your cart is empty.'


class ProductUnavailableError(StoreError):
    default_message = 'A product in your cart is no longer available.'

    def __init__(self, message=None, product_id=None):
        self.product_id = product_id
        super().__init__(message)


class DuplicateOrderIdentifierError(StoreError):
    """Order number collided with an existing one; retried internally."""

    default_message = 'Order number already in use.'


class InvalidTransitionError(StoreError):
    default_message = 'This status change is not allowed.'


class CancellationNotAllowedError(StoreError):
    default_message = 'This order cannot be cancelled.'


class InvalidPaymentStatusError(StoreError):
    default_message = 'This payment status change is not allowed.'
