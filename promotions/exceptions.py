# promotions/exceptions.py
from core.exceptions import StoreError


class CouponInvalidError(StoreError):
    """Coupon cannot be applied; ``message`` is the reason shown to the shopper."""

    default_message = 'Invalid coupon code'
