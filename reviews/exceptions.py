from core.exceptions import StoreError


class ReviewError(StoreError):
    default_message = 'You have already reviewed this product'
