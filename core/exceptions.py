# core/exceptions.py


class StoreError(Exception):
    """Base class for business-rule failures surfaced to the shopper."""

    default_message = 'Something went wrong.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class PersistenceError(StoreError):
    """Storage-layer failure; never a business-rule failure."""

    default_message = 'We could not save your request. Please try again.'
