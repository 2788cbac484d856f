"""
Error taxonomy for the marketplace.

Every error leaving the API carries a stable machine-readable ``error`` code
next to a human-readable ``detail``:

- ValidationError (400): malformed or missing input, e.g. an empty order
- PermissionDenied (403): actor lacks authority over the target
- NotFound (404): target missing or not visible to the actor
- InvalidTransition (409): a state machine guard failed
- InsufficientStock (409): quantity decrement would go negative
- ProductInUse (409): listing still referenced by order history
- StoreInUse (409): store still has active listings
- StoreUnavailable (503): database I/O failure, retryable

Rendering is done by core.handlers.marketplace_exception_handler.
"""

from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError


class EmptyOrder(ValidationError):
    """Raised when an order is submitted without any line-items."""

    default_detail = 'Order must contain at least one item.'
    default_code = 'empty_order'


class InvalidTransition(APIException):
    """Raised when a status change is not allowed from the current state."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Invalid status transition.'
    default_code = 'invalid_transition'


class OrderNotCancellable(InvalidTransition):
    """Raised when cancelling an order that is no longer pending."""

    default_detail = 'Order cannot be cancelled.'
    default_code = 'not_cancellable'


class InsufficientStock(APIException):
    """Raised when a listing does not hold enough quantity for a purchase."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Insufficient stock for this listing.'
    default_code = 'insufficient_stock'


class ProductInUse(APIException):
    """Raised when deleting a listing that order history still references."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'This listing is referenced by existing orders and cannot be deleted.'
    default_code = 'product_in_use'


class StoreUnavailable(APIException):
    """Raised when the database cannot be reached or a write fails."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'The service is temporarily unavailable. Please retry.'
    default_code = 'store_unavailable'


class StoreInUse(APIException):
    """Raised when deleting a store that still has active listings."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Cannot delete a store with active listings.'
    default_code = 'store_in_use'
