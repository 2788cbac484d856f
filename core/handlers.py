"""
REST framework exception handler for the marketplace API.
"""

import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.http import Http404
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.views import exception_handler

from .exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


def _error_code(exc):
    """
    Pick the stable error code for an API exception.

    Field-level validation errors carry one code per field, so the
    exception class default is used for them instead.
    """
    codes = exc.get_codes()
    if isinstance(codes, str):
        return codes
    return getattr(exc, 'default_code', 'error')


def marketplace_exception_handler(exc, context):
    """
    Render API errors as ``{'error': <code>, 'detail': <message>}``.

    Also translates errors raised below the REST layer:
    - Django ``Http404`` and ``PermissionDenied`` become their DRF counterparts
    - Django ``ValidationError`` from model ``clean()`` becomes a 400
    - ``DatabaseError`` becomes ``StoreUnavailable`` without exposing the
      driver message

    Args:
        exc: Exception raised while handling the request
        context: Handler context (view, request, args, kwargs)

    Returns:
        Response or None: None lets Django turn the exception into a 500
    """
    if isinstance(exc, Http404):
        exc = NotFound()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = PermissionDenied()
    elif isinstance(exc, DjangoValidationError):
        if hasattr(exc, 'error_dict'):
            exc = ValidationError(detail=exc.message_dict)
        else:
            exc = ValidationError(detail=exc.messages)
    elif isinstance(exc, DatabaseError):
        view = context.get('view')
        logger.error(
            f"Database error in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
            exc_info=True
        )
        exc = StoreUnavailable()

    response = exception_handler(exc, context)
    if response is None:
        view = context.get('view')
        logger.error(
            f"Unhandled error in {view.__class__.__name__ if view else 'unknown view'}: {exc}",
            exc_info=exc
        )
        return None

    response.data = {
        'error': _error_code(exc),
        'detail': exc.detail,
    }
    return response
