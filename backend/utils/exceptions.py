"""
Custom exceptions for the Inventory Management System.
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError
from rest_framework.fields import get_error_detail
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class InvalidQuantity(APIException):
    """
    Exception raised when a stock movement carries a negative or
    non-numeric quantity.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Quantity must be a number greater than or equal to zero.'
    default_code = 'invalid_quantity'


class InvalidMovementType(APIException):
    """
    Exception raised when a stock movement is neither IN nor OUT
    (or references an unknown item type).
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Movement type must be IN or OUT.'
    default_code = 'invalid_movement_type'


class InvalidPeriod(APIException):
    """
    Exception raised when a year/month pair does not describe a calendar month.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid year/month.'
    default_code = 'invalid_period'


class ItemNotFound(APIException):
    """
    Exception raised when a summary is requested for an item that has
    no ledger history and nothing to carry forward.
    """
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Item not found in stock records.'
    default_code = 'item_not_found'


class ConcurrentRegenerationConflict(APIException):
    """
    Exception raised when another caller is already generating
    summaries for the same month.
    """
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Summaries for this month are already being generated.'
    default_code = 'concurrent_regeneration'


class LedgerImmutableError(APIException):
    """
    Exception raised when attempting to modify a recorded stock movement.
    Movements can only be soft-deleted.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Stock movements are immutable once recorded.'
    default_code = 'ledger_immutable'


class InsufficientStock(APIException):
    """
    Exception raised when a production plan needs more material than is on hand.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Insufficient materials for production.'
    default_code = 'insufficient_stock'

    def __init__(self, detail=None, code=None, shortages=None):
        super().__init__(detail, code)
        self.shortages = shortages or []


class TemplateNotFound(APIException):
    """
    Exception raised when a conversion template is missing or not active.
    """
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Template not found.'
    default_code = 'template_not_found'


def _flatten_detail(detail):
    if isinstance(detail, dict):
        parts = []
        for field, value in detail.items():
            text = _flatten_detail(value)
            parts.append(text if field == 'non_field_errors' else f'{field}: {text}')
        return '; '.join(parts)
    if isinstance(detail, (list, tuple)):
        return '; '.join(_flatten_detail(item) for item in detail)
    return str(detail)


def api_exception_handler(exc, context):
    """
    Render every API error as ``{success: false, message}``.

    Validation errors keep their field breakdown under ``errors``.
    """
    if isinstance(exc, DjangoValidationError):
        exc = ValidationError(get_error_detail(exc))

    response = exception_handler(exc, context)
    request = context.get('request')
    trace_id = getattr(request, 'trace_id', None) if request is not None else None

    if response is None:
        # Unhandled errors propagate to Django (500) after being logged
        logger.error(f"[{trace_id or 'no-trace'}] Unhandled API error: {exc}", exc_info=exc)
        return None

    body = {
        'success': False,
        'message': _flatten_detail(response.data.get('detail', response.data)
                                   if isinstance(response.data, dict) else response.data),
    }
    if isinstance(response.data, dict) and 'detail' not in response.data:
        body['errors'] = response.data
    if isinstance(exc, InsufficientStock):
        body['shortages'] = exc.shortages
    if trace_id:
        body['trace_id'] = trace_id

    response.data = body
    return response
