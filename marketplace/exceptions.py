"""
Typed errors raised by the lifecycle coordinator and review admission control.

The REST layer renders them through ``marketplace_exception_handler`` so that a
client can tell "already taken" (409) apart from "not allowed" (403) and
"doesn't exist" (404).
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class MarketplaceError(Exception):
    """Base class for marketplace domain errors."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = 'error'
    default_detail = 'The request could not be completed.'

    def __init__(self, detail=None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = 'not_found'
    default_detail = 'Not found.'


class Forbidden(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    code = 'forbidden'
    default_detail = 'You are not allowed to perform this action.'


class Conflict(MarketplaceError):
    status_code = status.HTTP_409_CONFLICT
    code = 'conflict'
    default_detail = 'The resource is in a state that does not allow this action.'


class InvalidOperation(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'invalid_operation'
    default_detail = 'This operation is not valid.'


class Expired(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = 'expired'
    default_detail = 'The time window for this action has elapsed.'


def marketplace_exception_handler(exc, context):
    """
    DRF exception handler that understands ``MarketplaceError``.

    Configured through ``REST_FRAMEWORK['EXCEPTION_HANDLER']``. Any other
    exception is handed to DRF's default handler.
    """
    if isinstance(exc, MarketplaceError):
        view = context.get('view')
        logger.info(
            f"Request rejected with {exc.code}: {exc.detail} "
            f"(view: {view.__class__.__name__ if view else 'unknown'})"
        )
        return Response(
            {'detail': exc.detail, 'code': exc.code},
            status=exc.status_code
        )

    return exception_handler(exc, context)
