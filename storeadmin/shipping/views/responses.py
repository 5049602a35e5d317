"""
Response helpers shared by the Shipping views.
"""

import logging

from rest_framework import status
from rest_framework.response import Response

from ..exceptions import (
    BusinessException, CarrierException, ConfigurationException, NotFoundException,
    WaybillExhaustedException
)

logger = logging.getLogger(__name__)


def success_response(payload=None, status_code=status.HTTP_200_OK, **extra):
    body = {'success': True}
    if payload is not None:
        body['data'] = payload
    body.update(extra)
    return Response(body, status=status_code)


def error_status_for(exc: BusinessException) -> int:
    """HTTP status for a business exception."""
    if isinstance(exc, NotFoundException):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, CarrierException):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, (ConfigurationException, WaybillExhaustedException)):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_400_BAD_REQUEST


def error_response(exc: BusinessException) -> Response:
    status_code = error_status_for(exc)
    if status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    return Response({
        'success': False,
        'error': {
            'code': exc.code,
            'message': exc.message,
            'details': exc.details,
        }
    }, status=status_code)


def invalid_request(errors) -> Response:
    return Response({
        'success': False,
        'error': {
            'code': 'VALIDATION_ERROR',
            'message': 'Invalid request',
            'details': errors,
        }
    }, status=status.HTTP_400_BAD_REQUEST)
