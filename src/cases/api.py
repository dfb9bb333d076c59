"""
REST framework integration: rendering service errors as API responses.
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from .services.base import ServiceError

logger = logging.getLogger(__name__)


def exception_handler(exc, context):
    """
    Render ``ServiceError`` subclasses as ``{"detail", "code"}`` with their
    mapped status; everything else goes through DRF's default handler.
    """
    if isinstance(exc, ServiceError):
        if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(f"Service error in {context.get('view').__class__.__name__}: {exc.message}")
        return Response(
            {'detail': exc.message, 'code': exc.code},
            status=exc.status_code
        )
    return drf_exception_handler(exc, context)
