"""
REST framework exception handling for launchai_backend.
"""
import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from sites.exceptions import SiteError

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """
    Render site pipeline errors as {"error": {"code", "message", "status"}}.
    Anything else goes through DRF's default handler.
    """
    if isinstance(exc, SiteError):
        view = context.get('view')
        logger.warning(
            f"{exc.code} in {view.__class__.__name__ if view else 'unknown view'}: {exc.message}"
        )
        return Response({
            'error': {
                'code': exc.code,
                'message': exc.message,
                'status': exc.status_code,
            }
        }, status=exc.status_code)
    return exception_handler(exc, context)
