"""
Public resolution endpoints. No authentication: the publish gate is the only check.

GET /api/v1/public/resolve/?address=p/<owner_id>/<site_id> - Resolve a share token
GET /api/v1/public/<owner_id>/<site_id>/ - Resolve by address segments
GET /p/<owner_id>/<site_id>/ - Rendered, sandboxed public page
"""
import logging

from django.http import JsonResponse
from django.views.decorators.http import require_GET
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from .addressing import encode_address, parse_address, resolve
from .exceptions import NotFoundError, SiteError
from .rendering import compile_document, sandbox_response

logger = logging.getLogger(__name__)


def _payload(address, content):
    return {
        'address': address,
        'content': content.to_dict(),
    }


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def resolve_site(request, owner_id, site_id):
    content = resolve(owner_id, site_id)
    return Response(_payload(encode_address(owner_id, site_id), content))


@api_view(['GET'])
@authentication_classes([])
@permission_classes([AllowAny])
def resolve_token(request):
    address = parse_address(request.query_params.get('address', ''))
    if address is None:
        raise NotFoundError()
    content = resolve(address.owner_id, address.site_id)
    return Response(_payload(encode_address(*address), content))


@require_GET
def public_site(request, owner_id, site_id):
    """
    Serve a published site as a standalone sandboxed document.

    Errors are rendered as plain JSON, matching the project-level handlers.
    """
    try:
        content = resolve(owner_id, site_id)
    except SiteError as e:
        return JsonResponse({
            'error': {'code': e.code, 'message': e.message, 'status': e.status_code},
        }, status=e.status_code)
    return sandbox_response(compile_document(content))
