"""
Views for generated site management (owner side).
"""
import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .content import SiteContentSerializer
from .generator import SiteGenerator
from .permissions import IsElevatedUser
from .prompt_templates import PROMPT_TEMPLATES
from .rendering import compile_document, sandbox_response
from .serializers import GenerateSiteSerializer, SiteListSerializer, SiteSerializer
from .store import SiteStore

logger = logging.getLogger(__name__)


class SiteViewSet(viewsets.GenericViewSet):
    """
    ViewSet for managing generated sites.

    list: GET /api/v1/sites/ - List the current user's sites, newest first
    create: POST /api/v1/sites/ - Generate a site from a prompt and save it
    retrieve: GET /api/v1/sites/{id}/ - Get site details
    content: PUT /api/v1/sites/{id}/content/ - Replace the content document
    publish: POST /api/v1/sites/{id}/publish/ - Open the public address
    unpublish: POST /api/v1/sites/{id}/unpublish/ - Close the public address
    preview: GET /api/v1/sites/{id}/preview/ - Sandboxed owner preview
    prompt_templates: GET /api/v1/sites/prompt-templates/ - Curated prompts (elevated only)
    """
    serializer_class = SiteSerializer
    permission_classes = [IsAuthenticated]

    def get_store(self):
        return SiteStore(self.request.user.pk)

    def get_generator(self):
        return SiteGenerator()

    @property
    def owner_id(self):
        return self.request.user.pk

    def list(self, request):
        queryset = self.get_store().queryset(self.owner_id)
        page = self.paginate_queryset(queryset)
        if page is not None:
            serializer = SiteListSerializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        return Response(SiteListSerializer(queryset, many=True).data)

    def create(self, request):
        """
        Generate and persist a site.

        POST /api/v1/sites/
        Body: { "prompt": "Coffee shop landing page" }

        The record is committed before the response is returned.
        """
        serializer = GenerateSiteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        prompt = serializer.validated_data['prompt']

        content = self.get_generator().generate(prompt)
        site = self.get_store().create(self.owner_id, prompt, content)

        return Response(SiteSerializer(site).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        site = self.get_store().get(self.owner_id, pk)
        return Response(SiteSerializer(site).data)

    @action(detail=True, methods=['put'])
    def content(self, request, pk=None):
        """
        Replace the site's content wholesale.

        PUT /api/v1/sites/{id}/content/
        Body: a full content document (same keys as a generation result)
        """
        serializer = SiteContentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        site = self.get_store().replace_content(self.owner_id, pk, serializer.save())
        return Response(SiteSerializer(site).data)

    @action(detail=True, methods=['post'])
    def publish(self, request, pk=None):
        """
        Publish a site. Calling it again simply re-confirms the published state.

        POST /api/v1/sites/{id}/publish/
        """
        site = self.get_store().publish(self.owner_id, pk)
        return Response(SiteSerializer(site).data)

    @action(detail=True, methods=['post'])
    def unpublish(self, request, pk=None):
        site = self.get_store().unpublish(self.owner_id, pk)
        return Response(SiteSerializer(site).data)

    @action(detail=True, methods=['get'])
    def preview(self, request, pk=None):
        """
        Owner preview of the compiled document, published or not.

        GET /api/v1/sites/{id}/preview/
        """
        site = self.get_store().get(self.owner_id, pk)
        return sandbox_response(compile_document(site.site_content))

    @action(
        detail=False,
        methods=['get'],
        url_path='prompt-templates',
        permission_classes=[IsAuthenticated, IsElevatedUser],
    )
    def prompt_templates(self, request):
        return Response({
            'templates': PROMPT_TEMPLATES,
            'total': len(PROMPT_TEMPLATES),
        })
