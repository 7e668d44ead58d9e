"""
Owner-scoped persistence for generated sites.

A SiteStore is bound to the authenticated principal. Authorization lives
here, not in the calling views: an owner id that is not the principal's own
is rejected before any query runs.
"""
import logging
from datetime import timedelta
from typing import List

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from .content import SiteContent
from .exceptions import NotFoundError, StorePermissionError
from .models import Site

logger = logging.getLogger(__name__)

TITLE_FALLBACK_LENGTH = 30


class SiteStore:

    def __init__(self, principal_id):
        if principal_id is None:
            raise StorePermissionError('An authenticated owner is required.')
        self.principal_id = principal_id

    def _scope(self, owner_id):
        if str(owner_id) != str(self.principal_id):
            logger.warning(
                f"Rejected cross-owner access: principal {self.principal_id} -> owner {owner_id}"
            )
            raise StorePermissionError()
        return Site.objects.owned_by(self.principal_id)

    def _get_for_update(self, owner_id, site_id) -> Site:
        try:
            return self._scope(owner_id).select_for_update().get(pk=site_id)
        except (Site.DoesNotExist, ValidationError, ValueError):
            raise NotFoundError()

    def _next_created_at(self):
        # created_at must be strictly increasing per owner so newest-first is stable
        now = timezone.now()
        latest = (
            Site.objects.owned_by(self.principal_id)
            .aggregate(latest=Max('created_at'))['latest']
        )
        if latest is not None and now <= latest:
            now = latest + timedelta(microseconds=1)
        return now

    def create(self, owner_id, prompt: str, content: SiteContent) -> Site:
        self._scope(owner_id)
        with transaction.atomic():
            site = Site.objects.create(
                owner_id=self.principal_id,
                prompt=prompt,
                title=(content.title or prompt[:TITLE_FALLBACK_LENGTH])[:255],
                content=content.to_dict(),
                is_published=False,
                created_at=self._next_created_at(),
            )
        logger.info(f"Site created: {site.id} for owner {self.principal_id}")
        return site

    def list(self, owner_id) -> List[Site]:
        return list(self.queryset(owner_id))

    def queryset(self, owner_id):
        """Newest first; ties broken by id so one read is deterministic."""
        return self._scope(owner_id).order_by('-created_at', '-id')

    def get(self, owner_id, site_id) -> Site:
        try:
            return self._scope(owner_id).get(pk=site_id)
        except (Site.DoesNotExist, ValidationError, ValueError):
            raise NotFoundError()

    def publish(self, owner_id, site_id) -> Site:
        return self._set_published(owner_id, site_id, True)

    def unpublish(self, owner_id, site_id) -> Site:
        return self._set_published(owner_id, site_id, False)

    def _set_published(self, owner_id, site_id, value: bool) -> Site:
        with transaction.atomic():
            site = self._get_for_update(owner_id, site_id)
            if site.is_published != value:
                site.is_published = value
                site.published_at = timezone.now() if value else None
                site.save(update_fields=['is_published', 'published_at', 'updated_at'])
        logger.info(f"Site {site.id} {'published' if value else 'unpublished'} by owner {self.principal_id}")
        return site

    def replace_content(self, owner_id, site_id, content: SiteContent) -> Site:
        """Swap the whole content document; prompt, id and publish state are kept."""
        with transaction.atomic():
            site = self._get_for_update(owner_id, site_id)
            site.content = content.to_dict()
            site.title = content.title[:255]
            site.save(update_fields=['content', 'title', 'updated_at'])
        logger.info(f"Site {site.id} content replaced by owner {self.principal_id}")
        return site
