"""
Generated site models.
"""
import uuid

from django.conf import settings
from django.db import models

from .content import SiteContent


class SiteQuerySet(models.QuerySet):

    def owned_by(self, owner_id):
        """Every store read and write is scoped through this filter."""
        return self.filter(owner_id=owner_id)


class Site(models.Model):
    """
    A generated landing page owned by one user.
    One user can have multiple sites; the (owner, id) pair is its public address.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='sites',
        editable=False,
    )
    prompt = models.TextField(editable=False, help_text="Original free-text prompt")
    title = models.CharField(max_length=255, blank=True)
    content = models.JSONField(default=dict, help_text="Generated site content (wire format)")
    is_published = models.BooleanField(default=False)
    published_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(editable=False)
    updated_at = models.DateTimeField(auto_now=True)

    objects = SiteQuerySet.as_manager()

    class Meta:
        db_table = 'generated_sites'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['owner', '-created_at'], name='site_owner_created_idx'),
        ]

    def __str__(self):
        return f"{self.title or self.id} ({'published' if self.is_published else 'draft'})"

    @property
    def site_content(self) -> SiteContent:
        return SiteContent.from_dict(self.content)
