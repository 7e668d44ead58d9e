"""
Serializers for generated Site records.
"""
from rest_framework import serializers

from .addressing import encode_address, share_url
from .models import Site


class SiteSerializer(serializers.ModelSerializer):
    """Serializer for Site model (read side)."""
    owner_id = serializers.CharField(read_only=True)
    address = serializers.SerializerMethodField()
    share_url = serializers.SerializerMethodField()

    class Meta:
        model = Site
        fields = (
            'id', 'owner_id', 'title', 'prompt', 'content',
            'is_published', 'published_at', 'created_at', 'updated_at',
            'address', 'share_url',
        )
        read_only_fields = fields

    def get_address(self, obj):
        return encode_address(obj.owner_id, obj.id)

    def get_share_url(self, obj):
        return share_url(obj.owner_id, obj.id)


class SiteListSerializer(SiteSerializer):
    """Dashboard list entries omit the full content document."""

    class Meta(SiteSerializer.Meta):
        fields = (
            'id', 'owner_id', 'title', 'prompt',
            'is_published', 'published_at', 'created_at', 'updated_at',
            'address', 'share_url',
        )
        read_only_fields = fields


class GenerateSiteSerializer(serializers.Serializer):
    """Body of a generation request."""
    prompt = serializers.CharField(allow_blank=True, trim_whitespace=False, max_length=5000)
