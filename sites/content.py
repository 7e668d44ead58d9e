"""
Site content contract.

Defines the SiteContent value type produced by a generation request, the
declarative response schema handed to the generative backend, and the
serializers that validate a backend payload into a SiteContent.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from rest_framework import serializers

from .exceptions import GenerationError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ['title', 'slug', 'html', 'css', 'tailwind']

SITE_CONTENT_SCHEMA = {
    'type': 'object',
    'properties': {
        'title': {'type': 'string'},
        'description': {'type': 'string'},
        'slug': {'type': 'string'},
        'html': {'type': 'string'},
        'css': {'type': 'string'},
        'tailwind': {'type': 'boolean'},
        'assets': {
            'type': 'array',
            'items': {
                'type': 'object',
                'properties': {
                    'path': {'type': 'string'},
                    'alt': {'type': 'string'},
                },
            },
        },
        'scripts': {'type': 'string'},
        'previewInstructions': {'type': 'string'},
        'seo': {
            'type': 'object',
            'properties': {
                'titleTag': {'type': 'string'},
                'metaDescription': {'type': 'string'},
                'ogTitle': {'type': 'string'},
                'ogDescription': {'type': 'string'},
                'ogImage': {'type': 'string'},
            },
        },
        'accessibilityNotes': {'type': 'string'},
        'mobileFirst': {'type': 'boolean'},
        'notes': {'type': 'string'},
    },
    'required': REQUIRED_FIELDS,
}

SYSTEM_INSTRUCTION = """You are an expert web developer and UI designer.
Generate a COMPLETE, production-ready landing page that meets these platform requirements.
Output as a single JSON object.

Requirements:
1. Visual & structural:
   - Modern, professional layout (Header, Hero, Features, How it Works, Pricing, Testimonials, About, Contact, CTA, Footer).
   - Clear CTA for Sign Up/Login.
   - Professional color scheme.
2. Technical:
   - HTML must be valid, well-structured (semantic tags).
   - Mobile-first responsive layout.
   - If using Tailwind, set "tailwind": true.
   - Avoid external CDN dependencies (except Tailwind).
   - Images should be placeholders (paths under /assets/).
   - Minimize JS.
3. A11y & SEO:
   - Meaningful alt text.
   - Accessible contrast.
   - Aria labels.

Return STRICT valid JSON."""


@dataclass(frozen=True)
class Asset:
    path: str
    alt_text: str = ''


@dataclass(frozen=True)
class SEOMetadata:
    title_tag: str = ''
    meta_description: str = ''
    og_title: str = ''
    og_description: str = ''
    og_image: str = ''


@dataclass(frozen=True)
class SiteContent:
    """
    Validated result of a generation request.

    html, css and scripts are untrusted and are only ever inlined into a
    sandboxed document, never into a host page.
    """
    title: str
    slug: str
    html: str
    css: str
    tailwind_enabled: bool
    description: str = ''
    scripts: str = ''
    assets: Tuple[Asset, ...] = ()
    seo: SEOMetadata = field(default_factory=SEOMetadata)
    accessibility_notes: str = ''
    mobile_first: bool = False
    author_notes: str = ''
    preview_instructions: str = ''

    def to_dict(self) -> Dict[str, Any]:
        """Wire form, as produced by the backend and persisted on the record."""
        return {
            'title': self.title,
            'description': self.description,
            'slug': self.slug,
            'html': self.html,
            'css': self.css,
            'tailwind': self.tailwind_enabled,
            'assets': [{'path': a.path, 'alt': a.alt_text} for a in self.assets],
            'scripts': self.scripts,
            'previewInstructions': self.preview_instructions,
            'seo': {
                'titleTag': self.seo.title_tag,
                'metaDescription': self.seo.meta_description,
                'ogTitle': self.seo.og_title,
                'ogDescription': self.seo.og_description,
                'ogImage': self.seo.og_image,
            },
            'accessibilityNotes': self.accessibility_notes,
            'mobileFirst': self.mobile_first,
            'notes': self.author_notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SiteContent':
        """Validate a wire mapping; raises GenerationError when it does not fit."""
        serializer = SiteContentSerializer(data=data)
        if not serializer.is_valid():
            raise GenerationError(
                f"Generated content has missing or invalid fields: {_flatten_errors(serializer.errors)}"
            )
        return serializer.save()


class StrictBooleanField(serializers.BooleanField):
    """Accepts only real JSON booleans, not "true"/1 look-alikes."""
    default_error_messages = {
        'invalid': 'Must be a boolean.',
    }

    def to_internal_value(self, data):
        if not isinstance(data, bool):
            self.fail('invalid')
        return data


class AssetSerializer(serializers.Serializer):
    path = serializers.CharField(allow_blank=True, trim_whitespace=False)
    alt = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='', trim_whitespace=False)


class SEOSerializer(serializers.Serializer):
    titleTag = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    metaDescription = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    ogTitle = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    ogDescription = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    ogImage = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')


def _optional(data, key, default=''):
    # Optional fields may come back as null; they take their empty default
    value = data.get(key)
    return default if value is None else value


class SiteContentSerializer(serializers.Serializer):
    """
    Structural validation of a generation payload (wire keys).

    Only the five required fields must be present and non-null; every other
    field may be missing or null.
    """
    title = serializers.CharField()
    slug = serializers.CharField()
    html = serializers.CharField(trim_whitespace=False)
    css = serializers.CharField(trim_whitespace=False)
    tailwind = StrictBooleanField()
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    scripts = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default='', trim_whitespace=False
    )
    assets = AssetSerializer(many=True, required=False, allow_null=True, default=list)
    seo = SEOSerializer(required=False, allow_null=True, default=dict)
    previewInstructions = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    accessibilityNotes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')
    mobileFirst = StrictBooleanField(required=False, allow_null=True, default=False)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')

    def validate(self, attrs):
        # html/css keep their whitespace, but blank documents are still rejected
        for name in ('html', 'css'):
            if not attrs[name].strip():
                raise serializers.ValidationError({name: 'This field may not be blank.'})
        return attrs

    def create(self, validated_data):
        seo = _optional(validated_data, 'seo', {})
        return SiteContent(
            title=validated_data['title'],
            slug=validated_data['slug'],
            html=validated_data['html'],
            css=validated_data['css'],
            tailwind_enabled=validated_data['tailwind'],
            description=_optional(validated_data, 'description'),
            scripts=_optional(validated_data, 'scripts'),
            assets=tuple(
                Asset(path=a['path'], alt_text=_optional(a, 'alt'))
                for a in _optional(validated_data, 'assets', [])
                if a is not None
            ),
            seo=SEOMetadata(
                title_tag=_optional(seo, 'titleTag'),
                meta_description=_optional(seo, 'metaDescription'),
                og_title=_optional(seo, 'ogTitle'),
                og_description=_optional(seo, 'ogDescription'),
                og_image=_optional(seo, 'ogImage'),
            ),
            accessibility_notes=_optional(validated_data, 'accessibilityNotes'),
            mobile_first=_optional(validated_data, 'mobileFirst', False),
            author_notes=_optional(validated_data, 'notes'),
            preview_instructions=_optional(validated_data, 'previewInstructions'),
        )


def parse_site_content(json_text: str) -> SiteContent:
    """
    Parse backend JSON text into a SiteContent.

    Fails atomically with GenerationError: no partial content is returned.
    """
    try:
        data = json.loads(json_text or '')
    except (TypeError, ValueError) as e:
        logger.error(f"Generated payload is not valid JSON: {e}")
        raise GenerationError('Generated content could not be parsed as JSON.') from e

    if not isinstance(data, dict):
        raise GenerationError('Generated content must be a JSON object.')

    return SiteContent.from_dict(data)


def _flatten_errors(errors) -> str:
    return ', '.join(sorted(errors.keys())) if isinstance(errors, dict) else str(errors)
