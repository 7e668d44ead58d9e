"""
Public addressing and resolution.

A site's public address is the (owner id, site id) pair, carried as the token
"p/<owner_id>/<site_id>". The cosmetic slug is never part of an address.
"""
import logging
from typing import NamedTuple, Optional
from urllib.parse import urlsplit

from django.conf import settings
from django.core.exceptions import ValidationError

from .content import SiteContent
from .exceptions import NotFoundError, NotPublishedError
from .models import Site

logger = logging.getLogger(__name__)

ADDRESS_PREFIX = 'p'
SEPARATOR = '/'


class Address(NamedTuple):
    owner_id: str
    site_id: str


def _check_part(name: str, value) -> str:
    value = str(value) if value is not None else ''
    if not value:
        raise ValueError(f"{name} must not be empty")
    if SEPARATOR in value:
        raise ValueError(f"{name} must not contain '{SEPARATOR}'")
    if value != value.strip():
        raise ValueError(f"{name} must not have leading or trailing whitespace")
    return value


def encode_address(owner_id, site_id) -> str:
    owner_id = _check_part('owner_id', owner_id)
    site_id = _check_part('site_id', site_id)
    return SEPARATOR.join([ADDRESS_PREFIX, owner_id, site_id])


def parse_address(raw) -> Optional[Address]:
    """
    Parse a share token, fragment, path or full share URL.

    Accepts "p/<o>/<s>", "#p/<o>/<s>", "/p/<o>/<s>/" and URLs carrying either
    form in their fragment or path. Returns None for anything else.
    """
    if not raw or not isinstance(raw, str):
        return None

    token = raw.strip()
    if '://' in token:
        parts = urlsplit(token)
        token = parts.fragment if parts.fragment else parts.path
    token = token.lstrip('#').strip(SEPARATOR)

    segments = token.split(SEPARATOR)
    if len(segments) != 3 or segments[0] != ADDRESS_PREFIX:
        return None
    owner_id, site_id = segments[1], segments[2]
    if not owner_id or not site_id:
        return None
    return Address(owner_id, site_id)


def share_url(owner_id, site_id) -> str:
    base = getattr(settings, 'PUBLIC_SITE_BASE_URL', '').rstrip(SEPARATOR)
    return f"{base}/#{encode_address(owner_id, site_id)}"


def _lookup(owner_id, site_id) -> Site:
    # Structural scoping: the site id only exists inside its owner's collection
    try:
        return Site.objects.owned_by(owner_id).get(pk=site_id)
    except (Site.DoesNotExist, ValidationError, ValueError):
        raise NotFoundError()


def resolve(owner_id, site_id) -> SiteContent:
    """
    Public resolution: the record must exist at the address and be published.

    Owners get no bypass here; preview renders the record directly instead.
    """
    site = _lookup(owner_id, site_id)
    if not site.is_published:
        logger.info(f"Resolution denied for unpublished site {site_id}")
        raise NotPublishedError()
    return site.site_content


def resolve_address(raw) -> SiteContent:
    address = parse_address(raw)
    if address is None:
        raise NotFoundError()
    return resolve(address.owner_id, address.site_id)
