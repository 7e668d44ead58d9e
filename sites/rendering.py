"""
Sandboxed rendering of generated sites.

compile_document turns a SiteContent into one self-contained HTML document.
The document is only ever served inside a sandbox that allows scripts, forms
and popups but withholds same-origin access, so content scripts cannot read
host cookies, storage, globals or navigation.
"""
import html
import logging
from typing import NamedTuple, Optional

from django.conf import settings
from django.http import HttpResponse

from .content import SiteContent

logger = logging.getLogger(__name__)

DEFAULT_TAILWIND_RUNTIME_URL = 'https://cdn.tailwindcss.com'

SANDBOX_PERMISSIONS = (
    'allow-scripts',
    'allow-forms',
    'allow-popups',
    'allow-popups-to-escape-sandbox',
)

BASE_RESET_CSS = 'body { margin: 0; padding: 0; font-family: system-ui, -apple-system, sans-serif; }'

STYLE_OPEN = '<style>'
STYLE_CLOSE = '</style>'
HEAD_CLOSE = '</head>'
BODY_OPEN = '<body>'
BODY_CLOSE = '</body>'


def _attr(value: str) -> str:
    return html.escape(value or '', quote=True)


def _seo_meta(content: SiteContent):
    seo = content.seo
    pairs = [
        ('property', 'og:title', seo.og_title),
        ('property', 'og:description', seo.og_description),
        ('property', 'og:image', seo.og_image),
    ]
    return [
        f'<meta {kind}="{name}" content="{_attr(value)}">'
        for kind, name, value in pairs if value
    ]


class CompiledDocument(NamedTuple):
    text: str
    style: str
    body: str


def _compile(content: SiteContent, asset_base_url: Optional[str] = None) -> CompiledDocument:
    if asset_base_url is None:
        asset_base_url = getattr(settings, 'SITE_ASSET_BASE_URL', '')
    tailwind_url = getattr(settings, 'TAILWIND_RUNTIME_URL', DEFAULT_TAILWIND_RUNTIME_URL)

    description = content.description or content.seo.meta_description

    head = [
        '<meta charset="UTF-8">',
        '<meta name="viewport" content="width=device-width, initial-scale=1.0">',
        f'<title>{html.escape(content.title)}</title>',
        f'<meta name="description" content="{_attr(description)}">',
    ]
    head.extend(_seo_meta(content))
    if asset_base_url:
        head.append(f'<base href="{_attr(asset_base_url)}">')
    if content.tailwind_enabled:
        head.append(f'<script src="{_attr(tailwind_url)}"></script>')

    # Content may itself contain </head>, <body> or </style>; read-back uses these spans
    style = f'\n{BASE_RESET_CSS}\n{content.css}\n'
    body = f'\n{content.html}\n<script>{content.scripts}</script>\n'
    head.append(f'{STYLE_OPEN}{style}{STYLE_CLOSE}')

    text = '\n'.join([
        '<!DOCTYPE html>',
        '<html lang="en">',
        '<head>',
        *head,
        HEAD_CLOSE,
    ]) + f'\n{BODY_OPEN}{body}{BODY_CLOSE}\n</html>'
    return CompiledDocument(text, style, body)


def compile_document(content: SiteContent, asset_base_url: Optional[str] = None) -> str:
    """
    Build the full document. Deterministic: the same content yields the same text.

    css, html and scripts are inlined verbatim; only head metadata is escaped.
    """
    return _compile(content, asset_base_url).text


def sandbox_policy() -> str:
    return 'sandbox ' + ' '.join(SANDBOX_PERMISSIONS)


class MountedDocument:
    """A compiled document attached to a preview mount."""

    def __init__(self, content: SiteContent, compiled: CompiledDocument):
        self.content = content
        self.document = compiled.text
        self.style = compiled.style
        self.body = compiled.body
        self.unmounted = False

    @property
    def iframe(self) -> str:
        return (
            f'<iframe title="Site Preview" sandbox="{" ".join(SANDBOX_PERMISSIONS)}" '
            f'srcdoc="{_attr(self.document)}"></iframe>'
        )

    def teardown(self):
        self.unmounted = True


class PreviewMount:
    """
    Single mount point for a live preview.

    Exclusively owned by the active content: mounting different content tears
    the previous document down first and replaces it whole.
    """

    def __init__(self, asset_base_url: Optional[str] = None):
        self.asset_base_url = asset_base_url
        self.current: Optional[MountedDocument] = None
        self.teardown_count = 0

    def mount(self, content: SiteContent) -> MountedDocument:
        if self.current is not None and self.current.content == content:
            return self.current
        self.unmount()
        self.current = MountedDocument(content, _compile(content, self.asset_base_url))
        return self.current

    def unmount(self):
        if self.current is not None:
            self.current.teardown()
            self.teardown_count += 1
            self.current = None


def render(content: SiteContent, mount: Optional[PreviewMount] = None) -> MountedDocument:
    return (mount or PreviewMount()).mount(content)


def sandbox_response(document: str) -> HttpResponse:
    """Serve a compiled document under the sandbox CSP, framable by the host page."""
    response = HttpResponse(document, content_type='text/html; charset=utf-8')
    response['Content-Security-Policy'] = sandbox_policy()
    response['X-Content-Type-Options'] = 'nosniff'
    response['Referrer-Policy'] = 'no-referrer'
    response.xframe_options_exempt = True
    return response
