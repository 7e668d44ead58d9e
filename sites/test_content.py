"""
Tests for the content contract, generator, addressing and sandboxed rendering.
None of these touch the database.
"""
import json

import pytest

from sites.addressing import Address, encode_address, parse_address
from sites.content import SITE_CONTENT_SCHEMA, SiteContent, parse_site_content
from sites.exceptions import EmptyPromptError, GenerationError
from sites.generator import SiteGenerator
from sites.rendering import PreviewMount, SANDBOX_PERMISSIONS, compile_document, render

MINIMAL = {
    'title': 'Bean There',
    'slug': 'bean-there',
    'html': '<h1>Bean There</h1>',
    'css': 'h1 { color: brown; }',
    'tailwind': False,
}


def backend_returning(payload, calls=None):
    def _backend(prompt, schema, system_instruction):
        if calls is not None:
            calls.append((prompt, schema, system_instruction))
        return payload if isinstance(payload, str) else json.dumps(payload)
    return _backend


class TestSiteContentSchema:

    def test_required_fields(self):
        assert SITE_CONTENT_SCHEMA['required'] == ['title', 'slug', 'html', 'css', 'tailwind']
        assert SITE_CONTENT_SCHEMA['properties']['assets']['type'] == 'array'
        assert SITE_CONTENT_SCHEMA['properties']['seo']['type'] == 'object'

    def test_optional_fields_default(self):
        content = parse_site_content(json.dumps(MINIMAL))
        assert content.description == ''
        assert content.scripts == ''
        assert content.assets == ()
        assert content.seo.og_image == ''
        assert content.mobile_first is False
        assert content.author_notes == ''

    def test_full_payload(self):
        payload = {
            **MINIMAL,
            'tailwind': True,
            'assets': [{'path': '/assets/a.png', 'alt': 'A'}, {'path': '/assets/b.png'}],
            'seo': {'ogTitle': 'OG'},
            'mobileFirst': True,
            'notes': 'n',
            'previewInstructions': 'Scroll down',
            'unexpected': 'ignored',
        }
        content = parse_site_content(json.dumps(payload))
        assert content.tailwind_enabled is True
        assert [a.path for a in content.assets] == ['/assets/a.png', '/assets/b.png']
        assert content.assets[1].alt_text == ''
        assert content.seo.og_title == 'OG'
        assert content.preview_instructions == 'Scroll down'
        assert 'unexpected' not in content.to_dict()

    @pytest.mark.parametrize('missing', ['title', 'slug', 'html', 'css', 'tailwind'])
    def test_missing_required_field(self, missing):
        payload = {k: v for k, v in MINIMAL.items() if k != missing}
        with pytest.raises(GenerationError):
            parse_site_content(json.dumps(payload))

    def test_blank_markup_rejected(self):
        with pytest.raises(GenerationError):
            parse_site_content(json.dumps({**MINIMAL, 'html': '   '}))

    def test_tailwind_must_be_boolean(self):
        with pytest.raises(GenerationError):
            parse_site_content(json.dumps({**MINIMAL, 'tailwind': 'true'}))

    def test_invalid_json(self):
        with pytest.raises(GenerationError):
            parse_site_content('{"title": ')
        with pytest.raises(GenerationError):
            parse_site_content('["not", "an", "object"]')

    def test_markup_is_kept_verbatim(self):
        payload = {**MINIMAL, 'html': '\n  <div>  spaced  </div>\n', 'scripts': '  let x = 1;  '}
        content = parse_site_content(json.dumps(payload))
        assert content.html == payload['html']
        assert content.scripts == payload['scripts']

    def test_wire_form_round_trips(self):
        content = parse_site_content(json.dumps({**MINIMAL, 'assets': [{'path': '/assets/x.png', 'alt': 'X'}]}))
        assert SiteContent.from_dict(content.to_dict()) == content

    def test_null_optional_fields_take_defaults(self):
        payload = {
            **MINIMAL,
            'description': None,
            'scripts': None,
            'assets': None,
            'seo': None,
            'mobileFirst': None,
            'notes': None,
        }
        content = parse_site_content(json.dumps(payload))
        assert content.description == ''
        assert content.scripts == ''
        assert content.assets == ()
        assert content.seo.title_tag == ''
        assert content.mobile_first is False
        assert content.author_notes == ''

    def test_null_nested_fields_take_defaults(self):
        payload = {**MINIMAL, 'seo': {'ogTitle': None, 'titleTag': 'T'}, 'assets': [{'path': '/a.png', 'alt': None}]}
        content = parse_site_content(json.dumps(payload))
        assert content.seo.og_title == ''
        assert content.seo.title_tag == 'T'
        assert content.assets[0].alt_text == ''

    def test_null_required_field_is_reported_as_invalid(self):
        with pytest.raises(GenerationError) as excinfo:
            parse_site_content(json.dumps({**MINIMAL, 'css': None, 'description': None}))
        message = str(excinfo.value)
        assert 'css' in message
        assert 'description' not in message


class TestSiteGenerator:

    @pytest.mark.parametrize('prompt', ['', '   ', '\n\t', None])
    def test_empty_prompt_never_calls_backend(self, prompt):
        calls = []
        generator = SiteGenerator(backend_returning(MINIMAL, calls))
        with pytest.raises(EmptyPromptError):
            generator.generate(prompt)
        assert calls == []

    def test_empty_prompt_is_a_generation_error(self):
        with pytest.raises(GenerationError):
            SiteGenerator(backend_returning(MINIMAL)).generate('')

    def test_passes_schema_and_instruction(self):
        calls = []
        content = SiteGenerator(backend_returning(MINIMAL, calls)).generate('  Coffee shop landing page ')
        prompt, schema, instruction = calls[0]
        assert prompt == 'Coffee shop landing page'
        assert schema is SITE_CONTENT_SCHEMA
        assert 'tailwind' in instruction
        assert content.title == 'Bean There'
        assert isinstance(content.tailwind_enabled, bool)

    def test_backend_failure_is_wrapped(self):
        def _broken(prompt, schema, system_instruction):
            raise TimeoutError('upstream timed out')

        with pytest.raises(GenerationError) as excinfo:
            SiteGenerator(_broken).generate('Coffee')
        assert isinstance(excinfo.value.__cause__, TimeoutError)

    def test_malformed_result(self):
        with pytest.raises(GenerationError):
            SiteGenerator(backend_returning('not json at all')).generate('Coffee')
        with pytest.raises(GenerationError):
            SiteGenerator(backend_returning({'title': 'Only a title'})).generate('Coffee')


class TestAddressing:

    def test_encode(self):
        assert encode_address(7, 'abc') == 'p/7/abc'

    @pytest.mark.parametrize('raw', [
        'p/7/abc',
        '#p/7/abc',
        '/p/7/abc/',
        'https://launch.example.com/#p/7/abc',
        'https://launch.example.com/p/7/abc/',
    ])
    def test_parse_forms(self, raw):
        assert parse_address(raw) == Address('7', 'abc')

    @pytest.mark.parametrize('raw', [None, '', 'p/7', 'x/7/abc', 'p/7/abc/extra', 'p//abc', 'https://launch.example.com/'])
    def test_parse_rejects(self, raw):
        assert parse_address(raw) is None

    def test_round_trip(self):
        token = encode_address('42', '3f1c2d4e-0000-4000-8000-000000000001')
        assert parse_address(token) == ('42', '3f1c2d4e-0000-4000-8000-000000000001')

    def test_separator_not_allowed_in_ids(self):
        with pytest.raises(ValueError):
            encode_address('a/b', 'c')
        with pytest.raises(ValueError):
            encode_address('a', '')

    @pytest.mark.parametrize('owner_id, site_id', [('1', 'abc '), (' 1', 'abc'), ('1', '\tabc')])
    def test_ids_with_surrounding_whitespace_are_rejected(self, owner_id, site_id):
        with pytest.raises(ValueError):
            encode_address(owner_id, site_id)


class TestRendering:

    @pytest.fixture
    def content(self):
        return SiteContent.from_dict({
            **MINIMAL,
            'description': 'Coffee & cake',
            'html': '<main id="app"><p>Hi</p></main>',
            'scripts': 'document.getElementById("app").dataset.ready = "1";',
        })

    def test_body_and_style_contain_content_verbatim(self, content):
        mounted = render(content)
        assert content.html in mounted.body
        assert content.css in mounted.style
        assert f'<script>{content.scripts}</script>' in mounted.body

    def test_head_boilerplate(self, content):
        document = compile_document(content, asset_base_url='')
        assert document.startswith('<!DOCTYPE html>')
        assert '<meta charset="UTF-8">' in document
        assert 'name="viewport"' in document
        assert '<title>Bean There</title>' in document
        assert '<meta name="description" content="Coffee &amp; cake">' in document
        assert '<base ' not in document

    def test_tailwind_runtime_only_when_enabled(self, content, settings):
        settings.TAILWIND_RUNTIME_URL = 'https://cdn.tailwindcss.com'
        assert 'cdn.tailwindcss.com' not in compile_document(content)
        with_tailwind = SiteContent.from_dict({**content.to_dict(), 'tailwind': True})
        assert '<script src="https://cdn.tailwindcss.com"></script>' in compile_document(with_tailwind)

    def test_asset_base(self, content):
        document = compile_document(content, asset_base_url='https://cdn.example.com/assets/')
        assert '<base href="https://cdn.example.com/assets/">' in document

    def test_read_back_survives_marker_text_in_content(self):
        content = SiteContent.from_dict({
            **MINIMAL,
            'css': '/* </head> <body> </style> */ p { color: red; }',
            'html': '<pre>&lt;/head&gt;</pre><p>literal </body> and <body> text</p>',
        })
        mounted = render(content, PreviewMount(asset_base_url=''))
        assert content.css in mounted.style
        assert content.html in mounted.body
        assert content.css not in mounted.body
        assert mounted.document == compile_document(content, '')

    def test_deterministic(self, content):
        assert compile_document(content, '') == compile_document(content, '')

    def test_head_metadata_is_escaped(self):
        content = SiteContent.from_dict({**MINIMAL, 'title': '</title><script>alert(1)</script>'})
        document = compile_document(content, '')
        assert '<title>&lt;/title&gt;&lt;script&gt;alert(1)&lt;/script&gt;</title>' in document

    def test_iframe_never_grants_same_origin(self, content):
        mounted = render(content)
        assert 'allow-same-origin' not in SANDBOX_PERMISSIONS
        assert 'sandbox="allow-scripts allow-forms allow-popups' in mounted.iframe
        assert 'srcdoc="' in mounted.iframe
        assert '<main' not in mounted.iframe

    def test_remount_tears_down_previous_document(self, content):
        mount = PreviewMount(asset_base_url='')
        first = mount.mount(content)
        assert mount.mount(content) is first
        assert mount.teardown_count == 0

        other = SiteContent.from_dict({**content.to_dict(), 'html': '<p>Other</p>'})
        second = mount.mount(other)
        assert first.unmounted is True
        assert second is not first
        assert mount.current is second
        assert mount.teardown_count == 1

        mount.unmount()
        assert second.unmounted is True
        assert mount.current is None
