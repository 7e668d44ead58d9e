"""
Tests for the generative backend adapters.
"""
import json
from types import SimpleNamespace

import pytest

from ai import providers
from sites.content import SITE_CONTENT_SCHEMA, SYSTEM_INSTRUCTION


class FakeOpenAI:
    """Stands in for openai.OpenAI; records the request it receives."""
    last_request = None

    def __init__(self, api_key=None, **kwargs):
        self.api_key = api_key
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        FakeOpenAI.last_request = kwargs
        message = SimpleNamespace(content='{"title": "T"}', refusal=None)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class FakeAnthropic:
    last_request = None

    def __init__(self, api_key=None, **kwargs):
        self.messages = SimpleNamespace(create=self._create)

    def _create(self, **kwargs):
        FakeAnthropic.last_request = kwargs
        block = SimpleNamespace(type='tool_use', input={'title': 'T', 'tailwind': True})
        return SimpleNamespace(content=[block])


def test_strict_schema_requires_every_property():
    strict = providers.strict_schema(SITE_CONTENT_SCHEMA)

    assert set(strict['required']) == set(SITE_CONTENT_SCHEMA['properties'])
    assert strict['additionalProperties'] is False
    assert strict['properties']['seo']['additionalProperties'] is False
    assert strict['properties']['assets']['items']['required'] == ['path', 'alt']
    # The shared descriptor is left untouched
    assert SITE_CONTENT_SCHEMA['required'] == ['title', 'slug', 'html', 'css', 'tailwind']
    assert 'additionalProperties' not in SITE_CONTENT_SCHEMA


def test_openai_request_is_schema_constrained(settings, monkeypatch):
    settings.AI_PROVIDER = 'openai'
    settings.OPENAI_API_KEY = 'sk-test'
    monkeypatch.setattr('openai.OpenAI', FakeOpenAI)

    text = providers.generate_structured('Coffee shop', SITE_CONTENT_SCHEMA, SYSTEM_INSTRUCTION)

    assert text == '{"title": "T"}'
    request = FakeOpenAI.last_request
    assert request['response_format']['type'] == 'json_schema'
    assert request['response_format']['json_schema']['strict'] is True
    assert request['messages'][0] == {'role': 'system', 'content': SYSTEM_INSTRUCTION}
    assert request['messages'][1]['content'] == 'Create landing page for: "Coffee shop"'


def test_anthropic_request_uses_forced_tool(settings, monkeypatch):
    settings.AI_PROVIDER = 'anthropic'
    settings.ANTHROPIC_API_KEY = 'sk-ant-test'
    monkeypatch.setattr('anthropic.Anthropic', FakeAnthropic)

    text = providers.generate_structured('Coffee shop', SITE_CONTENT_SCHEMA, SYSTEM_INSTRUCTION)

    assert json.loads(text) == {'title': 'T', 'tailwind': True}
    request = FakeAnthropic.last_request
    assert request['tool_choice'] == {'type': 'tool', 'name': providers.SCHEMA_NAME}
    assert request['tools'][0]['input_schema'] is SITE_CONTENT_SCHEMA


@pytest.mark.parametrize('provider, key_setting', [
    ('openai', 'OPENAI_API_KEY'),
    ('anthropic', 'ANTHROPIC_API_KEY'),
])
def test_missing_key_is_reported(settings, provider, key_setting):
    settings.AI_PROVIDER = provider
    setattr(settings, key_setting, '')

    with pytest.raises(providers.ProviderNotConfigured):
        providers.generate_structured('Coffee', SITE_CONTENT_SCHEMA, SYSTEM_INSTRUCTION)


def test_sdk_errors_are_wrapped(settings, monkeypatch):
    settings.AI_PROVIDER = 'openai'
    settings.OPENAI_API_KEY = 'sk-test'

    class Exploding(FakeOpenAI):
        def _create(self, **kwargs):
            raise ConnectionError('network down')

    monkeypatch.setattr('openai.OpenAI', Exploding)

    with pytest.raises(providers.ProviderError) as excinfo:
        providers.generate_structured('Coffee', SITE_CONTENT_SCHEMA, SYSTEM_INSTRUCTION)
    assert isinstance(excinfo.value.__cause__, ConnectionError)
