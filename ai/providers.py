"""
Generative backend integration: OpenAI (primary) or Claude, selected by AI_PROVIDER.

Both providers are called with a response schema constraint so the output is
structurally guaranteed JSON, rather than parsed out of free-form prose.
"""
import copy
import json
import logging

from django.conf import settings

logger = logging.getLogger(__name__)

SCHEMA_NAME = 'site_content'


class ProviderError(Exception):
    """The generative backend call failed (network, quota, timeout, refusal)."""


class ProviderNotConfigured(ProviderError):
    pass


def _build_user_message(prompt: str) -> str:
    return f'Create landing page for: "{prompt}"'


def generate_structured(prompt: str, schema: dict, system_instruction: str) -> str:
    """
    Issue one constrained generation request and return the raw JSON text.

    No retries: any failure is raised as ProviderError for the caller to report.
    """
    provider = getattr(settings, 'AI_PROVIDER', 'openai')
    user_message = _build_user_message(prompt)

    if provider == 'anthropic':
        api_key = getattr(settings, 'ANTHROPIC_API_KEY', '')
        if not api_key:
            raise ProviderNotConfigured("No AI provider configured. Set ANTHROPIC_API_KEY.")
        call = _call_claude
    elif provider == 'openai':
        api_key = getattr(settings, 'OPENAI_API_KEY', '')
        if not api_key:
            raise ProviderNotConfigured("No AI provider configured. Set OPENAI_API_KEY.")
        call = _call_openai
    else:
        raise ProviderNotConfigured(f"Unknown AI provider: {provider}")

    try:
        return call(api_key, system_instruction, user_message, schema)
    except ProviderError:
        raise
    except Exception as e:
        logger.error(f"{provider} call failed: {e}")
        raise ProviderError(str(e)) from e


def strict_schema(schema: dict) -> dict:
    """
    OpenAI strict structured outputs need every property listed as required
    and additionalProperties disabled on every object.
    """
    strict = copy.deepcopy(schema)

    def _walk(node):
        if node.get('type') == 'object':
            props = node.get('properties', {})
            node['required'] = list(props.keys())
            node['additionalProperties'] = False
            for child in props.values():
                _walk(child)
        elif node.get('type') == 'array' and isinstance(node.get('items'), dict):
            _walk(node['items'])

    _walk(strict)
    return strict


def _client_kwargs(api_key: str) -> dict:
    kwargs = {'api_key': api_key}
    timeout = getattr(settings, 'AI_REQUEST_TIMEOUT', None)
    if timeout:
        kwargs['timeout'] = timeout
    return kwargs


def _call_openai(api_key: str, system_instruction: str, user_message: str, schema: dict) -> str:
    import openai
    client = openai.OpenAI(**_client_kwargs(api_key))
    response = client.chat.completions.create(
        model=settings.OPENAI_MODEL,
        temperature=settings.AI_TEMPERATURE,
        max_tokens=settings.AI_MAX_TOKENS,
        response_format={
            'type': 'json_schema',
            'json_schema': {
                'name': SCHEMA_NAME,
                'strict': True,
                'schema': strict_schema(schema),
            },
        },
        messages=[
            {"role": "system", "content": system_instruction},
            {"role": "user", "content": user_message},
        ],
    )
    message = response.choices[0].message
    if getattr(message, 'refusal', None):
        raise ProviderError(f"Model refused the request: {message.refusal}")
    return message.content or ''


def _call_claude(api_key: str, system_instruction: str, user_message: str, schema: dict) -> str:
    import anthropic
    client = anthropic.Anthropic(**_client_kwargs(api_key))
    # A forced tool call is Claude's schema-constrained output mode
    message = client.messages.create(
        model=settings.ANTHROPIC_MODEL,
        max_tokens=settings.AI_MAX_TOKENS,
        temperature=settings.AI_TEMPERATURE,
        system=system_instruction,
        tools=[{
            'name': SCHEMA_NAME,
            'description': 'Return the generated landing page.',
            'input_schema': schema,
        }],
        tool_choice={'type': 'tool', 'name': SCHEMA_NAME},
        messages=[{"role": "user", "content": user_message}],
    )
    for block in message.content:
        if block.type == 'tool_use':
            return json.dumps(block.input)
    raise ProviderError("Claude returned no structured content")
