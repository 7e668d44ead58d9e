"""
Site generation: prompt in, validated SiteContent out.
"""
import logging
from typing import Callable, Optional

from ai import providers

from .content import SITE_CONTENT_SCHEMA, SYSTEM_INSTRUCTION, SiteContent, parse_site_content
from .exceptions import EmptyPromptError, GenerationError

logger = logging.getLogger(__name__)

Backend = Callable[[str, dict, str], str]


class SiteGenerator:
    """
    Issues a schema-constrained generation request and validates the result.

    The backend is any callable taking (prompt, schema, system_instruction)
    and returning JSON text; it defaults to the configured AI provider.
    """

    def __init__(self, backend: Optional[Backend] = None):
        self._backend = backend

    def _call_backend(self, prompt: str) -> str:
        if self._backend is not None:
            return self._backend(prompt, SITE_CONTENT_SCHEMA, SYSTEM_INSTRUCTION)
        return providers.generate_structured(prompt, SITE_CONTENT_SCHEMA, SYSTEM_INSTRUCTION)

    def generate(self, prompt: str) -> SiteContent:
        if prompt is None or not str(prompt).strip():
            raise EmptyPromptError()

        prompt = prompt.strip()
        logger.info(f"Generating site for prompt ({len(prompt)} chars)")
        try:
            json_text = self._call_backend(prompt)
        except GenerationError:
            raise
        except Exception as e:
            logger.error(f"Site generation failed: {e}")
            raise GenerationError(f"Generation backend failed: {e}") from e

        try:
            return parse_site_content(json_text)
        except GenerationError as e:
            logger.warning(f"Discarding malformed generation result: {e}")
            raise