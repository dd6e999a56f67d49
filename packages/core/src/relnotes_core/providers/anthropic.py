"""Claude through the Anthropic Messages API."""

from __future__ import annotations

import logging

from relnotes_core.providers.base import BaseGenerator

logger = logging.getLogger(__name__)


class AnthropicGenerator(BaseGenerator):
    MODEL = "claude-sonnet-4-20250514"

    def __init__(self, api_key: str, model: str | None = None):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this backend. Install it with: pip install anthropic"
            )
        self.model = model or self.MODEL
        self.client = Anthropic(api_key=api_key)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        # __init__ has already checked that anthropic is importable.
        from anthropic.types import TextBlock

        logger.debug("Requesting release notes from %s", self.model)
        response = self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.TEMPERATURE,
            max_tokens=self.MAX_TOKENS,
        )
        if response.stop_reason == "max_tokens":
            logger.warning("Reply hit the %d token limit; closing markers may be missing", self.MAX_TOKENS)
        return "".join(block.text for block in response.content if isinstance(block, TextBlock))
