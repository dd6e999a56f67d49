"""Base generator implementing the Template Method pattern.

All backends share the same algorithm:
    generate() → _call_api()   ← only this differs per backend
               → empty-reply check → GenerationResult

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

There are no retries: a release run attempts each external call once and
falls back to the deterministic template when generation fails.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert technical writer who creates concise, specific release notes. "
    "Never use placeholders or generic text."
)


@dataclass(frozen=True)
class GenerationResult:
    success: bool
    text: str = ""
    error: str = ""


class BaseGenerator(ABC):
    MAX_TOKENS: int = 2048
    TEMPERATURE: float = 0.4

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def generate(self, prompt: str) -> GenerationResult:
        """Send one prompt and return the reply text, or a failed result.

        Never raises: SDK and transport errors become success=False so the
        synthesizer can switch to the template path.
        """
        name = self.__class__.__name__
        try:
            text = self._call_api(SYSTEM_PROMPT, prompt)
        except Exception as e:
            logger.warning("%s call failed: %s", name, e)
            return GenerationResult(success=False, error=str(e))

        text = (text or "").strip()
        if not text:
            logger.warning("%s returned an empty response", name)
            return GenerationResult(success=False, error="empty response")
        return GenerationResult(success=True, text=text)

    # ------------------------------------------------------------------ #
    # Abstract: implement in each backend                                  #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure; generate() turns the exception into a failed result.
        """
