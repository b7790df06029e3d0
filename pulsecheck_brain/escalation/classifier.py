"""
Safety classifier: one LLM round-trip per message.

Wraps an LLMService with the classification parameters (low temperature,
JSON mode, bounded tokens) and a hard timeout. All failure modes surface
as ClassifierError so callers handle a single exception type.
"""

import asyncio
import logging
from typing import Optional

import httpx

from ..config import ClassifierConfig, settings
from ..services.llm.openai import OpenAICompatLLM
from ..services.protocols import LLMService, Message
from .exceptions import ClassifierError
from .prompts import ClassificationPrompt

logger = logging.getLogger("pulsecheck.escalation.classifier")


class EscalationClassifier:
    """Calls the classifier model and returns its raw content."""

    def __init__(
        self,
        llm: Optional[LLMService] = None,
        config: Optional[ClassifierConfig] = None,
    ) -> None:
        self._config = config or settings.classifier
        self._llm = llm

    def _get_llm(self) -> LLMService:
        if self._llm is None:
            self._llm = OpenAICompatLLM(
                model=self._config.model,
                api_key=self._config.api_key,
                base_url=self._config.base_url,
                timeout=self._config.request_timeout_seconds,
            )
        if not self._llm.is_loaded:
            try:
                self._llm.load()
            except ValueError as e:
                raise ClassifierError(str(e), cause=e) from e
        return self._llm

    async def classify(self, prompt: ClassificationPrompt) -> str:
        """
        Send the prompt and return the raw (expected JSON) content.

        Raises:
            ClassifierError: missing API key, transport error, non-2xx,
                timeout, or empty content
        """
        llm = self._get_llm()
        messages = [
            Message(role="system", content=prompt.system),
            Message(role="user", content=prompt.user),
        ]

        try:
            content = await asyncio.wait_for(
                llm.chat_async(
                    messages,
                    max_tokens=self._config.max_tokens,
                    temperature=self._config.temperature,
                    json_mode=True,
                ),
                timeout=self._config.hard_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise ClassifierError(
                f"Classifier timed out after {self._config.hard_timeout_seconds}s", cause=e
            ) from e
        except httpx.HTTPStatusError as e:
            raise ClassifierError(
                f"Classifier returned HTTP {e.response.status_code}", cause=e
            ) from e
        except httpx.HTTPError as e:
            raise ClassifierError(f"Classifier request failed: {e}", cause=e) from e
        except RuntimeError as e:
            raise ClassifierError(str(e), cause=e) from e

        if not content:
            raise ClassifierError("Classifier returned empty content")

        return content

    async def aclose(self) -> None:
        if self._llm is not None and self._llm.is_loaded:
            await self._llm.aclose()
