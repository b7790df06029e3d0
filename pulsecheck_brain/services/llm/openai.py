"""
OpenAI-compatible LLM Backend.

Talks to any /chat/completions endpoint that follows the OpenAI schema
(OpenAI itself, OpenRouter, vLLM, ...). Used by the safety classifier.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional

import httpx

from ..protocols import Message, ModelInfo

logger = logging.getLogger("pulsecheck.llm.openai")


class OpenAICompatLLM:
    """Async LLM service using an OpenAI-compatible chat completions API."""

    CAPABILITIES = ["text", "chat", "json_mode"]

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.name = "openai-compat"
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._loaded = False

    @property
    def model_info(self) -> ModelInfo:
        return ModelInfo(
            name=self.name,
            model_id=self.model,
            is_loaded=self.is_loaded,
            device="cloud",
            capabilities=self.CAPABILITIES,
        )

    def load(self) -> None:
        if not self.api_key:
            raise ValueError("Classifier API key not set. Set OPENAI_API_KEY or PULSE_CLASSIFIER_API_KEY.")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers=headers,
            transport=self._transport,
        )
        self._loaded = True
        logger.info("OpenAI-compatible LLM initialized: model=%s", self.model)

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None
        self._loaded = False
        logger.info("OpenAI-compatible LLM unloaded")

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @staticmethod
    def _convert_messages(messages: list[Message]) -> list[dict]:
        return [{"role": msg.role, "content": msg.content} for msg in messages]

    async def chat_async(
        self,
        messages: list[Message],
        max_tokens: int = 256,
        temperature: float = 0.7,
        json_mode: bool = False,
        **kwargs: Any,
    ) -> str:
        """
        Run one chat completion and return the assistant content.

        Raises:
            RuntimeError: if the client is not loaded
            httpx.HTTPError: on transport failure or non-2xx status
        """
        if not self._client:
            raise RuntimeError("OpenAI-compatible LLM not loaded")

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": self._convert_messages(messages),
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error("OpenAI-compatible async chat error: %s", e)
            raise

        choices = data.get("choices") or [{}]
        message = choices[0].get("message") or {}
        content = (message.get("content") or "").strip()

        logger.debug(
            "OpenAI-compatible chat: model=%s tokens=%s content_len=%d",
            self.model, data.get("usage", {}), len(content),
        )
        return content
