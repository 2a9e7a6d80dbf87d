"""Text generation: Anthropic Messages API over httpx."""

from __future__ import annotations

import logging
from typing import Protocol

import httpx

from goaltracker.config import settings
from goaltracker.errors import NetworkError, ParsingFailed, ProviderError, Unauthenticated

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    async def generate(self, prompt: str, max_tokens: int = 2048) -> str: ...


class AnthropicClient:
    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        api_key: str | None = None,
        model: str | None = None,
    ):
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout_s * 6)
        self._api_key = api_key if api_key is not None else settings.anthropic_api_key
        self._model = model or settings.anthropic_model

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate(self, prompt: str, max_tokens: int = 2048) -> str:
        """Single-turn completion. Returns the first text block."""
        if not self._api_key:
            raise Unauthenticated("Anthropic API key not configured")

        try:
            response = await self._client.post(
                settings.anthropic_base_url,
                headers={
                    "x-api-key": self._api_key,
                    "anthropic-version": settings.anthropic_version,
                    "content-type": "application/json",
                },
                json={
                    "model": self._model,
                    "max_tokens": max_tokens,
                    "messages": [{"role": "user", "content": prompt}],
                },
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Network error: {exc}") from exc

        if response.status_code != 200:
            try:
                detail = response.json()["error"]["message"]
            except (ValueError, KeyError, TypeError):
                detail = f"HTTP {response.status_code}"
            raise ProviderError(f"API error: {detail}")

        try:
            blocks = response.json()["content"]
        except (ValueError, KeyError, TypeError) as exc:
            raise ParsingFailed() from exc
        for block in blocks:
            if block.get("type") == "text" and block.get("text"):
                return block["text"]
        raise ParsingFailed("Received empty response")
