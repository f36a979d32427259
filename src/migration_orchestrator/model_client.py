"""Generative model clients used by the stage agents."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx

from src.migration_orchestrator.config import ModelConfig
from src.migration_orchestrator.exceptions import (
    MalformedResponseError,
    ProviderError,
    TransientProviderError,
)
from src.migration_orchestrator.invoker import TRANSIENT_STATUS_CODES

logger = logging.getLogger(__name__)


class ModelClient(Protocol):
    """Anything that turns a prompt into model text."""

    async def generate(self, prompt: str, temperature: float) -> str: ...


class GeminiClient:
    """Client for the Generative Language ``generateContent`` REST endpoint.

    HTTP 429 and 503 raise :class:`TransientProviderError`; every other
    HTTP or transport failure (timeouts included) raises
    :class:`ProviderError`.  A response without candidate text raises
    :class:`MalformedResponseError`.
    """

    def __init__(
        self,
        api_key: str,
        config: ModelConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self.config = config or ModelConfig()
        self._transport = transport

    @property
    def endpoint(self) -> str:
        base = self.config.api_base.rstrip("/")
        return f"{base}/models/{self.config.name}:generateContent"

    def _payload(self, prompt: str, temperature: float) -> dict[str, Any]:
        return {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": temperature,
                "maxOutputTokens": self.config.max_output_tokens,
            },
        }

    async def generate(self, prompt: str, temperature: float) -> str:
        """Send *prompt* and return the concatenated candidate text."""
        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    self.endpoint,
                    json=self._payload(prompt, temperature),
                    headers={"x-goog-api-key": self._api_key},
                )
        except httpx.TimeoutException as exc:
            raise ProviderError(
                f"Model request timed out after {self.config.timeout}s"
            ) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"Model request failed: {exc}") from exc

        if resp.status_code in TRANSIENT_STATUS_CODES:
            raise TransientProviderError(
                f"Model provider returned HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        if resp.status_code >= 400:
            raise ProviderError(
                f"Model provider returned HTTP {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        return self._candidate_text(resp)

    @staticmethod
    def _candidate_text(resp: httpx.Response) -> str:
        try:
            body = resp.json()
            parts = body["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (ValueError, KeyError, IndexError, TypeError, AttributeError) as exc:
            raise MalformedResponseError(
                f"Unexpected model response envelope: {exc}", raw=resp.text
            ) from exc
        if not text:
            raise MalformedResponseError("Model response has no text", raw=resp.text)
        return text


class UnconfiguredModelClient:
    """Stand-in used when no API key is set; every call fails fast."""

    async def generate(self, prompt: str, temperature: float) -> str:
        raise ProviderError("No model API key configured")


def create_model_client(
    api_key: str | None, config: ModelConfig | None = None
) -> ModelClient:
    """Return a :class:`GeminiClient`, or the unconfigured stand-in without a key."""
    if not api_key:
        logger.warning("GEMINI_API_KEY is not set; stages will return simulated artifacts")
        return UnconfiguredModelClient()
    return GeminiClient(api_key, config)
