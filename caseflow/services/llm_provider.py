"""Text generation client for an OpenAI-compatible chat completions API."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..core.config import Settings, get_settings
from .errors import ProviderError

logger = logging.getLogger(__name__)


@dataclass
class TextGenerationOptions:
    """Per-call generation options. Unset fields fall back to settings."""

    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    system_prompt: str | None = None


class LLMProvider:
    """
    Thin wrapper around ``POST {base_url}/chat/completions``.

    Failures are never retried: generation is slow, costs money and is
    triggered by a user who can simply ask again.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings or get_settings()
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return self._settings.llm_enabled

    async def generate(self, prompt: str, options: TextGenerationOptions | None = None) -> str:
        """Send ``prompt`` and return the first choice's message content."""
        if not self.is_configured:
            raise ProviderError("Text generation is not configured (LLM_API_KEY is missing)")

        options = options or TextGenerationOptions()
        payload = self._build_payload(prompt, options)
        url = f"{self._settings.llm_api_base_url.rstrip('/')}/chat/completions"

        try:
            async with httpx.AsyncClient(
                timeout=self._settings.llm_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    url,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self._settings.llm_api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.HTTPError as e:
            logger.error(f"Text generation request failed: {e}")
            raise ProviderError(f"Text generation request failed: {e}") from e

        if response.status_code != 200:
            message = self._error_message(response)
            logger.error(f"Text generation API error: {response.status_code} - {message}")
            raise ProviderError(message)

        return self._parse_response(response)

    def _build_payload(self, prompt: str, options: TextGenerationOptions) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        if options.system_prompt:
            messages.append({"role": "system", "content": options.system_prompt})
        messages.append({"role": "user", "content": prompt})

        return {
            "model": options.model or self._settings.llm_model,
            "messages": messages,
            "temperature": (
                options.temperature
                if options.temperature is not None
                else self._settings.llm_temperature
            ),
            "max_tokens": options.max_tokens or self._settings.llm_max_tokens,
        }

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Provider's own error message when the body carries one."""
        try:
            data = response.json()
        except ValueError:
            data = None

        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str) and error:
                return error
        return f"Text generation API error: {response.status_code}"

    @staticmethod
    def _parse_response(response: httpx.Response) -> str:
        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected text generation response: {e}")
            raise ProviderError("Text generation returned an unexpected response") from e

        if not content or not str(content).strip():
            raise ProviderError("Text generation returned no content")
        return str(content)
