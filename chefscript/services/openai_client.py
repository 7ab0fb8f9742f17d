from __future__ import annotations

import logging
from typing import Optional

import httpx

from chefscript.services.errors import (
    ConfigurationError,
    InsufficientCreditsError,
    InvalidResponseError,
    NetworkTimeoutError,
    ProviderAuthError,
    ProviderError,
    RateLimitedError,
)
from chefscript.services.http import error_message, new_async_client

logger = logging.getLogger(__name__)

OPENAI_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4-turbo-preview"


class OpenAIClient:
    def __init__(
        self,
        api_key: Optional[str],
        model_name: str = DEFAULT_MODEL,
        api_url: str = OPENAI_API_URL,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.model_name = model_name
        self.api_url = api_url
        self._http = http

    def _require_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("OpenAI API key is not configured")
        return self.api_key

    async def chat(
        self,
        messages: list[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> str:
        api_key = self._require_key()
        payload: dict[str, object] = {
            "model": self.model_name,
            "messages": messages,
            "temperature": temperature,
        }
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens

        headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}
        http = self._http or new_async_client()
        try:
            response = await http.post(self.api_url, json=payload, headers=headers)
        except httpx.TimeoutException as exc:
            raise NetworkTimeoutError(self.api_url, _timeout_of(http)) from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"OpenAI API error: {exc}") from exc
        finally:
            if self._http is None:
                await http.aclose()

        if response.is_error:
            _raise_for_status(response)

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise InvalidResponseError("Invalid response from OpenAI")
        return str(content)


def _timeout_of(http: httpx.AsyncClient) -> float:
    return float(http.timeout.read or 0.0)


def _raise_for_status(response: httpx.Response) -> None:
    message = error_message(response)
    status = response.status_code
    logger.error("openai.request_failed status=%s message=%s", status, message)
    if status == 401:
        raise ProviderAuthError(f"OpenAI API error: {message}")
    if status == 429:
        if "quota" in message.lower():
            raise InsufficientCreditsError(f"OpenAI API error: {message}")
        raise RateLimitedError("Service is busy. Please try again in a few moments.")
    if status == 402:
        raise InsufficientCreditsError(f"OpenAI API error: {message}")
    raise ProviderError(f"OpenAI API error: {message}", status_code=status)
