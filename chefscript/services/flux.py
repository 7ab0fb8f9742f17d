from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional

import httpx

from chefscript.services.clock import Clock, SystemClock
from chefscript.services.errors import (
    ConfigurationError,
    ContentModeratedError,
    ImageGenerationTimeoutError,
    InsufficientCreditsError,
    InvalidResponseError,
    ProviderAuthError,
    ProviderError,
    RateLimitedError,
    TaskNotFoundError,
)
from chefscript.services.http import error_message, new_async_client

logger = logging.getLogger(__name__)

FLUX_API_URL = "https://api.bfl.ml/v1"
POLLING_INTERVAL_SECONDS = 0.5
MAX_POLLING_ATTEMPTS = 120  # one minute at 500 ms
NEGATIVE_PROMPT = "blurry, low-quality, cartoon, unrealistic, watermark, text, signature"


class FluxStatus(str, Enum):
    TASK_NOT_FOUND = "Task not found"
    PENDING = "Pending"
    REQUEST_MODERATED = "Request Moderated"
    CONTENT_MODERATED = "Content Moderated"
    READY = "Ready"
    ERROR = "Error"


class FluxClient:
    def __init__(
        self,
        api_key: Optional[str],
        api_url: str = FLUX_API_URL,
        http: Optional[httpx.AsyncClient] = None,
        clock: Optional[Clock] = None,
        poll_interval: float = POLLING_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLLING_ATTEMPTS,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self._http = http
        self._clock = clock or SystemClock()

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise ConfigurationError("Flux API key is not configured")
        return {"X-Key": self.api_key, "accept": "application/json"}

    async def generate_image(self, prompt: str, width: int = 1024, height: int = 1024) -> str:
        headers = self._headers()
        logger.info("flux.submit prompt=%r", prompt[:80])

        http = self._http or new_async_client()
        try:
            response = await self._request(
                http,
                "POST",
                f"{self.api_url}/flux-pro-1.1",
                headers=headers,
                json={
                    "prompt": prompt,
                    "negative_prompt": NEGATIVE_PROMPT,
                    "width": width,
                    "height": height,
                },
            )
            task_id = _json(response).get("id")
            if not task_id:
                raise InvalidResponseError("No task ID received from Flux API")
            logger.info("flux.task_created id=%s", task_id)
            return await self.wait_for_result(str(task_id), http=http)
        finally:
            if self._http is None:
                await http.aclose()

    async def wait_for_result(self, task_id: str, http: Optional[httpx.AsyncClient] = None) -> str:
        """
        Poll until the task is ready. Raises ImageGenerationTimeoutError when the
        attempt ceiling is reached; every other failure is a provider error.
        """
        headers = self._headers()
        client = http or self._http
        if client is None:
            async with new_async_client() as owned:
                return await self.wait_for_result(task_id, http=owned)

        for attempt in range(1, self.max_attempts + 1):
            response = await self._request(
                client,
                "GET",
                f"{self.api_url}/get_result",
                headers=headers,
                params={"id": task_id},
            )
            payload = _json(response)
            raw_status = payload.get("status")
            result = payload.get("result") if isinstance(payload.get("result"), dict) else {}
            logger.debug("flux.poll id=%s attempt=%s status=%s", task_id, attempt, raw_status)

            try:
                status = FluxStatus(raw_status)
            except ValueError:
                raise ProviderError(f"Unexpected status: {raw_status}") from None

            if status is FluxStatus.READY:
                sample = result.get("sample")
                if not sample:
                    raise InvalidResponseError("No image URL in completed response")
                logger.info("flux.ready id=%s attempts=%s", task_id, attempt)
                return str(sample)
            if status is FluxStatus.PENDING:
                await self._clock.sleep(self.poll_interval)
                continue
            if status is FluxStatus.ERROR:
                raise ProviderError(result.get("error") or "Image generation failed")
            if status in (FluxStatus.REQUEST_MODERATED, FluxStatus.CONTENT_MODERATED):
                raise ContentModeratedError("Content was flagged by moderation system")
            raise TaskNotFoundError("Image generation task not found")

        logger.error("flux.timeout id=%s attempts=%s", task_id, self.max_attempts)
        raise ImageGenerationTimeoutError(self.max_attempts, self.poll_interval)

    async def _request(self, http: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await http.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise ProviderError(f"Flux API error: {exc}") from exc
        if response.is_error:
            _raise_for_status(response)
        return response


def _json(response: httpx.Response) -> dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise InvalidResponseError("Flux API returned a non-JSON response") from exc
    return payload if isinstance(payload, dict) else {}


def _raise_for_status(response: httpx.Response) -> None:
    status = response.status_code
    message = error_message(response)
    logger.error("flux.request_failed status=%s message=%s", status, message)
    if status == 401:
        raise ProviderAuthError("Invalid Flux API key")
    if status == 429:
        raise RateLimitedError(
            "You have reached the maximum number of active tasks (24). "
            "Please wait for some tasks to complete."
        )
    if status == 402:
        raise InsufficientCreditsError("Insufficient credits. Please add credits to your Flux account.")
    raise ProviderError(f"Flux API error: {message}", status_code=status)
