from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

import httpx

from chefscript.services.errors import (
    ConfigurationError,
    InsufficientCreditsError,
    InvalidResponseError,
    ProviderAuthError,
    ProviderError,
    RateLimitedError,
)
from chefscript.services.http import error_message, new_async_client
from chefscript.services.scheduler import RateLimitedScheduler

logger = logging.getLogger(__name__)

RECRAFT_API_URL = "https://external.api.recraft.ai/v1"
DEFAULT_RESOLUTION = "1024x1024"
DEFAULT_STYLE = "realistic_image"


@dataclass(frozen=True)
class StyleImage:
    filename: str
    content: bytes
    content_type: str = "image/png"


class RecraftClient:
    """Image generation and style creation; every call goes through the shared scheduler."""

    def __init__(
        self,
        api_key: Optional[str],
        scheduler: RateLimitedScheduler,
        api_url: str = RECRAFT_API_URL,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self._scheduler = scheduler
        self._http = http

    def _require_key(self) -> str:
        if not self.api_key:
            raise ConfigurationError("Recraft API key is not configured")
        return self.api_key

    async def generate_image(
        self,
        prompt: str,
        *,
        style: Optional[str] = None,
        custom_style_id: Optional[str] = None,
        resolution: str = DEFAULT_RESOLUTION,
        num_images: int = 1,
    ) -> str:
        api_key = self._require_key()
        body: dict[str, object] = {
            "prompt": prompt,
            "resolution": resolution,
            "num_images": num_images,
        }
        if custom_style_id:
            body["style_id"] = custom_style_id
        else:
            body["style"] = style or DEFAULT_STYLE

        async def operation() -> str:
            response = await self._post(
                "/images/generations",
                api_key,
                json=body,
            )
            if response.is_error:
                _raise_for_status(response, "Image generation")
            try:
                url = response.json()["data"][0]["url"]
            except (ValueError, KeyError, IndexError, TypeError):
                url = None
            if not url:
                raise InvalidResponseError("No image URL in response")
            return str(url)

        return await self._scheduler.submit(operation, label="recraft.generate_image")

    async def create_style(self, base_style: str, images: Sequence[StyleImage]) -> str:
        api_key = self._require_key()
        if not images:
            raise ValueError("At least one reference image is required")
        files = [
            (f"file{index}", (image.filename, image.content, image.content_type))
            for index, image in enumerate(images, start=1)
        ]

        async def operation() -> str:
            response = await self._post("/styles", api_key, data={"style": base_style}, files=files)
            if response.is_error:
                _raise_for_status(response, "Style creation")
            try:
                style_id = response.json().get("id")
            except (ValueError, AttributeError):
                style_id = None
            if not style_id:
                raise InvalidResponseError("No style ID in response")
            return str(style_id)

        return await self._scheduler.submit(operation, label="recraft.create_style")

    async def _post(self, path: str, api_key: str, **kwargs: object) -> httpx.Response:
        url = f"{self.api_url}{path}"
        http = self._http or new_async_client()
        try:
            return await http.post(url, headers={"Authorization": f"Bearer {api_key}"}, **kwargs)  # type: ignore[arg-type]
        except httpx.HTTPError as exc:
            raise ProviderError(f"Recraft request failed: {exc}") from exc
        finally:
            if self._http is None:
                await http.aclose()


def _raise_for_status(response: httpx.Response, operation: str) -> None:
    message = error_message(response)
    status = response.status_code
    logger.error("recraft.request_failed operation=%s status=%s message=%s", operation, status, message)
    if status == 429:
        raise RateLimitedError("Service is busy. Please try again in a few moments.")
    if status == 401:
        raise ProviderAuthError(f"{operation} service is temporarily unavailable.")
    if status == 402 or "not_enough_credits" in message or "not_enough_credits" in response.text:
        raise InsufficientCreditsError(
            "The image generation service needs more credits. Please try again later."
        )
    raise ProviderError(f"{operation} failed: {message}", status_code=status)
