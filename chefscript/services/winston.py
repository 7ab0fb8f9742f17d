from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx

from chefscript.services.errors import ConfigurationError

logger = logging.getLogger(__name__)

WINSTON_API_URL = "https://api.gowinston.ai/v2/plagiarism"


async def forward_plagiarism_request(
    text: str,
    excluded_urls: Optional[Sequence[str]],
    api_key: Optional[str],
    api_url: str = WINSTON_API_URL,
    timeout: float = 180.0,
    http: Optional[httpx.AsyncClient] = None,
) -> Any:
    """
    Send a plagiarism check to the provider with the server-side key.
    httpx errors propagate so the proxy route can map them to status codes.
    """
    if not api_key:
        raise ConfigurationError("Winston API key is not configured")

    body = {
        "text": text,
        "excludedUrls": [url for url in (excluded_urls or []) if url and url.strip()],
    }
    headers = {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}

    client = http or httpx.AsyncClient(timeout=timeout)
    try:
        response = await client.post(api_url, json=body, headers=headers, timeout=timeout)
        response.raise_for_status()
        return response.json()
    finally:
        if http is None:
            await client.aclose()
