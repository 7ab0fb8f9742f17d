from __future__ import annotations

from typing import Optional

import httpx

DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


def error_message(response: httpx.Response, default: Optional[str] = None) -> str:
    """Pull the most specific message out of a provider error body."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        for key in ("message", "detail", "code"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value

    text = response.text.strip() if response.text else ""
    return text or default or f"HTTP {response.status_code}"


def new_async_client(timeout: httpx.Timeout | float = DEFAULT_TIMEOUT) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, headers={"X-Client-Info": "chefscript-api"})
