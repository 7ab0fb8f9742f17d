from __future__ import annotations

import asyncio
import json
from typing import Callable

import httpx
import pytest

from chefscript.services.errors import (
    ConfigurationError,
    ContentModeratedError,
    ImageGenerationTimeoutError,
    ProviderAuthError,
    ProviderError,
    RateLimitedError,
)
from chefscript.services.flux import FluxClient


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.now += seconds


def _flux_handler(statuses: list[dict]) -> Callable[[httpx.Request], httpx.Response]:
    polls = iter(statuses)

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            assert request.headers["X-Key"] == "flux-key"
            body = json.loads(request.content)
            assert body["width"] == 1024
            assert "watermark" in body["negative_prompt"]
            return httpx.Response(200, json={"id": "task-1"})
        assert request.url.params["id"] == "task-1"
        return httpx.Response(200, json=next(polls))

    return handler


def _generate(handler: Callable[[httpx.Request], httpx.Response], clock: FakeClock, **kwargs) -> str:
    async def scenario() -> str:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = FluxClient("flux-key", api_url="https://flux.test/v1", http=http, clock=clock, **kwargs)
            return await client.generate_image("a bowl of soup")

    return asyncio.run(scenario())


class TestFluxClient:
    def test_ready_after_pending(self) -> None:
        clock = FakeClock()
        handler = _flux_handler([
            {"status": "Pending"},
            {"status": "Pending"},
            {"status": "Ready", "result": {"sample": "https://cdn.test/soup.jpg"}},
        ])

        assert _generate(handler, clock) == "https://cdn.test/soup.jpg"
        assert clock.now == pytest.approx(1.0)

    def test_times_out_after_attempt_ceiling(self) -> None:
        clock = FakeClock()
        handler = _flux_handler([{"status": "Pending"}] * 120)

        with pytest.raises(ImageGenerationTimeoutError) as exc_info:
            _generate(handler, clock)

        assert str(exc_info.value) == "Timeout: Image generation took too long"
        assert not isinstance(exc_info.value, ProviderError)
        assert clock.now == pytest.approx(60.0)

    def test_moderated(self) -> None:
        handler = _flux_handler([{"status": "Content Moderated"}])
        with pytest.raises(ContentModeratedError):
            _generate(handler, FakeClock())

    def test_error_status_uses_result_message(self) -> None:
        handler = _flux_handler([{"status": "Error", "result": {"error": "GPU exploded"}}])
        with pytest.raises(ProviderError, match="GPU exploded"):
            _generate(handler, FakeClock())

    def test_unauthorized(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"detail": "bad key"})

        with pytest.raises(ProviderAuthError):
            _generate(handler, FakeClock())

    def test_too_many_tasks(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"detail": "slow down"})

        with pytest.raises(RateLimitedError, match="24"):
            _generate(handler, FakeClock())

    def test_missing_key(self) -> None:
        client = FluxClient(None)
        with pytest.raises(ConfigurationError):
            asyncio.run(client.generate_image("soup"))
