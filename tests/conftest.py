"""Shared test fixtures and dummy classes."""

from __future__ import annotations

import httpx

from fairfence_pricing.edge_functions import EdgeFunctionClient
from fairfence_pricing.models.settings import EdgeFunctionConfig, Settings

BASE_URL = "https://example.supabase.co"


def make_settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "SUPABASE_URL": BASE_URL,
        "SUPABASE_ANON_KEY": "anon-key",
        "SUPABASE_SERVICE_ROLE_KEY": None,
        "PRICING_SOURCE": "edge",
        "HOST": "127.0.0.1",
        "PORT": 5000,
    }
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedHandler:
    """MockTransport handler replaying a list of responses or exceptions."""

    def __init__(self, script: list[object]) -> None:
        self.script = list(script)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        step = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(step, Exception):
            raise step
        if isinstance(step, str):
            return httpx.Response(200, text=step)
        if isinstance(step, int):
            return httpx.Response(step, text=f"status {step}")
        return httpx.Response(200, json=step)


def make_client(
    handler, sleep: RecordingSleep | None = None, rand=lambda: 0.0
) -> EdgeFunctionClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return EdgeFunctionClient(
        EdgeFunctionConfig(base_url=BASE_URL, token="anon-key"),
        http_client=http,
        sleep=sleep or RecordingSleep(),
        rand=rand,
    )


class DummyResponse:
    """Dummy requests response for testing."""

    def __init__(self, data: object, status: int = 200, text: str = "") -> None:
        self._data = data
        self.status_code = status
        self.text = text or str(data)
        self.ok = 200 <= status < 300

    def json(self) -> object:
        return self._data
