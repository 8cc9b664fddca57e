"""Async client for Supabase Edge Functions with retry and backoff."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable

import httpx

from .errors import EdgeFunctionError, ErrorKind, is_retryable
from .models.retry import RetryAttempt, RetryPolicy
from .models.settings import EdgeFunctionConfig

__all__ = ["EdgeFunctionClient", "JITTER_RATIO"]

logger = logging.getLogger(__name__)

JITTER_RATIO = 0.3
EMAIL_KINDS = {"contact-form", "site-survey", "custom"}


class EdgeFunctionClient:
    """Calls named Edge Functions under ``<base_url>/functions/v1/``.

    Each attempt is bounded by its own timeout. Timeouts, transport failures,
    5xx and 429 responses are retried with capped exponential backoff plus up
    to 30% jitter; any other failure is raised immediately.
    """

    def __init__(
        self,
        config: EdgeFunctionConfig,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ):
        self.config = config
        self._client = http_client
        self._owns_client = http_client is None
        self._sleep = sleep
        self._rand = rand

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient()
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def url_for(self, function_name: str) -> str:
        return f"{self.config.base_url}/functions/v1/{function_name}"

    def backoff_delay(self, attempt: int, policy: RetryPolicy) -> float:
        """Delay in seconds before ``attempt``, jitter included."""
        base = policy.base_delay(attempt)
        return base + self._rand() * JITTER_RATIO * base

    async def _attempt(
        self,
        function_name: str,
        method: str,
        headers: dict[str, str],
        body: Any,
        timeout_s: float,
    ) -> Any:
        kwargs: dict[str, Any] = {"headers": headers, "timeout": timeout_s}
        if body is not None and method != "GET":
            kwargs["json"] = body
        url = self.url_for(function_name)
        try:
            resp = await asyncio.wait_for(
                self._http().request(method, url, **kwargs), timeout=timeout_s
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise EdgeFunctionError(
                f"Edge Function {function_name} timed out after {timeout_s:g}s",
                kind=ErrorKind.TIMEOUT,
                function=function_name,
            ) from e
        except httpx.UnsupportedProtocol as e:
            # TransportError subclass; a bad scheme is a configuration fault.
            raise EdgeFunctionError(
                f"Edge Function {function_name} has an unusable URL {url!r}: {e!r}",
                kind=ErrorKind.REQUEST,
                function=function_name,
            ) from e
        except httpx.TransportError as e:
            raise EdgeFunctionError(
                f"Edge Function {function_name} transport error: {e!r}",
                kind=ErrorKind.TRANSPORT,
                function=function_name,
            ) from e
        except (httpx.RequestError, httpx.InvalidURL) as e:
            raise EdgeFunctionError(
                f"Edge Function {function_name} request error: {e!r}",
                kind=ErrorKind.REQUEST,
                function=function_name,
            ) from e

        if not resp.is_success:
            raise EdgeFunctionError(
                f"Edge Function {function_name} failed: {resp.status_code}",
                kind=ErrorKind.HTTP,
                function=function_name,
                status=resp.status_code,
                body=resp.text,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise EdgeFunctionError(
                f"Edge Function {function_name} returned malformed JSON",
                kind=ErrorKind.DECODE,
                function=function_name,
                status=resp.status_code,
                body=resp.text[:500],
            ) from e

    async def call_function(
        self,
        function_name: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: Any = None,
        timeout_s: float = 30.0,
        max_retries: int = 3,
        initial_delay_s: float = 1.0,
        max_delay_s: float = 10.0,
        backoff_multiplier: float = 2.0,
    ) -> Any:
        """Call an Edge Function and return its decoded JSON body.

        Args:
            function_name: Edge Function name, appended to the base URL.
            method: HTTP method. ``body`` is sent as JSON unless this is GET.
            headers: Extra headers merged over the auth/content-type defaults.
            timeout_s: Limit for a single attempt.
            max_retries: Additional attempts after the first one.

        Raises:
            EdgeFunctionError: Non-retryable failure, or retries exhausted.
        """
        policy = RetryPolicy(
            timeout_s=timeout_s,
            max_retries=max_retries,
            initial_delay_s=initial_delay_s,
            max_delay_s=max_delay_s,
            backoff_multiplier=backoff_multiplier,
        )
        method = method.upper()
        request_headers = {
            "Authorization": f"Bearer {self.config.token}",
            "Content-Type": "application/json",
            **(headers or {}),
        }
        total = max(policy.max_retries, 0) + 1
        last_error: EdgeFunctionError | None = None

        for attempt in range(total):
            step = RetryAttempt(
                attempt=attempt, delay_before_s=self.backoff_delay(attempt, policy)
            )
            if step.delay_before_s > 0:
                logger.info(
                    "Retrying edge function %s after %dms",
                    function_name,
                    round(step.delay_before_s * 1000),
                )
                await self._sleep(step.delay_before_s)

            logger.info(
                "Calling edge function %s (attempt %d/%d)",
                function_name,
                attempt + 1,
                total,
            )
            try:
                data = await self._attempt(
                    function_name, method, request_headers, body, policy.timeout_s
                )
            except EdgeFunctionError as e:
                last_error = e
                logger.warning(
                    "Edge function %s failed on attempt %d/%d: %s",
                    function_name,
                    attempt + 1,
                    total,
                    e,
                )
                if not is_retryable(e):
                    raise
                continue

            logger.info(
                "Edge function %s succeeded on attempt %d/%d",
                function_name,
                attempt + 1,
                total,
            )
            return data

        assert last_error is not None
        raise EdgeFunctionError(
            f"Edge Function {function_name} failed after {total} attempts: "
            f"{last_error.message}",
            kind=last_error.kind,
            function=function_name,
            status=last_error.status,
            body=last_error.body,
            attempts=total,
        ) from last_error

    async def get_pricing(self) -> Any:
        return await self.call_function(
            "get-pricing", method="GET", max_retries=3, timeout_s=15.0
        )

    async def send_email(self, kind: str, data: dict[str, Any]) -> Any:
        if kind not in EMAIL_KINDS:
            raise ValueError(f"Unknown email type: {kind}")
        return await self.call_function(
            "proxy-sendgrid",
            method="POST",
            body={"type": kind, "data": data},
            max_retries=2,
            timeout_s=20.0,
        )

    async def get_secret(self, secret_name: str) -> Any:
        return await self.call_function(
            "manage-secrets",
            method="POST",
            body={"action": "get", "secretName": secret_name},
            max_retries=1,
            timeout_s=10.0,
        )

    async def list_secrets(self) -> Any:
        return await self.call_function(
            "manage-secrets",
            method="POST",
            body={"action": "list"},
            max_retries=1,
            timeout_s=10.0,
        )
