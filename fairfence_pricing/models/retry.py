"""Retry policy dataclasses."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RetryPolicy:
    """Per-call retry and timeout settings for an Edge Function call."""

    timeout_s: float = 30.0
    max_retries: int = 3
    initial_delay_s: float = 1.0
    max_delay_s: float = 10.0
    backoff_multiplier: float = 2.0

    def base_delay(self, attempt: int) -> float:
        """Backoff before ``attempt`` without jitter (0 for the first try)."""
        if attempt <= 0:
            return 0.0
        return min(
            self.initial_delay_s * (self.backoff_multiplier**attempt),
            self.max_delay_s,
        )


@dataclass
class RetryAttempt:
    attempt: int
    delay_before_s: float
