"""Bounded retry for external service calls.

Each attempt is wrapped in ``asyncio.wait_for`` so a hung service counts as a
failed attempt instead of an indefinite suspension.  Backoff is exponential
with jitter, capped at ``max_delay``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from portfolio_ai.exceptions import ContentError, TransientServiceError

log = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and timing for one kind of external call."""

    max_attempts: int = 3
    timeout_seconds: float = 30.0
    base_delay: float = 0.5
    max_delay: float = 10.0
    jitter_factor: float = 0.5

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt following ``attempt`` (0-indexed)."""
        if self.base_delay <= 0:
            return 0.0
        base_wait = min(self.base_delay * (2 ** attempt), self.max_delay)
        return base_wait + random.uniform(0, base_wait * self.jitter_factor)


async def call_with_retry(
    call: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    label: str,
    validate: Callable[[T], None] | None = None,
) -> T:
    """Run ``call`` until it succeeds or the retry budget is spent.

    Args:
        call: Zero-argument coroutine factory; invoked once per attempt.
        policy: Attempts, per-attempt timeout and backoff.
        label: Name used in log lines and error messages (e.g. ``"TRANSCRIBING"``).
        validate: Optional check on the result; raising ``ContentError`` or
            ``TransientServiceError`` from it counts as a failed attempt.

    Raises:
        ContentError: Non-retryable failure, raised on first occurrence.
        TransientServiceError: All attempts failed; the message names the
            last cause.
    """
    last_cause = "no attempts made"
    for attempt in range(policy.max_attempts):
        try:
            result = await asyncio.wait_for(call(), timeout=policy.timeout_seconds)
            if validate is not None:
                validate(result)
            return result
        except ContentError:
            raise
        except asyncio.TimeoutError:
            last_cause = f"timed out after {policy.timeout_seconds:g}s"
        except TransientServiceError as exc:
            last_cause = f"service error: {exc}"
        except Exception as exc:
            last_cause = f"{type(exc).__name__}: {exc}"

        if attempt < policy.max_attempts - 1:
            wait = policy.delay_for(attempt)
            log.warning(
                "%s retry %d/%d: %s (wait=%.2fs)",
                label, attempt + 1, policy.max_attempts, last_cause, wait,
            )
            if wait > 0:
                await asyncio.sleep(wait)

    raise TransientServiceError(
        f"{last_cause} (after {policy.max_attempts} attempt(s))"
    )


def require_text(value: object) -> None:
    """Result validator: services must return a non-blank string."""
    if not isinstance(value, str):
        raise TransientServiceError(f"malformed response of type {type(value).__name__}")
    if not value.strip():
        raise TransientServiceError("malformed response: empty text")
