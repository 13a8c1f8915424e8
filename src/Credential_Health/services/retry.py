"""Timeout and retry executor with jittered exponential backoff.

Wraps a single verification attempt with a deadline and retries failures
that look transient (timeouts, resets, refused connections, fetch failures).
Permanent failures such as a rejected credential fail immediately. Retries
for one logical check are strictly sequential so a failing endpoint is never
hit by parallel attempts.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, Final, TypeAlias, TypeVar

import httpx

from Credential_Health.utils.exceptions import (
    PermanentVerificationError,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_TIMEOUT_SECONDS: Final[float] = 15.0
DEFAULT_MAX_RETRIES: Final[int] = 2
DEFAULT_BASE_DELAY_SECONDS: Final[float] = 1.0

# Jitter range as a fraction of the nominal backoff delay
JITTER_MIN: Final[float] = 0.5
JITTER_MAX: Final[float] = 1.0

# Lower-cased message fragments that mark an error as transient
TRANSIENT_MARKERS: Final[tuple[str, ...]] = (
    "timeout",
    "timed out",
    "network",
    "econnreset",
    "econnrefused",
    "connection reset",
    "connection refused",
    "socket",
    "fetch failed",
    "failed to fetch",
)

T = TypeVar("T")

Sleeper: TypeAlias = Callable[[float], Awaitable[None]]


def is_transient_error(exc: BaseException) -> bool:
    """Return True if *exc* is worth retrying.

    Explicit verification rejections are never transient. Timeouts, OS-level
    socket errors and httpx transport errors always are. Anything else is
    classified by its message.
    """
    if isinstance(exc, PermanentVerificationError):
        return False
    if isinstance(exc, TransientNetworkError | TimeoutError | OSError | httpx.TransportError):
        return True
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_MARKERS)


def compute_backoff(
    attempt: int,
    base_delay: float,
    rng: random.Random | None = None,
) -> float:
    """Delay before the retry that follows failed attempt *attempt* (0-based).

    Nominal delay is ``base_delay * 2**attempt``; the returned value is
    scaled into 50-100% of that.
    """
    source = rng if rng is not None else random
    nominal = base_delay * (2**attempt)
    return nominal * source.uniform(JITTER_MIN, JITTER_MAX)


class RetryExecutor:
    """Run an async operation under a deadline with bounded retries.

    Usage::

        executor = RetryExecutor(timeout=10.0, max_retries=2, base_delay=1.0)
        response = await executor.execute(
            lambda: verifier.verify("stripe-secret-key"),
            label="verify(stripe-secret-key)",
        )

    The operation is a zero-argument callable so every attempt gets a fresh
    coroutine. After the last attempt the last observed error is raised
    unchanged.
    """

    def __init__(
        self,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay: float = DEFAULT_BASE_DELAY_SECONDS,
        sleep: Sleeper = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        if max_retries < 0:
            msg = f"max_retries must be >= 0, got {max_retries}"
            raise ValueError(msg)
        self._timeout = timeout
        self._max_retries = max_retries
        self._base_delay = base_delay
        self._sleep = sleep
        self._rng = rng

        logger.debug(
            "RetryExecutor initialized: timeout=%.1fs, max_retries=%d, base_delay=%.2fs",
            timeout,
            max_retries,
            base_delay,
        )

    @property
    def max_retries(self) -> int:
        return self._max_retries

    async def execute(
        self,
        operation: Callable[[], Coroutine[Any, Any, T]],
        *,
        label: str = "operation",
        timeout: float | None = None,
        max_retries: int | None = None,
        base_delay: float | None = None,
    ) -> T:
        """Execute *operation* with a per-attempt deadline and retry policy.

        Args:
            operation: Zero-argument callable returning a coroutine.
            label: Human-readable label for log and timeout messages.
            timeout: Per-attempt deadline in seconds (defaults to the
                executor's configured value).
            max_retries: Additional attempts allowed for transient failures.
            base_delay: Base backoff delay in seconds.

        Returns:
            Whatever the operation's coroutine returns.

        Raises:
            TransientNetworkError: When the final attempt timed out.
            Exception: The last error raised by the operation, either a
                permanent one (no retry) or a transient one after all
                retries were spent.
        """
        deadline = self._timeout if timeout is None else timeout
        retries = self._max_retries if max_retries is None else max_retries
        delay_base = self._base_delay if base_delay is None else base_delay

        last_exc: BaseException | None = None

        for attempt in range(retries + 1):
            try:
                # wait_for cancels the abandoned attempt, so a late completion
                # can never replace the timeout result.
                return await asyncio.wait_for(operation(), timeout=deadline)
            except TimeoutError:
                last_exc = TransientNetworkError(f"{label} timed out after {deadline:g}s")
            except Exception as exc:  # noqa: BLE001
                last_exc = exc

            if not is_transient_error(last_exc):
                logger.info("%s failed permanently: %s", label, last_exc)
                raise last_exc

            if attempt >= retries:
                logger.warning(
                    "%s failed after %d attempt(s): %s",
                    label,
                    attempt + 1,
                    last_exc,
                )
                raise last_exc

            delay = compute_backoff(attempt, delay_base, self._rng)
            logger.warning(
                "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                label,
                attempt + 1,
                retries + 1,
                last_exc,
                delay,
            )
            await self._sleep(delay)

        # Unreachable: the loop always returns or raises.
        assert last_exc is not None  # noqa: S101
        raise last_exc
