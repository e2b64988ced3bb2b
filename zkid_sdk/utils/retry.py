"""
Retry helpers with exponential backoff.

Registry RPC calls are idempotent reads, so transport failures are retried
with a deterministic doubling schedule: base, 2*base, 4*base, ...
(100 ms, 200 ms, 400 ms with the defaults). After the last attempt the
ORIGINAL exception is re-raised unchanged so callers can tell a dead
transport apart from an application-level rejection.

Example (async)
---------------
from zkid_sdk.utils.retry import aretry_call

result = await aretry_call(fetch_root, retries=3, exceptions=httpx.TransportError)

Notes
-----
- Only exceptions matching `exceptions` (and `retry_if`, when given) are
  retried; anything else propagates on the first attempt.
- `on_retry` callback receives (attempt_index, exception, sleep_seconds).
- `retries=N` means at most N + 1 attempts.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import (Any, Awaitable, Callable, Optional, Sequence, Tuple, Type,
                    TypeVar, Union)

__all__ = [
    "DEFAULT_RETRIES",
    "DEFAULT_BASE_DELAY",
    "backoff_delay",
    "retry_call",
    "aretry_call",
]

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RETRIES = 3
DEFAULT_BASE_DELAY = 0.1

ExcSpec = Union[Type[BaseException], Sequence[Type[BaseException]]]


def backoff_delay(attempt: int, *, base: float = DEFAULT_BASE_DELAY, max_delay: Optional[float] = None) -> float:
    """
    Delay (seconds) to wait after the given failed attempt (1-based).

    attempt=1 -> base, attempt=2 -> 2*base, attempt=3 -> 4*base, ...
    """
    if attempt < 1:
        attempt = 1
    delay = base * (2 ** (attempt - 1))
    if max_delay is not None:
        delay = min(delay, max_delay)
    return float(delay)


def _exc_tuple(exceptions: ExcSpec) -> Tuple[Type[BaseException], ...]:
    if isinstance(exceptions, type):
        return (exceptions,)
    return tuple(exceptions)


def _should_retry(
    exc: BaseException,
    exceptions: Tuple[Type[BaseException], ...],
    retry_if: Optional[Callable[[BaseException], bool]],
) -> bool:
    if not isinstance(exc, exceptions):
        return False
    if retry_if is not None:
        return bool(retry_if(exc))
    return True


def retry_call(
    fn: Callable[..., T],
    *args: Any,
    retries: int = DEFAULT_RETRIES,
    base: float = DEFAULT_BASE_DELAY,
    max_delay: Optional[float] = None,
    exceptions: ExcSpec = Exception,
    retry_if: Optional[Callable[[BaseException], bool]] = None,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any,
) -> T:
    """
    Call `fn` with retries. See module docstring.
    """
    exc_types = _exc_tuple(exceptions)
    attempt = 0
    while True:
        attempt += 1
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            if not _should_retry(exc, exc_types, retry_if) or attempt > retries:
                raise
            sleep_s = backoff_delay(attempt, base=base, max_delay=max_delay)
            log.debug("retrying %s after %r (attempt %d, sleep %.3fs)", getattr(fn, "__name__", fn), exc, attempt, sleep_s)
            if on_retry is not None:
                on_retry(attempt, exc, sleep_s)
            sleep(sleep_s)


async def aretry_call(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    retries: int = DEFAULT_RETRIES,
    base: float = DEFAULT_BASE_DELAY,
    max_delay: Optional[float] = None,
    exceptions: ExcSpec = Exception,
    retry_if: Optional[Callable[[BaseException], bool]] = None,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **kwargs: Any,
) -> T:
    """
    Async version of `retry_call`. Awaits `fn(*args, **kwargs)` with retries.

    Cancellation is never retried: `asyncio.CancelledError` is not an
    `Exception` subclass and propagates immediately.
    """
    exc_types = _exc_tuple(exceptions)
    attempt = 0
    while True:
        attempt += 1
        try:
            return await fn(*args, **kwargs)
        except Exception as exc:
            if not _should_retry(exc, exc_types, retry_if) or attempt > retries:
                raise
            sleep_s = backoff_delay(attempt, base=base, max_delay=max_delay)
            log.debug("retrying %s after %r (attempt %d, sleep %.3fs)", getattr(fn, "__name__", fn), exc, attempt, sleep_s)
            if on_retry is not None:
                on_retry(attempt, exc, sleep_s)
            await sleep(sleep_s)
