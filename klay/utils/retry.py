"""Bounded retry with exponential backoff for remote provider calls.

Embedding providers wrap each API request in :func:`retry_async`.  A call
is retried only when it raises one of the ``retry_on`` exception types; any
other exception propagates immediately.  After ``max_attempts`` the last
transient exception is re-raised so the provider can convert it into a
typed :class:`~klay.utils.errors.EmbeddingError`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog

_T = TypeVar("_T")

logger = structlog.get_logger(logger_name=__name__)


async def retry_async(
    operation: Callable[[], Awaitable[_T]],
    *,
    retry_on: tuple[type[BaseException], ...],
    max_attempts: int = 3,
    backoff_base: float = 0.5,
    backoff_max: float = 8.0,
    operation_name: str = "remote_call",
) -> _T:
    """Await ``operation()`` until it succeeds or attempts run out.

    The delay before attempt ``n + 1`` is ``backoff_base * 2 ** (n - 1)``
    seconds, capped at ``backoff_max``.
    """
    if max_attempts < 1:
        msg = f"max_attempts must be >= 1, got {max_attempts}"
        raise ValueError(msg)

    for attempt in range(1, max_attempts + 1):
        try:
            return await operation()
        except retry_on as exc:
            if attempt >= max_attempts:
                logger.warning(
                    "retry_exhausted",
                    operation=operation_name,
                    attempts=attempt,
                    error=str(exc),
                )
                raise
            backoff = min(backoff_max, backoff_base * (2 ** (attempt - 1)))
            logger.warning(
                "retrying_after_transient_error",
                operation=operation_name,
                attempt=attempt,
                backoff_s=backoff,
                error=str(exc),
            )
            await asyncio.sleep(backoff)

    raise AssertionError("unreachable")  # pragma: no cover
