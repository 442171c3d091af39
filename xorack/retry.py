# xorack/retry.py
# -*- coding: utf-8 -*-
"""
Caller-side retry for ``AckChainStore.stamp``.

The store never retries on its own. This helper re-issues ``stamp`` after a
``StaleRead`` with a configurable backoff; XOR is commutative, so re-reading
and re-applying the same contribution needs no reconciliation. Any other error
is raised immediately.
"""

from __future__ import annotations

import asyncio
import logging
import random
from enum import Enum
from typing import Awaitable, Callable, Iterator, Optional

from pydantic import BaseModel, Field, model_validator

from .chain import AckChainStore
from .errors import StaleRead
from .stamp import BytesLike, StampResult

logger = logging.getLogger("xorack.retry")

# ---------------------------------------------------------------------------
# Backoff
# ---------------------------------------------------------------------------

class Backoff(str, Enum):
    CONSTANT = "constant"
    EXP = "exponential"
    EXP_FULL_JITTER = "exp_full_jitter"
    DECORRELATED_JITTER = "decorrelated_jitter"  # AWS-style


class RetryPolicy(BaseModel):
    max_attempts: int = Field(default=5, ge=1, le=100, description="Включая первую попытку")
    base_delay_ms: int = Field(default=10, ge=0)
    max_delay_ms: int = Field(default=1000, ge=0)
    factor: float = Field(default=2.0, ge=1.0)
    strategy: Backoff = Field(default=Backoff.EXP_FULL_JITTER)

    @model_validator(mode="after")
    def _check_delays(self) -> "RetryPolicy":
        if self.base_delay_ms > self.max_delay_ms:
            raise ValueError("base_delay_ms cannot exceed max_delay_ms")
        return self


def backoff_delays(policy: RetryPolicy, rng: Optional[random.Random] = None) -> Iterator[int]:
    """Yield ``max_attempts - 1`` delays in milliseconds."""
    rng = rng or random.Random()
    base, cap, factor = policy.base_delay_ms, policy.max_delay_ms, policy.factor
    d = float(base)
    sleep = base
    for _ in range(policy.max_attempts - 1):
        if policy.strategy == Backoff.CONSTANT:
            yield base
        elif policy.strategy == Backoff.EXP:
            yield min(cap, int(d))
            d *= factor
        elif policy.strategy == Backoff.EXP_FULL_JITTER:
            yield rng.randint(0, min(cap, int(d)))
            d *= factor
        else:
            sleep = int(min(cap, max(base, rng.randint(base, max(base, int(sleep * factor))))))
            yield sleep


async def stamp_with_retry(
    store: AckChainStore,
    tag: str,
    contribution: BytesLike,
    policy: Optional[RetryPolicy] = None,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rng: Optional[random.Random] = None,
) -> StampResult:
    """
    ``store.stamp(tag, contribution)``, retried on StaleRead.

    Without an explicit ``policy`` the ``retry`` section of ``get_settings()``
    applies (``XORACK_RETRY__MAX_ATTEMPTS`` etc.).

    Raises the last StaleRead once ``policy.max_attempts`` is exhausted.
    """
    if policy is None:
        from .settings import get_settings

        policy = get_settings().retry
    delays = backoff_delays(policy, rng)
    attempt = 1
    while True:
        try:
            return await store.stamp(tag, contribution)
        except StaleRead:
            delay_ms = next(delays, None)
            if delay_ms is None:
                logger.warning("stamp retries exhausted", extra={"tag": tag, "attempts": attempt})
                raise
            logger.debug("stale read, retrying", extra={"tag": tag, "attempt": attempt, "delay_ms": delay_ms})
            attempt += 1
            await sleep(delay_ms / 1000.0)


__all__ = ["Backoff", "RetryPolicy", "backoff_delays", "stamp_with_retry"]
