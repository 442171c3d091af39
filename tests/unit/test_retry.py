# -*- coding: utf-8 -*-
from __future__ import annotations

import random
from typing import List

import pytest
from pydantic import ValidationError

from xorack.backends.memory import MemoryBackend
from xorack.chain import AckChainStore
from xorack.errors import ChainNotFound, StaleRead
from xorack.retry import Backoff, RetryPolicy, backoff_delays, stamp_with_retry
from xorack.stamp import StampResult


class FlakyBackend(MemoryBackend):
    """Loses the compare-and-swap ``conflicts`` times, then behaves."""

    def __init__(self, conflicts: int) -> None:
        super().__init__()
        self.conflicts = conflicts
        self._pending_restore = None

    async def get_consistent(self, key):
        current = await super().get_consistent(key)
        if self.conflicts > 0:
            self.conflicts -= 1
            # competing write, undone after our write attempt
            with self._lock:
                self._data[key] = bytes(b ^ 0x80 for b in current)
            self._pending_restore = (key, current)
        return current

    async def put_if_version_matches(self, key, new_value, expected):
        try:
            await super().put_if_version_matches(key, new_value, expected)
        finally:
            restore = self._pending_restore
            if restore is not None:
                with self._lock:
                    self._data[restore[0]] = restore[1]
                self._pending_restore = None


def _recording_sleep(record: List[float]):
    async def _sleep(seconds: float) -> None:
        record.append(seconds)
    return _sleep


# ==========================
# Backoff
# ==========================

def test_constant_and_exponential_delays():
    assert list(backoff_delays(RetryPolicy(max_attempts=4, base_delay_ms=5, strategy=Backoff.CONSTANT))) == [5, 5, 5]
    exp = RetryPolicy(max_attempts=6, base_delay_ms=10, max_delay_ms=50, strategy=Backoff.EXP)
    assert list(backoff_delays(exp)) == [10, 20, 40, 50, 50]


@pytest.mark.parametrize("strategy", [Backoff.EXP_FULL_JITTER, Backoff.DECORRELATED_JITTER])
def test_jittered_delays_are_bounded(strategy):
    policy = RetryPolicy(max_attempts=20, base_delay_ms=10, max_delay_ms=200, strategy=strategy)
    delays = list(backoff_delays(policy, random.Random(7)))
    assert len(delays) == 19
    assert all(0 <= d <= 200 for d in delays)


def test_policy_validation():
    with pytest.raises(ValidationError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValidationError):
        RetryPolicy(base_delay_ms=100, max_delay_ms=10)


# ==========================
# stamp_with_retry
# ==========================

@pytest.mark.asyncio
async def test_retries_stale_reads_until_applied():
    backend = FlakyBackend(conflicts=2)
    store = AckChainStore(backend)
    await store.create("foo", b"\x02")
    slept: List[float] = []
    policy = RetryPolicy(max_attempts=5, base_delay_ms=10, strategy=Backoff.CONSTANT)

    result = await stamp_with_retry(store, "foo", b"\x20", policy, sleep=_recording_sleep(slept))

    assert result == StampResult(b"\x22", False)
    assert slept == [0.01, 0.01]
    assert backend.snapshot() == {"foo": b"\x22"}


@pytest.mark.asyncio
async def test_gives_up_with_last_stale_read():
    backend = FlakyBackend(conflicts=10)
    store = AckChainStore(backend)
    await store.create("foo", b"\x02")
    slept: List[float] = []
    policy = RetryPolicy(max_attempts=3, base_delay_ms=1, strategy=Backoff.CONSTANT)

    with pytest.raises(StaleRead):
        await stamp_with_retry(store, "foo", b"\x20", policy, sleep=_recording_sleep(slept))
    assert len(slept) == 2
    assert backend.snapshot() == {"foo": b"\x02"}


@pytest.mark.asyncio
async def test_other_errors_are_not_retried():
    store = AckChainStore(MemoryBackend())
    slept: List[float] = []
    with pytest.raises(ChainNotFound):
        await stamp_with_retry(store, "ghost", b"\x01", sleep=_recording_sleep(slept))
    assert slept == []


@pytest.mark.asyncio
async def test_default_policy_comes_from_settings(monkeypatch):
    monkeypatch.setenv("XORACK_RETRY__MAX_ATTEMPTS", "2")
    monkeypatch.setenv("XORACK_RETRY__BASE_DELAY_MS", "3")
    monkeypatch.setenv("XORACK_RETRY__STRATEGY", "constant")
    backend = FlakyBackend(conflicts=10)
    store = AckChainStore(backend)
    await store.create("foo", b"\x02")
    slept: List[float] = []

    with pytest.raises(StaleRead):
        await stamp_with_retry(store, "foo", b"\x20", sleep=_recording_sleep(slept))
    assert slept == [0.003]
