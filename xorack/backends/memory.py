# -*- coding: utf-8 -*-
# In-memory conditional store for local runs and tests.
# - Same condition semantics as the DynamoDB/Redis bindings
# - Thread-safe (RLock), usable from several event loops
# - Optional latency injection so concurrent callers really interleave
# No external dependencies.

from __future__ import annotations

import asyncio
import logging
import random
import threading
from dataclasses import dataclass
from typing import Dict, Optional

from .base import RecordExists, RecordNotFound, VersionConflict

logger = logging.getLogger("xorack.backends.memory")


@dataclass
class MemoryConfig:
    latency_ms: int = 0
    jitter_ms: int = 0
    seed: Optional[int] = None


class MemoryBackend:
    def __init__(self, cfg: Optional[MemoryConfig] = None) -> None:
        self.cfg = cfg or MemoryConfig()
        self._data: Dict[str, bytes] = {}
        self._lock = threading.RLock()
        self._rng = random.Random(self.cfg.seed)

    async def _maybe_sleep(self) -> None:
        delay_ms = self.cfg.latency_ms
        if self.cfg.jitter_ms > 0:
            delay_ms += self._rng.randint(0, self.cfg.jitter_ms)
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000.0)

    # ----------------------------- Контракт -----------------------------

    async def put_if_absent(self, key: str, value: bytes) -> None:
        await self._maybe_sleep()
        with self._lock:
            if key in self._data:
                raise RecordExists(key)
            self._data[key] = bytes(value)
        logger.debug("put_if_absent key=%s", key)

    async def delete_if_exists(self, key: str) -> None:
        await self._maybe_sleep()
        with self._lock:
            if self._data.pop(key, None) is None:
                raise RecordNotFound(key)
        logger.debug("delete_if_exists key=%s", key)

    async def get_consistent(self, key: str) -> bytes:
        await self._maybe_sleep()
        with self._lock:
            try:
                return self._data[key]
            except KeyError:
                raise RecordNotFound(key) from None

    async def put_if_version_matches(self, key: str, new_value: bytes, expected: bytes) -> None:
        await self._maybe_sleep()
        with self._lock:
            if self._data.get(key) != bytes(expected):
                raise VersionConflict(key)
            self._data[key] = bytes(new_value)

    async def delete_if_version_matches(self, key: str, expected: bytes) -> None:
        await self._maybe_sleep()
        with self._lock:
            if self._data.get(key) != bytes(expected):
                raise VersionConflict(key)
            del self._data[key]

    # ----------------------------- Утилиты -----------------------------

    def snapshot(self) -> Dict[str, bytes]:
        with self._lock:
            return dict(self._data)

    def clear(self) -> None:
        with self._lock:
            self._data.clear()


__all__ = ["MemoryConfig", "MemoryBackend"]
