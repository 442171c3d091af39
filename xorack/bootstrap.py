# -*- coding: utf-8 -*-
"""
xorack.bootstrap: сборка бэкенда и AckChainStore из настроек.

Usage:
    async with store_context() as store:
        await store.create("batch-42", b"\\x0f")
"""

from __future__ import annotations

import contextlib
import logging
from typing import AsyncIterator, Optional, Union

from .backends.dynamodb import DynamoDBBackend
from .backends.memory import MemoryBackend, MemoryConfig
from .backends.redis import RedisBackend
from .chain import AckChainStore
from .settings import Settings, get_settings
from .telemetry.logging import bind_context

logger = logging.getLogger("xorack.bootstrap")

Backend = Union[MemoryBackend, DynamoDBBackend, RedisBackend]


def build_backend(settings: Optional[Settings] = None) -> Backend:
    s = settings or get_settings()
    if s.backend == "dynamodb":
        if s.dynamodb is None:
            raise ValueError("backend=dynamodb requires the dynamodb settings section")
        return DynamoDBBackend(s.dynamodb)
    if s.backend == "redis":
        return RedisBackend(s.redis)
    return MemoryBackend(
        MemoryConfig(latency_ms=s.memory.latency_ms, jitter_ms=s.memory.jitter_ms, seed=s.memory.seed)
    )


def build_store(settings: Optional[Settings] = None) -> AckChainStore:
    return AckChainStore(build_backend(settings))


@contextlib.asynccontextmanager
async def store_context(
    settings: Optional[Settings] = None,
    *,
    configure_logging: bool = True,
) -> AsyncIterator[AckChainStore]:
    s = settings or get_settings()
    if configure_logging:
        s.configure_logging()
    bind_context(service=s.meta.name)
    backend = build_backend(s)
    if isinstance(backend, RedisBackend):
        await backend.connect()
    logger.info("ack chain store ready", extra={"backend": s.backend, "env": s.meta.environment})
    try:
        yield AckChainStore(backend)
    finally:
        if isinstance(backend, RedisBackend):
            await backend.close()


__all__ = ["build_backend", "build_store", "store_context"]
