# xorack/backends/redis.py
from __future__ import annotations

import contextlib
import logging
from typing import Any, Optional

import redis.asyncio as aioredis
from pydantic import BaseModel, ConfigDict, Field

from ..errors import BackendUnavailable
from .base import RecordExists, RecordNotFound, VersionConflict

logger = logging.getLogger("xorack.backends.redis")

# KEYS[1] = chain key; ARGV[1] = expected stamp; ARGV[2] = new stamp
_LUA_COMPARE_AND_SET = """
local cur = redis.call('GET', KEYS[1])
if cur == false or cur ~= ARGV[1] then
  return 0
end
redis.call('SET', KEYS[1], ARGV[2])
return 1
"""

# KEYS[1] = chain key; ARGV[1] = expected stamp
_LUA_COMPARE_AND_DELETE = """
local cur = redis.call('GET', KEYS[1])
if cur == false or cur ~= ARGV[1] then
  return 0
end
redis.call('DEL', KEYS[1])
return 1
"""


class RedisConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = Field("redis://localhost:6379/0", min_length=1)
    password: Optional[str] = None
    namespace: str = Field("xorack", min_length=1)
    socket_timeout: float = Field(5.0, gt=0)
    socket_connect_timeout: float = Field(5.0, gt=0)
    retry_on_timeout: bool = True
    max_connections: int = Field(64, ge=1)


class RedisBackend:
    """
    Условное хранилище поверх Redis:
    - SET NX / DEL для create/delete
    - Lua compare-and-set / compare-and-delete для stamp
    - Namespaced keys: <namespace>:chain:<tag>
    """

    def __init__(self, cfg: Optional[RedisConfig] = None, *, client: Any = None) -> None:
        self.cfg = cfg or RedisConfig()
        self._redis = client
        self._owns_client = client is None
        self._lua_cas = None
        self._lua_cad = None

    # ------------------------------------------------------------------ #
    # Connection management
    # ------------------------------------------------------------------ #
    async def connect(self) -> None:
        if self._redis is not None:
            return
        self._redis = aioredis.from_url(
            self.cfg.url,
            password=self.cfg.password,
            socket_timeout=self.cfg.socket_timeout,
            socket_connect_timeout=self.cfg.socket_connect_timeout,
            retry_on_timeout=self.cfg.retry_on_timeout,
            max_connections=self.cfg.max_connections,
            decode_responses=False,
        )
        await self._redis.ping()
        logger.info("Redis connected", extra={"namespace": self.cfg.namespace})

    async def close(self) -> None:
        if self._redis is not None and self._owns_client:
            with contextlib.suppress(Exception):
                await self._redis.aclose()
            self._redis = None
        self._lua_cas = None
        self._lua_cad = None

    async def __aenter__(self) -> "RedisBackend":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _r(self) -> Any:
        if self._redis is None:
            raise BackendUnavailable("Redis not connected. Call connect() first.")
        return self._redis

    def _k(self, tag: str) -> str:
        return f"{self.cfg.namespace}:chain:{tag}"

    async def ping(self) -> bool:
        return bool(await self._r().ping())

    # ------------------------------------------------------------------ #
    # Контракт
    # ------------------------------------------------------------------ #
    async def put_if_absent(self, key: str, value: bytes) -> None:
        ok = await self._r().set(self._k(key), bytes(value), nx=True)
        if not ok:
            raise RecordExists(key)

    async def delete_if_exists(self, key: str) -> None:
        removed = await self._r().delete(self._k(key))
        if not removed:
            raise RecordNotFound(key)

    async def get_consistent(self, key: str) -> bytes:
        raw = await self._r().get(self._k(key))
        if raw is None:
            raise RecordNotFound(key)
        return bytes(raw)

    async def put_if_version_matches(self, key: str, new_value: bytes, expected: bytes) -> None:
        if self._lua_cas is None:
            self._lua_cas = self._r().register_script(_LUA_COMPARE_AND_SET)
        res = await self._lua_cas(keys=[self._k(key)], args=[bytes(expected), bytes(new_value)])
        if int(res) != 1:
            raise VersionConflict(key)

    async def delete_if_version_matches(self, key: str, expected: bytes) -> None:
        if self._lua_cad is None:
            self._lua_cad = self._r().register_script(_LUA_COMPARE_AND_DELETE)
        res = await self._lua_cad(keys=[self._k(key)], args=[bytes(expected)])
        if int(res) != 1:
            raise VersionConflict(key)


__all__ = ["RedisConfig", "RedisBackend"]
