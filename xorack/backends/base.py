# -*- coding: utf-8 -*-
"""
xorack.backends.base: контракт условного key-value хранилища.

Backends report a failed write condition with one of the ``ConditionFailed``
subclasses below. Everything else a backend raises (network errors,
throttling, auth) is left to propagate untouched.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


class ConditionFailed(Exception):
    """A conditional read or write was rejected by the store."""

    def __init__(self, key: str, message: str = "") -> None:
        super().__init__(message or f"condition failed for {key!r}")
        self.key = key


class RecordExists(ConditionFailed):
    pass


class RecordNotFound(ConditionFailed):
    pass


class VersionConflict(ConditionFailed):
    """Stored value differs from the expected one, or the record is gone."""


@runtime_checkable
class ConditionalStore(Protocol):
    async def put_if_absent(self, key: str, value: bytes) -> None: ...

    async def delete_if_exists(self, key: str) -> None: ...

    async def get_consistent(self, key: str) -> bytes: ...

    async def put_if_version_matches(self, key: str, new_value: bytes, expected: bytes) -> None: ...

    async def delete_if_version_matches(self, key: str, expected: bytes) -> None: ...


__all__ = [
    "ConditionFailed",
    "RecordExists",
    "RecordNotFound",
    "VersionConflict",
    "ConditionalStore",
]
