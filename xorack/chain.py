# -*- coding: utf-8 -*-
"""
xorack.chain: хранилище XOR ack-цепочек поверх условного key-value бэкенда.

A chain is a single record ``tag -> stamp``. ``stamp()`` reads the current
value with a strongly consistent read, XORs the contribution in and writes the
result back with a compare-and-swap conditioned on the value it read. When the
result is all zeros the record is deleted instead (the chain is retired).

Only the backend's conditional write arbitrates concurrent stampers: the loser
gets ``StaleRead`` and is expected to call ``stamp()`` again. Nothing is
retried here and nothing is cached between calls.
"""

from __future__ import annotations

import logging

from .backends.base import ConditionalStore, RecordExists, RecordNotFound, VersionConflict
from .errors import (
    ChainAlreadyExists,
    ChainNotFound,
    LengthMismatch,
    StaleRead,
    ZeroContributionRejected,
)
from .stamp import BytesLike, StampResult, as_bytes, combine, is_zero
from .telemetry.logging import tag_context

logger = logging.getLogger("xorack.chain")


def _check_tag(tag: str) -> str:
    if not isinstance(tag, str) or not tag:
        raise ValueError("tag must be a non-empty string")
    return tag


class AckChainStore:
    """
    Lifecycle of ack chains: create, stamp, delete.

    ``backend`` is any object implementing ``ConditionalStore``; the store
    keeps no other state.
    """

    def __init__(self, backend: ConditionalStore) -> None:
        if not isinstance(backend, ConditionalStore):
            raise TypeError(f"backend must implement ConditionalStore, got {type(backend).__name__}")
        self.backend = backend

    async def create(self, tag: str, stamp: BytesLike) -> StampResult:
        """
        Create chain ``tag`` holding ``stamp``.

        Raises ZeroContributionRejected (no I/O) or ChainAlreadyExists.
        """
        tag = _check_tag(tag)
        stamp = as_bytes(stamp)
        if is_zero(stamp):
            raise ZeroContributionRejected(tag=tag)
        with tag_context(tag):
            try:
                await self.backend.put_if_absent(tag, stamp)
            except RecordExists:
                raise ChainAlreadyExists(tag) from None
            logger.debug("chain created", extra={"tag": tag, "stamp_len": len(stamp)})
        return StampResult(stamp=stamp, acked=False)

    async def delete(self, tag: str) -> None:
        """Remove chain ``tag`` regardless of its stamp. Raises ChainNotFound."""
        tag = _check_tag(tag)
        with tag_context(tag):
            try:
                await self.backend.delete_if_exists(tag)
            except RecordNotFound:
                raise ChainNotFound(tag) from None
            logger.info("chain deleted", extra={"tag": tag})

    async def stamp(self, tag: str, contribution: BytesLike) -> StampResult:
        """
        XOR ``contribution`` into chain ``tag``.

        Returns the new stamp; ``acked`` is True when it reached zero, in
        which case the chain record no longer exists.

        Raises ZeroContributionRejected (no I/O), ChainNotFound, LengthMismatch
        (nothing written) or StaleRead (a concurrent writer won).
        """
        tag = _check_tag(tag)
        contribution = as_bytes(contribution)
        if is_zero(contribution):
            raise ZeroContributionRejected(tag=tag)
        with tag_context(tag):
            return await self._stamp(tag, contribution)

    async def _stamp(self, tag: str, contribution: bytes) -> StampResult:
        try:
            current = await self.backend.get_consistent(tag)
        except RecordNotFound:
            raise ChainNotFound(tag) from None

        # длина цепочки зафиксирована при создании: expected = len(current)
        try:
            result = combine(current, contribution)
        except LengthMismatch as e:
            e.tag = tag
            raise

        try:
            if result.acked:
                await self.backend.delete_if_version_matches(tag, current)
            else:
                await self.backend.put_if_version_matches(tag, result.stamp, current)
        except VersionConflict:
            logger.info("stale read", extra={"tag": tag})
            raise StaleRead(tag) from None

        if result.acked:
            logger.info("chain fully acknowledged", extra={"tag": tag})
        else:
            logger.debug("chain stamped", extra={"tag": tag})
        return result


__all__ = ["AckChainStore"]
