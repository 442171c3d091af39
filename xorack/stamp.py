# -*- coding: utf-8 -*-
"""
xorack.stamp: XOR-алгебра штампов.

A stamp is a fixed-length byte string. Combining stamps is a byte-wise XOR;
a chain is fully acknowledged when the combined value is all zeros. Nothing
here touches shared state, so every function is safe to call from any thread.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .errors import InsufficientOperands, LengthMismatch

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class StampResult:
    stamp: bytes
    acked: bool

    def hex(self) -> str:
        return self.stamp.hex()


def as_bytes(value: BytesLike) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"stamp must be bytes-like, got {type(value).__name__}")


def is_zero(buffer: BytesLike) -> bool:
    """True iff every byte of ``buffer`` is zero."""
    return not any(as_bytes(buffer))


def combine(*stamps: BytesLike) -> StampResult:
    """
    XOR all ``stamps`` left to right.

    Raises InsufficientOperands for fewer than two operands and LengthMismatch
    on the first operand whose length differs from the first one.
    """
    if len(stamps) < 2:
        raise InsufficientOperands(len(stamps))
    first = as_bytes(stamps[0])
    size = len(first)
    acc = int.from_bytes(first, "big")
    for other in stamps[1:]:
        other = as_bytes(other)
        if len(other) != size:
            raise LengthMismatch(size, len(other))
        acc ^= int.from_bytes(other, "big")
    return StampResult(stamp=acc.to_bytes(size, "big"), acked=acc == 0)


def zero_stamp(length: int) -> bytes:
    if length < 0:
        raise ValueError("length must be >= 0")
    return bytes(length)


__all__ = ["BytesLike", "StampResult", "as_bytes", "combine", "is_zero", "zero_stamp"]
