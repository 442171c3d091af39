"""
xorack: XOR acknowledgment chains over a conditional key-value store.

    store = AckChainStore(MemoryBackend())
    await store.create("batch-42", b"\\x03")
    await store.stamp("batch-42", b"\\x01")          # StampResult(b"\\x02", acked=False)
    await store.stamp("batch-42", b"\\x02")          # StampResult(b"\\x00", acked=True)
"""

from .backends.base import ConditionalStore
from .backends.memory import MemoryBackend
from .chain import AckChainStore
from .errors import (
    AckChainError,
    BackendUnavailable,
    ChainAlreadyExists,
    ChainNotFound,
    ErrorCode,
    InsufficientOperands,
    LengthMismatch,
    StaleRead,
    ZeroContributionRejected,
)
from .stamp import StampResult, combine, is_zero

__version__ = "0.1.0"

__all__ = [
    "AckChainStore",
    "ConditionalStore",
    "MemoryBackend",
    "StampResult",
    "combine",
    "is_zero",
    "ErrorCode",
    "AckChainError",
    "BackendUnavailable",
    "ChainAlreadyExists",
    "ChainNotFound",
    "InsufficientOperands",
    "LengthMismatch",
    "StaleRead",
    "ZeroContributionRejected",
]
