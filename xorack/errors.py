# -*- coding: utf-8 -*-
"""
xorack.errors: единая иерархия ошибок XOR ack-цепочек.

Every error carries a stable ``code`` discriminant so callers can branch on
``err.code`` (or on the class) instead of comparing message strings.
``StaleRead`` is the only error expected under normal concurrent load and the
only one flagged ``retryable``.
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    INSUFFICIENT_OPERANDS = "insufficient_operands"
    LENGTH_MISMATCH = "length_mismatch"
    ZERO_CONTRIBUTION_REJECTED = "zero_contribution_rejected"
    CHAIN_ALREADY_EXISTS = "chain_already_exists"
    CHAIN_NOT_FOUND = "chain_not_found"
    STALE_READ = "stale_read"
    BACKEND_UNAVAILABLE = "backend_unavailable"


_DEFAULT_HTTP: Dict[ErrorCode, HTTPStatus] = {
    ErrorCode.INSUFFICIENT_OPERANDS: HTTPStatus.BAD_REQUEST,
    ErrorCode.LENGTH_MISMATCH: HTTPStatus.UNPROCESSABLE_ENTITY,
    ErrorCode.ZERO_CONTRIBUTION_REJECTED: HTTPStatus.UNPROCESSABLE_ENTITY,
    ErrorCode.CHAIN_ALREADY_EXISTS: HTTPStatus.CONFLICT,
    ErrorCode.CHAIN_NOT_FOUND: HTTPStatus.NOT_FOUND,
    ErrorCode.STALE_READ: HTTPStatus.CONFLICT,
    ErrorCode.BACKEND_UNAVAILABLE: HTTPStatus.SERVICE_UNAVAILABLE,
}


# ---------------------------
# Base exception
# ---------------------------

class AckChainError(Exception):
    code: ErrorCode = ErrorCode.BACKEND_UNAVAILABLE
    retryable: bool = False

    def __init__(self, message: str, *, tag: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.tag = tag

    @property
    def http_status(self) -> HTTPStatus:
        return _DEFAULT_HTTP.get(self.code, HTTPStatus.INTERNAL_SERVER_ERROR)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
        }
        if self.tag is not None:
            data["tag"] = self.tag
        return data

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} code={self.code.value} tag={self.tag!r}>"


# ---------------------------
# Stamp algebra
# ---------------------------

class InsufficientOperands(AckChainError):
    code = ErrorCode.INSUFFICIENT_OPERANDS

    def __init__(self, count: int = 0) -> None:
        super().__init__("At least two buffers expected")
        self.count = count

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "count": self.count}


class LengthMismatch(AckChainError):
    code = ErrorCode.LENGTH_MISMATCH

    def __init__(self, expected: int, actual: int, *, tag: Optional[str] = None) -> None:
        super().__init__("Buffer lengths are not equal", tag=tag)
        self.expected = expected
        self.actual = actual

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "expected": self.expected, "actual": self.actual}


class ZeroContributionRejected(AckChainError):
    code = ErrorCode.ZERO_CONTRIBUTION_REJECTED

    def __init__(self, *, tag: Optional[str] = None) -> None:
        super().__init__("Buffer is all zeros", tag=tag)


# ---------------------------
# Chain lifecycle
# ---------------------------

class ChainAlreadyExists(AckChainError):
    code = ErrorCode.CHAIN_ALREADY_EXISTS

    def __init__(self, tag: str) -> None:
        super().__init__(f'"{tag}" already exists', tag=tag)


class ChainNotFound(AckChainError):
    code = ErrorCode.CHAIN_NOT_FOUND

    def __init__(self, tag: str) -> None:
        super().__init__(f'"{tag}" does not exist', tag=tag)


class StaleRead(AckChainError):
    """Conditional write lost against a concurrent writer; re-read and retry."""

    code = ErrorCode.STALE_READ
    retryable = True

    def __init__(self, tag: str) -> None:
        super().__init__("Stale local data", tag=tag)


class BackendUnavailable(AckChainError):
    code = ErrorCode.BACKEND_UNAVAILABLE

    def __init__(self, message: str = "Backend is not available") -> None:
        super().__init__(message)


__all__ = [
    "ErrorCode",
    "AckChainError",
    "InsufficientOperands",
    "LengthMismatch",
    "ZeroContributionRejected",
    "ChainAlreadyExists",
    "ChainNotFound",
    "StaleRead",
    "BackendUnavailable",
]
