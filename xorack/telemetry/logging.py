# -*- coding: utf-8 -*-
"""
xorack.telemetry.logging: настройка логирования.

Возможности:
- JSON-логи (однострочно), UTC-время в RFC3339.
- Контекст через contextvars: request_id, tag.
- Маскировка секретов (password, token, authorization и т. п.).
- Безопасные дефолты уровней для шумных библиотек (botocore, redis).

Зависимости: только стандартная библиотека Python.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import os
import re
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

# ============================ Контекст ============================

cv_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
cv_tag: contextvars.ContextVar[str] = contextvars.ContextVar("tag", default="-")
cv_service: contextvars.ContextVar[str] = contextvars.ContextVar("service", default=os.getenv("APP_NAME", "xorack"))


def bind_context(
    *,
    request_id: Optional[str] = None,
    tag: Optional[str] = None,
    service: Optional[str] = None,
) -> None:
    if request_id: cv_request_id.set(request_id)
    if tag: cv_tag.set(tag)
    if service: cv_service.set(service)


def clear_context() -> None:
    cv_request_id.set("-")
    cv_tag.set("-")


@contextlib.contextmanager
def tag_context(tag: str) -> Iterator[str]:
    """Привязать tag к логам на время блока; прежнее значение восстанавливается."""
    token = cv_tag.set(tag)
    try:
        yield tag
    finally:
        cv_tag.reset(token)

# ============================ Маскировка ============================

_SENSITIVE_KEYS = re.compile(
    r"(authorization|password|passwd|secret|token|api[_-]?key|aws_secret_access_key|aws_session_token)",
    re.IGNORECASE,
)
_MASK = "[REDACTED]"


def _redact(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {k: (_MASK if _SENSITIVE_KEYS.search(str(k)) else _redact(v)) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_redact(v) for v in obj]
    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj).hex()
    return obj

# ============================ JSON Formatter ============================

_RESERVED = frozenset(
    (
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module",
        "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created", "msecs",
        "relativeCreated", "thread", "threadName", "processName", "process", "asctime",
        "taskName", "message",
    )
)


class JsonFormatter(logging.Formatter):
    def __init__(self, *, static_fields: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.static_fields = static_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        base: Dict[str, Any] = {
            "ts": ts,
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "service": cv_service.get(),
            "request_id": cv_request_id.get(),
            "tag": cv_tag.get(),
        }
        if record.exc_info:
            base["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
            base["exc"] = self.formatException(record.exc_info)

        extras = {k: v for k, v in record.__dict__.items() if k not in _RESERVED}
        base.update(self.static_fields)
        if extras:
            base["extra"] = _redact(extras)
        return json.dumps(base, ensure_ascii=False, separators=(",", ":"), default=str)

# ============================ Публичное API ============================


def setup_logging(
    *,
    level: str = os.getenv("LOG_LEVEL", "INFO"),
    json_logs: bool = True,
    third_party_levels: Optional[Dict[str, str]] = None,
    static_fields: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Инициализация глобального логирования. Вызывайте в bootstrap.

    third_party_levels: словарь уровней для библиотек {"botocore": "INFO"}
    static_fields: поля, добавляемые в каждую запись (например, {"region": "eu-north-1"})
    """
    root = logging.getLogger()
    root.setLevel(_to_level(level))
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(stream=sys.stderr)
    if json_logs:
        handler.setFormatter(JsonFormatter(static_fields=static_fields))
    else:
        handler.setFormatter(logging.Formatter("[%(asctime)s] %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)

    noisy = {
        "asyncio": "WARNING",
        "botocore": "WARNING",
        "boto3": "WARNING",
        "urllib3": "WARNING",
        "redis": "WARNING",
    }
    if third_party_levels:
        noisy.update(third_party_levels)
    for name, lvl in noisy.items():
        logging.getLogger(name).setLevel(_to_level(lvl))


def get_logger(name: Optional[str] = None) -> logging.Logger:
    return logging.getLogger(name or "xorack")


def _to_level(v: str | int) -> int:
    if isinstance(v, int):
        return v
    lvl = logging.getLevelName(str(v).upper())
    return lvl if isinstance(lvl, int) else logging.INFO


__all__ = [
    "bind_context",
    "clear_context",
    "tag_context",
    "JsonFormatter",
    "setup_logging",
    "get_logger",
]
