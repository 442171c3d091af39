# xorack/settings.py
# -*- coding: utf-8 -*-
"""
Settings module for xorack.

Requirements:
  - pydantic>=2.5
  - pydantic-settings>=2.0

Environment examples:
  XORACK_BACKEND=dynamodb
  XORACK_DYNAMODB__TABLE=ack-chains
  XORACK_DYNAMODB__PARTITION_KEY=tag
  XORACK_LOGGING__LEVEL=DEBUG
"""

from __future__ import annotations

import json
import logging
import os
import sys
from functools import lru_cache
from logging.config import dictConfig
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .backends.dynamodb import DynamoDBConfig
from .backends.redis import RedisConfig
from .retry import RetryPolicy


# -------------------------------
# Sub-configs
# -------------------------------

class AppMeta(BaseModel):
    name: str = Field(default="xorack")
    environment: Literal["dev", "staging", "prod", "test"] = Field(default="dev")
    version: str = Field(default=os.getenv("APP_VERSION", "0.0.0"))


class MemorySettings(BaseModel):
    latency_ms: int = Field(default=0, ge=0)
    jitter_ms: int = Field(default=0, ge=0)
    seed: Optional[int] = None


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")
    json_logs: bool = Field(default=True)

    def to_dictconfig(self) -> Dict[str, Any]:
        if self.json_logs:
            formatter = {"()": "xorack.telemetry.logging.JsonFormatter"}
        else:
            formatter = {"format": "[%(asctime)s] %(levelname)s %(name)s: %(message)s"}
        return {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": formatter},
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "default",
                }
            },
            "root": {"level": self.level, "handlers": ["stderr"]},
        }


# -------------------------------
# Settings (root)
# -------------------------------

class Settings(BaseSettings):
    """
    Strongly-typed settings for xorack.
    Loads from environment and optional .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="XORACK_",
        env_nested_delimiter="__",
        env_file=os.getenv("XORACK_ENV_FILE") or ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    meta: AppMeta = Field(default_factory=AppMeta)
    backend: Literal["memory", "dynamodb", "redis"] = Field(default="memory")
    memory: MemorySettings = Field(default_factory=MemorySettings)
    dynamodb: Optional[DynamoDBConfig] = None
    redis: RedisConfig = Field(default_factory=RedisConfig)
    retry: RetryPolicy = Field(default_factory=RetryPolicy)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def _backend_configured(self) -> "Settings":
        if self.backend == "dynamodb" and self.dynamodb is None:
            raise ValueError("backend=dynamodb requires dynamodb.table and dynamodb.partition_key")
        if self.meta.environment == "test":
            self.logging.json_logs = False
        return self

    # ---------------------------
    # Helpers
    # ---------------------------

    def configure_logging(self) -> None:
        """Apply logging configuration via dictConfig."""
        dictConfig(self.logging.to_dictconfig())
        logging.getLogger("xorack").debug("logging configured", extra={"backend": self.backend})

    def asdict(self, redacted: bool = True) -> Dict[str, Any]:
        """Export settings to dict (optionally redacting secrets)."""
        data = self.model_dump(mode="json")
        if redacted:
            for section, key in (
                ("redis", "password"),
                ("dynamodb", "aws_secret_access_key"),
                ("dynamodb", "aws_session_token"),
            ):
                part = data.get(section)
                if isinstance(part, dict) and part.get(key):
                    part[key] = "***"
        return data

    def to_json(self, redacted: bool = True) -> str:
        return json.dumps(self.asdict(redacted=redacted), ensure_ascii=False, indent=2)


# -------------------------------
# Singleton accessor
# -------------------------------

@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Lazy singleton. Reads from env and optional .env exactly once.
    Usage:
        from xorack.settings import get_settings
        settings = get_settings()
        settings.configure_logging()
    """
    try:
        s = Settings()
    except ValidationError as e:
        print("Invalid configuration:", file=sys.stderr)
        print(e, file=sys.stderr)
        raise
    return s


__all__ = ["AppMeta", "MemorySettings", "LoggingConfig", "Settings", "get_settings"]
