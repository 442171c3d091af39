# xorack/backends/dynamodb.py
from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, Mapping, Optional, Union

import boto3  # type: ignore
from boto3.dynamodb.types import Binary  # type: ignore
from botocore.client import Config as BotoConfig  # type: ignore
from botocore.exceptions import BotoCoreError, ClientError  # type: ignore
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..errors import BackendUnavailable
from .base import RecordExists, RecordNotFound, VersionConflict

logger = logging.getLogger("xorack.backends.dynamodb")

_CONDITION_FAILED = "ConditionalCheckFailedException"
_ATTR_NAME = re.compile(r"^[A-Za-z0-9_.\-]{1,255}$")


# =============================== Конфиг ===============================

class DynamoDBConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    table: str = Field(..., min_length=1, max_length=255, description="Имя таблицы ack-цепочек")
    partition_key: str = Field(..., min_length=1, description="Имя атрибута partition key (тег)")
    stamp_attribute: str = Field("stamp", min_length=1)

    region_name: Optional[str] = None
    endpoint_url: Optional[str] = Field(None, description="Например, DynamoDB Local")
    profile_name: Optional[str] = None
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_session_token: Optional[str] = None

    connect_timeout_s: int = Field(5, ge=1, le=60)
    read_timeout_s: int = Field(10, ge=1, le=300)
    max_attempts: int = Field(3, ge=1, le=15, description="Ретраи botocore на транспортном уровне")

    @field_validator("partition_key", "stamp_attribute")
    @classmethod
    def _attr_name(cls, v: str) -> str:
        if not _ATTR_NAME.match(v):
            raise ValueError(f"invalid attribute name: {v!r}")
        return v

    @model_validator(mode="after")
    def _distinct_attrs(self) -> "DynamoDBConfig":
        if self.partition_key == self.stamp_attribute:
            raise ValueError("partition_key and stamp_attribute must differ")
        return self


# ============================ Вспомогательное =========================

def _is_condition_failure(e: ClientError) -> bool:
    return (e.response or {}).get("Error", {}).get("Code") == _CONDITION_FAILED


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, Binary):
        return bytes(value.value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise TypeError(f"unexpected stamp attribute type: {type(value).__name__}")


# ============================= Основной класс =========================

class DynamoDBBackend:
    """
    Условное хранилище поверх таблицы DynamoDB (boto3 Table resource).

    Blocking boto3 calls run in a worker thread. A ready Table handle may be
    passed in; otherwise one is built lazily from ``cfg``.
    """

    def __init__(
        self,
        cfg: Union[DynamoDBConfig, Mapping[str, Any]],
        *,
        table: Any = None,
    ) -> None:
        self.cfg = cfg if isinstance(cfg, DynamoDBConfig) else DynamoDBConfig.model_validate(dict(cfg))
        self._table = table

    # ---------------------------- Инициализация ----------------------------

    def _boto_config(self) -> BotoConfig:
        return BotoConfig(
            region_name=self.cfg.region_name,
            connect_timeout=self.cfg.connect_timeout_s,
            read_timeout=self.cfg.read_timeout_s,
            retries={"max_attempts": self.cfg.max_attempts, "mode": "standard"},
        )

    def _ensure_table(self) -> Any:
        if self._table is not None:
            return self._table
        try:
            session = boto3.Session(
                profile_name=self.cfg.profile_name,
                aws_access_key_id=self.cfg.aws_access_key_id,
                aws_secret_access_key=self.cfg.aws_secret_access_key,
                aws_session_token=self.cfg.aws_session_token,
                region_name=self.cfg.region_name,
            )
            resource = session.resource(
                "dynamodb",
                endpoint_url=self.cfg.endpoint_url,
                config=self._boto_config(),
            )
            self._table = resource.Table(self.cfg.table)
        except BotoCoreError as e:
            raise BackendUnavailable(f"Failed to initialize DynamoDB table: {e}") from e
        logger.info("DynamoDB table bound", extra={"table": self.cfg.table})
        return self._table

    # ----------------------------- Утилиты вызовов -----------------------------

    def _key(self, key: str) -> Dict[str, Any]:
        return {self.cfg.partition_key: key}

    def _item(self, key: str, value: bytes) -> Dict[str, Any]:
        return {self.cfg.partition_key: key, self.cfg.stamp_attribute: value}

    def _names(self, *, with_stamp: bool = False) -> Dict[str, str]:
        names = {"#pk": self.cfg.partition_key}
        if with_stamp:
            names["#stamp"] = self.cfg.stamp_attribute
        return names

    async def _call(self, fn_name: str, **kwargs: Any) -> Dict[str, Any]:
        table = await asyncio.to_thread(self._ensure_table)
        kwargs["ReturnConsumedCapacity"] = "TOTAL"
        resp = await asyncio.to_thread(getattr(table, fn_name), **kwargs)
        consumed = (resp or {}).get("ConsumedCapacity")
        if consumed:
            logger.debug(
                "%s consumed capacity", fn_name,
                extra={"capacity_units": consumed.get("CapacityUnits"), "table": self.cfg.table},
            )
        return resp or {}

    # ----------------------------- Контракт -----------------------------

    async def put_if_absent(self, key: str, value: bytes) -> None:
        try:
            await self._call(
                "put_item",
                Item=self._item(key, value),
                ConditionExpression="attribute_not_exists(#pk)",
                ExpressionAttributeNames=self._names(),
            )
        except ClientError as e:
            if _is_condition_failure(e):
                raise RecordExists(key) from e
            raise

    async def delete_if_exists(self, key: str) -> None:
        try:
            await self._call(
                "delete_item",
                Key=self._key(key),
                ConditionExpression="attribute_exists(#pk)",
                ExpressionAttributeNames=self._names(),
            )
        except ClientError as e:
            if _is_condition_failure(e):
                raise RecordNotFound(key) from e
            raise

    async def get_consistent(self, key: str) -> bytes:
        resp = await self._call("get_item", Key=self._key(key), ConsistentRead=True)
        item = resp.get("Item")
        if item is None:
            raise RecordNotFound(key)
        if self.cfg.stamp_attribute not in item:
            raise ValueError(f"record {key!r} has no {self.cfg.stamp_attribute!r} attribute")
        return _to_bytes(item[self.cfg.stamp_attribute])

    async def put_if_version_matches(self, key: str, new_value: bytes, expected: bytes) -> None:
        try:
            await self._call(
                "put_item",
                Item=self._item(key, new_value),
                ConditionExpression="attribute_exists(#pk) and #stamp = :stamp",
                ExpressionAttributeNames=self._names(with_stamp=True),
                ExpressionAttributeValues={":stamp": expected},
            )
        except ClientError as e:
            if _is_condition_failure(e):
                raise VersionConflict(key) from e
            raise

    async def delete_if_version_matches(self, key: str, expected: bytes) -> None:
        try:
            await self._call(
                "delete_item",
                Key=self._key(key),
                ConditionExpression="attribute_exists(#pk) and #stamp = :stamp",
                ExpressionAttributeNames=self._names(with_stamp=True),
                ExpressionAttributeValues={":stamp": expected},
            )
        except ClientError as e:
            if _is_condition_failure(e):
                raise VersionConflict(key) from e
            raise


__all__ = ["DynamoDBConfig", "DynamoDBBackend"]
