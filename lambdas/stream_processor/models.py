# lambdas/stream_processor/models.py
"""
Pydantic models and settings for the stream processor.
"""
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Category(str, Enum):
    """Topic partition a change record is republished to."""
    PAYMENT = "PAYMENT"
    CUSTOMER = "CUSTOMER"
    LICENSE = "LICENSE"


class AppSettings(BaseSettings):
    """
    Manages env vars using Pydantic BaseSettings.
    A local .env file is read too, which is handy for run_live.py.
    """
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    aws_region: str = Field("us-east-1", alias='AWS_REGION')
    payment_events_topic_arn: Optional[str] = Field(None, alias='PAYMENT_EVENTS_TOPIC_ARN')
    customer_events_topic_arn: Optional[str] = Field(None, alias='CUSTOMER_EVENTS_TOPIC_ARN')
    license_events_topic_arn: Optional[str] = Field(None, alias='LICENSE_EVENTS_TOPIC_ARN')
    environment: Optional[str] = Field(None, alias='ENVIRONMENT')
    log_level: str = Field("DEBUG", alias='LOG_LEVEL')
    # Passed to botocore's standard retry mode; the publisher never retries itself.
    sns_max_attempts: int = Field(3, alias='SNS_MAX_ATTEMPTS')
    # Sized so a full stream batch can publish over concurrent connections.
    sns_max_pool_connections: int = Field(100, alias='SNS_MAX_POOL_CONNECTIONS')

    def topic_map(self) -> Dict[Category, Optional[str]]:
        """Maps each category to its topic ARN, with blank values treated as unset."""
        return {
            Category.PAYMENT: self.payment_events_topic_arn or None,
            Category.CUSTOMER: self.customer_events_topic_arn or None,
            Category.LICENSE: self.license_events_topic_arn or None,
        }


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Settings are read once per container (cold start)."""
    return AppSettings()


def _as_mapping(value: Any) -> Optional[Dict[str, Any]]:
    return value if isinstance(value, dict) else None


def _string_attribute(attributes: Optional[Dict[str, Any]], name: str) -> str:
    """Returns the `S` value of a typed DynamoDB attribute, or "" if it is missing or not a string."""
    wrapped = (attributes or {}).get(name)
    if not isinstance(wrapped, dict):
        return ""
    value = wrapped.get("S")
    return value if isinstance(value, str) else ""


class ChangeRecord(BaseModel):
    """
    One row-level mutation delivered by the DynamoDB Stream.
    Keys and images keep their typed wire format, e.g. {"PK": {"S": "LICENSE#abc"}}.
    """
    model_config = ConfigDict(frozen=True)

    event_name: str = ""
    keys: Dict[str, Any] = Field(default_factory=dict)
    new_image: Optional[Dict[str, Any]] = None
    old_image: Optional[Dict[str, Any]] = None
    event_id: Optional[str] = None
    event_source_arn: Optional[str] = None

    @classmethod
    def from_stream_record(cls, raw: Any) -> "ChangeRecord":
        """
        Builds a record from one entry of event['Records'].
        Missing or malformed sections degrade to empty values instead of raising.
        """
        raw = _as_mapping(raw) or {}
        dynamodb = _as_mapping(raw.get("dynamodb")) or {}
        event_name = raw.get("eventName")
        event_id = raw.get("eventID")
        source_arn = raw.get("eventSourceARN")
        return cls(
            event_name=event_name if isinstance(event_name, str) else "",
            keys=_as_mapping(dynamodb.get("Keys")) or {},
            new_image=_as_mapping(dynamodb.get("NewImage")),
            old_image=_as_mapping(dynamodb.get("OldImage")),
            event_id=event_id if isinstance(event_id, str) else None,
            event_source_arn=source_arn if isinstance(source_arn, str) else None,
        )

    @property
    def partition_key(self) -> str:
        return _string_attribute(self.keys, "PK")

    @property
    def sort_key(self) -> str:
        return _string_attribute(self.keys, "SK")

    def new_image_string(self, name: str) -> str:
        return _string_attribute(self.new_image, name)


def utc_timestamp() -> str:
    # Millisecond precision with a trailing Z, e.g. 2025-06-24T05:54:45.020Z
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class FanoutMessage(BaseModel):
    """
    The JSON body published to a category topic.
    Subscribers receive keys and images exactly as the stream emitted them.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_name: str = Field("", alias="eventName")
    keys: Dict[str, Any] = Field(default_factory=dict)
    new_image: Optional[Dict[str, Any]] = Field(None, alias="newImage")
    old_image: Optional[Dict[str, Any]] = Field(None, alias="oldImage")
    timestamp: str = Field(default_factory=utc_timestamp)
    environment: Optional[str] = None

    @classmethod
    def from_change_record(cls, record: ChangeRecord, environment: Optional[str] = None) -> "FanoutMessage":
        return cls(
            event_name=record.event_name,
            keys=record.keys,
            new_image=record.new_image,
            old_image=record.old_image,
            environment=environment,
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)


class BatchResult(BaseModel):
    """Per-invocation outcome counts."""
    processed: int = 0
    published: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def succeeded(self) -> int:
        return self.published + self.skipped
