# lambdas/stream_processor/app.py
"""
Stream processor Lambda.

Triggered by the DynamoDB Stream on the PLG table. Classifies every change
record by entity type and republishes it to the Payment, Customer or License
SNS topic for fan-out to the downstream subscribers.
"""
import asyncio
from functools import lru_cache
from typing import Any, Dict, Optional

import boto3
from botocore.config import Config

from .coordinator import BatchCoordinator
from .models import AppSettings, ChangeRecord, get_settings
from .publisher import TopicPublisher
from .structured_log import StructuredLogger

SERVICE_NAME = "stream-processor"


@lru_cache(maxsize=None)
def get_sns_client(region: str, max_attempts: int, max_pool_connections: int = 100):
    """
    Creates the SNS client once per warm container.
    Throttling and transient errors are retried by botocore, not by our code.
    """
    return boto3.client(
        'sns',
        region_name=region,
        config=Config(
            retries={"max_attempts": max_attempts, "mode": "standard"},
            max_pool_connections=max_pool_connections,
        ),
    )


def build_coordinator(
    settings: Optional[AppSettings] = None,
    sns_client=None,
    log: Optional[StructuredLogger] = None,
) -> BatchCoordinator:
    """
    Wires the publisher and coordinator together.
    Pass sns_client to substitute the transport (e.g. in tests or local runs).
    """
    settings = settings or get_settings()
    log = log or StructuredLogger(SERVICE_NAME)
    if sns_client is None:
        sns_client = get_sns_client(settings.aws_region, settings.sns_max_attempts, settings.sns_max_pool_connections)

    publisher = TopicPublisher(sns_client, settings.topic_map(), log)
    return BatchCoordinator(publisher, log, environment=settings.environment)


def handler(event: Dict[str, Any], context: object) -> Dict[str, Any]:
    """
    Main Lambda handler.

    Raises BatchProcessingError when any record failed to publish, which
    makes the stream retry the whole batch.
    """
    log = StructuredLogger(SERVICE_NAME, getattr(context, "aws_request_id", None))
    coordinator = build_coordinator(log=log)

    raw_records = (event or {}).get("Records") or []
    records = [ChangeRecord.from_stream_record(raw) for raw in raw_records]

    result = asyncio.run(coordinator.process_batch(records))
    return {"processed": result.processed}
