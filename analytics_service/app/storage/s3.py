"""
S3 event archival.

Every event is written twice under the same key: a pretty-printed copy in
the historical bucket (STANDARD) and a gzip copy in the archive bucket
(GLACIER). Keys partition by the event's own UTC timestamp:

    events/{yyyy}/{mm}/{dd}/{hh}/{eventType}/{eventId}.json
"""

import asyncio
import gzip
import json
from typing import Any, Dict, List, Optional, Sequence

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from catalog_common.errors import StorageError
from catalog_common.events import BaseEvent, format_timestamp
from catalog_common.events.schemas import ensure_utc
from catalog_common.utils.logging import setup_service_logging

logger = setup_service_logging("analytics_service.storage.s3")

ARCHIVE_BATCH_SIZE = 10


def archive_key(event: BaseEvent) -> str:
    ts = ensure_utc(event.timestamp)
    return (
        f"events/{ts:%Y}/{ts:%m}/{ts:%d}/{ts:%H}/"
        f"{event.event_type}/{event.event_id}.json"  # type: ignore[attr-defined]
    )


def object_metadata(event: BaseEvent) -> Dict[str, str]:
    return {
        "eventId": event.event_id,
        "eventType": event.event_type,  # type: ignore[attr-defined]
        "timestamp": format_timestamp(event.timestamp),
        "sellerId": event.data.seller_id,  # type: ignore[attr-defined]
        "productId": event.data.product_id,  # type: ignore[attr-defined]
    }


class EventArchiver:
    """Writes events to the historical and archive buckets"""

    def __init__(
        self,
        historical_bucket: str,
        archive_bucket: str,
        region_name: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        client: Any = None,
    ):
        self.historical_bucket = historical_bucket
        self.archive_bucket = archive_bucket
        if client is None:
            session_kwargs: Dict[str, Any] = {"region_name": region_name}
            if aws_access_key_id and aws_secret_access_key:
                session_kwargs["aws_access_key_id"] = aws_access_key_id
                session_kwargs["aws_secret_access_key"] = aws_secret_access_key
            if endpoint_url:
                # MinIO and other local endpoints need path-style addressing
                session_kwargs["endpoint_url"] = endpoint_url
                session_kwargs["config"] = Config(
                    s3={"addressing_style": "path"}
                )
            client = boto3.client("s3", **session_kwargs)
        self.client = client

    async def archive(self, event: BaseEvent) -> str:
        """Store ``event`` in both buckets and return its object key"""
        key = archive_key(event)
        metadata = object_metadata(event)
        payload = event.to_dict()

        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.historical_bucket,
                Key=key,
                Body=json.dumps(payload, indent=2).encode("utf-8"),
                ContentType="application/json",
                Metadata=metadata,
                StorageClass="STANDARD",
            )
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.archive_bucket,
                Key=key,
                Body=gzip.compress(json.dumps(payload).encode("utf-8"), mtime=0),
                ContentType="application/json",
                ContentEncoding="gzip",
                Metadata=metadata,
                StorageClass="GLACIER",
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(
                "Failed to archive event to S3",
                extra={
                    "operation": "archive_event",
                    "event_id": event.event_id,
                    "event_type": event.event_type,  # type: ignore[attr-defined]
                    "s3_key": key,
                    "error": str(e),
                },
            )
            raise StorageError(
                f"S3 archival failed for {key}: {e}",
                event_id=event.event_id,
                event_type=event.event_type,  # type: ignore[attr-defined]
                cause=e,
            ) from e

        logger.info(
            "Event archived to S3",
            extra={
                "operation": "archive_event",
                "event_id": event.event_id,
                "event_type": event.event_type,  # type: ignore[attr-defined]
                "s3_key": key,
                "buckets": [self.historical_bucket, self.archive_bucket],
            },
        )
        return key

    async def archive_batch(self, events: Sequence[BaseEvent]) -> List[str]:
        """Archive events concurrently, ``ARCHIVE_BATCH_SIZE`` at a time"""
        keys: List[str] = []
        batches = [
            events[i : i + ARCHIVE_BATCH_SIZE]
            for i in range(0, len(events), ARCHIVE_BATCH_SIZE)
        ]
        logger.info(
            "Starting batch archival",
            extra={"operation": "archive_batch", "event_count": len(events)},
        )
        for batch in batches:
            keys.extend(await asyncio.gather(*(self.archive(e) for e in batch)))

        logger.info(
            "Batch archival completed",
            extra={
                "operation": "archive_batch",
                "event_count": len(events),
                "batches_processed": len(batches),
            },
        )
        return keys

    async def health_check(self) -> bool:
        try:
            for bucket in (self.historical_bucket, self.archive_bucket):
                await asyncio.to_thread(self.client.head_bucket, Bucket=bucket)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                "S3 health check failed",
                extra={"error": str(e), "operation": "health_check"},
            )
            return False
