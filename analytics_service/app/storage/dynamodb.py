"""
DynamoDB-backed analytics store.

One table holds two record kinds:

    event log          pk=eventId             sk=timestamp
    product analytics  pk=sellerId#productId  sk=timestamp#eventType

The ``EventTypeIndex`` GSI (``eventType``, ``timestamp``) serves
"all events of one kind in time order" queries.
"""

import asyncio
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from catalog_common.errors import StorageError
from catalog_common.utils.logging import setup_service_logging

logger = setup_service_logging("analytics_service.storage.dynamodb")

EVENT_TYPE_INDEX = "EventTypeIndex"


def to_dynamo(value: Any) -> Any:
    """Convert floats to Decimal and drop None attributes, recursively"""
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: to_dynamo(v) for k, v in value.items() if v is not None}
    if isinstance(value, (list, tuple)):
        return [to_dynamo(v) for v in value]
    return value


def from_dynamo(value: Any) -> Any:
    """Convert DynamoDB Decimals back to int/float for JSON responses"""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


class AnalyticsStore:
    """Put-by-key and query access to the analytics table"""

    def __init__(
        self,
        table_name: str,
        region_name: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        aws_access_key_id: Optional[str] = None,
        aws_secret_access_key: Optional[str] = None,
        resource: Any = None,
    ):
        self.table_name = table_name
        if resource is None:
            session_kwargs: Dict[str, Any] = {"region_name": region_name}
            if aws_access_key_id and aws_secret_access_key:
                session_kwargs["aws_access_key_id"] = aws_access_key_id
                session_kwargs["aws_secret_access_key"] = aws_secret_access_key
            if endpoint_url:
                session_kwargs["endpoint_url"] = endpoint_url
            resource = boto3.resource("dynamodb", **session_kwargs)
        self.table = resource.Table(table_name)

    async def put_event_log(self, record: Dict[str, Any]) -> None:
        await self._put(record, "put_event_log")

    async def put_analytics_record(self, record: Dict[str, Any]) -> None:
        await self._put(record, "put_analytics_record")

    async def get_product_history(
        self, seller_id: str, product_id: str, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """All analytics records for one product, oldest first"""
        query: Dict[str, Any] = {
            "KeyConditionExpression": Key("pk").eq(f"{seller_id}#{product_id}"),
            "ScanIndexForward": True,
        }
        if limit:
            query["Limit"] = limit
        return await self._query(query, "get_product_history", limit=limit)

    async def get_events_by_type(
        self, event_type: str, since: Optional[str] = None, limit: int = 100
    ) -> List[Dict[str, Any]]:
        """Event log records of one kind, oldest first, optionally from ``since``"""
        condition = Key("eventType").eq(event_type)
        if since:
            condition = condition & Key("timestamp").gte(since)
        query: Dict[str, Any] = {
            "IndexName": EVENT_TYPE_INDEX,
            "KeyConditionExpression": condition,
            "FilterExpression": Attr("recordType").eq("event_log"),
            "ScanIndexForward": True,
            "Limit": limit,
        }
        # Limit caps items evaluated per page, before the recordType filter
        return await self._query(query, "get_events_by_type", limit=limit)

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(
                self.table.meta.client.describe_table, TableName=self.table_name
            )
            return True
        except (ClientError, BotoCoreError) as e:
            logger.warning(
                "DynamoDB health check failed",
                extra={"table": self.table_name, "error": str(e), "operation": "health_check"},
            )
            return False

    async def _put(self, record: Dict[str, Any], operation: str) -> None:
        try:
            await asyncio.to_thread(self.table.put_item, Item=to_dynamo(record))
        except (ClientError, BotoCoreError) as e:
            raise StorageError(
                f"DynamoDB write to {self.table_name} failed: {e}",
                event_id=record.get("eventId"),
                event_type=record.get("eventType"),
                cause=e,
            ) from e

        logger.debug(
            "Stored record",
            extra={
                "operation": operation,
                "table": self.table_name,
                "pk": record.get("pk"),
                "sk": record.get("sk"),
            },
        )

    async def _query(
        self, query: Dict[str, Any], operation: str, limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Follow LastEvaluatedKey until ``limit`` items are collected or pages run out"""
        items: List[Dict[str, Any]] = []
        pages = 0
        while True:
            try:
                response = await asyncio.to_thread(self.table.query, **query)
            except (ClientError, BotoCoreError) as e:
                raise StorageError(
                    f"DynamoDB query on {self.table_name} failed: {e}", cause=e
                ) from e

            pages += 1
            items.extend(from_dynamo(item) for item in response.get("Items", []))
            if limit and len(items) >= limit:
                items = items[:limit]
                break

            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            query = {**query, "ExclusiveStartKey": last_key}

        logger.debug(
            "Queried records",
            extra={
                "operation": operation,
                "table": self.table_name,
                "count": len(items),
                "pages": pages,
            },
        )
        return items
