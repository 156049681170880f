import asyncio
from typing import Iterable, List, Optional, Tuple

from aiokafka import AIOKafkaConsumer, AIOKafkaProducer  # type: ignore
from aiokafka.admin import AIOKafkaAdminClient, NewTopic  # type: ignore
from aiokafka.errors import KafkaConnectionError, KafkaError  # type: ignore
from aiokafka.structs import TopicPartition  # type: ignore

from ..errors import PublishError
from ..utils.logging import setup_service_logging
from .base import EventPublisher
from .processor import EventProcessor

logger = setup_service_logging("catalog_common.events.kafka")


class KafkaEventPublisher(EventPublisher):
    """
    Kafka publisher with connection retry logic and a bounded publish retry budget
    """

    def __init__(
        self,
        bootstrap_servers: str,
        client_id: str,
        max_retries: int = 20,
        retry_delay: float = 2.0,
        publish_retries: int = 3,
        publish_retry_delay: float = 0.5,
        topics: Optional[Iterable[str]] = None,
    ):
        self.bootstrap_servers = bootstrap_servers
        self.client_id = client_id
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.publish_retries = publish_retries
        self.publish_retry_delay = publish_retry_delay
        self.topics = list(topics or [])
        self.producer: Optional[AIOKafkaProducer] = None
        self.is_connected = False
        self._connection_lock = asyncio.Lock()

    async def ensure_topic_exists(self, topic_name: str, num_partitions: int = 3):
        """Ensure a Kafka topic exists, creating it if necessary."""
        admin_client = AIOKafkaAdminClient(bootstrap_servers=self.bootstrap_servers)
        await admin_client.start()  # type: ignore
        try:
            topics = await admin_client.list_topics()
            if topic_name not in topics:
                await admin_client.create_topics(
                    [
                        NewTopic(
                            name=topic_name,
                            num_partitions=num_partitions,
                            replication_factor=1,
                        )
                    ]
                )
                logger.info(
                    "Created Kafka topic",
                    extra={"topic_name": topic_name, "operation": "create_topic"},
                )
        except KafkaError as e:
            logger.warning(
                "Error ensuring Kafka topic exists",
                extra={
                    "topic_name": topic_name,
                    "error": str(e),
                    "operation": "ensure_topic_exists",
                },
            )
        finally:
            await admin_client.close()  # type: ignore

    async def start(self, timeout: float = 30.0) -> None:
        """Start Kafka producer with retry logic"""
        async with self._connection_lock:
            if self.producer and self.is_connected:
                return

            self.producer = AIOKafkaProducer(
                bootstrap_servers=self.bootstrap_servers,
                client_id=self.client_id,
                key_serializer=lambda x: x.encode("utf-8") if x else None,  # type: ignore
                acks="all",
                enable_idempotence=True,
                retry_backoff_ms=1000,
                request_timeout_ms=30000,
                connections_max_idle_ms=540000,
            )

            # Retry connection with exponential backoff
            for attempt in range(self.max_retries):
                try:
                    logger.info(
                        "Attempting Kafka connection",
                        extra={
                            "attempt": attempt + 1,
                            "max_retries": self.max_retries,
                            "operation": "kafka_connect",
                        },
                    )
                    await asyncio.wait_for(self.producer.start(), timeout=timeout)  # type: ignore

                    self.is_connected = True
                    logger.info("Successfully connected to Kafka")
                    break

                except (KafkaConnectionError, asyncio.TimeoutError) as e:
                    delay = self.retry_delay * (2**attempt)
                    logger.warning(
                        f"Kafka connection attempt {attempt + 1} failed: {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    if attempt < self.max_retries - 1:
                        await asyncio.sleep(delay)
                    else:
                        logger.error(
                            f"Failed to connect to Kafka after {self.max_retries} attempts. "
                            "Publishing will fail until the producer is restarted"
                        )
                        self.is_connected = False
                        return

        for topic in self.topics:
            await self.ensure_topic_exists(topic)

    async def stop(self) -> None:
        """Flush and stop Kafka producer"""
        async with self._connection_lock:
            if self.producer:
                try:
                    await self.producer.stop()  # type: ignore
                    logger.info("Kafka producer stopped")
                except KafkaError as e:
                    logger.warning(
                        "Error stopping Kafka producer",
                        extra={"error": str(e), "operation": "stop_producer"},
                    )
                finally:
                    self.producer = None
                    self.is_connected = False

    async def publish(
        self,
        topic: str,
        key: str,
        value: bytes,
        headers: Optional[List[Tuple[str, bytes]]] = None,
    ) -> None:
        """Publish one message; raise PublishError once the retry budget is spent"""
        if not self.is_connected or not self.producer:
            raise PublishError(f"Kafka producer not connected, cannot publish to {topic}")

        last_error: Optional[Exception] = None
        for attempt in range(self.publish_retries):
            try:
                metadata = await self.producer.send_and_wait(  # type: ignore
                    topic=topic,
                    value=value,
                    key=key,
                    headers=headers or [],
                )
                logger.debug(
                    "Published message to Kafka topic",
                    extra={
                        "topic": topic,
                        "key": key,
                        "partition": getattr(metadata, "partition", None),
                        "offset": getattr(metadata, "offset", None),
                        "operation": "publish_message",
                    },
                )
                return
            except KafkaError as e:
                last_error = e
                logger.warning(
                    "Kafka publish attempt failed",
                    extra={
                        "topic": topic,
                        "key": key,
                        "attempt": attempt + 1,
                        "publish_retries": self.publish_retries,
                        "error": str(e),
                        "operation": "publish_message_retry",
                    },
                )
                if attempt < self.publish_retries - 1:
                    await asyncio.sleep(self.publish_retry_delay * (2**attempt))

        raise PublishError(
            f"Failed to publish to {topic} after {self.publish_retries} attempts",
            cause=last_error,
        )

    async def health_check(self) -> bool:
        """Check if Kafka connection is healthy"""
        try:
            if not self.producer or not self.is_connected:
                return False

            # Try to get cluster metadata as health check
            metadata = await self.producer.client.fetch_all_metadata()  # type: ignore
            return len(metadata.brokers()) > 0  # type: ignore

        except KafkaError as e:
            logger.warning(
                "Kafka health check failed",
                extra={"error": str(e), "operation": "health_check"},
            )
            return False


class KafkaEventConsumer:
    """
    Consumer-group member for one topic.

    Messages are pulled one at a time and handed to an ``EventProcessor``.
    The offset is committed only after the processor allows it; on a failed
    outcome the consumer seeks back to the same offset so the message is
    redelivered on the next poll, keeping per-partition order intact.
    """

    def __init__(
        self,
        bootstrap_servers: str,
        topic: str,
        group_id: str,
        client_id: str,
        processor: EventProcessor,
        poll_timeout_ms: int = 1000,
        redelivery_backoff: float = 1.0,
        max_retries: int = 5,
        retry_delay: float = 2.0,
        shutdown_timeout: float = 30.0,
        auto_offset_reset: str = "earliest",
    ):
        self.bootstrap_servers = bootstrap_servers
        self.topic = topic
        self.group_id = group_id
        self.client_id = client_id
        self.processor = processor
        self.poll_timeout_ms = poll_timeout_ms
        self.redelivery_backoff = redelivery_backoff
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.shutdown_timeout = shutdown_timeout
        self.auto_offset_reset = auto_offset_reset
        self.consumer: Optional[AIOKafkaConsumer] = None
        self.running = False
        self.is_connected = False
        self._task: Optional[asyncio.Task] = None

    async def start(self, timeout: float = 30.0) -> None:
        """Join the consumer group with retry logic and start the poll loop"""
        for attempt in range(self.max_retries):
            consumer = AIOKafkaConsumer(
                self.topic,
                bootstrap_servers=self.bootstrap_servers,
                group_id=self.group_id,
                client_id=self.client_id,
                enable_auto_commit=False,
                auto_offset_reset=self.auto_offset_reset,
            )
            try:
                logger.info(
                    "Attempting Kafka consumer connection",
                    extra={
                        "topic": self.topic,
                        "group_id": self.group_id,
                        "attempt": attempt + 1,
                        "max_retries": self.max_retries,
                        "operation": "consumer_connect",
                    },
                )
                await asyncio.wait_for(consumer.start(), timeout=timeout)  # type: ignore
                self.consumer = consumer
                self.is_connected = True
                break

            except (KafkaConnectionError, asyncio.TimeoutError) as e:
                await self._close_quietly(consumer)
                delay = self.retry_delay * (2**attempt)
                logger.warning(
                    f"Kafka consumer connection attempt {attempt + 1} failed: {e}. "
                    f"Retrying in {delay} seconds..."
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        "Failed to connect Kafka consumer after all retries",
                        extra={"topic": self.topic, "group_id": self.group_id},
                    )
                    raise KafkaConnectionError(
                        f"Could not connect to Kafka at {self.bootstrap_servers}"
                    ) from e

        self._start_loop()
        logger.info(
            "Kafka consumer started",
            extra={
                "topic": self.topic,
                "group_id": self.group_id,
                "operation": "consumer_started",
            },
        )

    async def stop(self) -> None:
        """Stop polling, let the in-flight message finish, then leave the group"""
        self.running = False

        if self._task and self._task.done():
            # Crashed loop, already logged by _on_loop_done
            self._task = None
        elif self._task:
            try:
                await asyncio.wait_for(
                    asyncio.shield(self._task), timeout=self.shutdown_timeout
                )
            except asyncio.TimeoutError:
                logger.error(
                    "In-flight message did not finish before shutdown timeout",
                    extra={"topic": self.topic, "operation": "stop_consumer"},
                )
                self._task.cancel()
            self._task = None

        if self.consumer:
            try:
                await self.consumer.stop()  # type: ignore
            except KafkaError as e:
                logger.warning(
                    "Error stopping Kafka consumer",
                    extra={
                        "topic": self.topic,
                        "error": str(e),
                        "operation": "stop_consumer_error",
                    },
                )
            finally:
                self.consumer = None
                self.is_connected = False

        logger.info(
            "Kafka consumer stopped",
            extra={"topic": self.topic, "operation": "stop_consumer"},
        )

    def _start_loop(self) -> None:
        self.running = True
        self._task = asyncio.create_task(self._consume_messages())
        self._task.add_done_callback(self._on_loop_done)

    def _on_loop_done(self, task: asyncio.Task) -> None:
        if task.cancelled() or task.exception() is None:
            return
        # Poll loop is gone, nothing will consume until restart
        self.running = False
        self.is_connected = False
        logger.error(
            "Kafka consumer loop crashed",
            extra={
                "topic": self.topic,
                "group_id": self.group_id,
                "error": str(task.exception()),
                "operation": "consume_loop",
            },
            exc_info=task.exception(),
        )

    @staticmethod
    async def _close_quietly(consumer: AIOKafkaConsumer) -> None:
        try:
            await consumer.stop()  # type: ignore
        except KafkaError as e:
            logger.debug(
                "Error closing failed Kafka consumer",
                extra={"error": str(e), "operation": "consumer_connect"},
            )

    async def _recover(self, tp: TopicPartition, message, error: Exception) -> None:
        """Rewind to a record whose processing raised, then back off"""
        logger.error(
            "Unexpected error processing message, leaving it for redelivery",
            extra={
                "topic": tp.topic,
                "partition": tp.partition,
                "offset": message.offset,
                "error": str(error),
                "operation": "process_message",
            },
            exc_info=error,
        )
        try:
            self.consumer.seek(tp, message.offset)  # type: ignore
        except KafkaError as e:
            # Partition was revoked; its new owner resumes from the committed offset
            logger.warning(
                "Could not rewind partition",
                extra={
                    "topic": tp.topic,
                    "partition": tp.partition,
                    "offset": message.offset,
                    "error": str(e),
                    "operation": "seek_partition",
                },
            )
        await asyncio.sleep(self.redelivery_backoff)

    async def _consume_messages(self) -> None:
        while self.running:
            try:
                batch = await self.consumer.getmany(  # type: ignore
                    timeout_ms=self.poll_timeout_ms, max_records=1
                )
            except KafkaError as e:
                logger.error(
                    "Kafka poll failed",
                    extra={
                        "topic": self.topic,
                        "error": str(e),
                        "operation": "poll_error",
                    },
                )
                await asyncio.sleep(self.redelivery_backoff)
                continue

            for tp, messages in batch.items():
                for message in messages:
                    try:
                        await self.process_message(tp, message)
                    except Exception as e:
                        await self._recover(tp, message, e)
                        break

    async def process_message(self, tp: TopicPartition, message) -> bool:
        """
        Process one fetched record and settle its offset.

        Returns True when the offset was committed.
        """
        logger.debug(
            "Received message",
            extra={
                "topic": tp.topic,
                "partition": tp.partition,
                "offset": message.offset,
                "operation": "receive_message",
            },
        )

        outcome = await self.processor.on_message(message.value)

        if not outcome.should_commit:
            # Rewind so the next poll fetches this record again
            self.consumer.seek(tp, message.offset)  # type: ignore
            await asyncio.sleep(self.redelivery_backoff)
            return False

        try:
            await self.consumer.commit({tp: message.offset + 1})  # type: ignore
        except KafkaError as e:
            # The record will be redelivered after the rebalance; handlers are idempotent
            logger.warning(
                "Offset commit failed",
                extra={
                    "topic": tp.topic,
                    "partition": tp.partition,
                    "offset": message.offset,
                    "error": str(e),
                    "operation": "commit_offset",
                },
            )
            return False
        return True

    async def health_check(self) -> bool:
        return self.is_connected and self.running
