import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiokafka.errors import IllegalStateError, KafkaConnectionError, KafkaError
from aiokafka.structs import TopicPartition

from catalog_common.errors import PublishError
from catalog_common.events import EventProcessor, MessageOutcome
from catalog_common.events.kafka_client import KafkaEventConsumer, KafkaEventPublisher


@pytest.fixture
def publisher():
    publisher = KafkaEventPublisher(
        bootstrap_servers="localhost:9092",
        client_id="test-producer",
        publish_retries=3,
        publish_retry_delay=0,
    )
    publisher.producer = MagicMock()
    publisher.producer.send_and_wait = AsyncMock(
        return_value=SimpleNamespace(partition=0, offset=7)
    )
    publisher.is_connected = True
    return publisher


class TestKafkaEventPublisher:
    @pytest.mark.asyncio
    async def test_publish_sends_key_value_and_headers(self, publisher):
        await publisher.publish(
            "product-events", "P1", b"{}", headers=[("eventType", b"ProductCreated")]
        )

        publisher.producer.send_and_wait.assert_awaited_once_with(
            topic="product-events",
            value=b"{}",
            key="P1",
            headers=[("eventType", b"ProductCreated")],
        )

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, publisher):
        publisher.producer.send_and_wait.side_effect = [
            KafkaError(),
            SimpleNamespace(partition=1, offset=3),
        ]

        await publisher.publish("product-events", "P1", b"{}")

        assert publisher.producer.send_and_wait.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_raise_publish_error(self, publisher):
        publisher.producer.send_and_wait.side_effect = KafkaError()

        with pytest.raises(PublishError) as exc_info:
            await publisher.publish("notifications", "P1", b"{}")

        assert publisher.producer.send_and_wait.await_count == 3
        assert isinstance(exc_info.value.cause, KafkaError)

    @pytest.mark.asyncio
    async def test_publish_without_connection_fails_fast(self, publisher):
        publisher.is_connected = False

        with pytest.raises(PublishError):
            await publisher.publish("product-events", "P1", b"{}")
        publisher.producer.send_and_wait.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_start_gives_up_without_raising(self):
        producer = MagicMock()
        producer.start = AsyncMock(side_effect=KafkaConnectionError())
        publisher = KafkaEventPublisher(
            bootstrap_servers="localhost:9092",
            client_id="test-producer",
            max_retries=2,
            retry_delay=0,
        )

        with patch(
            "catalog_common.events.kafka_client.AIOKafkaProducer", return_value=producer
        ):
            await publisher.start(timeout=1)

        assert producer.start.await_count == 2
        assert publisher.is_connected is False
        assert await publisher.health_check() is False


class StubProcessor(EventProcessor):
    def __init__(self, outcome):
        super().__init__({})
        self.outcome = outcome
        self.seen = []

    async def on_message(self, raw):
        self.seen.append(raw)
        return self.outcome


def _consumer(outcome):
    consumer = KafkaEventConsumer(
        bootstrap_servers="localhost:9092",
        topic="product-events",
        group_id="test-group",
        client_id="test-consumer",
        processor=StubProcessor(outcome),
        redelivery_backoff=0,
        max_retries=2,
        retry_delay=0,
    )
    consumer.consumer = MagicMock()
    consumer.consumer.commit = AsyncMock()
    return consumer


TP = TopicPartition("product-events", 0)


class TestKafkaEventConsumer:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome", [MessageOutcome.APPLIED, MessageOutcome.SKIPPED])
    async def test_acknowledged_outcomes_commit_next_offset(self, outcome):
        consumer = _consumer(outcome)

        committed = await consumer.process_message(
            TP, SimpleNamespace(offset=41, value=b"{}")
        )

        assert committed is True
        consumer.consumer.commit.assert_awaited_once_with({TP: 42})
        consumer.consumer.seek.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_outcome_rewinds_without_commit(self):
        consumer = _consumer(MessageOutcome.FAILED)

        committed = await consumer.process_message(
            TP, SimpleNamespace(offset=41, value=b"{}")
        )

        assert committed is False
        consumer.consumer.seek.assert_called_once_with(TP, 41)
        consumer.consumer.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_commit_failure_reports_not_committed(self):
        consumer = _consumer(MessageOutcome.APPLIED)
        consumer.consumer.commit.side_effect = KafkaError()

        committed = await consumer.process_message(
            TP, SimpleNamespace(offset=0, value=b"{}")
        )

        assert committed is False

    @pytest.mark.asyncio
    async def test_start_raises_after_retry_budget(self):
        kafka_consumer = MagicMock()
        kafka_consumer.start = AsyncMock(side_effect=KafkaConnectionError())
        kafka_consumer.stop = AsyncMock()
        consumer = _consumer(MessageOutcome.APPLIED)
        consumer.consumer = None

        with patch(
            "catalog_common.events.kafka_client.AIOKafkaConsumer",
            return_value=kafka_consumer,
        ) as consumer_cls:
            with pytest.raises(KafkaConnectionError):
                await consumer.start(timeout=1)

        assert kafka_consumer.start.await_count == 2
        assert consumer_cls.call_args.kwargs["enable_auto_commit"] is False
        assert await consumer.health_check() is False


class SinglePartitionLog:
    """Fetches records one at a time and stops its consumer once drained."""

    def __init__(self, owner, values, seek_error=None):
        self.owner = owner
        self.values = list(values)
        self.position = 0
        self.committed = None
        self.seek_error = seek_error

    async def getmany(self, timeout_ms=0, max_records=1):
        if self.position >= len(self.values):
            self.owner.running = False
            return {}
        message = SimpleNamespace(offset=self.position, value=self.values[self.position])
        self.position += 1
        return {TP: [message]}

    def seek(self, tp, offset):
        if self.seek_error is not None:
            raise self.seek_error
        self.position = offset

    async def commit(self, offsets):
        self.committed = offsets[TP]


class ScriptedProcessor(EventProcessor):
    """Plays back outcomes in order; exceptions in the script are raised."""

    def __init__(self, *script):
        super().__init__({})
        self.script = list(script)
        self.seen = []

    async def on_message(self, raw):
        self.seen.append(raw)
        step = self.script.pop(0) if self.script else MessageOutcome.APPLIED
        if isinstance(step, Exception):
            raise step
        return step


def _looping_consumer(processor, values, seek_error=None):
    consumer = KafkaEventConsumer(
        bootstrap_servers="localhost:9092",
        topic="product-events",
        group_id="test-group",
        client_id="test-consumer",
        processor=processor,
        redelivery_backoff=0,
    )
    consumer.consumer = SinglePartitionLog(consumer, values, seek_error=seek_error)
    consumer.running = True
    consumer.is_connected = True
    return consumer


class TestConsumeLoop:
    @pytest.mark.asyncio
    async def test_unexpected_error_redelivers_and_keeps_polling(self):
        processor = ScriptedProcessor(RecursionError("too deep"))
        consumer = _looping_consumer(processor, [b"a", b"b"])

        await consumer._consume_messages()

        assert processor.seen == [b"a", b"a", b"b"]
        assert consumer.consumer.committed == 2

    @pytest.mark.asyncio
    async def test_seek_after_rebalance_does_not_end_loop(self):
        processor = ScriptedProcessor(MessageOutcome.FAILED, MessageOutcome.APPLIED)
        consumer = _looping_consumer(
            processor, [b"a", b"b"], seek_error=IllegalStateError("partition revoked")
        )

        await consumer._consume_messages()

        assert processor.seen == [b"a", b"b"]
        assert consumer.consumer.committed == 2

    @pytest.mark.asyncio
    async def test_crashed_loop_reports_unhealthy(self):
        consumer = _looping_consumer(ScriptedProcessor(), [])
        consumer.consumer.getmany = AsyncMock(side_effect=RuntimeError("boom"))

        consumer._start_loop()
        await asyncio.wait([consumer._task])
        await asyncio.sleep(0)

        assert consumer.running is False
        assert await consumer.health_check() is False

        consumer.consumer = None
        await consumer.stop()

    @pytest.mark.asyncio
    async def test_failed_connection_attempts_are_closed(self):
        kafka_consumer = MagicMock()
        kafka_consumer.start = AsyncMock(side_effect=KafkaConnectionError())
        kafka_consumer.stop = AsyncMock()
        consumer = _consumer(MessageOutcome.APPLIED)
        consumer.consumer = None

        with patch(
            "catalog_common.events.kafka_client.AIOKafkaConsumer",
            return_value=kafka_consumer,
        ):
            with pytest.raises(KafkaConnectionError):
                await consumer.start(timeout=1)

        assert kafka_consumer.stop.await_count == 2
