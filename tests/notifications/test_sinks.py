import io
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aio_pika
import pytest

from hdfs_watcher.notifications.base import NotificationSink, build_message
from hdfs_watcher.notifications.console import ConsoleSink
from hdfs_watcher.notifications.rabbitmq import RabbitMqSink


def test_message_format():
    assert json.loads(build_message("http://x/a.txt")) == {"type": "hdfs", "url": "http://x/a.txt"}


@pytest.mark.asyncio
class TestConsoleSink:
    async def test_writes_one_json_line(self):
        stream = io.StringIO()
        sink = ConsoleSink(stream)

        result = await sink.send("http://x/a.txt")

        assert result.success
        assert stream.getvalue() == build_message("http://x/a.txt") + "\n"

    async def test_closed_stream_reports_failure(self):
        stream = io.StringIO()
        stream.close()

        result = await ConsoleSink(stream).send("http://x/a.txt")

        assert not result.success

    async def test_is_a_notification_sink(self):
        assert isinstance(ConsoleSink(), NotificationSink)


def mock_connection():
    exchange = MagicMock()
    exchange.publish = AsyncMock()
    queue = MagicMock()
    queue.bind = AsyncMock()
    channel = MagicMock()
    channel.declare_exchange = AsyncMock(return_value=exchange)
    channel.declare_queue = AsyncMock(return_value=queue)
    connection = MagicMock()
    connection.is_closed = False
    connection.channel = AsyncMock(return_value=channel)
    connection.close = AsyncMock()
    return connection, channel, exchange, queue


@pytest.mark.asyncio
class TestRabbitMqSink:
    async def test_publishes_persistent_json_to_topic_exchange(self):
        connection, channel, exchange, _ = mock_connection()
        sink = RabbitMqSink("amqp://localhost/", "hdfswatcher-textproc", "output")

        with patch("aio_pika.connect_robust", new=AsyncMock(return_value=connection)):
            result = await sink.send("http://x/a.txt")

        assert result.success
        channel.declare_exchange.assert_awaited_once_with(
            "hdfswatcher-textproc", aio_pika.ExchangeType.TOPIC, durable=True
        )
        message = exchange.publish.await_args.args[0]
        assert json.loads(message.body) == {"type": "hdfs", "url": "http://x/a.txt"}
        assert message.delivery_mode == aio_pika.DeliveryMode.PERSISTENT
        assert exchange.publish.await_args.kwargs["routing_key"] == "output"

    async def test_auto_declare_binds_queue_with_wildcard(self):
        connection, channel, exchange, queue = mock_connection()
        sink = RabbitMqSink("amqp://localhost/", "textproc", "output", auto_declare=True)

        with patch("aio_pika.connect_robust", new=AsyncMock(return_value=connection)):
            await sink.connect()

        channel.declare_queue.assert_awaited_once_with("textproc", durable=True)
        queue.bind.assert_awaited_once_with(exchange, routing_key="#")

    async def test_unreachable_broker_returns_failure(self):
        sink = RabbitMqSink("amqp://localhost/", "textproc", "output")

        with patch("aio_pika.connect_robust", new=AsyncMock(side_effect=ConnectionError("refused"))):
            result = await sink.send("http://x/a.txt")

        assert not result.success
        assert "refused" in result.error

    async def test_publish_error_returns_failure(self):
        connection, _, exchange, _ = mock_connection()
        exchange.publish.side_effect = RuntimeError("channel closed")
        sink = RabbitMqSink("amqp://localhost/", "textproc", "output")

        with patch("aio_pika.connect_robust", new=AsyncMock(return_value=connection)):
            result = await sink.send("http://x/a.txt")

        assert not result.success

    async def test_close(self):
        connection, _, _, _ = mock_connection()
        sink = RabbitMqSink("amqp://localhost/", "textproc", "output")

        with patch("aio_pika.connect_robust", new=AsyncMock(return_value=connection)):
            await sink.connect()
        await sink.close()

        connection.close.assert_awaited_once()
        assert not sink.is_connected

    async def test_failed_topology_setup_closes_connection(self):
        connections = []

        def open_connection(*args, **kwargs):
            connection, channel, _, _ = mock_connection()
            channel.declare_exchange.side_effect = RuntimeError("exchange type mismatch")
            connections.append(connection)
            return connection

        sink = RabbitMqSink("amqp://localhost/", "textproc", "output")

        with patch("aio_pika.connect_robust", new=AsyncMock(side_effect=open_connection)):
            results = [await sink.send("http://x/a.txt") for _ in range(3)]

        assert all(not result.success for result in results)
        assert "exchange type mismatch" in results[0].error
        assert len(connections) == 3
        for connection in connections:
            connection.close.assert_awaited_once()
        assert not sink.is_connected

    async def test_failed_queue_bind_closes_connection(self):
        connection, _, _, queue = mock_connection()
        queue.bind.side_effect = RuntimeError("access refused")
        sink = RabbitMqSink("amqp://localhost/", "textproc", "output", auto_declare=True)

        with patch("aio_pika.connect_robust", new=AsyncMock(return_value=connection)):
            with pytest.raises(RuntimeError):
                await sink.connect()

        connection.close.assert_awaited_once()
        assert sink._connection is None
