"""
RabbitMQ notification sink for the cloud, stream and scdf modes.
"""

import asyncio
import logging
from typing import Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractRobustConnection

from hdfs_watcher.core.domain_objects import SendResult
from hdfs_watcher.notifications.base import build_message


class RabbitMqSink:
    """
    Publishes notifications to a durable topic exchange.

    The exchange is named after output_destination (falling back to the binding
    name) and every message uses the binding name as routing key. With
    auto_declare a durable queue of the same name is bound to the exchange with
    '#', so messages are kept even before a consumer attaches.

    The connection is opened lazily; a failed connect or publish is returned as
    a failed SendResult and retried on the next send.
    """

    def __init__(
        self,
        url: str,
        exchange_name: str,
        routing_key: str,
        auto_declare: bool = False,
        connect_timeout: float = 10.0,
    ):
        self.url = url
        self.exchange_name = exchange_name
        self.routing_key = routing_key
        self.auto_declare = auto_declare
        self.connect_timeout = connect_timeout

        self._connection: Optional[AbstractRobustConnection] = None
        self._channel: Optional[AbstractChannel] = None
        self._exchange: Optional[AbstractExchange] = None
        self._connect_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self._exchange is not None and not self._connection.is_closed

    async def connect(self) -> None:
        """
        Open the connection and declare the topology.

        Raises:
            aio_pika / OS level errors when the broker cannot be reached.
        """
        async with self._connect_lock:
            if self.is_connected:
                return

            self._connection = await aio_pika.connect_robust(self.url, timeout=self.connect_timeout)
            try:
                self._channel = await self._connection.channel()
                self._exchange = await self._channel.declare_exchange(
                    self.exchange_name, aio_pika.ExchangeType.TOPIC, durable=True
                )

                if self.auto_declare:
                    queue = await self._channel.declare_queue(self.exchange_name, durable=True)
                    await queue.bind(self._exchange, routing_key="#")
                    logging.info(f"Declared queue '{self.exchange_name}' bound to exchange with '#'")
            except Exception:
                # Never keep a half set up connection around
                await self.close()
                raise

            logging.info(
                f"Connected to RabbitMQ, exchange '{self.exchange_name}' "
                f"routing key '{self.routing_key}'"
            )

    async def close(self) -> None:
        if self._connection is not None and not self._connection.is_closed:
            await self._connection.close()
            logging.info("RabbitMQ connection closed")
        self._connection = None
        self._channel = None
        self._exchange = None

    async def send(self, url: str) -> SendResult:
        try:
            if not self.is_connected:
                await self.connect()

            message = aio_pika.Message(
                body=build_message(url).encode("utf-8"),
                content_type="application/json",
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            )
            await self._exchange.publish(message, routing_key=self.routing_key)
        except Exception as e:
            logging.error(f"Failed to publish notification for {url}: {e}")
            return SendResult.failed(f"{type(e).__name__}: {e}")

        logging.debug(f"Published notification to '{self.exchange_name}': {url}")
        return SendResult.ok()
