"""
Monitoring Publisher - status heartbeats and file events on a RabbitMQ queue.
"""

import asyncio
import json
import logging
import os
import time
from typing import Any, Dict, Optional, Set

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractRobustConnection

from hdfs_watcher.config import Settings
from hdfs_watcher.core.domain_objects import utc_now
from hdfs_watcher.core.events.event_bus import DomainEventBus
from hdfs_watcher.core.events.watcher_events import (
    FileDispatchedEvent,
    FileDispatchFailedEvent,
    FileDispatchStartedEvent,
)
from hdfs_watcher.core.processed_file_tracker import ProcessedFileStore
from hdfs_watcher.core.processing_gate import ProcessingGate
from hdfs_watcher.services.poll_cycle import PollCycle

SERVICE_NAME = "hdfsWatcher"
MAX_PENDING_FILE_EVENTS = 100


def format_uptime(seconds: float) -> str:
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours}h {minutes}m {secs}s"


class MonitoringPublisher:
    """
    Sends an init message on start, then a heartbeat every emit interval.

    Messages go through the default exchange straight to the monitoring queue.
    Publishing problems are logged and never reach the poller.
    """

    def __init__(
        self,
        settings: Settings,
        tracker: ProcessedFileStore,
        gate: ProcessingGate,
        poll_cycle: PollCycle,
        event_bus: DomainEventBus,
    ):
        self.settings = settings
        self.tracker = tracker
        self.gate = gate
        self.poll_cycle = poll_cycle
        self._event_bus = event_bus

        self.queue_name = settings.monitoring_queue_name
        self.interval_seconds = settings.monitoring_emit_interval_seconds
        self.instance_id = settings.monitoring_instance_id or f"{SERVICE_NAME}-{os.getpid()}"

        self._started_monotonic = time.monotonic()
        self._current_file: Optional[str] = None
        self._error_count = 0
        self._last_error: Optional[str] = None

        self._connection: Optional[AbstractRobustConnection] = None
        self._channel: Optional[AbstractChannel] = None
        self._channel_lock = asyncio.Lock()
        self._pending_events: Set[asyncio.Task] = set()
        self._running = False
        self._emit_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._running:
            logging.warning("MonitoringPublisher is already running")
            return

        for event_type, handler in self._subscriptions():
            await self._event_bus.subscribe(event_type, handler)

        self._running = True
        await self.publish(self.build_init_payload())
        self._emit_task = asyncio.create_task(self._emit_loop())
        logging.info(
            f"MonitoringPublisher started (queue: {self.queue_name}, "
            f"every {self.interval_seconds}s, instance: {self.instance_id})"
        )

    async def stop(self) -> None:
        self._running = False
        for event_type, handler in self._subscriptions():
            await self._event_bus.unsubscribe(event_type, handler)

        if self._emit_task and not self._emit_task.done():
            self._emit_task.cancel()
            try:
                await self._emit_task
            except asyncio.CancelledError:
                logging.debug("Monitoring task cancelled successfully")
        self._emit_task = None

        for task in list(self._pending_events):
            task.cancel()
        await asyncio.gather(*list(self._pending_events), return_exceptions=True)
        self._pending_events.clear()

        if self._connection is not None and not self._connection.is_closed:
            await self._connection.close()
        self._connection = None
        self._channel = None
        logging.info("MonitoringPublisher stopped")

    async def handle_dispatch_started(self, event: FileDispatchStartedEvent) -> None:
        self._current_file = event.filename
        self._publish_in_background(self._file_event("FILE_START", event.filename, event.file_hash))

    async def handle_dispatched(self, event: FileDispatchedEvent) -> None:
        self._current_file = None
        payload = self._file_event("FILE_COMPLETE", event.filename, event.file_hash)
        payload["url"] = event.url
        self._publish_in_background(payload)

    async def handle_dispatch_failed(self, event: FileDispatchFailedEvent) -> None:
        self._current_file = None
        self._error_count += 1
        self._last_error = f"{event.filename}: {event.error}"

    def build_init_payload(self) -> Dict[str, Any]:
        payload = self._base_payload()
        payload["uptime"] = "0s"
        payload["meta"] = {"service": SERVICE_NAME}
        return payload

    def build_heartbeat_payload(self) -> Dict[str, Any]:
        payload = self._base_payload()
        last_report = self.poll_cycle.last_report
        payload.update(
            {
                "currentFile": self._current_file,
                "filesProcessed": self.tracker.count(),
                "filesTotal": last_report.listed if last_report else 0,
                "errorCount": self._error_count,
                "lastError": self._last_error,
                "listingDegraded": self.poll_cycle.listing_degraded,
                "meta": {"service": SERVICE_NAME},
            }
        )
        return payload

    async def publish(self, payload: Dict[str, Any]) -> bool:
        try:
            channel = await self._get_channel()
            await channel.default_exchange.publish(
                aio_pika.Message(
                    body=json.dumps(payload).encode("utf-8"),
                    content_type="application/json",
                ),
                routing_key=self.queue_name,
            )
        except Exception as e:
            logging.warning(f"Failed to publish monitoring message to {self.queue_name}: {e}")
            return False
        return True

    async def drain(self) -> None:
        """Wait for file events that are still being published."""
        if self._pending_events:
            await asyncio.gather(*list(self._pending_events), return_exceptions=True)

    def _publish_in_background(self, payload: Dict[str, Any]) -> None:
        # File events must not hold up the dispatch that produced them
        if len(self._pending_events) >= MAX_PENDING_FILE_EVENTS:
            logging.debug(f"Dropping monitoring file event, {len(self._pending_events)} still pending")
            return
        task = asyncio.create_task(self.publish(payload))
        self._pending_events.add(task)
        task.add_done_callback(self._pending_events.discard)

    def _subscriptions(self):
        return (
            (FileDispatchStartedEvent, self.handle_dispatch_started),
            (FileDispatchedEvent, self.handle_dispatched),
            (FileDispatchFailedEvent, self.handle_dispatch_failed),
        )

    async def _get_channel(self) -> AbstractChannel:
        async with self._channel_lock:
            if self._channel is not None and not self._channel.is_closed:
                return self._channel

            if self._connection is None or self._connection.is_closed:
                self._connection = await aio_pika.connect_robust(
                    self.settings.rabbitmq_url,
                    timeout=self.settings.broker_connect_timeout_seconds,
                )
            try:
                self._channel = await self._connection.channel()
                await self._channel.declare_queue(self.queue_name, durable=True)
            except Exception:
                await self._connection.close()
                self._connection = None
                self._channel = None
                raise
            return self._channel

    async def _emit_loop(self) -> None:
        try:
            while self._running:
                await asyncio.sleep(self.interval_seconds)
                await self.publish(self.build_heartbeat_payload())
        except asyncio.CancelledError:
            logging.debug("Monitoring loop cancelled")
            raise

    def _base_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "instanceId": self.instance_id,
            "timestamp": utc_now().isoformat(),
            "status": "PROCESSING" if self.gate.is_enabled() else "DISABLED",
            "uptime": format_uptime(time.monotonic() - self._started_monotonic),
            "hostname": self.settings.hostname,
        }
        public_hostname = self.settings.public_hostname
        if public_hostname:
            payload["publicHostname"] = public_hostname
        return payload

    def _file_event(self, event_type: str, filename: str, file_hash: str) -> Dict[str, Any]:
        payload = self._base_payload()
        payload.update(
            {"event": event_type, "filename": filename, "fileHash": file_hash}
        )
        return payload
