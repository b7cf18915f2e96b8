"""
Poll Cycle - list, fingerprint, filter, dispatch, mark on success.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional, Set

from hdfs_watcher.core.domain_objects import DirectoryEntry, PollCycleReport, utc_now
from hdfs_watcher.core.events.event_bus import DomainEventBus
from hdfs_watcher.core.events.watcher_events import (
    FileDispatchedEvent,
    FileDispatchFailedEvent,
    FileDispatchStartedEvent,
    PollCycleCompletedEvent,
)
from hdfs_watcher.core.fingerprint import fingerprint_entry
from hdfs_watcher.core.processed_file_tracker import ProcessedFileStore
from hdfs_watcher.core.processing_gate import ProcessingGate
from hdfs_watcher.notifications.base import NotificationSink
from hdfs_watcher.storage.base import DirectoryLister, UrlBuilder


class DispatchOutcome(str, Enum):
    DISPATCHED = "dispatched"
    FAILED = "failed"
    IN_FLIGHT = "in-flight"
    ALREADY_PROCESSED = "already-processed"


class PollCycle:
    """
    One pass over the watched location(s).

    The tracker is only updated after the sink confirmed delivery, so a failed
    send leaves the file eligible for the next cycle (at-least-once delivery).
    ``dispatch`` is shared with ManualOps; a per-fingerprint in-flight set keeps
    the poller, the gate-enable sweep and process-now from sending the same
    file version twice at the same time.
    """

    def __init__(
        self,
        lister: DirectoryLister,
        url_builder: UrlBuilder,
        sink: NotificationSink,
        tracker: ProcessedFileStore,
        gate: ProcessingGate,
        event_bus: Optional[DomainEventBus] = None,
        batch_size: int = 5,
        batch_pause_ms: int = 100,
    ):
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")
        if batch_pause_ms < 0:
            raise ValueError(f"batch_pause_ms cannot be negative, got {batch_pause_ms}")
        self.lister = lister
        self.url_builder = url_builder
        self.sink = sink
        self.tracker = tracker
        self.gate = gate
        self._event_bus = event_bus
        self.batch_size = batch_size
        self.batch_pause_ms = batch_pause_ms

        self._in_flight: Set[str] = set()
        self._listing_degraded = False
        self._last_report: Optional[PollCycleReport] = None

    @property
    def listing_degraded(self) -> bool:
        """True while the most recent listing attempt failed."""
        return self._listing_degraded

    @property
    def last_report(self) -> Optional[PollCycleReport]:
        return self._last_report

    def is_in_flight(self, file_hash: str) -> bool:
        return file_hash in self._in_flight

    async def run_once(self, trigger: str = "timer") -> PollCycleReport:
        report = PollCycleReport(trigger=trigger)

        try:
            entries = await self.lister.list_entries()
        except Exception as e:
            self._listing_degraded = True
            report.listing_degraded = True
            report.error = str(e)
            logging.error(f"Directory listing failed ({trigger}), skipping cycle: {e}")
            return await self._finish(report)

        if self._listing_degraded:
            logging.info("Directory listing recovered")
        self._listing_degraded = False
        report.listed = len(entries)

        seen: Set[str] = set()
        for entry in entries:
            try:
                file_hash = fingerprint_entry(entry)
            except ValueError as e:
                logging.warning(f"Skipping unfingerprintable entry {entry!r}: {e}")
                continue

            if file_hash in seen:
                continue
            seen.add(file_hash)

            if self.tracker.is_processed(file_hash):
                report.skipped_processed += 1
                continue

            if not self.gate.is_enabled():
                report.skipped_gated += 1
                continue

            outcome = await self.dispatch(entry, file_hash)
            if outcome == DispatchOutcome.DISPATCHED:
                report.dispatched += 1
                if self.batch_pause_ms > 0 and report.dispatched % self.batch_size == 0:
                    await asyncio.sleep(self.batch_pause_ms / 1000)
            elif outcome == DispatchOutcome.FAILED:
                report.failed += 1
            elif outcome == DispatchOutcome.IN_FLIGHT:
                report.skipped_in_flight += 1
            else:
                report.skipped_processed += 1

        if report.dispatched or report.failed:
            logging.info(
                f"Poll cycle ({trigger}): {report.listed} listed, {report.dispatched} dispatched, "
                f"{report.failed} failed, {report.skipped_gated} held by gate"
            )
        else:
            logging.debug(
                f"Poll cycle ({trigger}): {report.listed} listed, nothing to dispatch "
                f"({report.skipped_gated} held by gate)"
            )
        return await self._finish(report)

    async def dispatch(
        self, entry: DirectoryEntry, file_hash: str, force: bool = False
    ) -> DispatchOutcome:
        """
        Send one notification and mark the fingerprint processed on success.

        Without ``force`` a fingerprint that became processed in the meantime is
        not sent again. The gate is not consulted here.
        """
        if file_hash in self._in_flight:
            logging.debug(f"Dispatch of {entry.name} already in flight ({file_hash})")
            return DispatchOutcome.IN_FLIGHT
        if not force and self.tracker.is_processed(file_hash):
            return DispatchOutcome.ALREADY_PROCESSED

        self._in_flight.add(file_hash)
        try:
            await self._publish(
                FileDispatchStartedEvent(
                    filename=entry.name, file_hash=file_hash, source_tag=entry.source_tag
                )
            )

            try:
                url = self.url_builder.build(entry)
                result = await self.sink.send(url)
            except Exception as e:
                logging.error(f"Unexpected error dispatching {entry.name}: {e}", exc_info=True)
                await self._dispatch_failed(entry, file_hash, str(e))
                return DispatchOutcome.FAILED

            if not result.success:
                logging.warning(f"Notification for {entry.name} failed: {result.error}")
                await self._dispatch_failed(entry, file_hash, result.error)
                return DispatchOutcome.FAILED

            self.tracker.mark_processed(file_hash)
            logging.info(f"Dispatched {entry.name} [{entry.source_tag}] -> {url}")
            await self._publish(
                FileDispatchedEvent(
                    filename=entry.name,
                    file_hash=file_hash,
                    source_tag=entry.source_tag,
                    url=url,
                )
            )
            return DispatchOutcome.DISPATCHED
        finally:
            self._in_flight.discard(file_hash)

    async def _dispatch_failed(self, entry: DirectoryEntry, file_hash: str, error: Optional[str]) -> None:
        await self._publish(
            FileDispatchFailedEvent(
                filename=entry.name,
                file_hash=file_hash,
                source_tag=entry.source_tag,
                error=error,
            )
        )

    async def _finish(self, report: PollCycleReport) -> PollCycleReport:
        report.finished_at = utc_now()
        self._last_report = report
        await self._publish(
            PollCycleCompletedEvent(
                trigger=report.trigger,
                listed=report.listed,
                dispatched=report.dispatched,
                failed=report.failed,
                listing_degraded=report.listing_degraded,
            )
        )
        return report

    async def _publish(self, event) -> None:
        if self._event_bus:
            await self._event_bus.publish(event)
