"""
Manual Ops - operator commands that run concurrently with the poller.
"""

import logging
from typing import Dict, Iterable, List, Optional

from hdfs_watcher.core.domain_objects import (
    IN_FLIGHT,
    NOT_FOUND,
    SEND_FAILED,
    DirectoryEntry,
    GateChange,
    ProcessNowResult,
    ReprocessResult,
)
from hdfs_watcher.core.events.event_bus import DomainEventBus
from hdfs_watcher.core.events.watcher_events import ProcessingStateChangedEvent
from hdfs_watcher.core.fingerprint import fingerprint_entry
from hdfs_watcher.core.processed_file_tracker import ProcessedFileStore
from hdfs_watcher.core.processing_gate import ProcessingGate
from hdfs_watcher.services.poll_cycle import DispatchOutcome, PollCycle

GATE_ENABLED_TRIGGER = "gate-enabled"


def _unique(file_hashes: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(h for h in file_hashes if h))


class ManualOps:
    def __init__(
        self,
        tracker: ProcessedFileStore,
        gate: ProcessingGate,
        poll_cycle: PollCycle,
        event_bus: Optional[DomainEventBus] = None,
    ):
        self.tracker = tracker
        self.gate = gate
        self.poll_cycle = poll_cycle
        self._event_bus = event_bus

    def reprocess(self, file_hashes: Iterable[str]) -> ReprocessResult:
        """Make processed fingerprints eligible again. Unknown hashes are left out of the result."""
        result = ReprocessResult()
        for file_hash in _unique(file_hashes):
            if self.tracker.mark_for_reprocessing(file_hash):
                result.reprocessed.append(file_hash)
        logging.info(f"Marked {result.count} file(s) for reprocessing")
        return result

    async def process_now(self, file_hashes: Iterable[str]) -> ProcessNowResult:
        """
        Dispatch the given fingerprints immediately, ignoring the gate.

        The directory is listed once and each hash is resolved to the live entry
        with the same fingerprint. Already processed entries are sent again.
        Every hash ends up in either ``processed`` or ``failed``.
        """
        requested = _unique(file_hashes)
        result = ProcessNowResult()
        if not requested:
            return result

        live = await self._live_entries()

        for file_hash in requested:
            entry = live.get(file_hash)
            if entry is None:
                result.add_failure(file_hash, NOT_FOUND)
                continue

            outcome = await self.poll_cycle.dispatch(entry, file_hash, force=True)
            if outcome == DispatchOutcome.DISPATCHED:
                result.processed.append(file_hash)
            elif outcome == DispatchOutcome.IN_FLIGHT:
                result.add_failure(file_hash, IN_FLIGHT)
            else:
                result.add_failure(file_hash, SEND_FAILED)

        logging.info(
            f"Process-now: {result.processed_count} dispatched, {len(result.failed)} failed"
        )
        return result

    def clear_all(self) -> int:
        return self.tracker.clear_all()

    async def set_gate(self, enabled: bool, reason: str) -> GateChange:
        """
        Open or close the gate. Reopening a closed gate immediately sweeps
        the pending files instead of waiting for the next timer tick.
        """
        previous = self.gate.state()
        if enabled:
            changed = self.gate.enable(reason)
        else:
            changed = self.gate.disable(reason)
        return await self._after_gate_change(previous, changed)

    async def toggle_gate(self, reason: str) -> GateChange:
        previous = self.gate.state()
        self.gate.toggle(reason)
        return await self._after_gate_change(previous, True)

    async def reprocess_all(self) -> int:
        """Close the gate and forget every processed fingerprint."""
        previous = self.gate.state()
        changed = self.gate.disable("reprocess-all")
        await self._after_gate_change(previous, changed)
        cleared = self.tracker.clear_all()
        logging.info(f"Reprocess-all: processing disabled and {cleared} fingerprint(s) cleared")
        return cleared

    async def _after_gate_change(self, previous, changed: bool) -> GateChange:
        current = self.gate.state()
        if changed and self._event_bus:
            await self._event_bus.publish(
                ProcessingStateChangedEvent(enabled=current.enabled, reason=current.reason)
            )

        swept = 0
        if current.enabled and not previous.enabled:
            report = await self.poll_cycle.run_once(trigger=GATE_ENABLED_TRIGGER)
            swept = report.dispatched
            logging.info(f"Gate enabled, immediate sweep dispatched {swept} file(s)")

        return GateChange(previous=previous, current=current, swept_count=swept)

    async def _live_entries(self) -> Dict[str, DirectoryEntry]:
        try:
            entries = await self.poll_cycle.lister.list_entries()
        except Exception as e:
            logging.error(f"Listing failed during process-now: {e}")
            return {}

        live: Dict[str, DirectoryEntry] = {}
        for entry in entries:
            try:
                live.setdefault(fingerprint_entry(entry), entry)
            except ValueError:
                continue
        return live
