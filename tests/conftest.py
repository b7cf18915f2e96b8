"""
Pytest configuration and shared fixtures.
"""

from typing import List, Optional

import pytest

from hdfs_watcher.core.domain_objects import DirectoryEntry, SendResult
from hdfs_watcher.core.events.event_bus import DomainEventBus
from hdfs_watcher.core.exceptions import ListingError
from hdfs_watcher.core.processed_file_tracker import ProcessedFileTracker
from hdfs_watcher.core.processing_gate import ProcessingGate
from hdfs_watcher.dependencies import get_settings, reset_singletons
from hdfs_watcher.services.manual_ops import ManualOps
from hdfs_watcher.services.poll_cycle import PollCycle


@pytest.fixture(autouse=True)
def clean_singletons():
    """Automatically reset singletons before each test."""
    reset_singletons()
    get_settings.cache_clear()
    yield
    reset_singletons()
    get_settings.cache_clear()


def make_entry(name: str, size: int = 100, mtime: int = 1_700_000_000_000, source_tag: str = "local") -> DirectoryEntry:
    return DirectoryEntry(name=name, size=size, modification_time=mtime, source_tag=source_tag, path="/data")


class FakeLister:
    """DirectoryLister returning a settable list, or raising when ``error`` is set."""

    def __init__(self, entries: Optional[List[DirectoryEntry]] = None):
        self.entries = list(entries or [])
        self.error: Optional[Exception] = None
        self.calls = 0

    async def list_entries(self) -> List[DirectoryEntry]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.entries)

    def fail(self, reason: str = "connection refused") -> None:
        self.error = ListingError("/data", reason)

    def recover(self) -> None:
        self.error = None


class FakeUrlBuilder:
    def build(self, entry: DirectoryEntry) -> str:
        return f"http://files.example/{entry.name}"


class RecordingSink:
    """NotificationSink that records sent URLs and fails for names in ``failing``."""

    def __init__(self):
        self.sent: List[str] = []
        self.failing: set = set()

    async def connect(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def send(self, url: str) -> SendResult:
        if any(url.endswith(f"/{name}") for name in self.failing):
            return SendResult.failed("broker unavailable")
        self.sent.append(url)
        return SendResult.ok()


@pytest.fixture
def tracker():
    return ProcessedFileTracker()


@pytest.fixture
def gate():
    return ProcessingGate()


@pytest.fixture
def lister():
    return FakeLister()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def event_bus():
    return DomainEventBus()


@pytest.fixture
def poll_cycle(lister, sink, tracker, gate, event_bus):
    return PollCycle(
        lister=lister,
        url_builder=FakeUrlBuilder(),
        sink=sink,
        tracker=tracker,
        gate=gate,
        event_bus=event_bus,
        batch_size=5,
        batch_pause_ms=0,
    )


@pytest.fixture
def manual_ops(tracker, gate, poll_cycle, event_bus):
    return ManualOps(tracker=tracker, gate=gate, poll_cycle=poll_cycle, event_bus=event_bus)
