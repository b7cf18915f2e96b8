# hdfs_watcher/core/events/watcher_events.py
from dataclasses import dataclass
from typing import Optional

from hdfs_watcher.core.events.domain_event import DomainEvent


@dataclass(frozen=True)
class FileDispatchStartedEvent(DomainEvent):
    """Published right before a notification for a file is sent."""
    filename: str
    file_hash: str
    source_tag: str


@dataclass(frozen=True)
class FileDispatchedEvent(DomainEvent):
    """Published after the sink accepted a notification and the file was marked processed."""
    filename: str
    file_hash: str
    source_tag: str
    url: str


@dataclass(frozen=True)
class FileDispatchFailedEvent(DomainEvent):
    """Published when the sink rejected a notification. The file stays eligible."""
    filename: str
    file_hash: str
    source_tag: str
    error: Optional[str]


@dataclass(frozen=True)
class PollCycleCompletedEvent(DomainEvent):
    trigger: str
    listed: int
    dispatched: int
    failed: int
    listing_degraded: bool


@dataclass(frozen=True)
class ProcessingStateChangedEvent(DomainEvent):
    """Published when an operator opens or closes the processing gate."""
    enabled: bool
    reason: str
