from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class DirectoryEntry:
    """One file as reported by a DirectoryLister."""

    name: str
    size: int
    modification_time: int  # epoch millis
    source_tag: str
    path: str = ""  # Directory holding the file, used when building URLs


@dataclass(frozen=True)
class SendResult:
    """Outcome of a single NotificationSink.send() call."""

    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "SendResult":
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> "SendResult":
        return cls(success=False, error=error)


@dataclass(frozen=True)
class GateState:
    enabled: bool
    last_changed: datetime
    reason: str

    @property
    def status(self) -> str:
        return "STARTED" if self.enabled else "STOPPED"

    @property
    def consumer_status(self) -> str:
        return "CONSUMING" if self.enabled else "IDLE"


@dataclass(frozen=True)
class GateChange:
    """Result of a gate operation issued through ManualOps."""

    previous: GateState
    current: GateState
    swept_count: int = 0

    @property
    def state_changed(self) -> bool:
        return self.previous.enabled != self.current.enabled


@dataclass
class PollCycleReport:
    """Counters for one poll cycle, kept for status reporting."""

    trigger: str
    started_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None
    listed: int = 0
    dispatched: int = 0
    failed: int = 0
    skipped_processed: int = 0
    skipped_gated: int = 0
    skipped_in_flight: int = 0
    listing_degraded: bool = False
    error: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        if self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()


@dataclass
class ReprocessResult:
    reprocessed: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.reprocessed)


NOT_FOUND = "not-found"
SEND_FAILED = "send-failed"
IN_FLIGHT = "in-flight"


@dataclass
class ProcessNowResult:
    processed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    def add_failure(self, file_hash: str, reason: str) -> None:
        self.failed.append(file_hash)
        self.failures[file_hash] = reason

    @property
    def processed_count(self) -> int:
        return len(self.processed)
