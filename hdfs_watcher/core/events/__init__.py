from .domain_event import DomainEvent
from .event_bus import DomainEventBus
from .watcher_events import (
    FileDispatchedEvent,
    FileDispatchFailedEvent,
    FileDispatchStartedEvent,
    PollCycleCompletedEvent,
    ProcessingStateChangedEvent,
)

__all__ = [
    "DomainEvent",
    "DomainEventBus",
    "FileDispatchedEvent",
    "FileDispatchFailedEvent",
    "FileDispatchStartedEvent",
    "PollCycleCompletedEvent",
    "ProcessingStateChangedEvent",
]
