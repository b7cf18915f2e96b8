"""
Processed File Tracker - remembers which file versions were delivered.
"""

import logging
from abc import ABC, abstractmethod
from threading import Lock
from typing import FrozenSet, Set


class ProcessedFileStore(ABC):
    """
    Storage contract for fingerprints of successfully dispatched files.

    PollCycle and ManualOps only talk to this interface, so a persistent
    implementation can replace the in-memory one.
    """

    @abstractmethod
    def is_processed(self, file_hash: str) -> bool: ...

    @abstractmethod
    def mark_processed(self, file_hash: str) -> None: ...

    @abstractmethod
    def mark_for_reprocessing(self, file_hash: str) -> bool: ...

    @abstractmethod
    def clear_all(self) -> int: ...

    @abstractmethod
    def count(self) -> int: ...

    @abstractmethod
    def snapshot(self) -> FrozenSet[str]: ...


class ProcessedFileTracker(ProcessedFileStore):
    """
    Thread-safe, in-memory set of fingerprints that were dispatched successfully.

    Every fingerprint is either Unseen (absent) or Processed (present). The lock
    is only held around the set operation itself, never while a caller waits on
    I/O, so the poller and the HTTP handlers never block each other here.
    State lives for the lifetime of the process.
    """

    def __init__(self):
        self._processed: Set[str] = set()
        self._lock = Lock()
        logging.info("ProcessedFileTracker initialized")

    def is_processed(self, file_hash: str) -> bool:
        with self._lock:
            return file_hash in self._processed

    def mark_processed(self, file_hash: str) -> None:
        """Unseen -> Processed. Marking an already processed hash is a no-op."""
        with self._lock:
            self._processed.add(file_hash)
        logging.debug(f"Marked file as processed: {file_hash}")

    def mark_for_reprocessing(self, file_hash: str) -> bool:
        """
        Processed -> Unseen.

        Returns:
            True if the hash was processed and is now eligible again,
            False if it was not tracked.
        """
        with self._lock:
            was_processed = file_hash in self._processed
            self._processed.discard(file_hash)
        if was_processed:
            logging.debug(f"Marked file for reprocessing: {file_hash}")
        return was_processed

    def clear_all(self) -> int:
        with self._lock:
            cleared = len(self._processed)
            self._processed.clear()
        logging.info(f"Cleared {cleared} processed files from tracking")
        return cleared

    def count(self) -> int:
        with self._lock:
            return len(self._processed)

    def snapshot(self) -> FrozenSet[str]:
        """Read-only copy of all processed fingerprints."""
        with self._lock:
            return frozenset(self._processed)
