import logging
import sys
from typing import TextIO

from hdfs_watcher.core.domain_objects import SendResult
from hdfs_watcher.notifications.base import build_message


class ConsoleSink:
    """Standalone mode sink: one JSON line per notification on stdout."""

    def __init__(self, stream: TextIO = None):
        self.stream = stream

    async def connect(self) -> None:
        logging.info("Console notification sink ready (standalone mode)")

    async def close(self) -> None:
        pass

    async def send(self, url: str) -> SendResult:
        stream = self.stream or sys.stdout
        try:
            stream.write(build_message(url) + "\n")
            stream.flush()
        except (OSError, ValueError) as e:
            logging.error(f"Failed to write notification to console: {e}")
            return SendResult.failed(str(e))
        return SendResult.ok()
