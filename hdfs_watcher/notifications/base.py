import json
from typing import Protocol, runtime_checkable

from hdfs_watcher.core.domain_objects import SendResult

MESSAGE_TYPE = "hdfs"


def build_message(url: str) -> str:
    """JSON body of a file notification: {"type": "hdfs", "url": url}."""
    return json.dumps({"type": MESSAGE_TYPE, "url": url})


@runtime_checkable
class NotificationSink(Protocol):
    """
    Delivers one file notification.

    Transport failures are reported through SendResult and never raised.
    """

    async def send(self, url: str) -> SendResult: ...

    async def connect(self) -> None: ...

    async def close(self) -> None: ...
