import asyncio
import logging
from typing import Optional

from hdfs_watcher.services.poll_cycle import PollCycle


class Poller:
    """Runs PollCycle.run_once() every poll interval as a background task."""

    def __init__(self, poll_cycle: PollCycle, interval_seconds: int):
        self.poll_cycle = poll_cycle
        self.interval_seconds = interval_seconds
        self._running = False
        self._poll_task: Optional[asyncio.Task] = None

        logging.info(f"Poller initialized (interval: {interval_seconds}s)")

    @property
    def is_running(self) -> bool:
        return self._running

    async def start_polling(self) -> None:
        if self._running:
            logging.warning("Poller is already running")
            return

        self._running = True
        self._poll_task = asyncio.create_task(self._poll_loop())
        logging.info("Poller task started in background")

    async def stop_polling(self) -> None:
        if not self._running:
            logging.warning("Poller is not running")
            return

        self._running = False

        if self._poll_task and not self._poll_task.done():
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                logging.debug("Poller task cancelled successfully")
            except Exception as e:
                logging.error(f"Error during poller task cancellation: {e}")

        self._poll_task = None
        logging.info("Poller stopped")

    async def _poll_loop(self) -> None:
        try:
            while self._running:
                try:
                    await self.poll_cycle.run_once(trigger="timer")
                except asyncio.CancelledError:
                    logging.info("Poller loop cancelled")
                    break
                except Exception as e:
                    logging.error(f"Error in poll cycle: {e}", exc_info=True)
                await asyncio.sleep(self.interval_seconds)
        finally:
            self._running = False
            logging.info("Poller loop completed")
