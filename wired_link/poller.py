"""
Wired Link - Connection Poller

Single asyncio task that owns a WiredConnection and calls setup() at a fixed
interval. setup() blocks on adb, so it runs in a worker thread; only this
task ever calls it, which keeps calls serialized.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional

from .adb.config import config
from .models import WiredConnectionSettings, WiredConnectionStatus
from .utils.error_handler import WiredLinkError, get_user_friendly_message
from .wired_connection import WiredConnection

logger = logging.getLogger(__name__)


class WiredConnectionPoller:
    """
    Polls a WiredConnection until stopped

    Features:
    - One setup() pass per poll interval
    - Status change logging and callbacks (only on change)
    - Setup errors are logged with a hint and polling continues
    - stop() returns only after the last setup() pass has finished
    """

    def __init__(
        self,
        connection: WiredConnection,
        settings: WiredConnectionSettings,
        poll_interval: Optional[float] = None,
    ):
        """
        Initialize connection poller

        Args:
            connection: WiredConnection to drive
            settings: Ports, flavor and autolaunch/autoinstall options passed to setup()
            poll_interval: Seconds between passes (default from config)
        """
        self.connection = connection
        self.settings = settings
        self.poll_interval = poll_interval if poll_interval is not None else config.POLL_INTERVAL

        self._task: Optional[asyncio.Task] = None
        self._running = False
        self._status_callbacks: List[Callable] = []

        # Serializes setup() passes. A cancelled poll leaves its worker thread
        # running, so the next pass (and stop()) waits for _in_flight first.
        self._pass_lock = asyncio.Lock()
        self._in_flight: Optional[asyncio.Future] = None

        self.last_status: Optional[WiredConnectionStatus] = None
        self.last_error: Optional[str] = None
        self._last_poll: Optional[float] = None
        self._total_polls = 0
        self._total_errors = 0

    def register_status_callback(self, callback: Callable):
        """
        Register a callback invoked when the status changes.

        Args:
            callback: Sync or async function taking the new WiredConnectionStatus
        """
        self._status_callbacks.append(callback)

    def update_settings(self, settings: WiredConnectionSettings):
        """Use new settings from the next pass on"""
        self.settings = settings
        logger.info("[WiredPoller] Settings updated")

    async def start(self):
        """Start polling"""
        if self._running and self._task and not self._task.done():
            logger.warning("[WiredPoller] Already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._poll_loop())
        logger.info(f"[WiredPoller] Started (interval={self.poll_interval}s)")

    async def stop(self):
        """Stop polling. Returns once no setup() pass is running."""
        if not self._running and self._task is None:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        await self._wait_in_flight()
        logger.info("[WiredPoller] Stopped")

    async def _wait_in_flight(self):
        """Wait for a setup() pass orphaned by cancellation"""
        in_flight = self._in_flight
        if in_flight is None:
            return
        if not in_flight.done():
            logger.debug("[WiredPoller] Waiting for in-flight setup pass")
            await asyncio.wait([in_flight])
        if not in_flight.cancelled() and in_flight.exception() is not None:
            logger.debug(f"[WiredPoller] Orphaned setup pass failed: {in_flight.exception()}")
        self._in_flight = None

    async def poll_once(self) -> Optional[WiredConnectionStatus]:
        """
        Run a single setup() pass.

        Returns:
            The new status, or None if the pass failed
        """
        async with self._pass_lock:
            await self._wait_in_flight()

            s = self.settings
            self._total_polls += 1
            self._last_poll = time.time()
            self._in_flight = asyncio.ensure_future(asyncio.to_thread(
                self.connection.setup,
                s.control_port,
                s.stream_port,
                s.client_flavor,
                s.client_autolaunch,
                s.client_autoinstall,
            ))
            try:
                # The pass outlives a cancelled poll, _wait_in_flight picks it up
                status = await asyncio.shield(self._in_flight)
            except WiredLinkError as e:
                self._in_flight = None
                self._record_error(get_user_friendly_message(e))
                return None
            except Exception as e:
                self._in_flight = None
                logger.exception(f"[WiredPoller] Unexpected error during wired connection setup: {e}")
                self._record_error(get_user_friendly_message(e))
                return None
            self._in_flight = None

        self.last_error = None
        if status != self.last_status:
            logger.info(f"[WiredPoller] Wired connection status: {status}")
            self.last_status = status
            await self._notify(status)
        return status

    def _record_error(self, message: str):
        self._total_errors += 1
        if message != self.last_error:
            logger.error(f"[WiredPoller] Wired connection setup failed: {message}")
        self.last_error = message

    async def _notify(self, status: WiredConnectionStatus):
        for callback in self._status_callbacks:
            try:
                result = callback(status)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"[WiredPoller] Status callback failed: {e}")

    async def _poll_loop(self):
        while self._running:
            await self.poll_once()
            await asyncio.sleep(self.poll_interval)

    def get_stats(self) -> dict:
        """Get poller statistics"""
        return {
            "running": self._running,
            "poll_interval": self.poll_interval,
            "total_polls": self._total_polls,
            "total_errors": self._total_errors,
            "last_poll": self._last_poll,
            "last_status": str(self.last_status) if self.last_status else None,
            "last_error": self.last_error,
        }
