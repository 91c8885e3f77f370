"""Main polling loop with signal handling."""

from __future__ import annotations

import logging
import signal
import time
from types import FrameType

from .config import PollingConfig
from .elastic_ip import ElasticIPController, MutationOutcome

logger = logging.getLogger(__name__)


class Daemon:
    """Polling daemon: reconcile -> sleep, one pass at a time, at a fixed interval."""

    def __init__(self, controller: ElasticIPController, polling: PollingConfig):
        self._controller = controller
        self._interval = polling.interval_seconds
        self._shutdown = False
        self._reset_requested = False
        self._consecutive_failures = 0

    def run_once(self) -> list[MutationOutcome]:
        """Execute a single reconciliation pass."""
        return self._controller.run_once()

    def run(self) -> None:
        """Run the polling loop until shutdown signal."""
        self._install_signal_handlers()
        logger.info("Daemon started, reconciling every %ds", self._interval)

        while not self._shutdown:
            if self._reset_requested:
                self._reset_requested = False
                self._controller.reset()

            try:
                self._controller.run_once()
                self._consecutive_failures = 0
            except Exception:
                self._consecutive_failures += 1
                logger.exception(
                    "Error running sync loop (consecutive failures: %d)",
                    self._consecutive_failures,
                )

            logger.debug("Sleeping %ds before next pass", self._interval)
            self._interruptible_sleep(self._interval)

        logger.info("Daemon stopped")

    def stop(self) -> None:
        """Ask the loop to exit once the current pass has finished."""
        self._shutdown = True

    def _interruptible_sleep(self, seconds: float) -> None:
        """Sleep in short increments so we can respond to shutdown signals."""
        end = time.monotonic() + seconds
        while not self._shutdown and time.monotonic() < end:
            remaining = end - time.monotonic()
            time.sleep(min(remaining, 1.0))

    def _install_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_shutdown)
        signal.signal(signal.SIGINT, self._handle_shutdown)
        signal.signal(signal.SIGHUP, self._handle_reload)

    def _handle_shutdown(self, signum: int, frame: FrameType | None) -> None:
        sig_name = signal.Signals(signum).name
        logger.info("Received %s, shutting down after the current pass", sig_name)
        self.stop()

    def _handle_reload(self, signum: int, frame: FrameType | None) -> None:
        logger.info("Received SIGHUP, instance registry will be reset before the next pass")
        self._reset_requested = True
