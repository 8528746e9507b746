# ==============================================================================
# Base Runner Abstract Class
# ==============================================================================
"""
Base runner with common lifecycle management for foreground processes.

Provides signal handling, logging setup, and shutdown coordination.
Concrete runners implement _run() and block on wait_for_shutdown().
"""

import logging
import signal
import threading
from abc import ABC, abstractmethod
from typing import final

logger = logging.getLogger(__name__)


class BaseRunner(ABC):
    """Base runner with common lifecycle management."""

    def __init__(self, log_level: str = "INFO"):
        self._log_level = log_level
        self._shutdown_event = threading.Event()

    @final
    def run(self) -> None:
        """Main entry point with signal handling."""
        self._setup_signal_handlers()
        self._setup_logging()

        try:
            self._run()
        except KeyboardInterrupt:
            logger.info("Runner interrupted by keyboard")
        finally:
            self._cleanup()

    @abstractmethod
    def _run(self) -> None:
        """Start work and block until shutdown is requested."""
        ...

    def _setup_signal_handlers(self) -> None:
        signal.signal(signal.SIGTERM, self._handle_signal)
        signal.signal(signal.SIGINT, self._handle_signal)

    def _handle_signal(self, signum, frame) -> None:
        """Handle shutdown signals."""
        logger.info("Received signal %d, requesting shutdown...", signum)
        self.request_shutdown()

    def _setup_logging(self) -> None:
        logging.basicConfig(
            level=getattr(logging, self._log_level.upper(), logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    def _cleanup(self) -> None:
        """Cleanup resources. Optional override."""
        pass

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    def wait_for_shutdown(self, poll_interval: float = 0.5) -> None:
        """Block until request_shutdown() is called.

        Waits in short slices so the main thread keeps handling signals.
        """
        while not self._shutdown_event.wait(poll_interval):
            pass

    @property
    def shutdown_requested(self) -> bool:
        """Check if shutdown has been requested."""
        return self._shutdown_event.is_set()
