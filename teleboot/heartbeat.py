"""Demo background service that emits a log record at every level on a loop."""

from __future__ import annotations

import threading
from datetime import datetime

from teleboot._log import get_logger

logger = get_logger("heartbeat")


class HeartbeatService:
    """Logs info, warning, error and critical records, then sleeps. Runs in a daemon thread."""

    def __init__(self, *, step_seconds: float = 1.0, interval_seconds: float = 10.0) -> None:
        self._step = step_seconds
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self.cycles = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="teleboot-heartbeat", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 10.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)

    def _wait(self, seconds: float) -> bool:
        """Sleep for *seconds*; return True when a stop was requested."""
        return self._stop_event.wait(seconds)

    def _run(self) -> None:
        while not self._stop_event.is_set():
            logger.info("Service running at: %s", datetime.now().astimezone().isoformat())
            if self._wait(self._step):
                break
            logger.warning("This is a test warning: %s", "Warning info")
            if self._wait(self._step):
                break
            logger.error("This is a test error: %s", "Error info")
            if self._wait(self._step):
                break
            logger.critical("This is a critical error test: %s", "Critical Error info")
            self.cycles += 1
            if self._wait(self._interval):
                break
