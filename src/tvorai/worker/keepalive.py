"""Periodic liveness probe against the store.

Runs a no-op query on a timer in a daemon thread so connectivity loss
shows up in the logs before a request hits it. The probe never holds a
transaction and never blocks request handling.
"""

from __future__ import annotations

import logging
import threading

from tvorai.db.session import LedgerStore

logger = logging.getLogger(__name__)


class KeepaliveProbe:
    """Background thread that pings the store every interval seconds."""

    def __init__(self, store: LedgerStore, interval: float):
        """Initialize probe.

        Args:
            store: Store to ping.
            interval: Seconds between pings; must be positive.
        """
        if interval <= 0:
            raise ValueError("Keepalive interval must be positive")
        self.store = store
        self.interval = interval
        self.failures = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def probe_once(self) -> bool:
        """Ping the store once and track consecutive failures."""
        ok = self.store.ping()
        if ok:
            if self.failures:
                logger.info(f"Store reachable again after {self.failures} failed pings")
            self.failures = 0
        else:
            self.failures += 1
            logger.warning(f"Keepalive ping failed ({self.failures} in a row)")
        return ok

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.probe_once()

    def start(self) -> None:
        """Start the probe thread if it is not running."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="store-keepalive", daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Signal the thread to exit and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
