"""Time-stamped connection liveness owned by a store client."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class ConnectionState:
    """Remembers the last ping so healthy stores are not pinged per request."""

    ping_interval: float = 30.0
    is_connected: bool = False
    last_ping: float = 0.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    def needs_ping(self) -> bool:
        return not self.is_connected or (self.clock() - self.last_ping) > self.ping_interval

    def mark(self, connected: bool) -> None:
        if self.is_connected and not connected:
            logger.warning("Document store connection lost")
        self.is_connected = connected
        self.last_ping = self.clock()

    def check(self, ping: Callable[[], object]) -> None:
        """Run ``ping`` when stale; failures mark the state disconnected and propagate."""
        if not self.needs_ping():
            return
        try:
            ping()
        except Exception:
            self.mark(False)
            raise
        self.mark(True)
