from __future__ import annotations
import logging, time
from typing import Callable, Optional

from .utils import notice

logger = logging.getLogger("cdrwatch.guard")

RECONNECT_SECONDS = 3.0


class ConnectionGuard:
    """Holds the event loop at the gate until the database answers.

    Retries forever at a fixed interval. Every successful connect runs
    ``on_reconnect`` so settings cached from the database are refreshed.
    """

    def __init__(self, db, on_reconnect: Optional[Callable[[], None]] = None,
                 interval: float = RECONNECT_SECONDS, sleep: Callable[[float], None] = time.sleep):
        self.db = db
        self.on_reconnect = on_reconnect
        self.interval = interval
        self.sleep = sleep
        self.attempts = 0

    def ensure_connected(self, keep_going: Callable[[], bool] = lambda: True) -> bool:
        while not self.db.is_connected():
            if not keep_going():
                return False
            self.attempts += 1
            logger.warning(f"Database not connected, reconnect attempt {self.attempts}")
            if self.db.connect():
                notice(logger, "Database connected")
                if self.on_reconnect is not None:
                    self.on_reconnect()
            self.sleep(self.interval)
        self.attempts = 0
        return True
