from __future__ import annotations
import logging, time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from .sources import NotificationWatch, PollScan, SignalKind, WatchMode, NOTIFY_TIMEOUT
from .utils import notice

logger = logging.getLogger("cdrwatch.loop")

POLL_INTERVAL = 0.1
RESCAN_INTERVAL = 300


class Phase(Enum):
    INITIALIZING = "initializing"
    CONNECT_GATE = "connect_gate"
    AWAIT_SIGNAL = "await_signal"
    DRAINING = "draining"
    OVERFLOWED = "overflowed"
    SHUTTING_DOWN = "shutting_down"


@dataclass
class LoopState:
    running: bool = True
    phase: Phase = Phase.INITIALIZING
    mode: Optional[WatchMode] = None
    last_scan: float = 0.0
    processed: int = 0
    errors: int = 0
    drains: int = 0
    overflows: int = 0


class EventLoop:
    """Single-worker watch/dispatch loop over the landing directory.

    Each round passes the connection gate, then asks the active change source
    for a signal. Polling drains the directory every round; inotify handles
    named files one by one, drains on overflow, and drains anyway once
    ``rescan_interval`` has passed since the last full scan. An inotify error
    demotes the loop to polling for the rest of the run.
    """

    def __init__(self, layout, guard, triage, *, mode: str = "auto",
                 poll_interval: float = POLL_INTERVAL,
                 notify_timeout: float = NOTIFY_TIMEOUT,
                 rescan_interval: float = RESCAN_INTERVAL,
                 watch_factory: Callable = NotificationWatch,
                 on_downgrade: Optional[Callable[[], None]] = None,
                 clock: Callable[[], float] = time.monotonic,
                 sleep: Callable[[float], None] = time.sleep):
        self.layout = layout
        self.guard = guard
        self.triage = triage
        self.requested_mode = mode
        self.poll_interval = poll_interval
        self.notify_timeout = notify_timeout
        self.rescan_interval = rescan_interval
        self.watch_factory = watch_factory
        self.on_downgrade = on_downgrade
        self.clock = clock
        self.sleep = sleep
        self.state = LoopState()
        self.scanner = PollScan(layout.base)
        self.source = None

    def start(self):
        self.state.phase = Phase.INITIALIZING
        self.layout.provision()
        self.source = self.scanner
        if self.requested_mode != "poll":
            try:
                self.source = self.watch_factory(self.layout.base)
            except OSError as e:
                notice(logger, f"Failed to initialize inotify: {e}")
        self.state.mode = self.source.mode
        if self.state.mode is WatchMode.NOTIFY:
            notice(logger, "Using inotify for file monitoring")
        else:
            notice(logger, "Using directory polling for file monitoring")
        self.state.last_scan = self.clock()

    def run(self) -> int:
        self.start()
        try:
            while self.state.running:
                self.step()
        finally:
            self.shutdown()
        return 0

    def step(self):
        self.state.phase = Phase.CONNECT_GATE
        if not self.guard.ensure_connected(lambda: self.state.running):
            return
        if not self.state.running:
            return

        self.state.phase = Phase.AWAIT_SIGNAL
        if self.state.mode is WatchMode.POLL:
            self.drain()
            self.sleep(self.poll_interval)
            return

        signal = self.source.wait_for_signal(self.notify_timeout)
        if signal.kind is SignalKind.NAMES:
            for name in signal.names:
                self.process(name)
        elif signal.kind is SignalKind.OVERFLOW:
            self.overflowed()
            return
        elif signal.kind is SignalKind.ERROR:
            self.downgrade()
            return

        if self.clock() - self.state.last_scan >= self.rescan_interval:
            logger.debug("Periodic scan for missed files")
            self.drain()

    def overflowed(self):
        self.state.phase = Phase.OVERFLOWED
        self.state.overflows += 1
        logger.warning("Too many files created. Processing in bulk.")
        count = self.drain()
        logger.warning(f"Bulk processing completed ({count} files).")

    def downgrade(self):
        logger.warning("inotify failed, falling back to directory polling for the rest of the run")
        self.source.close()
        self.source = self.scanner
        self.state.mode = WatchMode.POLL
        notice(logger, "Using directory polling for file monitoring")
        if self.on_downgrade is not None:
            self.on_downgrade()

    def drain(self) -> int:
        """Process every file present, re-listing until nothing new shows up."""
        self.state.phase = Phase.DRAINING
        seen: set[str] = set()
        while True:
            fresh = [n for n in self.scanner.wait_for_signal().names if n not in seen]
            if not fresh:
                break
            for name in fresh:
                seen.add(name)
                self.process(name)
        self.state.drains += 1
        self.state.last_scan = self.clock()
        return len(seen)

    def process(self, name: str):
        try:
            self.triage.process(name)
        except Exception as e:
            self.state.errors += 1
            logger.warning(f"Failed processing {name}: {e}", exc_info=True)
        else:
            self.state.processed += 1

    def stop(self):
        self.state.running = False
        if self.source is not None:
            self.source.interrupt()

    def shutdown(self):
        self.state.phase = Phase.SHUTTING_DOWN
        if self.source is not None:
            self.source.close()
            self.source = None
        logger.info(f"Stopped after {self.state.processed} files, {self.state.errors} errors")
