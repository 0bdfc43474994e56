from __future__ import annotations
import logging, os, select
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from inotify_simple import INotify, flags

from .errors import WatchSetupError

logger = logging.getLogger("cdrwatch.sources")

WATCH_MASK = flags.CLOSE_WRITE | flags.MOVED_TO
NOTIFY_TIMEOUT = 300


class SignalKind(Enum):
    NAMES = "names"
    OVERFLOW = "overflow"
    TIMEOUT = "timeout"
    ERROR = "error"


@dataclass(frozen=True)
class SignalResult:
    kind: SignalKind
    names: tuple = ()


OVERFLOW = SignalResult(SignalKind.OVERFLOW)
TIMEOUT = SignalResult(SignalKind.TIMEOUT)
ERROR = SignalResult(SignalKind.ERROR)


def names_signal(names: Iterable[str]) -> SignalResult:
    return SignalResult(SignalKind.NAMES, tuple(names))


class WatchState(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    DEGRADED = "degraded"


class WatchMode(Enum):
    NOTIFY = "inotify"
    POLL = "poll"


def flag_names(mask: int) -> str:
    return "|".join(f.name for f in flags.from_mask(mask))


class NotificationWatch:
    """inotify subscription on one directory for close-after-write and moved-in.

    ``wait_for_signal`` blocks in ``select`` on the inotify descriptor and a
    wake pipe, then drains every queued event in one read. A queue overflow
    wins over any names read alongside it: the caller has to rescan.
    """

    mode = WatchMode.NOTIFY

    def __init__(self, path, inotify=None):
        self.path = str(path)
        self.state = WatchState.UNINITIALIZED
        self.wd = None
        self._wake_r = self._wake_w = None
        try:
            self.inotify = inotify if inotify is not None else INotify()
            self.wd = self.inotify.add_watch(self.path, WATCH_MASK)
            self._wake_r, self._wake_w = os.pipe()
            os.set_blocking(self._wake_w, False)
        except OSError as e:
            self.state = WatchState.DEGRADED
            self._release()
            raise WatchSetupError(f"inotify unavailable for {self.path}: {e}") from e
        self.state = WatchState.ACTIVE

    def wait_for_signal(self, timeout: float = NOTIFY_TIMEOUT) -> SignalResult:
        if self.state is not WatchState.ACTIVE:
            return ERROR
        try:
            ready, _, _ = select.select([self.inotify.fd, self._wake_r], [], [], timeout)
            if self._wake_r in ready:
                os.read(self._wake_r, 512)
            if self.inotify.fd not in ready:
                return TIMEOUT
            events = self.inotify.read(timeout=0)
        except OSError as e:
            logger.warning(f"inotify read failed: {e}")
            self.state = WatchState.DEGRADED
            return ERROR
        return self.interpret(events)

    def interpret(self, events) -> SignalResult:
        names = []
        for event in events:
            if event.mask & flags.Q_OVERFLOW:
                logger.warning("inotify queue overflow, dropping buffered events")
                return self.rearm()
            if event.mask & flags.ISDIR:
                logger.debug(f"Ignored directory event: {flag_names(event.mask)} {event.name}")
            elif event.mask & WATCH_MASK:
                # close-after-write and moved-in can both fire for one file
                if event.name not in names:
                    names.append(event.name)
            else:
                logger.debug(f"Detected event: {flag_names(event.mask)}")
        return names_signal(names) if names else TIMEOUT

    def rearm(self) -> SignalResult:
        """Drop and re-add the watch so nothing stale stays queued."""
        try:
            try:
                self.inotify.rm_watch(self.wd)
            except OSError as e:
                logger.debug(f"rm_watch on overflow: {e}")
            self.wd = self.inotify.add_watch(self.path, WATCH_MASK)
        except OSError as e:
            logger.warning(f"inotify re-arm failed: {e}")
            self.state = WatchState.DEGRADED
            return ERROR
        return OVERFLOW

    def interrupt(self):
        if self._wake_w is not None:
            try:
                os.write(self._wake_w, b"\0")
            except BlockingIOError:
                pass  # a wake-up is already pending

    def close(self):
        if self.wd is not None and self.state is WatchState.ACTIVE:
            try:
                self.inotify.rm_watch(self.wd)
            except OSError as e:
                logger.debug(f"rm_watch on close: {e}")
        self.wd = None
        self._release()
        if self.state is WatchState.ACTIVE:
            self.state = WatchState.UNINITIALIZED

    def _release(self):
        inotify = getattr(self, "inotify", None)
        if inotify is not None:
            inotify.close()
        for fd in (self._wake_r, self._wake_w):
            if fd is not None:
                os.close(fd)
        self._wake_r = self._wake_w = None


class PollScan:
    """Lists the landing directory; every regular entry is a candidate."""

    mode = WatchMode.POLL

    def __init__(self, path):
        self.path = str(path)

    def list_names(self) -> list[str]:
        try:
            with os.scandir(self.path) as it:
                return sorted(e.name for e in it if not e.is_dir())
        except OSError as e:
            logger.warning(f"Cannot list {self.path}: {e}")
            return []

    def wait_for_signal(self, timeout: float | None = None) -> SignalResult:
        return names_signal(self.list_names())

    def interrupt(self):
        pass

    def close(self):
        pass
