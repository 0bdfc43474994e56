from __future__ import annotations

import pytest

from cdrwatch.db import Database
from cdrwatch.layout import Layout
from cdrwatch.sources import TIMEOUT, WatchMode


class RecordingImporter:
    """Importer stand-in that remembers every call and leaves the file alone."""

    def __init__(self):
        self.calls = []

    def import_record(self, leg, payload, filename):
        self.calls.append((leg, payload, filename))
        return True


class OpenGuard:
    """Connection guard that is always connected."""

    def __init__(self):
        self.calls = 0

    def ensure_connected(self, keep_going=lambda: True):
        self.calls += 1
        return True


class ScriptedSource:
    """Change source replaying a fixed list of signals."""

    mode = WatchMode.NOTIFY

    def __init__(self, signals, on_empty=None):
        self.signals = list(signals)
        self.on_empty = on_empty
        self.waits = []
        self.closed = False
        self.interrupted = False

    def wait_for_signal(self, timeout=None):
        self.waits.append(timeout)
        if not self.signals:
            if self.on_empty is not None:
                self.on_empty()
            return TIMEOUT
        return self.signals.pop(0)

    def interrupt(self):
        self.interrupted = True

    def close(self):
        self.closed = True


@pytest.fixture
def layout(tmp_path):
    lay = Layout(tmp_path / "xml_cdr")
    lay.provision()
    return lay


@pytest.fixture
def importer():
    return RecordingImporter()


@pytest.fixture
def guard():
    return OpenGuard()


@pytest.fixture
def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'cdr.sqlite'}")
    assert database.connect()
    yield database
    database.dispose()


def write_cdr(layout, name, content=b"<cdr><variables><uuid>u-1</uuid></variables></cdr>"):
    path = layout.base / name
    path.write_bytes(content)
    return path
