from __future__ import annotations
import logging, os, shutil
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import unquote_to_bytes

from .utils import notice

logger = logging.getLogger("cdrwatch.triage")

CDR_SUFFIX = ".cdr.xml"
MAX_SIZE = 3 * 1024 * 1024


class TriageDecision(Enum):
    SKIP = "skip"
    REJECT_SIZE = "reject_size"
    FORWARD = "forward"


class CandidateFile:
    """One file seen in the landing directory. Size and content load lazily."""

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self.name = self.path.name
        self._size: Optional[int] = None
        self._content: Optional[bytes] = None

    @classmethod
    def resolve(cls, name: str, base) -> "CandidateFile":
        if base and not str(name).startswith(str(base)):
            return cls(Path(base) / name)
        return cls(name)

    @property
    def size(self) -> int:
        if self._size is None:
            self._size = self.path.stat().st_size
        return self._size

    @property
    def content(self) -> bytes:
        if self._content is None:
            self._content = self.path.read_bytes()
        return self._content


def classify(candidate: CandidateFile) -> TriageDecision:
    if not candidate.name.endswith(CDR_SUFFIX):
        return TriageDecision.SKIP
    if candidate.size == 0 or candidate.size >= MAX_SIZE:
        return TriageDecision.REJECT_SIZE
    return TriageDecision.FORWARD


def leg_for(basename: str) -> str:
    return "a" if basename.startswith("a_") else "b"


def decode_payload(raw: bytes) -> bytes:
    # some producers URL-encode the whole document
    if raw.startswith(b"%"):
        return unquote_to_bytes(raw.replace(b"+", b" "))
    return raw


class Triage:
    """Routes one landing-directory entry: skip, size bucket, or importer."""

    def __init__(self, layout, importer):
        self.layout = layout
        self.importer = importer

    def process(self, name: str) -> TriageDecision:
        candidate = CandidateFile.resolve(name, self.layout.base)
        decision = classify(candidate)
        if decision is TriageDecision.SKIP:
            notice(logger, f"Skipped '{candidate.name}'")
            return decision

        logger.debug(f"Processing {candidate.name}")
        if decision is TriageDecision.REJECT_SIZE:
            if self.layout.resolved:
                dest = self.layout.bucket("size") / candidate.name
                notice(logger, f"Move the file {candidate.path} to {dest.parent} ({candidate.size} bytes)")
                shutil.move(str(candidate.path), str(dest))
            return decision

        payload = decode_payload(candidate.content)
        self.importer.import_record(leg_for(candidate.name), payload, candidate.name)
        return decision
