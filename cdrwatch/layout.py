from __future__ import annotations
import logging, os
from pathlib import Path

from .errors import ProvisioningError
from .utils import notice

logger = logging.getLogger("cdrwatch.layout")

BUCKETS = ("size", "xml", "sql")
LEGACY_BUCKET = "invalid_xml"
DIR_MODE = 0o770


class Layout:
    """The landing directory and its ``failed/<reason>`` buckets."""

    def __init__(self, base: str | os.PathLike | None):
        self.base = Path(base) if base else None

    @property
    def resolved(self) -> bool:
        return self.base is not None

    @property
    def failed(self) -> Path:
        return self.base / "failed"

    def bucket(self, name: str) -> Path:
        if name not in BUCKETS:
            raise ValueError(f"Unknown failure bucket: {name}")
        return self.failed / name

    def path_for(self, name: str) -> Path:
        return self.base / os.path.basename(name)

    def migrate_legacy_bucket(self) -> bool:
        old, new = self.failed / LEGACY_BUCKET, self.bucket("xml")
        if not old.is_dir() or new.exists():
            return False
        os.rename(old, new)
        notice(logger, f"Renamed {old} to {new}")
        return True

    def _mkdirs(self, path: Path):
        # makedirs only applies mode to the leaf, so create each missing segment
        missing = []
        while not path.is_dir():
            missing.append(path)
            if path.parent == path:
                break
            path = path.parent
        for segment in reversed(missing):
            os.mkdir(segment, DIR_MODE)
            logger.info(f"Created {segment}")

    def ensure(self):
        for path in [self.base, self.failed] + [self.bucket(name) for name in BUCKETS]:
            try:
                self._mkdirs(path)
            except OSError as e:
                raise ProvisioningError(f"Cannot create {path}: {e}") from e

    def provision(self):
        if not self.resolved:
            raise ProvisioningError("Landing directory is not configured")
        try:
            self.migrate_legacy_bucket()
        except OSError as e:
            raise ProvisioningError(f"Cannot migrate legacy bucket: {e}") from e
        self.ensure()
