from __future__ import annotations


class CdrWatchError(Exception):
    pass


class ProvisioningError(CdrWatchError):
    """The landing directory or one of its failure buckets could not be created."""


class WatchSetupError(CdrWatchError, OSError):
    """Kernel change notification is unavailable for the landing directory."""
