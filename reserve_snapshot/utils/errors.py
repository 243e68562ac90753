"""Error types raised while collecting reserve snapshots."""

from __future__ import annotations


class ReserveSnapshotError(Exception):
    """Base class for all reserve snapshot errors."""


class ConfigError(ReserveSnapshotError):
    """Configuration file is missing, unreadable or invalid."""


class InvocationError(ReserveSnapshotError):
    """A read-only contract invocation failed (transport, RPC or VM fault)."""


class DecodeError(ReserveSnapshotError):
    """A result buffer was truncated or malformed."""


class AggregationError(ReserveSnapshotError):
    """Reserve aggregation aborted on the first market-level failure."""


class SnapshotWriteError(ReserveSnapshotError):
    """Snapshot file could not be created or written."""
