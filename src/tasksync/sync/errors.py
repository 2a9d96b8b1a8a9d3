"""
Sync error taxonomy.

Backends raise these; the engine catches them at its boundary and turns
them into a SyncStatus plus a message. Only validation errors ever reach
the caller, and they are raised before any I/O happens.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for every sync failure."""

    kind = "error"


class SyncValidationError(SyncError, ValueError):
    """Rejected input, e.g. a sync code that is too short."""

    kind = "validation"


class TransientSyncError(SyncError):
    """Network unreachable, timeout, or a temporary server fault.

    The next scheduled push or pull retries on its own.
    """

    kind = "transient"


class SyncConfigurationError(SyncError):
    """The remote backend is not configured or cannot be constructed."""

    kind = "configuration"


class SyncPermissionError(SyncError):
    """The backend refused the operation. Needs backend-side access rules fixed."""

    kind = "permission"


class RemoteBackendError(SyncError):
    """Any other backend rejection, including malformed documents."""

    kind = "backend"
