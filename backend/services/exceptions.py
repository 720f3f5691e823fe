"""Errors raised by the sync engine for caller-contract violations.

Malformed bridge data never raises; it degrades to an empty default.
These exceptions are reserved for callers that use the engine wrongly.
"""


class SyncError(Exception):
    """Base class for sync engine errors."""

    pass


class MissingSnapshotError(SyncError):
    """A sync was started without a bridge snapshot to import."""

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"No snapshot supplied for connection {connection_id}")


class ConnectionDeletedError(SyncError):
    """A sync was requested for a connection scheduled for deletion."""

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        super().__init__(f"Connection {connection_id} is scheduled for deletion")
