"""Pydantic schemas for API request/response validation."""

from schemas.connection import (
    ConnectionCreate,
    ConnectionStatusResponse,
    LinkAccountRequest,
    LinkedAccountResponse,
    ReconciledStatusResponse,
    StalePendingStatusResponse,
    StaleSyncStatusResponse,
    SyncRequest,
    SyncRunResponse,
)

__all__ = [
    "ConnectionCreate",
    "ConnectionStatusResponse",
    "LinkAccountRequest",
    "LinkedAccountResponse",
    "ReconciledStatusResponse",
    "StalePendingStatusResponse",
    "StaleSyncStatusResponse",
    "SyncRequest",
    "SyncRunResponse",
]
