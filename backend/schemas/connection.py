"""Pydantic schemas for connection status and sync endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, model_validator


class ConnectionCreate(BaseModel):
    """Request body for registering a bridge connection."""

    name: str
    access_url: str


class StaleSyncStatusResponse(BaseModel):
    """Staleness signal for a connection."""

    stale: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    days_since_sync: Optional[int] = None
    days_since_transaction: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class ReconciledStatusResponse(BaseModel):
    """Pending duplicates reconciled by the latest sync."""

    count: int
    message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class StalePendingStatusResponse(BaseModel):
    """Pending entries past the stale threshold."""

    count: int
    accounts: Optional[list[str]] = None
    message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ConnectionStatusResponse(BaseModel):
    """Full health report for one connection."""

    connection_id: str
    name: str
    institution_display_name: str
    institution_summary: str
    status: str
    last_synced_at: Optional[datetime] = None
    sync_status_summary: Optional[str] = None
    needs_attention: bool
    attention_summary: list[str]
    stale_sync_status: StaleSyncStatusResponse
    reconciled_status: ReconciledStatusResponse
    stale_pending_status: StalePendingStatusResponse
    rate_limited_message: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SyncRequest(BaseModel):
    """Request body for triggering a connection sync.

    When ``snapshot`` is omitted the snapshot is fetched from the bridge.
    """

    snapshot: Optional[dict[str, Any]] = None
    window_start_date: Optional[date] = None
    window_end_date: Optional[date] = None

    @model_validator(mode="after")
    def check_window(self) -> "SyncRequest":
        if (
            self.window_start_date is not None
            and self.window_end_date is not None
            and self.window_start_date > self.window_end_date
        ):
            raise ValueError("window_start_date must not be after window_end_date")
        return self


class SyncRunResponse(BaseModel):
    """Schema for SyncRun API response."""

    id: str
    connection_id: Optional[str] = None
    status: str
    sync_stats: Optional[Any] = None
    error: Optional[str] = None
    status_text: Optional[str] = None
    window_start_date: Optional[date] = None
    window_end_date: Optional[date] = None
    created_at: datetime
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LinkedAccountResponse(BaseModel):
    """Schema for a bridge-reported account."""

    id: str
    external_id: str
    name: str
    currency: Optional[str] = None
    current_balance: Optional[Decimal] = None
    account_id: Optional[str] = None
    legacy_account_id: Optional[str] = None
    org_data: Optional[dict[str, Any]] = None

    model_config = ConfigDict(from_attributes=True)


class LinkAccountRequest(BaseModel):
    """Link a bridge account to an existing local account, or create one."""

    account_id: Optional[str] = None
