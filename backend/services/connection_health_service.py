"""Connection health service - staleness, rate limits and status lines.

Nothing here is stored. Every result is computed from current rows and a
reference ``today`` so callers (and tests) can pin the clock.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from models import Connection, TransactionEntry
from services.account_resolution import count_linked
from services.connection_service import ConnectionService
from services.reconciliation_service import (
    ReconciledStatus,
    ReconciliationService,
    StalePendingStatus,
)
from services.sync_stats import parse_sync_stats, stat_int
from utils.text import pluralize

logger = logging.getLogger(__name__)

REASON_CONNECTION = "connection"
REASON_DATA_FRESHNESS = "data freshness"

RATE_LIMITED_MESSAGE = (
    "You've hit the bridge's daily refresh limit. Please try again after "
    "the bridge refreshes (up to 24 hours)."
)
NEEDS_UPDATE_ISSUE = "Connection needs update"
SETUP_ISSUE = "Accounts need setup"


@dataclass(frozen=True)
class HealthThresholds:
    """Tunable thresholds; each one is independent of the others."""

    stale_sync_days: int = 3
    stale_transaction_days: int = 14
    stale_pending_days: int = 8
    rate_limit_phrases: tuple[str, ...] = (
        "make fewer requests",
        "only refreshed once every 24 hours",
        "rate limit",
    )

    @classmethod
    def from_settings(cls) -> "HealthThresholds":
        return cls(
            stale_sync_days=settings.STALE_SYNC_DAYS,
            stale_transaction_days=settings.STALE_TRANSACTION_DAYS,
            stale_pending_days=settings.STALE_PENDING_DAYS,
            rate_limit_phrases=tuple(p.lower() for p in settings.RATE_LIMIT_PHRASES),
        )


@dataclass
class StaleSyncStatus:
    """Staleness signal for a connection."""

    stale: bool = False
    reason: Optional[str] = None
    message: Optional[str] = None
    days_since_sync: Optional[int] = None
    days_since_transaction: Optional[int] = None


@dataclass
class ConnectionStatusReport:
    """Everything the UI shows about one connection's health."""

    connection_id: str
    name: str
    institution_display_name: str
    institution_summary: str
    status: str
    last_synced_at: Optional[datetime]
    sync_status_summary: Optional[str]
    needs_attention: bool
    attention_summary: list[str] = field(default_factory=list)
    stale_sync_status: StaleSyncStatus = field(default_factory=StaleSyncStatus)
    reconciled_status: ReconciledStatus = field(default_factory=ReconciledStatus)
    stale_pending_status: StalePendingStatus = field(default_factory=StalePendingStatus)
    rate_limited_message: Optional[str] = None


def render_status_summary(total: int, linked: int, unlinked: int) -> str:
    """Render the one-line sync summary from account counts.

    Stats-based and live-count callers both go through this, so the same
    counts always render the same string.
    """
    if total == 0:
        return "No accounts found"
    if unlinked == 0:
        return f"{linked} {pluralize(linked, 'account')} synced"
    return f"{linked} synced, {unlinked} need setup"


def _days_between(earlier: date | datetime, today: date) -> int:
    if isinstance(earlier, datetime):
        earlier = earlier.date()
    return (today - earlier).days


class ConnectionHealthService:
    """Classifies connection health from sync runs, entries and links."""

    def __init__(self, thresholds: Optional[HealthThresholds] = None):
        """Initialize with optional thresholds.

        Args:
            thresholds: Overrides for staleness and rate-limit detection.
                        If None, values are read from settings.
        """
        self.thresholds = thresholds or HealthThresholds.from_settings()

    def latest_transaction_date(self, db: Session, account_ids: list[str]) -> Optional[date]:
        """Most recent entry date across the given accounts."""
        if not account_ids:
            return None
        return (
            db.query(func.max(TransactionEntry.date))
            .filter(TransactionEntry.account_id.in_(account_ids))
            .scalar()
        )

    def stale_sync_status(
        self,
        db: Session,
        connection: Connection,
        today: date | None = None,
    ) -> StaleSyncStatus:
        """Classify whether the connection's data looks stale.

        No successful sync yet is not treated as stale. An old last sync
        is checked first and short-circuits the transaction-date check.
        """
        today = today or date.today()
        if connection.last_synced_at is None:
            return StaleSyncStatus()

        days_since_sync = _days_between(connection.last_synced_at, today)
        if days_since_sync > self.thresholds.stale_sync_days:
            return StaleSyncStatus(
                stale=True,
                reason=REASON_CONNECTION,
                days_since_sync=days_since_sync,
                message=(
                    f"Last successful sync was {days_since_sync} days ago. "
                    "Your bridge connection may need attention."
                ),
            )

        accounts = ConnectionService.accounts(db, connection)
        if not accounts:
            return StaleSyncStatus()

        latest = self.latest_transaction_date(db, [a.id for a in accounts])
        if latest is not None:
            days_since_transaction = _days_between(latest, today)
            if days_since_transaction > self.thresholds.stale_transaction_days:
                return StaleSyncStatus(
                    stale=True,
                    reason=REASON_DATA_FRESHNESS,
                    days_since_transaction=days_since_transaction,
                    message=(
                        f"No new transactions in {days_since_transaction} days. "
                        "Check your bridge dashboard to ensure your bank connections are active."
                    ),
                )

        return StaleSyncStatus()

    def rate_limited_message(self, db: Session, connection: Connection) -> Optional[str]:
        """Friendly message when the latest run was rate-limited, else None."""
        latest = ConnectionService.latest_sync_run(db, connection)
        if latest is None:
            return None

        text = " — ".join(part for part in (latest.error, latest.status_text) if part)
        if not text:
            return None

        lowered = text.lower()
        if any(phrase in lowered for phrase in self.thresholds.rate_limit_phrases):
            logger.info("Connection %s: latest sync was rate-limited", connection.id[:8])
            return RATE_LIMITED_MESSAGE
        return None

    def needs_attention(
        self,
        db: Session,
        connection: Connection,
        today: date | None = None,
    ) -> bool:
        """True if the user should act on this connection."""
        return bool(self.attention_summary(db, connection, today=today))

    def attention_summary(
        self,
        db: Session,
        connection: Connection,
        today: date | None = None,
    ) -> list[str]:
        """Reasons the connection needs attention, in display order."""
        issues = []
        if connection.requires_update:
            issues.append(NEEDS_UPDATE_ISSUE)
        stale = self.stale_sync_status(db, connection, today=today)
        if stale.stale:
            issues.append(stale.message)
        if ConnectionService.has_pending_account_setup(db, connection):
            issues.append(SETUP_ISSUE)
        return issues

    def sync_status_summary(self, db: Session, connection: Connection) -> Optional[str]:
        """One-line summary of the latest sync, or None before the first run.

        Counts come from the latest run's stats. When the stats are missing
        or malformed, live linked-account counts are used instead.
        """
        latest = ConnectionService.latest_sync_run(db, connection)
        if latest is None:
            return None

        stats = parse_sync_stats(latest.sync_stats)
        if stats is not None:
            total = stat_int(stats, "total_accounts")
            linked = stat_int(stats, "linked_accounts")
            unlinked = stat_int(stats, "unlinked_accounts")
        else:
            linked_accounts = ConnectionService.linked_accounts(db, connection)
            total = len(linked_accounts)
            linked = count_linked(linked_accounts)
            unlinked = total - linked

        return render_status_summary(total, linked, unlinked)

    def status_report(
        self,
        db: Session,
        connection: Connection,
        today: date | None = None,
    ) -> ConnectionStatusReport:
        """Bundle every status signal for one connection."""
        stale = self.stale_sync_status(db, connection, today=today)
        issues = self.attention_summary(db, connection, today=today)
        return ConnectionStatusReport(
            connection_id=connection.id,
            name=connection.name,
            institution_display_name=connection.institution_display_name,
            institution_summary=ConnectionService.institution_summary(db, connection),
            status=connection.status,
            last_synced_at=connection.last_synced_at,
            sync_status_summary=self.sync_status_summary(db, connection),
            needs_attention=bool(issues),
            attention_summary=issues,
            stale_sync_status=stale,
            reconciled_status=ReconciliationService.last_sync_reconciled_status(db, connection),
            stale_pending_status=ReconciliationService.stale_pending_status(
                db, connection, days=self.thresholds.stale_pending_days, today=today
            ),
            rate_limited_message=self.rate_limited_message(db, connection),
        )
