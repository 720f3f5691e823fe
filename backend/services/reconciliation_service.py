"""Reconciliation service - pending/posted reconciliation counts per Connection."""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import Connection, TransactionEntry
from services.connection_service import ConnectionService
from services.sync_stats import parse_sync_stats, stat_int
from utils.text import pluralize

logger = logging.getLogger(__name__)

DEFAULT_STALE_PENDING_DAYS = 8


@dataclass
class ReconciledStatus:
    """Duplicate pending entries merged during the latest sync."""

    count: int = 0
    message: Optional[str] = None


@dataclass
class StalePendingStatus:
    """Pending entries that have stayed pending past the threshold."""

    count: int = 0
    accounts: Optional[list[str]] = None
    message: Optional[str] = None


def reconciled_message(count: int) -> str:
    return f"{count} duplicate pending {pluralize(count, 'transaction')} reconciled"


def stale_pending_message(count: int, days: int) -> str:
    return f"{count} pending {pluralize(count, 'transaction')} older than {days} days"


class ReconciliationService:
    """Reports reconciliation outcomes and stale pending entries."""

    @staticmethod
    def last_sync_reconciled_status(db: Session, connection: Connection) -> ReconciledStatus:
        """Report how many pending duplicates the latest sync reconciled.

        The count is written to the run's stats under ``pending_reconciled``
        by the deduplication pass; this only reads it back.
        """
        latest = ConnectionService.latest_sync_run(db, connection)
        if latest is None:
            return ReconciledStatus()

        count = stat_int(parse_sync_stats(latest.sync_stats), "pending_reconciled")
        if count > 0:
            return ReconciledStatus(count=count, message=reconciled_message(count))
        return ReconciledStatus()

    @staticmethod
    def stale_pending_counts(
        db: Session,
        account_ids: list[str],
        days: int = DEFAULT_STALE_PENDING_DAYS,
        today: date | None = None,
    ) -> dict[str, int]:
        """Count old pending, non-excluded entries per account in one query.

        Args:
            db: Database session
            account_ids: Local account ids to include
            days: Entries dated strictly before ``today - days`` are stale
            today: Reference date (defaults to ``date.today()``)

        Returns:
            Mapping of account id to stale count; accounts with none are absent.
        """
        if not account_ids:
            return {}
        cutoff = (today or date.today()) - timedelta(days=days)
        rows = (
            db.query(TransactionEntry.account_id, func.count(TransactionEntry.id))
            .filter(
                TransactionEntry.account_id.in_(account_ids),
                TransactionEntry.pending.is_(True),
                TransactionEntry.excluded.is_(False),
                TransactionEntry.date < cutoff,
            )
            .group_by(TransactionEntry.account_id)
            .all()
        )
        return {account_id: count for account_id, count in rows}

    @classmethod
    def stale_pending_status(
        cls,
        db: Session,
        connection: Connection,
        days: int = DEFAULT_STALE_PENDING_DAYS,
        today: date | None = None,
    ) -> StalePendingStatus:
        """Count stale pending entries across the connection's linked accounts.

        Unlinked accounts are excluded. The per-account breakdown and the
        total come from the same grouped query, so they always agree.
        """
        accounts = ConnectionService.accounts(db, connection)
        if not accounts:
            return StalePendingStatus()

        counts = cls.stale_pending_counts(db, [a.id for a in accounts], days=days, today=today)
        with_stale = [(a, counts.get(a.id, 0)) for a in accounts if counts.get(a.id, 0) > 0]
        total = sum(count for _, count in with_stale)
        if total == 0:
            return StalePendingStatus()

        logger.debug(
            "Connection %s: %d stale pending entries across %d accounts",
            connection.id[:8], total, len(with_stale),
        )
        return StalePendingStatus(
            count=total,
            accounts=[a.name for a, _ in with_stale],
            message=stale_pending_message(total, days),
        )
