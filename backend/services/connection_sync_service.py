"""Connection sync service - import, process, fan out, notify."""

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any, Optional

from sqlalchemy.orm import Session

from integrations.bridge_client import BridgeClient
from integrations.exceptions import BridgeAuthError, BridgeError
from models import Connection, SyncRun
from models.connection import STATUS_ACTIVE, STATUS_NEEDS_UPDATE
from models.sync_run import RUN_COMPLETED, RUN_FAILED, RUN_SYNCING
from models.utils import persisted_id, utc_now
from services.account_processor import AccountProcessor, ProcessResult
from services.account_resolution import resolve_current_account, resolved_accounts
from services.account_sync_scheduler import AccountSyncRequest, AccountSyncScheduler
from services.connection_service import ConnectionService
from services.exceptions import ConnectionDeletedError, MissingSnapshotError
from services.snapshot_importer import SnapshotImporter
from services.sync_complete_event import SyncCompleteEvent

logger = logging.getLogger(__name__)


class ConnectionSyncService:
    """Runs the sync pipeline for one Connection at a time.

    Steps run in order on the caller's thread: import the snapshot,
    process each resolved linked account, then schedule one async sync per
    account and fire the completion event. Account syncs are not awaited.
    """

    def __init__(
        self,
        scheduler: Optional[AccountSyncScheduler] = None,
        completion_event: Optional[SyncCompleteEvent] = None,
        importer: Optional[SnapshotImporter] = None,
    ):
        """Initialize with optional collaborators for dependency injection.

        Args:
            scheduler: Dispatcher for per-account syncs. If None, a default
                       thread-pool scheduler is created on first use.
            completion_event: Event fired after a completed sync. If None,
                              an event with no listeners is used.
            importer: Snapshot importer (defaults to SnapshotImporter).
        """
        self._scheduler = scheduler
        self.completion_event = completion_event or SyncCompleteEvent()
        self.importer = importer or SnapshotImporter()

    @property
    def scheduler(self) -> AccountSyncScheduler:
        """Get the account sync scheduler, creating default if not provided."""
        if self._scheduler is None:
            self._scheduler = AccountSyncScheduler()
        return self._scheduler

    def process_accounts(self, db: Session, connection: Connection) -> list[ProcessResult]:
        """Run per-account processing for every resolvable linked account."""
        processor = AccountProcessor(db)
        results = []
        for linked in ConnectionService.linked_accounts(db, connection):
            if resolve_current_account(linked) is None:
                continue
            results.append(processor.process(linked))
        return results

    def schedule_account_syncs(
        self,
        db: Session,
        connection: Connection,
        parent_run: Optional[SyncRun] = None,
        window_start_date: Optional[date] = None,
        window_end_date: Optional[date] = None,
    ) -> list[AccountSyncRequest]:
        """Schedule one async sync per resolved account.

        Nothing is scheduled for a connection flagged for deletion. The
        flag is re-read from the database so a concurrent delete request
        is honoured; a row already removed counts as flagged.
        """
        connection_id = persisted_id(connection)
        flagged = (
            db.query(Connection.scheduled_for_deletion)
            .filter(Connection.id == connection_id)
            .scalar()
        )
        if flagged is None or flagged:
            logger.info(
                "Connection %s scheduled for deletion; skipping account syncs",
                connection_id[:8],
            )
            return []

        requests = []
        for account in resolved_accounts(ConnectionService.linked_accounts(db, connection)):
            request = AccountSyncRequest(
                account_id=account.id,
                parent_run_id=parent_run.id if parent_run else None,
                window_start_date=window_start_date,
                window_end_date=window_end_date,
            )
            self.scheduler.schedule(request)
            requests.append(request)

        logger.info(
            "Connection %s: scheduled %d account sync(s)",
            connection.id[:8], len(requests),
        )
        return requests

    def sync_connection(
        self,
        db: Session,
        connection: Connection,
        snapshot: Optional[Mapping[str, Any]],
        window_start_date: Optional[date] = None,
        window_end_date: Optional[date] = None,
    ) -> SyncRun:
        """Import a snapshot and run the full sync pipeline.

        Always returns the SyncRun once one is created; import or
        processing failures are recorded on it as ``failed``.

        Args:
            db: Database session
            connection: Connection being synced
            snapshot: Accounts snapshot fetched from the bridge
            window_start_date: Optional start of the account sync window
            window_end_date: Optional end of the account sync window

        Returns:
            The SyncRun for this attempt

        Raises:
            MissingSnapshotError: If ``snapshot`` is None
            ConnectionDeletedError: If the connection is scheduled for deletion
        """
        if snapshot is None:
            raise MissingSnapshotError(connection.id)
        if connection.scheduled_for_deletion:
            raise ConnectionDeletedError(connection.id)

        sync_run = SyncRun(
            connection_id=connection.id,
            status=RUN_SYNCING,
            window_start_date=window_start_date,
            window_end_date=window_end_date,
        )
        db.add(sync_run)
        db.flush()
        logger.info("Sync started for connection %s (run %s)", connection.id[:8], sync_run.id[:8])

        try:
            self.importer.import_into_run(db, connection, snapshot, sync_run)
            results = self.process_accounts(db, connection)
            sync_run.sync_stats = {
                **(sync_run.sync_stats or {}),
                "entries_created": sum(r.entries_created for r in results),
                "entries_updated": sum(r.entries_updated for r in results),
                "entries_skipped": sum(r.entries_skipped for r in results),
            }

            connection.last_synced_at = utc_now()
            connection.status = STATUS_ACTIVE
            sync_run.finish(RUN_COMPLETED)
            db.commit()
        except Exception as e:
            logger.error(
                "Sync failed for connection %s: %s", connection.id[:8], e, exc_info=True,
            )
            db.rollback()
            return self._record_failed_run(db, connection, str(e), window_start_date, window_end_date)

        self.schedule_account_syncs(
            db,
            connection,
            parent_run=sync_run,
            window_start_date=window_start_date,
            window_end_date=window_end_date,
        )
        failures = self.completion_event.broadcast(connection)
        logger.info(
            "Sync completed for connection %s (%d listener failure(s))",
            persisted_id(connection)[:8], failures,
        )
        return sync_run

    def sync_from_bridge(
        self,
        db: Session,
        connection: Connection,
        client: Optional[BridgeClient] = None,
        window_start_date: Optional[date] = None,
        window_end_date: Optional[date] = None,
    ) -> SyncRun:
        """Fetch a snapshot from the bridge, then run :meth:`sync_connection`.

        A rejected credential flips the connection to ``needs_update``.
        Any bridge error is recorded on a failed SyncRun.
        """
        client = client or BridgeClient()
        try:
            snapshot = client.fetch_accounts(
                connection.access_url,
                start_date=window_start_date,
                end_date=window_end_date,
                connection_id=connection.id,
            )
        except BridgeAuthError as e:
            logger.warning("Bridge auth error for connection %s: %s", connection.id[:8], e)
            connection.status = STATUS_NEEDS_UPDATE
            return self._record_failed_run(db, connection, str(e), window_start_date, window_end_date)
        except BridgeError as e:
            logger.warning("Bridge error for connection %s: %s", connection.id[:8], e)
            return self._record_failed_run(db, connection, str(e), window_start_date, window_end_date)

        return self.sync_connection(
            db,
            connection,
            snapshot,
            window_start_date=window_start_date,
            window_end_date=window_end_date,
        )

    @staticmethod
    def _record_failed_run(
        db: Session,
        connection: Connection,
        error: str,
        window_start_date: Optional[date],
        window_end_date: Optional[date],
    ) -> SyncRun:
        sync_run = SyncRun(
            connection_id=connection.id,
            window_start_date=window_start_date,
            window_end_date=window_end_date,
        )
        sync_run.finish(RUN_FAILED, error=error)
        db.add(sync_run)
        db.commit()
        return sync_run

