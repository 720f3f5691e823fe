"""Per-account sync fan-out.

Each resolved account gets its own unit of work on a thread pool. The
connection sync that scheduled them does not wait for them.
"""

import logging
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date
from typing import Optional

from config import settings
from database import get_session_local
from models import Account, LinkedAccount, SyncRun
from models.sync_run import RUN_COMPLETED, RUN_SKIPPED
from models.utils import utc_now
from services.sync_complete_event import run_best_effort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccountSyncRequest:
    """Request to sync one local account, correlated with its parent run."""

    account_id: str
    parent_run_id: Optional[str] = None
    window_start_date: Optional[date] = None
    window_end_date: Optional[date] = None


AccountSyncHandler = Callable[[AccountSyncRequest], None]


def run_account_sync(request: AccountSyncRequest, session_factory=None) -> Optional[SyncRun]:
    """Default handler: record a child SyncRun for one account.

    Opens its own session so it can run on a worker thread. If every
    connection the account is linked through is scheduled for deletion,
    the run is recorded as skipped.

    Args:
        request: The account sync request
        session_factory: Sessionmaker to use (defaults to the app's)

    Returns:
        The recorded child SyncRun, or None if the account no longer exists.
    """
    SessionLocal = session_factory or get_session_local()
    db = SessionLocal()
    try:
        account = db.query(Account).filter(Account.id == request.account_id).first()
        if account is None:
            logger.warning("Account sync skipped: account %s not found", request.account_id)
            return None

        run = SyncRun(
            account_id=account.id,
            parent_id=request.parent_run_id,
            window_start_date=request.window_start_date,
            window_end_date=request.window_end_date,
        )
        db.add(run)

        links = (
            db.query(LinkedAccount)
            .filter(
                (LinkedAccount.account_id == account.id)
                | (LinkedAccount.legacy_account_id == account.id)
            )
            .all()
        )
        if links and all(link.connection.scheduled_for_deletion for link in links):
            run.finish(RUN_SKIPPED, error="Connection scheduled for deletion")
            db.commit()
            db.refresh(run)
            logger.info("Account sync skipped for %s: connection being deleted", account.name)
            return run

        account.last_sync_time = utc_now()
        run.finish(RUN_COMPLETED)
        db.commit()
        db.refresh(run)
        logger.info("Account %s synced", account.name)
        return run
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


class AccountSyncScheduler:
    """Dispatches account sync requests onto a thread pool."""

    def __init__(
        self,
        handler: Optional[AccountSyncHandler] = None,
        max_workers: Optional[int] = None,
    ):
        """Initialize the scheduler.

        Args:
            handler: Callable run for each request. Defaults to
                     :func:`run_account_sync`.
            max_workers: Pool size. Defaults to ACCOUNT_SYNC_MAX_WORKERS.
        """
        self._handler = handler or run_account_sync
        self._max_workers = max_workers or settings.ACCOUNT_SYNC_MAX_WORKERS
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self._max_workers,
                thread_name_prefix="account-sync",
            )
        return self._executor

    def schedule(self, request: AccountSyncRequest) -> Future:
        """Submit one request; failures are logged, never raised to the caller."""
        logger.debug(
            "Scheduling account sync %s (parent %s)",
            request.account_id, request.parent_run_id,
        )
        return self.executor.submit(
            run_best_effort,
            f"Account sync for {request.account_id}",
            self._handler,
            request,
        )

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
