"""Connection API endpoints: status reporting, sync, linking and removal."""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from api.helpers import get_connection_or_404, get_or_404
from database import get_db, get_session_local
from models import Account, Connection, LinkedAccount
from schemas import (
    ConnectionCreate,
    ConnectionStatusResponse,
    LinkAccountRequest,
    LinkedAccountResponse,
    StalePendingStatusResponse,
    SyncRequest,
    SyncRunResponse,
)
from services.account_resolution import resolve_current_account
from services.connection_health_service import ConnectionHealthService
from services.connection_service import ConnectionService
from services.connection_sync_service import ConnectionSyncService
from services.exceptions import ConnectionDeletedError, MissingSnapshotError
from services.reconciliation_service import ReconciliationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/connections", tags=["connections"])

_sync_service: Optional[ConnectionSyncService] = None


def get_connection_sync_service() -> ConnectionSyncService:
    """Shared ConnectionSyncService (overridable in tests)."""
    global _sync_service
    if _sync_service is None:
        _sync_service = ConnectionSyncService()
    return _sync_service


def get_health_service() -> ConnectionHealthService:
    """Dependency for the health classifier (overridable in tests)."""
    return ConnectionHealthService()


def _destroy_connection(connection_id: str) -> None:
    """Background task: hard-delete a connection in its own session."""
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        ConnectionService.destroy(db, connection_id)
    except Exception:
        logger.error("Failed to destroy connection %s", connection_id, exc_info=True)
        db.rollback()
    finally:
        db.close()


@router.post("", response_model=ConnectionStatusResponse, status_code=201)
def create_connection(
    body: ConnectionCreate,
    db: Session = Depends(get_db),
    health: ConnectionHealthService = Depends(get_health_service),
):
    """Register a bridge connection after a successful link setup."""
    if not body.access_url.startswith(("http://", "https://")):
        raise HTTPException(
            status_code=400,
            detail="access_url must be an http(s) URL, not a setup token",
        )
    connection = Connection(name=body.name, access_url=body.access_url)
    db.add(connection)
    db.commit()
    db.refresh(connection)
    logger.info("Connection %s created", connection.id[:8])
    return health.status_report(db, connection)


@router.get("", response_model=list[ConnectionStatusResponse])
def list_connections(
    db: Session = Depends(get_db),
    health: ConnectionHealthService = Depends(get_health_service),
):
    """List active connections with their health status."""
    return [health.status_report(db, c) for c in ConnectionService.list_active(db)]


@router.get("/{connection_id}/status", response_model=ConnectionStatusResponse)
def get_connection_status(
    connection_id: str,
    db: Session = Depends(get_db),
    health: ConnectionHealthService = Depends(get_health_service),
):
    """Full health report for one connection."""
    connection = get_connection_or_404(db, connection_id)
    return health.status_report(db, connection)


@router.get("/{connection_id}/stale-pending", response_model=StalePendingStatusResponse)
def get_stale_pending(
    connection_id: str,
    days: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db),
    health: ConnectionHealthService = Depends(get_health_service),
):
    """Stale pending entries, with an optional custom day threshold."""
    connection = get_connection_or_404(db, connection_id)
    return ReconciliationService.stale_pending_status(
        db, connection, days=days or health.thresholds.stale_pending_days
    )


@router.post("/{connection_id}/sync", response_model=SyncRunResponse)
def sync_connection(
    connection_id: str,
    body: Optional[SyncRequest] = Body(None),
    db: Session = Depends(get_db),
    sync_service: ConnectionSyncService = Depends(get_connection_sync_service),
):
    """Sync a connection from a supplied snapshot, or fetch one from the bridge.

    Always returns 200 with the sync run once the pipeline starts; failures
    are reported in the run's ``status`` and ``error``.
    """
    connection = get_connection_or_404(db, connection_id)
    body = body or SyncRequest()

    try:
        if body.snapshot is not None:
            return sync_service.sync_connection(
                db,
                connection,
                body.snapshot,
                window_start_date=body.window_start_date,
                window_end_date=body.window_end_date,
            )
        return sync_service.sync_from_bridge(
            db,
            connection,
            window_start_date=body.window_start_date,
            window_end_date=body.window_end_date,
        )
    except MissingSnapshotError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConnectionDeletedError:
        raise HTTPException(status_code=409, detail="Connection is being deleted")
    except Exception:
        logger.error("Unexpected error during connection sync", exc_info=True)
        raise HTTPException(
            status_code=500,
            detail="An unexpected error occurred during sync.",
        )


@router.get("/{connection_id}/linked-accounts", response_model=list[LinkedAccountResponse])
def list_linked_accounts(connection_id: str, db: Session = Depends(get_db)):
    """Bridge accounts under a connection, linked or awaiting setup."""
    connection = get_connection_or_404(db, connection_id)
    return ConnectionService.linked_accounts(db, connection)


@router.post(
    "/{connection_id}/linked-accounts/{linked_account_id}/link",
    response_model=LinkedAccountResponse,
)
def link_account(
    connection_id: str,
    linked_account_id: str,
    body: LinkAccountRequest,
    db: Session = Depends(get_db),
):
    """Link a bridge account to a local account, creating one if none is given.

    A linked account's local account is stable once set, including one it
    still resolves to through its legacy link.
    """
    connection = get_connection_or_404(db, connection_id)
    linked = get_or_404(db, LinkedAccount, linked_account_id, detail="Linked account not found")
    if linked.connection_id != connection.id:
        raise HTTPException(status_code=404, detail="Linked account not found")
    if resolve_current_account(linked) is not None:
        raise HTTPException(status_code=409, detail="Linked account is already linked")

    if body.account_id:
        account = get_or_404(db, Account, body.account_id, detail="Account not found")
    else:
        org = linked.org_data or {}
        account = Account(
            name=linked.name,
            institution_name=org.get("name") or connection.institution_name,
            currency=linked.currency or "USD",
            balance=linked.current_balance,
        )
        db.add(account)
        db.flush()

    linked.account_id = account.id
    db.commit()
    db.refresh(linked)
    logger.info("Linked account %s linked to %s", linked.external_id, account.name)
    return linked


@router.delete("/{connection_id}", status_code=202)
def delete_connection(
    connection_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """Flag a connection for deletion and remove it in the background."""
    connection = get_connection_or_404(db, connection_id)
    ConnectionService.destroy_later(
        db,
        connection,
        lambda cid: background_tasks.add_task(_destroy_connection, cid),
    )
    return {"id": connection_id, "scheduled_for_deletion": True}
