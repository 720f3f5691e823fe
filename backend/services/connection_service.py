"""Connection service - queries and lifecycle operations on Connections."""

import logging
from collections.abc import Callable
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from models import Account, Connection, LinkedAccount, SyncRun
from models.connection import STATUS_NEEDS_UPDATE
from services.account_resolution import count_linked, resolved_accounts

logger = logging.getLogger(__name__)


class ConnectionService:
    """Read helpers and soft-delete lifecycle for bridge connections."""

    @staticmethod
    def list_active(db: Session) -> list[Connection]:
        """Connections not scheduled for deletion, newest first."""
        return (
            db.query(Connection)
            .filter(Connection.scheduled_for_deletion.is_(False))
            .order_by(Connection.created_at.desc())
            .all()
        )

    @staticmethod
    def list_needing_update(db: Session) -> list[Connection]:
        """Active connections whose credential must be refreshed."""
        return (
            db.query(Connection)
            .filter(
                Connection.scheduled_for_deletion.is_(False),
                Connection.status == STATUS_NEEDS_UPDATE,
            )
            .all()
        )

    @staticmethod
    def latest_sync_run(db: Session, connection: Connection) -> Optional[SyncRun]:
        """Most recent connection-level SyncRun by creation time."""
        return (
            db.query(SyncRun)
            .filter(SyncRun.connection_id == connection.id)
            .order_by(SyncRun.created_at.desc())
            .first()
        )

    @staticmethod
    def linked_accounts(db: Session, connection: Connection) -> list[LinkedAccount]:
        """Linked accounts with both account links eager-loaded.

        Both relationship paths are loaded up front so resolving the
        current account does not issue one query per linked account.
        """
        return (
            db.query(LinkedAccount)
            .options(
                selectinload(LinkedAccount.account),
                selectinload(LinkedAccount.legacy_account),
            )
            .filter(LinkedAccount.connection_id == connection.id)
            .order_by(LinkedAccount.created_at)
            .all()
        )

    @classmethod
    def accounts(cls, db: Session, connection: Connection) -> list[Account]:
        """Local accounts resolved from the connection's linked accounts."""
        return resolved_accounts(cls.linked_accounts(db, connection))

    @staticmethod
    def linked_account_count(db: Session, connection: Connection) -> int:
        """Total linked accounts under a connection, linked or not."""
        return (
            db.query(func.count(LinkedAccount.id))
            .filter(LinkedAccount.connection_id == connection.id)
            .scalar()
        ) or 0

    @classmethod
    def has_completed_initial_setup(cls, db: Session, connection: Connection) -> bool:
        """Setup is complete once any linked account resolves to a local account."""
        return bool(cls.accounts(db, connection))

    @classmethod
    def has_pending_account_setup(cls, db: Session, connection: Connection) -> bool:
        """True when some linked account has no resolved local account."""
        linked = cls.linked_accounts(db, connection)
        return count_linked(linked) < len(linked)

    @classmethod
    def connected_institutions(cls, db: Session, connection: Connection) -> list[dict]:
        """Distinct organization mappings across the connection's linked accounts.

        Uniqueness is keyed on the org's domain, falling back to its name.
        """
        seen: set = set()
        institutions = []
        for linked in cls.linked_accounts(db, connection):
            org = linked.org_data
            if not isinstance(org, dict) or not org:
                continue
            key = org.get("domain") or org.get("name")
            if key in seen:
                continue
            seen.add(key)
            institutions.append(org)
        return institutions

    @classmethod
    def institution_summary(cls, db: Session, connection: Connection) -> str:
        """Short label describing which institutions a connection covers."""
        institutions = cls.connected_institutions(db, connection)
        if not institutions:
            return "No institutions connected"
        if len(institutions) == 1:
            only = institutions[0]
            return only.get("name") or only.get("domain") or "1 institution"
        return f"{len(institutions)} institutions"

    @staticmethod
    def destroy_later(
        db: Session,
        connection: Connection,
        enqueue: Callable[[str], None],
    ) -> None:
        """Flag a connection for deletion and hand hard removal to ``enqueue``.

        The flag is committed first so any sync already running sees it
        before it schedules per-account work.

        Args:
            db: Database session
            connection: Connection to remove
            enqueue: Callable that schedules ``destroy(connection_id)``
                asynchronously (e.g. FastAPI ``BackgroundTasks.add_task``).
        """
        connection.scheduled_for_deletion = True
        db.commit()
        logger.info("Connection %s scheduled for deletion", connection.id[:8])
        enqueue(connection.id)

    @staticmethod
    def destroy(db: Session, connection_id: str) -> bool:
        """Hard-delete a connection, its linked accounts and sync runs.

        Local accounts are left in place; only their links are removed.

        Returns:
            True if a connection was deleted, False if it no longer existed.
        """
        connection = db.query(Connection).filter(Connection.id == connection_id).first()
        if connection is None:
            return False
        db.delete(connection)
        db.commit()
        logger.info("Connection %s destroyed", connection_id[:8])
        return True
