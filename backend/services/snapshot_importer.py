"""Snapshot importer - ingests a bridge accounts snapshot for a Connection."""

import logging
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Any

from sqlalchemy.orm import Session

from integrations.parsing_utils import parse_unix_timestamp
from models import Connection, LinkedAccount, SyncRun
from services.account_resolution import count_linked
from services.institution_resolver import resolve_institution

logger = logging.getLogger(__name__)


def _to_decimal(value: Any) -> Decimal | None:
    """Parse a bridge amount (usually a string) to Decimal, or None."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        logger.warning("Ignoring unparseable amount: %r", value)
        return None


def snapshot_accounts(accounts_snapshot: Mapping[str, Any]) -> list[dict]:
    """Account records from a snapshot; anything malformed becomes []."""
    records = accounts_snapshot.get("accounts") if isinstance(accounts_snapshot, Mapping) else None
    if not isinstance(records, list):
        return []
    return [r for r in records if isinstance(r, Mapping)]


def snapshot_errors(accounts_snapshot: Mapping[str, Any]) -> list[str]:
    """Bridge-reported error strings from a snapshot."""
    errors = accounts_snapshot.get("errors") if isinstance(accounts_snapshot, Mapping) else None
    if not isinstance(errors, list):
        return []
    return [str(e) for e in errors if e]


def connection_org_data(accounts_snapshot: Mapping[str, Any]) -> dict | None:
    """Organization data describing the connection as a whole.

    Uses a top-level ``org`` mapping when the snapshot has one, otherwise
    the first account's ``org``.
    """
    org = accounts_snapshot.get("org") if isinstance(accounts_snapshot, Mapping) else None
    if isinstance(org, Mapping) and org:
        return dict(org)
    for record in snapshot_accounts(accounts_snapshot):
        org = record.get("org")
        if isinstance(org, Mapping) and org:
            return dict(org)
    return None


class SnapshotImporter:
    """Persists bridge snapshots and institution data onto a Connection."""

    @staticmethod
    def import_snapshot(
        db: Session,
        connection: Connection,
        accounts_snapshot: Mapping[str, Any],
    ) -> None:
        """Store the raw snapshot verbatim on the connection and flush.

        Does not touch institution fields; those are applied separately
        with :meth:`apply_institution_data`.
        """
        connection.raw_payload = dict(accounts_snapshot)
        db.flush()

    @staticmethod
    def apply_institution_data(connection: Connection, org_data: Mapping[str, Any] | None) -> None:
        """Assign normalized institution fields to the connection.

        Does not flush; the caller owns the transaction boundary.
        """
        info = resolve_institution(org_data)
        connection.institution_id = info.id
        connection.institution_name = info.name
        connection.institution_domain = info.domain
        connection.institution_url = info.url
        connection.raw_institution_payload = dict(org_data) if isinstance(org_data, Mapping) else None

    @staticmethod
    def upsert_linked_accounts(
        db: Session,
        connection: Connection,
        accounts_snapshot: Mapping[str, Any],
    ) -> list[LinkedAccount]:
        """Create or update one LinkedAccount per snapshot account record.

        Records are keyed on the bridge account id. Records without an id
        are skipped. Existing local-account links are never changed here.

        Returns:
            LinkedAccount rows present in this snapshot (flushed).
        """
        existing = {
            la.external_id: la
            for la in db.query(LinkedAccount)
            .filter(LinkedAccount.connection_id == connection.id)
            .all()
        }

        upserted = []
        seen: set[str] = set()
        new_count = 0
        for record in snapshot_accounts(accounts_snapshot):
            external_id = record.get("id")
            if not external_id:
                logger.warning(
                    "Connection %s: skipping snapshot account without id",
                    connection.id[:8],
                )
                continue
            external_id = str(external_id)
            if external_id in seen:
                logger.warning(
                    "Connection %s: duplicate snapshot account %s ignored",
                    connection.id[:8], external_id,
                )
                continue
            seen.add(external_id)

            linked = existing.get(external_id)
            if linked is None:
                linked = LinkedAccount(
                    connection_id=connection.id,
                    external_id=external_id,
                    name=record.get("name") or "Unnamed Account",
                )
                db.add(linked)
                existing[external_id] = linked
                new_count += 1
            elif record.get("name"):
                linked.name = record["name"]

            org = record.get("org")
            transactions = record.get("transactions")
            linked.currency = record.get("currency") or linked.currency
            linked.current_balance = _to_decimal(record.get("balance"))
            linked.available_balance = _to_decimal(record.get("available-balance"))
            linked.balance_date = parse_unix_timestamp(record.get("balance-date"))
            linked.org_data = dict(org) if isinstance(org, Mapping) else None
            linked.raw_payload = {k: v for k, v in record.items() if k != "transactions"}
            linked.raw_transactions_payload = transactions if isinstance(transactions, list) else []
            upserted.append(linked)

        db.flush()
        logger.info(
            "Connection %s: linked accounts upserted (%d new, %d existing)",
            connection.id[:8], new_count, len(upserted) - new_count,
        )
        return upserted

    @classmethod
    def import_into_run(
        cls,
        db: Session,
        connection: Connection,
        accounts_snapshot: Mapping[str, Any],
        sync_run: SyncRun,
    ) -> list[LinkedAccount]:
        """Run the full import for a sync run and record its statistics.

        Stores the raw snapshot, upserts linked accounts, applies the
        connection-level institution and writes account counts to
        ``sync_run.sync_stats``. Bridge-reported errors are joined into
        ``sync_run.status_text``.
        """
        cls.import_snapshot(db, connection, accounts_snapshot)
        linked_accounts = cls.upsert_linked_accounts(db, connection, accounts_snapshot)

        org_data = connection_org_data(accounts_snapshot)
        if org_data is not None:
            cls.apply_institution_data(connection, org_data)

        records = snapshot_accounts(accounts_snapshot)
        linked_count = count_linked(linked_accounts)
        errors = snapshot_errors(accounts_snapshot)

        sync_run.sync_stats = {
            "total_accounts": len(linked_accounts),
            "linked_accounts": linked_count,
            "unlinked_accounts": len(linked_accounts) - linked_count,
            "imported_accounts": len(linked_accounts),
            "skipped_accounts": len(records) - len(linked_accounts),
            "bridge_errors": len(errors),
        }
        if errors:
            sync_run.status_text = "; ".join(errors)
            logger.warning(
                "Connection %s: bridge reported %d error(s): %s",
                connection.id[:8], len(errors), sync_run.status_text,
            )
        db.flush()
        return linked_accounts
