"""Per-account post-processing after a snapshot import."""

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from sqlalchemy.orm import Session

from integrations.parsing_utils import parse_bridge_date
from models import Account, LinkedAccount, TransactionEntry
from services.account_resolution import resolve_current_account

logger = logging.getLogger(__name__)


@dataclass
class ProcessResult:
    """Outcome of processing one linked account."""

    account_id: Optional[str] = None
    entries_created: int = 0
    entries_updated: int = 0
    entries_skipped: int = 0


def _entry_fields(record: Mapping[str, Any]) -> Optional[dict]:
    """Map a bridge transaction record to TransactionEntry fields.

    A zero or missing ``posted`` timestamp means the bridge still reports
    the transaction as pending; its date then comes from ``transacted_at``,
    falling back to a non-zero ``posted`` when that is all the record has.
    """
    external_id = record.get("id")
    if not external_id:
        return None

    posted = record.get("posted")
    has_posted = bool(posted) and str(posted) != "0"
    pending = bool(record.get("pending")) or not has_posted
    posted_date = parse_bridge_date(posted) if has_posted else None
    transacted_date = parse_bridge_date(record.get("transacted_at"))
    if pending:
        entry_date = transacted_date or posted_date
    else:
        entry_date = posted_date or transacted_date
    if entry_date is None:
        return None

    try:
        amount = Decimal(str(record.get("amount")))
    except (InvalidOperation, ValueError):
        return None

    return {
        "external_id": str(external_id),
        "date": entry_date,
        "amount": amount,
        "name": record.get("payee") or record.get("description") or record.get("memo"),
        "pending": pending,
    }


class AccountProcessor:
    """Merges one LinkedAccount's imported data into its local Account."""

    def __init__(self, db: Session):
        self.db = db

    def process(self, linked_account: LinkedAccount) -> ProcessResult:
        """Update the resolved account's balance and upsert its entries.

        Entries are matched on the bridge transaction id. A pending entry
        that comes back posted under the same id is updated in place. The
        user's ``excluded`` flag is never overwritten.

        Returns:
            ProcessResult; ``account_id`` is None for an unlinked account.
        """
        account = resolve_current_account(linked_account)
        if account is None:
            return ProcessResult()

        self._apply_balance(linked_account, account)

        records = linked_account.raw_transactions_payload or []
        existing = {
            entry.external_id: entry
            for entry in self.db.query(TransactionEntry)
            .filter(TransactionEntry.account_id == account.id)
            .all()
        }

        result = ProcessResult(account_id=account.id)
        for record in records:
            fields = _entry_fields(record) if isinstance(record, Mapping) else None
            if fields is None:
                result.entries_skipped += 1
                continue

            entry = existing.get(fields["external_id"])
            if entry is None:
                entry = TransactionEntry(
                    account_id=account.id,
                    currency=account.currency,
                    **fields,
                )
                self.db.add(entry)
                existing[entry.external_id] = entry
                result.entries_created += 1
            else:
                entry.date = fields["date"]
                entry.amount = fields["amount"]
                entry.name = fields["name"]
                entry.pending = fields["pending"]
                result.entries_updated += 1

        self.db.flush()
        if result.entries_skipped:
            logger.warning(
                "Account %s: skipped %d malformed transaction(s)",
                account.name, result.entries_skipped,
            )
        logger.info(
            "Account %s: %d entries new, %d updated",
            account.name, result.entries_created, result.entries_updated,
        )
        return result

    @staticmethod
    def _apply_balance(linked_account: LinkedAccount, account: Account) -> None:
        if linked_account.current_balance is not None:
            account.balance = linked_account.current_balance
        if linked_account.currency:
            account.currency = linked_account.currency
        org = linked_account.org_data
        if isinstance(org, Mapping) and org.get("name") and not account.institution_name:
            account.institution_name = org["name"]
