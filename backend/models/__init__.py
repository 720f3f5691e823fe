"""SQLAlchemy ORM models."""

from .account import Account
from .connection import Connection
from .linked_account import LinkedAccount
from .sync_run import SyncRun
from .transaction_entry import TransactionEntry
from .utils import generate_uuid

__all__ = ["Account", "Connection", "LinkedAccount", "SyncRun", "TransactionEntry", "generate_uuid"]
