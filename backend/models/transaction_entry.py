"""TransactionEntry model - a dated transaction on a local account."""

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class TransactionEntry(Base):
    """A transaction entry, either pending (provisional) or posted.

    ``excluded`` is set by the user and removes the entry from every count.
    Deduplication via composite unique constraint (account_id, external_id).
    """

    __tablename__ = "transaction_entries"
    __table_args__ = (
        UniqueConstraint("account_id", "external_id", name="uix_entry_account_external"),
        Index("ix_entry_account_pending_date", "account_id", "pending", "date"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    account_id = Column(String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False)
    external_id = Column(String, nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(18, 4), nullable=False)
    name = Column(String, nullable=True)
    currency = Column(String, nullable=True)
    pending = Column(Boolean, default=False, nullable=False)
    excluded = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    account = relationship("Account", back_populates="entries")
