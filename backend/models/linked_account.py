"""LinkedAccount model - an account reported by the bridge under a Connection."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Numeric, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class LinkedAccount(Base):
    """A bridge-reported account, optionally resolved to a local Account.

    Two link columns exist: ``account_id`` is the current link and
    ``legacy_account_id`` points at the representation used before the
    account was migrated. See ``services.account_resolution`` for which
    one is authoritative.
    """

    __tablename__ = "linked_accounts"
    __table_args__ = (
        UniqueConstraint(
            "connection_id", "external_id", name="uix_linked_account_connection_external"
        ),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    connection_id = Column(
        String(36), ForeignKey("connections.id", ondelete="CASCADE"), nullable=False
    )
    external_id = Column(String, nullable=False)  # Bridge account id
    name = Column(String, nullable=False)
    currency = Column(String, nullable=True)
    current_balance = Column(Numeric(18, 4), nullable=True)
    available_balance = Column(Numeric(18, 4), nullable=True)
    balance_date = Column(DateTime, nullable=True)

    org_data = Column(JSON, nullable=True)
    raw_payload = Column(JSON, nullable=True)
    raw_transactions_payload = Column(JSON, nullable=True)

    account_id = Column(
        String(36), ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    legacy_account_id = Column(
        String(36), ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    connection = relationship("Connection", back_populates="linked_accounts")
    account = relationship("Account", foreign_keys=[account_id])
    legacy_account = relationship("Account", foreign_keys=[legacy_account_id])
