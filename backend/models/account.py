"""Account model - a local account that bridge data is merged into."""

from sqlalchemy import Boolean, Column, DateTime, Numeric, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class Account(Base):
    """A local account owned by the user.

    A LinkedAccount points at an Account once the user links it; the
    Connection does not own it, so removing a connection leaves the
    account and its entries in place.
    """

    __tablename__ = "accounts"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False)
    institution_name = Column(String, nullable=True)
    currency = Column(String, nullable=True, default="USD")
    balance = Column(Numeric(18, 4), nullable=True)
    is_active = Column(Boolean, default=True)
    last_sync_time = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    entries = relationship(
        "TransactionEntry", back_populates="account", cascade="all, delete-orphan"
    )
