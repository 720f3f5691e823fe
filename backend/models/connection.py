"""Connection model - one aggregation-bridge credential and its institution data."""

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now

STATUS_ACTIVE = "active"
STATUS_NEEDS_UPDATE = "needs_update"


class Connection(Base):
    """A bridge connection linking one set of financial institutions.

    The raw snapshot from the most recent import is kept verbatim in
    ``raw_payload`` for audit and replay. Institution fields describe the
    connection-level (aggregate) institution; each LinkedAccount carries
    its own ``org_data`` which may name a different institution.
    """

    __tablename__ = "connections"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String, nullable=False)
    access_url = Column(Text, nullable=False)  # sensitive, never returned by the API
    status = Column(String, nullable=False, default=STATUS_ACTIVE)  # "active" | "needs_update"

    raw_payload = Column(JSON, nullable=True)
    institution_id = Column(String, nullable=True)
    institution_name = Column(String, nullable=True)
    institution_domain = Column(String, nullable=True)
    institution_url = Column(String, nullable=True)
    raw_institution_payload = Column(JSON, nullable=True)

    last_synced_at = Column(DateTime, nullable=True)
    scheduled_for_deletion = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
    )

    # Relationships
    linked_accounts = relationship(
        "LinkedAccount",
        back_populates="connection",
        cascade="all, delete-orphan",
        order_by="LinkedAccount.created_at",
    )
    sync_runs = relationship(
        "SyncRun",
        back_populates="connection",
        cascade="all, delete-orphan",
    )

    @property
    def requires_update(self) -> bool:
        """True when the bridge credential must be refreshed by the user."""
        return self.status == STATUS_NEEDS_UPDATE

    @property
    def institution_display_name(self) -> str:
        """Best human-readable label for the connection's institution."""
        return self.institution_name or self.institution_domain or self.name
