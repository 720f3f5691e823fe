"""SyncRun model - one execution record of a synchronization attempt."""

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now

RUN_PENDING = "pending"
RUN_SYNCING = "syncing"
RUN_COMPLETED = "completed"
RUN_FAILED = "failed"
RUN_SKIPPED = "skipped"


class SyncRun(Base):
    """A sync run for a Connection, or a child run for a single Account.

    ``sync_stats`` is free-form: normally a mapping, but rows written by
    hand or by older code may hold a raw JSON string. Always read it
    through ``services.sync_stats.parse_sync_stats``.
    """

    __tablename__ = "sync_runs"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    connection_id = Column(
        String(36), ForeignKey("connections.id", ondelete="CASCADE"), nullable=True, index=True
    )
    account_id = Column(
        String(36), ForeignKey("accounts.id", ondelete="CASCADE"), nullable=True, index=True
    )
    parent_id = Column(String(36), ForeignKey("sync_runs.id"), nullable=True)
    status = Column(String, nullable=False, default=RUN_PENDING)
    sync_stats = Column(JSON, nullable=True)
    error = Column(Text, nullable=True)
    status_text = Column(Text, nullable=True)
    window_start_date = Column(Date, nullable=True)
    window_end_date = Column(Date, nullable=True)
    created_at = Column(DateTime, default=utc_now, index=True)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    connection = relationship("Connection", back_populates="sync_runs")
    account = relationship("Account")
    parent = relationship("SyncRun", remote_side=[id])

    def finish(self, status: str, error: str | None = None) -> None:
        """Set terminal status fields; the rest of the run is immutable."""
        self.status = status
        self.error = error
        self.completed_at = utc_now()
