"""Shared API helpers for route handlers."""

from typing import TypeVar

from fastapi import HTTPException
from sqlalchemy.orm import Session

from database import Base
from models import Connection

T = TypeVar("T", bound=Base)


def get_or_404(db: Session, model: type[T], entity_id: str, detail: str = "Not found") -> T:
    """Fetch a single entity by primary key or raise 404.

    Args:
        db: Database session.
        model: SQLAlchemy model class.
        entity_id: Primary key value.
        detail: Error message for the 404 response.

    Returns:
        The entity instance.

    Raises:
        HTTPException: 404 if the entity doesn't exist.
    """
    entity = db.query(model).filter(model.id == entity_id).first()
    if not entity:
        raise HTTPException(status_code=404, detail=detail)
    return entity


def get_connection_or_404(db: Session, connection_id: str) -> Connection:
    """Fetch a connection that is not scheduled for deletion, or raise 404."""
    connection = get_or_404(db, Connection, connection_id, detail="Connection not found")
    if connection.scheduled_for_deletion:
        raise HTTPException(status_code=404, detail="Connection not found")
    return connection
