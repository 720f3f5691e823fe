"""Shared utilities for ORM models."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import inspect as sa_inspect


def generate_uuid() -> str:
    """Generate a UUID string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Timestamp default for created/updated/completed columns."""
    return datetime.now(timezone.utc)


def persisted_id(instance) -> str:
    """Primary key of an instance, read from its identity when it has one.

    Does not reload an expired instance, so it still works after the row
    was deleted by another session.
    """
    identity = sa_inspect(instance).identity
    return identity[0] if identity else instance.id
