"""Tolerant codec for the free-form per-run statistics blob."""

import json
import logging
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)


def parse_sync_stats(value: Any) -> dict[str, Any] | None:
    """Normalize a stored stats value to a dict, or None for "no data".

    Stats normally arrive as a mapping, but rows written by hand or by
    bypassed serialization may hold raw JSON text. Parse failures are
    logged and reported as absent; they never propagate to callers.

    Args:
        value: Mapping, JSON string, or anything else.

    Returns:
        A non-empty dict of stats, or None.
    """
    if value is None:
        return None

    if isinstance(value, Mapping):
        return dict(value) or None

    if isinstance(value, (str, bytes)):
        if not value.strip():
            return None
        try:
            parsed = json.loads(value)
        except (ValueError, TypeError):
            logger.warning("Ignoring malformed sync stats: %.80r", value)
            return None
        if not isinstance(parsed, dict):
            logger.warning("Ignoring non-object sync stats: %.80r", value)
            return None
        return parsed or None

    logger.warning("Ignoring sync stats of unexpected type %s", type(value).__name__)
    return None


def stat_int(stats: Mapping[str, Any] | None, key: str) -> int:
    """Read an integer stat, treating missing or non-numeric values as 0."""
    if not stats:
        return 0
    try:
        return int(stats.get(key) or 0)
    except (TypeError, ValueError):
        return 0
