"""Completion notification fired once per fully completed connection sync."""

import logging
from collections.abc import Callable, Iterable
from typing import Any

from models import Connection
from models.utils import persisted_id

logger = logging.getLogger(__name__)

SyncCompleteListener = Callable[[Connection], Any]


def run_best_effort(label: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> bool:
    """Run a fire-and-forget side effect, logging instead of raising.

    Used at every call site whose failure must not abort the operation
    that triggered it.

    Returns:
        True if ``fn`` completed, False if it raised.
    """
    try:
        fn(*args, **kwargs)
        return True
    except Exception as e:
        logger.error("%s failed: %s", label, e, exc_info=True)
        return False


class SyncCompleteEvent:
    """Notifies downstream collaborators that a connection finished syncing.

    Listeners (dashboard refresh, recurring-pattern detection, ...) run in
    registration order. A failing listener is logged and skipped; the
    remaining listeners still run and the sync is unaffected.
    """

    def __init__(self, listeners: Iterable[SyncCompleteListener] | None = None):
        self._listeners: list[SyncCompleteListener] = list(listeners or [])

    def subscribe(self, listener: SyncCompleteListener) -> None:
        self._listeners.append(listener)

    @property
    def listeners(self) -> list[SyncCompleteListener]:
        return list(self._listeners)

    def broadcast(self, connection: Connection) -> int:
        """Invoke every listener for ``connection``.

        Returns:
            Number of listeners that failed.
        """
        connection_id = persisted_id(connection)
        failures = 0
        for listener in self._listeners:
            name = getattr(listener, "__name__", type(listener).__name__)
            ok = run_best_effort(
                f"Sync complete listener {name} for connection {connection_id[:8]}",
                listener,
                connection,
            )
            if not ok:
                failures += 1
        return failures
