"""Aggregation-bridge HTTP client.

Fetches the raw accounts snapshot for one connection. Parsing and merging
happen in ``services.snapshot_importer``; this module only moves bytes and
maps transport failures to typed errors.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Optional

import httpx

from config import settings
from integrations.exceptions import (
    BridgeAPIError,
    BridgeAuthError,
    BridgeConnectionError,
    BridgeDataError,
)

logger = logging.getLogger(__name__)


def _epoch(d: date) -> str:
    return str(int(datetime(d.year, d.month, d.day, tzinfo=timezone.utc).timestamp()))


class BridgeClient:
    """Thin wrapper around the bridge's ``/accounts`` endpoint."""

    def __init__(self, timeout: Optional[float] = None, history_days: Optional[int] = None):
        """Initialize the client.

        Args:
            timeout: Request timeout in seconds (defaults to settings)
            history_days: Default transaction window when no start date is
                          given (defaults to settings)
        """
        self._timeout = timeout or settings.BRIDGE_TIMEOUT_SECONDS
        self._history_days = history_days or settings.BRIDGE_HISTORY_DAYS

    @staticmethod
    def is_access_url(access_url: str) -> bool:
        """A usable access URL is http(s), not a base64 setup token."""
        return bool(access_url) and access_url.startswith(("http://", "https://"))

    def fetch_accounts(
        self,
        access_url: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        connection_id: str = "",
    ) -> dict:
        """Fetch the accounts snapshot for a connection.

        Args:
            access_url: Connection access URL (carries credentials)
            start_date: First day of transactions to request
            end_date: Last day of transactions to request
            connection_id: Used only to label errors

        Returns:
            The snapshot dict (``accounts``, ``errors``, ...).

        Raises:
            BridgeAuthError: Access URL missing, malformed, or rejected
            BridgeAPIError: Non-auth HTTP error
            BridgeConnectionError: Network failure or timeout
            BridgeDataError: Response body is not a JSON object
        """
        if not self.is_access_url(access_url):
            raise BridgeAuthError(
                "Bridge access URL is missing or looks like a setup token",
                connection_id=connection_id,
            )

        start_date = start_date or (date.today() - timedelta(days=self._history_days))
        params = {"start-date": _epoch(start_date)}
        if end_date is not None:
            params["end-date"] = _epoch(end_date + timedelta(days=1))

        try:
            with httpx.Client(base_url=access_url, timeout=self._timeout) as client:
                response = client.get("/accounts", params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise BridgeAuthError(
                    f"Bridge authentication failed (HTTP {status})",
                    connection_id=connection_id,
                ) from exc
            raise BridgeAPIError(
                f"Bridge API error (HTTP {status})",
                connection_id=connection_id,
                status_code=status,
            ) from exc
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise BridgeConnectionError(
                f"Bridge connection failed: {exc}",
                connection_id=connection_id,
            ) from exc
        except ValueError as exc:
            raise BridgeDataError(
                "Bridge returned a non-JSON response",
                connection_id=connection_id,
            ) from exc

        if not isinstance(data, dict):
            raise BridgeDataError(
                "Bridge returned an unexpected payload",
                connection_id=connection_id,
            )

        logger.info("Bridge: snapshot fetched (%d accounts)", len(data.get("accounts") or []))
        return data
