"""Typed exception hierarchy for aggregation-bridge errors.

Lets callers tell a revoked credential apart from a transient network
failure or a malformed response.
"""


class BridgeError(Exception):
    """Base exception for all bridge-related errors.

    Carries the connection id (when known) so callers can tell which
    connection failed.
    """

    def __init__(self, message: str, connection_id: str = ""):
        self.connection_id = connection_id
        super().__init__(message)


class BridgeAuthError(BridgeError):
    """Access URL revoked, expired, or rejected (HTTP 401/403)."""

    pass


class BridgeConnectionError(BridgeError):
    """Network failures such as timeouts, DNS resolution, or connection refused.

    Retriable by default.
    """

    def __init__(self, message: str, connection_id: str = "", retriable: bool = True):
        self.retriable = retriable
        super().__init__(message, connection_id)


class BridgeAPIError(BridgeError):
    """HTTP 4xx/5xx responses from the bridge."""

    def __init__(
        self,
        message: str,
        connection_id: str = "",
        status_code: int | None = None,
    ):
        self.status_code = status_code
        super().__init__(message, connection_id)

    @property
    def retriable(self) -> bool:
        """429 (rate limit) and 5xx errors are generally retriable."""
        if self.status_code is None:
            return False
        return self.status_code == 429 or self.status_code >= 500


class BridgeDataError(BridgeError):
    """Response body that is not a JSON object."""

    pass
