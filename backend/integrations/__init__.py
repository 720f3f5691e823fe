"""External API integrations.

This package contains:
- Bridge client: Fetches account snapshots from the aggregation bridge
- Exceptions: Typed bridge errors (auth, connection, API, data)
- Parsing utils: Epoch and ISO date helpers for bridge payloads
"""

from integrations.bridge_client import BridgeClient
from integrations.exceptions import (
    BridgeAPIError,
    BridgeAuthError,
    BridgeConnectionError,
    BridgeDataError,
    BridgeError,
)

__all__ = [
    "BridgeAPIError",
    "BridgeAuthError",
    "BridgeClient",
    "BridgeConnectionError",
    "BridgeDataError",
    "BridgeError",
]
