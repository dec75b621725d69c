"""
Connection status tracking for relay sessions.

connection_status: DOWN | CONNECTING | UP

Tracks the upstream provider link for the client connection. This is pure
data owned by SessionGateway, not by relay state.
"""
from enum import Enum

class ConnectionStatus(Enum):
    """
    Provider link status.

    Separate from and independent of the commit/response gate State.
    """
    DOWN = "DOWN"              # Not connected (or closed)
    CONNECTING = "CONNECTING"  # Upstream handshake in progress
    UP = "UP"                  # Upstream open, relay active
