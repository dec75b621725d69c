"""
Realtime provider adapter contract.

This module defines the *interface only*. The commit/response gate,
language bookkeeping, and client messaging live in the reducer.

Key invariants:
- One adapter instance == one upstream connection == one client connection.
- The adapter emits already-normalized relay events; it never calls the
  reducer directly and never makes gate decisions.
- send() is fire-and-forget: upstream failures surface as events, not as
  exceptions to the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class RealtimeAdapterError(Exception):
    """Base class for provider adapter errors."""


class ProviderConnectError(RealtimeAdapterError):
    """The upstream connection could not be established."""


class RealtimeAdapter(ABC):
    """
    Abstract interface for a streaming transcription provider.

    Note: emit_event callback must be async.

    Implementations are responsible for:
    - Opening the upstream connection via connect()
    - Serializing instructions passed to send()
    - Running a receive loop that normalizes provider events and emits them
    - Emitting PROVIDER_DISCONNECTED exactly once when the link goes away
      on its own

    Non-responsibilities:
    - No reconnection (a dropped link ends the session)
    - No buffering of client audio
    - No direct interaction with the client WebSocket
    """

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the upstream connection and start receiving.

        Raises:
            ProviderConnectError if the connection cannot be opened.
        """
        raise NotImplementedError

    @abstractmethod
    async def send(self, payload: dict[str, Any]) -> None:
        """Send one JSON instruction upstream."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """
        Close the upstream connection.

        Must be idempotent and must not emit PROVIDER_DISCONNECTED.
        """
        raise NotImplementedError
