"""
Runtime execution context.

Provides Runtime with live access to session-owned imperative resources
needed for command execution (provider adapter, client outbox, status).

This module contains:
- Narrow Protocols (capabilities, not implementations)
- Zero relay logic
- Zero state mutation
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from session.connection_status import ConnectionStatus

if TYPE_CHECKING:
    from session.relay_session import RelaySession


# ---------------------------------------------------------------------
# Adapter Protocols
# ---------------------------------------------------------------------

@runtime_checkable
class RealtimeAdapterProtocol(Protocol):
    async def connect(self) -> None: ...
    async def send(self, payload: dict[str, Any]) -> None: ...
    async def close(self) -> None: ...


# ---------------------------------------------------------------------
# Execution Context
# ---------------------------------------------------------------------

class RuntimeExecutionContext:
    """
    Narrow view of a RelaySession for the Runtime.

    Runtime reads adapters and writes client messages through this object;
    it never touches the transport directly.
    """

    def __init__(self, *, session: RelaySession) -> None:
        self._session = session

    @property
    def session(self) -> RelaySession:
        return self._session

    @property
    def session_id(self) -> str:
        return self._session.session_id

    @property
    def connection_status(self) -> ConnectionStatus:
        return self._session.connection_status

    @property
    def provider_adapter(self) -> RealtimeAdapterProtocol | None:
        return self._session.provider_adapter

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        self._session.enqueue_control(msg)

    def request_close(self, reason: str | None) -> None:
        self._session.request_close(reason)
