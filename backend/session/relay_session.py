"""
Relay session container.

- Owns the per-connection runtime (which owns the immutable relay state)
- Owns connection status (mutable, gateway-controlled)
- Owns the relay -> client outbox
- Owned and mutated by SessionGateway
- NOT a state machine
- Contains no relay logic
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from orchestrator.runtime import Runtime
from session.connection_status import ConnectionStatus


# ---------------------------------------------------------------------
# RelaySession
# ---------------------------------------------------------------------


@dataclass
class RelaySession:
    """Mutable runtime container for a single browser <-> provider pair."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    session_id: str
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Connection / gateway-controlled state
    # ------------------------------------------------------------------

    connection_status: ConnectionStatus = ConnectionStatus.DOWN
    close_reason: str | None = None

    # ------------------------------------------------------------------
    # Runtime + provider adapter
    # ------------------------------------------------------------------

    runtime: Runtime | None = None
    provider_adapter: Any = None  # Type: RealtimeAdapterProtocol in practice

    def __post_init__(self) -> None:
        self._control_out: deque[dict[str, Any]] = deque()
        self._control_ready = asyncio.Event()
        self._close_requested = False

    # ------------------------------------------------------------------
    # Wiring helpers (called by SessionGateway)
    # ------------------------------------------------------------------

    def attach_provider_adapter(self, adapter: Any) -> None:
        """Attach the upstream realtime adapter."""
        self.provider_adapter = adapter

    def attach_runtime(self, runtime: Runtime) -> None:
        """
        Attach the runtime executor.

        Must be called after the adapter is attached.
        """
        self.runtime = runtime

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        """Return standard logging context for this session."""
        return {
            "session_id": self.session_id,
            "connection_status": self.connection_status.value,
        }

    # ------------------------------------------------------------------
    # Outbox
    # ------------------------------------------------------------------

    def enqueue_control(self, msg: dict[str, Any]) -> None:
        """
        Enqueue a message for gateway delivery to the client.

        Messages are buffered in FIFO order and later retrieved via
        drain_control().
        """
        self._control_out.append(msg)
        self._control_ready.set()

    def drain_control(self) -> tuple[dict[str, Any], ...]:
        """
        Drain all pending client messages in FIFO order.

        After this call, the queue is empty.
        """
        if not self._control_out:
            return ()
        out = tuple(self._control_out)
        self._control_out.clear()
        return out

    async def wait_control(self) -> None:
        """Block until a message is queued or a close is requested."""
        await self._control_ready.wait()
        self._control_ready.clear()

    # ------------------------------------------------------------------
    # Close
    # ------------------------------------------------------------------

    @property
    def close_requested(self) -> bool:
        return self._close_requested

    def request_close(self, reason: str | None) -> None:
        """Mark the pair for closing; the first reason wins."""
        if not self._close_requested:
            self._close_requested = True
            self.close_reason = reason
        self.connection_status = ConnectionStatus.DOWN
        self._control_ready.set()
