"""
Runtime execution shell for a single relay connection.

Responsibilities:
- Own relay state
- Call pure reducer
- Execute commands with side effects (provider sends, client outbox,
  timers, metrics, logging)
- Convert timer expiry into events

Non-responsibilities:
- Gate decisions (reducer)
- Transport framing (gateway / routes)
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING

from observability import metrics
from observability.logger import log_event
from orchestrator.commands import (
    CancelTimer,
    CloseSession,
    Command,
    LogEvent,
    SendProvider,
    SendToClient,
    StartMetric,
    StartTimer,
    StopMetric,
)
from orchestrator.events import Event, EventType, ResponseTimeout
from orchestrator.reducer import reduce
from orchestrator.state_dataclass import RelayState

if TYPE_CHECKING:
    from orchestrator.runtime_context import RuntimeExecutionContext


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Runtime:
    """
    Runtime execution boundary for a single relay connection.

    Guarantees:
    - Reducer is always called exactly once per incoming event
    - State is swapped before any side effect executes
    - Commands are executed in reducer-emitted order
    - Timers emit events back into handle_event (single entry point)
    """

    def __init__(
        self,
        *,
        initial_state: RelayState,
        context: RuntimeExecutionContext,
    ) -> None:
        self._state = initial_state
        self._ctx = context
        self._timers: dict[str, asyncio.Task[None]] = {}
        self._metrics: dict[str, str] = {}

    @property
    def state(self) -> RelayState:
        """
        Return the current immutable relay state.

        State is only replaced internally by Runtime via the reducer.
        """
        return self._state

    async def handle_event(self, event: Event) -> None:
        """
        Process a single event through the reducer and execute its commands.

        All event sources converge here:
        - Gateway (client messages, connection lifecycle)
        - Provider adapter (normalized provider events)
        - Timers (response timeout)
        """
        new_state, commands = reduce(self._state, event)
        self._state = new_state

        for cmd in commands:
            await self._execute_command(cmd)

    async def shutdown(self) -> None:
        """
        Cancel all in-flight timers and wait for them to finish.

        Called by the gateway on disconnect.
        """
        tasks = [t for t in self._timers.values() if not t.done()]
        for timer_id in list(self._timers.keys()):
            self._cancel_timer(timer_id)

        for timer_id in list(self._metrics.keys()):
            metrics.discard_timer(self._metrics.pop(timer_id))

        current = asyncio.current_task()
        tasks = [t for t in tasks if t is not current]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Command execution (side effects)
    # ------------------------------------------------------------------

    async def _execute_command(self, cmd: Command) -> None:
        """Execute a single command with side effects."""

        if isinstance(cmd, LogEvent):
            log_event({
                **cmd.event,
                "session_id": self._ctx.session_id,
                "connection_status": self._ctx.connection_status.value,
            })

        elif isinstance(cmd, SendProvider):
            adapter = self._ctx.provider_adapter
            if adapter is None:
                log_event({
                    "ts_ms": _now_ms(),
                    "event_type": "PROVIDER_SEND_WITHOUT_ADAPTER",
                    "session_id": self._ctx.session_id,
                    "payload_type": cmd.payload.get("type"),
                })
                return
            await adapter.send(cmd.payload)

        elif isinstance(cmd, SendToClient):
            self._ctx.enqueue_control(cmd.message)

        elif isinstance(cmd, CloseSession):
            self._ctx.request_close(cmd.reason)
            adapter = self._ctx.provider_adapter
            if adapter is not None:
                await adapter.close()

        elif isinstance(cmd, StartTimer):
            self._start_timer(
                timer_id=cmd.timer_id,
                duration_ms=cmd.duration_ms,
                timeout_event_type=cmd.timeout_event_type,
            )

        elif isinstance(cmd, CancelTimer):
            self._cancel_timer(cmd.timer_id)

        elif isinstance(cmd, StartMetric):
            previous = self._metrics.pop(cmd.metric, None)
            if previous is not None:
                metrics.discard_timer(previous)
            self._metrics[cmd.metric] = metrics.start_timer(cmd.metric)

        elif isinstance(cmd, StopMetric):
            timer_id = self._metrics.pop(cmd.metric, None)
            if timer_id is None:
                return
            if cmd.discard:
                metrics.discard_timer(timer_id)
            else:
                metrics.stop_timer(timer_id, session_id=self._ctx.session_id)

        else:
            raise TypeError(f"Unknown command: {type(cmd).__name__}")

    # ------------------------------------------------------------------
    # Timer management
    # ------------------------------------------------------------------

    def _start_timer(
        self,
        *,
        timer_id: str,
        duration_ms: int,
        timeout_event_type: EventType,
    ) -> None:
        """
        Start or replace a timer that emits a timeout event.

        Timer tasks re-enter handle_event() when they expire,
        maintaining the single event entry point invariant.
        """
        self._cancel_timer(timer_id)

        async def _timer_task() -> None:
            try:
                await asyncio.sleep(duration_ms / 1000.0)
            except asyncio.CancelledError:
                # Timer was cancelled - this is normal
                return

            # Expired: drop our own handle so a later cancel cannot hit
            # the task that is delivering this event
            if self._timers.get(timer_id) is asyncio.current_task():
                del self._timers[timer_id]
            await self.handle_event(
                self._construct_timeout_event(timeout_event_type)
            )

        self._timers[timer_id] = asyncio.create_task(_timer_task())

    def _cancel_timer(self, timer_id: str) -> None:
        """
        Cancel an in-flight timer if it exists.

        Idempotent: safe to call even if timer doesn't exist.
        """
        task = self._timers.pop(timer_id, None)
        if task is not None and not task.done():
            task.cancel()

    def _construct_timeout_event(self, timeout_event_type: EventType) -> Event:
        if timeout_event_type is EventType.RESPONSE_TIMEOUT:
            return ResponseTimeout(event_type=timeout_event_type, ts_ms=_now_ms())
        raise ValueError(f"Unsupported timeout event type: {timeout_event_type}")
