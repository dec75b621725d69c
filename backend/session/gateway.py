"""
Session gateway.

Responsibilities:
- Owns RelaySession lifecycle (one gateway == one client connection)
- Tracks connection_status independently of relay state
- Opens the upstream provider connection at connect time
- Routes inbound JSON client messages -> relay events
- Hands queued relay -> client messages to the transport layer

NOT responsible for:
- Gate decisions (reducer)
- Executing commands (runtime)
- Provider wire format or event normalization (adapter)
- Socket I/O (routes)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, TYPE_CHECKING

from uuid import uuid4

from adapters.realtime.base import RealtimeAdapterError
from adapters.realtime.openai_realtime import OpenAIRealtimeAdapter
from observability.logger import log_event
from orchestrator.events import (
    ClientAudioAppend,
    ClientConfig,
    ClientDisconnected,
    ClientFlush,
    ClientPing,
    Event,
    EventType,
    ProviderConnected,
    ProviderDisconnected,
    ProviderError,
)
from orchestrator.runtime import Runtime
from orchestrator.runtime_context import (
    RealtimeAdapterProtocol,
    RuntimeExecutionContext,
)
from orchestrator.state_dataclass import RelayState
from protocol.messages import (
    AudioAppendMessage,
    ClientMessage,
    ConfigMessage,
    FlushMessage,
    InvalidMessage,
    MalformedMessage,
    PingMessage,
    UnknownMessageType,
    parse_client_message,
)
from session.connection_status import ConnectionStatus
from session.relay_session import RelaySession

if TYPE_CHECKING:
    from config import AppConfig


# Called as factory(emit_event=..., session_id=...)
AdapterFactory = Callable[..., RealtimeAdapterProtocol]

EmitEvent = Callable[[Event], Coroutine[Any, Any, None]]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _new_session_id() -> str:
    return f"sess_{uuid4().hex[:12]}"


def openai_adapter_factory(config: AppConfig) -> AdapterFactory:
    """Build the production adapter factory bound to one AppConfig."""

    def _factory(*, emit_event: EmitEvent, session_id: str) -> RealtimeAdapterProtocol:
        if not config.openai_api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable not set")
        return OpenAIRealtimeAdapter(
            emit_event=emit_event,
            url=config.provider_url,
            api_key=config.openai_api_key,
            session_id=session_id,
        )

    return _factory


# ------------------------------------------------------------------
# Gateway result
# ------------------------------------------------------------------

@dataclass(frozen=True)
class GatewayResult:
    """
    Return value for gateway boundary methods.

    outbound_json:
        JSON messages to send to the client, in order

    close:
        True once the session asked for the client socket to be closed
        (provider dropped, connect failed). Sticky for the session.
    """
    outbound_json: tuple[dict[str, Any], ...] = ()
    close: bool = False


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """One gateway == one browser connection == one upstream connection."""

    def __init__(
        self,
        *,
        config: AppConfig,
        adapter_factory: AdapterFactory | None = None,
    ) -> None:
        self._config = config
        self._adapter_factory = adapter_factory or openai_adapter_factory(config)
        self.session: RelaySession | None = None
        self._disconnected = False

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def on_ws_connect(self) -> GatewayResult:
        """
        Called once the client WebSocket is accepted.

        Opens the upstream connection before any client message is read,
        so the initial session.update precedes all audio.
        """
        session_id = _new_session_id()
        self.session = RelaySession(session_id=session_id)

        runtime = Runtime(
            initial_state=RelayState(
                language=self._config.default_language,
                transcription_model=self._config.transcription_model,
                response_timeout_ms=self._config.response_timeout_ms,
            ),
            context=RuntimeExecutionContext(session=self.session),
        )

        adapter = self._adapter_factory(
            emit_event=runtime.handle_event,
            session_id=session_id,
        )
        self.session.attach_provider_adapter(adapter)

        # Attach runtime (must be AFTER adapter)
        self.session.attach_runtime(runtime)

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "SESSION_STARTED",
            **self.session.log_context(),
        })

        self.session.connection_status = ConnectionStatus.CONNECTING
        try:
            await adapter.connect()
        except RealtimeAdapterError as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "PROVIDER_CONNECT_FAILED",
                "session_id": session_id,
                "error": str(e),
            })
            await self._dispatch(
                ProviderError(
                    event_type=EventType.PROVIDER_ERROR,
                    ts_ms=_now_ms(),
                    reason=str(e),
                    transport=True,
                )
            )
            await self._dispatch(
                ProviderDisconnected(
                    event_type=EventType.PROVIDER_DISCONNECTED,
                    ts_ms=_now_ms(),
                    reason="provider_connect_failed",
                )
            )
            return self.drain_outbound()

        self.session.connection_status = ConnectionStatus.UP
        await self._dispatch(
            ProviderConnected(
                event_type=EventType.PROVIDER_CONNECTED,
                ts_ms=_now_ms(),
            )
        )
        return self.drain_outbound()

    async def on_ws_disconnect(self, reason: str | None = None) -> GatewayResult:
        """
        Called when the client WebSocket goes away (or the route gives up).

        Idempotent: only the first call tears anything down.
        """
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "WS_DISCONNECT_WITHOUT_SESSION",
                "reason": reason,
            })
            return GatewayResult()

        if self._disconnected:
            return GatewayResult(close=True)
        self._disconnected = True

        await self._dispatch(
            ClientDisconnected(
                event_type=EventType.CLIENT_DISCONNECTED,
                ts_ms=_now_ms(),
                reason=reason,
            )
        )

        runtime = self.session.runtime
        if runtime is not None:
            await runtime.shutdown()

        # No-op when the reducer already closed it
        adapter = self.session.provider_adapter
        if adapter is not None:
            await adapter.close()

        self.session.connection_status = ConnectionStatus.DOWN

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "SESSION_ENDED",
            "reason": reason,
            **self.session.log_context(),
        })

        return self.drain_outbound()

    # ------------------------------------------------------------------
    # Client messages
    # ------------------------------------------------------------------

    async def on_json_message(self, payload: str) -> GatewayResult:
        """Route one inbound text frame to a relay event."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "MESSAGE_WITHOUT_SESSION",
                "payload_preview": payload[:100],
            })
            return GatewayResult()

        try:
            msg = parse_client_message(payload)
        except MalformedMessage as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "JSON_DECODE_ERROR",
                "session_id": self.session.session_id,
                "error": str(e),
                "payload_preview": payload[:100],
            })
            return self.drain_outbound()
        except UnknownMessageType as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "UNKNOWN_MESSAGE_TYPE",
                "session_id": self.session.session_id,
                "msg_type": repr(e.msg_type),
            })
            return self.drain_outbound()
        except InvalidMessage as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "INVALID_MESSAGE",
                "session_id": self.session.session_id,
                "error": str(e),
            })
            return self.drain_outbound()

        await self._dispatch(self._to_event(msg))
        return self.drain_outbound()

    @staticmethod
    def _to_event(msg: ClientMessage) -> Event:
        ts_ms = _now_ms()
        if isinstance(msg, ConfigMessage):
            return ClientConfig(
                event_type=EventType.CLIENT_CONFIG,
                ts_ms=ts_ms,
                language=msg.language,
            )
        if isinstance(msg, AudioAppendMessage):
            return ClientAudioAppend(
                event_type=EventType.CLIENT_AUDIO_APPEND,
                ts_ms=ts_ms,
                audio=msg.audio,
            )
        if isinstance(msg, FlushMessage):
            return ClientFlush(event_type=EventType.CLIENT_FLUSH, ts_ms=ts_ms)
        if isinstance(msg, PingMessage):
            return ClientPing(event_type=EventType.CLIENT_PING, ts_ms=ts_ms, t=msg.t)
        raise TypeError(f"Unhandled client message: {type(msg).__name__}")

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def outbound_ready(self) -> None:
        """
        Block until provider-driven messages are queued or a close is requested.

        Used by the route's outbound pump; follow with drain_outbound().
        """
        if self.session is None:
            raise RuntimeError("outbound_ready() before on_ws_connect()")
        await self.session.wait_control()

    def drain_outbound(self) -> GatewayResult:
        if self.session is None:
            return GatewayResult()
        return GatewayResult(
            outbound_json=self.session.drain_control(),
            close=self.session.close_requested,
        )

    # ------------------------------------------------------------------
    # Runtime dispatch
    # ------------------------------------------------------------------

    async def _dispatch(self, event: Event) -> None:
        """Forward event into runtime; runtime owns all command execution."""
        if self.session is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "DISPATCH_WITHOUT_SESSION",
                "dropped_event": event.event_type.value,
            })
            return

        runtime = self.session.runtime
        assert runtime is not None, "Runtime must exist before dispatch"
        await runtime.handle_event(event)
