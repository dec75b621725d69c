"""
OpenAI Realtime adapter (one persistent upstream WebSocket per client).

Core model:
- The upstream socket is opened once at session start and never reopened.
- Outbound instructions are JSON text frames, sent as soon as the reducer
  asks for them (no batching, no local buffering).
- Inbound frames may hold several newline-delimited JSON events. Each frame
  is normalized into relay events and emitted in arrival order.

Failure behavior:
- Connect failure raises ProviderConnectError.
- Send or receive failure emits PROVIDER_ERROR(transport=True) followed by
  PROVIDER_DISCONNECTED; the reducer then closes both sides.
- A clean upstream close emits PROVIDER_DISCONNECTED only.
- close() initiated by the relay emits nothing.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Callable, Coroutine

from websockets.exceptions import ConnectionClosed, ConnectionClosedOK
from websockets.legacy.client import (
    connect as ws_connect,
    WebSocketClientProtocol,
)

from adapters.realtime.base import ProviderConnectError, RealtimeAdapter
from adapters.realtime.normalizer import (
    NormalizedEvent,
    NormalizedKind,
    normalize_message,
)
from observability.logger import log_event
from orchestrator.events import (
    Event,
    EventType,
    ProviderDisconnected,
    ProviderError,
    ProviderResponseDone,
    ProviderResponseStarted,
    ProviderTranscript,
)
from spec import CHANNEL_FINAL, CHANNEL_INTERIM, PROVIDER_MAX_MESSAGE_BYTES


def _now_ms() -> int:
    return int(time.time() * 1000)


def to_relay_event(normalized: NormalizedEvent, ts_ms: int) -> Event | None:
    """Translate a normalized provider event into a reducer event (None = drop)."""
    kind = normalized.kind

    if kind is NormalizedKind.INTERIM:
        return ProviderTranscript(
            event_type=EventType.PROVIDER_TRANSCRIPT,
            ts_ms=ts_ms,
            channel=CHANNEL_INTERIM,
            text=normalized.text,
        )
    if kind is NormalizedKind.FINAL:
        return ProviderTranscript(
            event_type=EventType.PROVIDER_TRANSCRIPT,
            ts_ms=ts_ms,
            channel=CHANNEL_FINAL,
            text=normalized.text,
        )
    if kind is NormalizedKind.LIFECYCLE_START:
        return ProviderResponseStarted(
            event_type=EventType.PROVIDER_RESPONSE_STARTED,
            ts_ms=ts_ms,
        )
    if kind is NormalizedKind.LIFECYCLE_END:
        return ProviderResponseDone(
            event_type=EventType.PROVIDER_RESPONSE_DONE,
            ts_ms=ts_ms,
        )
    if kind is NormalizedKind.ERROR:
        error = normalized.error.get("error")
        message = error.get("message") if isinstance(error, dict) else None
        return ProviderError(
            event_type=EventType.PROVIDER_ERROR,
            ts_ms=ts_ms,
            reason=str(message or normalized.provider_type),
            transport=False,
            payload=dict(normalized.error),
        )
    return None


class OpenAIRealtimeAdapter(RealtimeAdapter):
    """
    Persistent OpenAI Realtime WebSocket adapter.

    Public interface:
    - connect(): open upstream, start receive loop
    - send(payload): JSON-encode and send one instruction
    - close(): idempotent teardown
    """

    def __init__(
        self,
        *,
        emit_event: Callable[[Event], Coroutine[Any, Any, None]],
        url: str,
        api_key: str,
        session_id: str,
    ) -> None:
        self._emit_async = emit_event
        self._url = url
        self._api_key = api_key
        self._session_id = session_id

        self._ws: WebSocketClientProtocol | None = None
        self._recv_task: asyncio.Task[None] | None = None
        self._closing = False
        self._disconnect_emitted = False

    # -------------------------------------------------------------------------
    # Public interface
    # -------------------------------------------------------------------------

    def _emit(self, event: Event) -> None:
        # Fire-and-forget: used where we are already inside handle_event
        asyncio.create_task(self._emit_async(event))

    async def connect(self) -> None:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "OpenAI-Beta": "realtime=v1",
        }
        try:
            self._ws = await ws_connect(
                self._url,
                extra_headers=headers,
                max_size=PROVIDER_MAX_MESSAGE_BYTES,
            )
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._ws = None
            raise ProviderConnectError(f"realtime_connect_failed: {e!r}") from e

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "PROVIDER_CONNECTED",
            "session_id": self._session_id,
        })

        # Start receiver loop once per connection.
        self._recv_task = asyncio.create_task(self._recv_loop())

    async def send(self, payload: dict[str, Any]) -> None:
        ws = self._ws
        if ws is None or self._closing:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "PROVIDER_SEND_DROPPED",
                "session_id": self._session_id,
                "payload_type": payload.get("type"),
            })
            return

        try:
            await ws.send(json.dumps(payload))
        except Exception as e:  # pylint: disable=broad-exception-caught
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "PROVIDER_SEND_FAILED",
                "session_id": self._session_id,
                "payload_type": payload.get("type"),
                "error": repr(e),
            })
            self._emit_transport_failure(f"realtime_send_failed: {e!r}")

    async def close(self) -> None:
        if self._closing:
            return
        self._closing = True

        ws = self._ws
        self._ws = None

        rt = self._recv_task
        self._recv_task = None
        if rt is not None and not rt.done() and rt is not asyncio.current_task():
            rt.cancel()

        if ws is not None:
            try:
                await ws.close()
            except Exception:  # pylint: disable=broad-exception-caught
                pass

        log_event({
            "ts_ms": _now_ms(),
            "event_type": "PROVIDER_CLOSED",
            "session_id": self._session_id,
        })

    # -------------------------------------------------------------------------
    # Background loop
    # -------------------------------------------------------------------------

    async def _recv_loop(self) -> None:
        ws = self._ws
        if ws is None:
            return

        try:
            async for raw in ws:
                for normalized in normalize_message(raw):
                    await self._dispatch(normalized)
        except asyncio.CancelledError:
            return
        except ConnectionClosedOK:
            pass
        except ConnectionClosed as e:
            self._emit_transport_failure(f"realtime_connection_lost: {e!r}")
            return
        except Exception as e:  # pylint: disable=broad-exception-caught
            self._emit_transport_failure(f"realtime_recv_failed: {e!r}")
            return

        if not self._closing:
            self._emit_disconnected("provider_closed")

    async def _dispatch(self, normalized: NormalizedEvent) -> None:
        event = to_relay_event(normalized, _now_ms())
        if event is None:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "PROVIDER_EVENT_IGNORED",
                "session_id": self._session_id,
                "provider_type": normalized.provider_type,
            })
            return
        # Awaited so transcript order matches arrival order
        await self._emit_async(event)

    def _emit_transport_failure(self, reason: str) -> None:
        if self._closing or self._disconnect_emitted:
            return
        self._emit(
            ProviderError(
                event_type=EventType.PROVIDER_ERROR,
                ts_ms=_now_ms(),
                reason=reason,
                transport=True,
            )
        )
        self._emit_disconnected(reason)

    def _emit_disconnected(self, reason: str) -> None:
        if self._disconnect_emitted:
            return
        self._disconnect_emitted = True
        self._emit(
            ProviderDisconnected(
                event_type=EventType.PROVIDER_DISCONNECTED,
                ts_ms=_now_ms(),
                reason=reason,
            )
        )
