"""
Route registration for the transcription relay.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire gateway to WebSocket lifecycle
- Pump provider-driven messages to the client
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from observability.logger import log_event
from session.gateway import GatewayResult, SessionGateway


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""
    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        gateway = SessionGateway(
            config=app.state.config,
            adapter_factory=app.state.adapter_factory,
        )

        # Receive loop and outbound pump both write to the socket
        send_lock = asyncio.Lock()
        pump: asyncio.Task[None] | None = None
        reason = "client_disconnect"

        try:
            async with send_lock:
                result = await gateway.on_ws_connect()
                await _flush_gateway_result(ws, result)

            if not result.close:
                pump = asyncio.create_task(_outbound_pump(ws, gateway, send_lock))

            while not result.close:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(code=msg.get("code", 1000))

                text = msg.get("text")
                if text is None:
                    # Binary frames are not part of the protocol
                    continue

                async with send_lock:
                    result = await gateway.on_json_message(text)
                    await _flush_gateway_result(ws, result)

            reason = "provider_closed"

        except WebSocketDisconnect:
            reason = "client_disconnect"

        except Exception as exc:  # pylint: disable=broad-exception-caught
            reason = "server_error"
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "session_id": gateway.session.session_id if gateway.session else None,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

        finally:
            if pump is not None and pump is not asyncio.current_task():
                pump.cancel()
                await asyncio.gather(pump, return_exceptions=True)
            await gateway.on_ws_disconnect(reason=reason)
            await _close_client(ws)


async def _outbound_pump(
    ws: WebSocket,
    gateway: SessionGateway,
    send_lock: asyncio.Lock,
) -> None:
    """
    Deliver messages produced by provider events (transcripts, status).

    Exits after closing the client socket when the session asks for it.
    """
    while True:
        await gateway.outbound_ready()
        async with send_lock:
            result = gateway.drain_outbound()
            await _flush_gateway_result(ws, result)
        if result.close:
            await _close_client(ws)
            return


async def _flush_gateway_result(
    ws: WebSocket,
    result: GatewayResult,
) -> None:
    if ws.application_state != WebSocketState.CONNECTED:
        return
    for msg in result.outbound_json:
        await ws.send_text(json.dumps(msg))


async def _close_client(ws: WebSocket) -> None:
    if ws.application_state != WebSocketState.CONNECTED:
        return
    if ws.client_state == WebSocketState.DISCONNECTED:
        return
    try:
        await ws.close()
    except RuntimeError:
        # Peer already gone
        pass
