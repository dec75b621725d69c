"""
Streaming transcription client.

Core model:
- One TranscriptionClient == one relay WebSocket.
- Capture chunks go through a FrameAccumulator; each emitted frame is
  encoded and sent as one client.audio.append message.
- A periodic task sends client.flush every CLIENT_FLUSH_INTERVAL_MS while
  streaming; stop() sends one more so the tail is transcribed.
- Interim updates are applied after INTERIM_SMOOTHING_DELAY_MS; a newer
  interim replaces the pending one, so bursts collapse to one update.

Usage example:

    client = TranscriptionClient("ws://localhost:8787/ws", language="en")
    await client.start()
    await client.push(samples, sample_rate_hz=48_000)
    await client.stop()
    print(client.transcript.text)
    await client.close()
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Callable

import numpy as np
from numpy.typing import NDArray
from websockets.exceptions import ConnectionClosed
from websockets.legacy.client import (
    connect as ws_connect,
    WebSocketClientProtocol,
)

from audio.accumulator import FrameAccumulator
from audio.frames import AudioFrame
from audio.pcm import encode_frame
from client.transcript import TranscriptState
from observability.logger import log_event
from protocol.messages import (
    audio_append_message,
    config_message,
    flush_message,
    ping_message,
)
from spec import (
    AUDIO_TARGET_SAMPLE_RATE_HZ,
    CHANNEL_FINAL,
    CHANNEL_INTERIM,
    CLIENT_FLUSH_INTERVAL_MS,
    DEFAULT_LANGUAGE,
    FRAME_MIN_SAMPLES,
    INTERIM_SMOOTHING_DELAY_MS,
    MSG_PONG,
    MSG_STATUS,
    MSG_TRANSCRIPT,
)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class TranscriptionClient:
    """
    Session controller for one streaming transcription.

    Public interface:
    - start(): connect, send config and a latency ping
    - push(samples, sample_rate_hz): feed one capture chunk
    - stop(): stop periodic flushes, send the backlog and a final flush
    - close(): close the socket

    Observable state:
    - transcript: TranscriptState (finals, lines, interim, text)
    - latency_ms: round trip of the initial ping, once answered
    - status: last relay status value (e.g. "provider-error")
    - connected: True while the socket is open
    """

    def __init__(
        self,
        url: str,
        *,
        language: str = DEFAULT_LANGUAGE,
        flush_interval_ms: int = CLIENT_FLUSH_INTERVAL_MS,
        smoothing_delay_ms: int = INTERIM_SMOOTHING_DELAY_MS,
        min_frame_samples: int = FRAME_MIN_SAMPLES,
        on_update: Callable[[TranscriptState], None] | None = None,
    ) -> None:
        self._url = url
        self._language = language
        self._flush_interval_ms = flush_interval_ms
        self._smoothing_delay_ms = smoothing_delay_ms
        self._min_frame_samples = min_frame_samples
        self._on_update = on_update

        self.transcript = TranscriptState()
        self.latency_ms: int | None = None
        self.status: str | None = None

        self._ws: WebSocketClientProtocol | None = None
        self._recv_task: asyncio.Task[None] | None = None
        self._flush_task: asyncio.Task[None] | None = None
        self._interim_handle: asyncio.TimerHandle | None = None
        self._accumulator: FrameAccumulator | None = None
        self._ping_sent_ms: float | None = None

    # -------------------------------------------------------------------------
    # Public interface
    # -------------------------------------------------------------------------

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def start(self) -> None:
        """Connect, announce the language, probe latency, and start flushing."""
        if self._ws is None:
            self._ws = await ws_connect(self._url)
            self._recv_task = asyncio.create_task(self._recv_loop())
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CLIENT_CONNECTED",
                "url": self._url,
            })

        await self._send(config_message(self._language))

        self._ping_sent_ms = _monotonic_ms()
        await self._send(ping_message(self._ping_sent_ms))

        self._cancel_flush_task()
        self._flush_task = asyncio.create_task(self._flush_loop())

    async def push(self, samples: NDArray[np.float32], sample_rate_hz: int) -> None:
        """Feed one capture chunk at its native rate."""
        acc = self._accumulator
        if acc is None or acc.source_rate_hz != sample_rate_hz:
            # A rate change starts a fresh backlog; send what the old one held
            if acc is not None:
                await self._send_frame(acc.flush())
            acc = FrameAccumulator(
                source_rate_hz=sample_rate_hz,
                target_rate_hz=AUDIO_TARGET_SAMPLE_RATE_HZ,
                min_frame_samples=self._min_frame_samples,
            )
            self._accumulator = acc

        await self._send_frame(acc.push(samples))

    async def stop(self) -> None:
        """Stop streaming; the pending backlog and a final flush go out."""
        self._cancel_flush_task()

        if self._accumulator is not None:
            await self._send_frame(self._accumulator.flush())

        await self._send(flush_message())
        self._cancel_interim()
        if self.transcript.interim:
            self.transcript.interim = ""
            self._notify()

    async def close(self) -> None:
        """Close the relay socket. Idempotent."""
        self._cancel_flush_task()
        self._cancel_interim()

        ws = self._ws
        self._ws = None
        if ws is not None:
            await ws.close()

        rt = self._recv_task
        self._recv_task = None
        if rt is not None:
            await asyncio.gather(rt, return_exceptions=True)

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    def handle_message(self, data: dict[str, Any]) -> None:
        """Apply one relay -> client message."""
        msg_type = data.get("type")

        if msg_type == MSG_TRANSCRIPT:
            channel = data.get("channel")
            text = data.get("text") or ""
            if not isinstance(text, str):
                text = str(text)
            if channel == CHANNEL_FINAL:
                self._cancel_interim()
                self.transcript.apply_final(text)
                self._notify()
            elif channel == CHANNEL_INTERIM:
                self._schedule_interim(text)

        elif msg_type == MSG_PONG:
            t = data.get("t")
            if isinstance(t, (int, float)) and t == self._ping_sent_ms:
                self.latency_ms = round(_monotonic_ms() - t)

        elif msg_type == MSG_STATUS:
            self.status = data.get("value")
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CLIENT_STATUS",
                "value": self.status,
            })

    async def _recv_loop(self) -> None:
        ws = self._ws
        if ws is None:
            return

        try:
            async for raw in ws:
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if isinstance(data, dict):
                    self.handle_message(data)
        except ConnectionClosed as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CLIENT_CONNECTION_CLOSED",
                "code": e.code,
            })

    # -------------------------------------------------------------------------
    # Scheduled work
    # -------------------------------------------------------------------------

    async def _flush_loop(self) -> None:
        interval_s = self._flush_interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval_s)
            await self._send(flush_message())

    def _cancel_flush_task(self) -> None:
        task = self._flush_task
        self._flush_task = None
        if task is not None and not task.done():
            task.cancel()

    def _schedule_interim(self, text: str) -> None:
        self._cancel_interim()
        loop = asyncio.get_running_loop()
        self._interim_handle = loop.call_later(
            self._smoothing_delay_ms / 1000.0,
            self._apply_interim,
            text,
        )

    def _apply_interim(self, text: str) -> None:
        self._interim_handle = None
        self.transcript.apply_interim(text)
        self._notify()

    def _cancel_interim(self) -> None:
        handle = self._interim_handle
        self._interim_handle = None
        if handle is not None:
            handle.cancel()

    def _notify(self) -> None:
        if self._on_update is not None:
            self._on_update(self.transcript)

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def _send_frame(self, frame: AudioFrame | None) -> None:
        if frame is None:
            return
        encoded = encode_frame(frame)
        await self._send(audio_append_message(encoded.audio_b64))

    async def _send(self, msg: dict[str, Any]) -> None:
        ws = self._ws
        if ws is None or ws.closed:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CLIENT_SEND_DROPPED",
                "msg_type": msg.get("type"),
            })
            return
        try:
            await ws.send(json.dumps(msg))
        except ConnectionClosed as e:
            log_event({
                "ts_ms": _now_ms(),
                "event_type": "CLIENT_SEND_FAILED",
                "msg_type": msg.get("type"),
                "error": repr(e),
            })
