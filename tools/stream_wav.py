# tools/stream_wav.py
"""
Stream an audio file through a running relay and print the transcript.

    python tools/stream_wav.py --file hello.wav --url ws://localhost:8787/ws
    python tools/stream_wav.py --file capture.pcm --raw --rate 48000

Audio is mixed to mono float32 and pushed in capture-sized chunks, paced
at real time unless --fast is given.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

import numpy as np
import soundfile as sf
from numpy.typing import NDArray

from audio.pcm import pcm16le_to_float32
from client.session import TranscriptionClient
from client.transcript import TranscriptState
from spec import CAPTURE_SAMPLE_RATE_HZ_DEFAULT, DEFAULT_LANGUAGE


CHUNK_MS = 20
# Time allowed for the last response after the final flush
DRAIN_WAIT_S = 3.0


def load_audio(path: Path, *, raw: bool, rate: int) -> tuple[NDArray[np.float32], int]:
    if raw:
        return pcm16le_to_float32(path.read_bytes()), rate

    audio, sr = sf.read(str(path), dtype="float32", always_2d=True)
    # Mix down to mono
    mono = audio.mean(axis=1).astype(np.float32)
    return mono, int(sr)


def _print_update(state: TranscriptState) -> None:
    print(f"\r{state.text}", end="", flush=True)


async def stream(args: argparse.Namespace) -> int:
    samples, sr = load_audio(Path(args.file), raw=args.raw, rate=args.rate)
    chunk = max(1, sr * CHUNK_MS // 1000)

    client = TranscriptionClient(
        args.url,
        language=args.language,
        on_update=_print_update,
    )
    await client.start()

    try:
        for start in range(0, samples.shape[0], chunk):
            await client.push(samples[start:start + chunk], sr)
            if not args.fast:
                await asyncio.sleep(CHUNK_MS / 1000.0)
            if not client.connected:
                print("\nrelay closed the connection", file=sys.stderr)
                return 1

        await client.stop()
        await asyncio.sleep(DRAIN_WAIT_S)
    finally:
        await client.close()

    print()
    print(f"latency_ms={client.latency_ms} status={client.status}")
    for line in client.transcript.lines:
        print(f"[{line.ts_ms}] {line.text}")
    print(client.transcript.text)
    return 0 if client.status is None else 1


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--file", required=True, help="Audio file (any format soundfile reads)")
    ap.add_argument("--url", default="ws://localhost:8787/ws", help="Relay WebSocket URL")
    ap.add_argument("--language", default=DEFAULT_LANGUAGE, help="Transcription language code")
    ap.add_argument("--raw", action="store_true", help="Treat the file as headerless PCM16LE mono")
    ap.add_argument(
        "--rate",
        type=int,
        default=CAPTURE_SAMPLE_RATE_HZ_DEFAULT,
        help="Sample rate for --raw input",
    )
    ap.add_argument("--fast", action="store_true", help="Do not pace chunks at real time")
    args = ap.parse_args()

    return asyncio.run(stream(args))


if __name__ == "__main__":
    raise SystemExit(main())
