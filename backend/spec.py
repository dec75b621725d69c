"""
SPEC-AS-CONSTANTS
-----------------
Single source of truth for all behavioral invariants in the system.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- No magic numbers elsewhere in the codebase.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Audio Format (PCM16 mono @ 24kHz)
# =============================================================================

AUDIO_TARGET_SAMPLE_RATE_HZ: Final[int] = 24_000
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2  # PCM16 (signed 16-bit)

# Browser capture is typically 48kHz; resample client-side
CAPTURE_SAMPLE_RATE_HZ_DEFAULT: Final[int] = 48_000

# Quantization full-scale factors (asymmetric int16 range)
PCM16_NEGATIVE_FULL_SCALE: Final[int] = 0x8000
PCM16_POSITIVE_FULL_SCALE: Final[int] = 0x7FFF

# =============================================================================
# Client Frame Accumulation
# =============================================================================

# ≈100ms at 24kHz
FRAME_MIN_SAMPLES: Final[int] = 2_400

# Base64 expands every 3 bytes into 4 characters
BASE64_EXPANSION_NUM: Final[int] = 4
BASE64_EXPANSION_DEN: Final[int] = 3

# =============================================================================
# Relay Commit / Response Gate
# =============================================================================

# ≈ (2400 samples * 2 bytes) * 4/3 base64 expansion
MIN_B64_CHARS_FOR_COMMIT: Final[int] = (
    FRAME_MIN_SAMPLES * AUDIO_SAMPLE_WIDTH_BYTES
    * BASE64_EXPANSION_NUM // BASE64_EXPANSION_DEN
)

# Forced reset of a stuck in-flight response (0 disables)
RESPONSE_TIMEOUT_MS_DEFAULT: Final[int] = 15_000

RESPONSE_MODALITIES: Final[tuple[str, ...]] = ("text",)
RESPONSE_INSTRUCTIONS: Final[str] = "Transcribe the latest audio only as plain text."

# =============================================================================
# Client Timing
# =============================================================================

CLIENT_FLUSH_INTERVAL_MS: Final[int] = 1_200

# Deferred interim update (one display frame at ~60Hz)
INTERIM_SMOOTHING_DELAY_MS: Final[int] = 16

# =============================================================================
# Session Defaults
# =============================================================================

DEFAULT_LANGUAGE: Final[str] = "en"
DEFAULT_TRANSCRIPTION_MODEL: Final[str] = "whisper-1"
DEFAULT_REALTIME_MODEL: Final[str] = "gpt-4o-realtime-preview-2024-12-17"
DEFAULT_REALTIME_URL: Final[str] = "wss://api.openai.com/v1/realtime"
DEFAULT_RELAY_PORT: Final[int] = 8787

# Upstream websocket frame cap
PROVIDER_MAX_MESSAGE_BYTES: Final[int] = 2**22

# =============================================================================
# Wire Message Types
# =============================================================================

# Client → Relay
MSG_CONFIG: Final[str] = "config"
MSG_AUDIO_APPEND: Final[str] = "client.audio.append"
MSG_FLUSH: Final[str] = "client.flush"
MSG_PING: Final[str] = "ping"

# Relay → Client
MSG_TRANSCRIPT: Final[str] = "transcript"
MSG_STATUS: Final[str] = "status"
MSG_PONG: Final[str] = "pong"

CHANNEL_INTERIM: Final[str] = "interim"
CHANNEL_FINAL: Final[str] = "final"

STATUS_PROVIDER_ERROR: Final[str] = "provider-error"
