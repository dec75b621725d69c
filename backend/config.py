"""
Application configuration.

Responsibilities:
- Load deployment-specific configuration
- Read environment variables
- Provide a typed, immutable config object

Non-responsibilities:
- No relay logic
- No protocol constants
- No runtime mutation
"""

from __future__ import annotations

import os
import urllib.parse
from dataclasses import dataclass

from spec import (
    DEFAULT_LANGUAGE,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_URL,
    DEFAULT_RELAY_PORT,
    DEFAULT_TRANSCRIPTION_MODEL,
    RESPONSE_TIMEOUT_MS_DEFAULT,
)


@dataclass(frozen=True)
class AppConfig:
    """
    Immutable application configuration.

    Constructed once at process startup.
    Passed downward to the session gateway.
    """

    # ------------------------------------------------------------------
    # Environment
    # ------------------------------------------------------------------

    env: str = "dev"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = DEFAULT_RELAY_PORT

    # ------------------------------------------------------------------
    # Provider
    # ------------------------------------------------------------------

    openai_api_key: str | None = None
    realtime_model: str = DEFAULT_REALTIME_MODEL
    realtime_url: str = DEFAULT_REALTIME_URL
    transcription_model: str = DEFAULT_TRANSCRIPTION_MODEL

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    default_language: str = DEFAULT_LANGUAGE
    response_timeout_ms: int = RESPONSE_TIMEOUT_MS_DEFAULT

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    enable_json_logs: bool = True

    @property
    def provider_url(self) -> str:
        """Full realtime endpoint including the model query parameter."""
        qs = urllib.parse.urlencode({"model": self.realtime_model})
        return f"{self.realtime_url}?{qs}"

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @staticmethod
    def load_from_env() -> AppConfig:
        """
        Load configuration from environment variables.

        Raises:
            ValueError if a numeric variable is not an integer.
        """
        return AppConfig(
            env=os.environ.get("ENV", "dev"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            host=os.environ.get("HOST", "0.0.0.0"),
            port=int(os.environ.get("PORT", str(DEFAULT_RELAY_PORT))),

            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            realtime_model=os.environ.get("OPENAI_REALTIME_MODEL", DEFAULT_REALTIME_MODEL),
            realtime_url=os.environ.get("OPENAI_REALTIME_URL", DEFAULT_REALTIME_URL),
            transcription_model=os.environ.get(
                "TRANSCRIPTION_MODEL", DEFAULT_TRANSCRIPTION_MODEL
            ),

            default_language=os.environ.get("DEFAULT_LANGUAGE", DEFAULT_LANGUAGE),
            response_timeout_ms=int(
                os.environ.get("RESPONSE_TIMEOUT_MS", str(RESPONSE_TIMEOUT_MS_DEFAULT))
            ),

            enable_json_logs=os.environ.get("ENABLE_JSON_LOGS", "1") == "1",
        )
