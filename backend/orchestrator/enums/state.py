"""
Commit/response gate state enumeration.

Rules:
- This enum defines ONLY the gate states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in the reducer.
"""

from __future__ import annotations

from enum import Enum


class State(str, Enum):
    """
    Response lifecycle for one client connection.

    IDLE:
        No transcription request outstanding. A sufficient flush may
        start one.

    RESPONSE_IN_FLIGHT:
        Exactly one request outstanding, from provider start
        acknowledgment (or our own response.create) until completion.
    """

    IDLE = "IDLE"
    RESPONSE_IN_FLIGHT = "RESPONSE_IN_FLIGHT"
