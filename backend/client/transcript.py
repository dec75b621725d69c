"""
Transcript composition for live display.

compose_transcript and smooth_interim are pure functions; TranscriptState
is the small mutable holder a client session keeps between messages.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Sequence


def compose_transcript(finals: Sequence[str], interim: str) -> str:
    """
    Merge finalized fragments and the current interim into one string.

    Finals are joined with single spaces; the interim follows after one
    space when both sides are non-empty. The result is trimmed.
    """
    base = " ".join(finals).strip()
    sep = " " if base and interim else ""
    return (base + sep + interim).strip()


def smooth_interim(prev: str, next_: str) -> str:
    """
    Pick the interim text to display next.

    A shorter interim that is a prefix of the displayed one keeps the
    displayed text, so provisional text never visibly shrinks.
    """
    if not prev:
        return next_
    if not next_:
        return ""
    if prev.startswith(next_) and len(prev) > len(next_):
        return prev
    return next_


@dataclass(frozen=True)
class TranscriptLine:
    """One finalized fragment as shown in a timestamped line list."""
    line_id: str
    text: str
    ts_ms: int


@dataclass
class TranscriptState:
    """Finals, their timestamped lines, and the interim currently shown."""

    finals: list[str] = field(default_factory=list)
    lines: list[TranscriptLine] = field(default_factory=list)
    interim: str = ""

    def apply_final(self, text: str) -> None:
        """Record a final fragment; the interim it supersedes is cleared."""
        self.interim = ""
        if not text:
            return
        self.finals.append(text)
        self.lines.append(
            TranscriptLine(
                line_id=uuid.uuid4().hex[:12],
                text=text,
                ts_ms=time.time_ns() // 1_000_000,
            )
        )

    def apply_interim(self, text: str) -> None:
        self.interim = smooth_interim(self.interim, text)

    def reset(self) -> None:
        self.finals.clear()
        self.lines.clear()
        self.interim = ""

    @property
    def text(self) -> str:
        return compose_transcript(self.finals, self.interim)
