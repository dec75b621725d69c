# pylint: disable=missing-module-docstring,missing-function-docstring

import json
from typing import Any

import pytest

from adapters.realtime.normalizer import (
    NormalizedKind,
    normalize_event,
    normalize_message,
)


def lines(*events: Any) -> str:
    return "\n".join(e if isinstance(e, str) else json.dumps(e) for e in events)


def test_interim_then_done_yields_one_interim_and_one_trimmed_final() -> None:
    out = normalize_message(lines(
        {"type": "response.text.delta", "delta": "hel"},
        {"type": "response.text.done", "text": " lo "},
    ))

    assert [(e.kind, e.text) for e in out] == [
        (NormalizedKind.INTERIM, "hel"),
        (NormalizedKind.FINAL, "lo"),
    ]


def test_interim_text_is_not_trimmed() -> None:
    event = normalize_event({"type": "response.audio_transcript.delta", "delta": " hi "})

    assert event.kind is NormalizedKind.INTERIM
    assert event.text == " hi "


@pytest.mark.parametrize(
    "event,kind,text",
    [
        ({"type": "response.created"}, NormalizedKind.LIFECYCLE_START, ""),
        ({"type": "response.done"}, NormalizedKind.LIFECYCLE_END, ""),
        (
            {"type": "response.content_part.added", "part": {"text": "a"}},
            NormalizedKind.INTERIM,
            "a",
        ),
        (
            {"type": "response.content_part.added", "part": {"transcript": "t"}},
            NormalizedKind.INTERIM,
            "t",
        ),
        (
            {"type": "response.content_part.done", "part": {"content": " c "}},
            NormalizedKind.FINAL,
            "c",
        ),
        ({"type": "response.output_text.delta", "delta": "o"}, NormalizedKind.INTERIM, "o"),
        (
            {"type": "response.delta", "delta": {"type": "output_text.delta", "text": "d"}},
            NormalizedKind.INTERIM,
            "d",
        ),
        (
            {"type": "response.audio_transcript.done", "text": "x "},
            NormalizedKind.FINAL,
            "x",
        ),
        ({"type": "response.output_text.done", "text": "y"}, NormalizedKind.FINAL, "y"),
        (
            {
                "type": "response.completed",
                "response": {"output_text": [{"content": "one"}, {"content": "two"}]},
            },
            NormalizedKind.FINAL,
            "one two",
        ),
        ({"type": "session.created"}, NormalizedKind.IGNORED, ""),
        ({"type": "response.delta", "delta": {"type": "audio.delta"}}, NormalizedKind.IGNORED, ""),
        ({"type": "response.completed", "response": {}}, NormalizedKind.IGNORED, ""),
        ({"type": "response.text.done", "text": "   "}, NormalizedKind.IGNORED, ""),
        ({"type": "response.text.delta", "delta": ""}, NormalizedKind.IGNORED, ""),
        ({"no_type": True}, NormalizedKind.IGNORED, ""),
    ],
)
def test_event_vocabulary(event: dict, kind: NormalizedKind, text: str) -> None:
    result = normalize_event(event)

    assert result.kind is kind
    assert result.text == text


def test_non_string_delta_is_coerced() -> None:
    assert normalize_event({"type": "response.text.delta", "delta": 42}).text == "42"


def test_error_events_are_never_text() -> None:
    payload = {"type": "error", "error": {"message": "buffer too small"}}

    result = normalize_event(payload)

    assert result.kind is NormalizedKind.ERROR
    assert result.text == ""
    assert result.error == payload
    assert result.ends_batch is True


def test_parse_failure_aborts_rest_of_batch() -> None:
    out = normalize_message(lines(
        {"type": "response.text.delta", "delta": "a"},
        "{not json",
        {"type": "response.text.delta", "delta": "b"},
    ))

    assert [e.text for e in out] == ["a"]


def test_non_object_lines_are_skipped_without_ending_batch() -> None:
    out = normalize_message(lines(
        {"type": "response.text.delta", "delta": "a"},
        "123",
        "[1, 2]",
        {"type": "response.text.delta", "delta": "b"},
    ))

    assert [e.text for e in out] == ["a", "b"]


def test_null_line_aborts_rest_of_batch() -> None:
    out = normalize_message(lines(
        {"type": "response.text.delta", "delta": "a"},
        "null",
        {"type": "response.text.delta", "delta": "b"},
    ))

    assert [e.text for e in out] == ["a"]


def test_blank_lines_are_skipped() -> None:
    raw = "\n" + json.dumps({"type": "response.text.delta", "delta": "a"}) + "\n\n"

    assert [e.text for e in normalize_message(raw)] == ["a"]


def test_content_part_done_ends_batch() -> None:
    out = normalize_message(lines(
        {"type": "response.content_part.done", "part": {"text": "fin"}},
        {"type": "response.done"},
    ))

    assert [e.kind for e in out] == [NormalizedKind.FINAL]


def test_trailing_events_after_final_in_later_message_are_processed() -> None:
    first = normalize_message(json.dumps({"type": "response.text.done", "text": "a"}))
    second = normalize_message(json.dumps({"type": "response.done"}))

    assert [e.kind for e in first] == [NormalizedKind.FINAL]
    assert [e.kind for e in second] == [NormalizedKind.LIFECYCLE_END]


def test_bytes_message_accepted() -> None:
    raw = json.dumps({"type": "response.created"}).encode("utf-8")

    assert [e.kind for e in normalize_message(raw)] == [NormalizedKind.LIFECYCLE_START]
