# pylint: disable=missing-module-docstring,missing-function-docstring
from __future__ import annotations

import json
from typing import Any

import pytest

from observability import logger


@pytest.fixture
def log_lines(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, Any]]:
    """Capture every structured log line as a dict."""
    lines: list[dict[str, Any]] = []
    monkeypatch.setattr(logger, "_print", lambda line: lines.append(json.loads(line)))
    monkeypatch.setattr(logger, "_json_enabled", True)
    return lines
