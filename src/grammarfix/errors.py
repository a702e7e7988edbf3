from __future__ import annotations

from typing import Any


class GrammarFixError(RuntimeError):
    """Base class for analysis and apply failures."""


class AnalyzerError(GrammarFixError):
    """The analyzer call failed or returned a non-success response. Retryable."""

    def __init__(self, message: str, *, status: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class StaleState(GrammarFixError):
    """Text diverged from the snapshot the current issues were computed against."""


class InvalidRange(GrammarFixError):
    def __init__(self, offset: int, length: int, text_length: int) -> None:
        super().__init__(
            f"Edit range offset={offset} length={length} is outside text of length {text_length}"
        )
        self.offset = offset
        self.length = length
        self.text_length = text_length


class OverlappingEdits(GrammarFixError):
    def __init__(self, first: Any, second: Any) -> None:
        super().__init__(
            "Overlapping edits: "
            f"[{first.offset}, {first.end}) and [{second.offset}, {second.end})"
        )
        self.first = first
        self.second = second
