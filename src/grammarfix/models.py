from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class BufferState(str, Enum):
    UNANALYZED = "unanalyzed"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"


@dataclass(frozen=True)
class Category:
    id: str = ""
    name: str = ""


@dataclass(frozen=True)
class Rule:
    id: str = ""
    description: str = ""
    issue_type: Optional[str] = None
    category: Optional[Category] = None


@dataclass(frozen=True)
class MatchContext:
    """Excerpt around a match as returned by the analyzer (display only)."""

    text: str = ""
    offset: int = 0
    length: int = 0


@dataclass(frozen=True)
class Issue:
    """One analyzer finding, valid only against the snapshot it was computed from."""

    offset: int
    length: int
    message: str
    rule: Rule = Rule()
    short_message: str = ""
    sentence: str = ""
    replacements: tuple[str, ...] = ()
    context: MatchContext | None = None

    @property
    def end(self) -> int:
        return self.offset + self.length

    @property
    def rule_id(self) -> str:
        return self.rule.id

    @property
    def issue_type(self) -> str | None:
        return self.rule.issue_type

    @property
    def category(self) -> Category | None:
        return self.rule.category


@dataclass(frozen=True)
class Edit:
    offset: int
    length: int
    replacement: str
    # Position of the source issue in analyzer order; lower wins on conflicts.
    order: int = 0

    @property
    def end(self) -> int:
        return self.offset + self.length


@dataclass(frozen=True)
class Snapshot:
    """Exact text an issue set was computed against. Identity is the content."""

    text: str


@dataclass(frozen=True)
class IssueSet:
    snapshot: Snapshot
    issues: tuple[Issue, ...] = field(default_factory=tuple)
    language: str = ""

    def __len__(self) -> int:
        return len(self.issues)
