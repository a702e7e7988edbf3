from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable
from typing import Any

from rich.console import Console
from rich.markup import escape

from .models import Issue

_WORD_RE = re.compile(r"\S+")

MAX_ALTERNATIVES = 3


def issue_label(issue: Issue, default: str = "Other") -> str:
    if issue.issue_type:
        return issue.issue_type
    if issue.category is not None and issue.category.name:
        return issue.category.name
    return default


def count_by_type(issues: Iterable[Issue]) -> dict[str, int]:
    # Counter keeps first-seen order, which is analyzer order.
    return dict(Counter(issue_label(issue) for issue in issues))


def text_stats(text: str) -> tuple[int, int]:
    """Return ``(characters, words)``."""
    return len(text), len(_WORD_RE.findall(text))


def issue_to_dict(issue: Issue, index: int | None = None) -> dict[str, Any]:
    out: dict[str, Any] = {
        "offset": issue.offset,
        "length": issue.length,
        "message": issue.message,
        "short_message": issue.short_message,
        "rule_id": issue.rule_id,
        "rule_description": issue.rule.description,
        "label": issue_label(issue),
        "sentence": issue.sentence,
        "replacements": list(issue.replacements),
    }
    if index is not None:
        out = {"index": index, **out}
    return out


def render_issue(console: Console, index: int, issue: Issue) -> None:
    title = issue.short_message or issue.message
    console.print(f"[bold]{index}. {escape(title)}[/bold]  [cyan]\\[{escape(issue_label(issue, 'Issue'))}][/cyan]")
    console.print(f"   Rule: {escape(issue.rule_id)} • {escape(issue.rule.description)}", style="dim")
    if issue.sentence:
        console.print(f"   In: {escape(issue.sentence)}")
    if issue.replacements:
        primary = issue.replacements[0]
        alternatives = issue.replacements[1 : 1 + MAX_ALTERNATIVES]
        line = f"   Suggest: [green]{escape(primary)}[/green]"
        if alternatives:
            line += "  (also: " + ", ".join(escape(alt) for alt in alternatives) + ")"
        console.print(line)
    else:
        console.print("   No replacement available", style="dim")


def render_issues(console: Console, issues: Iterable[Issue], text: str) -> None:
    issues_list = list(issues)
    chars, words = text_stats(text)
    console.print(f"{chars} characters, {words} words")
    if not issues_list:
        console.print("No issues found.")
        return
    counts = ", ".join(f"{label}: {count}" for label, count in count_by_type(issues_list).items())
    console.print(f"Suggestions: {len(issues_list)} ({counts})")
    for idx, issue in enumerate(issues_list, start=1):
        render_issue(console, idx, issue)
