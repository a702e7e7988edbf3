from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .errors import InvalidRange, OverlappingEdits
from .models import Edit, Issue

logger = logging.getLogger("grammarfix.patch")

OVERLAP_POLICIES = {"error", "drop"}


def _check_range(edit: Edit, text_length: int) -> None:
    if edit.offset < 0 or edit.length < 0 or edit.end > text_length:
        raise InvalidRange(edit.offset, edit.length, text_length)


def _overlaps(a: Edit, b: Edit) -> bool:
    # Half-open ranges. An insertion at the boundary of another range does not overlap it.
    return a.offset < b.end and b.offset < a.end


def _splice(text: str, edit: Edit) -> str:
    return text[: edit.offset] + edit.replacement + text[edit.end :]


def apply_one(text: str, edit: Edit) -> str:
    _check_range(edit, len(text))
    return _splice(text, edit)


def plan_edits(
    text: str,
    edits: Iterable[Edit],
    *,
    on_overlap: str = "error",
) -> tuple[list[Edit], list[Edit]]:
    """Validate edits against ``text`` and return ``(planned, dropped)``.

    ``planned`` is sorted in application order: descending offset, and for a
    shared offset the longer edit first so an insertion at that offset lands
    in front of the replacement. Edits sharing offset and length with an
    earlier one are dropped (first in ``order`` wins). Any other intersection
    raises ``OverlappingEdits`` or, with ``on_overlap="drop"``, drops the
    later edit.
    """
    if on_overlap not in OVERLAP_POLICIES:
        raise ValueError(f"Unknown overlap policy: {on_overlap!r}")

    ordered = sorted(edits, key=lambda e: e.order)
    for edit in ordered:
        _check_range(edit, len(text))

    accepted: list[Edit] = []
    dropped: list[Edit] = []
    seen_spans: set[tuple[int, int]] = set()
    for edit in ordered:
        span = (edit.offset, edit.length)
        if span in seen_spans:
            dropped.append(edit)
            continue
        conflict = next((other for other in accepted if _overlaps(other, edit)), None)
        if conflict is not None:
            if on_overlap == "error":
                raise OverlappingEdits(conflict, edit)
            logger.warning(
                "Dropping edit [%d, %d) overlapping earlier edit [%d, %d)",
                edit.offset,
                edit.end,
                conflict.offset,
                conflict.end,
            )
            dropped.append(edit)
            continue
        seen_spans.add(span)
        accepted.append(edit)

    accepted.sort(key=lambda e: (e.offset, e.length), reverse=True)
    return accepted, dropped


def apply_many(text: str, edits: Sequence[Edit], *, on_overlap: str = "error") -> str:
    """Apply edits anchored to ``text`` right-to-left. All-or-nothing."""
    planned, _ = plan_edits(text, edits, on_overlap=on_overlap)
    out = text
    for edit in planned:
        out = _splice(out, edit)
    return out


def edit_for_issue(issue: Issue, replacement: str, *, order: int = 0) -> Edit:
    return Edit(offset=issue.offset, length=issue.length, replacement=replacement, order=order)


def edits_for_issues(issues: Iterable[Issue]) -> list[Edit]:
    """First candidate of every issue that has one, tagged with its analyzer order."""
    return [
        edit_for_issue(issue, issue.replacements[0], order=idx)
        for idx, issue in enumerate(issues)
        if issue.replacements
    ]
