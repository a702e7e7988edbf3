from __future__ import annotations

from collections.abc import Iterable

from .models import Issue

FRESHNESS_POLICIES = {"exact", "trailing_whitespace"}


def is_fresh(
    current_text: str,
    tracked_text: str | None,
    *,
    policy: str = "exact",
    issues: Iterable[Issue] = (),
) -> bool:
    """Return True when issues computed against ``tracked_text`` still apply to ``current_text``.

    ``exact`` requires character-for-character equality. ``trailing_whitespace``
    also accepts texts that differ only in whitespace at the very end, provided
    no issue span reaches into that tail (its offsets would be meaningless).
    """
    if tracked_text is None:
        return False
    if current_text == tracked_text:
        return True
    if policy == "exact":
        return False
    if policy != "trailing_whitespace":
        raise ValueError(f"Unknown freshness policy: {policy!r}")

    current_core = current_text.rstrip()
    tracked_core = tracked_text.rstrip()
    if current_core != tracked_core:
        return False
    limit = len(current_core)
    return all(issue.end <= limit for issue in issues)
