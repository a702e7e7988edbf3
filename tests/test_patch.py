from __future__ import annotations

import pytest

from grammarfix.errors import InvalidRange, OverlappingEdits
from grammarfix.models import Edit, Issue
from grammarfix.patch import apply_many, apply_one, edits_for_issues, plan_edits

SENTENCE = "This are example sentences with some mistake."


def test_apply_one_replaces_only_the_span():
    out = apply_one(SENTENCE, Edit(offset=5, length=3, replacement="is"))
    assert out == "This is example sentences with some mistake."
    assert len(out) == len(SENTENCE) - 3 + len("is")


def test_apply_one_supports_insert_and_delete():
    assert apply_one("abc", Edit(offset=3, length=0, replacement="d")) == "abcd"
    assert apply_one("abc", Edit(offset=0, length=1, replacement="")) == "bc"


@pytest.mark.parametrize(
    "edit",
    [
        Edit(offset=-1, length=1, replacement="x"),
        Edit(offset=2, length=5, replacement="x"),
        Edit(offset=4, length=0, replacement="x"),
        Edit(offset=1, length=-1, replacement="x"),
    ],
)
def test_apply_one_rejects_out_of_range(edit):
    with pytest.raises(InvalidRange):
        apply_one("abc", edit)


def test_apply_many_has_no_offset_drift_regardless_of_input_order():
    edits = [
        Edit(offset=38, length=7, replacement="errors"),
        Edit(offset=5, length=3, replacement="is"),
    ]
    expected = "This is example sentences with some errors."
    assert apply_many(SENTENCE, edits) == expected
    assert apply_many(SENTENCE, list(reversed(edits))) == expected


def test_apply_many_matches_simultaneous_substitution():
    text = "0123456789"
    edits = [
        Edit(offset=1, length=2, replacement="AB"),
        Edit(offset=4, length=1, replacement=""),
        Edit(offset=6, length=0, replacement="++"),
        Edit(offset=8, length=2, replacement="Z"),
    ]
    expected = "0" + "AB" + "3" + "" + "5" + "++" + "67" + "Z"
    assert apply_many(text, edits) == expected


def test_apply_many_rejects_overlap_without_partial_output():
    text = "abcdefgh"
    edits = [
        Edit(offset=1, length=3, replacement="X"),
        Edit(offset=3, length=2, replacement="Y", order=1),
    ]
    with pytest.raises(OverlappingEdits) as excinfo:
        apply_many(text, edits)
    assert excinfo.value.first.replacement == "X"
    assert excinfo.value.second.replacement == "Y"
    assert text == "abcdefgh"


def test_apply_many_drop_mode_keeps_earlier_reported_edit():
    edits = [
        Edit(offset=3, length=2, replacement="Y", order=1),
        Edit(offset=1, length=3, replacement="X", order=0),
    ]
    assert apply_many("abcdefgh", edits, on_overlap="drop") == "aXefgh"


def test_apply_many_same_span_duplicates_first_wins():
    edits = [
        Edit(offset=0, length=1, replacement="first", order=0),
        Edit(offset=0, length=1, replacement="second", order=1),
    ]
    assert apply_many("abc", edits) == "firstbc"


def test_apply_many_insertion_at_range_start_goes_in_front():
    edits = [
        Edit(offset=1, length=0, replacement="+", order=0),
        Edit(offset=1, length=2, replacement="XY", order=1),
    ]
    assert apply_many("abcd", edits) == "a+XYd"


def test_apply_many_insertion_inside_range_overlaps():
    edits = [
        Edit(offset=0, length=3, replacement="X", order=0),
        Edit(offset=1, length=0, replacement="+", order=1),
    ]
    with pytest.raises(OverlappingEdits):
        apply_many("abcd", edits)


def test_apply_many_checks_bounds_against_original_text():
    # Second edit is valid only if the first one were applied first.
    edits = [
        Edit(offset=0, length=1, replacement="long prefix "),
        Edit(offset=5, length=1, replacement="x", order=1),
    ]
    with pytest.raises(InvalidRange):
        apply_many("abc", edits)


def test_plan_edits_reports_dropped_and_application_order():
    edits = [
        Edit(offset=0, length=1, replacement="a", order=0),
        Edit(offset=5, length=1, replacement="b", order=1),
        Edit(offset=0, length=1, replacement="c", order=2),
    ]
    planned, dropped = plan_edits("0123456", edits)
    assert [e.offset for e in planned] == [5, 0]
    assert [e.replacement for e in dropped] == ["c"]


def test_plan_edits_rejects_unknown_policy():
    with pytest.raises(ValueError):
        plan_edits("abc", [], on_overlap="merge")


def test_edits_for_issues_uses_first_candidate_and_skips_empty():
    issues = [
        Issue(offset=0, length=4, message="a", replacements=("That", "These")),
        Issue(offset=5, length=3, message="b"),
        Issue(offset=9, length=2, message="c", replacements=("x",)),
    ]
    edits = edits_for_issues(issues)
    assert [(e.offset, e.replacement, e.order) for e in edits] == [(0, "That", 0), (9, "x", 2)]
