"""Tests for text length budgets.

Run with: pytest tests/test_budget.py -v
"""

from __future__ import annotations

import pytest

from nuntia.budget import apply_budget, apply_title_body_limit, truncate_text
from nuntia.schemas import CommitEntry, LinkedItem, ReferenceType


@pytest.fixture
def commit_entry() -> CommitEntry:
    return CommitEntry(
        sha="a" * 40,
        message="Refactor the cache invalidation logic across services",
        url="https://github.com/acme/widgets/commit/" + "a" * 40,
        author="dev1",
        date="2024-01-01T00:00:00Z",
    )


@pytest.fixture
def issue_item() -> LinkedItem:
    return LinkedItem(
        type=ReferenceType.ISSUE,
        owner="acme",
        repo="widgets",
        id="12",
        title="Crash on start",
        body="The app crashes when the config file is missing entirely.",
        url="https://github.com/acme/widgets/issues/12",
        state="open",
        referenced_by=["commit:aaaaaaa"],
    )


# ---------------------------------------------------------------------------
# truncate_text
# ---------------------------------------------------------------------------


class TestTruncateText:
    def test_short_text_unchanged(self) -> None:
        assert truncate_text("hello", 10) == "hello"

    def test_exact_length_unchanged(self) -> None:
        assert truncate_text("hello", 5) == "hello"

    def test_long_text_gets_ellipsis(self) -> None:
        result = truncate_text("abcdefghijklmnop", 10)
        assert result == "abcdefg..."
        assert len(result) == 10

    def test_trailing_whitespace_trimmed_before_ellipsis(self) -> None:
        assert truncate_text("hello world, again", 9) == "hello..."

    @pytest.mark.parametrize(("budget", "expected"), [(3, "abc"), (2, "ab"), (1, "a")])
    def test_tiny_budget_hard_cuts(self, budget: int, expected: str) -> None:
        assert truncate_text("abcdefgh", budget) == expected

    @pytest.mark.parametrize("budget", [0, -1])
    def test_non_positive_budget_disables_truncation(self, budget: int) -> None:
        text = "x" * 500
        assert truncate_text(text, budget) == text


# ---------------------------------------------------------------------------
# apply_title_body_limit
# ---------------------------------------------------------------------------


class TestTitleBodyLimit:
    def test_fits_within_budget(self) -> None:
        # 5 + 2 + 5 = 12
        assert apply_title_body_limit("Title", "Body!", 12) == ("Title", "Body!")

    def test_title_kept_body_cut_to_remaining(self) -> None:
        # remaining = 5 - 1 - 2 = 2, which is a hard cut
        title, body = apply_title_body_limit("T", "0123456789", 5)
        assert title == "T"
        assert body == "01"

    def test_body_gets_ellipsis_when_room(self) -> None:
        title, body = apply_title_body_limit("Title", "0123456789abcdef", 15)
        # remaining = 15 - 5 - 2 = 8
        assert title == "Title"
        assert body == "01234..."

    def test_body_omitted_when_no_room(self) -> None:
        title, body = apply_title_body_limit("Title", "0123456789", 7)
        assert title == "Title"
        assert body is None

    def test_long_title_drops_body(self) -> None:
        title, body = apply_title_body_limit("A very long title indeed", "body", 10)
        assert title == "A very..."
        assert body is None

    def test_title_equal_to_budget_drops_body(self) -> None:
        assert apply_title_body_limit("12345", "body", 5) == ("12345", None)

    def test_no_title_truncates_body(self) -> None:
        assert apply_title_body_limit("", "0123456789", 6) == (None, "012...")
        assert apply_title_body_limit(None, "0123456789", 6) == (None, "012...")

    def test_no_title_empty_body(self) -> None:
        assert apply_title_body_limit("", "", 6) == (None, None)

    def test_title_without_body_has_no_separator(self) -> None:
        assert apply_title_body_limit("Title", "", 5) == ("Title", None)

    def test_disabled_budget_passes_through(self) -> None:
        assert apply_title_body_limit("T", "B" * 100, 0) == ("T", "B" * 100)


# ---------------------------------------------------------------------------
# apply_budget
# ---------------------------------------------------------------------------


class TestApplyBudget:
    def test_truncates_commits_and_items(
        self, commit_entry: CommitEntry, issue_item: LinkedItem
    ) -> None:
        commits, items = apply_budget([commit_entry], [issue_item], 20)
        assert commits[0].message == "Refactor the cach..."
        assert items[0].title == "Crash on start"
        # 20 - 14 - 2 = 4 leaves a one-character cut plus ellipsis
        assert items[0].body == "T..."

    def test_inputs_are_not_mutated(
        self, commit_entry: CommitEntry, issue_item: LinkedItem
    ) -> None:
        original_message = commit_entry.message
        original_body = issue_item.body
        apply_budget([commit_entry], [issue_item], 10)
        assert commit_entry.message == original_message
        assert issue_item.body == original_body

    def test_provenance_is_copied(self, issue_item: LinkedItem) -> None:
        _, items = apply_budget([], [issue_item], 10)
        items[0].add_source("issue:#99")
        assert issue_item.referenced_by == ["commit:aaaaaaa"]

    def test_linked_commit_message_truncated(self) -> None:
        item = LinkedItem(
            type=ReferenceType.COMMIT,
            owner="acme",
            repo="widgets",
            id="b" * 40,
            message="Backport the fix for the crash",
            referenced_by=["issue:#1"],
        )
        _, items = apply_budget([], [item], 12)
        assert items[0].message == "Backport..."
        assert items[0].title is None
        assert items[0].body is None

    def test_disabled_budget_keeps_everything(
        self, commit_entry: CommitEntry, issue_item: LinkedItem
    ) -> None:
        commits, items = apply_budget([commit_entry], [issue_item], 0)
        assert commits[0].message == commit_entry.message
        assert items[0].body == issue_item.body
