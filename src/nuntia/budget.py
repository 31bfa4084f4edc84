"""Text length budgets for the release context.

Issue bodies and commit messages can be arbitrarily long, and the context
ends up inside an LLM prompt. Every text field is cut down to a per-item
character budget once the crawl is done.

A budget of 0 or less disables truncation.
"""

from __future__ import annotations

from collections.abc import Iterable

from nuntia.schemas import CommitEntry, LinkedItem

ELLIPSIS = "..."
TITLE_BODY_SEPARATOR = "\n\n"


def truncate_text(text: str, max_length: int) -> str:
    """Cut text to at most max_length characters, marking the cut with '...'.

    Budgets of 3 or less are hard cuts with no ellipsis.
    """
    if max_length <= 0 or len(text) <= max_length:
        return text
    if max_length <= len(ELLIPSIS):
        return text[:max_length]
    return text[: max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS


def apply_title_body_limit(
    title: str | None,
    body: str | None,
    max_length: int,
) -> tuple[str | None, str | None]:
    """Fit an issue/pull title and body into one budget.

    The title wins: it is kept whole whenever it fits, and the body gets
    whatever is left after the title and the blank line separating them.

    Returns:
        (title, body), either of which may be None when dropped or absent
    """
    if max_length <= 0:
        return title, body

    has_title = bool(title)
    has_body = bool(body)
    safe_title = title or ""
    safe_body = body or ""
    separator = len(TITLE_BODY_SEPARATOR) if has_title and has_body else 0

    if len(safe_title) + separator + len(safe_body) <= max_length:
        return (safe_title if has_title else None, safe_body if has_body else None)

    if not has_title:
        trimmed = truncate_text(safe_body, max_length) if has_body else ""
        return None, trimmed or None

    if len(safe_title) >= max_length:
        return truncate_text(safe_title, max_length), None

    remaining = max(0, max_length - len(safe_title) - separator)
    trimmed = truncate_text(safe_body, remaining) if has_body and remaining > 0 else ""
    return safe_title, trimmed or None


def apply_budget(
    commits: Iterable[CommitEntry],
    linked_items: Iterable[LinkedItem],
    max_length: int,
) -> tuple[list[CommitEntry], list[LinkedItem]]:
    """Return truncated copies of every commit entry and linked item."""
    trimmed_commits = [
        commit.model_copy(update={"message": truncate_text(commit.message, max_length)})
        for commit in commits
    ]

    trimmed_items: list[LinkedItem] = []
    for item in linked_items:
        update: dict[str, str | None] = {}
        if item.message:
            update["message"] = truncate_text(item.message, max_length)
        if item.title or item.body:
            update["title"], update["body"] = apply_title_body_limit(
                item.title, item.body, max_length
            )
        trimmed = item.model_copy(update=update, deep=True)
        trimmed_items.append(trimmed)

    return trimmed_commits, trimmed_items
