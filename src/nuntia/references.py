"""Reference extraction from commit messages and issue text.

Turns free-form text into typed references (commit / issue / pull) that the
context builder can follow. Everything here is pure: no I/O, no state.

Recognized forms, applied in this order:
1. https://github.com/owner/repo/issues/N and .../pull/N
2. https://github.com/owner/repo/commit/<sha>
3. owner/repo#N
4. #N (not when glued to a word or path, so owner/repo#N is not re-read)
5. bare 7-40 character hex words with at least one a-f letter, looked for
   only after commit URLs have been blanked out

Matching is a heuristic. Code blocks and quotes are not excluded, and a hex
word that happens not to be a commit will still be picked up; resolution
failures for those are handled by the context builder.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from nuntia.schemas import Reference, ReferenceSummary, ReferenceType

ISSUE_URL = re.compile(
    r"https?://github\.com/([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)/(issues|pull)/([0-9]+)",
    re.IGNORECASE | re.ASCII,
)
COMMIT_URL = re.compile(
    r"https?://github\.com/([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)/commit/([a-f0-9]{7,40})",
    re.IGNORECASE | re.ASCII,
)
CROSS_REPO_ISSUE = re.compile(r"\b([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)#([0-9]+)\b", re.ASCII)
SHORT_ISSUE = re.compile(r"(?<![A-Za-z0-9_/])#([0-9]+)\b", re.ASCII)
COMMIT_SHA = re.compile(r"\b[a-f0-9]{7,40}\b", re.IGNORECASE | re.ASCII)
HEX_LETTER = re.compile(r"[a-f]", re.IGNORECASE)

MARKDOWN_COMMENT = re.compile(r"<!--.*?-->", re.DOTALL)
CO_AUTHORED_BY = re.compile(r"^[ \t]*Co-authored-by:.*(?:\r?\n)?", re.IGNORECASE | re.MULTILINE)


def _normalize_sha(sha: str) -> str:
    return sha.strip().lower()


def reference_key(ref: Reference) -> str:
    """Identity key of a reference, e.g. ``issue:acme/widgets#12``."""
    ref_id = _normalize_sha(ref.id) if ref.type == ReferenceType.COMMIT else ref.id
    return f"{ref.type.value}:{ref.owner}/{ref.repo}#{ref_id}"


def extract_references(
    text: str | None,
    default_owner: str,
    default_repo: str,
) -> list[Reference]:
    """Extract unique references from text, in first-seen order.

    Args:
        text: Commit message or issue/pull title and body
        default_owner: Owner used for same-repo shorthand (#N, bare shas)
        default_repo: Repository used for same-repo shorthand

    Returns:
        References de-duplicated by identity key, first occurrence kept
    """
    refs: list[Reference] = []
    seen: set[str] = set()

    def add(ref: Reference) -> None:
        key = reference_key(ref)
        if key in seen:
            return
        seen.add(key)
        refs.append(ref)

    if not text:
        return refs

    for owner, repo, kind, number in ISSUE_URL.findall(text):
        ref_type = ReferenceType.PULL if kind.lower() == "pull" else ReferenceType.ISSUE
        add(Reference(type=ref_type, owner=owner, repo=repo, id=number))

    for owner, repo, sha in COMMIT_URL.findall(text):
        add(Reference(type=ReferenceType.COMMIT, owner=owner, repo=repo, id=_normalize_sha(sha)))

    for owner, repo, number in CROSS_REPO_ISSUE.findall(text):
        add(Reference(type=ReferenceType.ISSUE, owner=owner, repo=repo, id=number))

    for number in SHORT_ISSUE.findall(text):
        add(Reference(type=ReferenceType.ISSUE, owner=default_owner, repo=default_repo, id=number))

    # A sha inside a commit URL was already counted above.
    scrubbed = COMMIT_URL.sub(" ", text)
    for match in COMMIT_SHA.finditer(scrubbed):
        sha = _normalize_sha(match.group(0))
        if not HEX_LETTER.search(sha):
            continue
        add(Reference(type=ReferenceType.COMMIT, owner=default_owner, repo=default_repo, id=sha))

    return refs


def summarize_references(references: Iterable[Reference]) -> ReferenceSummary:
    """Group references into distinct issue numbers, pull numbers and shas."""
    issues: dict[int, None] = {}
    pulls: dict[int, None] = {}
    commits: dict[str, None] = {}

    for ref in references:
        if ref.type == ReferenceType.COMMIT:
            commits[ref.id] = None
        elif ref.type == ReferenceType.PULL:
            pulls[int(ref.id)] = None
        else:
            issues[int(ref.id)] = None

    return ReferenceSummary(
        issues=list(issues),
        pulls=list(pulls),
        commits=list(commits),
    )


def normalize_commit_reference(ref: Reference, known_commits: Iterable[str]) -> Reference:
    """Expand an abbreviated commit reference to a known full sha.

    Non-commit references are returned unchanged. Commit ids are lowercased
    whether or not a known sha matches.
    """
    if ref.type != ReferenceType.COMMIT:
        return ref
    normalized = ref.id.lower()
    for sha in known_commits:
        if sha.startswith(normalized):
            return ref.model_copy(update={"id": sha})
    if normalized == ref.id:
        return ref
    return ref.model_copy(update={"id": normalized})


def format_source(ref: Reference) -> str:
    """Provenance label for an entity: ``commit:abc1234``, ``pull:#5``, ``issue:#7``."""
    if ref.type == ReferenceType.COMMIT:
        return f"commit:{ref.id[:7]}"
    if ref.type == ReferenceType.PULL:
        return f"pull:#{ref.id}"
    return f"issue:#{ref.id}"


# ---------------------------------------------------------------------------
# Text sanitizers
# ---------------------------------------------------------------------------


def strip_markdown_comments(text: str) -> str:
    """Remove ``<!-- ... -->`` blocks, e.g. unfilled PR template hints."""
    if not text:
        return text
    return MARKDOWN_COMMENT.sub("", text)


def strip_co_authored_by(text: str) -> str:
    """Remove ``Co-authored-by:`` trailer lines."""
    if not text:
        return text
    return CO_AUTHORED_BY.sub("", text)


def sanitize_commit_message(message: str) -> str:
    return strip_co_authored_by(strip_markdown_comments(message))


def sanitize_linked_text(text: str) -> str:
    return strip_markdown_comments(text)
