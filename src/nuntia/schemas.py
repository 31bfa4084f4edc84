"""Pydantic models for the release context and its building blocks.

These schemas are the single source of truth for what flows between the
source provider, the context builder and the text-generation step:
- Source provider results (CommitDetails, IssueOrPullDetails, CompareResult)
- Crawl building blocks (Reference, ReferenceSummary)
- The assembled ReleaseContext handed to the LLM

Key design decisions:
- Everything that ends up in the LLM payload serializes with camelCase
  aliases (referencedBy, generatedAt, ...). Downstream prompts and stored
  contexts rely on those names, so treat them as a wire contract.
- Python code uses snake_case attribute names; both spellings are accepted
  on input.
- Unset optional fields are dropped from the payload (exclude_none).
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict using the wire field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# References
# ---------------------------------------------------------------------------


class ReferenceType(StrEnum):
    """Kind of entity a reference points at."""

    COMMIT = "commit"
    ISSUE = "issue"
    PULL = "pull"


class Reference(BaseModel):
    """A typed pointer to a commit, issue or pull request.

    Attributes:
        type: What kind of entity this points at
        owner: Repository owner (user or organization)
        repo: Repository name
        id: Commit sha (possibly abbreviated) or issue/pull number as text
    """

    model_config = ConfigDict(frozen=True)

    type: ReferenceType
    owner: str
    repo: str
    id: str


class ReferenceSummary(CamelModel):
    """Distinct references found in one commit message or issue text."""

    issues: list[int] = Field(default_factory=list)
    pulls: list[int] = Field(default_factory=list)
    commits: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Source provider results
# ---------------------------------------------------------------------------


class CommitDetails(CamelModel):
    """A commit as returned by the source provider."""

    sha: str
    message: str = ""
    url: str = ""
    author: str = "unknown"
    date: str = ""


class IssueOrPullDetails(CamelModel):
    """An issue or pull request as returned by the source provider.

    GitHub serves pull requests through the issues endpoint too; ``kind``
    tells the two apart.
    """

    number: int
    title: str = ""
    body: str = ""
    url: str = ""
    state: str = "open"
    kind: Literal["issue", "pull"] = "issue"
    owner: str
    repo: str


class CompareResult(CamelModel):
    """Commits between two refs, oldest first, excluding the base commit."""

    commits: list[CommitDetails] = Field(default_factory=list)
    status: str | None = None
    total_commits: int | None = None


# ---------------------------------------------------------------------------
# Release context
# ---------------------------------------------------------------------------


class CommitEntry(CamelModel):
    """One commit of the requested range."""

    sha: str
    message: str
    url: str
    author: str
    date: str
    references: ReferenceSummary = Field(default_factory=ReferenceSummary)


class LinkedItem(CamelModel):
    """An issue, pull request or commit reached by following references.

    Attributes:
        referenced_by: Provenance labels (e.g. "commit:abc1234", "issue:#12")
            of every entity whose text pointed here, in first-seen order
        references: What this item's own text references
    """

    type: ReferenceType
    owner: str
    repo: str
    id: str
    title: str | None = None
    body: str | None = None
    message: str | None = None
    url: str | None = None
    state: str | None = None
    referenced_by: list[str] = Field(default_factory=list)
    references: ReferenceSummary | None = None

    def add_source(self, source: str) -> None:
        """Record another provenance label, ignoring repeats."""
        if source not in self.referenced_by:
            self.referenced_by.append(source)


class ContextInputs(CamelModel):
    """Echo of the inputs the context was built with."""

    base_commit: str
    head_commit: str
    branch: str
    prompt_url: str
    model: str
    temperature: float
    max_linked_items: int
    max_reference_depth: int
    max_item_length: int


class RepositoryInfo(CamelModel):
    owner: str
    repo: str
    branch: str


class RangeInfo(CamelModel):
    """The resolved commit range."""

    base: str
    head: str
    status: str | None = None
    total_commits: int = Field(..., ge=0, description="Resolved commit entries")


class ReleaseContext(CamelModel):
    """Everything the text-generation step gets to see about a release."""

    generated_at: str
    inputs: ContextInputs
    repository: RepositoryInfo
    range: RangeInfo
    commits: list[CommitEntry] = Field(default_factory=list)
    linked_items: list[LinkedItem] = Field(default_factory=list)

    def to_json(self, indent: int | None = 2) -> str:
        """Serialize to the JSON payload consumed by the prompt builder."""
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class ReleaseNotesResult(CamelModel):
    """Outcome of a full release notes run."""

    text: str = Field(..., min_length=1, description="Generated release notes")
    input_tokens: int = Field(0, ge=0)
    output_tokens: int = Field(0, ge=0)
    output_path: str | None = None
    commit_count: int = Field(0, ge=0)
    linked_item_count: int = Field(0, ge=0)
