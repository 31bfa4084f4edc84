"""Release context builder.

Starting from the commits of a range, the builder follows every reference
it can find (issues, pull requests, other commits), resolving each one
through the source provider and reading its text for further references.

The crawl is breadth-first and bounded three ways:
- depth: how many hops from a range commit a reference may be
- count: how many linked items may be resolved in total
- length: every text field is trimmed to a character budget at the end

Each build owns its own traversal state. The work queue is an append-only
list read through a cursor, so entries skipped for depth never hide the
entries appended after them. Linked items are keyed by reference identity;
seeing an item again only adds a provenance label to it.

A failure to resolve the range itself propagates to the caller. A failure
to resolve a single reference is logged and the reference is dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from nuntia.budget import apply_budget
from nuntia.config import RangeConfig
from nuntia.context.github import SourceProviderProtocol
from nuntia.logging_config import get_logger
from nuntia.references import (
    extract_references,
    format_source,
    normalize_commit_reference,
    reference_key,
    sanitize_commit_message,
    sanitize_linked_text,
    summarize_references,
)
from nuntia.schemas import (
    CommitDetails,
    CommitEntry,
    LinkedItem,
    RangeInfo,
    Reference,
    ReferenceType,
    ReleaseContext,
    RepositoryInfo,
)

logger = get_logger(__name__)


@dataclass
class WorkItem:
    """A reference waiting to be resolved."""

    ref: Reference
    depth: int
    source: str


@dataclass
class Diagnostic:
    """A reference that could not be resolved."""

    key: str
    source: str
    error: str


@dataclass
class _Resolved:
    item: LinkedItem
    refs: list[Reference]
    source: str


@dataclass
class _Traversal:
    """Mutable state of a single build. Never shared between builds."""

    provider: SourceProviderProtocol
    max_linked_items: int
    max_reference_depth: int
    seed_shas: set[str] = field(default_factory=set)
    # Insertion-ordered set; prefix expansion takes the first match.
    known_commits: dict[str, None] = field(default_factory=dict)
    queue: list[WorkItem] = field(default_factory=list)
    cursor: int = 0
    items: dict[str, LinkedItem] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    skipped_depth: int = 0

    @property
    def cap_reached(self) -> bool:
        return self.max_linked_items > 0 and len(self.items) >= self.max_linked_items

    def normalize(self, ref: Reference) -> Reference:
        return normalize_commit_reference(ref, self.known_commits)

    def extract(self, text: str, owner: str, repo: str) -> list[Reference]:
        return [self.normalize(ref) for ref in extract_references(text, owner, repo)]

    def enqueue(self, refs: list[Reference], depth: int, source: str) -> None:
        self.queue.extend(WorkItem(ref=ref, depth=depth, source=source) for ref in refs)

    def lookup(self, key: str) -> LinkedItem | None:
        return self.items.get(self.aliases.get(key, key))

    def seed(self, commits: list[CommitDetails], owner: str, repo: str) -> list[CommitEntry]:
        """Turn range commits into entries and queue their references at depth 1."""
        for commit in commits:
            sha = commit.sha.lower()
            self.seed_shas.add(sha)
            self.known_commits[sha] = None

        entries: list[CommitEntry] = []
        for commit in commits:
            message = sanitize_commit_message(commit.message)
            refs = self.extract(message, owner, repo)
            entries.append(
                CommitEntry(
                    sha=commit.sha,
                    message=message,
                    url=commit.url,
                    author=commit.author,
                    date=commit.date,
                    references=summarize_references(refs),
                )
            )
            self.enqueue(refs, 1, f"commit:{commit.sha[:7]}")
        return entries

    async def drain(self) -> None:
        """Resolve queued references until the queue or the item cap runs out."""
        while self.cursor < len(self.queue) and not self.cap_reached:
            work = self.queue[self.cursor]
            self.cursor += 1
            if work.depth > self.max_reference_depth:
                self.skipped_depth += 1
                continue

            ref = self.normalize(work.ref)
            key = reference_key(ref)
            existing = self.lookup(key)
            if existing is not None:
                existing.add_source(work.source)
                continue

            if ref.type == ReferenceType.COMMIT and ref.id in self.seed_shas:
                continue

            try:
                if ref.type == ReferenceType.COMMIT:
                    resolved = await self._resolve_commit(ref, key, work.source)
                else:
                    resolved = await self._resolve_issue(ref, key, work.source)
            except Exception as e:
                self.diagnostics.append(Diagnostic(key=key, source=work.source, error=str(e)))
                logger.warning(
                    "reference_resolution_failed",
                    reference=key,
                    source=work.source,
                    error=str(e),
                )
                continue

            if resolved is not None and work.depth < self.max_reference_depth:
                self.enqueue(resolved.refs, work.depth + 1, resolved.source)

    async def _resolve_commit(self, ref: Reference, key: str, source: str) -> _Resolved | None:
        details = await self.provider.get_commit(ref.owner, ref.repo, ref.id)
        full_ref = ref.model_copy(update={"id": details.sha.lower()})
        full_key = reference_key(full_ref)

        # An abbreviated sha that only became known through this fetch.
        existing = self.lookup(full_key)
        if existing is not None:
            existing.add_source(source)
            self.aliases[key] = full_key
            return None

        self.known_commits[full_ref.id] = None
        message = sanitize_commit_message(details.message)
        refs = self.extract(message, ref.owner, ref.repo)
        self.items[full_key] = LinkedItem(
            type=ReferenceType.COMMIT,
            owner=ref.owner,
            repo=ref.repo,
            id=details.sha,
            message=message,
            url=details.url,
            referenced_by=[source],
            references=summarize_references(refs),
        )
        if key != full_key:
            self.aliases[key] = full_key
        return _Resolved(item=self.items[full_key], refs=refs, source=format_source(full_ref))

    async def _resolve_issue(self, ref: Reference, key: str, source: str) -> _Resolved:
        details = await self.provider.get_issue_or_pull(ref.owner, ref.repo, int(ref.id))
        kind = ReferenceType(details.kind)
        title = sanitize_linked_text(details.title or "")
        body = sanitize_linked_text(details.body or "")
        refs = self.extract(f"{title}\n\n{body}", ref.owner, ref.repo)

        item = LinkedItem(
            type=kind,
            owner=details.owner,
            repo=details.repo,
            id=str(details.number),
            title=title,
            body=body,
            url=details.url,
            state=details.state,
            referenced_by=[source],
            references=summarize_references(refs),
        )
        self.items[key] = item

        # Issues and pulls share one number space; "#12" and pull/12 are the same item.
        for alias_type in (ReferenceType.ISSUE, ReferenceType.PULL):
            alias_key = reference_key(ref.model_copy(update={"type": alias_type}))
            if alias_key != key:
                self.aliases[alias_key] = key
        resolved_ref = ref.model_copy(update={"type": kind})
        return _Resolved(
            item=item,
            refs=refs,
            source=format_source(resolved_ref.model_copy(update={"id": item.id})),
        )


class ContextBuilder:
    """Builds a ReleaseContext for a commit range.

    Usage:
        builder = ContextBuilder(GitHubClient("acme", "widgets"))
        context = await builder.build(config)
    """

    def __init__(self, provider: SourceProviderProtocol) -> None:
        """Initialize the builder.

        Args:
            provider: Source of commits, issues and pull requests
        """
        self.provider = provider

    async def build(self, config: RangeConfig) -> ReleaseContext:
        """Crawl the range and its references into a ReleaseContext.

        Args:
            config: Repository, range and traversal budgets

        Returns:
            The assembled, length-budgeted context

        Raises:
            Exception: Whatever the provider raises while resolving the range
        """
        context, _ = await self.build_with_diagnostics(config)
        return context

    async def build_with_diagnostics(
        self, config: RangeConfig
    ) -> tuple[ReleaseContext, list[Diagnostic]]:
        """Like build(), also returning the references that failed to resolve."""
        logger.info(
            "context_build_started",
            repo=config.full_name,
            base=config.base_commit,
            head=config.head_commit,
            branch=config.branch,
            max_linked_items=config.max_linked_items,
            max_reference_depth=config.max_reference_depth,
        )

        compare = await self.provider.compare_range(config.base_commit, config.head_commit)
        base_commit = await self.provider.get_commit(config.owner, config.repo, config.base_commit)
        if config.base_commit == config.head_commit:
            commits = [base_commit]
        else:
            commits = [base_commit, *compare.commits]

        if compare.total_commits is not None and compare.total_commits + 1 > len(commits):
            logger.warning(
                "compare_truncated",
                returned=len(commits),
                total_commits=compare.total_commits,
            )

        traversal = _Traversal(
            provider=self.provider,
            max_linked_items=config.max_linked_items,
            max_reference_depth=config.max_reference_depth,
        )
        entries = traversal.seed(commits, config.owner, config.repo)
        await traversal.drain()

        trimmed_commits, trimmed_items = apply_budget(
            entries, traversal.items.values(), config.max_item_length
        )

        context = ReleaseContext(
            generated_at=datetime.now(UTC).isoformat(timespec="milliseconds").replace(
                "+00:00", "Z"
            ),
            inputs=config.to_inputs(),
            repository=RepositoryInfo(owner=config.owner, repo=config.repo, branch=config.branch),
            range=RangeInfo(
                base=config.base_commit,
                head=config.head_commit,
                status=compare.status,
                total_commits=len(trimmed_commits),
            ),
            commits=trimmed_commits,
            linked_items=trimmed_items,
        )

        logger.info(
            "context_build_complete",
            repo=config.full_name,
            commits=len(context.commits),
            linked_items=len(context.linked_items),
            queued=len(traversal.queue),
            unvisited=len(traversal.queue) - traversal.cursor,
            skipped_depth=traversal.skipped_depth,
            failed=len(traversal.diagnostics),
            api_calls=self.provider.api_call_count,
        )
        return context, traversal.diagnostics


async def build_release_context(
    config: RangeConfig, provider: SourceProviderProtocol
) -> ReleaseContext:
    """Convenience wrapper around ContextBuilder(provider).build(config)."""
    return await ContextBuilder(provider).build(config)
