"""GitHub source provider for commits, issues and pull requests.

The context builder never talks to GitHub directly. It asks a source
provider for three things:
- the commits between two refs (compare)
- a single commit by sha or abbreviated sha
- a single issue or pull request by number

Design notes:
- Uses httpx for async HTTP requests, one AsyncClient per call
- Follows Link header pagination for the compare endpoint
- Uses a Protocol so the builder doesn't depend on the concrete client
  (tests run against MockGitHubClient)
- Does not retry; a failed request raises httpx.HTTPStatusError and the
  caller decides whether that is fatal

GitHub API docs: https://docs.github.com/en/rest
"""

from __future__ import annotations

import os
from typing import Any, Protocol

import httpx

from nuntia.schemas import CommitDetails, CompareResult, IssueOrPullDetails

# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class SourceProviderProtocol(Protocol):
    """Interface the context builder uses to fetch source-control data.

    A provider is bound to one repository for range comparison, but commit
    and issue lookups may target any repository (cross-repo references).
    """

    @property
    def api_call_count(self) -> int:
        """Number of API requests made so far."""
        ...

    async def compare_range(self, base: str, head: str) -> CompareResult:
        """Fetch the commits after base up to and including head."""
        ...

    async def get_commit(self, owner: str, repo: str, ref: str) -> CommitDetails:
        """Fetch a commit by full or abbreviated sha."""
        ...

    async def get_issue_or_pull(
        self, owner: str, repo: str, number: int
    ) -> IssueOrPullDetails:
        """Fetch an issue or pull request by number."""
        ...


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class GitHubClient:
    """GitHub REST API source provider using httpx.

    Usage:
        client = GitHubClient("acme", "widgets", token="ghp_...")
        result = await client.compare_range("v1.0.0", "main")
    """

    BASE_URL = "https://api.github.com"
    PER_PAGE = 100

    def __init__(
        self,
        owner: str,
        repo: str,
        token: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            owner: Owner of the repository whose range is compared
            repo: Name of the repository whose range is compared
            token: GitHub token. Falls back to the GITHUB_TOKEN environment
                   variable if not provided.
            base_url: API root, for GitHub Enterprise installations
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.owner = owner
        self.repo = repo
        self._base_url = base_url or self.BASE_URL
        self._transport = transport
        self._token = token or os.environ.get("GITHUB_TOKEN", "")
        self._headers: dict[str, str] = {
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            self._headers["Authorization"] = f"Bearer {self._token}"
        self.api_call_count = 0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._headers,
            timeout=30.0,
            transport=self._transport,
        )

    async def _get(
        self,
        client: httpx.AsyncClient,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        self.api_call_count += 1
        resp = await client.get(url, params=params)
        resp.raise_for_status()
        return resp

    async def compare_range(self, base: str, head: str) -> CompareResult:
        """Fetch the commits between base and head.

        GET /repos/{owner}/{repo}/compare/{base}...{head}, following the
        Link header until every page of commits has been collected.

        Raises:
            httpx.HTTPStatusError: If any page fails to load
        """
        async with self._client() as client:
            resp = await self._get(
                client,
                f"/repos/{self.owner}/{self.repo}/compare/{base}...{head}",
                params={"per_page": self.PER_PAGE},
            )
            data = resp.json()
            commits_data: list[dict] = list(data.get("commits") or [])

            next_url = self._parse_next_link(resp.headers.get("link", ""))
            while next_url:
                resp = await self._get(client, next_url)
                commits_data.extend(resp.json().get("commits") or [])
                next_url = self._parse_next_link(resp.headers.get("link", ""))

        return CompareResult(
            commits=[self._map_commit(c) for c in commits_data],
            status=data.get("status"),
            total_commits=data.get("total_commits"),
        )

    async def get_commit(self, owner: str, repo: str, ref: str) -> CommitDetails:
        """Fetch a single commit.

        Raises:
            httpx.HTTPStatusError: If the commit does not exist or the call fails
        """
        async with self._client() as client:
            resp = await self._get(client, f"/repos/{owner}/{repo}/commits/{ref}")
            return self._map_commit(resp.json())

    async def get_issue_or_pull(
        self, owner: str, repo: str, number: int
    ) -> IssueOrPullDetails:
        """Fetch an issue or pull request through the issues endpoint.

        Raises:
            httpx.HTTPStatusError: If the issue does not exist or the call fails
        """
        async with self._client() as client:
            resp = await self._get(client, f"/repos/{owner}/{repo}/issues/{number}")
            data = resp.json()

        return IssueOrPullDetails(
            number=data["number"],
            title=data.get("title") or "",
            body=data.get("body") or "",
            url=data.get("html_url") or "",
            state=data.get("state") or "open",
            kind="pull" if data.get("pull_request") else "issue",
            owner=owner,
            repo=repo,
        )

    @staticmethod
    def _map_commit(data: dict) -> CommitDetails:
        """Flatten a GitHub commit payload."""
        commit = data.get("commit") or {}
        commit_author = commit.get("author") or {}
        committer = commit.get("committer") or {}
        author = commit_author.get("name") or (data.get("author") or {}).get("login")
        return CommitDetails(
            sha=data.get("sha") or "",
            message=commit.get("message") or "",
            url=data.get("html_url") or "",
            author=author or "unknown",
            date=commit_author.get("date") or committer.get("date") or "",
        )

    @staticmethod
    def _parse_next_link(link_header: str) -> str | None:
        """Extract the 'next' URL from a GitHub Link header."""
        if not link_header:
            return None
        for part in link_header.split(","):
            if 'rel="next"' in part:
                return part.split(";")[0].strip().strip("<>")
        return None


# ---------------------------------------------------------------------------
# Mock Implementation (for testing)
# ---------------------------------------------------------------------------


class MockGitHubClient:
    """In-memory source provider.

    Use this in tests and local development when you don't want to hit the
    real GitHub API. Commits are listed oldest first; the order defines what
    compare_range returns.

    Usage:
        client = MockGitHubClient(
            "acme", "widgets",
            commits=[{"sha": "a" * 40, "message": "Fixes #1"}],
            issues={"acme/widgets#1": {"title": "Crash on start"}},
        )
    """

    def __init__(
        self,
        owner: str = "acme",
        repo: str = "widgets",
        commits: list[dict] | None = None,
        issues: dict[str, dict] | None = None,
        compare_status: str | None = None,
        total_commits: int | None = None,
    ) -> None:
        """Initialize with predefined data.

        Args:
            owner: Owner of the compared repository
            repo: Name of the compared repository
            commits: Commit dicts (sha, message, ...). Entries may carry
                     "owner"/"repo" keys to live in another repository.
            issues: Issue dicts keyed by "owner/repo#number". A "kind" of
                    "pull" marks a pull request.
            compare_status: Status reported by compare_range
            total_commits: total_commits reported by compare_range
        """
        self.owner = owner
        self.repo = repo
        self._commits = [
            {"owner": owner, "repo": repo, **commit} for commit in commits or []
        ]
        self._issues = issues or {}
        self._compare_status = compare_status
        self._total_commits = total_commits
        self.calls: list[tuple] = []

    @property
    def api_call_count(self) -> int:
        return len(self.calls)

    def _details(self, commit: dict) -> CommitDetails:
        sha = commit["sha"]
        return CommitDetails(
            sha=sha,
            message=commit.get("message", ""),
            url=commit.get(
                "url", f"https://github.com/{commit['owner']}/{commit['repo']}/commit/{sha}"
            ),
            author=commit.get("author", "mock-user"),
            date=commit.get("date", "2024-01-01T00:00:00Z"),
        )

    def _find_commit(self, owner: str, repo: str, ref: str) -> dict:
        prefix = ref.lower()
        for commit in self._commits:
            if (
                commit["owner"] == owner
                and commit["repo"] == repo
                and commit["sha"].lower().startswith(prefix)
            ):
                return commit
        raise KeyError(f"No commit {ref} in {owner}/{repo}")

    async def compare_range(self, base: str, head: str) -> CompareResult:
        self.calls.append(("compare_range", base, head))
        base_commit = self._find_commit(self.owner, self.repo, base)
        head_commit = self._find_commit(self.owner, self.repo, head)
        local = [
            c for c in self._commits if c["owner"] == self.owner and c["repo"] == self.repo
        ]
        start = local.index(base_commit)
        end = local.index(head_commit)
        between = local[start + 1 : end + 1]
        status = self._compare_status or ("identical" if start == end else "ahead")
        return CompareResult(
            commits=[self._details(c) for c in between],
            status=status,
            total_commits=(
                self._total_commits if self._total_commits is not None else len(between)
            ),
        )

    async def get_commit(self, owner: str, repo: str, ref: str) -> CommitDetails:
        """Return a mock commit matching ref as a sha prefix.

        Raises:
            KeyError: If no commit matches
        """
        self.calls.append(("get_commit", owner, repo, ref))
        return self._details(self._find_commit(owner, repo, ref))

    async def get_issue_or_pull(
        self, owner: str, repo: str, number: int
    ) -> IssueOrPullDetails:
        """Return mock issue data.

        Raises:
            KeyError: If no issue exists under "owner/repo#number"
        """
        self.calls.append(("get_issue_or_pull", owner, repo, number))
        key = f"{owner}/{repo}#{number}"
        if key not in self._issues:
            raise KeyError(f"No issue {key}")
        data = self._issues[key]
        kind = data.get("kind", "issue")
        segment = "pull" if kind == "pull" else "issues"
        return IssueOrPullDetails(
            number=number,
            title=data.get("title", ""),
            body=data.get("body", ""),
            url=data.get("url", f"https://github.com/{owner}/{repo}/{segment}/{number}"),
            state=data.get("state", "open"),
            kind=kind,
            owner=owner,
            repo=repo,
        )
