"""Run configuration for a context build.

RangeConfig is what the context builder consumes. It can be built directly
(API requests, tests) or from the environment, which is how Nuntia runs
inside a GitHub Actions job:

- action inputs arrive as INPUT_<NAME> variables (INPUT_BASE-COMMIT, ...)
- the same inputs can be given locally as NUNTIA_<NAME> (NUNTIA_BASE_COMMIT)
- the repository comes from GITHUB_REPOSITORY ("owner/repo")

Credentials are not part of the config: the GitHub client reads
GITHUB_TOKEN and the OpenAI SDK reads OPENAI_API_KEY.
"""

from __future__ import annotations

import math
import os
from collections.abc import Mapping

from pydantic import Field

from nuntia.schemas import CamelModel, ContextInputs

DEFAULT_PROMPT_URL = ".github/Nuntia.prompt"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_TEMPERATURE = 1.0
DEFAULT_MAX_LINKED_ITEMS = 100
DEFAULT_MAX_REFERENCE_DEPTH = 2
DEFAULT_MAX_ITEM_LENGTH = 4000


class RangeConfig(CamelModel):
    """Inputs for one context build.

    Attributes:
        owner: Repository owner
        repo: Repository name
        base_commit: First commit of the range (included in the context)
        head_commit: Last commit of the range
        branch: Branch the range lives on (informational)
        prompt_url: Where the base prompt comes from (URL or file path)
        model: LLM model name, echoed into the context
        temperature: Sampling temperature, echoed into the context
        max_linked_items: Cap on resolved linked items (0 = unlimited)
        max_reference_depth: How many reference hops to follow from a commit
        max_item_length: Per-item text budget in characters (<= 0 disables)
    """

    owner: str = Field(..., min_length=1)
    repo: str = Field(..., min_length=1)
    base_commit: str = Field(..., min_length=1)
    head_commit: str = Field(..., min_length=1)
    branch: str = ""
    prompt_url: str = DEFAULT_PROMPT_URL
    model: str = DEFAULT_MODEL
    temperature: float = Field(DEFAULT_TEMPERATURE, ge=0.0, le=2.0)
    max_linked_items: int = Field(DEFAULT_MAX_LINKED_ITEMS, ge=0)
    max_reference_depth: int = Field(DEFAULT_MAX_REFERENCE_DEPTH, ge=0)
    max_item_length: int = DEFAULT_MAX_ITEM_LENGTH

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def to_inputs(self) -> ContextInputs:
        """Echo of this config as it appears in the release context."""
        return ContextInputs(
            base_commit=self.base_commit,
            head_commit=self.head_commit,
            branch=self.branch,
            prompt_url=self.prompt_url,
            model=self.model,
            temperature=self.temperature,
            max_linked_items=self.max_linked_items,
            max_reference_depth=self.max_reference_depth,
            max_item_length=self.max_item_length,
        )


# ---------------------------------------------------------------------------
# Environment loading
# ---------------------------------------------------------------------------


def get_input(name: str, env: Mapping[str, str] | None = None) -> str:
    """Read an input by its action name (e.g. "base-commit").

    NUNTIA_BASE_COMMIT wins over INPUT_BASE-COMMIT.
    """
    environ = os.environ if env is None else env
    local_name = "NUNTIA_" + name.upper().replace("-", "_")
    value = environ.get(local_name) or environ.get(f"INPUT_{name.upper()}") or ""
    return value.strip()


def parse_number(value: str | None, fallback: float) -> float:
    """Parse a numeric input, falling back on anything unparseable."""
    if value is None or not str(value).strip():
        return fallback
    try:
        number = float(value)
    except ValueError:
        return fallback
    return number if math.isfinite(number) else fallback


def parse_count(value: str | None, fallback: int) -> int:
    """Parse a non-negative integer input (floored, clamped at 0)."""
    return max(0, math.floor(parse_number(value, fallback)))


def resolve_repository(
    explicit: str | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[str, str]:
    """Resolve (owner, repo) from an "owner/repo" argument or GITHUB_REPOSITORY.

    Raises:
        ValueError: If neither source holds an "owner/repo" value
    """
    environ = os.environ if env is None else env
    candidate = explicit or environ.get("GITHUB_REPOSITORY", "")
    owner, _, repo = candidate.strip().partition("/")
    if not owner or not repo:
        raise ValueError(
            "Failed to resolve repository (owner/repo). Pass --repo owner/name "
            "or set GITHUB_REPOSITORY."
        )
    return owner, repo


def _require(name: str, value: str | None) -> str:
    if not value:
        raise ValueError(f"Missing required input: {name}.")
    return value


def config_from_env(
    env: Mapping[str, str] | None = None,
    *,
    repository: str | None = None,
    base_commit: str | None = None,
    head_commit: str | None = None,
    branch: str | None = None,
    prompt_url: str | None = None,
    model: str | None = None,
) -> RangeConfig:
    """Build a RangeConfig from the environment, with explicit overrides.

    Keyword arguments (typically CLI flags) take precedence over the
    environment when they are not None.

    Raises:
        ValueError: If the repository, base commit or head commit is missing
    """
    environ = os.environ if env is None else env
    owner, repo = resolve_repository(repository, environ)

    return RangeConfig(
        owner=owner,
        repo=repo,
        base_commit=_require("base-commit", base_commit or get_input("base-commit", environ)),
        head_commit=_require("head-commit", head_commit or get_input("head-commit", environ)),
        branch=branch or get_input("branch", environ) or environ.get("GITHUB_REF_NAME", ""),
        prompt_url=prompt_url or get_input("prompt-url", environ) or DEFAULT_PROMPT_URL,
        model=model or get_input("model", environ) or DEFAULT_MODEL,
        temperature=parse_number(get_input("temperature", environ), DEFAULT_TEMPERATURE),
        max_linked_items=parse_count(
            get_input("max-linked-items", environ), DEFAULT_MAX_LINKED_ITEMS
        ),
        max_reference_depth=parse_count(
            get_input("max-reference-depth", environ), DEFAULT_MAX_REFERENCE_DEPTH
        ),
        max_item_length=math.floor(
            parse_number(get_input("max-item-length", environ), DEFAULT_MAX_ITEM_LENGTH)
        ),
    )
