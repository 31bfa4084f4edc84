"""Tests for the Pydantic schemas and run configuration.

These tests verify that:
- The release context serializes with its camelCase wire names
- Linked items keep provenance free of duplicates
- RangeConfig validates traversal budgets
- Environment loading follows the action input conventions

Run with: pytest tests/test_schemas.py -v
"""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from nuntia.config import (
    DEFAULT_MAX_ITEM_LENGTH,
    DEFAULT_MAX_LINKED_ITEMS,
    DEFAULT_MAX_REFERENCE_DEPTH,
    DEFAULT_PROMPT_URL,
    RangeConfig,
    config_from_env,
    get_input,
    parse_count,
    parse_number,
    resolve_repository,
)
from nuntia.schemas import (
    CompareResult,
    LinkedItem,
    RangeInfo,
    Reference,
    ReferenceSummary,
    ReferenceType,
    ReleaseContext,
    RepositoryInfo,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def config() -> RangeConfig:
    return RangeConfig(
        owner="acme",
        repo="widgets",
        base_commit="a1b2c3d",
        head_commit="d4e5f6a",
        branch="main",
    )


@pytest.fixture
def env() -> dict[str, str]:
    """Environment as seen inside a GitHub Actions step."""
    return {
        "GITHUB_REPOSITORY": "acme/widgets",
        "INPUT_BASE-COMMIT": "a1b2c3d",
        "INPUT_HEAD-COMMIT": "d4e5f6a",
        "INPUT_BRANCH": "main",
        "INPUT_MODEL": "gpt-4o-mini",
        "INPUT_TEMPERATURE": "0.7",
        "INPUT_MAX-LINKED-ITEMS": "25",
        "INPUT_MAX-REFERENCE-DEPTH": "3",
        "INPUT_MAX-ITEM-LENGTH": "1500",
    }


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class TestReference:
    def test_reference_is_frozen(self) -> None:
        ref = Reference(type="issue", owner="acme", repo="widgets", id="1")
        assert ref.type == ReferenceType.ISSUE
        with pytest.raises(ValidationError):
            ref.id = "2"

    def test_invalid_type_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Reference(type="discussion", owner="acme", repo="widgets", id="1")


class TestLinkedItem:
    def test_add_source_ignores_repeats(self) -> None:
        item = LinkedItem(
            type=ReferenceType.ISSUE,
            owner="acme",
            repo="widgets",
            id="1",
            referenced_by=["commit:aaaaaaa"],
        )
        item.add_source("issue:#2")
        item.add_source("commit:aaaaaaa")
        item.add_source("issue:#2")
        assert item.referenced_by == ["commit:aaaaaaa", "issue:#2"]

    def test_accepts_camel_case_input(self) -> None:
        item = LinkedItem.model_validate(
            {"type": "pull", "owner": "acme", "repo": "widgets", "id": "9", "referencedBy": ["x"]}
        )
        assert item.referenced_by == ["x"]

    def test_payload_drops_unset_fields(self) -> None:
        item = LinkedItem(type=ReferenceType.COMMIT, owner="acme", repo="widgets", id="abc1234")
        assert item.to_payload() == {
            "type": "commit",
            "owner": "acme",
            "repo": "widgets",
            "id": "abc1234",
            "referencedBy": [],
        }


class TestReleaseContext:
    def test_to_json_uses_camel_case(self, config: RangeConfig) -> None:
        context = ReleaseContext(
            generated_at="2024-01-01T00:00:00.000Z",
            inputs=config.to_inputs(),
            repository=RepositoryInfo(owner="acme", repo="widgets", branch="main"),
            range=RangeInfo(base="a1b2c3d", head="d4e5f6a", total_commits=1),
        )
        data = json.loads(context.to_json())
        assert data["generatedAt"] == "2024-01-01T00:00:00.000Z"
        assert data["range"] == {"base": "a1b2c3d", "head": "d4e5f6a", "totalCommits": 1}
        assert data["inputs"]["maxReferenceDepth"] == DEFAULT_MAX_REFERENCE_DEPTH
        assert data["inputs"]["promptUrl"] == DEFAULT_PROMPT_URL
        assert data["linkedItems"] == []

    def test_negative_commit_count_rejected(self) -> None:
        with pytest.raises(ValidationError):
            RangeInfo(base="a", head="b", total_commits=-1)

    def test_compare_result_defaults(self) -> None:
        result = CompareResult()
        assert result.commits == []
        assert result.status is None
        assert result.total_commits is None

    def test_reference_summary_defaults(self) -> None:
        assert ReferenceSummary().to_payload() == {"issues": [], "pulls": [], "commits": []}


# ---------------------------------------------------------------------------
# RangeConfig
# ---------------------------------------------------------------------------


class TestRangeConfig:
    def test_defaults(self, config: RangeConfig) -> None:
        assert config.max_linked_items == DEFAULT_MAX_LINKED_ITEMS
        assert config.max_reference_depth == DEFAULT_MAX_REFERENCE_DEPTH
        assert config.max_item_length == DEFAULT_MAX_ITEM_LENGTH
        assert config.full_name == "acme/widgets"

    def test_camel_case_input(self) -> None:
        config = RangeConfig.model_validate(
            {
                "owner": "acme",
                "repo": "widgets",
                "baseCommit": "a1b2c3d",
                "headCommit": "d4e5f6a",
                "maxLinkedItems": 5,
            }
        )
        assert config.base_commit == "a1b2c3d"
        assert config.max_linked_items == 5

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_linked_items": -1},
            {"max_reference_depth": -1},
            {"temperature": 3.0},
            {"base_commit": ""},
            {"owner": ""},
        ],
    )
    def test_invalid_values_rejected(self, overrides: dict) -> None:
        values = {"owner": "acme", "repo": "widgets", "base_commit": "a", "head_commit": "b"}
        values.update(overrides)
        with pytest.raises(ValidationError):
            RangeConfig(**values)

    def test_non_positive_item_length_allowed(self) -> None:
        config = RangeConfig(
            owner="acme", repo="widgets", base_commit="a", head_commit="b", max_item_length=0
        )
        assert config.max_item_length == 0

    def test_inputs_echo(self, config: RangeConfig) -> None:
        inputs = config.to_inputs()
        assert inputs.base_commit == "a1b2c3d"
        assert inputs.head_commit == "d4e5f6a"
        assert inputs.model == config.model
        assert inputs.temperature == config.temperature


# ---------------------------------------------------------------------------
# Environment loading
# ---------------------------------------------------------------------------


class TestConfigFromEnv:
    def test_action_inputs(self, env: dict[str, str]) -> None:
        config = config_from_env(env)
        assert (config.owner, config.repo) == ("acme", "widgets")
        assert config.base_commit == "a1b2c3d"
        assert config.head_commit == "d4e5f6a"
        assert config.branch == "main"
        assert config.model == "gpt-4o-mini"
        assert config.temperature == 0.7
        assert config.max_linked_items == 25
        assert config.max_reference_depth == 3
        assert config.max_item_length == 1500

    def test_local_names_win(self, env: dict[str, str]) -> None:
        env["NUNTIA_BASE_COMMIT"] = "fedcba9"
        assert config_from_env(env).base_commit == "fedcba9"

    def test_explicit_overrides_win(self, env: dict[str, str]) -> None:
        config = config_from_env(env, repository="other/lib", head_commit="v2.0.0", model="o1")
        assert (config.owner, config.repo) == ("other", "lib")
        assert config.head_commit == "v2.0.0"
        assert config.model == "o1"

    def test_missing_base_commit(self, env: dict[str, str]) -> None:
        del env["INPUT_BASE-COMMIT"]
        with pytest.raises(ValueError, match="base-commit"):
            config_from_env(env)

    def test_branch_falls_back_to_ref_name(self, env: dict[str, str]) -> None:
        del env["INPUT_BRANCH"]
        env["GITHUB_REF_NAME"] = "release/1.x"
        assert config_from_env(env).branch == "release/1.x"

    def test_bad_numbers_fall_back(self, env: dict[str, str]) -> None:
        env["INPUT_MAX-LINKED-ITEMS"] = "lots"
        env["INPUT_TEMPERATURE"] = ""
        config = config_from_env(env)
        assert config.max_linked_items == DEFAULT_MAX_LINKED_ITEMS
        assert config.temperature == 1.0

    def test_negative_counts_floor_at_zero(self, env: dict[str, str]) -> None:
        env["INPUT_MAX-REFERENCE-DEPTH"] = "-4"
        assert config_from_env(env).max_reference_depth == 0

    def test_get_input_strips(self) -> None:
        assert get_input("branch", {"INPUT_BRANCH": "  main \n"}) == "main"
        assert get_input("branch", {}) == ""


class TestParsing:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("2.5", 2.5), ("abc", 7.0), (None, 7.0), ("", 7.0), ("inf", 7.0), ("nan", 7.0)],
    )
    def test_parse_number(self, value: str | None, expected: float) -> None:
        assert parse_number(value, 7.0) == expected

    @pytest.mark.parametrize(("value", "expected"), [("2.7", 2), ("-3", 0), ("x", 10)])
    def test_parse_count(self, value: str, expected: int) -> None:
        assert parse_count(value, 10) == expected

    def test_resolve_repository(self) -> None:
        assert resolve_repository("acme/widgets", {}) == ("acme", "widgets")
        assert resolve_repository(None, {"GITHUB_REPOSITORY": "o/r"}) == ("o", "r")

    @pytest.mark.parametrize("value", ["", "acme", "acme/", "/widgets"])
    def test_resolve_repository_rejects_incomplete(self, value: str) -> None:
        with pytest.raises(ValueError, match="owner/repo"):
            resolve_repository(value, {})
