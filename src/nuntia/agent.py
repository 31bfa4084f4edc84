"""Release notes agent and CLI entry point.

This module ties together all the components:
- Context building (context/builder.py)
- Prompt building (prompts/release_notes.py)
- LLM interaction (llm.py)
- Output storage (storage.py)

The agent follows this flow:
1. Build the release context for the configured range
2. Build prompts from the project's base prompt and the context
3. Call the LLM to draft release notes
4. Write the notes to a file and publish action outputs
"""

from __future__ import annotations

import argparse
import asyncio
import sys

from nuntia.config import RangeConfig, config_from_env
from nuntia.context.builder import ContextBuilder
from nuntia.context.github import GitHubClient, SourceProviderProtocol
from nuntia.llm import LLMClient, LLMConfig
from nuntia.logging_config import get_logger, setup_logging
from nuntia.prompts.release_notes import build_prompt, load_base_prompt
from nuntia.schemas import ReleaseNotesResult
from nuntia.storage import set_action_output, write_text_file

logger = get_logger(__name__)

DEFAULT_OUTPUT_PATH = "artifacts/nuntia-release-notes.md"


class ReleaseNotesAgent:
    """Orchestrates the release notes pipeline.

    Each call to run() builds its own context; the agent holds no per-run
    state.

    Usage:
        agent = ReleaseNotesAgent(GitHubClient("acme", "widgets"))
        result = await agent.run(config, base_prompt)
    """

    def __init__(
        self,
        provider: SourceProviderProtocol,
        llm_config: LLMConfig | None = None,
    ) -> None:
        """Initialize the agent with its dependencies.

        Args:
            provider: Source of commits, issues and pull requests
            llm_config: Configuration for the LLM client. Uses defaults if None.
        """
        self.builder = ContextBuilder(provider)
        self.llm = LLMClient(config=llm_config)

    async def run(
        self,
        config: RangeConfig,
        base_prompt: str,
        output_path: str | None = DEFAULT_OUTPUT_PATH,
    ) -> ReleaseNotesResult:
        """Draft release notes for a commit range.

        Args:
            config: Repository, range and traversal budgets
            base_prompt: The project's release notes prompt
            output_path: Where to write the notes; None skips writing

        Returns:
            The generated notes with token usage and context sizes

        Raises:
            Exception: Range resolution and LLM failures propagate after logging
        """
        logger.info(
            "release_notes_started",
            repo=config.full_name,
            range=f"{config.base_commit}..{config.head_commit}",
            branch=config.branch,
        )
        try:
            context = await self.builder.build(config)
            system_prompt, user_prompt = build_prompt(context, base_prompt)

            logger.info(
                "release_notes_generating",
                model=self.llm.config.model,
                temperature=self.llm.config.temperature,
                commits=len(context.commits),
                linked_items=len(context.linked_items),
            )
            generation = await self.llm.generate_release_notes(system_prompt, user_prompt)

            written = None
            if output_path:
                written = str(write_text_file(output_path, generation.text))

            result = ReleaseNotesResult(
                text=generation.text,
                input_tokens=generation.input_tokens,
                output_tokens=generation.output_tokens,
                output_path=written,
                commit_count=len(context.commits),
                linked_item_count=len(context.linked_items),
            )
            logger.info(
                "release_notes_complete",
                repo=config.full_name,
                output_path=written,
                input_tokens=result.input_tokens,
                output_tokens=result.output_tokens,
            )
            return result
        except Exception as e:
            logger.error(
                "release_notes_failed",
                repo=config.full_name,
                error=str(e),
                exc_info=True,
            )
            raise


def publish_outputs(result: ReleaseNotesResult) -> None:
    """Expose the run's results as GitHub Actions step outputs."""
    if result.output_path:
        set_action_output("release-notes-path", result.output_path)
    set_action_output("input-tokens", str(result.input_tokens))
    set_action_output("output-tokens", str(result.output_tokens))


# ---------------------------------------------------------------------------
# CLI Entry Point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nuntia",
        description="Draft release notes from a commit range and the work items it references",
    )
    parser.add_argument("--repo", help="Repository as owner/name (default: GITHUB_REPOSITORY)")
    parser.add_argument("--base", help="Base commit of the range (default: INPUT_BASE-COMMIT)")
    parser.add_argument("--head", help="Head commit of the range (default: INPUT_HEAD-COMMIT)")
    parser.add_argument("--branch", help="Branch name, for the record")
    parser.add_argument("--prompt", help="Base prompt URL or file path")
    parser.add_argument("--model", help="LLM model name")
    parser.add_argument(
        "--output", "-o",
        default=DEFAULT_OUTPUT_PATH,
        help=f"Where to write the release notes (default: {DEFAULT_OUTPUT_PATH})",
    )
    parser.add_argument(
        "--context-only",
        action="store_true",
        help="Print the release context JSON and stop (no LLM call)",
    )
    return parser


async def _run(args: argparse.Namespace) -> int:
    config = config_from_env(
        repository=args.repo,
        base_commit=args.base,
        head_commit=args.head,
        branch=args.branch,
        prompt_url=args.prompt,
        model=args.model,
    )
    provider = GitHubClient(config.owner, config.repo)

    if args.context_only:
        context = await ContextBuilder(provider).build(config)
        print(context.to_json(indent=2))
        return 0

    base_prompt = await load_base_prompt(config.prompt_url)
    agent = ReleaseNotesAgent(
        provider,
        llm_config=LLMConfig(model=config.model, temperature=config.temperature),
    )
    result = await agent.run(config, base_prompt, output_path=args.output)
    publish_outputs(result)
    print(f"Release notes saved to {result.output_path}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Usage:
        nuntia --repo acme/widgets --base v1.2.0 --head main --prompt notes.prompt
        nuntia --repo acme/widgets --base v1.2.0 --head main --context-only

    Returns:
        Process exit status (1 on configuration or run errors)
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging()

    try:
        return asyncio.run(_run(args))
    except Exception as e:
        print(f"nuntia: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
