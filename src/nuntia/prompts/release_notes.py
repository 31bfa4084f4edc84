"""Prompt templates for drafting release notes.

The base prompt (tone, sections, formatting rules) belongs to the project
being released, so it is loaded at run time from a URL or a file in the
repository. Nuntia appends its own input guidance to it and passes the
release context as JSON in the user message.

The LLM is told to rely only on the JSON payload, which keeps release notes
grounded in commits and linked items that actually exist.
"""

from __future__ import annotations

from pathlib import Path

import httpx

from nuntia.schemas import ReleaseContext

# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

INPUT_GUIDANCE = """=== INPUT GUIDANCE ===
You will receive a JSON payload with commit data and linked references. Use only that data.
- "commits" lists every commit of the release range, oldest first.
- "linkedItems" are issues, pull requests and commits reached by following
  references; "referencedBy" names the commits or items that pointed to each.
- Text fields may be cut short and end in "...".
"""

USER_PROMPT_TEMPLATE = """=== RELEASE CONTEXT (JSON) ===
{context_json}
"""


# ---------------------------------------------------------------------------
# Base prompt loading
# ---------------------------------------------------------------------------


async def load_base_prompt(
    source: str,
    timeout: float = 30.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Load the project's base prompt from an http(s) URL or a file path.

    Args:
        source: URL or path (relative paths resolve against the cwd)
        timeout: HTTP timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)

    Returns:
        The prompt text

    Raises:
        ValueError: If the source is empty, cannot be read or holds a blank prompt
    """
    trimmed = source.strip()
    if not trimmed:
        raise ValueError("Prompt URL is required and cannot be empty.")

    if trimmed.startswith(("http://", "https://")):
        try:
            async with httpx.AsyncClient(
                timeout=timeout, follow_redirects=True, transport=transport
            ) as client:
                resp = await client.get(trimmed)
        except httpx.HTTPError as e:
            raise ValueError(f"Failed to fetch prompt from {trimmed}: {e}") from e
        if resp.is_error:
            raise ValueError(
                f"Failed to fetch prompt from {trimmed}: "
                f"{resp.status_code} {resp.reason_phrase}".strip()
            )
        text = resp.text
    else:
        path = Path(trimmed)
        if not path.is_file():
            raise ValueError(f"Prompt file not found: {trimmed}")
        text = path.read_text(encoding="utf-8")

    if not text.strip():
        raise ValueError(f"Prompt at {trimmed} is empty.")
    return text


# ---------------------------------------------------------------------------
# Prompt Builder
# ---------------------------------------------------------------------------


def build_system_prompt(base_prompt: str) -> str:
    """Append Nuntia's input guidance to the project's base prompt."""
    return f"{base_prompt}\n\n{INPUT_GUIDANCE}"


def build_user_prompt(context: ReleaseContext) -> str:
    """Embed the release context as indented camelCase JSON."""
    return USER_PROMPT_TEMPLATE.format(context_json=context.to_json(indent=2))


def build_prompt(context: ReleaseContext, base_prompt: str) -> tuple[str, str]:
    """Build the (system, user) prompt pair for a release context."""
    return build_system_prompt(base_prompt), build_user_prompt(context)
