"""Output storage for generated release notes.

Release notes are written to a file in the workspace, and when running as
a GitHub Action the interesting values (path, token counts) are published
as step outputs through the GITHUB_OUTPUT file.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Mapping
from pathlib import Path


def resolve_path(file_path: str | Path) -> Path:
    """Resolve a relative path against the current working directory."""
    path = Path(file_path)
    return path if path.is_absolute() else Path.cwd() / path


def write_text_file(file_path: str | Path, contents: str) -> Path:
    """Write text to a file, creating parent directories as needed.

    Returns:
        The absolute path written to
    """
    resolved = resolve_path(file_path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    resolved.write_text(contents, encoding="utf-8")
    return resolved


def set_action_output(
    name: str,
    value: str,
    env: Mapping[str, str] | None = None,
) -> bool:
    """Publish a GitHub Actions step output.

    Multi-line values use the heredoc form with a random delimiter.

    Returns:
        False when GITHUB_OUTPUT is not set (not running in Actions)
    """
    environ = os.environ if env is None else env
    output_file = environ.get("GITHUB_OUTPUT")
    if not output_file:
        return False

    with open(output_file, "a", encoding="utf-8") as fh:
        if "\n" in value:
            delimiter = f"ghadelimiter_{uuid.uuid4()}"
            fh.write(f"{name}<<{delimiter}\n{value}\n{delimiter}\n")
        else:
            fh.write(f"{name}={value}\n")
    return True
