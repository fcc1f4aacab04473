"""Problem statements from markdown files with optional YAML frontmatter."""

from pathlib import Path

import frontmatter


def parse_problem_file(file_path: Path) -> tuple[str, dict]:
    """Parse a markdown problem file.

    Returns:
        (problem, metadata) where problem is the body text and metadata
        may hold ``max_messages`` (int) and ``critical`` (bool).
        If no frontmatter, metadata is {}.
    """
    post = frontmatter.load(str(file_path))
    problem = post.content.strip()
    if not problem:
        raise ValueError(f"Problem file is empty: {file_path}")
    return problem, dict(post.metadata)


def read_system_prompt(file_path: Path) -> str:
    if not file_path.is_file():
        raise FileNotFoundError(f"System prompt file '{file_path}' does not exist.")
    return file_path.read_text(encoding="utf-8")

