"""Read a debate problem from a markdown file with optional YAML frontmatter."""

from pathlib import Path

import frontmatter


def parse_problem_file(file_path: Path) -> tuple[str, dict]:
    """Parse a problem file.

    Returns:
        (problem, metadata) where problem is the body text and metadata holds
        any frontmatter keys (rounds, context, agents). {} without frontmatter.

    Raises:
        ValueError: If the body is empty.
    """
    post = frontmatter.load(str(file_path))
    problem = post.content.strip()
    if not problem:
        raise ValueError(f"Problem file has no content: {file_path}")
    return problem, dict(post.metadata)


def read_context_file(file_path: Path) -> str:
    """Extra context is plain text; frontmatter, if any, is kept as-is."""
    return file_path.read_text(encoding="utf-8").strip()
