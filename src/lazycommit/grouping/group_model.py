"""
Data models for commit grouping.

The :class:`CommitGroup` represents a collection of related files that
should be committed together. Each group has a category (a Conventional
Commit type), an optional scope, a human readable fallback title and,
once synthesis has run, a commit message.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


# Categories in priority order: the most significant groups come first.
CATEGORY_PRIORITY: Tuple[str, ...] = (
    "feat",
    "fix",
    "refactor",
    "perf",
    "test",
    "docs",
    "build",
    "ci",
    "chore",
)

CATEGORY_TITLES: Dict[str, str] = {
    "feat": "Add new functionality",
    "fix": "Fix issues",
    "refactor": "Refactor code",
    "perf": "Improve performance",
    "test": "Update tests",
    "docs": "Update documentation",
    "build": "Update build configuration",
    "ci": "Update CI configuration",
    "chore": "Update project files",
}


def category_rank(category: str) -> int:
    """Return the sort position of ``category``; unknown categories sort last."""
    try:
        return CATEGORY_PRIORITY.index(category)
    except ValueError:
        return len(CATEGORY_PRIORITY)


@dataclass
class CommitGroup:
    """Representation of a grouped commit.

    Attributes
    ----------
    category : str
        The Conventional Commit type (feat, fix, docs, etc.).
    scope : Optional[str]
        Subsystem or directory the group belongs to.
    title : str
        Human readable phrase used when no message could be generated.
    files : List[str]
        Files included in the group. Never empty.
    message : Optional[str]
        Commit message, assigned once by the generator.
    """

    category: str
    scope: Optional[str]
    title: str
    files: List[str] = field(default_factory=list)
    message: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.files:
            raise ValueError("A commit group needs at least one file")

    @property
    def label(self) -> str:
        """``category(scope)`` or just ``category`` when there is no scope."""
        if self.scope:
            return f"{self.category}({self.scope})"
        return self.category

    def fallback_message(self) -> str:
        """Deterministic message used when the language model gives nothing."""
        title = self.title[:1].lower() + self.title[1:]
        return f"{self.label}: {title}"
