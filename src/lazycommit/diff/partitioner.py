"""
Diff partitioning utilities.

Staged diffs can easily exceed what a language model accepts in a single
request. This module provides a rough token estimate for a piece of text
and two ways of cutting a unified diff into smaller pieces: one segment
per file (using the ``diff --git`` headers) and line-respecting chunks
bounded by an estimated token budget.

All functions are pure so that they can be unit tested without a
repository or a language model.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple


# Rough approximation used for budgeting only: 1 token ~ 4 characters of
# English text or source code. Never treat the result as an exact count.
CHARS_PER_TOKEN = 4

# Default per-chunk budget (estimated tokens).
DEFAULT_CHUNK_TOKENS = 4000

FILE_BOUNDARY_MARKER = "diff --git "


def estimate_tokens(text: str, chars_per_token: int = CHARS_PER_TOKEN) -> int:
    """Return an estimated token count for ``text``.

    The estimate is ``ceil(len(text) / chars_per_token)`` and therefore
    depends on the length of the text only.
    """
    if chars_per_token <= 0:
        raise ValueError("chars_per_token must be positive")
    return math.ceil(len(text) / chars_per_token)


@dataclass(frozen=True)
class DiffChunk:
    """A line-bounded slice of diff text.

    Attributes
    ----------
    lines : Tuple[str, ...]
        The lines of the chunk without their trailing newline.
    estimated_tokens : int
        Estimated token count of :attr:`text`.
    """

    lines: Tuple[str, ...]
    estimated_tokens: int

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    @classmethod
    def from_lines(cls, lines: List[str], chars_per_token: int = CHARS_PER_TOKEN) -> "DiffChunk":
        text = "\n".join(lines)
        return cls(lines=tuple(lines), estimated_tokens=estimate_tokens(text, chars_per_token))


def split_by_file(diff: str) -> List[str]:
    """Split a unified diff into one segment per file.

    A line starting with ``diff --git`` opens a new segment. Segments are
    stripped of enclosing whitespace and empty segments are dropped. Text
    without any marker yields a single segment covering the whole payload.

    Parameters
    ----------
    diff : str
        Unified diff as produced by ``git diff``.

    Returns
    -------
    List[str]
        Per-file segments in the order they appear in ``diff``.
    """
    segments: List[str] = []
    current: List[str] = []
    for line in diff.split("\n"):
        if line.startswith(FILE_BOUNDARY_MARKER) and current:
            segment = "\n".join(current).strip()
            if segment:
                segments.append(segment)
            current = []
        current.append(line)
    segment = "\n".join(current).strip()
    if segment:
        segments.append(segment)
    return segments


def chunk_diff(
    text: str,
    max_tokens: int = DEFAULT_CHUNK_TOKENS,
    chars_per_token: int = CHARS_PER_TOKEN,
) -> List[DiffChunk]:
    """Split ``text`` into chunks whose estimated size fits ``max_tokens``.

    Lines are never split. A chunk is closed right before the line that
    would push it over the budget, unless the chunk is still empty; a
    single line larger than the budget therefore becomes its own
    oversized chunk. Joining the chunk texts with ``"\\n"`` reproduces
    ``text`` exactly.

    Parameters
    ----------
    text : str
        Diff text (or any other text) to split.
    max_tokens : int
        Budget in estimated tokens per chunk.
    chars_per_token : int
        Ratio used by :func:`estimate_tokens`.

    Returns
    -------
    List[DiffChunk]
        Ordered chunks. ``text`` within budget gives a single chunk.
    """
    if estimate_tokens(text, chars_per_token) <= max_tokens:
        return [DiffChunk.from_lines(text.split("\n"), chars_per_token)]

    chunks: List[DiffChunk] = []
    current: List[str] = []
    current_len = 0
    for line in text.split("\n"):
        # Length of the chunk text once this line is joined in.
        candidate_len = current_len + len(line) + (1 if current else 0)
        if current and math.ceil(candidate_len / chars_per_token) > max_tokens:
            chunks.append(DiffChunk.from_lines(current, chars_per_token))
            current = [line]
            current_len = len(line)
        else:
            current.append(line)
            current_len = candidate_len
    if current:
        chunks.append(DiffChunk.from_lines(current, chars_per_token))
    return chunks


def file_path_from_segment(segment: str) -> Optional[str]:
    """Return the path named in a segment's ``diff --git a/x b/x`` header.

    The destination (``b/``) path is preferred so renames report the new
    name. ``None`` is returned when the segment has no header.
    """
    first_line = segment.split("\n", 1)[0]
    if not first_line.startswith(FILE_BOUNDARY_MARKER):
        return None
    header = first_line[len(FILE_BOUNDARY_MARKER):]
    marker = header.rfind(" b/")
    if marker != -1:
        return header[marker + 3:].strip() or None
    parts = header.split()
    if not parts:
        return None
    path = parts[-1]
    if path.startswith(("a/", "b/")):
        path = path[2:]
    return path or None
