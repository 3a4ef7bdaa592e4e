"""
Statistical digests of a staged change set.

When a diff is too large to send to the language model verbatim, the
commit message is generated from a compact summary instead: file count,
aggregate additions/deletions and the files with the most changes. The
output of :func:`build_compact_summary` is deterministic so that a given
change set always produces the same prompt.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Sequence

from lazycommit.grouping.group_model import CommitGroup
from lazycommit.vcs.git_client import FileChange


DEFAULT_SUMMARY_FILES = 25

# Thresholds above which the change set is considered large.
LARGE_DIFF_CHARS = 50000
MANY_FILES = 5
LARGE_FILE_CHANGES = 500


def _sorted_by_magnitude(file_stats: Iterable[FileChange]) -> List[FileChange]:
    return sorted(file_stats, key=lambda stat: (-stat.changes, stat.path))


def build_compact_summary(
    file_stats: Sequence[FileChange],
    max_files_shown: int = DEFAULT_SUMMARY_FILES,
) -> str:
    """Build a compact, fixed-format digest of ``file_stats``.

    Parameters
    ----------
    file_stats : Sequence[FileChange]
        Per-file addition and deletion counts.
    max_files_shown : int
        Maximum number of per-file lines in the digest.

    Returns
    -------
    str
        The digest, or an empty string when ``file_stats`` is empty.
    """
    if not file_stats:
        return ""
    additions = sum(stat.additions for stat in file_stats)
    deletions = sum(stat.deletions for stat in file_stats)
    ranked = _sorted_by_magnitude(file_stats)
    shown = ranked[: max(0, max_files_shown)]

    lines = [
        f"Files changed: {len(file_stats)}",
        f"Total changes: +{additions} / -{deletions} ({additions + deletions} changes)",
        "Top files by changes:",
    ]
    for stat in shown:
        lines.append(f"- {stat.path} (+{stat.additions} / -{stat.deletions}, {stat.changes} changes)")
    remaining = len(ranked) - len(shown)
    if remaining > 0:
        lines.append(f"...and {remaining} more file{'s' if remaining != 1 else ''}")
    return "\n".join(lines)


def analysis_reason(
    diff: str,
    files: Sequence[str],
    file_stats: Sequence[FileChange] = (),
) -> Optional[str]:
    """Explain why a change set needs the enhanced (summary based) analysis.

    Returns ``None`` for change sets that are small enough to be described
    from the raw diff.
    """
    if len(files) >= MANY_FILES:
        return "Many files detected"
    if any(stat.changes > LARGE_FILE_CHANGES for stat in file_stats):
        return "Large file changes detected"
    if len(diff) > LARGE_DIFF_CHARS:
        return "Large diff detected"
    return None


def build_diff_snippets(
    file_diffs: Mapping[str, str],
    max_files: int = 5,
    per_file_max_lines: int = 30,
    total_max_chars: int = 4000,
) -> str:
    """Collect hunk headers and changed lines of the first few files.

    The snippets give the model some semantic context next to the
    statistical summary without sending the whole diff.
    """
    parts: List[str] = []
    remaining = total_max_chars
    for path, diff in list(file_diffs.items())[:max_files]:
        if not diff:
            continue
        picked: List[str] = []
        for line in diff.splitlines():
            if not line:
                continue
            is_hunk = line.startswith("@@")
            is_change = line.startswith(("+", "-")) and not line.startswith(("+++", "---"))
            if is_hunk or is_change:
                picked.append(line)
                if len(picked) >= per_file_max_lines:
                    break
        if not picked:
            continue
        block = "\n".join([f"# {path}"] + picked)
        if len(block) <= remaining:
            parts.append(block)
            remaining -= len(block)
        else:
            parts.append(block[:remaining])
            remaining = 0
        if remaining <= 0:
            break
    if not parts:
        return ""
    return "\n".join(["Context snippets (truncated):"] + parts)


def build_group_digest(
    groups: Sequence[CommitGroup],
    file_stats: Sequence[FileChange] = (),
) -> str:
    """Describe each commit group on one line, e.g. ``- feat(api): 3 files (+10 / -2)``."""
    stats_by_path = {stat.path: stat for stat in file_stats}
    lines: List[str] = []
    for group in groups:
        additions = sum(stats_by_path[f].additions for f in group.files if f in stats_by_path)
        deletions = sum(stats_by_path[f].deletions for f in group.files if f in stats_by_path)
        count = len(group.files)
        lines.append(
            f"- {group.label}: {count} file{'s' if count != 1 else ''} (+{additions} / -{deletions})"
        )
    return "\n".join(lines)
