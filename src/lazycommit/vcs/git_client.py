"""
Git client implementation for lazycommit.

This module wraps the Git operations required by the commit assistant:
reading the staged change set (file list, unified diff, per-file numeric
statistics) and committing either everything that is staged or an exact
subset of files. All subprocess calls go through :meth:`GitClient._run`
so that unit tests can mock them easily.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# Generated or vendored content that never helps describing a change.
FILES_TO_EXCLUDE = (
    "package-lock.json",
    "pnpm-lock.yaml",
    "node_modules/**",
    "dist/**",
    "build/**",
    ".next/**",
    "coverage/**",
    ".nyc_output/**",
    "*.log",
    "*.tmp",
    "*.temp",
    "*.cache",
    ".DS_Store",
    "Thumbs.db",
    "*.min.js",
    "*.min.css",
    "*.bundle.js",
    "*.bundle.css",
    "*.lock",
)

DIFF_CACHED = ["diff", "--cached", "--diff-algorithm=minimal"]


@dataclass(frozen=True)
class FileChange:
    """Numeric statistics of a single staged file."""

    path: str
    additions: int = 0
    deletions: int = 0

    def __post_init__(self) -> None:
        if self.additions < 0 or self.deletions < 0:
            raise ValueError("additions and deletions must be non-negative")

    @property
    def changes(self) -> int:
        return self.additions + self.deletions


@dataclass
class StagedDiff:
    """The staged file list together with its unified diff."""

    files: List[str]
    diff: str


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class NotARepositoryError(GitError):
    """Raised when the working directory is not inside a Git repository."""

    pass


def exclude_pathspec(path: str) -> str:
    return f":(exclude){path}"


def _parse_count(value: str) -> int:
    # numstat prints "-" for binary files
    try:
        return max(0, int(value))
    except ValueError:
        return 0


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached. ``.git`` may be a file for worktrees/submodules.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                # reached filesystem root
                return None
            current = current.parent

    @classmethod
    def assert_repo(cls, start: Path) -> Path:
        """Return the repository root or raise :class:`NotARepositoryError`."""
        root = cls.find_repo_root(start)
        if root is None:
            raise NotARepositoryError("The current directory must be a Git repository!")
        return root

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command exits with a non-zero status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except FileNotFoundError as exc:
            logger.error("Git executable not found: %s", exc)
            raise GitError("Git is not installed or not on PATH") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    @staticmethod
    def _exclusions(exclude_files: Optional[Sequence[str]]) -> List[str]:
        excluded = list(FILES_TO_EXCLUDE) + list(exclude_files or [])
        return [exclude_pathspec(path) for path in excluded]

    # ------------------------------------------------------------------
    # Staged change set
    # ------------------------------------------------------------------
    def get_staged_files(self, exclude_files: Optional[Sequence[str]] = None) -> List[str]:
        """Return the staged file names, honouring the exclusion list."""
        result = self._run(DIFF_CACHED + ["--name-only", "--"] + self._exclusions(exclude_files))
        return [line for line in result.stdout.splitlines() if line.strip()]

    def get_staged_diff(self, exclude_files: Optional[Sequence[str]] = None) -> Optional[StagedDiff]:
        """Return the staged files and their unified diff.

        Returns
        -------
        Optional[StagedDiff]
            ``None`` when nothing (outside the exclusions) is staged.
        """
        files = self.get_staged_files(exclude_files)
        if not files:
            return None
        result = self._run(DIFF_CACHED + ["--"] + self._exclusions(exclude_files))
        return StagedDiff(files=files, diff=result.stdout)

    def get_file_stats(self, files: Iterable[str]) -> List[FileChange]:
        """Return per-file addition/deletion counts for the given staged files.

        A file whose statistics cannot be read is reported with zero
        counts rather than failing the whole summary.
        """
        stats: List[FileChange] = []
        for file in files:
            try:
                result = self._run(DIFF_CACHED + ["--numstat", "--", file])
            except GitError as exc:
                logger.warning("Could not read statistics for %s: %s", file, exc)
                stats.append(FileChange(path=file))
                continue
            fields = result.stdout.strip().split("\t")
            if len(fields) >= 2:
                stats.append(FileChange(path=file, additions=_parse_count(fields[0]), deletions=_parse_count(fields[1])))
            else:
                stats.append(FileChange(path=file))
        return stats

    def get_file_diff(self, file: str, unified: int = 0) -> str:
        """Return the staged diff of a single file with ``unified`` context lines."""
        result = self._run(DIFF_CACHED + [f"--unified={unified}", "--", file], check=False)
        if result.returncode != 0:
            return ""
        return result.stdout

    def get_file_diffs(self, files: Iterable[str], unified: int = 0) -> Dict[str, str]:
        return {file: self.get_file_diff(file, unified) for file in files}

    # ------------------------------------------------------------------
    # Staging and committing
    # ------------------------------------------------------------------
    def stage_all(self) -> None:
        """Stage modifications of tracked files, like ``git commit --all``."""
        self._run(["add", "--update"], check=True)

    def commit(self, message: str, extra_args: Sequence[str] = ()) -> None:
        """Create a commit of everything staged with the given message."""
        self._run(["commit", "-m", message] + list(extra_args), check=True)

    def snapshot_index(self) -> str:
        """Write the current index to a tree object and return its id.

        The tree records the staged content of every file, including
        excluded ones, so that per-group commits can take their content
        from it instead of the working tree.
        """
        return self._run(["write-tree"], check=True).stdout.strip()

    def commit_files(self, message: str, files: Sequence[str], source_tree: str) -> None:
        """Commit exactly ``files`` as staged in ``source_tree``.

        The index is reset to ``HEAD`` and only the given paths are taken
        from the snapshot; paths missing from the snapshot (staged
        deletions) leave the index. The working tree is never read.
        """
        self._run(["reset", "--quiet"], check=True)
        self._run(["restore", "--staged", f"--source={source_tree}", "--"] + list(files), check=True)
        self.commit(message)

    def restore_index(self, source_tree: str) -> None:
        """Put the snapshot back into the index.

        Files committed from the snapshot now match ``HEAD``; everything
        that was staged but not committed is staged again.
        """
        self._run(["read-tree", source_tree], check=True)
        # read-tree drops cached stat data
        self._run(["update-index", "-q", "--refresh"], check=False)
