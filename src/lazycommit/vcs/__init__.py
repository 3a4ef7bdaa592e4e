"""
Version control system (VCS) integration.

:class:`GitClient` reads the staged change set (files, diff, numeric
statistics) and applies commits, either of everything staged or of an
exact subset of files per commit group.
"""

from .git_client import FileChange, GitClient, GitError, NotARepositoryError, StagedDiff  # noqa: F401
