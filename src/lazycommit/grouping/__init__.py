"""
Grouping logic for commit messages.

This package provides functionality to classify changed files into commit
categories and group them accordingly. See
:mod:`lazycommit.grouping.change_classifier`,
:mod:`lazycommit.grouping.grouper` and
:mod:`lazycommit.grouping.group_model` for details.
"""

from .change_classifier import Classification, classify_change  # noqa: F401
from .group_model import CommitGroup  # noqa: F401
from .grouper import group_changes  # noqa: F401
