"""
Bucketing of a change set into commit groups.

Every file is classified with :func:`classify_change` and put into a
bucket keyed by ``(category, scope)``. Buckets are emitted as
:class:`CommitGroup` objects ordered by category priority so that the most
significant groups are processed first.

A change set that collapses into a single large bucket (typical for a
feature touching many routes of a monorepo) is re-bucketed by a secondary
path segment so that it can still be committed in reviewable pieces.
"""

from __future__ import annotations

import logging
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Tuple, Union

from lazycommit.grouping.change_classifier import classify_change
from lazycommit.grouping.group_model import CATEGORY_TITLES, CommitGroup, category_rank
from lazycommit.vcs.git_client import FileChange


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_SCOPE = "general"

# A single group with at least this many files is split further.
DEEP_SPLIT_THRESHOLD = 10

# Directory names that usually precede the interesting segment of a path,
# e.g. ``src/app/<dashboard>/page.tsx`` or ``packages/<billing>/index.ts``.
ROUTING_PREFIXES = {
    "src",
    "app",
    "apps",
    "pages",
    "api",
    "routes",
    "packages",
    "lib",
    "components",
    "modules",
    "features",
}


def _directories(path: str) -> Tuple[str, ...]:
    return PurePosixPath(path.replace("\\", "/")).parts[:-1]


def effective_scope(path: str, scope: Union[str, None]) -> str:
    """Return ``scope``, else the first directory of ``path``, else ``general``."""
    if scope:
        return scope
    directories = _directories(path)
    if directories:
        return directories[0]
    return DEFAULT_SCOPE


def secondary_segment(path: str) -> str:
    """Return the first directory after any leading routing prefixes.

    ``src/app/dashboard/page.tsx`` gives ``dashboard``. When every
    directory is a routing prefix the deepest one is used; files at the
    repository root give ``general``.
    """
    directories = _directories(path)
    for directory in directories:
        if directory.lower() not in ROUTING_PREFIXES:
            return directory
    if directories:
        return directories[-1]
    return DEFAULT_SCOPE


def _paths(files: Iterable[Union[str, FileChange]]) -> List[str]:
    seen: Dict[str, None] = {}
    for item in files:
        path = item.path if isinstance(item, FileChange) else item
        if path:
            seen.setdefault(path, None)
    return list(seen)


def _build_groups(buckets: Dict[Tuple[str, str], List[str]]) -> List[CommitGroup]:
    groups = [
        CommitGroup(
            category=category,
            scope=scope,
            title=CATEGORY_TITLES.get(category, CATEGORY_TITLES["chore"]),
            files=files,
        )
        for (category, scope), files in buckets.items()
    ]
    # sorted() is stable: equal categories keep first-seen order
    return sorted(groups, key=lambda group: category_rank(group.category))


def _deep_split(group: CommitGroup) -> List[CommitGroup]:
    buckets: Dict[Tuple[str, str], List[str]] = {}
    for path in group.files:
        buckets.setdefault((group.category, secondary_segment(path)), []).append(path)
    if len(buckets) < 2:
        return [group]
    logger.debug("Deep split of %s into %d groups", group.label, len(buckets))
    return _build_groups(buckets)


def group_changes(
    files: Iterable[Union[str, FileChange]],
    deep_split_threshold: int = DEEP_SPLIT_THRESHOLD,
) -> List[CommitGroup]:
    """Group changed files by category and scope.

    Parameters
    ----------
    files : Iterable[Union[str, FileChange]]
        Changed paths, or file statistics carrying a ``path``.
    deep_split_threshold : int
        Minimum size of a lone group before it is split by secondary
        path segment.

    Returns
    -------
    List[CommitGroup]
        Groups in category priority order. Every distinct input path
        appears in exactly one group.
    """
    buckets: Dict[Tuple[str, str], List[str]] = {}
    for path in _paths(files):
        classification = classify_change(path)
        key = (classification.category, effective_scope(path, classification.scope))
        buckets.setdefault(key, []).append(path)

    groups = _build_groups(buckets)
    if len(groups) == 1 and len(groups[0].files) >= deep_split_threshold:
        groups = _deep_split(groups[0])
    logger.debug("Grouped %d file(s) into %d group(s)", sum(len(g.files) for g in groups), len(groups))
    return groups
