"""
Diff processing for lazycommit.

:mod:`lazycommit.diff.partitioner` estimates token counts and splits
diffs into per-file segments and budget-bounded chunks;
:mod:`lazycommit.diff.summary` builds the compact statistical digests used
when a diff is too large to send as-is.
"""

from .partitioner import DiffChunk, chunk_diff, estimate_tokens, split_by_file  # noqa: F401
from .summary import build_compact_summary  # noqa: F401
