"""
Commit message synthesis.

This module provides the :class:`CommitMessageGenerator` class, which
drives the Groq backend (via :class:`GroqClient`) to produce commit
messages for a staged change set of any size.

The generator walks a ladder of progressively cheaper representations of
the change set:

1. the full diff, when it fits the token budget;
2. per-file diff chunks, one request per chunk followed by one request
   combining the chunk messages;
3. a grouped statistical summary (file counts, additions/deletions,
   change areas and a few diff snippets);
4. the bare list of file names.

It starts at the cheapest rung known to fit and falls back one rung
whenever a request yields nothing usable or fails with a recoverable
backend error (request too large, rate limited, server error, timeout).
Connectivity errors are raised immediately. When every rung is exhausted
a :class:`SynthesisError` is raised.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from lazycommit.diff.partitioner import (
    DEFAULT_CHUNK_TOKENS,
    DiffChunk,
    chunk_diff,
    estimate_tokens,
    file_path_from_segment,
    split_by_file,
)
from lazycommit.diff.summary import (
    DEFAULT_SUMMARY_FILES,
    build_compact_summary,
    build_diff_snippets,
    build_group_digest,
)
from lazycommit.grouping.group_model import CommitGroup
from lazycommit.grouping.grouper import group_changes
from lazycommit.llm.groq_client import RECOVERABLE_ERRORS, GroqClient, LLMConnectionError, LLMError
from lazycommit.llm.message_postprocessor import finalize_messages
from lazycommit.llm.prompt import (
    build_chunk_prompt,
    build_combine_prompt,
    build_file_list_prompt,
    build_group_hint,
    build_summary_prompt,
    generate_prompt,
)
from lazycommit.llm.response_resolver import resolve_completion
from lazycommit.vcs.git_client import FileChange


logger = logging.getLogger(__name__)
# Attach a null handler to prevent logging errors when no handlers are
# configured on the root logger. Logs will propagate when configured.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


FULL_DIFF_TOKEN_BUDGET = 6000
MAX_CHUNK_REQUESTS = 12
MODEL_TOKEN_LIMIT = 7500
# Reserved for the system prompt and instructions around a chunk.
PROMPT_RESERVE_TOKENS = 1200
MIN_OUTPUT_TOKENS = 200
FILE_LIST_MAX_FILES = 15


class SynthesisError(Exception):
    """Raised when no commit message could be generated by any means."""

    pass


class Rung(enum.Enum):
    FULL_DIFF = "full diff"
    FILE_CHUNKS = "per-file chunks"
    GROUPED_SUMMARY = "grouped summary"
    FILE_LIST = "file list"


LADDER = (Rung.FULL_DIFF, Rung.FILE_CHUNKS, Rung.GROUPED_SUMMARY, Rung.FILE_LIST)


class SynthesisState(enum.Enum):
    INPUT_SELECTION = "input selection"
    REQUEST = "request"
    RESOLVE = "resolve"
    ACCEPT = "accept"
    DEGRADE = "degrade"
    DONE = "done"
    FAIL = "fail"


@dataclass
class SynthesisOptions:
    """Knobs of a synthesis run; the defaults match the Groq free tier."""

    locale: str = "en"
    max_length: int = 100
    completions: int = 1
    commit_type: str = ""
    full_diff_token_budget: int = FULL_DIFF_TOKEN_BUDGET
    chunk_token_budget: int = DEFAULT_CHUNK_TOKENS
    max_chunk_requests: int = MAX_CHUNK_REQUESTS
    model_token_limit: int = MODEL_TOKEN_LIMIT
    prompt_reserve_tokens: int = PROMPT_RESERVE_TOKENS
    summary_max_files: int = DEFAULT_SUMMARY_FILES
    file_list_max_files: int = FILE_LIST_MAX_FILES

    @property
    def max_output_tokens(self) -> int:
        return max(MIN_OUTPUT_TOKENS, self.max_length * 8)


@dataclass
class SynthesisInput:
    """Everything known about the change set to describe.

    Attributes
    ----------
    files : List[str]
        Staged file names.
    diff : str
        Unified diff of the staged files.
    file_stats : List[FileChange]
        Per-file addition/deletion counts, used by the summary rung.
    file_diffs : Dict[str, str]
        Zero-context diffs of a few files, keyed by path. Their hunks are
        added to the summary prompt as snippets.
    hint : str
        Optional extra instruction, e.g. the category of a commit group.
    """

    files: List[str]
    diff: str
    file_stats: List[FileChange] = field(default_factory=list)
    file_diffs: Dict[str, str] = field(default_factory=dict)
    hint: str = ""

    @property
    def snippets(self) -> str:
        return build_diff_snippets(self.file_diffs)

    def for_group(self, group: CommitGroup) -> "SynthesisInput":
        """Restrict the input to the files of ``group``."""
        members = set(group.files)
        segments = [segment for segment in split_by_file(self.diff) if file_path_from_segment(segment) in members]
        return SynthesisInput(
            files=list(group.files),
            diff="\n".join(segments),
            file_stats=[stat for stat in self.file_stats if stat.path in members],
            file_diffs={path: diff for path, diff in self.file_diffs.items() if path in members},
            hint=build_group_hint(group.category, group.scope),
        )


class CommitMessageGenerator:
    """Generate commit messages with a degrade-and-retry strategy."""

    def __init__(self, client: GroqClient, options: Optional[SynthesisOptions] = None) -> None:
        self.client = client
        self.options = options or SynthesisOptions()

    # ------------------------------------------------------------------
    # Backend requests
    # ------------------------------------------------------------------
    def _messages(self, user_content: str, hint: str = "") -> List[Dict[str, str]]:
        if hint:
            user_content = f"{hint}\n\n{user_content}"
        system = generate_prompt(self.options.locale, self.options.max_length, self.options.commit_type)
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": user_content},
        ]

    async def _request(self, user_content: str, hint: str = "", n: int = 1, max_tokens: Optional[int] = None) -> List[str]:
        completion = await self.client.create_chat_completion(
            self._messages(user_content, hint),
            max_tokens=max_tokens or self.options.max_output_tokens,
            n=n,
        )
        return resolve_completion(completion)

    def _chunk_output_tokens(self, chunk: DiffChunk) -> int:
        options = self.options
        approx_input = chunk.estimated_tokens + options.prompt_reserve_tokens
        max_tokens = options.max_output_tokens
        if approx_input + max_tokens > options.model_token_limit:
            max_tokens = max(MIN_OUTPUT_TOKENS, options.model_token_limit - approx_input)
        return max_tokens

    # ------------------------------------------------------------------
    # Ladder rungs
    # ------------------------------------------------------------------
    def _file_chunks(self, changes: SynthesisInput) -> List[DiffChunk]:
        budget = self.options.chunk_token_budget
        chunks = [chunk for segment in split_by_file(changes.diff) for chunk in chunk_diff(segment, budget)]
        if not chunks and changes.diff.strip():
            chunks = chunk_diff(changes.diff, budget)
        return [chunk for chunk in chunks if chunk.text.strip()]

    def _summary_prompt(self, changes: SynthesisInput) -> str:
        summary = build_compact_summary(changes.file_stats, self.options.summary_max_files)
        if not summary:
            return ""
        groups = group_changes(changes.file_stats)
        digest = build_group_digest(groups, changes.file_stats) if len(groups) > 1 else ""
        return build_summary_prompt(
            summary,
            self.options.max_length,
            self.options.commit_type,
            snippets=changes.snippets,
            groups=digest,
        )

    def _known_files(self, changes: SynthesisInput) -> List[str]:
        files = [file for file in changes.files if file]
        if not files:
            paths = (file_path_from_segment(segment) for segment in split_by_file(changes.diff))
            files = [path for path in paths if path]
        return files[: self.options.file_list_max_files]

    def _rung_fits(self, rung: Rung, changes: SynthesisInput) -> bool:
        options = self.options
        if rung is Rung.FULL_DIFF:
            return bool(changes.diff.strip()) and estimate_tokens(changes.diff) <= options.full_diff_token_budget
        if rung is Rung.FILE_CHUNKS:
            return 2 <= len(self._file_chunks(changes)) <= options.max_chunk_requests
        if rung is Rung.GROUPED_SUMMARY:
            prompt = self._summary_prompt(changes)
            return bool(prompt) and estimate_tokens(prompt) + options.prompt_reserve_tokens <= options.model_token_limit
        return bool(self._known_files(changes))

    async def _request_chunks(self, changes: SynthesisInput) -> List[str]:
        chunks = self._file_chunks(changes)
        chunk_messages: List[str] = []
        for index, chunk in enumerate(chunks, start=1):
            prompt = build_chunk_prompt(chunk.text, self.options.max_length, index, len(chunks))
            try:
                messages = await self._request(prompt, changes.hint, max_tokens=self._chunk_output_tokens(chunk))
            except LLMConnectionError:
                raise
            except LLMError as exc:
                logger.warning("Failed to process chunk %d/%d: %s", index, len(chunks), exc)
                continue
            if messages:
                chunk_messages.append(messages[0])

        if len(chunk_messages) < 2:
            return chunk_messages
        try:
            combined = await self._request(build_combine_prompt(chunk_messages), changes.hint, n=self.options.completions)
        except LLMError as exc:
            logger.warning("Combining %d chunk messages failed: %s; using them as-is", len(chunk_messages), exc)
            return chunk_messages
        return combined or chunk_messages

    async def _request_rung(self, rung: Rung, changes: SynthesisInput) -> List[str]:
        n = self.options.completions
        if rung is Rung.FULL_DIFF:
            return await self._request(changes.diff, changes.hint, n=n)
        if rung is Rung.FILE_CHUNKS:
            return await self._request_chunks(changes)
        if rung is Rung.GROUPED_SUMMARY:
            return await self._request(self._summary_prompt(changes), changes.hint, n=n)
        prompt = build_file_list_prompt(self._known_files(changes), self.options.max_length)
        return await self._request(prompt, changes.hint, n=n)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def generate(self, changes: SynthesisInput) -> List[str]:
        """Generate deduplicated, length-bounded commit message candidates.

        Raises
        ------
        LLMConnectionError
            If the backend cannot be reached.
        LLMError
            For backend errors that a smaller request cannot fix.
        SynthesisError
            If every rung of the ladder was exhausted.
        """
        state = SynthesisState.INPUT_SELECTION
        rung_index = 0
        raw: List[str] = []
        candidates: List[str] = []
        last_error: Optional[BaseException] = None

        while True:
            if state is SynthesisState.INPUT_SELECTION:
                while rung_index < len(LADDER) and not self._rung_fits(LADDER[rung_index], changes):
                    logger.debug("Skipping rung '%s': input does not fit", LADDER[rung_index].value)
                    rung_index += 1
                state = SynthesisState.REQUEST if rung_index < len(LADDER) else SynthesisState.FAIL

            elif state is SynthesisState.REQUEST:
                rung = LADDER[rung_index]
                logger.debug("Requesting commit message from %s", rung.value)
                try:
                    raw = await self._request_rung(rung, changes)
                    state = SynthesisState.RESOLVE
                except RECOVERABLE_ERRORS as exc:
                    logger.warning("Request using %s failed: %s", rung.value, exc)
                    last_error = exc
                    state = SynthesisState.DEGRADE

            elif state is SynthesisState.RESOLVE:
                candidates = finalize_messages(raw, self.options.max_length)
                state = SynthesisState.ACCEPT if candidates else SynthesisState.DEGRADE

            elif state is SynthesisState.ACCEPT:
                state = SynthesisState.DONE

            elif state is SynthesisState.DEGRADE:
                logger.info("No usable message from %s; trying a smaller representation", LADDER[rung_index].value)
                rung_index += 1
                state = SynthesisState.INPUT_SELECTION

            elif state is SynthesisState.DONE:
                return candidates

            else:
                message = "Failed to generate a commit message from the staged changes"
                if last_error is not None:
                    message += f": {last_error}"
                raise SynthesisError(message)

    async def generate_for_groups(self, groups: Sequence[CommitGroup], changes: SynthesisInput) -> List[CommitGroup]:
        """Assign a message to every group, one group after the other.

        A group whose synthesis fails gets its deterministic fallback
        message; connectivity errors abort the whole run.
        """
        options = replace(self.options, completions=1)
        generator = CommitMessageGenerator(self.client, options)
        for group in groups:
            try:
                messages = await generator.generate(changes.for_group(group))
                group.message = messages[0]
            except LLMConnectionError:
                raise
            except (LLMError, SynthesisError) as exc:
                logger.warning("LLM failed to generate commit message for group '%s': %s; using fallback.", group.label, exc)
                group.message = group.fallback_message()
        return list(groups)
