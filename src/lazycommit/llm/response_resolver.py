"""
Extraction of commit message candidates from a completion.

The structured ``content`` of each choice is preferred. Some reasoning
models occasionally return an empty content and put everything into a
separate reasoning field; in that case a message is derived from the
reasoning text, looking for a Conventional Commit style fragment first
and falling back to its first sentence.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from lazycommit.llm.groq_client import ChatCompletion
from lazycommit.llm.message_postprocessor import deduplicate_messages, sanitize_message


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONVENTIONAL_PREFIXES = ("feat", "fix", "docs", "style", "refactor", "perf", "test", "build", "ci", "chore", "revert")

# Shorter reasoning-derived messages are not meaningful.
MIN_REASONING_MESSAGE_LENGTH = 5

_TYPES = "|".join(CONVENTIONAL_PREFIXES)
_WITH_COLON = re.compile(rf"\b(?:{_TYPES})(?:\([^)\s]*\))?!?:\s*[^.\n]+", re.IGNORECASE)
_WITHOUT_COLON = re.compile(rf"\b({_TYPES})\b\s+([^.\n]+)", re.IGNORECASE)
_SENTENCE_END = re.compile(r"[.!?]")


def derive_message_from_reasoning(text: str) -> Optional[str]:
    """Derive a commit message from free-form reasoning text.

    Returns
    -------
    Optional[str]
        ``type: subject`` when the reasoning mentions a conventional type
        (a missing colon is inserted), otherwise the first sentence.
        ``None`` when nothing of at least five characters remains.
    """
    cleaned = re.sub(r"\s+", " ", text).strip()
    if not cleaned:
        return None
    match = _WITH_COLON.search(cleaned)
    if match:
        candidate = match.group(0)
    else:
        bare = _WITHOUT_COLON.search(cleaned)
        if bare:
            candidate = f"{bare.group(1).lower()}: {bare.group(2)}"
        else:
            candidate = _SENTENCE_END.split(cleaned, maxsplit=1)[0]
    candidate = sanitize_message(candidate)
    if len(candidate) < MIN_REASONING_MESSAGE_LENGTH:
        return None
    return candidate


def resolve_completion(completion: ChatCompletion) -> List[str]:
    """Return the sanitized message candidates of ``completion``.

    Content of all choices is used when any of it is non-empty. Otherwise
    the first reasoning text that yields a message wins and the result
    holds at most that single candidate.
    """
    messages = [sanitize_message(choice.content) for choice in completion.choices if choice.content]
    messages = deduplicate_messages(message for message in messages if message)
    if messages:
        return messages

    for choice in completion.choices:
        if not choice.reasoning:
            continue
        derived = derive_message_from_reasoning(choice.reasoning)
        if derived:
            logger.debug("Derived commit message from reasoning output")
            return [derived]
    return []
