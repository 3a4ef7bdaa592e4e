"""
Clean-up of generated commit messages.

Language models wrap answers in quotes, add line breaks and end
sentences with a period; none of that belongs in a one-line commit
message. This module sanitizes raw text, removes duplicate candidates and
shortens messages that overshoot the configured maximum length at the
most natural boundary available.
"""

from __future__ import annotations

import re
from typing import Iterable, List


# Opening quote -> closing quote.
QUOTE_PAIRS = {
    '"': '"',
    "'": "'",
    "`": "`",
    "“": "”",
    "‘": "’",
}

# Messages at most this many characters over the limit are left alone.
LENGTH_TOLERANCE = 5
# A hard cut only gets an ellipsis when this much text is dropped.
ELLIPSIS_THRESHOLD = 10
ELLIPSIS = "..."

SENTENCE_CUT_RATIO = 0.7
CLAUSE_CUT_RATIO = 0.6
WORD_CUT_RATIO = 0.5

_NEWLINES = re.compile(r"\s*[\r\n]+\s*")
_TRAILING_PERIOD = re.compile(r"(\w)\.$")
_APOSTROPHE = re.compile(r"(?<=\w)['’](?=\w)")


def _wrapped_in_quotes(message: str) -> bool:
    closing = QUOTE_PAIRS.get(message[0])
    if closing is None or message[-1] != closing:
        return False
    # "'Foo' and 'Bar'" starts and ends with a quote but is not wrapped
    inner = _APOSTROPHE.sub("", message[1:-1])
    return message[0] not in inner and closing not in inner


def _unwrap_quotes(message: str) -> str:
    while len(message) >= 2 and _wrapped_in_quotes(message):
        message = message[1:-1].strip()
    return message


def sanitize_message(message: str) -> str:
    """Trim, unwrap quotes, join lines and drop a single trailing period.

    The period is only removed after a word character so that ellipses
    and similar punctuation survive.
    """
    message = _NEWLINES.sub(" ", message.strip())
    message = _unwrap_quotes(message)
    return _TRAILING_PERIOD.sub(r"\1", message)


def deduplicate_messages(messages: Iterable[str]) -> List[str]:
    """Drop repeated messages, keeping the first occurrence of each."""
    return list(dict.fromkeys(messages))


def _last_index(message: str, characters: str, limit: int) -> int:
    return max(message.rfind(character, 0, limit) for character in characters)


def enforce_max_length(message: str, max_length: int, tolerance: int = LENGTH_TOLERANCE) -> str:
    """Shorten ``message`` to ``max_length`` at the best boundary available.

    Messages no more than ``tolerance`` characters over the limit are
    returned unchanged. Otherwise the cut is made, in order of
    preference, after the last sentence end found in the budget if it lies
    beyond 70% of it, before the last clause separator beyond 60%, at the
    last space beyond 50%, or hard at the limit with an ellipsis when a
    substantial part of the text is dropped.
    """
    if max_length <= 0 or len(message) <= max_length + tolerance:
        return message

    sentence_end = _last_index(message, ".!?", max_length)
    if sentence_end >= max_length * SENTENCE_CUT_RATIO:
        return message[: sentence_end + 1]

    clause_end = _last_index(message, ",;:", max_length)
    if clause_end >= max_length * CLAUSE_CUT_RATIO:
        return message[:clause_end].rstrip()

    word_end = message.rfind(" ", 0, max_length + 1)
    if word_end >= max_length * WORD_CUT_RATIO:
        return message[:word_end].rstrip()

    if len(message) - max_length > ELLIPSIS_THRESHOLD and max_length > len(ELLIPSIS):
        return message[: max_length - len(ELLIPSIS)].rstrip() + ELLIPSIS
    return message[:max_length].rstrip()


def postprocess_message(message: str, max_length: int) -> str:
    """Sanitize and length-enforce a single message.

    Applying this function to its own output returns the output unchanged.
    """
    return sanitize_message(enforce_max_length(sanitize_message(message), max_length))


def finalize_messages(messages: Iterable[str], max_length: int) -> List[str]:
    """Post-process candidates and drop empty and duplicate ones."""
    processed = (postprocess_message(message, max_length) for message in messages if message)
    return deduplicate_messages(message for message in processed if message)
