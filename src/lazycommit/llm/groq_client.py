"""
Client for the Groq chat completions API.

This client wraps HTTP requests to Groq's OpenAI compatible
``/chat/completions`` endpoint. Each physical request asks for a single
completion; :meth:`GroqClient.create_chat_completion` fans out ``n``
requests concurrently and merges their choices because the backend does
not return several completions for one request.

Failures are mapped to the :class:`LLMError` hierarchy so that the caller
can tell recoverable conditions (request too large, rate limited, server
overloaded, timed out) from connectivity problems and other errors.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests


logger = logging.getLogger(__name__)
# Attach a null handler to avoid errors when the root logger is missing a
# stream. Messages will still propagate to the root logger if configured.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


GROQ_BASE_URL = "https://api.groq.com/openai/v1"
GROQ_STATUS_URL = "https://console.groq.com/status"

TOO_LARGE_TIP = (
    "Tip: Your diff is too large. Try:\n"
    "1. Commit files in smaller batches\n"
    "2. Exclude large files with --exclude\n"
    "3. Use a different model with a larger context window\n"
    "4. Check if you have build artifacts staged (dist/, .next/, etc.)"
)


class LLMError(Exception):
    """Raised when communication with the language model fails."""

    pass


class LLMCapacityError(LLMError):
    """The request exceeded a size, context or rate limit."""

    pass


class LLMServerError(LLMError):
    """The backend answered with a 5xx status."""

    pass


class LLMTimeoutError(LLMError):
    """The request did not finish within the configured timeout."""

    pass


class LLMConnectionError(LLMError):
    """The backend host could not be reached."""

    def __init__(self, host: str, detail: str = "") -> None:
        self.host = host
        message = f"Error connecting to {host}. Are you connected to the internet?"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


# Errors the caller may recover from by sending a smaller request.
RECOVERABLE_ERRORS = (LLMCapacityError, LLMServerError, LLMTimeoutError)


def strip_thinking_tags(text: str) -> Tuple[str, str]:
    """Split thinking blocks from a completion.

    Reasoning models may wrap their thought process in ``<think>``,
    ``<thinking>``, ``<thought>`` or ``<reasoning>`` tags inside the
    content.

    Returns
    -------
    Tuple[str, str]
        ``(content, reasoning)``: the text without the tagged blocks and
        the concatenated contents of those blocks.

    Examples
    --------
    >>> strip_thinking_tags("<think>reasoning...</think>Answer")
    ('Answer', 'reasoning...')
    """
    pattern = re.compile(r"<(think|thinking|thought|reasoning)>(.*?)</\1>", re.DOTALL | re.IGNORECASE)
    thoughts = [match.group(2).strip() for match in pattern.finditer(text)]
    content = pattern.sub("", text).strip()
    return content, "\n".join(thought for thought in thoughts if thought)


@dataclass
class Choice:
    """One completion: structured content and optional free-form reasoning."""

    content: Optional[str] = None
    reasoning: Optional[str] = None


@dataclass
class ChatCompletion:
    choices: List[Choice] = field(default_factory=list)


def _parse_choice(raw: Dict[str, Any]) -> Choice:
    message = raw.get("message") or {}
    content = message.get("content")
    reasoning = message.get("reasoning") or message.get("reasoning_content")
    if isinstance(content, str) and "<" in content:
        content, thoughts = strip_thinking_tags(content)
        if thoughts and not reasoning:
            reasoning = thoughts
    return Choice(
        content=content if isinstance(content, str) else None,
        reasoning=reasoning if isinstance(reasoning, str) else None,
    )


@dataclass
class GroqClient:
    """Client for the Groq chat completions API.

    Parameters
    ----------
    api_key : str
        Groq API key.
    model : str
        Model identifier, e.g. ``"openai/gpt-oss-20b"``.
    timeout : float, optional
        Timeout in seconds for each HTTP request. Defaults to 10 seconds.
    proxy : str, optional
        Outbound proxy URL used for both HTTP and HTTPS.
    base_url : str, optional
        API root, overridable for OpenAI compatible servers.
    """

    api_key: str
    model: str
    timeout: float = 10.0
    proxy: Optional[str] = None
    base_url: str = GROQ_BASE_URL

    def _endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}/chat/completions"

    def _host(self) -> str:
        return urlparse(self.base_url).hostname or self.base_url

    def _proxies(self) -> Optional[Dict[str, str]]:
        if not self.proxy:
            return None
        return {"http": self.proxy, "https": self.proxy}

    def _error_for_status(self, status: int, body: str) -> LLMError:
        detail = body
        code = ""
        try:
            error = json.loads(body).get("error") or {}
            detail = error.get("message") or body
            code = str(error.get("code") or error.get("type") or "")
        except (ValueError, AttributeError):
            pass
        message = f"Groq API Error: {status}"
        if detail:
            message += f"\n\n{detail}"
        too_large = status in (413, 429) or "rate_limit_exceeded" in (code + detail) or "context_length" in (code + detail)
        if too_large:
            return LLMCapacityError(f"{message}\n\n{TOO_LARGE_TIP}")
        if status >= 500:
            return LLMServerError(f"{message}\n\nCheck the API status: {GROQ_STATUS_URL}")
        return LLMError(message)

    def complete(self, payload: Dict[str, Any]) -> ChatCompletion:
        """Send one chat completion request and parse the response.

        Raises
        ------
        LLMError
            Or one of its subclasses, if the request fails.
        """
        url = self._endpoint()
        logger.debug(
            "Sending request to %s (model=%s, max_tokens=%s, %d message(s))",
            url,
            payload.get("model"),
            payload.get("max_tokens"),
            len(payload.get("messages", [])),
        )
        try:
            response = requests.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
                proxies=self._proxies(),
            )
        except requests.Timeout as exc:
            logger.error("Request to LLM timed out: %s", exc)
            raise LLMTimeoutError(f"Request timed out after {self.timeout}s") from exc
        except requests.ConnectionError as exc:
            logger.error("Failed to connect to LLM: %s", exc)
            raise LLMConnectionError(self._host()) from exc
        except requests.RequestException as exc:
            logger.error("LLM request failed: %s", exc)
            raise LLMError(str(exc)) from exc
        if response.status_code != 200:
            logger.error("LLM returned non-200 status %s: %s", response.status_code, response.text)
            raise self._error_for_status(response.status_code, response.text)
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Failed to parse LLM response: %s", exc)
            raise LLMError("Failed to parse LLM response") from exc
        choices = data.get("choices") if isinstance(data, dict) else None
        if not isinstance(choices, list):
            raise LLMError("Unexpected response structure from LLM")
        return ChatCompletion(choices=[_parse_choice(choice) for choice in choices if isinstance(choice, dict)])

    async def _complete_async(self, payload: Dict[str, Any]) -> ChatCompletion:
        return await asyncio.to_thread(self.complete, payload)

    async def create_chat_completion(
        self,
        messages: List[Dict[str, str]],
        *,
        max_tokens: int,
        n: int = 1,
        temperature: float = 0.7,
        top_p: float = 1.0,
        frequency_penalty: float = 0.0,
        presence_penalty: float = 0.0,
    ) -> ChatCompletion:
        """Request ``n`` completions for ``messages``.

        ``n`` single-completion requests run concurrently and their choices
        are merged in request order. Failed requests are logged and
        skipped; the call only fails when every request failed, in which
        case the first error is raised.
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
            "top_p": top_p,
            "frequency_penalty": frequency_penalty,
            "presence_penalty": presence_penalty,
            "max_tokens": max_tokens,
            "n": 1,
        }
        if n <= 1:
            return await self._complete_async(payload)

        results = await asyncio.gather(
            *(self._complete_async(dict(payload)) for _ in range(n)),
            return_exceptions=True,
        )
        merged = ChatCompletion()
        errors: List[BaseException] = []
        for result in results:
            if isinstance(result, BaseException):
                logger.warning("One of %d parallel completions failed: %s", n, result)
                errors.append(result)
            else:
                merged.choices.extend(result.choices)
        if errors and len(errors) == len(results):
            raise errors[0]
        return merged
