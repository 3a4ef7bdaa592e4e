"""
Language model integration for lazycommit.

This package contains the :class:`GroqClient` for communicating with the
Groq chat completions API and the :class:`CommitMessageGenerator`, which
selects how much of the change set to send, falls back to cheaper
representations when a request fails, and post-processes the result.
"""

from .groq_client import GroqClient, LLMConnectionError, LLMError  # noqa: F401
from .commit_message_generator import (  # noqa: F401
    CommitMessageGenerator,
    SynthesisError,
    SynthesisInput,
    SynthesisOptions,
)
