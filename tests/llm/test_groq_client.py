import asyncio
import json
import threading
import unittest
from types import SimpleNamespace
from unittest.mock import patch

import requests

from lazycommit.llm.groq_client import (
    GroqClient,
    LLMCapacityError,
    LLMConnectionError,
    LLMError,
    LLMServerError,
    LLMTimeoutError,
    strip_thinking_tags,
)


class DummyResponse(SimpleNamespace):
    def json(self):
        return json.loads(self.text)


def completion_body(*contents, reasoning=None) -> str:
    choices = []
    for content in contents:
        message = {"role": "assistant", "content": content}
        if reasoning is not None:
            message["reasoning"] = reasoning
        choices.append({"index": 0, "message": message})
    return json.dumps({"choices": choices})


MESSAGES = [{"role": "user", "content": "diff"}]


class TestGroqClientRequest(unittest.TestCase):
    def test_payload_and_headers(self) -> None:
        captured = {}

        def fake_post(url, *_args, **kwargs):
            captured["url"] = url
            captured.update(kwargs)
            return DummyResponse(status_code=200, text=completion_body("feat: add parser"))

        with patch("requests.post", fake_post):
            client = GroqClient("secret", "openai/gpt-oss-20b", timeout=3.0, proxy="http://proxy:8080")
            completion = asyncio.run(client.create_chat_completion(MESSAGES, max_tokens=800))

        self.assertEqual([choice.content for choice in completion.choices], ["feat: add parser"])
        self.assertEqual(captured["url"], "https://api.groq.com/openai/v1/chat/completions")
        self.assertEqual(captured["headers"], {"Authorization": "Bearer secret"})
        self.assertEqual(captured["timeout"], 3.0)
        self.assertEqual(captured["proxies"], {"http": "http://proxy:8080", "https": "http://proxy:8080"})
        payload = captured["json"]
        self.assertEqual(payload["model"], "openai/gpt-oss-20b")
        self.assertEqual(payload["max_tokens"], 800)
        self.assertEqual(payload["n"], 1)
        self.assertEqual(payload["temperature"], 0.7)
        self.assertEqual(payload["top_p"], 1.0)
        self.assertEqual(payload["messages"], MESSAGES)

    def test_reasoning_field_is_kept(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text=completion_body("", reasoning="fix: handle empty input"))

        with patch("requests.post", fake_post):
            completion = GroqClient("k", "m").complete({"messages": []})
        self.assertEqual(completion.choices[0].content, "")
        self.assertEqual(completion.choices[0].reasoning, "fix: handle empty input")

    def test_thinking_tags_move_to_reasoning(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text=completion_body("<think>look at diff</think>docs: fix typo"))

        with patch("requests.post", fake_post):
            completion = GroqClient("k", "m").complete({"messages": []})
        self.assertEqual(completion.choices[0].content, "docs: fix typo")
        self.assertEqual(completion.choices[0].reasoning, "look at diff")

    def test_invalid_json(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text="not json")

        with patch("requests.post", fake_post):
            with self.assertRaises(LLMError):
                GroqClient("k", "m").complete({"messages": []})

    def test_missing_choices(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=200, text=json.dumps({"id": "x"}))

        with patch("requests.post", fake_post):
            with self.assertRaises(LLMError):
                GroqClient("k", "m").complete({"messages": []})


class TestGroqClientErrors(unittest.TestCase):
    def _error_for(self, status: int, text: str) -> LLMError:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=status, text=text)

        with patch("requests.post", fake_post):
            with self.assertRaises(LLMError) as ctx:
                GroqClient("k", "m").complete({"messages": []})
        return ctx.exception

    def test_too_large_and_rate_limited_are_capacity_errors(self) -> None:
        self.assertIsInstance(self._error_for(413, "Request Entity Too Large"), LLMCapacityError)
        self.assertIsInstance(self._error_for(429, "slow down"), LLMCapacityError)
        body = json.dumps({"error": {"message": "Please reduce the length", "code": "context_length_exceeded"}})
        error = self._error_for(400, body)
        self.assertIsInstance(error, LLMCapacityError)
        self.assertIn("Please reduce the length", str(error))
        self.assertIn("--exclude", str(error))

    def test_server_error(self) -> None:
        error = self._error_for(503, "overloaded")
        self.assertIsInstance(error, LLMServerError)
        self.assertIn("503", str(error))

    def test_other_status_is_plain_error(self) -> None:
        error = self._error_for(401, json.dumps({"error": {"message": "Invalid API Key"}}))
        self.assertIs(type(error), LLMError)
        self.assertIn("Invalid API Key", str(error))

    def test_timeout(self) -> None:
        def fake_post(url, *_args, **kwargs):
            raise requests.Timeout("read timed out")

        with patch("requests.post", fake_post):
            with self.assertRaises(LLMTimeoutError):
                GroqClient("k", "m").complete({"messages": []})

    def test_connection_error_names_host(self) -> None:
        def fake_post(url, *_args, **kwargs):
            raise requests.ConnectionError("name resolution failed")

        with patch("requests.post", fake_post):
            with self.assertRaises(LLMConnectionError) as ctx:
                GroqClient("k", "m").complete({"messages": []})
        self.assertEqual(ctx.exception.host, "api.groq.com")
        self.assertIn("Error connecting to api.groq.com", str(ctx.exception))


class TestGroqClientFanOut(unittest.TestCase):
    def test_merges_parallel_completions(self) -> None:
        lock = threading.Lock()
        calls = []

        def fake_post(url, *_args, **kwargs):
            with lock:
                calls.append(kwargs["json"]["n"])
                index = len(calls)
            return DummyResponse(status_code=200, text=completion_body(f"feat: option {index}"))

        with patch("requests.post", fake_post):
            completion = asyncio.run(GroqClient("k", "m").create_chat_completion(MESSAGES, max_tokens=200, n=3))

        self.assertEqual(calls, [1, 1, 1])
        self.assertEqual(
            sorted(choice.content for choice in completion.choices),
            ["feat: option 1", "feat: option 2", "feat: option 3"],
        )

    def test_partial_failure_keeps_successes(self) -> None:
        lock = threading.Lock()
        calls = []

        def fake_post(url, *_args, **kwargs):
            with lock:
                calls.append(url)
                index = len(calls)
            if index == 2:
                return DummyResponse(status_code=500, text="boom")
            return DummyResponse(status_code=200, text=completion_body("fix: something"))

        with patch("requests.post", fake_post):
            completion = asyncio.run(GroqClient("k", "m").create_chat_completion(MESSAGES, max_tokens=200, n=3))

        self.assertEqual(len(calls), 3)
        self.assertEqual([choice.content for choice in completion.choices], ["fix: something", "fix: something"])

    def test_all_failures_raise(self) -> None:
        def fake_post(url, *_args, **kwargs):
            return DummyResponse(status_code=429, text="rate_limit_exceeded")

        with patch("requests.post", fake_post):
            with self.assertRaises(LLMCapacityError):
                asyncio.run(GroqClient("k", "m").create_chat_completion(MESSAGES, max_tokens=200, n=2))


class TestStripThinkingTags(unittest.TestCase):
    def test_strip(self) -> None:
        self.assertEqual(strip_thinking_tags("<think>reasoning...</think>Answer"), ("Answer", "reasoning..."))
        self.assertEqual(strip_thinking_tags("<Thinking>a</Thinking> b <reasoning>c</reasoning>"), ("b", "a\nc"))
        self.assertEqual(strip_thinking_tags("plain"), ("plain", ""))


if __name__ == "__main__":
    unittest.main()
