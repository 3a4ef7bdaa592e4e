"""Tests for commit message generator."""

import asyncio
import unittest
from typing import Any, Dict, List

from lazycommit.diff.partitioner import DiffChunk
from lazycommit.grouping.grouper import group_changes
from lazycommit.llm.commit_message_generator import (
    CommitMessageGenerator,
    SynthesisError,
    SynthesisInput,
    SynthesisOptions,
)
from lazycommit.llm.groq_client import (
    ChatCompletion,
    Choice,
    LLMCapacityError,
    LLMConnectionError,
    LLMError,
    LLMServerError,
)
from lazycommit.vcs.git_client import FileChange


def reply(*contents: str) -> ChatCompletion:
    return ChatCompletion(choices=[Choice(content=content) for content in contents])


def make_file_diff(path: str, body_lines: int = 3, width: int = 20) -> str:
    lines = [
        f"diff --git a/{path} b/{path}",
        f"--- a/{path}",
        f"+++ b/{path}",
        f"@@ -1,{body_lines} +1,{body_lines} @@",
    ]
    lines += [f"+{'x' * width} {i}" for i in range(body_lines)]
    return "\n".join(lines)


class FakeClient:
    """Async stand-in for GroqClient returning queued outcomes in order."""

    def __init__(self, outcomes: List[Any], default: Any = None) -> None:
        self.outcomes = list(outcomes)
        self.default = default if default is not None else ChatCompletion()
        self.calls: List[Dict[str, Any]] = []

    @property
    def user_contents(self) -> List[str]:
        return [call["messages"][-1]["content"] for call in self.calls]

    async def create_chat_completion(self, messages, *, max_tokens, n=1):
        self.calls.append({"messages": messages, "max_tokens": max_tokens, "n": n})
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class TestSynthesisOptions(unittest.TestCase):
    def test_output_token_budget(self) -> None:
        self.assertEqual(SynthesisOptions(max_length=100).max_output_tokens, 800)
        self.assertEqual(SynthesisOptions(max_length=10).max_output_tokens, 200)

    def test_chunk_output_tokens_respect_model_limit(self) -> None:
        generator = CommitMessageGenerator(FakeClient([]))
        self.assertEqual(generator._chunk_output_tokens(DiffChunk(lines=("x",), estimated_tokens=4000)), 800)
        self.assertEqual(generator._chunk_output_tokens(DiffChunk(lines=("x",), estimated_tokens=6000)), 300)
        self.assertEqual(generator._chunk_output_tokens(DiffChunk(lines=("x",), estimated_tokens=7000)), 200)


class TestGenerate(unittest.TestCase):
    def setUp(self) -> None:
        self.small = SynthesisInput(
            files=["src/parser.py"],
            diff=make_file_diff("src/parser.py"),
            file_stats=[FileChange("src/parser.py", 3, 1)],
        )

    def test_small_diff_uses_one_call(self) -> None:
        client = FakeClient([reply('"feat: add parser."')])
        messages = asyncio.run(CommitMessageGenerator(client).generate(self.small))
        self.assertEqual(messages, ["feat: add parser"])
        self.assertEqual(len(client.calls), 1)
        self.assertEqual(client.calls[0]["n"], 1)
        self.assertEqual(client.calls[0]["max_tokens"], 800)
        self.assertEqual(client.calls[0]["messages"][0]["role"], "system")
        self.assertEqual(client.user_contents[0], self.small.diff)

    def test_multiple_completions(self) -> None:
        client = FakeClient([reply("feat: add parser", "feat: add a parser", "feat: add parser")])
        options = SynthesisOptions(completions=3)
        messages = asyncio.run(CommitMessageGenerator(client, options).generate(self.small))
        self.assertEqual(messages, ["feat: add parser", "feat: add a parser"])
        self.assertEqual(client.calls[0]["n"], 3)

    def test_capacity_error_degrades_to_summary(self) -> None:
        client = FakeClient([LLMCapacityError("413"), reply("fix: tighten parser")])
        messages = asyncio.run(CommitMessageGenerator(client).generate(self.small))
        self.assertEqual(messages, ["fix: tighten parser"])
        self.assertEqual(len(client.calls), 2)
        self.assertIn("CHANGES SUMMARY:", client.user_contents[1])
        self.assertIn("Files changed: 1", client.user_contents[1])

    def test_empty_answer_degrades(self) -> None:
        client = FakeClient([reply(""), reply(""), reply("chore: touch parser")])
        messages = asyncio.run(CommitMessageGenerator(client).generate(self.small))
        self.assertEqual(messages, ["chore: touch parser"])
        self.assertIn("- src/parser.py", client.user_contents[2])

    def test_non_recoverable_error_propagates(self) -> None:
        client = FakeClient([LLMError("Groq API Error: 401")])
        with self.assertRaises(LLMError):
            asyncio.run(CommitMessageGenerator(client).generate(self.small))
        self.assertEqual(len(client.calls), 1)

    def test_connection_error_propagates(self) -> None:
        client = FakeClient([LLMConnectionError("api.groq.com")])
        with self.assertRaises(LLMConnectionError):
            asyncio.run(CommitMessageGenerator(client).generate(self.small))

    def test_exhausted_ladder_fails(self) -> None:
        client = FakeClient([], default=LLMServerError("Groq API Error: 503"))
        with self.assertRaises(SynthesisError) as ctx:
            asyncio.run(CommitMessageGenerator(client).generate(self.small))
        self.assertIn("503", str(ctx.exception))
        # full diff, summary and file list; one chunk is not worth chunking
        self.assertEqual(len(client.calls), 3)

    def test_nothing_to_describe(self) -> None:
        client = FakeClient([])
        with self.assertRaises(SynthesisError):
            asyncio.run(CommitMessageGenerator(client).generate(SynthesisInput(files=[], diff="")))
        self.assertEqual(client.calls, [])

    def test_file_list_when_nothing_else_fits(self) -> None:
        client = FakeClient([reply("chore: update assets")])
        changes = SynthesisInput(files=["assets/a.png", "assets/b.png"], diff="")
        messages = asyncio.run(CommitMessageGenerator(client).generate(changes))
        self.assertEqual(messages, ["chore: update assets"])
        self.assertEqual(len(client.calls), 1)
        self.assertIn("- assets/a.png\n- assets/b.png", client.user_contents[0])

    def test_long_message_is_shortened(self) -> None:
        client = FakeClient([reply("feat: " + "word " * 40)])
        messages = asyncio.run(CommitMessageGenerator(client, SynthesisOptions(max_length=50)).generate(self.small))
        self.assertLessEqual(len(messages[0]), 50)


class TestChunkedGeneration(unittest.TestCase):
    def setUp(self) -> None:
        paths = ["src/arrays.py", "src/objects.py", "src/strings.py"]
        diff = "\n".join(make_file_diff(path, body_lines=100, width=100) for path in paths)
        self.changes = SynthesisInput(files=paths, diff=diff)

    def test_chunk_messages_are_combined(self) -> None:
        client = FakeClient(
            [
                reply("feat: parse arrays"),
                reply("feat: parse objects"),
                reply("feat: parse strings"),
                reply("feat: add JSON parser"),
            ]
        )
        messages = asyncio.run(CommitMessageGenerator(client, SynthesisOptions(completions=2)).generate(self.changes))
        self.assertEqual(messages, ["feat: add JSON parser"])
        self.assertEqual(len(client.calls), 4)
        self.assertIn("(part 1 of 3)", client.user_contents[0])
        self.assertIn("I have 3 commit messages", client.user_contents[3])
        self.assertEqual([call["n"] for call in client.calls], [1, 1, 1, 2])

    def test_failed_combination_keeps_chunk_messages(self) -> None:
        client = FakeClient(
            [
                reply("feat: parse arrays"),
                reply("feat: parse objects"),
                reply("feat: parse strings"),
                LLMServerError("502"),
            ]
        )
        messages = asyncio.run(CommitMessageGenerator(client).generate(self.changes))
        self.assertEqual(messages, ["feat: parse arrays", "feat: parse objects", "feat: parse strings"])

    def test_failed_chunk_is_skipped(self) -> None:
        client = FakeClient(
            [
                reply("feat: parse arrays"),
                LLMCapacityError("413"),
                reply("feat: parse strings"),
                reply("feat: add JSON parser"),
            ]
        )
        messages = asyncio.run(CommitMessageGenerator(client).generate(self.changes))
        self.assertEqual(messages, ["feat: add JSON parser"])
        self.assertIn("1. feat: parse arrays\n2. feat: parse strings", client.user_contents[3])


class TestGenerateForGroups(unittest.TestCase):
    def setUp(self) -> None:
        files = ["src/app.py", "docs/guide.md"]
        self.changes = SynthesisInput(
            files=files,
            diff="\n".join(make_file_diff(path) for path in files),
            file_stats=[FileChange("src/app.py", 3, 0), FileChange("docs/guide.md", 3, 0)],
        )
        self.groups = group_changes(self.changes.file_stats)

    def test_each_group_gets_a_message(self) -> None:
        client = FakeClient([reply("feat: add app"), reply("docs: describe app")])
        options = SynthesisOptions(completions=3)
        groups = asyncio.run(CommitMessageGenerator(client, options).generate_for_groups(self.groups, self.changes))
        self.assertEqual([group.message for group in groups], ["feat: add app", "docs: describe app"])
        self.assertEqual([call["n"] for call in client.calls], [1, 1])
        first = client.user_contents[0]
        self.assertTrue(first.startswith("These changes form one commit of type 'feat' with scope 'src'."))
        self.assertIn("src/app.py", first)
        self.assertNotIn("docs/guide.md", first)

    def test_failed_group_uses_fallback(self) -> None:
        client = FakeClient([reply("feat: add app")], default=LLMCapacityError("413"))
        groups = asyncio.run(CommitMessageGenerator(client).generate_for_groups(self.groups, self.changes))
        self.assertEqual(groups[0].message, "feat: add app")
        self.assertEqual(groups[1].message, "docs(docs): update documentation")

    def test_connection_error_aborts(self) -> None:
        client = FakeClient([LLMConnectionError("api.groq.com")])
        with self.assertRaises(LLMConnectionError):
            asyncio.run(CommitMessageGenerator(client).generate_for_groups(self.groups, self.changes))

    def test_group_input_keeps_only_its_own_snippets(self) -> None:
        changes = SynthesisInput(
            files=self.changes.files,
            diff=self.changes.diff,
            file_stats=self.changes.file_stats,
            file_diffs={
                "src/app.py": "@@ -0,0 +1 @@\n+def run_app():",
                "docs/guide.md": "@@ -0,0 +1 @@\n+# Guide",
            },
        )
        docs_group = next(group for group in self.groups if group.category == "docs")
        docs_input = changes.for_group(docs_group)
        self.assertEqual(list(docs_input.file_diffs), ["docs/guide.md"])
        self.assertIn("+# Guide", docs_input.snippets)
        self.assertNotIn("run_app", docs_input.snippets)

        prompt = CommitMessageGenerator(FakeClient([]))._summary_prompt(docs_input)
        self.assertIn("+# Guide", prompt)
        self.assertNotIn("run_app", prompt)


if __name__ == "__main__":
    unittest.main()
