"""
Instruction texts sent to the language model.

The system prompt carries the fixed guidance (imperative mood, length
ceiling, language, output format and, in conventional mode, the list of
allowed types). The user prompts wrap whichever representation of the
change set the generator selected: a diff chunk, a statistical summary, a
bare file list, or the list of per-chunk messages to combine.
"""

from __future__ import annotations

import json
from textwrap import dedent
from typing import Dict, Optional, Sequence


COMMIT_TYPE_FORMATS: Dict[str, str] = {
    "": "<commit message>",
    "conventional": "<type>(<optional scope>): <commit message>",
}

CONVENTIONAL_TYPES: Dict[str, str] = {
    "feat": "A new feature for the user",
    "fix": "A bug fix",
    "docs": "Documentation only changes",
    "style": "Changes that do not affect the meaning of the code (white-space, formatting, missing semi-colons, etc)",
    "refactor": "A code change that neither fixes a bug nor adds a feature",
    "perf": "A code change that improves performance",
    "test": "Adding missing tests or correcting existing tests",
    "build": "Changes that affect the build system or external dependencies",
    "ci": "Changes to our CI configuration files and scripts",
    "chore": "Other changes that don't modify src or test files",
    "revert": "Reverts a previous commit",
}


def _commit_type_guidelines(commit_type: str) -> str:
    if commit_type != "conventional":
        return ""
    return (
        "\n## Commit Type Guidelines:\n"
        "Choose the most appropriate type from the following categories that best describes the git diff:\n\n"
        f"{json.dumps(CONVENTIONAL_TYPES, indent=2)}\n\n"
        "IMPORTANT: Use the exact type name from the list above.\n"
    )


def generate_prompt(locale: str, max_length: int, commit_type: str = "") -> str:
    """Return the system prompt for commit message generation."""
    output_format = COMMIT_TYPE_FORMATS.get(commit_type, COMMIT_TYPE_FORMATS[""])
    prompt = dedent(
        f"""
        You are an expert software engineer and git commit message writer. Your task is to analyze git changes and generate clear, concise, and professional commit messages.

        ## Instructions:
        1. Analyze the provided changes carefully
        2. Identify the primary purpose and impact of the changes
        3. Generate a commit message that clearly describes what was changed and why
        4. Use present tense, imperative mood (e.g., "Add feature" not "Added feature")
        5. Be specific about what changed, not just how it changed

        ## Quality Guidelines:
        - Be concise but descriptive
        - Avoid vague terms like "update", "change", "fix stuff"
        - For bug fixes, briefly describe what was broken
        - For features, describe what functionality was added

        ## Language: {locale}
        ## Maximum length: {max_length} characters
        ## Output format: {output_format}
        """
    ).strip()
    guidelines = _commit_type_guidelines(commit_type)
    if guidelines:
        prompt += "\n" + guidelines
    prompt += (
        "\nRemember: Your response will be used directly as the git commit message. "
        "Return only the commit message line, no explanations."
    )
    return prompt


def build_chunk_prompt(chunk: str, max_length: int, position: Optional[int] = None, total: Optional[int] = None) -> str:
    part = f" (part {position} of {total})" if position and total else ""
    return (
        f"Analyze this git diff{part} and propose a concise commit message limited to {max_length} characters. "
        f"Focus on the most significant intent of the change.\n\n{chunk}"
    )


def build_combine_prompt(messages: Sequence[str]) -> str:
    numbered = "\n".join(f"{index}. {message}" for index, message in enumerate(messages, start=1))
    return (
        f"I have {len(messages)} commit messages for different parts of a large change:\n\n"
        f"{numbered}\n\n"
        "Please generate a single, comprehensive commit message that captures the overall changes.\n"
        "The message should be concise but cover the main aspects of all the changes."
    )


def build_summary_prompt(
    summary: str,
    max_length: int,
    commit_type: str = "",
    snippets: str = "",
    groups: str = "",
) -> str:
    """Prompt describing a change set through its statistical summary."""
    sections = ["Analyze the following git changes and generate a single, complete commit message.", "", "CHANGES SUMMARY:", summary]
    if groups:
        sections += ["", "CHANGE AREAS:", groups]
    if snippets:
        sections += ["", "CODE CONTEXT:", snippets]
    requirements = [
        "",
        "TASK: Write ONE commit message that accurately describes what was changed.",
        "",
        "REQUIREMENTS:",
    ]
    if commit_type == "conventional":
        requirements.append("- Format: type: subject")
    requirements += [
        f"- Maximum {max_length} characters",
        "- Be specific and descriptive",
        "- Use imperative mood, present tense",
        "- Include the main component/area affected",
        "- Complete the message - never truncate mid-sentence",
        "",
        "Return only the commit message line, no explanations.",
    ]
    return "\n".join(sections + requirements)


def build_file_list_prompt(files: Sequence[str], max_length: int) -> str:
    listing = "\n".join(f"- {file}" for file in files)
    return (
        f"Generate a single, concise commit message (<= {max_length} chars) "
        f"summarizing changes across these files:\n{listing}"
    )


def build_group_hint(category: str, scope: Optional[str]) -> str:
    if scope:
        return f"These changes form one commit of type '{category}' with scope '{scope}'."
    return f"These changes form one commit of type '{category}'."
