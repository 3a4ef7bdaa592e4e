"""
Command line interface for lazycommit.

This module defines the ``main`` function which is used as the entry
point of the ``lazycommit`` command. It checks the repository, loads the
configuration, reads the staged change set, lets the
:class:`CommitMessageGenerator` write one message (or one message per
commit group with ``--split``) and commits. Exit codes follow the table
below so that scripts can tell failures apart.
"""

from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path
from typing import List, Optional, Tuple

import click

from lazycommit import __version__
from lazycommit.config.loader import ConfigError, load_config
from lazycommit.diff.summary import analysis_reason
from lazycommit.grouping.group_model import CommitGroup
from lazycommit.grouping.grouper import group_changes
from lazycommit.llm.commit_message_generator import (
    CommitMessageGenerator,
    SynthesisError,
    SynthesisInput,
    SynthesisOptions,
)
from lazycommit.llm.groq_client import GroqClient, LLMConnectionError, LLMError
from lazycommit.vcs.git_client import GitClient, GitError, NotARepositoryError

# Create a module-level logger. Attach a null handler and disable
# propagation to avoid logging errors when the root logger's stream is
# closed (such as during unit tests). When logging is configured by
# the CLI, root handlers will be added and messages will propagate.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_LLM_FAILURE = 7
EXIT_ALL_DECLINED = 8

SNIPPET_FILES = 5


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Simple progress indicator for user feedback."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"⠋ {self.message}...", nl=False)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time
        mark = "✗" if exc_type else "✓"
        click.echo(f"\r{mark} {self.message} (took {elapsed:.1f}s)")
        return False


def print_info(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}")


def print_success(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}")


def print_warning(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}")


def print_error(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


def detected_message(files: List[str]) -> str:
    return f"Detected {len(files):,} staged file{'s' if len(files) != 1 else ''}"


# ---------------------------------------------------------------------------
# Core functionality
# ---------------------------------------------------------------------------

def choose_message(messages: List[str], yes: bool) -> Optional[str]:
    """Let the user pick one of the generated messages and confirm it.

    Returns ``None`` when the user declines.
    """
    if yes:
        return messages[0]
    if len(messages) == 1:
        message = messages[0]
    else:
        click.echo("\nPick a commit message to use:")
        for index, candidate in enumerate(messages, start=1):
            click.echo(f"   {index}. {candidate}")
        choice = click.prompt("   Choice", type=click.IntRange(1, len(messages)), default=1)
        message = messages[choice - 1]
    if not click.confirm(f"\n   Proceed with this commit message?\n\n   {message}\n", default=True):
        return None
    return message


def commit_groups(client: GitClient, groups: List[CommitGroup], yes: bool) -> int:
    """Commit each accepted group from a snapshot of the index.

    The staged content is captured once, every group is committed from
    that snapshot and afterwards whatever was not committed (declined
    groups, excluded files) is staged again, also when a commit fails.

    Returns the number of commits created.
    """
    source_tree = client.snapshot_index()
    committed = 0
    try:
        for index, group in enumerate(groups, start=1):
            click.echo(f"\n📦 Commit group {index}/{len(groups)} [{group.label}] - {len(group.files)} file(s)")
            message = choose_message([group.message or group.fallback_message()], yes)
            if message is None:
                print_warning("Declined commit group")
                continue
            client.commit_files(message, group.files, source_tree)
            committed += 1
            print_success(f"Committed: {message}")
    finally:
        client.restore_index(source_tree)
    return committed


def build_input(client: GitClient, files: List[str], diff: str) -> SynthesisInput:
    stats = client.get_file_stats(files)
    file_diffs = client.get_file_diffs(files[:SNIPPET_FILES])
    return SynthesisInput(files=files, diff=diff, file_stats=stats, file_diffs=file_diffs)


def build_generator(config: dict) -> CommitMessageGenerator:
    client = GroqClient(
        api_key=config["api_key"],
        model=config["model"],
        timeout=float(config["timeout"]),
        proxy=config.get("proxy"),
    )
    options = SynthesisOptions(
        locale=config["locale"],
        max_length=config["max_length"],
        completions=config["generate"],
        commit_type=config["type"],
    )
    return CommitMessageGenerator(client, options)


@click.command(context_settings={"ignore_unknown_options": True})
@click.option("-g", "--generate", type=click.IntRange(1, 5), help="Number of messages to generate.")
@click.option("-x", "--exclude", multiple=True, help="Files to exclude from the analysis.")
@click.option("-a", "--all", "stage_all", is_flag=True, help="Stage all tracked modifications first.")
@click.option("-t", "--type", "commit_type", type=click.Choice(["plain", "conventional"]), help="Commit message style.")
@click.option("-s", "--split", is_flag=True, help="Group the changes and create one commit per group.")
@click.option("-y", "--yes", is_flag=True, help="Use the first generated message without prompting.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="lazycommit")
@click.argument("git_args", nargs=-1, type=click.UNPROCESSED)
def main(
    generate: Optional[int],
    exclude: Tuple[str, ...],
    stage_all: bool,
    commit_type: Optional[str],
    split: bool,
    yes: bool,
    verbose: bool,
    git_args: Tuple[str, ...],
) -> None:
    """Generate commit messages for staged changes with AI.

    Extra arguments are passed on to ``git commit``.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )

    try:
        try:
            repo_root = GitClient.assert_repo(Path.cwd())
        except NotARepositoryError as exc:
            print_error(str(exc))
            raise click.exceptions.Exit(EXIT_NO_REPO)
        client = GitClient(repo_root)

        try:
            config = load_config(
                {
                    "generate": generate,
                    "type": None if commit_type is None else ("" if commit_type == "plain" else commit_type),
                }
            )
        except ConfigError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)

        try:
            if stage_all:
                client.stage_all()
            with ProgressIndicator("Detecting staged files"):
                staged = client.get_staged_diff(list(exclude))
            if staged is None:
                print_warning(
                    "No staged changes found. Stage your changes manually, "
                    "or automatically stage all changes with the `--all` flag."
                )
                raise click.exceptions.Exit(EXIT_NO_CHANGES)
            changes = build_input(client, staged.files, staged.diff)
        except GitError as exc:
            print_error(f"Git error: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        print_success(detected_message(staged.files))
        for file in staged.files:
            print_info(file, indent=1)
        reason = analysis_reason(staged.diff, staged.files, changes.file_stats)
        if reason:
            total = sum(stat.changes for stat in changes.file_stats)
            print_info(f"{reason} ({total:,} changes) - using enhanced analysis for a better commit message")

        generator = build_generator(config)
        groups = []
        messages: List[str] = []
        try:
            if split:
                groups = group_changes(changes.file_stats or staged.files)
                with ProgressIndicator(f"Generating messages for {len(groups)} commit group(s)"):
                    groups = asyncio.run(generator.generate_for_groups(groups, changes))
            else:
                with ProgressIndicator("The AI is analyzing your changes"):
                    messages = asyncio.run(generator.generate(changes))
        except LLMConnectionError as exc:
            print_error(str(exc))
            raise click.exceptions.Exit(EXIT_LLM_FAILURE)
        except (LLMError, SynthesisError) as exc:
            print_error(f"Failed to generate commit message: {exc}")
            raise click.exceptions.Exit(EXIT_LLM_FAILURE)

        try:
            if split:
                committed = commit_groups(client, groups, yes)
                if not committed:
                    print_warning("All commit groups were declined; no changes committed.")
                    raise click.exceptions.Exit(EXIT_ALL_DECLINED)
            else:
                message = choose_message(messages, yes)
                if message is None:
                    print_warning("Commit cancelled")
                    raise click.exceptions.Exit(EXIT_ALL_DECLINED)
                client.commit(message, git_args)
                print_success("Successfully committed!")
        except GitError as exc:
            print_error(f"Failed to commit changes: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        raise
    except click.exceptions.Abort:
        raise
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        raise click.exceptions.Exit(EXIT_GENERIC_ERROR)
