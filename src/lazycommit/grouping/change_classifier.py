"""
Heuristics for classifying changed files into Conventional Commit types.

The classifier maps a file path to a category and an optional scope. It
is a flat table of rules evaluated top to bottom; the first matching rule
wins. The order is the tie-break policy: specific signals (documentation,
CI workflows, build manifests, test naming conventions) are checked before
broad ones (domain keywords, "anything under ``src/``"), and a final
catch-all guarantees that every path gets exactly one category.

Only the path is inspected, so the classifier is deterministic and can be
unit tested without a repository.
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Callable, NamedTuple, Optional, Tuple


class Classification(NamedTuple):
    """Category and optional scope assigned to a path."""

    category: str
    scope: Optional[str] = None


class _PathInfo(NamedTuple):
    path: str
    parts: Tuple[str, ...]  # lower-cased directory segments
    name: str  # lower-cased file name
    suffix: str  # lower-cased extension including the dot


class _Rule(NamedTuple):
    name: str
    matches: Callable[[_PathInfo], bool]
    category: str
    scope: Callable[[_PathInfo], Optional[str]]


DOC_EXTENSIONS = {".md", ".mdx", ".rst", ".adoc", ".markdown"}
DOC_DIRECTORIES = {"docs", "doc", "documentation"}
DOC_NAMES = ("readme", "changelog", "license", "contributing", "authors", "code_of_conduct")

CI_DIRECTORIES = {".github", ".circleci", ".buildkite"}
CI_NAMES = {".gitlab-ci.yml", ".travis.yml", "jenkinsfile", "azure-pipelines.yml", "bitbucket-pipelines.yml", "appveyor.yml"}

DEPENDENCY_MANIFESTS = {
    "package.json",
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "requirements.txt",
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "pipfile",
    "pipfile.lock",
    "poetry.lock",
    "cargo.toml",
    "cargo.lock",
    "go.mod",
    "go.sum",
    "gemfile",
    "gemfile.lock",
    "pom.xml",
    "build.gradle",
    "build.gradle.kts",
    "composer.json",
}
BUILD_CONFIG_NAMES = {
    "dockerfile",
    "makefile",
    "cmakelists.txt",
    ".dockerignore",
    ".editorconfig",
    ".babelrc",
    ".npmrc",
    ".nvmrc",
    "tox.ini",
    "justfile",
}
BUILD_CONFIG_PREFIXES = (
    "docker-compose",
    "tsconfig",
    ".eslintrc",
    ".prettierrc",
    "webpack.",
    "vite.",
    "rollup.",
    "babel.config",
    "jest.config",
    "vitest.config",
)

TEST_DIRECTORIES = {"tests", "test", "__tests__", "spec", "specs", "e2e"}

# Domain keyword rules: (scope label, directory/file keywords).
DOMAIN_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("auth", ("auth", "authentication", "login", "oauth", "session", "sessions", "jwt")),
    ("api", ("api", "apis", "routes", "endpoints", "controllers", "handlers", "graphql")),
    ("db", ("db", "database", "migrations", "models", "schema", "schemas", "prisma")),
    ("ui", ("ui", "components", "views", "pages", "layouts", "styles", "templates", "widgets")),
    ("utils", ("utils", "util", "helpers", "helper", "common", "shared")),
)
DOMAIN_EXTENSIONS = {".sql": "db", ".css": "ui", ".scss": "ui", ".less": "ui", ".vue": "ui", ".svelte": "ui"}

SOURCE_ROOTS = {"src", "lib", "app", "apps", "pkg", "packages", "internal", "cmd", "source", "server", "client"}
SOURCE_EXTENSIONS = {
    ".py", ".js", ".jsx", ".ts", ".tsx", ".mjs", ".cjs", ".go", ".rs", ".java", ".kt",
    ".c", ".h", ".cc", ".cpp", ".hpp", ".cs", ".rb", ".php", ".swift", ".scala",
}


def _info(file_path: str) -> _PathInfo:
    normalized = file_path.replace("\\", "/").strip()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    path = PurePosixPath(normalized)
    parts = tuple(part.lower() for part in path.parts[:-1])
    return _PathInfo(path=normalized, parts=parts, name=path.name.lower(), suffix=path.suffix.lower())


def _no_scope(_: _PathInfo) -> Optional[str]:
    return None


def _constant(scope: str) -> Callable[[_PathInfo], Optional[str]]:
    return lambda _: scope


def _is_docs(info: _PathInfo) -> bool:
    if info.suffix in DOC_EXTENSIONS:
        return True
    if info.parts and info.parts[0] in DOC_DIRECTORIES:
        return True
    return info.name.startswith(DOC_NAMES) and info.suffix in {"", ".txt"}


def _is_ci(info: _PathInfo) -> bool:
    if info.parts and info.parts[0] in CI_DIRECTORIES:
        return True
    return info.name in CI_NAMES


def _is_dependency_manifest(info: _PathInfo) -> bool:
    if info.name in DEPENDENCY_MANIFESTS:
        return True
    return info.name.startswith("requirements") and info.suffix in {".txt", ".in"}


def _is_build_config(info: _PathInfo) -> bool:
    if info.name in BUILD_CONFIG_NAMES:
        return True
    if info.name.startswith(BUILD_CONFIG_PREFIXES):
        return True
    return ".config." in info.name


def _is_test(info: _PathInfo) -> bool:
    if any(part in TEST_DIRECTORIES for part in info.parts):
        return True
    stem = info.name[: -len(info.suffix)] if info.suffix else info.name
    if stem.startswith("test_") or stem.endswith(("_test", "_tests", "_spec")):
        return True
    return stem.endswith((".test", ".spec"))


def _domain_scope(info: _PathInfo) -> Optional[str]:
    stem = info.name[: -len(info.suffix)] if info.suffix else info.name
    tokens = set(info.parts)
    tokens.add(stem)
    for scope, keywords in DOMAIN_KEYWORDS:
        if tokens.intersection(keywords):
            return scope
    return DOMAIN_EXTENSIONS.get(info.suffix)


def _is_domain(info: _PathInfo) -> bool:
    return _domain_scope(info) is not None


def _is_source(info: _PathInfo) -> bool:
    if info.parts and info.parts[0] in SOURCE_ROOTS:
        return True
    return info.suffix in SOURCE_EXTENSIONS


def _source_scope(info: _PathInfo) -> Optional[str]:
    # src/<scope>/... ; files directly under the root have no scope
    if len(info.parts) >= 2 and info.parts[0] in SOURCE_ROOTS:
        return info.parts[1]
    return None


RULES: Tuple[_Rule, ...] = (
    _Rule("documentation", _is_docs, "docs", _constant("docs")),
    _Rule("continuous-integration", _is_ci, "ci", _constant("ci")),
    _Rule("dependencies", _is_dependency_manifest, "build", _constant("deps")),
    _Rule("build-config", _is_build_config, "build", _constant("config")),
    _Rule("test", _is_test, "test", _no_scope),
    _Rule("domain", _is_domain, "feat", _domain_scope),
    _Rule("source", _is_source, "feat", _source_scope),
    _Rule("maintenance", lambda _: True, "chore", _no_scope),
)


def classify_change(file_path: str) -> Classification:
    """Classify a changed file into a Conventional Commit category.

    Parameters
    ----------
    file_path : str
        Path to the changed file relative to the repository root.

    Returns
    -------
    Classification
        ``category`` is one of ``feat``, ``test``, ``docs``, ``build``,
        ``ci`` or ``chore``; ``scope`` is a short label or ``None``.
    """
    info = _info(file_path)
    for rule in RULES:
        if rule.matches(info):
            return Classification(rule.category, rule.scope(info))
    # The last rule always matches.
    raise AssertionError("classification rules are not exhaustive")
