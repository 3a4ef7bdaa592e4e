"""
Configuration loader for lazycommit.

Settings are read from an optional JSON file named ``config.json`` in the
``~/.lazycommit/`` directory, then overridden by environment variables
(``GROQ_API_KEY``, ``LAZYCOMMIT_MODEL`` and the usual proxy variables) and
finally by command line options. The merged configuration is validated
and returned as a dictionary.

If the configuration file is malformed, the API key is missing, or a
field has the wrong type, a :class:`ConfigError` is raised.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings or logging errors in
# environments where the root logger may be closed. Propagation is turned
# off until the CLI configures logging.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILE_NAME = "config.json"

DEFAULTS: Dict[str, Any] = {
    "model": "openai/gpt-oss-20b",
    "locale": "en",
    "max_length": 100,
    "generate": 1,
    "type": "",
    "timeout": 10.0,
    "proxy": None,
}

COMMIT_TYPES = ("", "conventional")
MIN_MAX_LENGTH = 20
MAX_GENERATE = 5

PROXY_VARIABLES = ("https_proxy", "HTTPS_PROXY", "http_proxy", "HTTP_PROXY")


class ConfigError(Exception):
    """Raised when the configuration is missing or invalid."""

    pass


def _get_config_directory() -> Path:
    """Return the directory holding the lazycommit configuration (``~/.lazycommit``)."""
    return Path.home() / ".lazycommit"


def _read_config_file(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        logger.debug("No configuration file at %s; using defaults", config_path)
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {config_path.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path.name} must contain a JSON object")
    return data


def _from_environment(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    if environ.get("GROQ_API_KEY"):
        values["api_key"] = environ["GROQ_API_KEY"]
    if environ.get("LAZYCOMMIT_MODEL"):
        values["model"] = environ["LAZYCOMMIT_MODEL"]
    for name in PROXY_VARIABLES:
        if environ.get(name):
            values["proxy"] = environ[name]
            break
    return values


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _validate(data: Dict[str, Any]) -> None:
    if not data.get("api_key"):
        raise ConfigError(
            "Missing Groq API key. Set the GROQ_API_KEY environment variable "
            f"or add 'api_key' to {_get_config_directory() / CONFIG_FILE_NAME}"
        )
    if not isinstance(data["api_key"], str):
        raise ConfigError("'api_key' must be a string")
    for key in ("model", "locale"):
        if not isinstance(data.get(key), str) or not data[key]:
            raise ConfigError(f"'{key}' must be a non-empty string")
    if not _is_int(data.get("max_length")) or data["max_length"] < MIN_MAX_LENGTH:
        raise ConfigError(f"'max_length' must be an integer of at least {MIN_MAX_LENGTH}")
    if not _is_int(data.get("generate")) or not 1 <= data["generate"] <= MAX_GENERATE:
        raise ConfigError(f"'generate' must be an integer between 1 and {MAX_GENERATE}")
    if data.get("type") not in COMMIT_TYPES:
        raise ConfigError("'type' must be empty or 'conventional'")
    timeout = data.get("timeout")
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError("'timeout' must be a positive number of seconds")
    if data.get("proxy") is not None and not isinstance(data["proxy"], str):
        raise ConfigError("'proxy' must be a string")


def load_config(
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """Load, merge and validate the lazycommit configuration.

    Args:
        overrides: Values from the command line. ``None`` values are ignored.
        environ: Environment to read; defaults to ``os.environ``.

    Returns:
        A dictionary with the keys ``api_key``, ``model``, ``locale``,
        ``max_length``, ``generate``, ``type``, ``timeout`` (seconds) and
        ``proxy``.

    Raises:
        ConfigError: If the configuration file is malformed or a value is
            missing or invalid.
    """
    config_path = _get_config_directory() / CONFIG_FILE_NAME
    data: Dict[str, Any] = dict(DEFAULTS)
    data.update(_read_config_file(config_path))
    data.update(_from_environment(os.environ if environ is None else environ))
    data.update({key: value for key, value in (overrides or {}).items() if value is not None})

    _validate(data)
    logger.debug("Loaded configuration (model=%s, locale=%s, type=%r)", data["model"], data["locale"], data["type"])
    return data
