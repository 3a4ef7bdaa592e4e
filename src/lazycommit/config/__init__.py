"""
Configuration loading for lazycommit.

Merges the optional ``~/.lazycommit/config.json`` file, environment
variables and command line overrides. See
:mod:`lazycommit.config.loader` for implementation details.
"""

from .loader import ConfigError, load_config  # noqa: F401
