"""
Top-level package for lazycommit.

lazycommit writes commit messages for staged Git changes with a language
model. The CLI entry point lives in :mod:`lazycommit.cli`.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
