"""
Finn Registry - package registry for the Finn language.

This package provides the registry's authentication core: GitHub OAuth
login, server-side sessions, signed tokens for the command line client,
API keys, and the credential resolver every protected route relies on.
"""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "Finn Registry Contributors"
__license__ = "MIT"
__description__ = "Package registry for the Finn language"

# Core exports
from .core import get_settings, get_logger
from .main import create_app

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
    "get_settings",
    "get_logger",
    "create_app",
]
