"""
Storage Layer.

This package handles local persistence: the configuration file and the
stored access token.
"""

from .config_manager import ConfigManager
from .token_store import TokenStore

__all__ = ["ConfigManager", "TokenStore"]
