"""
Data Models Layer.

This package contains the Pydantic models that define the client configuration.
"""

from .config import ClientConfig

__all__ = ["ClientConfig"]
