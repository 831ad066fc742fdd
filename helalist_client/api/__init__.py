"""
HelaList API Layer.

This package handles all communication with the HelaList REST API.
"""

from .auth import Authenticator
from .client import HelaListAPIClient
from .credentials import CredentialProvider, StaticCredentialProvider

__all__ = [
    "Authenticator",
    "CredentialProvider",
    "HelaListAPIClient",
    "StaticCredentialProvider",
]
