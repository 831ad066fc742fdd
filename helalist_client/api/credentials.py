"""
Credential lookup shared by the request dispatcher and the download manager.
"""

from typing import Protocol, runtime_checkable

from aiohttp import hdrs


@runtime_checkable
class CredentialProvider(Protocol):
    """Anything that can hand out the current bearer token, or None."""

    def get_token(self) -> str | None: ...


class StaticCredentialProvider:
    """Returns a fixed token. Mostly useful for scripts and tests."""

    def __init__(self, token: str | None = None):
        self.token = token

    def get_token(self) -> str | None:
        return self.token or None


def bearer_headers(credentials: CredentialProvider | None) -> dict[str, str]:
    """
    Builds the Authorization header for the latest known token.

    The provider is queried on every call; an absent or empty token yields
    an empty mapping so that no header is sent at all.
    """
    if credentials is None:
        return {}
    token = credentials.get_token()
    if not token:
        return {}
    return {hdrs.AUTHORIZATION: f"Bearer {token}"}
