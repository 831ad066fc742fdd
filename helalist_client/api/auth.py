"""
Handles authentication with the HelaList API: login, logout and the
persistence of the issued bearer token.
"""

import json
import logging
from typing import TYPE_CHECKING, Any

from helalist_client.exceptions import AuthenticationError, TransportError

if TYPE_CHECKING:
    from helalist_client.storage.token_store import TokenStore

    from .client import HelaListAPIClient

log = logging.getLogger(__name__)


class Authenticator:
    """
    Manages the authentication flow for the HelaList API client.
    """

    def __init__(
        self, api_client: "HelaListAPIClient", token_store: "TokenStore | None" = None
    ):
        """
        Initializes the authenticator.

        Args:
            api_client: A reference to the main HelaListAPIClient instance.
            token_store: Where the issued token is saved. Without one, the
                token is only returned to the caller.
        """
        self._api_client = api_client
        self._token_store = token_store

    async def login(self, username: str, password: str) -> dict[str, Any]:
        """
        Authenticates with a username and password.

        Args:
            username: The account name.
            password: The plain-text password.

        Returns:
            The login payload, ``{"token": ..., "user": {...}}``.
        """
        log.info(f"Authenticating as: {username}")
        try:
            result = await self._api_client.post(
                "/api/user/login", {"username": username, "password": password}
            )
        except TransportError as e:
            if e.status in (401, 403):
                raise AuthenticationError(
                    _server_message(e.body) or "Invalid username or password."
                ) from e
            raise

        token = result.get("token") if isinstance(result, dict) else None
        if not token:
            raise AuthenticationError("The server did not issue an access token.")

        if self._token_store is not None:
            self._token_store.set_token(token)

        user = result.get("user") or {}
        log.info(f"Successfully authenticated as: {user.get('username', username)}")
        return result

    async def logout(self) -> None:
        """Invalidates the token on the server, then forgets it locally."""
        try:
            await self._api_client.post("/api/user/logout")
        finally:
            if self._token_store is not None:
                self._token_store.clear()
        log.info("Logged out.")

    async def current_user(self) -> dict[str, Any]:
        """
        Returns the account bound to the stored token.

        Raises:
            AuthenticationError: If the token is missing or was rejected.
        """
        try:
            return await self._api_client.user.get()
        except TransportError as e:
            if e.status == 401:
                raise AuthenticationError(
                    "The stored token is invalid or has expired. Please log in again."
                ) from e
            raise


def _server_message(body: str) -> str | None:
    """Pulls the envelope message out of an error body, if there is one."""
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return None
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"] or None
    return None
