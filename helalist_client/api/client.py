"""
Async client for the HelaList REST API.

Every call goes through :meth:`HelaListAPIClient.request`, which attaches the
bearer token and unwraps the ``{code, message, data}`` envelope.
"""

import json
import logging
import time
from typing import Any, Mapping, Optional

import aiohttp
from aiohttp import hdrs
from multidict import CIMultiDict

from helalist_client.exceptions import ResponseDecodeError, TransportError
from helalist_client.storage.token_store import TokenStore

from .auth import Authenticator
from .credentials import CredentialProvider, bearer_headers
from .endpoints import ChatAPI, FsAPI, StorageAPI, UserAPI
from .envelope import (
    JSON_CONTENT_TYPE,
    DecodedBody,
    RawText,
    classify_json,
    is_json_content_type,
    resolve_body,
)

log = logging.getLogger(__name__)


class HelaListAPIClient:
    """
    Request dispatcher for the HelaList backend.

    Features:
    - Bearer authentication read fresh from the credential provider
    - Envelope unwrapping with pass-through for bare JSON values
    - Multipart form bodies forwarded untouched
    - Connection pooling
    """

    def __init__(
        self,
        base_url: str = "",
        credentials: Optional[CredentialProvider] = None,
        timeout: float = 30.0,
        max_connections: int = 8,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initializes the API client.

        Args:
            base_url: Server root that relative targets are joined onto.
            credentials: Source of the bearer token; queried on every request.
            timeout: Total timeout in seconds for a single exchange.
            max_connections: Size of the connection pool.
            session: An existing aiohttp session to reuse. It is not closed by
                :meth:`close`.
        """
        self.base_url = base_url.rstrip("/")
        self.credentials = credentials
        self.timeout = timeout
        self.max_connections = max_connections

        self._session: Optional[aiohttp.ClientSession] = session
        self._owns_session = session is None

        self._authenticator: Optional[Authenticator] = None
        self.fs = FsAPI(self)
        self.storage = StorageAPI(self)
        self.chat = ChatAPI(self)
        self.user = UserAPI(self)

    async def __aenter__(self) -> "HelaListAPIClient":
        await self._initialize_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def authenticator(self) -> Authenticator:
        """Provides access to the login/logout helper."""
        if self._authenticator is None:
            store = (
                self.credentials
                if isinstance(self.credentials, TokenStore)
                else None
            )
            self._authenticator = Authenticator(self, store)
        return self._authenticator

    async def _initialize_session(self) -> None:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_connections * 2,
                limit_per_host=self.max_connections,
                ttl_dns_cache=300,
                enable_cleanup_closed=True,
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True

    async def close(self) -> None:
        """Gracefully closes the aiohttp session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    def build_url(self, target: str) -> str:
        """Resolves a path against ``base_url``; absolute URLs pass through."""
        if target.startswith(("http://", "https://")) or not self.base_url:
            return target
        return f"{self.base_url}/{target.lstrip('/')}"

    def build_headers(
        self, headers: Optional[Mapping[str, str]] = None, body: Any = None
    ) -> CIMultiDict:
        """
        Assembles outgoing headers.

        Order matters: the JSON accept default, then caller headers, then the
        computed content type, then Authorization, which always wins.
        """
        merged: CIMultiDict = CIMultiDict({hdrs.ACCEPT: JSON_CONTENT_TYPE})
        for key, value in (headers or {}).items():
            merged[key] = value

        if isinstance(body, aiohttp.FormData):
            # The transport writes the multipart boundary itself.
            merged.popall(hdrs.CONTENT_TYPE, None)
        elif body is not None:
            merged[hdrs.CONTENT_TYPE] = JSON_CONTENT_TYPE

        for key, value in bearer_headers(self.credentials).items():
            merged[key] = value
        return merged

    @staticmethod
    def _encode_body(body: Any) -> Any:
        if body is None or isinstance(body, aiohttp.FormData):
            return body
        return json.dumps(body)

    async def request(
        self,
        target: str,
        method: str = hdrs.METH_GET,
        body: Any = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        """
        Performs one HTTP exchange and returns the unwrapped payload.

        Raises:
            TransportError: The server answered with a non-2xx status.
            EnvelopeError: The envelope carried a failure code.
            ResponseDecodeError: A JSON response could not be parsed.
        """
        await self._initialize_session()

        url = self.build_url(target)
        request_headers = self.build_headers(headers, body)
        data = self._encode_body(body)

        start_time = time.monotonic()
        # aiohttp would otherwise label an empty body application/octet-stream.
        skip_headers = (hdrs.CONTENT_TYPE,) if body is None else None
        async with self._session.request(
            method,
            url,
            data=data,
            headers=request_headers,
            skip_auto_headers=skip_headers,
        ) as r:
            duration_ms = (time.monotonic() - start_time) * 1000
            log.debug(f"{method} {url} -> {r.status} ({duration_ms:.0f} ms)")

            if not 200 <= r.status < 300:
                text = await r.text(errors="replace")
                raise TransportError(r.status, text)

            decoded = await self._decode(r)

        return resolve_body(decoded)

    @staticmethod
    async def _decode(r: aiohttp.ClientResponse) -> DecodedBody:
        if not is_json_content_type(r.headers.get(hdrs.CONTENT_TYPE)):
            return RawText(await r.text(errors="replace"))
        try:
            body = await r.json(content_type=None)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ResponseDecodeError(
                f"Invalid JSON in response from {r.url}: {e}"
            ) from e
        return classify_json(body)

    async def get(self, url: str) -> Any:
        return await self.request(url, hdrs.METH_GET)

    async def post(self, url: str, body: Any = None) -> Any:
        return await self.request(url, hdrs.METH_POST, body=body)

    async def put(self, url: str, body: Any = None) -> Any:
        return await self.request(url, hdrs.METH_PUT, body=body)

    async def delete(self, url: str) -> Any:
        return await self.request(url, hdrs.METH_DELETE)
