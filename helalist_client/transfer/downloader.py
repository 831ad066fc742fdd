"""
Progress-reporting streamed downloads.

A download is a GET whose body is pulled chunk by chunk by a pump task. Each
chunk updates the progress callback and is handed, unchanged, to the caller
through a :class:`DownloadStream`.
"""

import asyncio
import logging
import math
import os
from collections.abc import AsyncIterator, Callable
from contextlib import suppress
from pathlib import Path
from typing import Any, Optional

import aiofiles
import aiohttp
from aiohttp import hdrs

from helalist_client.api.credentials import CredentialProvider, bearer_headers
from helalist_client.exceptions import DownloadCancelledError, DownloadHTTPError

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int], Any]

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()


async def get_connection_pool(max_connections: int = 8) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession for downloads.

    Only one download pool exists for the lifetime of the application run.

    Args:
        max_connections: Maximum concurrent connections per host.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_connections * 2,
            limit_per_host=max_connections,
            ttl_dns_cache=600,
            keepalive_timeout=30,
            enable_cleanup_closed=True,
        )
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90)
        _connection_pool = aiohttp.ClientSession(connector=connector, timeout=timeout)
        log.debug(f"Created download pool with limit_per_host={max_connections}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared download pool closed.")


def parse_content_length(value: str | None) -> int:
    """Declared body size, or 0 when the header is missing or unusable."""
    if not value:
        return 0
    try:
        total = int(value.strip())
    except ValueError:
        return 0
    return max(total, 0)


def compute_percent(consumed: int, total: int) -> int:
    """Whole percentage, halves rounded up, never above 100."""
    return min(100, math.floor(consumed / total * 100 + 0.5))


class ProgressTracker:
    """Counts consumed bytes and reports a percentage when the total is known."""

    def __init__(self, total: int, on_progress: Optional[ProgressCallback] = None):
        self.total = total
        self.consumed = 0
        self._on_progress = on_progress

    def advance(self, nbytes: int) -> int | None:
        """
        Records ``nbytes`` more bytes.

        Returns the percentage passed to the callback, or None if no event was
        emitted because the total is unknown. Repeated values are emitted too.
        """
        self.consumed += nbytes
        if not self.total:
            return None
        percent = compute_percent(self.consumed, self.total)
        if self._on_progress is not None:
            self._on_progress(percent)
        return percent


class CancellationToken:
    """Lets a caller abandon a download that is still streaming."""

    def __init__(self):
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> None:
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with suppress(ValueError):
            self._callbacks.remove(callback)


class _Failure:
    __slots__ = ("error",)

    def __init__(self, error: BaseException):
        self.error = error


_END = object()


class DownloadStream:
    """
    The re-streamed body of a download.

    Iterate it (``async for chunk in stream``) or call :meth:`read`. Closing
    the stream early stops the pump and drops the connection.
    """

    def __init__(
        self,
        response: aiohttp.ClientResponse,
        chunks: AsyncIterator[bytes],
        tracker: ProgressTracker,
        cancel_token: Optional[CancellationToken] = None,
        queue_size: int = 8,
    ):
        self.status = response.status
        self.headers = response.headers
        self.url = str(response.url)
        self._response = response
        self._tracker = tracker
        self._cancel_token = cancel_token
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._finished = False
        self._pump_task = asyncio.create_task(self._pump(chunks))
        if cancel_token is not None:
            cancel_token.add_callback(self._on_cancel)

    @property
    def total(self) -> int:
        return self._tracker.total

    @property
    def consumed(self) -> int:
        return self._tracker.consumed

    async def _pump(self, chunks: AsyncIterator[bytes]) -> None:
        try:
            async for chunk in chunks:
                self._tracker.advance(len(chunk))
                await self._queue.put(chunk)
            await self._queue.put(_END)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.debug(f"Download of {self.url} failed mid-stream: {e}")
            await self._queue.put(_Failure(e))
        finally:
            self._response.close()

    def _drain(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()

    def _on_cancel(self) -> None:
        if self._finished:
            return
        log.debug(f"Download of {self.url} cancelled after {self.consumed} bytes.")
        self._pump_task.cancel()
        self._drain()
        self._queue.put_nowait(_Failure(DownloadCancelledError("Download cancelled.")))

    def __aiter__(self) -> "DownloadStream":
        return self

    async def __anext__(self) -> bytes:
        if self._finished:
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _END:
            self._finished = True
            self._detach()
            raise StopAsyncIteration
        if isinstance(item, _Failure):
            self._finished = True
            self._detach()
            raise item.error
        return item

    async def read(self) -> bytes:
        """Collects the rest of the body."""
        return b"".join([chunk async for chunk in self])

    def _detach(self) -> None:
        if self._cancel_token is not None:
            self._cancel_token.remove_callback(self._on_cancel)

    async def aclose(self) -> None:
        """Stops streaming and releases the connection."""
        self._finished = True
        self._detach()
        if not self._pump_task.done():
            self._pump_task.cancel()
        with suppress(asyncio.CancelledError):
            await self._pump_task
        self._response.close()

    async def __aenter__(self) -> "DownloadStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()


class StreamDownloader:
    """Fetches files while reporting progress to a callback."""

    DEFAULT_CHUNK_SIZE = 65536

    def __init__(
        self,
        credentials: Optional[CredentialProvider] = None,
        session: Optional[aiohttp.ClientSession] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        queue_size: int = 8,
        max_connections: int = 8,
    ):
        self.credentials = credentials
        self.chunk_size = chunk_size
        self.queue_size = queue_size
        self.max_connections = max_connections
        self._session = session

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is not None and not self._session.closed:
            return self._session
        return await get_connection_pool(self.max_connections)

    async def download(
        self,
        url: str,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> DownloadStream:
        """
        Starts a download and returns its stream once headers have arrived.

        Args:
            url: Absolute URL of the file.
            on_progress: Called with an integer percentage after every chunk,
                only when the server declared a Content-Length.
            cancel_token: Optional token to abandon the transfer.

        Raises:
            DownloadHTTPError: The server answered with a non-2xx status.
            DownloadCancelledError: The token was cancelled before headers
                arrived.
        """
        if cancel_token is not None and cancel_token.cancelled:
            raise DownloadCancelledError("Download cancelled.")

        session = await self._get_session()
        response = await session.get(url, headers=bearer_headers(self.credentials))

        if not 200 <= response.status < 300:
            response.close()
            raise DownloadHTTPError(response.status)

        if cancel_token is not None and cancel_token.cancelled:
            response.close()
            raise DownloadCancelledError("Download cancelled.")

        total = parse_content_length(response.headers.get(hdrs.CONTENT_LENGTH))
        log.debug(f"Downloading {url} ({total or 'unknown'} bytes)")
        tracker = ProgressTracker(total, on_progress)
        return DownloadStream(
            response,
            response.content.iter_chunked(self.chunk_size),
            tracker,
            cancel_token=cancel_token,
            queue_size=self.queue_size,
        )

    async def save_to_file(
        self,
        url: str,
        destination_path: str | os.PathLike,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> int:
        """
        Downloads ``url`` into ``destination_path`` and returns the byte count.

        A partially written file is removed if the transfer fails or is
        cancelled.
        """
        stream = await self.download(url, on_progress, cancel_token)
        return await write_stream_to_file(stream, destination_path)


async def write_stream_to_file(
    stream: DownloadStream,
    destination_path: str | os.PathLike,
    on_chunk: Optional[Callable[[int], Any]] = None,
) -> int:
    """
    Drains ``stream`` into a file and closes the stream.

    Args:
        stream: An open download stream.
        destination_path: File to create or overwrite.
        on_chunk: Called with the size of each chunk written.

    Returns:
        The number of bytes written.
    """
    destination = Path(destination_path)
    written = 0
    try:
        async with stream, aiofiles.open(destination, "wb") as f:
            async for chunk in stream:
                await f.write(chunk)
                written += len(chunk)
                if on_chunk is not None:
                    on_chunk(len(chunk))
    except BaseException:
        await asyncio.to_thread(destination.unlink, missing_ok=True)
        raise
    log.debug(f"Saved {written} bytes to '{destination.name}'.")
    return written
