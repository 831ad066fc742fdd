"""
Transfer Layer.

This package is responsible for streamed, progress-reporting file downloads.
"""

from .downloader import (
    CancellationToken,
    DownloadStream,
    StreamDownloader,
    write_stream_to_file,
)

__all__ = [
    "CancellationToken",
    "DownloadStream",
    "StreamDownloader",
    "write_stream_to_file",
]
