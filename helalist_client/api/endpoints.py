"""
Endpoint wrappers grouped by backend area. Each method is a single call on
the dispatcher; no extra logic lives here.
"""

from typing import IO, TYPE_CHECKING, Any, Optional, Union
from urllib.parse import quote, urlencode

import aiohttp

if TYPE_CHECKING:
    from .client import HelaListAPIClient


def _path_segment(path: str) -> str:
    """Encodes a drive path for use after a ``*path`` route prefix."""
    return quote(path.strip("/"), safe="/")


class _EndpointGroup:
    def __init__(self, api_client: "HelaListAPIClient"):
        self._api = api_client


class FsAPI(_EndpointGroup):
    """File operations under ``/api/fs``."""

    async def list_dir(self, path: str = "/") -> dict[str, Any]:
        return await self._api.get(f"/api/fs/list/{_path_segment(path)}")

    async def get(self, path: str) -> dict[str, Any]:
        return await self._api.get(f"/api/fs/get/{_path_segment(path)}")

    async def dirs(self, path: str = "/") -> list[dict[str, Any]]:
        return await self._api.get(f"/api/fs/dirs/{_path_segment(path)}")

    async def mkdir(self, path: str) -> Any:
        return await self._api.post("/api/fs/mkdir", {"path": path})

    async def rename(self, path: str, name: str) -> Any:
        return await self._api.post("/api/fs/rename", {"path": path, "name": name})

    async def remove(self, path: str) -> Any:
        return await self._api.post("/api/fs/remove", {"path": path})

    async def move(self, src_path: str, dst_path: str) -> Any:
        return await self._api.post(
            "/api/fs/move", {"src_path": src_path, "dst_path": dst_path}
        )

    async def copy(self, src_path: str, dst_path: str) -> Any:
        return await self._api.post(
            "/api/fs/copy", {"src_path": src_path, "dst_path": dst_path}
        )

    async def upload(
        self, dst_dir: str, filename: str, data: Union[bytes, IO[bytes]]
    ) -> Any:
        """Uploads one file as multipart form data (fields ``path`` and ``file``)."""
        form = aiohttp.FormData()
        form.add_field("path", dst_dir)
        form.add_field(
            "file", data, filename=filename, content_type="application/octet-stream"
        )
        return await self._api.post("/api/fs/put", form)

    def download_url(self, path: str) -> str:
        """Absolute URL of a file's raw download route."""
        return self._api.build_url(f"/api/fs/download/{_path_segment(path)}")


class StorageAPI(_EndpointGroup):
    """Storage mount management under ``/api/storage``."""

    async def create(self, storage: dict[str, Any]) -> Any:
        return await self._api.post("/api/storage/create", storage)

    async def update(self, storage: dict[str, Any]) -> Any:
        return await self._api.post("/api/storage/update", storage)

    async def get_all(self) -> list[dict[str, Any]]:
        return await self._api.get("/api/storage/all")

    async def load(self, storage: dict[str, Any]) -> Any:
        return await self._api.post("/api/storage/load", storage)

    async def delete(self, storage_id: str) -> Any:
        return await self._api.delete(f"/api/storage/{quote(storage_id, safe='')}")


class ChatAPI(_EndpointGroup):
    """Chat sessions and messages under ``/api/chat``."""

    async def create_session(
        self, user_id: str, title: Optional[str] = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"user_id": user_id}
        if title is not None:
            payload["title"] = title
        return await self._api.post("/api/chat/sessions", payload)

    async def list_sessions(self, user_id: str) -> list[dict[str, Any]]:
        query = urlencode({"user_id": user_id})
        return await self._api.get(f"/api/chat/sessions?{query}")

    async def get_history(self, session_id: str) -> list[dict[str, Any]]:
        return await self._api.get(
            f"/api/chat/sessions/{quote(session_id, safe='')}/history"
        )

    async def send_message(
        self,
        message: str,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
        use_rag: Optional[bool] = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"message": message}
        if session_id is not None:
            payload["session_id"] = session_id
        if user_id is not None:
            payload["user_id"] = user_id
        if use_rag is not None:
            payload["use_rag"] = use_rag
        return await self._api.post("/api/chat/message", payload)

    async def delete_session(self, session_id: str) -> Any:
        return await self._api.delete(f"/api/chat/sessions/{quote(session_id, safe='')}")

    async def update_title(self, session_id: str, title: str) -> Any:
        return await self._api.put(
            f"/api/chat/sessions/{quote(session_id, safe='')}", {"title": title}
        )


class UserAPI(_EndpointGroup):
    """Account endpoints under ``/api/user``."""

    async def get(self) -> dict[str, Any]:
        return await self._api.get("/api/user/get")
