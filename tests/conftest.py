import asyncio

import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from helalist_client.api.client import HelaListAPIClient
from helalist_client.api.credentials import StaticCredentialProvider

VALID_TOKEN = "tok-123"
FILE_BYTES = bytes(range(256)) * 3 + bytes(232)  # 1000 bytes


def envelope(data=None, code=200, message="ok", status=200):
    return web.json_response(
        {"code": code, "message": message, "data": data}, status=status
    )


async def echo(request: web.Request) -> web.Response:
    content_type = request.headers.get("Content-Type", "")
    body = None
    if content_type.startswith("multipart/"):
        form = await request.post()
        body = {}
        for key, value in form.items():
            if isinstance(value, web.FileField):
                body[key] = f"{value.filename}:{value.file.read().decode()}"
            else:
                body[key] = value
    elif request.can_read_body:
        raw = await request.text()
        body = await request.json() if "json" in content_type else raw
    return envelope(
        {
            "method": request.method,
            "path": request.path,
            "raw_path": request.raw_path,
            "query": dict(request.query),
            "authorization": request.headers.get("Authorization"),
            "accept": request.headers.get("Accept"),
            "content_type": content_type or None,
            "body": body,
        }
    )


async def login(request: web.Request) -> web.Response:
    payload = await request.json()
    if payload.get("password") != "secret":
        return envelope(None, code=401, message="invalid credentials", status=401)
    return envelope({"token": VALID_TOKEN, "user": {"username": payload["username"]}})


async def login_without_token(request: web.Request) -> web.Response:
    return envelope({"user": {"username": "ghost"}})


async def logout(request: web.Request) -> web.Response:
    return envelope("logged out")


async def current_user(request: web.Request) -> web.Response:
    if request.headers.get("Authorization") != f"Bearer {VALID_TOKEN}":
        return envelope(None, code=401, message="unauthorized", status=401)
    return envelope({"username": "alice", "email": "alice@example.com"})


async def storage_all(request: web.Request) -> web.Response:
    return web.json_response([{"id": "s1", "mount_path": "/dav"}])


async def sized_file(request: web.Request) -> web.Response:
    return web.Response(body=FILE_BYTES, content_type="application/octet-stream")


async def unsized_file(request: web.Request) -> web.StreamResponse:
    response = web.StreamResponse(headers={"Content-Type": "application/octet-stream"})
    response.enable_chunked_encoding()
    await response.prepare(request)
    for offset in range(0, len(FILE_BYTES), 250):
        await response.write(FILE_BYTES[offset : offset + 250])
        await asyncio.sleep(0)
    await response.write_eof()
    return response


async def auth_file(request: web.Request) -> web.Response:
    return web.Response(body=request.headers.get("Authorization", "").encode())


def reply(make_response):
    """Wraps a response factory in a coroutine handler."""

    async def handler(request: web.Request) -> web.StreamResponse:
        return make_response()

    return handler


def build_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/envelope/ok", reply(lambda: envelope({"x": 1})))
    app.router.add_get(
        "/envelope/not-found",
        reply(lambda: envelope(None, code=404, message="not found")),
    )
    app.router.add_get(
        "/envelope/no-message", reply(lambda: web.json_response({"code": 500}))
    )
    app.router.add_get(
        "/envelope/zero",
        reply(lambda: web.json_response({"code": 0, "data": "zero"})),
    )
    app.router.add_get(
        "/envelope/no-data",
        reply(lambda: web.json_response({"code": 200, "message": "ok"})),
    )
    app.router.add_get("/array", reply(lambda: web.json_response([1, 2, 3])))
    app.router.add_get("/object", reply(lambda: web.json_response({"has": True})))
    app.router.add_get("/scalar", reply(lambda: web.json_response(42)))
    app.router.add_get("/text", reply(lambda: web.Response(text="hello")))
    app.router.add_get("/boom", reply(lambda: web.Response(status=500, text="boom")))
    app.router.add_get(
        "/bad-json",
        reply(lambda: web.Response(text="{not json", content_type="application/json")),
    )
    app.router.add_post("/api/user/login", login)
    app.router.add_post("/ghost/api/user/login", login_without_token)
    app.router.add_post("/api/user/logout", logout)
    app.router.add_get("/api/user/get", current_user)
    app.router.add_get("/api/storage/all", storage_all)
    app.router.add_get("/files/sized", sized_file)
    app.router.add_get("/files/unsized", unsized_file)
    app.router.add_get("/files/auth", auth_file)
    app.router.add_get(
        "/files/missing", reply(lambda: web.Response(status=404, text="gone"))
    )
    app.router.add_route("*", "/{tail:.*}", echo)
    return app


@pytest_asyncio.fixture(name="server")
async def server_fixture():
    async with TestServer(build_app()) as server:
        yield server


@pytest_asyncio.fixture(name="base_url")
async def base_url_fixture(server: TestServer) -> str:
    return str(server.make_url("/")).rstrip("/")


@pytest_asyncio.fixture(name="client")
async def client_fixture(base_url: str):
    async with HelaListAPIClient(
        base_url, credentials=StaticCredentialProvider("tok")
    ) as client:
        yield client


@pytest_asyncio.fixture(name="anonymous_client")
async def anonymous_client_fixture(base_url: str):
    async with HelaListAPIClient(base_url) as client:
        yield client
