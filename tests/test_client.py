import aiohttp
import pytest

from helalist_client.api.client import HelaListAPIClient
from helalist_client.api.credentials import StaticCredentialProvider
from helalist_client.exceptions import (
    EnvelopeError,
    ResponseDecodeError,
    TransportError,
)


class RotatingCredentials:
    def __init__(self, tokens):
        self._tokens = iter(tokens)

    def get_token(self):
        return next(self._tokens)


def test_build_url_joins_relative_paths():
    client = HelaListAPIClient("http://nas:8080/")
    assert client.build_url("/api/fs/list/") == "http://nas:8080/api/fs/list/"
    assert client.build_url("api/user/get") == "http://nas:8080/api/user/get"
    assert client.build_url("https://other/x") == "https://other/x"


def test_build_headers_order():
    client = HelaListAPIClient(credentials=StaticCredentialProvider("real"))
    headers = client.build_headers(
        {"authorization": "Bearer fake", "Accept": "text/plain", "X-Trace": "1"},
        body={"a": 1},
    )
    assert headers["Authorization"] == "Bearer real"
    assert len(headers.getall("Authorization")) == 1
    assert headers["Accept"] == "text/plain"
    assert headers["Content-Type"] == "application/json"
    assert headers["X-Trace"] == "1"


def test_build_headers_without_body_has_no_content_type():
    headers = HelaListAPIClient().build_headers()
    assert headers["Accept"] == "application/json"
    assert "Content-Type" not in headers
    assert "Authorization" not in headers


def test_build_headers_form_body_drops_caller_content_type():
    headers = HelaListAPIClient().build_headers(
        {"Content-Type": "application/json"}, body=aiohttp.FormData()
    )
    assert "Content-Type" not in headers


@pytest.mark.asyncio
async def test_envelope_success_returns_data(client):
    assert await client.get("/envelope/ok") == {"x": 1}


@pytest.mark.asyncio
async def test_envelope_without_data_returns_none(client):
    assert await client.get("/envelope/no-data") is None


@pytest.mark.asyncio
async def test_envelope_zero_code_is_success(client):
    assert await client.get("/envelope/zero") == "zero"


@pytest.mark.asyncio
async def test_envelope_failure_on_http_200(client):
    with pytest.raises(EnvelopeError, match="not found") as exc_info:
        await client.get("/envelope/not-found")
    assert exc_info.value.code == 404


@pytest.mark.asyncio
async def test_envelope_failure_without_message(client):
    with pytest.raises(EnvelopeError, match="^api error$"):
        await client.get("/envelope/no-message")


@pytest.mark.asyncio
async def test_http_error_status(client):
    with pytest.raises(TransportError) as exc_info:
        await client.get("/boom")
    assert str(exc_info.value) == "HTTP 500: boom"
    assert exc_info.value.status == 500
    assert exc_info.value.body == "boom"


@pytest.mark.asyncio
async def test_bare_json_values_pass_through(client):
    assert await client.get("/array") == [1, 2, 3]
    assert await client.get("/object") == {"has": True}
    assert await client.get("/scalar") == 42


@pytest.mark.asyncio
async def test_non_json_body_is_returned_as_text(client):
    assert await client.get("/text") == "hello"


@pytest.mark.asyncio
async def test_malformed_json_raises_decode_error(client):
    with pytest.raises(ResponseDecodeError):
        await client.get("/bad-json")


@pytest.mark.asyncio
async def test_token_is_attached_and_overrides_caller(client):
    echoed = await client.request(
        "/echo", headers={"Authorization": "Bearer spoofed"}
    )
    assert echoed["authorization"] == "Bearer tok"
    assert echoed["accept"] == "application/json"


@pytest.mark.asyncio
async def test_no_authorization_without_token(anonymous_client):
    echoed = await anonymous_client.get("/echo")
    assert echoed["authorization"] is None


@pytest.mark.asyncio
async def test_token_is_read_on_every_request(base_url):
    credentials = RotatingCredentials(["first", None, "third"])
    async with HelaListAPIClient(base_url, credentials=credentials) as client:
        seen = [(await client.get("/echo"))["authorization"] for _ in range(3)]
    assert seen == ["Bearer first", None, "Bearer third"]


@pytest.mark.asyncio
async def test_json_body_is_serialized(client):
    echoed = await client.post("/echo", {"path": "/a", "n": 2})
    assert echoed["method"] == "POST"
    assert echoed["content_type"] == "application/json"
    assert echoed["body"] == {"path": "/a", "n": 2}


@pytest.mark.asyncio
async def test_missing_body_sends_no_content_type(client):
    echoed = await client.post("/echo")
    assert echoed["content_type"] is None
    assert echoed["body"] is None


@pytest.mark.asyncio
async def test_form_body_keeps_multipart_content_type(client):
    form = aiohttp.FormData()
    form.add_field("path", "/docs")
    form.add_field("file", b"hello", filename="a.txt")
    echoed = await client.request(
        "/echo",
        method="POST",
        body=form,
        headers={"Content-Type": "application/json"},
    )
    assert echoed["content_type"].startswith("multipart/form-data")
    assert echoed["body"] == {"path": "/docs", "file": "a.txt:hello"}


@pytest.mark.asyncio
async def test_repeated_gets_return_equal_fresh_values(client):
    first = await client.get("/echo")
    second = await client.get("/echo")
    assert first == second
    assert first is not second


@pytest.mark.asyncio
async def test_borrowed_session_is_not_closed(base_url):
    async with aiohttp.ClientSession() as session:
        async with HelaListAPIClient(base_url, session=session) as client:
            assert await client.get("/text") == "hello"
        assert not session.closed
