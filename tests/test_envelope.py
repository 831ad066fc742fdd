import pytest

from helalist_client.api.envelope import (
    Envelope,
    RawArray,
    RawObject,
    RawScalar,
    RawText,
    classify_json,
    is_json_content_type,
    resolve_body,
)
from helalist_client.exceptions import EnvelopeError


@pytest.mark.parametrize(
    "content_type, expected",
    [
        ("application/json", True),
        ("application/json; charset=utf-8", True),
        ("Application/JSON", True),
        ("text/plain", False),
        ("", False),
        (None, False),
    ],
)
def test_is_json_content_type(content_type, expected):
    assert is_json_content_type(content_type) is expected


def test_classify_json_variants():
    assert classify_json([1, 2]) == RawArray([1, 2])
    assert classify_json("plain") == RawScalar("plain")
    assert classify_json(None) == RawScalar(None)
    assert classify_json({"id": 1}) == RawObject({"id": 1})
    assert classify_json({"code": 200, "message": "ok", "data": 5}) == Envelope(
        200, "ok", 5
    )


def test_classify_envelope_with_missing_fields():
    assert classify_json({"code": 200}) == Envelope(200, None, None)


def test_resolve_success_envelope_returns_data():
    assert resolve_body(Envelope(200, "ok", {"x": 1})) == {"x": 1}


@pytest.mark.parametrize("code", [0, None, "", False])
def test_resolve_falsy_code_counts_as_success(code):
    assert resolve_body(Envelope(code, "whatever", "payload")) == "payload"


def test_resolve_failure_envelope_uses_message():
    with pytest.raises(EnvelopeError, match="not found") as exc_info:
        resolve_body(Envelope(404, "not found", None))
    assert exc_info.value.code == 404


def test_resolve_failure_envelope_without_message():
    with pytest.raises(EnvelopeError, match="^api error$"):
        resolve_body(Envelope(500, None, None))


def test_resolve_string_code_is_not_success():
    with pytest.raises(EnvelopeError):
        resolve_body(Envelope("200", "odd", None))


def test_resolve_raw_variants_pass_through():
    items = [{"id": 1}]
    value = {"has": True}
    assert resolve_body(RawArray(items)) is items
    assert resolve_body(RawObject(value)) is value
    assert resolve_body(RawScalar(42)) == 42
    assert resolve_body(RawText("hello")) == "hello"
