"""
Classification of decoded API replies.

The backend wraps most JSON answers as ``{"code", "message", "data"}`` but a
few endpoints (storage listings, for instance) return bare arrays or objects.
A reply is first classified into one of the variants below, then
:func:`resolve_body` turns the variant into a result or raises.
"""

from dataclasses import dataclass
from typing import Any, Union

from helalist_client.exceptions import EnvelopeError

SUCCESS_CODE = 200
JSON_CONTENT_TYPE = "application/json"


@dataclass(frozen=True)
class Envelope:
    code: Any
    message: Any
    data: Any


@dataclass(frozen=True)
class RawArray:
    items: list


@dataclass(frozen=True)
class RawObject:
    value: dict


@dataclass(frozen=True)
class RawScalar:
    value: Any


@dataclass(frozen=True)
class RawText:
    text: str


DecodedBody = Union[Envelope, RawArray, RawObject, RawScalar, RawText]


def is_json_content_type(content_type: str | None) -> bool:
    """True when a Content-Type header value announces a JSON body."""
    return bool(content_type) and JSON_CONTENT_TYPE in content_type.lower()


def classify_json(body: Any) -> DecodedBody:
    """Sorts an already parsed JSON value into its variant."""
    if isinstance(body, list):
        return RawArray(body)
    if not isinstance(body, dict):
        return RawScalar(body)
    if "code" not in body:
        return RawObject(body)
    return Envelope(
        code=body["code"],
        message=body.get("message"),
        data=body.get("data"),
    )


def resolve_body(body: DecodedBody) -> Any:
    """
    Maps a classified reply to the value handed back to the caller.

    Raises:
        EnvelopeError: If the reply is an envelope with a truthy code other
            than the success code.
    """
    if isinstance(body, Envelope):
        if body.code and body.code != SUCCESS_CODE:
            raise EnvelopeError(body.code, str(body.message) if body.message else None)
        return body.data
    if isinstance(body, RawArray):
        return body.items
    if isinstance(body, RawObject):
        return body.value
    if isinstance(body, RawScalar):
        return body.value
    if isinstance(body, RawText):
        return body.text
    raise TypeError(f"Unsupported reply variant: {type(body).__name__}")
