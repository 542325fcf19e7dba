"""Response normalizer.

Turns responses from different HTTP clients into a ParsedResponse. Shapes are
detected structurally, in a fixed priority order; each shape has its own
extraction function. Both mappings and plain objects with attributes are
accepted.
"""

from collections.abc import Callable, Mapping
from enum import Enum
from typing import Any
from urllib.parse import urlsplit

from openapi_assertions.errors import ResponseParseError
from openapi_assertions.parser.base import ParsedResponse

_PRIMITIVES = (str, bytes, bytearray, int, float, bool, list, tuple, set, frozenset)


class ClientShape(str, Enum):
    WRAPPED = "wrapped"  # wrapper holding the real response under .response
    API_CLIENT = "api_client"  # .request + .statusCode, body may be an accessor
    AXIOS = "axios"  # .data + .config + .status
    SUPERTEST = "supertest"  # .body + .req + .statusCode
    HTTP_CLIENT = "http_client"  # requests / httpx: .request + .status_code
    GENERIC = "generic"  # anything carrying a status


def _is_object(value: Any) -> bool:
    if value is None or isinstance(value, _PRIMITIVES):
        return False
    return isinstance(value, Mapping) or not callable(value)


def _field(obj: Any, name: str, default: Any = None) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name, default)
    try:
        return getattr(obj, name, default)
    except RuntimeError:
        # httpx raises when no request is attached to the response
        return default


def _has(obj: Any, name: str) -> bool:
    if isinstance(obj, Mapping):
        return name in obj
    try:
        return hasattr(obj, name)
    except RuntimeError:
        return False


SHAPES: list[tuple[ClientShape, Callable[[Any], bool]]] = [
    (ClientShape.WRAPPED, lambda r: _is_object(_field(r, "response"))),
    (ClientShape.API_CLIENT, lambda r: _has(r, "request") and _has(r, "statusCode")),
    (ClientShape.AXIOS, lambda r: _has(r, "data") and _has(r, "config") and _has(r, "status")),
    (ClientShape.SUPERTEST, lambda r: _has(r, "body") and _has(r, "req") and _has(r, "statusCode")),
    (ClientShape.HTTP_CLIENT, lambda r: _has(r, "request") and _has(r, "status_code")),
    (
        ClientShape.GENERIC,
        lambda r: _has(r, "status") or _has(r, "statusCode") or _has(r, "status_code"),
    ),
]


def detect_shape(response: Any) -> ClientShape:
    """Return the first shape whose predicate accepts ``response``."""
    if not _is_object(response):
        raise ResponseParseError("Invalid response: expected an object")
    for shape, predicate in SHAPES:
        if predicate(response):
            return shape
    raise ResponseParseError(
        "Unknown response format: could not extract method, path, status, or body"
    )


def parse_response(response: Any) -> ParsedResponse:
    """Normalize a response from any supported HTTP client."""
    shape = detect_shape(response)
    unwrapped: set[int] = set()
    while shape is ClientShape.WRAPPED:
        if id(response) in unwrapped:
            raise ResponseParseError("Invalid response: wrapper refers back to itself")
        unwrapped.add(id(response))
        response = _field(response, "response")
        shape = detect_shape(response)
    return _EXTRACTORS[shape](response)


def _parse_api_client(res: Any) -> ParsedResponse:
    request = _field(res, "request")
    body = _field(res, "body")
    if callable(body):
        body = body()
    return ParsedResponse(
        method=_method(_field(request, "method")),
        path=url_to_path(_field(request, "url") or "/"),
        status=to_status(_field(res, "statusCode")),
        headers=normalize_headers(_field(res, "headers")),
        body=body,
    )


def _parse_axios(res: Any) -> ParsedResponse:
    config = _field(res, "config")
    return ParsedResponse(
        method=_method(_field(config, "method")),
        path=url_to_path(_field(config, "url") or "/"),
        status=to_status(_field(res, "status")),
        headers=normalize_headers(_field(res, "headers")),
        body=_field(res, "data"),
    )


def _parse_supertest(res: Any) -> ParsedResponse:
    req = _field(res, "req")
    return ParsedResponse(
        method=_method(_field(req, "method")),
        path=url_to_path(_field(req, "path") or "/"),
        status=to_status(_field(res, "statusCode")),
        headers=normalize_headers(_field(res, "headers")),
        body=_field(res, "body"),
    )


def _parse_http_client(res: Any) -> ParsedResponse:
    request = _field(res, "request")
    return ParsedResponse(
        method=_method(_field(request, "method")),
        path=url_to_path(_field(request, "url") or "/"),
        status=to_status(_field(res, "status_code")),
        headers=normalize_headers(_field(res, "headers")),
        body=_json_body(res),
    )


def _parse_generic(res: Any) -> ParsedResponse:
    status = _field(res, "status")
    if status is None:
        status = _field(res, "statusCode")
    if status is None:
        status = _field(res, "status_code")
    body = _field(res, "body")
    if body is None:
        body = _field(res, "data")
    return ParsedResponse(
        method=_method(_field(res, "method")),
        path=url_to_path(_field(res, "url") or _field(res, "path") or "/"),
        status=to_status(status),
        headers=normalize_headers(_field(res, "headers")),
        body=body,
    )


_EXTRACTORS: dict[ClientShape, Callable[[Any], ParsedResponse]] = {
    ClientShape.API_CLIENT: _parse_api_client,
    ClientShape.AXIOS: _parse_axios,
    ClientShape.SUPERTEST: _parse_supertest,
    ClientShape.HTTP_CLIENT: _parse_http_client,
    ClientShape.GENERIC: _parse_generic,
}


def _method(value: Any) -> str:
    return str(value or "GET").upper()


def _json_body(res: Any) -> Any:
    if not _field(res, "content"):
        return None
    try:
        return res.json()
    except ValueError:
        return _field(res, "text")


def to_status(value: Any) -> int:
    """Coerce a status to int; anything non-numeric becomes 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        return int(value) if value.is_integer() else 0
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return 0
    return 0


def url_to_path(url: Any) -> str:
    """Path component of an absolute URL, or the input minus its query string."""
    text = str(url)
    if text.startswith(("http://", "https://")):
        return urlsplit(text).path or "/"
    return text.split("?", 1)[0]


def normalize_headers(headers: Any) -> dict[str, str]:
    if not isinstance(headers, Mapping):
        return {}
    return {str(key).lower(): str(value) for key, value in headers.items()}
