"""Immutable snapshot of a decoded HTTP request."""

from __future__ import annotations

import io
import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, BinaryIO, Union
from urllib.parse import unquote_plus, urlsplit

import structlog

from .exceptions import RequestReadError
from .headers import HeaderMap, HeaderValues

LOGGER = structlog.get_logger("stub_engine.request")

DEFAULT_ENCODING = "ISO-8859-1"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

_FORM_METHODS = {"POST", "PUT"}
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

Address = tuple[str, int]
BodySource = Union[bytes, bytearray, memoryview, BinaryIO, None]


class Request:
    """Request abstraction handed over by the transport.

    Every value is copied at construction, so the request stays valid after the
    transport recycles its own buffers. Header names are stored lower-cased;
    parameters are parsed once from the query string and, for url-encoded
    POST/PUT forms, from the body.
    """

    __slots__ = (
        "_method",
        "_uri",
        "_path",
        "_query_string",
        "_headers",
        "_body",
        "_encoding",
        "_parameters",
        "_local_address",
        "_remote_address",
    )

    def __init__(
        self,
        method: str,
        uri: str,
        headers: Mapping[str, HeaderValues] | None = None,
        body: BodySource = b"",
        *,
        local_address: Address | None = None,
        remote_address: Address | None = None,
        encoding: str | None = None,
    ) -> None:
        split = urlsplit(uri)
        header_map = HeaderMap(headers)

        _set = object.__setattr__
        _set(self, "_method", method)
        _set(self, "_uri", uri)
        _set(self, "_path", split.path)
        _set(self, "_query_string", split.query if "?" in uri else None)
        _set(self, "_encoding", encoding or DEFAULT_ENCODING)
        _set(self, "_body", _drain(body))
        _set(self, "_headers", MappingProxyType(header_map.as_dict()))
        _set(self, "_local_address", local_address)
        _set(self, "_remote_address", remote_address)
        _set(self, "_parameters", MappingProxyType(self._read_parameters()))

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable")

    @property
    def method(self) -> str:
        return self._method

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def path(self) -> str:
        return self._path

    @property
    def query_string(self) -> str | None:
        return self._query_string

    @property
    def headers(self) -> Mapping[str, tuple[str, ...]]:
        return self._headers

    def get_headers(self, name: str) -> list[str] | None:
        """Return all values of a header (case-insensitive) or None when absent."""

        values = self._headers.get(name.lower())
        return list(values) if values is not None else None

    def get_first_header(self, name: str) -> str | None:
        values = self._headers.get(name.lower())
        return values[0] if values else None

    @property
    def content_type(self) -> str | None:
        return self.get_first_header("content-type")

    @property
    def parameters(self) -> Mapping[str, tuple[str, ...]]:
        return self._parameters

    def get_parameter_values(self, name: str) -> list[str] | None:
        values = self._parameters.get(name)
        return list(values) if values is not None else None

    @property
    def body(self) -> bytes:
        return self._body

    def get_body(self) -> io.BytesIO:
        """Return a fresh readable view of the body."""

        return io.BytesIO(self._body)

    def body_as_string(self) -> str:
        """Decode the body, replacing bytes the request encoding cannot represent."""

        try:
            return self._body.decode(self._encoding, errors="replace")
        except LookupError:
            return self._body.decode(DEFAULT_ENCODING)

    @property
    def encoding(self) -> str:
        return self._encoding

    @property
    def local_address(self) -> Address | None:
        return self._local_address

    @property
    def remote_address(self) -> Address | None:
        return self._remote_address

    def _read_parameters(self) -> dict[str, tuple[str, ...]]:
        params: dict[str, list[str]] = {}
        _parse_into(params, self._query_string, self._encoding)

        content_type = (self.content_type or "").lower()
        if FORM_CONTENT_TYPE in content_type and self._method.upper() in _FORM_METHODS:
            try:
                form = self._body.decode(self._encoding)
            except (UnicodeDecodeError, LookupError) as exc:
                LOGGER.warning("form_body_decoding_failed", encoding=self._encoding, error=str(exc))
            else:
                _parse_into(params, form, self._encoding)

        return {name: tuple(values) for name, values in params.items()}

    def __repr__(self) -> str:
        return (
            f"Request(method={self._method!r}, uri={self._uri!r}, "
            f"parameters={dict(self._parameters)!r}, headers={dict(self._headers)!r})"
        )


def _drain(body: BodySource) -> bytes:
    if body is None:
        return b""
    if isinstance(body, (bytes, bytearray, memoryview)):
        return bytes(body)
    try:
        data = body.read()
    except OSError as exc:
        raise RequestReadError(f"Unable to read the request body: {exc}") from exc
    return bytes(data or b"")


def _parse_into(target: dict[str, list[str]], raw: str | None, encoding: str) -> None:
    if not raw or not raw.strip():
        return

    for pair in raw.split("&"):
        if not pair:
            continue
        name, sep, value = pair.partition("=")
        try:
            decoded_name = _decode_component(name, encoding)
            decoded_value = _decode_component(value, encoding) if sep else ""
        except (ValueError, LookupError) as exc:
            LOGGER.warning("parameter_decoding_failed", pair=pair, encoding=encoding, error=str(exc))
            continue
        target.setdefault(decoded_name, []).append(decoded_value)


def _decode_component(raw: str, encoding: str) -> str:
    if _MALFORMED_ESCAPE.search(raw):
        raise ValueError(f"malformed percent-encoding in {raw!r}")
    return unquote_plus(raw, encoding=encoding, errors="strict")
