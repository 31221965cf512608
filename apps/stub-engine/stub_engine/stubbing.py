"""Single-use builders describing one stub rule."""

from __future__ import annotations

import codecs
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Union

from .exceptions import InvalidValueError, StubbingClosedError
from .headers import HeaderMap
from .matchers import RequestMatcher
from .matching import RequestMatching
from .response import StubResponse
from .rule import StubRule

ResponseBody = Union[str, bytes, bytearray, BinaryIO]


def validate_status(status: int) -> int:
    if isinstance(status, bool) or not isinstance(status, int):
        raise InvalidValueError(f"status must be an integer, got {status!r}")
    if status < 0:
        raise InvalidValueError("status mustn't be negative")
    return status


def validate_encoding(encoding: str) -> str:
    if not encoding:
        raise InvalidValueError("encoding cannot be empty")
    try:
        codecs.lookup(encoding)
    except LookupError as exc:
        raise InvalidValueError(f"unknown encoding {encoding!r}") from exc
    return encoding


def validate_header(name: str, value: str) -> None:
    if not name:
        raise InvalidValueError("header name cannot be empty")
    if value is None:
        raise InvalidValueError("header value cannot be None, use an empty string instead")


def _check_encodable(body: str | bytes, encoding: str) -> None:
    if not isinstance(body, str):
        return
    try:
        body.encode(encoding)
    except UnicodeEncodeError as exc:
        raise InvalidValueError(
            f"body cannot be encoded with {encoding} ({exc.reason}), set the encoding before the body"
        ) from exc


@dataclass
class _ResponseDraft:
    status: int
    headers: HeaderMap
    encoding: str
    body: str | bytes = b""
    latency_ms: int = 0

    def build(self) -> StubResponse:
        body = self.body.encode(self.encoding) if isinstance(self.body, str) else self.body
        return StubResponse(
            status=self.status,
            headers=tuple(self.headers.pairs()),
            body=body,
            encoding=self.encoding,
            latency_ms=self.latency_ms,
        )


class Stubbing(RequestMatching):
    """Mutable description of one rule, consumed exactly once by :meth:`create_rule`.

    Default status, headers and encoding are snapshotted when the stubbing is
    created; later changes of the mocker defaults do not reach it.
    """

    def __init__(self, default_encoding: str, default_status: int, default_headers: HeaderMap) -> None:
        super().__init__()
        self._default_encoding = default_encoding
        self._default_status = default_status
        self._default_headers = default_headers.copy()
        self._responses: list[_ResponseDraft] = []
        self._closed = False
        self._lock = threading.RLock()

    @property
    def closed(self) -> bool:
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise StubbingClosedError(
                "This stubbing has already been turned into a rule, stubbing after serving is not permitted"
            )

    @contextmanager
    def _open_for_changes(self) -> Iterator[None]:
        with self._lock:
            self._ensure_open()
            yield

    def that(self, matcher: RequestMatcher) -> "Stubbing":
        with self._open_for_changes():
            return super().that(matcher)

    def respond(self) -> "ResponseStubbing":
        """Start the first (or next) response definition."""

        return self.then_respond()

    def then_respond(self) -> "ResponseStubbing":
        with self._open_for_changes():
            draft = self._new_draft()
            self._responses.append(draft)
        return ResponseStubbing(self, draft)

    def create_rule(self) -> StubRule:
        """Turn this stubbing into a rule; the stubbing is closed only if that succeeds."""

        with self._open_for_changes():
            rule = self._build_rule()
            self._closed = True
        return rule

    def _build_rule(self) -> StubRule:
        with self._lock:
            drafts = self._responses or [self._new_draft()]
            return StubRule(self._matchers, [draft.build() for draft in drafts])

    def _close(self) -> None:
        with self._lock:
            self._closed = True

    def _new_draft(self) -> _ResponseDraft:
        return _ResponseDraft(
            status=self._default_status,
            headers=self._default_headers.copy(),
            encoding=self._default_encoding,
        )


class ResponseStubbing:
    """Builder for a single response definition of a stubbing."""

    def __init__(self, stubbing: Stubbing, draft: _ResponseDraft) -> None:
        self._stubbing = stubbing
        self._draft = draft

    def with_status(self, status: int) -> "ResponseStubbing":
        validate_status(status)
        with self._stubbing._open_for_changes():
            self._draft.status = status
        return self

    def with_header(self, name: str, value: str) -> "ResponseStubbing":
        validate_header(name, value)
        with self._stubbing._open_for_changes():
            self._draft.headers.add(name, value)
        return self

    def with_body(self, body: ResponseBody) -> "ResponseStubbing":
        """Set the body; strings must be encodable with the response encoding."""

        if body is None:
            raise InvalidValueError("body cannot be None, use an empty string instead")
        if isinstance(body, (str, bytes)):
            content: str | bytes = body
        elif isinstance(body, bytearray):
            content = bytes(body)
        else:
            content = bytes(body.read() or b"")
        with self._stubbing._open_for_changes():
            _check_encodable(content, self._draft.encoding)
            self._draft.body = content
        return self

    def with_encoding(self, encoding: str) -> "ResponseStubbing":
        validate_encoding(encoding)
        with self._stubbing._open_for_changes():
            _check_encodable(self._draft.body, encoding)
            self._draft.encoding = encoding
        return self

    def with_latency(self, latency_ms: int) -> "ResponseStubbing":
        if latency_ms < 0:
            raise InvalidValueError("latency mustn't be negative")
        with self._stubbing._open_for_changes():
            self._draft.latency_ms = latency_ms
        return self

    def then_respond(self) -> "ResponseStubbing":
        return self._stubbing.then_respond()
