"""Request-matching vocabulary shared by stubbings and verifications."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from .matchers import (
    RequestMatcher,
    equal_to,
    equal_to_ignoring_case,
    has_item,
    is_none,
    not_,
    request_body,
    request_header,
    request_method,
    request_parameter,
    request_path,
    request_query_string,
    request_raw_body,
    request_satisfies,
    request_uri,
)
from .request import Request

_T = TypeVar("_T", bound="RequestMatching")


class RequestMatching:
    """Accumulates request matchers through chainable ``having_*`` calls."""

    def __init__(self) -> None:
        self._matchers: list[RequestMatcher] = []

    @property
    def matchers(self) -> list[RequestMatcher]:
        return list(self._matchers)

    def _ensure_open(self) -> None:
        """Hook for subclasses refusing further changes."""

    def that(self: _T, matcher: RequestMatcher) -> _T:
        if not isinstance(matcher, RequestMatcher):
            raise TypeError(f"{matcher!r} is not a request matcher")
        self._ensure_open()
        self._matchers.append(matcher)
        return self

    def having_method_equal_to(self: _T, method: str) -> _T:
        if not method:
            raise ValueError("method cannot be empty")
        return self.that(request_method(equal_to_ignoring_case(method)))

    def having_method(self: _T, expectation: Any) -> _T:
        return self.that(request_method(expectation))

    def having_uri_equal_to(self: _T, uri: str) -> _T:
        return self.that(request_uri(equal_to(uri)))

    def having_uri(self: _T, expectation: Any) -> _T:
        return self.that(request_uri(expectation))

    def having_path_equal_to(self: _T, path: str) -> _T:
        return self.that(request_path(equal_to(path)))

    def having_path(self: _T, expectation: Any) -> _T:
        return self.that(request_path(expectation))

    def having_query_string_equal_to(self: _T, query_string: str | None) -> _T:
        return self.that(request_query_string(equal_to(query_string)))

    def having_query_string(self: _T, expectation: Any) -> _T:
        return self.that(request_query_string(expectation))

    def having_header_equal_to(self: _T, name: str, value: str) -> _T:
        return self.that(request_header(name, has_item(value)))

    def having_header(self: _T, name: str, expectation: Any = None) -> _T:
        """Match on a header; without an expectation the header only has to be present."""

        if expectation is None:
            expectation = not_(is_none())
        return self.that(request_header(name, expectation))

    def having_parameter_equal_to(self: _T, name: str, value: str) -> _T:
        return self.that(request_parameter(name, has_item(value)))

    def having_parameter(self: _T, name: str, expectation: Any = None) -> _T:
        if expectation is None:
            expectation = not_(is_none())
        return self.that(request_parameter(name, expectation))

    def having_body_equal_to(self: _T, body: str) -> _T:
        return self.that(request_body(equal_to(body)))

    def having_body(self: _T, expectation: Any) -> _T:
        return self.that(request_body(expectation))

    def having_raw_body_equal_to(self: _T, body: bytes) -> _T:
        return self.that(request_raw_body(equal_to(bytes(body))))

    def having(self: _T, test: Callable[[Request], bool], description: str = "custom predicate") -> _T:
        return self.that(request_satisfies(test, description))
