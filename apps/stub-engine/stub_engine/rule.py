"""Frozen stub rule: matchers plus a sequence of responses."""

from __future__ import annotations

import threading
from collections.abc import Iterable

from .matchers import RequestMatcher
from .request import Request
from .response import StubResponse


class StubRule:
    """Immutable rule produced by freezing a stubbing.

    The response cursor is the only mutable state; it sticks to the last
    response once the sequence is exhausted and is advanced under a lock owned
    by this rule alone.
    """

    def __init__(self, matchers: Iterable[RequestMatcher], responses: Iterable[StubResponse]) -> None:
        self._matchers = tuple(matchers)
        self._responses = tuple(responses)
        if not self._responses:
            raise ValueError("at least one stub response must be defined")
        self._cursor = 0
        self._lock = threading.Lock()

    @property
    def matchers(self) -> tuple[RequestMatcher, ...]:
        return self._matchers

    @property
    def responses(self) -> tuple[StubResponse, ...]:
        return self._responses

    def matched_by(self, request: Request) -> bool:
        return all(matcher.matches(request) for matcher in self._matchers)

    def describe_mismatch(self, request: Request) -> str:
        lines = [
            matcher.describe_mismatch(request)
            for matcher in self._matchers
            if not matcher.matches(request)
        ]
        return "\n".join(lines)

    def next_response(self) -> StubResponse:
        with self._lock:
            response = self._responses[self._cursor]
            if self._cursor < len(self._responses) - 1:
                self._cursor += 1
            return response

    def __str__(self) -> str:
        if self._matchers:
            described = " AND ".join(matcher.describe() for matcher in self._matchers)
        else:
            described = "any request"
        return f"{described} => {len(self._responses)} response(s)"

    def __repr__(self) -> str:
        return f"<StubRule {self}>"
