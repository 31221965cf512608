"""Composable predicates over incoming requests.

A request matcher is any object implementing :class:`RequestMatcher`. The
built-in ones retrieve a single value from the request (its method, a header,
the body, ...) and test it against an expectation, which is either a
:class:`ValuePredicate` or a plain value compared for equality.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from .request import Request


@runtime_checkable
class RequestMatcher(Protocol):
    """Boolean predicate over a request able to explain itself."""

    def matches(self, request: Request) -> bool:
        ...

    def describe(self) -> str:
        ...

    def describe_mismatch(self, request: Request) -> str:
        ...


class ValuePredicate:
    """Predicate over a single retrieved value, with a readable description."""

    def __init__(self, test: Callable[[Any], bool], description: str) -> None:
        self._test = test
        self._description = description

    def __call__(self, value: Any) -> bool:
        return bool(self._test(value))

    def describe(self) -> str:
        return self._description

    def describe_mismatch(self, value: Any) -> str:
        return f"was {value!r}"

    def __repr__(self) -> str:
        return f"ValuePredicate({self._description!r})"


def as_predicate(expectation: Any) -> ValuePredicate:
    if isinstance(expectation, ValuePredicate):
        return expectation
    return equal_to(expectation)


def equal_to(expected: Any) -> ValuePredicate:
    return ValuePredicate(lambda value: value == expected, f"equal to {expected!r}")


def equal_to_ignoring_case(expected: str) -> ValuePredicate:
    lowered = expected.lower()
    return ValuePredicate(
        lambda value: isinstance(value, str) and value.lower() == lowered,
        f"equal to {expected!r} ignoring case",
    )


def contains_string(fragment: str) -> ValuePredicate:
    return ValuePredicate(
        lambda value: isinstance(value, str) and fragment in value,
        f"containing {fragment!r}",
    )


def starts_with(prefix: str) -> ValuePredicate:
    return ValuePredicate(
        lambda value: isinstance(value, str) and value.startswith(prefix),
        f"starting with {prefix!r}",
    )


def matches_pattern(pattern: str | re.Pattern[str]) -> ValuePredicate:
    compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
    return ValuePredicate(
        lambda value: isinstance(value, str) and compiled.search(value) is not None,
        f"matching /{compiled.pattern}/",
    )


def has_item(expectation: Any) -> ValuePredicate:
    """Any element of a sequence satisfies the nested expectation."""

    inner = as_predicate(expectation)
    return ValuePredicate(
        lambda values: values is not None and any(inner(value) for value in values),
        f"a collection containing an item {inner.describe()}",
    )


def is_none() -> ValuePredicate:
    return ValuePredicate(lambda value: value is None, "absent")


def not_(expectation: Any) -> ValuePredicate:
    inner = as_predicate(expectation)
    return ValuePredicate(lambda value: not inner(value), f"not {inner.describe()}")


def all_of(*expectations: Any) -> ValuePredicate:
    inners = [as_predicate(expectation) for expectation in expectations]
    return ValuePredicate(
        lambda value: all(inner(value) for inner in inners),
        "(" + " and ".join(inner.describe() for inner in inners) + ")",
    )


def any_of(*expectations: Any) -> ValuePredicate:
    inners = [as_predicate(expectation) for expectation in expectations]
    return ValuePredicate(
        lambda value: any(inner(value) for inner in inners),
        "(" + " or ".join(inner.describe() for inner in inners) + ")",
    )


def satisfies(test: Callable[[Any], bool], description: str = "satisfying a custom predicate") -> ValuePredicate:
    return ValuePredicate(test, description)


class ValueRequestMatcher(ABC):
    """Matcher retrieving one value from the request and testing it."""

    description = "value is"

    def __init__(self, expectation: Any) -> None:
        self._predicate = as_predicate(expectation)

    @abstractmethod
    def retrieve_value(self, request: Request) -> Any:
        ...

    def matches(self, request: Request) -> bool:
        return self._predicate(self.retrieve_value(request))

    def describe(self) -> str:
        return f"{self.description} {self._predicate.describe()}"

    def describe_mismatch(self, request: Request) -> str:
        value = self.retrieve_value(request)
        return f"{self.describe()}, but {self._predicate.describe_mismatch(value)}"

    def __repr__(self) -> str:
        return f"<{type(self).__name__}: {self.describe()}>"


class MethodRequestMatcher(ValueRequestMatcher):
    description = "method is"

    def retrieve_value(self, request: Request) -> str:
        return request.method


class UriRequestMatcher(ValueRequestMatcher):
    description = "uri is"

    def retrieve_value(self, request: Request) -> str:
        return request.uri


class PathRequestMatcher(ValueRequestMatcher):
    description = "path is"

    def retrieve_value(self, request: Request) -> str:
        return request.path


class QueryStringRequestMatcher(ValueRequestMatcher):
    description = "query string is"

    def retrieve_value(self, request: Request) -> str | None:
        return request.query_string


class HeaderRequestMatcher(ValueRequestMatcher):
    def __init__(self, name: str, expectation: Any) -> None:
        if not name:
            raise ValueError("header name cannot be empty")
        super().__init__(expectation)
        self.name = name
        self.description = f"header {name} is"

    def retrieve_value(self, request: Request) -> list[str] | None:
        return request.get_headers(self.name)


class ParameterRequestMatcher(ValueRequestMatcher):
    def __init__(self, name: str, expectation: Any) -> None:
        if not name:
            raise ValueError("parameter name cannot be empty")
        super().__init__(expectation)
        self.name = name
        self.description = f"parameter {name} is"

    def retrieve_value(self, request: Request) -> list[str] | None:
        return request.get_parameter_values(self.name)


class BodyRequestMatcher(ValueRequestMatcher):
    description = "body is"

    def retrieve_value(self, request: Request) -> str:
        return request.body_as_string()


class RawBodyRequestMatcher(ValueRequestMatcher):
    description = "raw body is"

    def retrieve_value(self, request: Request) -> bytes:
        return request.body


class PredicateRequestMatcher:
    """Wraps an arbitrary callable over the whole request."""

    def __init__(self, test: Callable[[Request], bool], description: str) -> None:
        self._test = test
        self._description = description

    def matches(self, request: Request) -> bool:
        return bool(self._test(request))

    def describe(self) -> str:
        return self._description

    def describe_mismatch(self, request: Request) -> str:
        return f"{self._description}, but {request!r} did not satisfy it"

    def __repr__(self) -> str:
        return f"<PredicateRequestMatcher: {self._description}>"


def request_method(expectation: Any) -> MethodRequestMatcher:
    return MethodRequestMatcher(expectation)


def request_uri(expectation: Any) -> UriRequestMatcher:
    return UriRequestMatcher(expectation)


def request_path(expectation: Any) -> PathRequestMatcher:
    return PathRequestMatcher(expectation)


def request_query_string(expectation: Any) -> QueryStringRequestMatcher:
    return QueryStringRequestMatcher(expectation)


def request_header(name: str, expectation: Any) -> HeaderRequestMatcher:
    return HeaderRequestMatcher(name, expectation)


def request_parameter(name: str, expectation: Any) -> ParameterRequestMatcher:
    return ParameterRequestMatcher(name, expectation)


def request_body(expectation: Any) -> BodyRequestMatcher:
    return BodyRequestMatcher(expectation)


def request_raw_body(expectation: Any) -> RawBodyRequestMatcher:
    return RawBodyRequestMatcher(expectation)


def request_satisfies(test: Callable[[Request], bool], description: str) -> PredicateRequestMatcher:
    return PredicateRequestMatcher(test, description)


def describe_all(matchers: Sequence[RequestMatcher]) -> list[str]:
    return [matcher.describe() for matcher in matchers]
