from __future__ import annotations

from stub_engine.matchers import (
    RequestMatcher,
    all_of,
    any_of,
    contains_string,
    equal_to,
    has_item,
    is_none,
    matches_pattern,
    not_,
    request_body,
    request_header,
    request_method,
    request_parameter,
    request_path,
    request_raw_body,
    request_satisfies,
    satisfies,
    starts_with,
)
from stub_engine.request import Request

BODY = "Sample body"


def _request() -> Request:
    return Request(
        "POST",
        "/payments/42?currency=EUR",
        {"Accept": ["application/json", "text/plain"]},
        BODY.encode("utf-8"),
    )


def test_body_matcher_retrieves_and_describes_the_body() -> None:
    matcher = request_body(BODY)

    assert matcher.retrieve_value(_request()) == BODY
    assert matcher.description == "body is"
    assert matcher.matches(_request())


def test_raw_body_matcher_compares_bytes() -> None:
    assert request_raw_body(BODY.encode("utf-8")).matches(_request())
    assert not request_raw_body(b"other").matches(_request())


def test_plain_expectation_means_equality() -> None:
    assert request_method("POST").matches(_request())
    assert not request_method("GET").matches(_request())
    assert request_path(equal_to("/payments/42")).matches(_request())


def test_header_matcher_checks_any_of_the_values() -> None:
    assert request_header("accept", has_item("text/plain")).matches(_request())
    assert not request_header("accept", has_item("text/html")).matches(_request())
    assert not request_header("x-missing", has_item("a")).matches(_request())


def test_absence_and_presence_of_a_parameter() -> None:
    assert request_parameter("currency", not_(is_none())).matches(_request())
    assert request_parameter("amount", is_none()).matches(_request())


def test_string_predicates_tolerate_missing_values() -> None:
    for predicate in (contains_string("a"), starts_with("a"), matches_pattern("a+")):
        assert predicate(None) is False


def test_composed_predicates() -> None:
    predicate = all_of(starts_with("/payments"), matches_pattern(r"/\d+$"))

    assert request_path(predicate).matches(_request())
    assert request_path(any_of("/other", contains_string("42"))).matches(_request())
    assert not request_path(not_(predicate)).matches(_request())
    assert request_path(satisfies(lambda value: len(value) == 12, "12 characters long")).matches(_request())


def test_mismatch_description_names_expectation_and_actual_value() -> None:
    matcher = request_method("GET")

    assert matcher.describe() == "method is equal to 'GET'"
    assert matcher.describe_mismatch(_request()) == "method is equal to 'GET', but was 'POST'"


def test_predicate_request_matcher_wraps_a_callable() -> None:
    matcher = request_satisfies(lambda request: request.path.endswith("/42"), "targets payment 42")

    assert isinstance(matcher, RequestMatcher)
    assert matcher.matches(_request())
    assert matcher.describe() == "targets payment 42"
