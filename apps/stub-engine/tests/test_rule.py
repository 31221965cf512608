from __future__ import annotations

import threading

import pytest

from stub_engine.matchers import request_method, request_path
from stub_engine.request import Request
from stub_engine.response import StubResponse
from stub_engine.rule import StubRule


def _responses(*statuses: int) -> list[StubResponse]:
    return [StubResponse(status=status) for status in statuses]


def test_response_sequence_sticks_on_the_last_response() -> None:
    rule = StubRule([], _responses(200, 201, 202))

    served = [rule.next_response().status for _ in range(5)]

    assert served == [200, 201, 202, 202, 202]


def test_rule_without_matchers_matches_everything() -> None:
    rule = StubRule([], _responses(200))

    assert rule.matched_by(Request("DELETE", "/anything"))
    assert str(rule) == "any request => 1 response(s)"


def test_every_matcher_has_to_accept_the_request() -> None:
    rule = StubRule([request_method("GET"), request_path("/a")], _responses(200))

    assert rule.matched_by(Request("GET", "/a"))
    assert not rule.matched_by(Request("GET", "/b"))
    assert not rule.matched_by(Request("POST", "/a"))


def test_mismatch_description_lists_only_failing_matchers() -> None:
    rule = StubRule([request_method("GET"), request_path("/a")], _responses(200))

    description = rule.describe_mismatch(Request("GET", "/b"))

    assert description == "path is equal to '/a', but was '/b'"


def test_rule_requires_at_least_one_response() -> None:
    with pytest.raises(ValueError):
        StubRule([], [])


def test_rule_copies_its_inputs() -> None:
    matchers = [request_method("GET")]
    responses = _responses(200)
    rule = StubRule(matchers, responses)

    matchers.append(request_path("/never"))
    responses.append(StubResponse(status=500))

    assert rule.matched_by(Request("GET", "/a"))
    assert len(rule.responses) == 1


def test_concurrent_callers_get_each_response_exactly_once() -> None:
    count = 32
    rule = StubRule([], _responses(*range(200, 200 + count)))
    barrier = threading.Barrier(count)
    served: list[int] = []
    lock = threading.Lock()

    def worker() -> None:
        barrier.wait()
        status = rule.next_response().status
        with lock:
            served.append(status)

    threads = [threading.Thread(target=worker) for _ in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert sorted(served) == list(range(200, 200 + count))
    assert rule.next_response().status == 200 + count - 1
