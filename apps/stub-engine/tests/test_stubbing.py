from __future__ import annotations

import io

import pytest

from stub_engine.exceptions import ConfigurationError, InvalidValueError, StubbingClosedError
from stub_engine.headers import HeaderMap
from stub_engine.mocker import Mocker
from stub_engine.request import Request
from stub_engine.stubbing import Stubbing


def _stubbing(status: int = 200, headers: dict[str, str] | None = None, encoding: str = "UTF-8") -> Stubbing:
    return Stubbing(encoding, status, HeaderMap(headers or {}))


def test_responses_inherit_the_snapshotted_defaults() -> None:
    mocker = Mocker()
    mocker.set_default_status(200)
    mocker.add_default_header("X", "Y")

    mocker.on_request().having_path_equal_to("/inherit").respond().with_body("ok")
    mocker.on_request().having_path_equal_to("/override").respond().with_status(201)
    later = mocker.on_request().having_path_equal_to("/later")
    later.respond()

    inherited = mocker.provide_stub_response_for(Request("GET", "/inherit"))
    overridden = mocker.provide_stub_response_for(Request("GET", "/override"))
    untouched = mocker.provide_stub_response_for(Request("GET", "/later"))

    assert inherited.status == 200
    assert inherited.get_headers("x") == ["Y"]
    assert overridden.status == 201
    assert overridden.get_first_header("X") == "Y"
    assert untouched.status == 200
    assert mocker.default_status == 200


def test_later_default_changes_do_not_reach_existing_stubbings() -> None:
    mocker = Mocker()
    mocker.on_request().respond()
    mocker.set_default_status(500)
    mocker.add_default_header("X-Late", "1")

    response = mocker.provide_stub_response_for(Request("GET", "/"))

    assert response.status == 200
    assert response.get_headers("X-Late") is None


def test_rule_without_responses_serves_the_defaults() -> None:
    rule = _stubbing(status=204, headers={"X-Default": "yes"}).create_rule()

    response = rule.next_response()

    assert response.status == 204
    assert response.headers == (("X-Default", "yes"),)
    assert response.body == b""


def test_response_headers_add_to_the_defaults() -> None:
    stubbing = _stubbing(headers={"X-Multi": "a"})
    stubbing.respond().with_header("x-multi", "b").with_header("Content-Type", "text/plain")

    response = stubbing.create_rule().next_response()

    assert response.get_headers("X-Multi") == ["a", "b"]
    assert response.get_first_header("content-type") == "text/plain"


def test_string_body_is_encoded_with_the_final_encoding() -> None:
    stubbing = _stubbing()
    stubbing.respond().with_body("Äaj").with_encoding("ISO-8859-2")

    response = stubbing.create_rule().next_response()

    assert response.body == "Äaj".encode("ISO-8859-2")
    assert response.encoding == "ISO-8859-2"
    assert response.body_as_string() == "Äaj"


def test_binary_and_stream_bodies_are_kept_verbatim() -> None:
    stubbing = _stubbing()
    stubbing.respond().with_body(b"\x00\x01").then_respond().with_body(io.BytesIO(b"streamed"))

    rule = stubbing.create_rule()

    assert rule.next_response().body == b"\x00\x01"
    assert rule.next_response().body == b"streamed"


def test_then_respond_builds_a_response_sequence() -> None:
    stubbing = _stubbing()
    stubbing.respond().with_status(200).then_respond().with_status(503).with_latency(25)

    rule = stubbing.create_rule()

    first, second = rule.responses
    assert (first.status, second.status) == (200, 503)
    assert second.latency_ms == 25


def test_invalid_response_values_are_rejected() -> None:
    response = _stubbing().respond()

    with pytest.raises(InvalidValueError):
        response.with_status(-1)
    with pytest.raises(InvalidValueError):
        response.with_encoding("no-such-charset")
    with pytest.raises(InvalidValueError):
        response.with_header("", "value")
    with pytest.raises(InvalidValueError):
        response.with_latency(-5)


def test_string_body_must_stay_encodable_with_the_response_encoding() -> None:
    stubbing = _stubbing(encoding="ISO-8859-1")
    response = stubbing.respond()

    with pytest.raises(InvalidValueError):
        response.with_body("€")

    response.with_encoding("UTF-8").with_body("€")
    with pytest.raises(InvalidValueError):
        response.with_encoding("ISO-8859-1")

    rule = stubbing.create_rule()

    assert rule.next_response().body == "€".encode("utf-8")


def test_stubbing_is_single_use() -> None:
    stubbing = _stubbing()
    response = stubbing.respond()
    stubbing.create_rule()

    with pytest.raises(StubbingClosedError):
        stubbing.create_rule()
    with pytest.raises(StubbingClosedError):
        stubbing.having_method_equal_to("GET")
    with pytest.raises(StubbingClosedError):
        stubbing.then_respond()
    with pytest.raises(ConfigurationError):
        response.with_status(201)
    assert stubbing.closed


def test_that_rejects_objects_that_are_not_matchers() -> None:
    with pytest.raises(TypeError):
        _stubbing().that(object())  # type: ignore[arg-type]


def test_method_equality_ignores_case() -> None:
    stubbing = _stubbing()
    stubbing.having_method_equal_to("get").having_header("X-Token").having_parameter_equal_to("page", "2")

    rule = stubbing.create_rule()

    assert rule.matched_by(Request("GET", "/?page=1&page=2", {"X-Token": "t"}))
    assert not rule.matched_by(Request("GET", "/?page=1", {"X-Token": "t"}))
    assert not rule.matched_by(Request("GET", "/?page=2"))
