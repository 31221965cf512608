from __future__ import annotations

import pytest

from stub_engine.headers import HeaderMap


def test_names_are_case_insensitive_and_keep_first_spelling() -> None:
    headers = HeaderMap({"X-Trace": "a"})
    headers.add("x-trace", "b")
    headers.extend("Accept", ["text/plain", "application/json"])

    assert headers.get_all("X-TRACE") == ["a", "b"]
    assert headers.get_first("accept") == "text/plain"
    assert list(headers.pairs()) == [
        ("X-Trace", "a"),
        ("X-Trace", "b"),
        ("Accept", "text/plain"),
        ("Accept", "application/json"),
    ]
    assert "x-trace" in headers
    assert len(headers) == 2


def test_missing_header_is_none() -> None:
    headers = HeaderMap()

    assert headers.get_all("X") is None
    assert headers.get_first("X") is None


def test_copy_is_independent() -> None:
    original = HeaderMap([("X", "1")])
    copied = original.copy()
    copied.add("X", "2")

    assert original.get_all("x") == ["1"]
    assert copied != original


@pytest.mark.parametrize("name, value", [("", "v"), ("X", None)])
def test_invalid_entries_are_rejected(name: str, value: str) -> None:
    with pytest.raises(ValueError):
        HeaderMap().add(name, value)
