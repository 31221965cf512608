from __future__ import annotations

import pytest

from stub_server.logging_utils import RichConsoleRenderer
from stub_server.output_config import ENV_VAR_NAME, get_log_format


def test_cli_value_wins_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_VAR_NAME, "plain")

    assert get_log_format("json") == "json"


def test_environment_aliases_map_to_console(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(ENV_VAR_NAME, "rich")
    assert get_log_format() == "console"

    monkeypatch.setenv(ENV_VAR_NAME, "PLAIN")
    assert get_log_format() == "plain"


def test_unknown_values_fall_back_to_console(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(ENV_VAR_NAME, raising=False)
    assert get_log_format() == "console"

    monkeypatch.setenv(ENV_VAR_NAME, "xml")
    assert get_log_format("yaml") == "console"


def test_rich_renderer_prints_one_block_per_rule() -> None:
    renderer = RichConsoleRenderer(width=120)

    output = renderer(
        None,
        "info",
        {
            "timestamp": "2024-01-01T00:00:00Z",
            "level": "info",
            "event": "no_stub_rule_found",
            "logger": "stub_engine",
            "method": "GET",
            "mismatches": [
                {"rule": "path is equal to '/a' => 1 response(s)", "mismatch": "path is equal to '/a', but was '/b'"},
            ],
        },
    )

    assert "no_stub_rule_found" in output
    assert "method=" in output
    assert "rule: path is equal to '/a' => 1 response(s)" in output
    assert "path is equal to '/a', but was '/b'" in output
