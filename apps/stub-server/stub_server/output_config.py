"""Log output format resolution for the stub server."""

import os
from typing import Literal


LogFormat = Literal["json", "console", "plain"]

ENV_VAR_NAME = "CONSOLE_OUTPUT_FORMAT"

_OUTPUT_TO_LOG_FORMAT: dict[str, LogFormat] = {
    "json": "json",
    "plain": "plain",
    "console": "console",
    "auto": "console",
    "rich": "console",
}


def get_log_format(cli_override: str | None = None) -> LogFormat:
    """
    Get the log format with priority: CLI parameter > Environment variable > Default (console).

    The environment variable accepts the shared output formats as well:
    auto/rich map to console, plain stays plain, json stays json.
    Unknown values are ignored.
    """
    for candidate in (cli_override, os.environ.get(ENV_VAR_NAME)):
        if candidate:
            resolved = _OUTPUT_TO_LOG_FORMAT.get(candidate.lower())
            if resolved is not None:
                return resolved

    return "console"
