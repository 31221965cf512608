"""Stub file models and loading helpers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import BaseModel, Field

from stub_engine.mocker import Mocker
from stub_engine.stubbing import Stubbing

LOGGER = structlog.get_logger("stub_server.config")


class StubRequestSpec(BaseModel):
    """Request criteria; every field left out matches anything."""

    method: str | None = None
    path: str | None = None
    uri: str | None = None
    query_string: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    parameters: dict[str, str] = Field(default_factory=dict)
    body: str | None = None


class StubResponseSpec(BaseModel):
    """One response of a stub; unset fields fall back to the server defaults."""

    status: int | None = Field(default=None, ge=0)
    headers: dict[str, str | list[str]] = Field(default_factory=dict)
    body: Any = None
    encoding: str | None = None
    latency_ms: int = Field(default=0, ge=0)

    def rendered_body(self) -> str | None:
        if self.body is None or isinstance(self.body, str):
            return self.body
        return json.dumps(self.body)

    def is_structured(self) -> bool:
        return self.body is not None and not isinstance(self.body, str)


class StubSpec(BaseModel):
    """Single stub rule: request criteria plus the responses served in order."""

    name: str | None = None
    request: StubRequestSpec = Field(default_factory=StubRequestSpec)
    responses: list[StubResponseSpec] = Field(default_factory=lambda: [StubResponseSpec()], min_length=1)


class ServerSettings(BaseModel):
    """Bind address and response defaults of a stub server."""

    host: str = "127.0.0.1"
    port: int = Field(default=0, ge=0, le=65535)
    default_status: int = Field(default=200, ge=0)
    default_headers: dict[str, str | list[str]] = Field(default_factory=dict)
    default_encoding: str = "UTF-8"


class StubServerConfig(BaseModel):
    """Top-level stub file consumed by the CLI."""

    settings: ServerSettings = Field(default_factory=ServerSettings)
    stubs: list[StubSpec] = Field(default_factory=list)

    def as_serializable(self) -> dict[str, Any]:
        """Return a JSON/YAML friendly payload."""

        return self.model_dump(mode="json")


def load_config(path: Path) -> StubServerConfig:
    """Load and validate a YAML or JSON stub file."""

    text = Path(path).read_text(encoding="utf-8")
    if Path(path).suffix.lower() == ".json":
        data = json.loads(text)
    else:
        data = yaml.safe_load(text)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Stub file {path} must contain a mapping")
    config = StubServerConfig.model_validate(data)
    LOGGER.debug("stub_config_loaded", path=str(path), stubs=len(config.stubs))
    return config


def apply_config(config: StubServerConfig, mocker: Mocker) -> list[Stubbing]:
    """Apply the response defaults and register one stubbing per stub, in file order."""

    settings = config.settings
    mocker.set_default_status(settings.default_status)
    mocker.set_default_encoding(settings.default_encoding)
    mocker.set_default_headers(settings.default_headers)
    return [_register(spec, mocker) for spec in config.stubs]


def _register(spec: StubSpec, mocker: Mocker) -> Stubbing:
    stubbing = mocker.on_request()
    criteria = spec.request
    if criteria.method:
        stubbing.having_method_equal_to(criteria.method)
    if criteria.path is not None:
        stubbing.having_path_equal_to(criteria.path)
    if criteria.uri is not None:
        stubbing.having_uri_equal_to(criteria.uri)
    if criteria.query_string is not None:
        stubbing.having_query_string_equal_to(criteria.query_string)
    for name, value in criteria.headers.items():
        stubbing.having_header_equal_to(name, value)
    for name, value in criteria.parameters.items():
        stubbing.having_parameter_equal_to(name, value)
    if criteria.body is not None:
        stubbing.having_body_equal_to(criteria.body)

    for response_spec in spec.responses:
        response = stubbing.then_respond()
        if response_spec.encoding:
            response.with_encoding(response_spec.encoding)
        if response_spec.status is not None:
            response.with_status(response_spec.status)
        for name, values in response_spec.headers.items():
            for value in [values] if isinstance(values, str) else values:
                response.with_header(name, value)
        if response_spec.is_structured() and not _has_header(response_spec.headers, "content-type"):
            response.with_header("Content-Type", "application/json")
        body = response_spec.rendered_body()
        if body is not None:
            response.with_body(body)
        if response_spec.latency_ms:
            response.with_latency(response_spec.latency_ms)
    return stubbing


def _has_header(headers: dict[str, Any], name: str) -> bool:
    return any(key.lower() == name for key in headers)


def describe_stub(spec: StubSpec) -> str:
    criteria = spec.request
    method = (criteria.method or "*").upper()
    target = criteria.uri or criteria.path or "/*"
    statuses = ", ".join(
        str(response.status) if response.status is not None else "default" for response in spec.responses
    )
    label = f"{spec.name}: " if spec.name else ""
    return f"{label}{method} {target} -> [{statuses}]"
