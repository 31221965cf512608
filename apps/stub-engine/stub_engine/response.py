"""Stub response definitions served by the rule engine."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_RESPONSE_ENCODING = "UTF-8"


class StubResponse(BaseModel):
    """Immutable response definition written back verbatim by the transport."""

    model_config = ConfigDict(frozen=True)

    status: int = Field(default=200, ge=0)
    headers: tuple[tuple[str, str], ...] = ()
    body: bytes = b""
    encoding: str = DEFAULT_RESPONSE_ENCODING
    latency_ms: int = Field(default=0, ge=0)

    def get_headers(self, name: str) -> list[str] | None:
        key = name.lower()
        values = [value for header, value in self.headers if header.lower() == key]
        return values or None

    def get_first_header(self, name: str) -> str | None:
        values = self.get_headers(name)
        return values[0] if values else None

    def body_as_string(self) -> str:
        return self.body.decode(self.encoding)


NO_RULE_FOUND_MESSAGE = "No stub response found for the incoming request"

NO_RULE_FOUND_RESPONSE = StubResponse(
    status=404,
    headers=(("Content-Type", "text/plain; charset=utf-8"),),
    body=NO_RULE_FOUND_MESSAGE.encode("utf-8"),
    encoding="UTF-8",
)
