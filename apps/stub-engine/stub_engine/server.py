"""Contracts between the rule engine and the transport feeding it."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .request import Request
from .response import StubResponse


@runtime_checkable
class StubResponseProvider(Protocol):
    def provide_stub_response_for(self, request: Request) -> StubResponse:
        ...


@runtime_checkable
class RequestRecorder(Protocol):
    def record_request(self, request: Request) -> None:
        ...


@runtime_checkable
class StubHttpServer(Protocol):
    """Listener decoding connections into requests for the registered provider.

    ``start`` and ``stop`` may fail with any exception; the mocker wraps those
    failures. ``port`` is only meaningful once the server has been started.
    """

    def register_response_provider(self, provider: StubResponseProvider) -> None:
        ...

    def register_request_recorder(self, recorder: RequestRecorder) -> None:
        ...

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...

    @property
    def port(self) -> int:
        ...
