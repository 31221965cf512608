"""The rule engine: registers stubbings and serves stub responses."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from .exceptions import ConfigurationError, InvalidValueError, ServerLifecycleError
from .headers import HeaderMap, HeaderValues
from .matchers import RequestMatcher
from .request import Request
from .response import DEFAULT_RESPONSE_ENCODING, NO_RULE_FOUND_RESPONSE, StubResponse
from .rule import StubRule
from .server import StubHttpServer
from .stubbing import Stubbing, validate_encoding, validate_header, validate_status
from .verification import Verifying

LOGGER = structlog.get_logger("stub_engine")


class Mocker:
    """Stateful, thread-safe heart of the stub server.

    While configurable, callers register stubbings with :meth:`on_request` and
    adjust response defaults. The first served request freezes every stubbing
    into a :class:`StubRule`; from then on the configuration is read-only and
    rules are evaluated most recently defined first.

    Several mockers can live in one process, each bound to its own server.
    """

    def __init__(self, server: StubHttpServer | None = None) -> None:
        self._server = server
        self._stubbings: list[Stubbing] = []
        self._rules: tuple[StubRule, ...] = ()
        self._recorded_requests: list[Request] = []

        self._default_status = 200
        self._default_headers = HeaderMap()
        self._default_encoding = DEFAULT_RESPONSE_ENCODING

        self._configurable = True
        self._started = False

        self._config_lock = threading.Lock()
        self._records_lock = threading.Lock()
        self._lifecycle_lock = threading.Lock()
        self._logger = LOGGER.bind(mocker=hex(id(self)))

    # lifecycle

    def start(self) -> None:
        with self._lifecycle_lock:
            if self._started:
                raise ConfigurationError("The stub server has been started already.")
            server = self._require_server()
            self._logger.debug("stub_server_starting")
            server.register_response_provider(self)
            server.register_request_recorder(self)
            try:
                server.start()
            except Exception as exc:
                raise ServerLifecycleError("Stub http server start failure") from exc
            self._started = True
            self._logger.info("stub_server_started", port=server.port)

    def stop(self) -> None:
        with self._lifecycle_lock:
            if not self._started:
                raise ConfigurationError("The stub server hasn't been started yet.")
            server = self._require_server()
            self._logger.debug("stub_server_stopping")
            try:
                server.stop()
            except Exception as exc:
                raise ServerLifecycleError("Stub http server shutdown failure") from exc
            self._started = False
            self._logger.info("stub_server_stopped")

    def is_started(self) -> bool:
        return self._started

    @property
    def port(self) -> int:
        if not self._started:
            raise ConfigurationError("The stub http server hasn't been started yet.")
        return self._require_server().port

    def _require_server(self) -> StubHttpServer:
        if self._server is None:
            raise ConfigurationError("No stub http server is bound to this mocker.")
        return self._server

    def __enter__(self) -> "Mocker":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._started:
            self.stop()

    # configuration

    def is_configurable(self) -> bool:
        return self._configurable

    def _check_configurable(self) -> None:
        if not self._configurable:
            raise ConfigurationError(
                "Once first http request has been served, you can't do any stubbing anymore."
            )

    def on_request(self) -> Stubbing:
        """Register a new stubbing seeded with the current response defaults."""

        with self._config_lock:
            self._check_configurable()
            stubbing = Stubbing(self._default_encoding, self._default_status, self._default_headers)
            self._stubbings.append(stubbing)
        self._logger.debug("stubbing_added", stubbings=len(self._stubbings))
        return stubbing

    def set_default_status(self, status: int) -> None:
        validate_status(status)
        with self._config_lock:
            self._check_configurable()
            self._default_status = status

    def set_default_headers(self, headers: Mapping[str, HeaderValues] | Iterable[tuple[str, str]]) -> None:
        if headers is None:
            raise InvalidValueError("default headers cannot be None, use an empty mapping instead")
        try:
            replacement = HeaderMap(headers)
        except ValueError as exc:
            raise InvalidValueError(str(exc)) from exc
        with self._config_lock:
            self._check_configurable()
            self._default_headers = replacement

    def add_default_header(self, name: str, value: str) -> None:
        validate_header(name, value)
        with self._config_lock:
            self._check_configurable()
            self._default_headers.add(name, value)

    def set_default_encoding(self, encoding: str) -> None:
        validate_encoding(encoding)
        with self._config_lock:
            self._check_configurable()
            self._default_encoding = encoding

    @property
    def default_status(self) -> int:
        return self._default_status

    @property
    def default_encoding(self) -> str:
        return self._default_encoding

    @property
    def default_headers(self) -> HeaderMap:
        return self._default_headers.copy()

    @property
    def rules(self) -> tuple[StubRule, ...]:
        return self._rules

    # serving

    def provide_stub_response_for(self, request: Request) -> StubResponse:
        self._freeze()
        self.record_request(request)

        for rule in reversed(self._rules):
            if rule.matched_by(request):
                self._logger.debug("stub_rule_applied", rule=str(rule), method=request.method, uri=request.uri)
                return rule.next_response()

        mismatches = [
            {"rule": str(rule), "mismatch": rule.describe_mismatch(request)}
            for rule in self._rules
        ]
        self._logger.info(
            "no_stub_rule_found",
            method=request.method,
            uri=request.uri,
            mismatches=mismatches,
        )
        return NO_RULE_FOUND_RESPONSE

    def _freeze(self) -> None:
        if not self._configurable:
            return
        with self._config_lock:
            if not self._configurable:
                return
            rules = tuple(stubbing._build_rule() for stubbing in self._stubbings)
            for stubbing in self._stubbings:
                stubbing._close()
            self._rules = rules
            self._configurable = False
        self._logger.debug("stub_rules_frozen", rules=len(self._rules))

    # recording

    def record_request(self, request: Request) -> None:
        with self._records_lock:
            self._recorded_requests.append(request)

    def recorded_requests(self) -> list[Request]:
        with self._records_lock:
            return list(self._recorded_requests)

    def number_of_requests_matching(self, matchers: Iterable[RequestMatcher]) -> int:
        expected = tuple(matchers)
        return sum(
            1
            for request in self.recorded_requests()
            if all(matcher.matches(request) for matcher in expected)
        )

    def verify_that_request(self) -> Verifying:
        return Verifying(self)

    def summary(self) -> dict[str, Any]:
        return {
            "configurable": self._configurable,
            "started": self._started,
            "stubbings": len(self._stubbings),
            "rules": len(self._rules),
            "recorded_requests": len(self.recorded_requests()),
        }
