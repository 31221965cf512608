"""Threaded HTTP listener feeding decoded requests to the stub rule engine."""

from __future__ import annotations

import socket
import socketserver
import threading
import time
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any, BinaryIO

import structlog

from stub_engine.exceptions import ConfigurationError, RequestReadError
from stub_engine.mocker import Mocker
from stub_engine.request import Request
from stub_engine.response import NO_RULE_FOUND_RESPONSE, StubResponse
from stub_engine.server import RequestRecorder, StubResponseProvider

from .config import ServerSettings

LOGGER = structlog.get_logger("stub_server")

SERVER_FAILURE_RESPONSE = StubResponse(
    status=500,
    headers=(("Content-Type", "text/plain; charset=utf-8"),),
    body=b"Stub server failure",
)

HANDLED_METHODS = ("GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "TRACE", "CONNECT")

_SKIPPED_RESPONSE_HEADERS = {"content-length"}


class ThreadedHTTPServer(socketserver.ThreadingMixIn, HTTPServer):
    daemon_threads = True
    allow_reuse_address = True


class _BodyReader:
    """Reads a request body off the connection, by length or chunked coding."""

    def __init__(self, stream: BinaryIO, content_length: str | None, transfer_encoding: str | None) -> None:
        self._stream = stream
        self._content_length = content_length
        self._chunked = bool(transfer_encoding) and "chunked" in transfer_encoding.lower()

    def read(self) -> bytes:
        if self._chunked:
            return self._read_chunked()
        if not self._content_length:
            return b""
        try:
            length = int(self._content_length)
        except ValueError as exc:
            raise OSError(f"invalid Content-Length {self._content_length!r}") from exc
        return self._read_exactly(length)

    def _read_exactly(self, length: int) -> bytes:
        data = self._stream.read(length) if length > 0 else b""
        if len(data) != max(length, 0):
            raise OSError(f"connection closed after {len(data)} of {length} body bytes")
        return data

    def _read_chunked(self) -> bytes:
        body = bytearray()
        while True:
            size_line = self._stream.readline()
            if not size_line:
                raise OSError("connection closed inside a chunked body")
            try:
                size = int(size_line.split(b";", 1)[0].strip(), 16)
            except ValueError as exc:
                raise OSError(f"invalid chunk size line {size_line!r}") from exc
            if size == 0:
                # trailer section ends with an empty line
                while self._stream.readline() not in (b"\r\n", b"\n", b""):
                    pass
                return bytes(body)
            body.extend(self._read_exactly(size))
            self._stream.readline()


class ThreadedStubHttpServer:
    """Stub http server built on the standard library threading HTTP server."""

    def __init__(self, host: str = "127.0.0.1", port: int = 0) -> None:
        self._host = host
        self._port = port
        self._provider: StubResponseProvider | None = None
        self._recorder: RequestRecorder | None = None
        self._httpd: ThreadedHTTPServer | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()
        self._logger = LOGGER.bind(host=host)

    def register_response_provider(self, provider: StubResponseProvider) -> None:
        if provider is None:
            raise ValueError("provider cannot be None")
        self._provider = provider

    def register_request_recorder(self, recorder: RequestRecorder) -> None:
        if recorder is None:
            raise ValueError("recorder cannot be None")
        self._recorder = recorder

    def start(self) -> None:
        if self._httpd is not None:
            raise ConfigurationError("The stub http server is running already.")
        self._logger.debug("server_starting", port=self._port)
        httpd = ThreadedHTTPServer((self._host, self._port), self._build_handler_factory())
        self._httpd = httpd
        self._thread = threading.Thread(target=httpd.serve_forever, name="stub-http-server", daemon=True)
        self._thread.start()
        self._ready.set()
        self._logger = self._logger.bind(port=httpd.server_address[1])
        self._logger.info("server_started")

    def stop(self) -> None:
        if self._httpd is None:
            raise ConfigurationError("The stub http server hasn't been started yet.")
        self._logger.debug("server_stopping")
        try:
            self._httpd.shutdown()
            self._httpd.server_close()
        finally:
            if self._thread:
                self._thread.join(timeout=2)
            self._httpd = None
            self._thread = None
            self._ready.clear()
        self._logger.info("server_stopped")

    @property
    def port(self) -> int:
        if self._httpd is None:
            raise ConfigurationError("The stub http server hasn't been started yet.")
        return self._httpd.server_address[1]

    def wait_until_ready(self, timeout: float = 1.0) -> bool:
        return self._ready.wait(timeout=timeout)

    def _respond_to(self, request: Request) -> StubResponse:
        if self._provider is not None:
            return self._provider.provide_stub_response_for(request)
        if self._recorder is not None:
            self._recorder.record_request(request)
        return NO_RULE_FOUND_RESPONSE

    def _build_handler_factory(self) -> type[BaseHTTPRequestHandler]:
        stub_server = self
        handler_logger = LOGGER.bind(host=self._host)

        class Handler(BaseHTTPRequestHandler):
            def log_message(self, format: str, *args: Any) -> None:  # pragma: no cover - avoid stderr
                handler_logger.debug("http_trace", client_ip=self.client_address[0], message=format % args)

            def _handle(self) -> None:
                head_only = self.command == "HEAD"
                request_logger = handler_logger.bind(
                    port=self.server.server_address[1],
                    method=self.command,
                    uri=self.path,
                )
                try:
                    request = self._decode_request()
                except RequestReadError as exc:
                    request_logger.warning("request_body_unreadable", error=str(exc))
                    self.close_connection = True
                    return

                request_logger.info("request_received", content_length=len(request.body))
                try:
                    response = stub_server._respond_to(request)
                except Exception:  # pragma: no cover - resilience path
                    request_logger.exception("request_failed")
                    response = SERVER_FAILURE_RESPONSE

                if response.latency_ms:
                    time.sleep(response.latency_ms / 1000)
                self._write(response, head_only=head_only)
                request_logger.info("request_served", status=response.status, body_length=len(response.body))

            def _decode_request(self) -> Request:
                headers: dict[str, list[str]] = {}
                for name, value in self.headers.items():
                    headers.setdefault(name, []).append(value)

                body = _BodyReader(
                    self.rfile,
                    self.headers.get("Content-Length"),
                    self.headers.get("Transfer-Encoding"),
                )
                return Request(
                    self.command,
                    self.path,
                    headers,
                    body,
                    local_address=_address(self.connection.getsockname()),
                    remote_address=_address(self.client_address),
                    encoding=self.headers.get_content_charset(None),
                )

            def _write(self, response: StubResponse, *, head_only: bool) -> None:
                try:
                    self.send_response(response.status)
                    for name, value in response.headers:
                        if name.lower() not in _SKIPPED_RESPONSE_HEADERS:
                            self.send_header(name, value)
                    self.send_header("Content-Length", str(len(response.body)))
                    self.end_headers()
                    if not head_only:
                        self.wfile.write(response.body)
                except (BrokenPipeError, ConnectionResetError, socket.timeout) as exc:
                    handler_logger.warning("response_write_failed", error=str(exc))

        for verb in HANDLED_METHODS:
            setattr(Handler, f"do_{verb}", Handler._handle)
        return Handler


def _address(raw: Any) -> tuple[str, int] | None:
    if isinstance(raw, tuple) and len(raw) >= 2:
        return str(raw[0]), int(raw[1])
    return None


def create_mocker(settings: ServerSettings | None = None) -> Mocker:
    """Build a mocker bound to a new threaded stub http server."""

    settings = settings or ServerSettings()
    mocker = Mocker(ThreadedStubHttpServer(settings.host, settings.port))
    mocker.set_default_status(settings.default_status)
    mocker.set_default_encoding(settings.default_encoding)
    mocker.set_default_headers(settings.default_headers)
    return mocker
