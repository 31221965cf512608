"""In-process HTTP stub rule engine."""

from .exceptions import (
    ConfigurationError,
    InvalidValueError,
    RequestReadError,
    ServerLifecycleError,
    StubbingClosedError,
    StubServerError,
    VerificationError,
)
from .headers import HeaderMap
from .mocker import Mocker
from .request import Request
from .response import NO_RULE_FOUND_RESPONSE, StubResponse
from .rule import StubRule
from .server import RequestRecorder, StubHttpServer, StubResponseProvider
from .stubbing import ResponseStubbing, Stubbing
from .verification import Verifying

__all__ = [
    "ConfigurationError",
    "InvalidValueError",
    "HeaderMap",
    "Mocker",
    "NO_RULE_FOUND_RESPONSE",
    "Request",
    "RequestReadError",
    "RequestRecorder",
    "ResponseStubbing",
    "ServerLifecycleError",
    "StubHttpServer",
    "StubResponse",
    "StubResponseProvider",
    "StubRule",
    "StubServerError",
    "Stubbing",
    "StubbingClosedError",
    "VerificationError",
    "Verifying",
]
