"""Error kinds raised by the stub engine."""

from __future__ import annotations


class StubServerError(Exception):
    """Base class for every error raised by the stub engine."""


class ConfigurationError(StubServerError):
    """Raised when the engine is configured or driven in the wrong lifecycle phase."""


class StubbingClosedError(ConfigurationError):
    """Raised when a stubbing is used after it has been turned into a rule."""


class InvalidValueError(ConfigurationError, ValueError):
    """Raised when a stub default or response attribute gets an invalid value."""


class RequestReadError(StubServerError, OSError):
    """Raised when the body of an incoming request cannot be drained."""


class ServerLifecycleError(StubServerError):
    """Raised when the underlying stub http server fails to start or stop."""


class VerificationError(StubServerError, AssertionError):
    """Raised when recorded requests do not satisfy a verification."""
