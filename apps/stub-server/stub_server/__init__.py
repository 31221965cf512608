"""Threaded transport, stub files and CLI around the stub rule engine."""

from .server import ThreadedStubHttpServer, create_mocker

__all__ = ["ThreadedStubHttpServer", "create_mocker"]
