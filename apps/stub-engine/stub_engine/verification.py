"""Post-hoc verification of recorded requests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from .exceptions import VerificationError
from .matchers import ValuePredicate, as_predicate
from .matching import RequestMatching

if TYPE_CHECKING:
    from .mocker import Mocker

LOGGER = structlog.get_logger("stub_engine.verification")


class Verifying(RequestMatching):
    """Describes requests expected among the recorded ones.

    Example::

        mocker.verify_that_request().having_method_equal_to("POST") \\
            .having_path_equal_to("/payments").received_times(2)
    """

    def __init__(self, mocker: "Mocker") -> None:
        super().__init__()
        self._mocker = mocker

    def received_times(self, expectation: int | ValuePredicate) -> None:
        if isinstance(expectation, int) and not isinstance(expectation, bool) and expectation < 0:
            raise ValueError("expected count mustn't be negative")
        predicate = as_predicate(expectation)
        requests = self._mocker.recorded_requests()
        matching = [request for request in requests if self._accepts(request)]
        if predicate(len(matching)):
            return

        message = self._failure_message(predicate, len(matching), requests)
        LOGGER.info("verification_failed", expected=predicate.describe(), actual=len(matching))
        raise VerificationError(message)

    def received_once(self) -> None:
        self.received_times(1)

    def received_never(self) -> None:
        self.received_times(0)

    def _accepts(self, request: Any) -> bool:
        return all(matcher.matches(request) for matcher in self._matchers)

    def _failure_message(self, predicate: ValuePredicate, actual: int, requests: list[Any]) -> str:
        described = " AND ".join(matcher.describe() for matcher in self._matchers) or "any request"
        lines = [
            f"The number of http requests having {described} was expected to be {predicate.describe()}, "
            f"but {actual} such request(s) received."
        ]
        for index, request in enumerate(requests, start=1):
            mismatches = [
                matcher.describe_mismatch(request)
                for matcher in self._matchers
                if not matcher.matches(request)
            ]
            if mismatches:
                lines.append(f"Request #{index} {request.method} {request.uri} did not match:")
                lines.extend(f"  - {mismatch}" for mismatch in mismatches)
        return "\n".join(lines)
