"""Exception hierarchy shared by the scorecard services."""

from __future__ import annotations

from typing import Iterable


class RhelloFlowError(Exception):
    """Base class for every error raised by the package."""


class ScorecardValidationError(RhelloFlowError, ValueError):
    """Raised when a user-correctable requirement is not met."""

    def __init__(self, missing: str | Iterable[str]):
        self.missing = [missing] if isinstance(missing, str) else list(missing)
        super().__init__("; ".join(self.missing))


class PersistenceError(RhelloFlowError):
    """Raised when a store read or write fails."""


class RecordNotFoundError(PersistenceError):
    """Raised when a store lookup by identifier finds nothing."""

    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier!r}")


class AuthenticationError(RhelloFlowError):
    """Raised when an operation requires a signed-in user and there is none."""


class OperationInProgressError(RhelloFlowError):
    """Raised when an action is triggered again before the previous one finished."""


class SessionClosedError(RhelloFlowError):
    """Raised when a submitted scorecard session is modified."""


class ExternalTestError(RhelloFlowError):
    """Candidate-facing technical test failure with a machine-readable code."""

    code = "ERROR"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class ExternalTestNotFoundError(ExternalTestError):
    code = "NOT_FOUND"


class ExternalTestSubmittedError(ExternalTestError):
    code = "ALREADY_SUBMITTED"


class ExternalTestExpiredError(ExternalTestError):
    code = "EXPIRED"


class InvalidTestTemplateError(ExternalTestError):
    code = "INVALID_TEMPLATE"


__all__ = [
    "RhelloFlowError",
    "ScorecardValidationError",
    "PersistenceError",
    "RecordNotFoundError",
    "AuthenticationError",
    "OperationInProgressError",
    "SessionClosedError",
    "ExternalTestError",
    "ExternalTestNotFoundError",
    "ExternalTestSubmittedError",
    "ExternalTestExpiredError",
    "InvalidTestTemplateError",
]
