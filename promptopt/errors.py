"""
Optimization errors.

Every failure an optimize request can produce is an ``OptimizationError``;
``str(error)`` is the message shown to the user.

Hierarchy
~~~~~~~~~
OptimizationError (base)
├── ValidationError      empty prompt, rejected before dispatch
├── ConfigurationError   missing credential, endpoint or model
├── TransportError       non-success HTTP status or managed-call failure
├── UnknownError         anything else raised while dispatching
└── StaleResultError     result arrived after the session state was replaced
"""

from __future__ import annotations

from typing import Optional

GENERIC_FAILURE_MESSAGE = "Failed to optimize prompt. The API call returned an error."


class OptimizationError(Exception):
    """Base class for errors surfaced by an optimize request."""

    kind = "unknown"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class ValidationError(OptimizationError):
    kind = "validation"


class ConfigurationError(OptimizationError):
    kind = "configuration"


class TransportError(OptimizationError):
    """Backend answered with an error or could not be reached."""

    kind = "transport"

    def __init__(
        self,
        message: str = GENERIC_FAILURE_MESSAGE,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.status_code is not None:
            data["status_code"] = self.status_code
        return data


class UnknownError(OptimizationError):
    kind = "unknown"

    def __init__(self, message: str = GENERIC_FAILURE_MESSAGE):
        super().__init__(message)


class StaleResultError(OptimizationError):
    kind = "stale"
