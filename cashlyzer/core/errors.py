"""
Error types raised at the collaborator boundary (Transaction Store, Notification Sink).

Provider specific error codes are translated into an ErrorKind so that callers
never branch on vendor strings.
"""
from enum import Enum
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"
    TRANSIENT = "transient"
    INTERNAL = "internal"


_CLIENT_ERROR_KINDS: Dict[str, ErrorKind] = {
    "ResourceNotFoundException": ErrorKind.NOT_FOUND,
    "ValidationException": ErrorKind.INVALID_INPUT,
    "ConditionalCheckFailedException": ErrorKind.INVALID_INPUT,
    "SerializationException": ErrorKind.INVALID_INPUT,
    "AccessDeniedException": ErrorKind.UNAUTHORIZED,
    "UnrecognizedClientException": ErrorKind.UNAUTHORIZED,
    "ExpiredTokenException": ErrorKind.UNAUTHORIZED,
    "ProvisionedThroughputExceededException": ErrorKind.TRANSIENT,
    "ThrottlingException": ErrorKind.TRANSIENT,
    "RequestLimitExceeded": ErrorKind.TRANSIENT,
    "ServiceUnavailable": ErrorKind.TRANSIENT,
    "InternalServerError": ErrorKind.TRANSIENT,
}


class CashlyzerError(Exception):
    """Base class for errors raised by Cashlyzer collaborators."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.INTERNAL,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.details = details or {}

    def __str__(self) -> str:
        return f"{self.message} ({self.kind.value})"


class StoreError(CashlyzerError):
    """Transaction Store read/write failure."""


class NotificationError(CashlyzerError):
    """Notification Sink failure."""


def error_kind_for(exc: Exception) -> ErrorKind:
    """Map a boto exception to an ErrorKind."""
    if isinstance(exc, ClientError):
        code = exc.response.get("Error", {}).get("Code", "")
        return _CLIENT_ERROR_KINDS.get(code, ErrorKind.INTERNAL)
    if isinstance(exc, BotoCoreError):
        # connection/endpoint problems
        return ErrorKind.TRANSIENT
    return ErrorKind.INTERNAL


def describe(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Message", str(exc))
    return str(exc)


class SavingsPlanError(CashlyzerError):
    """A savings plan operation was refused (balance or contribution rules)."""
