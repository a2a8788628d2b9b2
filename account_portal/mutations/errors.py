"""
Normalized Errors
Single boundary that maps every failure path into a NormalizedError
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError
from supabase import AuthError, AuthRetryableError, PostgrestAPIError

logger = logging.getLogger(__name__)

DEFAULT_FAILURE_MESSAGE = "Something went wrong, please try again; ref: {digest}"
NETWORK_FAILURE_MESSAGE = (
    "Could not reach the server, please check your connection and try again; ref: {digest}"
)
DIGEST_LENGTH = 10


class ErrorKind(str, Enum):
    """Error taxonomy exposed to the presentation layer"""
    VALIDATION = "validation_error"
    REMOTE = "remote_error"
    NETWORK = "network_error"
    UNKNOWN = "unknown_error"


@dataclass(frozen=True)
class NormalizedError:
    """Display-safe error shape"""
    kind: ErrorKind
    message: str
    digest: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "digest": self.digest,
        }


@dataclass(frozen=True)
class FieldError:
    """Local validation failure for a single form field"""
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"field": self.field, "message": self.message}


class RemoteOperationError(Exception):
    """Raised when a remote call returns a non-null error field"""

    def __init__(self, error: Any):
        self.error = error
        super().__init__(error_message(error))


class UserFacingError(Exception):
    """Failure raised by our own operations whose message is safe to display"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


NETWORK_ERRORS = (
    httpx.TransportError,
    AuthRetryableError,
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)

REMOTE_ERRORS = (AuthError, PostgrestAPIError)


def error_message(error: Any) -> str:
    """Best-effort message extraction from SDK errors, exceptions and dicts"""
    if isinstance(error, dict):
        return str(error.get("message") or error)
    message = getattr(error, "message", None)
    if message:
        return str(message)
    return str(error)


def compute_digest(error: Any) -> str:
    """Short correlation id derived from the error type and message"""
    source = f"{type(error).__name__}:{error_message(error)}"
    return hashlib.sha256(source.encode("utf-8")).hexdigest()[:DIGEST_LENGTH]


def field_errors(exc: ValidationError) -> List[FieldError]:
    """Flatten a pydantic ValidationError into per-field messages"""
    errors = []
    for item in exc.errors():
        field = ".".join(str(part) for part in item.get("loc", ())) or "__root__"
        ctx = item.get("ctx") or {}
        if item.get("type") == "value_error" and "error" in ctx:
            message = str(ctx["error"])
        else:
            message = item.get("msg", "Invalid value")
        errors.append(FieldError(field=field, message=message))
    return errors


def classify(error: Any) -> ErrorKind:
    """
    Kind of a failure raised or returned by a remote operation

    A pydantic ValidationError reaching this point came from parsing a
    remote response, not from user input, so it is unknown_error.
    """
    if isinstance(error, RemoteOperationError):
        inner = error.error
        if isinstance(inner, NETWORK_ERRORS):
            return ErrorKind.NETWORK
        return ErrorKind.REMOTE
    if isinstance(error, UserFacingError):
        return ErrorKind.REMOTE
    # AuthRetryableError is an AuthError, so connectivity is checked first
    if isinstance(error, NETWORK_ERRORS):
        return ErrorKind.NETWORK
    if isinstance(error, REMOTE_ERRORS):
        return ErrorKind.REMOTE
    return ErrorKind.UNKNOWN


def validation_failure(exc: ValidationError) -> NormalizedError:
    """Local input rejected by a form schema; field messages are safe to show"""
    message = "; ".join(f"{e.field}: {e.message}" for e in field_errors(exc))
    return NormalizedError(kind=ErrorKind.VALIDATION, message=message or "Invalid input")


def normalize_error(error: Any, failure_message: Optional[str] = None) -> NormalizedError:
    """
    Map any failure into a NormalizedError

    Args:
        error: Raised exception or returned SDK error object
        failure_message: Template with a ``{digest}`` placeholder used in place
            of remote messages, which may leak backend details

    Returns:
        NormalizedError: kind is always set
    """
    kind = classify(error)
    digest = compute_digest(error)

    if isinstance(error, UserFacingError):
        return NormalizedError(kind=kind, message=error.message, digest=digest)

    if kind is ErrorKind.NETWORK:
        template = NETWORK_FAILURE_MESSAGE
    else:
        template = failure_message or DEFAULT_FAILURE_MESSAGE

    return NormalizedError(kind=kind, message=template.format(digest=digest), digest=digest)
