"""
Mutation lifecycle, invalidation signal and read queries

Shared by every form that talks to the remote identity/profile service.
"""

from .errors import (
    ErrorKind,
    FieldError,
    NormalizedError,
    RemoteOperationError,
    UserFacingError,
    field_errors,
    normalize_error,
    validation_failure,
)
from .executor import MutationExecutor
from .invalidation import CacheScope, InvalidationBus
from .query import Query, QueryCache
from .results import RemoteResult
from .state import Failed, Idle, MutationState, Pending, Succeeded

__all__ = [
    "ErrorKind",
    "FieldError",
    "NormalizedError",
    "RemoteOperationError",
    "UserFacingError",
    "field_errors",
    "normalize_error",
    "validation_failure",
    "MutationExecutor",
    "CacheScope",
    "InvalidationBus",
    "Query",
    "QueryCache",
    "RemoteResult",
    "Failed",
    "Idle",
    "MutationState",
    "Pending",
    "Succeeded",
]
