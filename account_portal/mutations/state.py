"""
Mutation State
Tagged union describing the lifecycle of one mutation
"""

from dataclasses import dataclass
from typing import Any, ClassVar, Union

from account_portal.mutations.errors import NormalizedError


@dataclass(frozen=True)
class Idle:
    status: ClassVar[str] = "idle"


@dataclass(frozen=True)
class Pending:
    request: Any
    status: ClassVar[str] = "pending"


@dataclass(frozen=True)
class Succeeded:
    data: Any
    status: ClassVar[str] = "success"


@dataclass(frozen=True)
class Failed:
    error: NormalizedError
    status: ClassVar[str] = "error"


MutationState = Union[Idle, Pending, Succeeded, Failed]

IDLE = Idle()
