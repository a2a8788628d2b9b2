"""
Remote Results
The (data, error) pair returned by remote client operations
"""

from dataclasses import dataclass
from typing import Any, Optional

from account_portal.mutations.errors import RemoteOperationError


@dataclass(frozen=True)
class RemoteResult:
    """Result of one remote call; exactly one of data/error is meaningful"""
    data: Any = None
    error: Optional[Any] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return data or raise the returned error"""
        if self.error is not None:
            raise RemoteOperationError(self.error)
        return self.data
