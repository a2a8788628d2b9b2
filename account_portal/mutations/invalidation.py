"""
Cache Invalidation Signal
Synchronous fan-out telling readers that fetched identity/profile data is stale
"""

import logging
from enum import Enum
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class CacheScope(str, Enum):
    """Families of cached reads"""
    ALL = "all"
    PROFILE = "profile"
    SESSION = "session"


InvalidationCallback = Callable[[CacheScope], None]


class _Subscription:
    __slots__ = ("callback", "scope", "active")

    def __init__(self, callback: InvalidationCallback, scope: CacheScope):
        self.callback = callback
        self.scope = scope
        self.active = True

    def matches(self, scope: CacheScope) -> bool:
        return scope is CacheScope.ALL or self.scope is CacheScope.ALL or self.scope is scope


class InvalidationBus:
    """
    Process-wide invalidation event bus

    One instance is created per application and handed to writers
    (mutation executors) and readers (queries) explicitly.
    """

    def __init__(self):
        self._subscriptions: List[_Subscription] = []

    def subscribe(
        self,
        callback: InvalidationCallback,
        scope: Optional[CacheScope] = None
    ) -> Callable[[], None]:
        """
        Register a callback

        Args:
            callback: Called with the invalidated scope
            scope: Only receive invalidations for this scope (None = all)

        Returns:
            Idempotent unsubscribe function
        """
        subscription = _Subscription(callback, scope or CacheScope.ALL)
        self._subscriptions.append(subscription)

        def unsubscribe() -> None:
            if not subscription.active:
                return
            subscription.active = False
            self._subscriptions = [s for s in self._subscriptions if s is not subscription]

        return unsubscribe

    def invalidate(self, scope: Optional[CacheScope] = None) -> None:
        """Notify matching subscribers, in subscription order, before returning"""
        scope = scope or CacheScope.ALL
        # Snapshot: callbacks may subscribe or unsubscribe while we iterate
        snapshot = list(self._subscriptions)
        logger.debug(f"Invalidating scope={scope.value} for {len(snapshot)} subscribers")

        for subscription in snapshot:
            if not subscription.active or not subscription.matches(scope):
                continue
            try:
                subscription.callback(scope)
            except Exception as e:
                logger.error(f"Invalidation subscriber failed for scope {scope.value}: {e}", exc_info=True)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    def clear(self) -> None:
        for subscription in self._subscriptions:
            subscription.active = False
        self._subscriptions = []
