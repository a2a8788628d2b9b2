"""
Read Queries
Remote reads that re-fetch when the invalidation bus marks them stale
"""

import asyncio
import logging
from collections import OrderedDict
from typing import Any, Awaitable, Callable, Generic, Hashable, Optional, Set, TypeVar

from account_portal.mutations.errors import NormalizedError, normalize_error
from account_portal.mutations.invalidation import CacheScope, InvalidationBus
from account_portal.mutations.results import RemoteResult

logger = logging.getLogger(__name__)

TData = TypeVar("TData")

Fetcher = Callable[[], Awaitable[Any]]

DEFAULT_CACHE_SIZE = 1024


class Query(Generic[TData]):
    """
    Fetch state for one keyed remote read

    Concurrent readers share the newest in-flight fetch. A fetch that was
    superseded (by a newer fetch, an invalidation or a key change) never
    updates the query.
    """

    def __init__(
        self,
        key: Hashable,
        fetch_fn: Optional[Fetcher] = None,
        *,
        invalidation_bus: Optional[InvalidationBus] = None,
        scope: Optional[CacheScope] = None,
        refetch_on_invalidate: bool = True,
    ):
        self.key = key
        self._fetch_fn = fetch_fn
        self._refetch_on_invalidate = refetch_on_invalidate

        self.data: Optional[TData] = None
        self.error: Optional[NormalizedError] = None
        self.is_stale = True
        self._in_flight = 0
        self._generation = 0
        self._current: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

        self._unsubscribe = None
        if invalidation_bus is not None:
            self._unsubscribe = invalidation_bus.subscribe(self._on_invalidate, scope)

    @property
    def is_fetching(self) -> bool:
        return self._in_flight > 0

    @property
    def is_loading(self) -> bool:
        """First load: fetching with nothing to show yet"""
        return self.is_fetching and self.data is None

    @property
    def is_error(self) -> bool:
        return self.error is not None

    async def refetch(self, fetch_fn: Optional[Fetcher] = None) -> Optional[TData]:
        """
        Start a new fetch and wait until the query settles

        Args:
            fetch_fn: Fetcher for this read only; defaults to the query's own

        Returns:
            The query's data once the newest fetch has settled
        """
        return await self._settle(self._start_fetch(fetch_fn), fetch_fn)

    async def result(self, fetch_fn: Optional[Fetcher] = None) -> Optional[TData]:
        """Cached data; when stale, joins the in-flight fetch or starts one"""
        if not self.is_stale:
            return self.data
        current = self._current
        if current is None or current.done():
            current = self._start_fetch(fetch_fn)
        return await self._settle(current, fetch_fn)

    def set_key(self, key: Hashable, fetch_fn: Fetcher) -> None:
        """Point the query at another key and re-fetch"""
        if key == self.key:
            self._fetch_fn = fetch_fn
            return
        self.key = key
        self._fetch_fn = fetch_fn
        self.data = None
        self.error = None
        self._mark_stale()
        self._schedule_refetch()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        # Pending fetches must not land after close
        self._mark_stale()

    def _mark_stale(self) -> None:
        self.is_stale = True
        self._generation += 1
        self._current = None

    def _on_invalidate(self, scope: CacheScope) -> None:
        # In-flight fetches may predate the change that caused this
        self._mark_stale()
        if self._refetch_on_invalidate:
            self._schedule_refetch()

    def _start_fetch(self, fetch_fn: Optional[Fetcher] = None) -> asyncio.Task:
        fetch_fn = fetch_fn or self._fetch_fn
        if fetch_fn is None:
            raise RuntimeError(f"Query {self.key} has no fetcher")

        self._generation += 1
        self._in_flight += 1
        task = asyncio.get_running_loop().create_task(
            self._fetch(self._generation, fetch_fn),
            name=f"fetch-{self.key}-{self._generation}"
        )
        self._current = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _fetch(self, generation: int, fetch_fn: Fetcher) -> None:
        try:
            data = await fetch_fn()
            if isinstance(data, RemoteResult):
                data = data.unwrap()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if generation == self._generation:
                self.error = normalize_error(e)
                logger.error(f"Query {self.key} failed (ref {self.error.digest}): {e}", exc_info=True)
            return
        finally:
            self._in_flight -= 1

        if generation == self._generation:
            self.data = data
            self.error = None
            self.is_stale = False
        else:
            logger.debug(f"Ignoring superseded fetch of {self.key} #{generation}")

    async def _settle(self, task: asyncio.Task, fetch_fn: Optional[Fetcher] = None) -> Optional[TData]:
        """Follow superseding fetches until one of them lands or fails"""
        while True:
            # Shielded: one reader giving up must not cancel the shared fetch
            await asyncio.shield(task)
            if not self.is_stale:
                return self.data
            current = self._current
            if current is None:
                task = self._start_fetch(fetch_fn)
            elif not current.done():
                task = current
            else:
                # The newest fetch failed; its error is on the query
                return self.data

    def _schedule_refetch(self) -> None:
        if self._fetch_fn is None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            # No loop: result() fetches lazily
            return
        self._start_fetch()

    async def wait(self) -> Optional[TData]:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
        return self.data


class QueryCache:
    """
    Bounded registry of queries sharing one invalidation bus

    Used by long-lived processes: entries are marked stale on invalidation
    and re-fetched on the next read. Queries never keep a fetcher; every
    read supplies one, so cached entries hold no per-request client.
    The least recently used entry is dropped once ``max_entries`` is reached.
    """

    def __init__(self, invalidation_bus: Optional[InvalidationBus] = None, max_entries: int = DEFAULT_CACHE_SIZE):
        self._bus = invalidation_bus
        self.max_entries = max_entries
        self._queries: "OrderedDict[Hashable, Query]" = OrderedDict()

    def get(self, key: Hashable, scope: Optional[CacheScope] = None) -> Query:
        query = self._queries.get(key)
        if query is not None:
            self._queries.move_to_end(key)
            return query

        query = Query(key, invalidation_bus=self._bus, scope=scope, refetch_on_invalidate=False)
        self._queries[key] = query
        while len(self._queries) > self.max_entries:
            evicted_key, evicted = self._queries.popitem(last=False)
            evicted.close()
            logger.debug(f"Evicted query {evicted_key}")
        return query

    async def fetch(self, key: Hashable, fetch_fn: Fetcher, scope: Optional[CacheScope] = None) -> Query:
        query = self.get(key, scope)
        await query.result(fetch_fn)
        return query

    def remove(self, key: Hashable) -> None:
        query = self._queries.pop(key, None)
        if query is not None:
            query.close()

    def clear(self) -> None:
        for query in self._queries.values():
            query.close()
        self._queries = OrderedDict()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._queries

    def __len__(self) -> int:
        return len(self._queries)
