"""
Mutation Executor
Runs remote state-changing operations through a uniform asynchronous lifecycle

Lifecycle:
    Idle -> Pending -> Succeeded | Failed

Every call to ``execute`` supersedes the previous one ("last request wins"):
a completion whose request is no longer the most recent one never touches
the state and never runs callbacks.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Generic, List, Optional, Set, TypeVar

from account_portal.mutations.errors import NormalizedError, normalize_error
from account_portal.mutations.invalidation import CacheScope, InvalidationBus
from account_portal.mutations.results import RemoteResult
from account_portal.mutations.state import (
    IDLE,
    Failed,
    Idle,
    MutationState,
    Pending,
    Succeeded,
)

logger = logging.getLogger(__name__)

TInput = TypeVar("TInput")
TData = TypeVar("TData")

StateListener = Callable[[MutationState], None]


class MutationExecutor(Generic[TInput, TData]):
    """Executes one remote operation per invocation and exposes its lifecycle"""

    def __init__(
        self,
        mutation_fn: Callable[[TInput], Awaitable[TData]],
        *,
        name: str = "mutation",
        invalidation_bus: Optional[InvalidationBus] = None,
        invalidates: Optional[CacheScope] = None,
        on_success: Optional[Callable[[TData, TInput], Any]] = None,
        on_error: Optional[Callable[[NormalizedError, TInput], Any]] = None,
        on_settled: Optional[Callable[[Optional[TData], Optional[NormalizedError], TInput], Any]] = None,
        failure_message: Optional[str] = None,
    ):
        """
        Args:
            mutation_fn: Coroutine function performing the remote call
            name: Label used in logs and task names
            invalidation_bus: Bus fired after state-changing successes
            invalidates: Scope to invalidate on success; None marks the
                operation as not state-changing
            on_success / on_error / on_settled: Settlement callbacks, sync or async
            failure_message: Display template for remote failures, must
                contain ``{digest}``
        """
        self.name = name
        self._mutation_fn = mutation_fn
        self._bus = invalidation_bus
        self._invalidates = invalidates
        self._on_success = on_success
        self._on_error = on_error
        self._on_settled = on_settled
        self._failure_message = failure_message

        self._state: MutationState = IDLE
        self._generation = 0
        self._current_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: List[StateListener] = []

    # State accessors

    @property
    def state(self) -> MutationState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return isinstance(self._state, Idle)

    @property
    def is_pending(self) -> bool:
        return isinstance(self._state, Pending)

    @property
    def is_success(self) -> bool:
        return isinstance(self._state, Succeeded)

    @property
    def is_error(self) -> bool:
        return isinstance(self._state, Failed)

    @property
    def data(self) -> Optional[TData]:
        return self._state.data if isinstance(self._state, Succeeded) else None

    @property
    def error(self) -> Optional[NormalizedError]:
        return self._state.error if isinstance(self._state, Failed) else None

    @property
    def invalidates(self) -> Optional[CacheScope]:
        return self._invalidates

    @property
    def is_state_changing(self) -> bool:
        return self._invalidates is not None

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Observe state transitions; returns an unsubscribe function"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Lifecycle

    def execute(self, request: TInput) -> None:
        """
        Start the mutation without waiting for it

        The state becomes Pending before this returns; the remote call runs
        as a task on the running event loop.

        Raises:
            RuntimeError: If called outside a running event loop
        """
        loop = asyncio.get_running_loop()

        self._generation += 1
        generation = self._generation
        self._set_state(Pending(request))

        task = loop.create_task(
            self._perform(generation, request),
            name=f"{self.name}-{generation}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._current_task = task

    async def run(self, request: TInput) -> MutationState:
        """
        Execute and wait for this request to settle

        Returns:
            The outcome of this request. If a newer request superseded it,
            the outcome is returned but was not applied to ``state``.
        """
        self.execute(request)
        return await self._current_task

    async def wait(self) -> MutationState:
        """Wait for every in-flight request, then return the current state"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
        return self._state

    def reset(self) -> None:
        """Return to Idle; in-flight completions become stale"""
        self._generation += 1
        self._set_state(IDLE)

    def dispose(self) -> None:
        """Stop observation: drop listeners and ignore in-flight completions"""
        self._generation += 1
        self._listeners = []

    # Internals

    async def _perform(self, generation: int, request: TInput) -> MutationState:
        try:
            data = await self._mutation_fn(request)
            if isinstance(data, RemoteResult):
                data = data.unwrap()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = normalize_error(e, self._failure_message)
            logger.error(
                f"Mutation {self.name} failed ({error.kind.value}, ref {error.digest}): {e}",
                exc_info=True
            )
            outcome = Failed(error)
            if self._apply(generation, outcome):
                await self._call(self._on_error, error, request)
                await self._call(self._on_settled, None, error, request)
            return outcome

        # The server state changed even if this request was superseded
        if self._invalidates is not None and self._bus is not None:
            self._bus.invalidate(self._invalidates)

        outcome = Succeeded(data)
        if self._apply(generation, outcome):
            logger.info(f"Mutation {self.name} succeeded")
            await self._call(self._on_success, data, request)
            await self._call(self._on_settled, data, None, request)
        return outcome

    def _apply(self, generation: int, outcome: MutationState) -> bool:
        if generation != self._generation:
            logger.debug(f"Ignoring stale {outcome.status} completion of {self.name} #{generation}")
            return False
        self._set_state(outcome)
        return True

    def _set_state(self, state: MutationState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as e:
                logger.error(f"State listener of {self.name} failed: {e}", exc_info=True)

    async def _call(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(*args)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Settlement callback of {self.name} failed: {e}", exc_info=True)
