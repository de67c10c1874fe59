"""Cancellable reads — drop results nobody is waiting for anymore.

An observer that goes away while a read is in flight must not receive the
outcome. ``wrap()`` ties an awaitable to a :class:`CancellationToken`:
once the token is cancelled, neither the result nor the failure callback
runs, and the pending task is cancelled at its next suspension point.

:class:`CancellationScope` bundles a token with the observer's
subscriptions, so a single ``close()`` tears down everything an observer
started.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from types import TracebackType
from typing import Generic, TypeVar

from agamactl.domain.types import OPERATION_TRANSITIONS, OperationState, is_valid_transition

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation flag with callbacks."""

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Cancel the token and run its callbacks once. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Run *callback* on cancellation (now, if already cancelled).

        Returns a function that removes the callback.
        """
        if self._cancelled:
            callback()
            return _noop
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove


class CancellableOperation(Generic[T]):
    """One pending read whose outcome is delivered unless its token is cancelled."""

    def __init__(
        self,
        operation: Awaitable[T],
        token: CancellationToken,
        on_result: Callable[[T], None],
        on_error: Callable[[BaseException], None] | None = None,
    ) -> None:
        self._state = OperationState.PENDING
        self._token = token
        self._on_result = on_result
        self._on_error = on_error
        self._task: asyncio.Future[T] = asyncio.ensure_future(operation)
        self._remove = token.add_callback(self._drop)
        self._task.add_done_callback(self._complete)

    @property
    def state(self) -> OperationState:
        return self._state

    async def wait(self) -> OperationState:
        """Wait until the operation is delivered or dropped."""
        if not self._task.done():
            await asyncio.wait([self._task])
        # Done callbacks run one loop iteration after the task finishes.
        while self._state is OperationState.PENDING:
            await asyncio.sleep(0)
        return self._state

    def _transition(self, target: OperationState) -> None:
        assert is_valid_transition(self._state, target, OPERATION_TRANSITIONS)
        self._state = target

    def _drop(self) -> None:
        if self._state is not OperationState.PENDING:
            return
        self._transition(OperationState.DROPPED)
        self._task.cancel()
        logger.debug("Dropped a pending operation after cancellation")

    def _complete(self, task: asyncio.Future[T]) -> None:
        self._remove()
        # Retrieve the outcome even when dropping it.
        error = None if task.cancelled() else task.exception()
        if self._state is not OperationState.PENDING:
            return
        if self._token.cancelled or task.cancelled():
            self._transition(OperationState.DROPPED)
            return
        self._transition(OperationState.DELIVERED)
        if error is None:
            self._on_result(task.result())
        elif self._on_error is not None:
            self._on_error(error)
        else:
            logger.warning("Unhandled failure of a cancellable operation", exc_info=error)


def wrap(
    operation: Awaitable[T],
    token: CancellationToken,
    on_result: Callable[[T], None],
    on_error: Callable[[BaseException], None] | None = None,
) -> CancellableOperation[T]:
    """Run *operation*, delivering its outcome only while *token* is not cancelled.

    The cutoff is delivery, not completion: a cancel that lands after the
    operation finished but before its outcome is delivered still drops it.
    """
    return CancellableOperation(operation, token, on_result, on_error)


class CancellationScope:
    """Everything one observer started: pending reads and subscriptions.

    Usage::

        with CancellationScope() as scope:
            scope.wrap(client.get_progress(), show)
            scope.track(client.on_progress_change(show))
            ...
        # closing cancels the reads and unsubscribes
    """

    def __init__(self) -> None:
        self.token = CancellationToken()
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def closed(self) -> bool:
        return self.token.cancelled

    def wrap(
        self,
        operation: Awaitable[T],
        on_result: Callable[[T], None],
        on_error: Callable[[BaseException], None] | None = None,
    ) -> CancellableOperation[T]:
        return wrap(operation, self.token, on_result, on_error)

    def track(self, unsubscribe: Callable[[], None]) -> Callable[[], None]:
        """Unsubscribe on close (immediately if already closed)."""
        if self.closed:
            unsubscribe()
        else:
            self._unsubscribers.append(unsubscribe)
        return unsubscribe

    def close(self) -> None:
        self.token.cancel()
        while self._unsubscribers:
            self._unsubscribers.pop()()

    def __enter__(self) -> CancellationScope:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _noop() -> None:
    return None
