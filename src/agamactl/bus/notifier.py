"""ChangeNotifier — typed re-delivery of bus signals to registered observers.

One notifier watches one signal of one proxy handle and keeps a registry
of subscriptions keyed by ``(interface, signal, subscriber id)``. Each
raw signal is decoded once, then queued on every active subscription.

Per subscription, a single drain task delivers queued values in arrival
order, so at most one callback runs at a time. Cancelling a subscription
clears its queue: no callback runs after ``unsubscribe()`` returns, not
even for signals that had already arrived.

INVARIANT: decode failures reach callbacks as SignalError values; nothing
is raised into the transport or into other subscriptions.
"""

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from agamactl.bus.handle import ProxyHandle, SignalArgs
from agamactl.bus.variant import TaggedValue, decode
from agamactl.domain.errors import DecodeError
from agamactl.domain.types import (
    SUBSCRIPTION_TRANSITIONS,
    SubscriptionState,
    is_valid_transition,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class SignalError:
    """Delivered instead of a value when a signal payload cannot be decoded.

    Observers typically keep showing their last good state and may resync
    with a fresh read.
    """

    interface: str
    signal: str
    error: DecodeError


@dataclass(frozen=True)
class SubscriptionKey:
    interface: str
    signal: str
    subscriber: int


Callback = Callable[[Any], Awaitable[None] | None]
Decoder = Callable[[SignalArgs], T | None]


class Subscription(Generic[T]):
    """One observer's queue of pending deliveries."""

    def __init__(self, key: SubscriptionKey, callback: Callback) -> None:
        self.key = key
        self._callback = callback
        self._state = SubscriptionState.ACTIVE
        self._queue: deque[T | SignalError] = deque()
        self._drain_task: asyncio.Task[None] | None = None

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def active(self) -> bool:
        return self._state is SubscriptionState.ACTIVE

    def push(self, value: T | SignalError) -> None:
        if not self.active:
            return
        self._queue.append(value)
        if self._drain_task is None:
            self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    def cancel(self) -> None:
        """Stop delivery for good. Idempotent."""
        if not self.active:
            return
        assert is_valid_transition(
            self._state, SubscriptionState.CANCELLED, SUBSCRIPTION_TRANSITIONS
        )
        self._state = SubscriptionState.CANCELLED
        self._queue.clear()

    async def _drain(self) -> None:
        try:
            while self._queue and self.active:
                value = self._queue.popleft()
                try:
                    result = self._callback(value)
                    if inspect.isawaitable(result):
                        await result
                except Exception:
                    logger.warning(
                        "Observer of %s.%s failed",
                        self.key.interface,
                        self.key.signal,
                        exc_info=True,
                    )
        finally:
            self._drain_task = None


class ChangeNotifier(Generic[T]):
    """Fan-out of one decoded signal to independent subscriptions.

    Parameters:
        handle: Proxy handle emitting the signal.
        signal: Signal name (``PropertiesChanged`` for property changes).
        decoder: Maps raw signal arguments to a value, or to None when the
            signal is irrelevant (nothing is delivered then). May raise
            DecodeError.
    """

    def __init__(self, handle: ProxyHandle, signal: str, decoder: Decoder[T]) -> None:
        self._handle = handle
        self._signal = signal
        self._decoder = decoder
        self._subscriptions: dict[SubscriptionKey, Subscription[T]] = {}
        self._ids = itertools.count(1)
        self._disconnect: Callable[[], None] | None = None

    @property
    def subscriptions(self) -> list[Subscription[T]]:
        return list(self._subscriptions.values())

    def on_change(self, callback: Callback) -> Callable[[], None]:
        """Register *callback*; returns the function that cancels the subscription.

        *callback* receives decoded values or SignalError, and may be a
        coroutine function.
        """
        key = SubscriptionKey(self._handle.interface, self._signal, next(self._ids))
        self._subscriptions[key] = Subscription(key, callback)
        if self._disconnect is None:
            self._disconnect = self._handle.connect(self._signal, self._on_signal)

        def unsubscribe() -> None:
            self._cancel(key)

        return unsubscribe

    def close(self) -> None:
        """Cancel every subscription and release the signal."""
        for key in list(self._subscriptions):
            self._cancel(key)

    def _cancel(self, key: SubscriptionKey) -> None:
        subscription = self._subscriptions.pop(key, None)
        if subscription is None:
            return
        subscription.cancel()
        if not self._subscriptions and self._disconnect is not None:
            self._disconnect()
            self._disconnect = None

    def _on_signal(self, args: SignalArgs | DecodeError) -> None:
        value: T | SignalError | None
        if isinstance(args, DecodeError):
            value = SignalError(self._handle.interface, self._signal, args)
        else:
            try:
                value = self._decoder(args)
            except DecodeError as exc:
                logger.warning(
                    "Cannot decode %s.%s: %s", self._handle.interface, self._signal, exc
                )
                value = SignalError(self._handle.interface, self._signal, exc)
        if value is None:
            return
        for subscription in list(self._subscriptions.values()):
            subscription.push(value)


def property_changes(args: SignalArgs) -> dict[str, TaggedValue]:
    """Extract ``{name: tagged value}`` from PropertiesChanged arguments.

    Values stay tagged so each client decodes only what it watches.
    """
    if not args:
        raise DecodeError("PropertiesChanged without arguments")
    changed = args[0]
    if not isinstance(changed, TaggedValue) or not isinstance(changed.payload, tuple):
        raise DecodeError("Malformed PropertiesChanged payload")
    result: dict[str, TaggedValue] = {}
    for pair in changed.payload:
        name = decode(pair[0])
        if not isinstance(name, str):
            raise DecodeError("Property names must be strings")
        result[name] = pair[1]
    return result
