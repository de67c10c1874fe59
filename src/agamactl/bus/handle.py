"""ProxyHandle — local stand-in for one interface of a remote object.

A handle owns the readiness state and the property bag of its interface.
``wait()`` is the only readiness primitive: reads are valid only after it
succeeds. Concurrent waiters share one attempt, and a waiter that gives up
(e.g. through a cancelled operation) does not cancel the attempt for the
others.

Transport adapters subclass :class:`ProxyHandle` and implement the
``_introspect`` / ``_fetch_properties`` / ``_invoke`` / ``_set_property``
hooks. ``_attach_signal`` / ``_detach_signal`` are optional.

INVARIANT: the property bag changes only through a successful fetch or a
PropertiesChanged signal, and always before observers are notified.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from types import MappingProxyType
from typing import Any

from agamactl.bus.variant import TaggedValue
from agamactl.domain.errors import ConnectError, DecodeError, PropertyNotFoundError
from agamactl.domain.types import HANDLE_TRANSITIONS, HandleState, is_valid_transition

logger = logging.getLogger(__name__)

PROPERTIES_CHANGED = "PropertiesChanged"

SignalArgs = tuple[TaggedValue, ...]
SignalHandler = Callable[[SignalArgs | DecodeError], None]


class ProxyHandle(ABC):
    """Readiness, property bag, methods, and signals of one remote interface.

    Parameters:
        interface: D-Bus interface name.
        path: Object path exposing the interface.
    """

    def __init__(self, interface: str, *, path: str = "/") -> None:
        self.interface = interface
        self.path = path
        self._state = HandleState.PENDING
        self._properties: dict[str, TaggedValue] = {}
        self._attempt: asyncio.Future[None] | None = None
        self._listeners: dict[str, list[SignalHandler]] = {}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.interface} at {self.path} ({self._state})>"

    # ------------------------------------------------------------------
    # Readiness
    # ------------------------------------------------------------------

    @property
    def state(self) -> HandleState:
        return self._state

    @property
    def ready(self) -> bool:
        return self._state is HandleState.READY

    async def wait(self) -> None:
        """Wait until the interface is introspected and its properties are loaded.

        Returns immediately on a ready handle. A failed attempt is not
        retried here; calling ``wait()`` again is the caller's retry.

        Raises:
            ConnectError: The interface cannot be reached.
        """
        if self._state is HandleState.READY:
            return
        if self._attempt is None:
            self._attempt = asyncio.ensure_future(self._become_ready())
            self._attempt.add_done_callback(_consume_exception)
        await asyncio.shield(self._attempt)

    async def _become_ready(self) -> None:
        try:
            properties = await self._introspect()
        except ConnectError:
            self._set_state(HandleState.FAILED)
            logger.warning("Interface %s at %s unreachable", self.interface, self.path)
            raise
        finally:
            self._attempt = None
        self._properties = dict(properties)
        self._set_state(HandleState.READY)
        logger.debug("Interface %s ready (%d properties)", self.interface, len(properties))
        for signal in self._listeners:
            if signal != PROPERTIES_CHANGED:
                self._attach_signal(signal)

    def _set_state(self, target: HandleState) -> None:
        if target is self._state:
            return
        if not is_valid_transition(self._state, target, HANDLE_TRANSITIONS):
            msg = f"Invalid handle transition {self._state} -> {target}"
            raise RuntimeError(msg)
        self._state = target

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def properties(self) -> Mapping[str, TaggedValue]:
        """Read-only view of the last known property bag."""
        return MappingProxyType(self._properties)

    def get_property(self, name: str) -> TaggedValue:
        """Return the last known value of property *name*.

        Raises:
            ConnectError: The handle is not ready yet.
            PropertyNotFoundError: The interface has no such property.
        """
        if self._state is not HandleState.READY:
            msg = f"Interface {self.interface} is not ready; wait() must succeed first"
            raise ConnectError(msg, interface=self.interface)
        try:
            return self._properties[name]
        except KeyError:
            raise PropertyNotFoundError(name, interface=self.interface) from None

    async def refresh(self) -> None:
        """Re-fetch the whole property bag from the remote object."""
        await self.wait()
        self._properties = dict(await self._fetch_properties())

    async def set_property(self, name: str, value: Any) -> None:
        """Write a property on the remote object.

        Raises:
            ConnectError: The interface cannot be reached.
            InvokeError: The remote side rejected the write.
        """
        await self.wait()
        await self._set_property(name, value)

    # ------------------------------------------------------------------
    # Methods
    # ------------------------------------------------------------------

    async def invoke(self, method: str, *args: Any) -> TaggedValue | None:
        """Call *method* on the remote interface.

        Returns the tagged reply (a struct when the method has several
        output arguments), or None for methods without output.

        Raises:
            ConnectError: The interface cannot be reached.
            InvokeError: The call failed remotely.
        """
        await self.wait()
        logger.debug("Invoking %s.%s", self.interface, method)
        return await self._invoke(method, args)

    # ------------------------------------------------------------------
    # Signals
    # ------------------------------------------------------------------

    def connect(self, signal: str, handler: SignalHandler) -> Callable[[], None]:
        """Register *handler* for *signal*; returns a disconnect function.

        ``PropertiesChanged`` handlers receive ``(changed, invalidated)``
        tagged values for this interface only, after the bag is updated.
        A payload that cannot be lifted reaches handlers as a DecodeError.
        """
        listeners = self._listeners.setdefault(signal, [])
        if not listeners and signal != PROPERTIES_CHANGED and self.ready:
            self._attach_signal(signal)
        listeners.append(handler)

        def disconnect() -> None:
            current = self._listeners.get(signal)
            if not current or handler not in current:
                return
            current.remove(handler)
            if not current:
                del self._listeners[signal]
                if signal != PROPERTIES_CHANGED and self.ready:
                    self._detach_signal(signal)

        return disconnect

    def _emit(self, signal: str, args: SignalArgs | DecodeError) -> None:
        for handler in list(self._listeners.get(signal, ())):
            try:
                handler(args)
            except Exception:
                logger.warning("Handler for %s.%s failed", self.interface, signal, exc_info=True)

    def _properties_changed(
        self,
        changed: Mapping[str, TaggedValue],
        invalidated: Sequence[str] = (),
    ) -> None:
        """Apply a property change to the bag, then notify listeners."""
        self._properties.update(changed)
        for name in invalidated:
            self._properties.pop(name, None)
        args = (
            TaggedValue.mapping(changed),
            TaggedValue.array(*(TaggedValue.string(name) for name in invalidated)),
        )
        self._emit(PROPERTIES_CHANGED, args)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Drop every listener. The handle is unusable for signals afterwards."""
        for signal in list(self._listeners):
            if signal != PROPERTIES_CHANGED and self.ready:
                self._detach_signal(signal)
        self._listeners.clear()

    # ------------------------------------------------------------------
    # Transport hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def _introspect(self) -> Mapping[str, TaggedValue]:
        """Reach the remote object, subscribe to its changes, return its properties.

        Must raise ConnectError when the interface is unreachable.
        """

    @abstractmethod
    async def _fetch_properties(self) -> Mapping[str, TaggedValue]:
        """Fetch the current property bag."""

    @abstractmethod
    async def _invoke(self, method: str, args: Sequence[Any]) -> TaggedValue | None:
        """Perform a method call; raise InvokeError on failure."""

    @abstractmethod
    async def _set_property(self, name: str, value: Any) -> None:
        """Perform a property write; raise InvokeError on failure."""

    def _attach_signal(self, signal: str) -> None:  # noqa: B027
        """Start receiving *signal* from the transport."""

    def _detach_signal(self, signal: str) -> None:  # noqa: B027
        """Stop receiving *signal* from the transport."""


def _consume_exception(future: asyncio.Future[None]) -> None:
    # Every waiter may have been cancelled; mark the failure as retrieved.
    if not future.cancelled():
        future.exception()
