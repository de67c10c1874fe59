"""BaseClient — shared plumbing for domain clients.

Every client receives a :class:`Connection` and the interface bindings at
construction time. Reads always go through ``_read()``, which waits for
the handle before touching its property bag, so a read never sees state
left over from a failed attempt.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, TypeVar

from agamactl.bus.handle import PROPERTIES_CHANGED
from agamactl.bus.notifier import ChangeNotifier, Decoder
from agamactl.bus.variant import TaggedValue, decode, expect
from agamactl.config.models import InterfacesConfig
from agamactl.domain.errors import DecodeError, InvokeError
from agamactl.domain.types import Tag

if TYPE_CHECKING:
    from agamactl.bus.connection import Connection
    from agamactl.bus.handle import ProxyHandle
    from agamactl.bus.notifier import Callback
    from agamactl.config.models import InterfaceBinding

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseClient:
    """Base for clients of one bounded resource of the installer service.

    Usage::

        class SoftwareClient(BaseClient):
            async def get_selected_product(self) -> str:
                return await self._read(self._software, "SelectedBaseProduct", str)
    """

    def __init__(self, connection: Connection, interfaces: InterfacesConfig | None = None) -> None:
        self._connection = connection
        self._interfaces = interfaces or InterfacesConfig()
        self._notifiers: list[ChangeNotifier[Any]] = []
        self._pending: set[asyncio.Future[None]] = set()

    def _proxy(self, binding: InterfaceBinding) -> ProxyHandle:
        return self._connection.proxy(binding.interface, binding.path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def _read(self, handle: ProxyHandle, name: str, expected: type[T]) -> T:
        """Wait for *handle*, then decode property *name* as *expected*."""
        await handle.wait()
        return _property(handle, name, expected)

    async def _read_items(self, handle: ProxyHandle, name: str) -> tuple[TaggedValue, ...]:
        """Wait for *handle*, then return the tagged elements of array property *name*."""
        await handle.wait()
        return items(handle.get_property(name), name)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def _call(self, handle: ProxyHandle, method: str, *args: Any) -> None:
        """Invoke *method*, treating a false or non-zero status reply as failure."""
        reply = await handle.invoke(method, *args)
        if reply is None:
            return
        status = decode(reply)
        if status is False or (type(status) is int and status != 0):
            raise InvokeError(
                method,
                f"Service reported failure (status {status!r})",
                interface=handle.interface,
            )

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def _notifier(
        self,
        handle: ProxyHandle,
        decoder: Decoder[T],
        signal: str = PROPERTIES_CHANGED,
    ) -> ChangeNotifier[T]:
        notifier: ChangeNotifier[T] = ChangeNotifier(handle, signal, decoder)
        self._notifiers.append(notifier)
        return notifier

    def _subscribe(
        self,
        notifier: ChangeNotifier[T],
        handle: ProxyHandle,
        callback: Callback,
    ) -> Callable[[], None]:
        """Subscribe *callback* and make sure *handle* starts receiving changes."""
        unsubscribe = notifier.on_change(callback)
        if not handle.ready:
            try:
                asyncio.get_running_loop()
            except RuntimeError:
                # No loop yet: the first read will bring the handle up.
                return unsubscribe
            task = asyncio.ensure_future(handle.wait())
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            task.add_done_callback(_log_wait_failure)
        return unsubscribe

    def close(self) -> None:
        """Cancel every subscription made through this client."""
        # Cancels only this client's wait; a shared attempt keeps running.
        for task in list(self._pending):
            task.cancel()
        self._pending.clear()
        for notifier in self._notifiers:
            notifier.close()


def _property(handle: ProxyHandle, name: str, expected: type[T]) -> T:
    return expect(decode(handle.get_property(name)), name, expected)


def items(value: TaggedValue, name: str) -> tuple[TaggedValue, ...]:
    """Return the tagged elements of an array value.

    Raises:
        DecodeError: *value* is not an array.
    """
    if value.tag != Tag.ARRAY or not isinstance(value.payload, tuple):
        raise DecodeError(f"Property {name!r} must be an array", path=name)
    return value.payload


def _log_wait_failure(task: asyncio.Future[None]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning("Cannot watch for changes: %s", error)
