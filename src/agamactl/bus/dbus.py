"""D-Bus transport via dbus-fast (pure asyncio).

``DBusConnection`` owns one :class:`dbus_fast.aio.MessageBus`, connected
lazily on the first ``wait()`` of any of its handles. ``DBusProxyHandle``
introspects its object, loads the property bag through
``org.freedesktop.DBus.Properties.GetAll`` and keeps it current from
``PropertiesChanged``. Native values are lifted into tagged values using
the signatures from introspection, so variants keep their type tags.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from dbus_fast import BusType
from dbus_fast.aio import MessageBus
from dbus_fast.errors import (
    AuthError,
    DBusError,
    InterfaceNotFoundError,
    InvalidAddressError,
    InvalidIntrospectionError,
)
from dbus_fast.signature import Variant

from agamactl.bus.connection import Connection
from agamactl.bus.handle import PROPERTIES_CHANGED, ProxyHandle
from agamactl.bus.variant import TaggedValue, lift, lift_args
from agamactl.domain.errors import ConnectError, DecodeError, InvokeError

if TYPE_CHECKING:
    from dbus_fast.aio.proxy_object import ProxyInterface
    from dbus_fast.introspection import Interface, Node

logger = logging.getLogger(__name__)

PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"

_BUS_TYPES = {"system": BusType.SYSTEM, "session": BusType.SESSION}


def to_snake_case(member: str) -> str:
    """Convert a D-Bus member name to the name dbus-fast uses on proxies.

    Examples:
        >>> to_snake_case("SelectProduct")
        'select_product'
        >>> to_snake_case("GetUILanguage")
        'get_ui_language'
    """
    # Must match BaseProxyInterface._to_snake_case, which names the call_* and on_* members.
    subbed = re.sub(r"(.)([A-Z][a-z]+)", r"\1_\2", member)
    return re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", subbed).lower()


class DBusConnection(Connection):
    """Proxy handles for the objects of one bus name.

    Parameters:
        bus_name: Well-known name of the remote service.
        bus_type: ``"system"`` or ``"session"``; ignored when *address* is set.
        address: Explicit bus address (e.g. a private ``unix:path=`` bus).
    """

    def __init__(
        self,
        bus_name: str,
        *,
        bus_type: str = "system",
        address: str | None = None,
    ) -> None:
        super().__init__()
        self.bus_name = bus_name
        self._bus_type = _BUS_TYPES[bus_type]
        self._address = address
        self._bus: MessageBus | None = None
        self._connecting: asyncio.Future[MessageBus] | None = None

    async def bus(self) -> MessageBus:
        """Return the connected message bus, connecting on first use.

        Raises:
            ConnectError: The bus cannot be reached or authentication failed.
        """
        if self._bus is not None:
            return self._bus
        if self._connecting is None:
            self._connecting = asyncio.ensure_future(self._connect())
        return await asyncio.shield(self._connecting)

    async def _connect(self) -> MessageBus:
        target = self._address or self._bus_type.name.lower()
        try:
            bus = await MessageBus(bus_address=self._address, bus_type=self._bus_type).connect()
        except (OSError, AuthError, InvalidAddressError, DBusError) as exc:
            raise ConnectError(f"Cannot connect to the {target} bus: {exc}") from exc
        finally:
            self._connecting = None
        logger.debug("Connected to the %s bus", target)
        self._bus = bus
        return bus

    def _create_handle(self, interface: str, path: str) -> ProxyHandle:
        return DBusProxyHandle(self, interface, path)

    async def close(self) -> None:
        await super().close()
        if self._bus is not None:
            self._bus.disconnect()
            self._bus = None


class DBusProxyHandle(ProxyHandle):
    """Proxy handle for one interface of an object on a dbus-fast bus."""

    def __init__(self, connection: DBusConnection, interface: str, path: str) -> None:
        super().__init__(interface, path=path)
        self._connection = connection
        self._iface: ProxyInterface | None = None
        self._props: ProxyInterface | None = None
        self._spec: Interface | None = None
        self._signal_handlers: dict[str, Callable[..., None]] = {}

    # ------------------------------------------------------------------
    # Transport hooks
    # ------------------------------------------------------------------

    async def _introspect(self) -> Mapping[str, TaggedValue]:
        bus = await self._connection.bus()
        name = self._connection.bus_name
        try:
            node = await bus.introspect(name, self.path)
            proxy = bus.get_proxy_object(name, self.path, node)
            iface = proxy.get_interface(self.interface)
            props = proxy.get_interface(PROPERTIES_INTERFACE)
        except (DBusError, InterfaceNotFoundError, InvalidIntrospectionError) as exc:
            msg = f"Cannot introspect {self.interface} at {self.path}: {exc}"
            raise ConnectError(msg, interface=self.interface) from exc

        self._iface = iface
        self._spec = _find_interface(node, self.interface)
        if self._props is None:
            props.on_properties_changed(self._on_properties_changed)
            self._props = props
        return await self._fetch_properties()

    async def _fetch_properties(self) -> Mapping[str, TaggedValue]:
        assert self._props is not None
        try:
            values: dict[str, Variant] = await self._props.call_get_all(self.interface)
        except DBusError as exc:
            msg = f"Cannot read properties of {self.interface}: {exc.text}"
            raise ConnectError(msg, interface=self.interface) from exc
        return {name: lift(variant.signature, variant.value) for name, variant in values.items()}

    async def _invoke(self, method: str, args: Sequence[Any]) -> TaggedValue | None:
        call = getattr(self._iface, f"call_{to_snake_case(method)}", None)
        if call is None:
            raise InvokeError(method, "No such method", interface=self.interface)
        try:
            reply = await call(*args)
        except DBusError as exc:
            raise InvokeError(method, exc.text, name=exc.type, interface=self.interface) from exc

        out = self._out_signatures(method)
        if not out:
            return None
        if len(out) == 1:
            return lift(out[0], reply)
        return TaggedValue.struct(*lift_args("".join(out), reply))

    async def _set_property(self, name: str, value: Any) -> None:
        setter = getattr(self._iface, f"set_{to_snake_case(name)}", None)
        if setter is None:
            raise InvokeError(f"Set({name})", "No such property", interface=self.interface)
        try:
            await setter(value)
        except DBusError as exc:
            raise InvokeError(
                f"Set({name})", exc.text, name=exc.type, interface=self.interface
            ) from exc

    def _attach_signal(self, signal: str) -> None:
        signature = self._signal_signature(signal)

        def handler(*args: Any) -> None:
            try:
                lifted = lift_args(signature, args)
            except DecodeError as exc:
                logger.warning("Undecodable %s.%s payload: %s", self.interface, signal, exc)
                self._emit(signal, exc)
                return
            self._emit(signal, lifted)

        register = getattr(self._iface, f"on_{to_snake_case(signal)}", None)
        if register is None:
            logger.warning("Interface %s has no signal %s", self.interface, signal)
            return
        register(handler)
        self._signal_handlers[signal] = handler

    def _detach_signal(self, signal: str) -> None:
        handler = self._signal_handlers.pop(signal, None)
        if handler is not None and self._iface is not None:
            getattr(self._iface, f"off_{to_snake_case(signal)}")(handler)

    async def close(self) -> None:
        await super().close()
        if self._props is not None:
            self._props.off_properties_changed(self._on_properties_changed)
            self._props = None

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _on_properties_changed(
        self,
        interface_name: str,
        changed: dict[str, Variant],
        invalidated: list[str],
    ) -> None:
        if interface_name != self.interface:
            return
        try:
            lifted = {name: lift(v.signature, v.value) for name, v in changed.items()}
        except DecodeError as exc:
            logger.warning("Undecodable property change on %s: %s", self.interface, exc)
            self._emit(PROPERTIES_CHANGED, exc)
            return
        self._properties_changed(lifted, invalidated)

    def _out_signatures(self, method: str) -> list[str]:
        if self._spec is None:
            return []
        for spec in self._spec.methods:
            if spec.name == method:
                return [arg.signature for arg in spec.out_args]
        return []

    def _signal_signature(self, signal: str) -> str:
        if self._spec is not None:
            for spec in self._spec.signals:
                if spec.name == signal:
                    return "".join(arg.signature for arg in spec.args)
        return ""


def _find_interface(node: Node, name: str) -> Interface | None:
    for interface in node.interfaces:
        if interface.name == name:
            return interface
    return None
