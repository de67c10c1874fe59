"""In-memory transport — proxy handles backed by plain dicts.

``MemoryProxyHandle`` plays the remote object: it holds the "remote"
property values, answers method calls through registered callables, and
emits signals on demand. It goes through the same readiness and bag
logic as the D-Bus handle, so clients cannot tell the two apart.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from agamactl.bus.connection import Connection, ensure_handle
from agamactl.bus.handle import ProxyHandle
from agamactl.bus.variant import TaggedValue, lift
from agamactl.domain.errors import ConnectError, DecodeError, InvokeError

MethodImpl = Callable[..., TaggedValue | None]


class MemoryProxyHandle(ProxyHandle):
    """A scriptable stand-in for a remote interface.

    Parameters:
        interface: Interface name.
        properties: Remote property values.
        path: Object path.
        methods: Method name -> callable receiving the call arguments.
            A callable may raise InvokeError to simulate a remote failure.
        reachable: When False, ``wait()`` fails with ConnectError.
        delay: Seconds to sleep during introspection.
    """

    def __init__(
        self,
        interface: str,
        properties: Mapping[str, TaggedValue] | None = None,
        *,
        path: str = "/",
        methods: Mapping[str, MethodImpl] | None = None,
        reachable: bool = True,
        delay: float = 0.0,
    ) -> None:
        super().__init__(interface, path=path)
        self.remote: dict[str, TaggedValue] = dict(properties or {})
        self.methods: dict[str, MethodImpl] = dict(methods or {})
        self.reachable = reachable
        self.delay = delay
        self.introspections = 0
        self.calls: list[tuple[str, tuple[Any, ...]]] = []

    @classmethod
    def from_native(
        cls,
        interface: str,
        properties: Mapping[str, tuple[str, Any]],
        **kwargs: Any,
    ) -> MemoryProxyHandle:
        """Build a handle from ``{name: (signature, native value)}`` pairs."""
        tagged = {name: lift(signature, value) for name, (signature, value) in properties.items()}
        return cls(interface, tagged, **kwargs)

    # ------------------------------------------------------------------
    # Simulating the remote side
    # ------------------------------------------------------------------

    def set_remote(self, name: str, value: TaggedValue, *, notify: bool = True) -> None:
        """Change a remote property, optionally emitting PropertiesChanged."""
        self.remote[name] = value
        if notify and self.ready:
            self._properties_changed({name: value})

    def change(self, changed: Mapping[str, TaggedValue], invalidated: Sequence[str] = ()) -> None:
        """Emit a PropertiesChanged signal with several properties at once."""
        self.remote.update(changed)
        for name in invalidated:
            self.remote.pop(name, None)
        self._properties_changed(changed, invalidated)

    def emit(self, signal: str, *args: TaggedValue) -> None:
        """Emit an arbitrary signal with tagged arguments."""
        self._emit(signal, tuple(args))

    def emit_error(self, signal: str, error: DecodeError) -> None:
        """Emit a signal whose payload could not be lifted."""
        self._emit(signal, error)

    def signal_listeners(self, signal: str) -> int:
        return len(self._listeners.get(signal, ()))

    # ------------------------------------------------------------------
    # Transport hooks
    # ------------------------------------------------------------------

    async def _introspect(self) -> Mapping[str, TaggedValue]:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.introspections += 1
        if not self.reachable:
            msg = f"Interface {self.interface} at {self.path} is not available"
            raise ConnectError(msg, interface=self.interface)
        return await self._fetch_properties()

    async def _fetch_properties(self) -> Mapping[str, TaggedValue]:
        return dict(self.remote)

    async def _invoke(self, method: str, args: Sequence[Any]) -> TaggedValue | None:
        self.calls.append((method, tuple(args)))
        impl = self.methods.get(method)
        if impl is None:
            raise InvokeError(
                method,
                "Unknown method",
                name="org.freedesktop.DBus.Error.UnknownMethod",
                interface=self.interface,
            )
        return impl(*args)

    async def _set_property(self, name: str, value: Any) -> None:
        if not isinstance(value, TaggedValue):
            raise InvokeError(f"Set({name})", "Value must be tagged", interface=self.interface)
        self.set_remote(name, value)


class MemoryConnection(Connection):
    """A connection over pre-registered in-memory handles.

    Unknown interfaces yield unreachable handles, so reads against them
    fail with ConnectError as they would on a real bus.
    """

    def __init__(self, handles: Iterable[ProxyHandle] = ()) -> None:
        super().__init__()
        for handle in handles:
            self.add(handle)

    def add(self, handle: ProxyHandle) -> None:
        """Register *handle* under its interface and path.

        Raises:
            ConfigurationError: *handle* is not a ProxyHandle.
        """
        ensure_handle(handle, getattr(handle, "interface", repr(handle)))
        self._handles[(handle.path, handle.interface)] = handle

    def _create_handle(self, interface: str, path: str) -> ProxyHandle:
        return MemoryProxyHandle(interface, path=path, reachable=False)
