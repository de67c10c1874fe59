"""Tests for Connection handle caching and the in-memory transport."""

from __future__ import annotations

import pytest

from agamactl.bus.connection import Connection
from agamactl.bus.handle import ProxyHandle
from agamactl.bus.memory import MemoryConnection, MemoryProxyHandle
from agamactl.domain.errors import ConfigurationError, ConnectError

IFACE = "org.opensuse.DInstaller.Storage.Proposal1"
PATH = "/org/opensuse/DInstaller/Storage/Proposal1"


class _PlainObjectConnection(Connection):
    """A transport that hands out objects without readiness semantics."""

    def _create_handle(self, interface: str, path: str) -> ProxyHandle:
        return object()  # type: ignore[return-value]


class TestProxyCache:
    def test_same_pair_same_handle(self) -> None:
        handle = MemoryProxyHandle(IFACE, path=PATH)
        conn = MemoryConnection([handle])
        assert conn.proxy(IFACE, PATH) is handle
        assert conn.proxy(IFACE, PATH) is conn.proxy(IFACE, PATH)

    def test_same_interface_different_paths(self) -> None:
        conn = MemoryConnection()
        a = conn.proxy("org.opensuse.DInstaller.Progress1", "/org/opensuse/DInstaller/Manager1")
        b = conn.proxy("org.opensuse.DInstaller.Progress1", "/org/opensuse/DInstaller/Software1")
        assert a is not b

    def test_non_handle_proxy_is_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            _PlainObjectConnection().proxy(IFACE, PATH)

    def test_memory_connection_rejects_non_handles(self) -> None:
        with pytest.raises(ConfigurationError):
            MemoryConnection([object()])  # type: ignore[list-item]

    @pytest.mark.asyncio
    async def test_unknown_interface_is_unreachable(self) -> None:
        handle = MemoryConnection().proxy("org.example.Missing", "/missing")
        with pytest.raises(ConnectError):
            await handle.wait()


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_close_releases_handles(self) -> None:
        handle = MemoryProxyHandle(IFACE, path=PATH)
        handle.connect("PropertiesChanged", lambda _args: None)
        async with MemoryConnection([handle]) as conn:
            assert conn.handles == [handle]
        assert conn.handles == []
        assert handle.signal_listeners("PropertiesChanged") == 0
