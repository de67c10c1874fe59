"""Connection — per-session registry of proxy handles.

Clients ask the connection for ``proxy(interface, path)``; the same
handle instance is returned for the same pair, so several clients can
share one handle by reference while the connection stays its only owner.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from types import TracebackType

from agamactl.bus.handle import ProxyHandle
from agamactl.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Connection(ABC):
    """Creates, caches, and closes the proxy handles of one session."""

    def __init__(self) -> None:
        self._handles: dict[tuple[str, str], ProxyHandle] = {}

    def proxy(self, interface: str, path: str) -> ProxyHandle:
        """Return the handle for *interface* at *path*, creating it on first use.

        Raises:
            ConfigurationError: The transport produced an object that is not
                a ProxyHandle (e.g. one without readiness semantics).
        """
        key = (path, interface)
        handle = self._handles.get(key)
        if handle is None:
            handle = self._create_handle(interface, path)
            ensure_handle(handle, interface)
            self._handles[key] = handle
        return handle

    @property
    def handles(self) -> list[ProxyHandle]:
        return list(self._handles.values())

    @abstractmethod
    def _create_handle(self, interface: str, path: str) -> ProxyHandle:
        """Build a new, not yet ready handle."""

    async def close(self) -> None:
        """Close every handle created through this connection."""
        for handle in self._handles.values():
            await handle.close()
        self._handles.clear()

    async def __aenter__(self) -> Connection:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()


def ensure_handle(handle: object, interface: str) -> None:
    if not isinstance(handle, ProxyHandle):
        msg = (
            f"Proxy for {interface} is a {type(handle).__name__}, not a ProxyHandle; "
            "every proxy must provide wait()"
        )
        raise ConfigurationError(msg)
