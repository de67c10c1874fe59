"""InstallerClient — every domain client over one connection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from agamactl.bus.dbus import DBusConnection
from agamactl.clients.iscsi import ISCSIClient
from agamactl.clients.manager import ManagerClient
from agamactl.clients.software import SoftwareClient
from agamactl.clients.storage import StorageClient
from agamactl.config.models import InterfacesConfig

if TYPE_CHECKING:
    from types import TracebackType

    from agamactl.bus.connection import Connection
    from agamactl.config.settings import AgamaSettings

logger = logging.getLogger(__name__)


class InstallerClient:
    """Facade composing the software, storage, manager, and iSCSI clients.

    Clients share handles through the connection, so two clients reading
    the same interface trigger a single introspection.

    Usage::

        async with InstallerClient.from_settings(settings) as client:
            products = await client.software.get_products()
    """

    def __init__(self, connection: Connection, interfaces: InterfacesConfig | None = None) -> None:
        self.connection = connection
        self.interfaces = interfaces or InterfacesConfig()
        self.software = SoftwareClient(connection, self.interfaces)
        self.storage = StorageClient(connection, self.interfaces)
        self.manager = ManagerClient(connection, self.interfaces)
        self.iscsi = ISCSIClient(connection, self.interfaces)

    @classmethod
    def from_settings(cls, settings: AgamaSettings) -> InstallerClient:
        """Build a client over the D-Bus connection described by *settings*."""
        connection = DBusConnection(
            settings.bus.name,
            bus_type=settings.bus.type,
            address=settings.bus.address,
        )
        return cls(connection, settings.interfaces)

    async def close(self) -> None:
        """Cancel every subscription, then release the handles and the bus."""
        for client in (self.software, self.storage, self.manager, self.iscsi):
            client.close()
        await self.connection.close()
        logger.debug("Installer client closed")

    async def __aenter__(self) -> InstallerClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
