"""iSCSI initiator client.

Change notifications carry only the properties that changed, so the
callback receives an :class:`ISCSIInitiatorChange` with the other fields
left as None.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from agamactl.bus.notifier import property_changes
from agamactl.bus.variant import decode, optional
from agamactl.clients.base import BaseClient
from agamactl.domain.snapshots import ISCSIInitiator, ISCSIInitiatorChange

if TYPE_CHECKING:
    from collections.abc import Callable

    from agamactl.bus.connection import Connection
    from agamactl.bus.handle import SignalArgs
    from agamactl.bus.notifier import Callback
    from agamactl.config.models import InterfacesConfig

INITIATOR_PROPERTIES = frozenset({"InitiatorName", "IBFT"})


class ISCSIClient(BaseClient):
    """Reads the local iSCSI initiator settings."""

    def __init__(self, connection: Connection, interfaces: InterfacesConfig | None = None) -> None:
        super().__init__(connection, interfaces)
        self._initiator = self._proxy(self._interfaces.iscsi_initiator)
        self._changes = self._notifier(self._initiator, _initiator_change)

    async def get_initiator(self) -> ISCSIInitiator:
        return ISCSIInitiator(
            name=await self._read(self._initiator, "InitiatorName", str),
            ibft=await self._read(self._initiator, "IBFT", bool),
        )

    def on_initiator_change(self, callback: Callback) -> Callable[[], None]:
        return self._subscribe(self._changes, self._initiator, callback)


def _initiator_change(args: SignalArgs) -> ISCSIInitiatorChange | None:
    changes = {
        name: decode(value)
        for name, value in property_changes(args).items()
        if name in INITIATOR_PROPERTIES
    }
    if not changes:
        return None
    return ISCSIInitiatorChange(
        name=optional(changes, "InitiatorName", str),
        ibft=optional(changes, "IBFT", bool),
    )
