"""Storage client: proposal settings, planned actions, and validation issues.

Actions arrive as an array of ``a{sv}`` maps whose ``Text``, ``Subvol``
and ``Delete`` fields are variant-wrapped; decoding unwraps them before
the presence and type checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from agamactl.bus.notifier import property_changes
from agamactl.bus.variant import TaggedValue, decode, decode_struct, expect, require
from agamactl.clients.base import BaseClient, items
from agamactl.domain.errors import DecodeError
from agamactl.domain.snapshots import Device, StorageAction, StorageProposal, ValidationIssue

if TYPE_CHECKING:
    from collections.abc import Callable

    from agamactl.bus.connection import Connection
    from agamactl.bus.handle import ProxyHandle, SignalArgs
    from agamactl.bus.notifier import Callback
    from agamactl.config.models import InterfacesConfig

PROPOSAL_PROPERTIES = frozenset({"AvailableDevices", "CandidateDevices", "LVM"})


class StorageClient(BaseClient):
    """Reads the storage proposal and the actions it would perform."""

    def __init__(self, connection: Connection, interfaces: InterfacesConfig | None = None) -> None:
        super().__init__(connection, interfaces)
        self._proposal = self._proxy(self._interfaces.storage_proposal)
        self._actions = self._proxy(self._interfaces.storage_actions)
        self._validation = self._proxy(self._interfaces.storage_validation)
        self._proposal_changes = self._notifier(self._proposal, self._proposal_change)
        self._actions_changes = self._notifier(self._actions, _actions_change)

    async def get_storage_proposal(self) -> StorageProposal:
        await self._proposal.wait()
        return _proposal_from(self._proposal)

    async def get_storage_actions(self) -> list[StorageAction]:
        return [
            _action(item, i)
            for i, item in enumerate(await self._read_items(self._actions, "All"))
        ]

    async def get_validation_errors(self) -> list[ValidationIssue]:
        return [
            ValidationIssue(message=expect(decode(item), "Errors", str))
            for item in await self._read_items(self._validation, "Errors")
        ]

    def on_proposal_change(self, callback: Callback) -> Callable[[], None]:
        """Deliver a fresh StorageProposal whenever any of its properties change."""
        return self._subscribe(self._proposal_changes, self._proposal, callback)

    def on_actions_change(self, callback: Callback) -> Callable[[], None]:
        """Deliver the new list of actions whenever ``All`` changes."""
        return self._subscribe(self._actions_changes, self._actions, callback)

    def _proposal_change(self, args: SignalArgs) -> StorageProposal | None:
        if not property_changes(args).keys() & PROPOSAL_PROPERTIES:
            return None
        return _proposal_from(self._proposal)


def _proposal_from(handle: ProxyHandle) -> StorageProposal:
    devices = []
    for item in items(handle.get_property("AvailableDevices"), "AvailableDevices"):
        fields = decode_struct(item, ("id", "label"))
        devices.append(
            Device(id=expect(fields["id"], "id", str), label=expect(fields["label"], "label", str))
        )
    candidates = [
        expect(decode(item), "CandidateDevices", str)
        for item in items(handle.get_property("CandidateDevices"), "CandidateDevices")
    ]
    return StorageProposal(
        available_devices=tuple(devices),
        candidate_devices=tuple(candidates),
        lvm=expect(decode(handle.get_property("LVM")), "LVM", bool),
    )


def _action(item: TaggedValue, index: int) -> StorageAction:
    fields: Any = decode(item)
    if not isinstance(fields, dict):
        raise DecodeError(f"Action {index} must be a map of fields", path=f"All[{index}]")
    return StorageAction(
        text=require(fields, "Text", str),
        subvol=require(fields, "Subvol", bool),
        delete=require(fields, "Delete", bool),
    )


def _actions_change(args: SignalArgs) -> list[StorageAction] | None:
    changes = property_changes(args)
    if "All" not in changes:
        return None
    return [_action(item, i) for i, item in enumerate(items(changes["All"], "All"))]
