"""Immutable snapshots of remote installer state.

Snapshots are value objects: frozen, compared by field, and rebuilt on
every read. Collections are tuples so that nothing inside a snapshot can
be mutated after construction.
"""

from __future__ import annotations

from pydantic import BaseModel


class Product(BaseModel):
    """A base product offered by the software catalog."""

    model_config = {"frozen": True}

    id: str
    name: str


class Device(BaseModel):
    """A storage device available for the proposal."""

    model_config = {"frozen": True}

    id: str
    label: str


class StorageProposal(BaseModel):
    """Settings of the current storage proposal."""

    model_config = {"frozen": True}

    available_devices: tuple[Device, ...] = ()
    candidate_devices: tuple[str, ...] = ()
    lvm: bool = False


class StorageAction(BaseModel):
    """One action the storage proposal would perform."""

    model_config = {"frozen": True}

    text: str
    subvol: bool
    delete: bool


class Progress(BaseModel):
    """Progress of a long-running installer task."""

    model_config = {"frozen": True}

    message: str
    current: int
    total: int
    finished: bool = False


class ValidationIssue(BaseModel):
    """A problem reported by a service's validation interface."""

    model_config = {"frozen": True}

    message: str


class ISCSIInitiator(BaseModel):
    """Local iSCSI initiator configuration."""

    model_config = {"frozen": True}

    name: str
    ibft: bool


class ISCSIInitiatorChange(BaseModel):
    """Partial initiator update: only the fields present in a change signal are set."""

    model_config = {"frozen": True}

    name: str | None = None
    ibft: bool | None = None
