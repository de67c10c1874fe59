"""Pydantic models for the [bus] and [interfaces.*] settings sections.

Sparse TOML contract: defaults baked here, agamactl.toml only contains
overrides. Interface and path names are configuration, but the defaults
must match the installer service exactly.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

SERVICE_PREFIX = "org.opensuse.DInstaller"
PATH_PREFIX = "/org/opensuse/DInstaller"


class BusConfig(BaseModel):
    """[bus] section."""

    model_config = {"frozen": True}

    type: Literal["system", "session"] = "system"
    address: str | None = None
    name: str = SERVICE_PREFIX


class InterfaceBinding(BaseModel):
    """An interface exposed at an object path."""

    model_config = {"frozen": True}

    path: str
    interface: str


def _binding(path: str, interface: str) -> InterfaceBinding:
    return InterfaceBinding(path=f"{PATH_PREFIX}/{path}", interface=f"{SERVICE_PREFIX}.{interface}")


class InterfacesConfig(BaseModel):
    """[interfaces.*] sections, one per binding."""

    model_config = {"frozen": True}

    software: InterfaceBinding = Field(
        default_factory=lambda: _binding("Software1", "Software1")
    )
    software_progress: InterfaceBinding = Field(
        default_factory=lambda: _binding("Software1", "Progress1")
    )
    storage_proposal: InterfaceBinding = Field(
        default_factory=lambda: _binding("Storage/Proposal1", "Storage.Proposal1")
    )
    storage_actions: InterfaceBinding = Field(
        default_factory=lambda: _binding("Storage/Actions1", "Storage.Actions1")
    )
    storage_validation: InterfaceBinding = Field(
        default_factory=lambda: _binding("Storage1", "Validation1")
    )
    manager_progress: InterfaceBinding = Field(
        default_factory=lambda: _binding("Manager1", "Progress1")
    )
    iscsi_initiator: InterfaceBinding = Field(
        default_factory=lambda: _binding("Storage1", "Storage1.ISCSI.Initiator")
    )
