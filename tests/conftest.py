"""Shared pytest fixtures and test helpers for agamactl tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest
from click.testing import CliRunner
from dbus_fast.signature import Variant

from agamactl.bus.memory import MemoryConnection, MemoryProxyHandle
from agamactl.bus.variant import TaggedValue
from agamactl.clients.installer import InstallerClient
from agamactl.config.models import InterfacesConfig

BINDINGS = InterfacesConfig()

PRODUCTS = [("MicroOS", "openSUSE MicroOS", {})]
DEVICES = [
    ("/dev/sda", "/dev/sda, 950 GiB, Windows"),
    ("/dev/sdb", "/dev/sdb, 500 GiB"),
]
ACTIONS = [
    {
        "Text": Variant("s", "Mount /dev/sdb1 as root"),
        "Subvol": Variant("b", False),
        "Delete": Variant("b", False),
    }
]


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


# ---------------------------------------------------------------------------
# In-memory installer service
# ---------------------------------------------------------------------------


def progress_properties(
    current: int = 1, total: int = 3, message: str = "Probing", finished: bool = False
) -> dict[str, tuple[str, Any]]:
    return {
        "TotalSteps": ("u", total),
        "CurrentStep": ("(us)", (current, message)),
        "Finished": ("b", finished),
    }


def status_ok(*_args: Any) -> TaggedValue:
    return TaggedValue.integer(0)


def installer_handles() -> dict[str, MemoryProxyHandle]:
    """One handle per binding, preloaded with a small two-disk installation."""
    software = MemoryProxyHandle.from_native(
        BINDINGS.software.interface,
        {
            "AvailableBaseProducts": ("a(ssa{sv})", PRODUCTS),
            "SelectedBaseProduct": ("s", "microos"),
        },
        path=BINDINGS.software.path,
        methods={
            "SelectProduct": status_ok,
            "GetUILanguage": lambda: TaggedValue.string("en_US"),
            "SetUILanguage": status_ok,
        },
    )
    return {
        "software": software,
        "software_progress": MemoryProxyHandle.from_native(
            BINDINGS.software_progress.interface,
            progress_properties(2, 4, "Downloading packages"),
            path=BINDINGS.software_progress.path,
        ),
        "storage_proposal": MemoryProxyHandle.from_native(
            BINDINGS.storage_proposal.interface,
            {
                "AvailableDevices": ("a(ss)", DEVICES),
                "CandidateDevices": ("as", ["/dev/sda"]),
                "LVM": ("b", True),
            },
            path=BINDINGS.storage_proposal.path,
        ),
        "storage_actions": MemoryProxyHandle.from_native(
            BINDINGS.storage_actions.interface,
            {"All": ("aa{sv}", ACTIONS)},
            path=BINDINGS.storage_actions.path,
        ),
        "storage_validation": MemoryProxyHandle.from_native(
            BINDINGS.storage_validation.interface,
            {"Errors": ("as", [])},
            path=BINDINGS.storage_validation.path,
        ),
        "manager_progress": MemoryProxyHandle.from_native(
            BINDINGS.manager_progress.interface,
            progress_properties(),
            path=BINDINGS.manager_progress.path,
        ),
        "iscsi_initiator": MemoryProxyHandle.from_native(
            BINDINGS.iscsi_initiator.interface,
            {
                "InitiatorName": ("s", "iqn.1996-04.de.suse:01:351e6d6249"),
                "IBFT": ("b", False),
            },
            path=BINDINGS.iscsi_initiator.path,
        ),
    }


@pytest.fixture
def handles() -> dict[str, MemoryProxyHandle]:
    """In-memory handles keyed by binding name; mutate them before connecting."""
    return installer_handles()


@pytest.fixture
def connection(handles: dict[str, MemoryProxyHandle]) -> MemoryConnection:
    return MemoryConnection(handles.values())


@pytest.fixture
def installer(connection: MemoryConnection) -> InstallerClient:
    return InstallerClient(connection)


@pytest.fixture
def fake_service(
    handles: dict[str, MemoryProxyHandle], monkeypatch: pytest.MonkeyPatch
) -> dict[str, MemoryProxyHandle]:
    """Route CLI commands to the in-memory handles instead of the system bus."""

    def create_client(settings: Any) -> InstallerClient:
        return InstallerClient(MemoryConnection(handles.values()), settings.interfaces)

    monkeypatch.setattr("agamactl.commands._context.create_client", create_client)
    return handles


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


async def settle(rounds: int = 5) -> None:
    """Let queued deliveries and done-callbacks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def collector() -> tuple[list[Any], Callable[[Any], None]]:
    """Return a list and a callback appending to it."""
    received: list[Any] = []
    return received, received.append
