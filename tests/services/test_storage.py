"""Tests for StorageService."""

from __future__ import annotations

import pytest
from dbus_fast.signature import Variant

from agamactl.bus.memory import MemoryProxyHandle
from agamactl.bus.variant import lift
from agamactl.clients.installer import InstallerClient
from agamactl.services.storage import StorageService


@pytest.fixture
def service(installer: InstallerClient) -> StorageService:
    return StorageService(installer)


class TestProposal:
    @pytest.mark.asyncio
    async def test_proposal(self, service: StorageService) -> None:
        result = await service.proposal()
        assert result.ok
        assert result.op == "storage_proposal"
        assert result.data["lvm"] is True
        assert result.data["candidate_devices"] == ("/dev/sda",)
        assert [d["id"] for d in result.data["available_devices"]] == ["/dev/sda", "/dev/sdb"]

    @pytest.mark.asyncio
    async def test_missing_property(
        self, service: StorageService, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        del handles["storage_proposal"].remote["LVM"]
        result = await service.proposal()
        assert result.error is not None
        assert result.error.code == "DECODE_ERROR"
        assert result.error.detail["path"] == "LVM"


class TestActions:
    @pytest.mark.asyncio
    async def test_counts_deletions(
        self, service: StorageService, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        delete = {
            "Text": Variant("s", "Delete partition /dev/sda2"),
            "Subvol": Variant("b", False),
            "Delete": Variant("b", True),
        }
        mount = {
            "Text": Variant("s", "Mount /dev/sdb1 as root"),
            "Subvol": Variant("b", False),
            "Delete": Variant("b", False),
        }
        handles["storage_actions"].remote["All"] = lift("aa{sv}", [delete, mount])
        result = await service.actions()
        assert result.data["count"] == 2
        assert result.data["deletions"] == 1
        assert result.data["items"][0]["text"] == "Delete partition /dev/sda2"

    @pytest.mark.asyncio
    async def test_no_actions(
        self, service: StorageService, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        handles["storage_actions"].remote["All"] = lift("aa{sv}", [])
        result = await service.actions()
        assert result.ok
        assert result.data == {"items": [], "count": 0, "deletions": 0}


class TestValidation:
    @pytest.mark.asyncio
    async def test_clean(self, service: StorageService) -> None:
        result = await service.validation()
        assert result.ok
        assert result.warnings == []

    @pytest.mark.asyncio
    async def test_issues_are_warnings(
        self, service: StorageService, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        handles["storage_validation"].remote["Errors"] = lift(
            "as", ["No root file system", "Disk too small"]
        )
        result = await service.validation()
        assert result.ok
        assert result.data["count"] == 2
        assert result.warnings == ["No root file system", "Disk too small"]


class TestISCSI:
    @pytest.mark.asyncio
    async def test_initiator(self, service: StorageService) -> None:
        result = await service.iscsi_initiator()
        assert result.data == {"name": "iqn.1996-04.de.suse:01:351e6d6249", "ibft": False}

    @pytest.mark.asyncio
    async def test_unreachable(
        self, service: StorageService, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        handles["iscsi_initiator"].reachable = False
        result = await service.iscsi_initiator()
        assert result.error is not None
        assert result.error.code == "CONNECT_ERROR"
