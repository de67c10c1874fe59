"""Tests for ProgressService, including the live watch."""

from __future__ import annotations

import asyncio

import pytest

from agamactl.bus.memory import MemoryProxyHandle
from agamactl.bus.variant import TaggedValue, lift
from agamactl.clients.installer import InstallerClient
from agamactl.domain.snapshots import Progress
from agamactl.services.progress import ProgressService
from agamactl.services.telemetry import disable_telemetry, enable_telemetry
from tests.conftest import collector, settle


@pytest.fixture
def service(installer: InstallerClient) -> ProgressService:
    return ProgressService(installer)


class TestProgress:
    @pytest.mark.asyncio
    async def test_manager_progress(self, service: ProgressService) -> None:
        result = await service.progress()
        assert result.ok
        assert result.data == {"message": "Probing", "current": 1, "total": 3, "finished": False}

    @pytest.mark.asyncio
    async def test_software_progress(self, service: ProgressService) -> None:
        result = await service.software_progress()
        assert result.op == "software_progress"
        assert result.data["message"] == "Downloading packages"
        assert result.data["current"] == 2


class TestWatch:
    @pytest.mark.asyncio
    async def test_until_finished(
        self, service: ProgressService, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        received, callback = collector()
        task = asyncio.ensure_future(service.watch(callback))
        await settle()
        handles["manager_progress"].change(
            {"CurrentStep": lift("(us)", (3, "Installing")), "Finished": TaggedValue.boolean(True)}
        )
        result = await asyncio.wait_for(task, 1)

        assert result.ok
        assert result.op == "watch_progress"
        assert result.warnings == []
        assert result.data["finished"] is True
        assert received[0] == Progress(message="Probing", current=1, total=3)
        assert received[-1].message == "Installing"

    @pytest.mark.asyncio
    async def test_already_finished(
        self, service: ProgressService, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        handles["manager_progress"].remote["Finished"] = TaggedValue.boolean(True)
        received, callback = collector()
        result = await asyncio.wait_for(service.watch(callback), 1)
        assert result.data["finished"] is True
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_timeout_warns(self, service: ProgressService) -> None:
        received, callback = collector()
        result = await service.watch(callback, timeout=0.05)
        assert result.ok
        assert result.warnings == ["Stopped watching after 0.05s; installation not finished"]
        assert result.data["message"] == "Probing"
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_timeout_annotates_span(self, service: ProgressService) -> None:
        enable_telemetry()
        try:
            _, callback = collector()
            result = await service.watch(callback, timeout=0.01)
        finally:
            disable_telemetry()
        assert result.meta is not None
        assert result.meta["telemetry"]["annotations"] == {"timed_out": True}

    @pytest.mark.asyncio
    async def test_undecodable_update_is_skipped(
        self, service: ProgressService, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        received, callback = collector()
        task = asyncio.ensure_future(service.watch(callback))
        await settle()
        handle = handles["manager_progress"]
        handle.set_remote("TotalSteps", TaggedValue.string("many"))
        handle.change({"TotalSteps": TaggedValue.integer(3), "Finished": TaggedValue.boolean(True)})
        result = await asyncio.wait_for(task, 1)

        assert result.ok
        assert all(isinstance(p, Progress) for p in received)
        assert received[-1].finished is True

    @pytest.mark.asyncio
    async def test_connect_failure(
        self, service: ProgressService, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        handles["manager_progress"].reachable = False
        received, callback = collector()
        result = await asyncio.wait_for(service.watch(callback), 1)
        assert not result.ok
        assert result.error is not None
        assert result.error.code == "CONNECT_ERROR"
        assert received == []

    @pytest.mark.asyncio
    async def test_no_updates_after_return(
        self, service: ProgressService, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        received, callback = collector()
        await service.watch(callback, timeout=0.01)
        count = len(received)
        handles["manager_progress"].set_remote("CurrentStep", lift("(us)", (2, "Late")))
        await settle()
        assert len(received) == count
