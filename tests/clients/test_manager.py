"""Tests for ManagerClient and the shared progress decoding."""

from __future__ import annotations

import pytest

from agamactl.bus.memory import MemoryConnection, MemoryProxyHandle
from agamactl.bus.notifier import SignalError
from agamactl.bus.variant import TaggedValue, lift
from agamactl.clients.manager import ManagerClient
from agamactl.domain.errors import DecodeError
from agamactl.domain.snapshots import Progress
from tests.conftest import collector, settle


@pytest.fixture
def client(connection: MemoryConnection) -> ManagerClient:
    return ManagerClient(connection)


class TestProgress:
    @pytest.mark.asyncio
    async def test_get_progress(self, client: ManagerClient) -> None:
        assert await client.get_progress() == Progress(message="Probing", current=1, total=3)

    @pytest.mark.asyncio
    async def test_malformed_step(
        self, client: ManagerClient, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        handles["manager_progress"].remote["CurrentStep"] = lift("(ss)", ("1", "Probing"))
        with pytest.raises(DecodeError):
            await client.get_progress()

    @pytest.mark.asyncio
    async def test_changes_in_order(
        self, client: ManagerClient, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        received, callback = collector()
        client.on_progress_change(callback)
        await settle()
        handle = handles["manager_progress"]
        handle.set_remote("CurrentStep", lift("(us)", (2, "Partitioning")))
        handle.change(
            {"CurrentStep": lift("(us)", (3, "Installing")), "Finished": TaggedValue.boolean(True)}
        )
        await settle()
        assert [p.message for p in received] == ["Partitioning", "Installing"]
        assert received[-1].finished is True

    @pytest.mark.asyncio
    async def test_unrelated_change_is_ignored(
        self, client: ManagerClient, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        received, callback = collector()
        client.on_progress_change(callback)
        await settle()
        handles["manager_progress"].set_remote("Busy", TaggedValue.boolean(True))
        await settle()
        assert received == []

    @pytest.mark.asyncio
    async def test_bad_change_then_recovery(
        self, client: ManagerClient, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        received, callback = collector()
        client.on_progress_change(callback)
        await settle()
        handle = handles["manager_progress"]
        handle.set_remote("TotalSteps", TaggedValue.string("many"))
        handle.set_remote("TotalSteps", TaggedValue.integer(5))
        await settle()
        assert isinstance(received[0], SignalError)
        assert received[1] == Progress(message="Probing", current=1, total=5)

    @pytest.mark.asyncio
    async def test_close_stops_notifications(
        self, client: ManagerClient, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        received, callback = collector()
        client.on_progress_change(callback)
        await settle()
        client.close()
        handles["manager_progress"].set_remote("CurrentStep", lift("(us)", (2, "Late")))
        await settle()
        assert received == []

    @pytest.mark.asyncio
    async def test_close_cancels_pending_wait(
        self, client: ManagerClient, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        handle = handles["manager_progress"]
        handle.delay = 0.05
        client.on_progress_change(lambda _v: None)
        assert len(client._pending) == 1
        task = next(iter(client._pending))
        client.close()
        await settle()
        assert client._pending == set()
        assert task.cancelled()
        await handle.wait()
        assert handle.ready

    @pytest.mark.asyncio
    async def test_finished_wait_is_released(
        self, client: ManagerClient, handles: dict[str, MemoryProxyHandle]
    ) -> None:
        client.on_progress_change(lambda _v: None)
        await settle()
        assert handles["manager_progress"].ready
        assert client._pending == set()
