"""Manager client: overall installation progress."""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from agamactl.clients.base import BaseClient
from agamactl.clients.progress import progress_change, progress_from
from agamactl.domain.snapshots import Progress

if TYPE_CHECKING:
    from collections.abc import Callable

    from agamactl.bus.connection import Connection
    from agamactl.bus.notifier import Callback
    from agamactl.config.models import InterfacesConfig


class ManagerClient(BaseClient):
    def __init__(self, connection: Connection, interfaces: InterfacesConfig | None = None) -> None:
        super().__init__(connection, interfaces)
        self._progress = self._proxy(self._interfaces.manager_progress)
        self._progress_changes = self._notifier(
            self._progress, partial(progress_change, self._progress)
        )

    async def get_progress(self) -> Progress:
        await self._progress.wait()
        return progress_from(self._progress)

    def on_progress_change(self, callback: Callback) -> Callable[[], None]:
        return self._subscribe(self._progress_changes, self._progress, callback)
