"""Software catalog client: base products, UI language, and sub-progress."""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING

from agamactl.bus.notifier import property_changes
from agamactl.bus.variant import decode, decode_struct, expect
from agamactl.clients.base import BaseClient
from agamactl.clients.progress import progress_change, progress_from
from agamactl.domain.errors import InvokeError
from agamactl.domain.snapshots import Product, Progress

if TYPE_CHECKING:
    from collections.abc import Callable

    from agamactl.bus.connection import Connection
    from agamactl.bus.handle import SignalArgs
    from agamactl.bus.notifier import Callback
    from agamactl.config.models import InterfacesConfig

PRODUCT_FIELDS = ("id", "name", "metadata")


class SoftwareClient(BaseClient):
    """Reads and changes the product selection of the software service."""

    def __init__(self, connection: Connection, interfaces: InterfacesConfig | None = None) -> None:
        super().__init__(connection, interfaces)
        self._software = self._proxy(self._interfaces.software)
        self._progress = self._proxy(self._interfaces.software_progress)
        self._selected_changes = self._notifier(self._software, _selected_product_change)
        self._progress_changes = self._notifier(
            self._progress, partial(progress_change, self._progress)
        )

    async def get_products(self) -> list[Product]:
        """Available base products; the per-product metadata map is dropped."""
        products: list[Product] = []
        for item in await self._read_items(self._software, "AvailableBaseProducts"):
            fields = decode_struct(item, PRODUCT_FIELDS)
            products.append(
                Product(
                    id=expect(fields["id"], "id", str),
                    name=expect(fields["name"], "name", str),
                )
            )
        return products

    async def get_selected_product(self) -> str:
        return await self._read(self._software, "SelectedBaseProduct", str)

    async def select_product(self, product_id: str) -> None:
        await self._call(self._software, "SelectProduct", product_id)

    async def get_ui_language(self) -> str:
        reply = await self._software.invoke("GetUILanguage")
        if reply is None:
            raise InvokeError("GetUILanguage", "No reply", interface=self._software.interface)
        return expect(decode(reply), "GetUILanguage", str)

    async def set_ui_language(self, language: str) -> None:
        await self._call(self._software, "SetUILanguage", language)

    async def get_progress(self) -> Progress:
        await self._progress.wait()
        return progress_from(self._progress)

    def on_selected_product_change(self, callback: Callback) -> Callable[[], None]:
        """Deliver the new product id whenever the selection changes."""
        return self._subscribe(self._selected_changes, self._software, callback)

    def on_progress_change(self, callback: Callback) -> Callable[[], None]:
        """Deliver software sub-progress (with ``finished``) on every change."""
        return self._subscribe(self._progress_changes, self._progress, callback)


def _selected_product_change(args: SignalArgs) -> str | None:
    changes = property_changes(args)
    if "SelectedBaseProduct" not in changes:
        return None
    return expect(decode(changes["SelectedBaseProduct"]), "SelectedBaseProduct", str)
