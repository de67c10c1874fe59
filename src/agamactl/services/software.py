"""SoftwareService — base products and the installer UI language."""

from __future__ import annotations

from agamactl.domain.errors import AgamaError
from agamactl.services.base import BaseService
from agamactl.services.result import ServiceResult
from agamactl.services.telemetry import trace_span, traced


class SoftwareService(BaseService):
    """Product selection and language operations."""

    @traced
    async def list_products(self) -> ServiceResult:
        """Available base products, flagging the selected one."""
        try:
            with trace_span("get_products"):
                products = await self._client.software.get_products()
            with trace_span("get_selected_product"):
                selected = await self._client.software.get_selected_product()
        except AgamaError as exc:
            return self._failure("list_products", exc)

        return ServiceResult(
            ok=True,
            op="list_products",
            data={
                "items": [
                    {**product.model_dump(), "selected": product.id == selected}
                    for product in products
                ],
                "count": len(products),
                "selected": selected,
            },
        )

    @traced
    async def selected_product(self) -> ServiceResult:
        try:
            selected = await self._client.software.get_selected_product()
        except AgamaError as exc:
            return self._failure("selected_product", exc)
        return ServiceResult(ok=True, op="selected_product", data={"id": selected})

    @traced
    async def select_product(self, product_id: str) -> ServiceResult:
        """Select *product_id*, refusing ids the service does not offer."""
        op = "select_product"
        try:
            products = await self._client.software.get_products()
            if product_id not in {product.id for product in products}:
                return ServiceResult.fail(
                    op,
                    "UNKNOWN_PRODUCT",
                    f"Unknown product: {product_id!r}",
                    data={"available": [product.id for product in products]},
                )
            await self._client.software.select_product(product_id)
        except AgamaError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"id": product_id})

    @traced
    async def get_language(self) -> ServiceResult:
        try:
            language = await self._client.software.get_ui_language()
        except AgamaError as exc:
            return self._failure("get_language", exc)
        return ServiceResult(ok=True, op="get_language", data={"language": language})

    @traced
    async def set_language(self, language: str) -> ServiceResult:
        try:
            await self._client.software.set_ui_language(language)
        except AgamaError as exc:
            return self._failure("set_language", exc)
        return ServiceResult(ok=True, op="set_language", data={"language": language})

