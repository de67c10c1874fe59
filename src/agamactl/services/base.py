"""BaseService — shared foundation for agamactl services.

Every service receives an :class:`InstallerClient` at construction time.
Services call the clients, catch :class:`AgamaError`, and turn it into a
failed :class:`ServiceResult`; exceptions never reach the CLI.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from agamactl.domain.errors import AgamaError, ConnectError
from agamactl.services.result import ServiceResult

if TYPE_CHECKING:
    from agamactl.clients.installer import InstallerClient

logger = logging.getLogger(__name__)

CONNECT_MESSAGE = "Cannot connect to the installer service"


class BaseService:
    """Base for all service-layer classes.

    Usage::

        class SoftwareService(BaseService):
            async def list_products(self) -> ServiceResult:
                try:
                    products = await self._client.software.get_products()
                except AgamaError as exc:
                    return self._failure("list_products", exc)
                ...
    """

    def __init__(self, client: InstallerClient) -> None:
        self._client = client

    def _failure(self, op: str, exc: AgamaError) -> ServiceResult:
        return failure(op, exc)


def failure(op: str, exc: AgamaError) -> ServiceResult:
    """Map a client exception to a failed ServiceResult.

    Connection failures get a generic message; the specific reason goes
    into ``detail`` for ``--json`` and ``--verbose`` consumers.
    """
    detail = exc.detail()
    if isinstance(exc, ConnectError):
        message = CONNECT_MESSAGE
        detail = {**detail, "reason": str(exc)}
    else:
        message = str(exc)
    logger.debug("%s failed with %s: %s", op, exc.code, exc)
    return ServiceResult.fail(op, exc.code, message, detail=detail)
