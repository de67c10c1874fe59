"""StorageService — proposal, planned actions, validation, and iSCSI initiator."""

from __future__ import annotations

from agamactl.domain.errors import AgamaError
from agamactl.services.base import BaseService
from agamactl.services.result import ServiceResult
from agamactl.services.telemetry import trace_span, traced


class StorageService(BaseService):
    """Read-only storage operations."""

    @traced
    async def proposal(self) -> ServiceResult:
        try:
            with trace_span("get_storage_proposal"):
                proposal = await self._client.storage.get_storage_proposal()
        except AgamaError as exc:
            return self._failure("storage_proposal", exc)
        return ServiceResult(ok=True, op="storage_proposal", data=proposal.model_dump())

    @traced
    async def actions(self) -> ServiceResult:
        """Actions the proposal would perform, in execution order."""
        try:
            with trace_span("get_storage_actions") as span:
                actions = await self._client.storage.get_storage_actions()
                if span is not None:
                    span.annotate("count", len(actions))
        except AgamaError as exc:
            return self._failure("storage_actions", exc)
        return ServiceResult(
            ok=True,
            op="storage_actions",
            data={
                "items": [action.model_dump() for action in actions],
                "count": len(actions),
                "deletions": sum(1 for action in actions if action.delete),
            },
        )

    @traced
    async def validation(self) -> ServiceResult:
        """Validation issues; a non-empty list is reported as warnings, not failure."""
        try:
            with trace_span("get_validation_errors"):
                issues = await self._client.storage.get_validation_errors()
        except AgamaError as exc:
            return self._failure("storage_validation", exc)
        return ServiceResult(
            ok=True,
            op="storage_validation",
            data={"items": [issue.model_dump() for issue in issues], "count": len(issues)},
            warnings=[issue.message for issue in issues],
        )

    @traced
    async def iscsi_initiator(self) -> ServiceResult:
        try:
            initiator = await self._client.iscsi.get_initiator()
        except AgamaError as exc:
            return self._failure("iscsi_initiator", exc)
        return ServiceResult(ok=True, op="iscsi_initiator", data=initiator.model_dump())
