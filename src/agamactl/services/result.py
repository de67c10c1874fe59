"""ServiceResult — what every service operation returns to the CLI.

Client exceptions stop at the service layer; the CLI only ever sees a
ServiceResult and picks stdout/stderr and the exit code from ``ok``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator


class ServiceError(BaseModel):
    """Why an operation failed: a stable ``code`` plus a human ``message``."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Outcome of one service operation.

    Attributes:
        ok: Whether the operation succeeded.
        op: Operation name, used to pick a renderer (e.g. ``"list_products"``).
        data: Operation payload; failures may carry context here too.
        warnings: Non-fatal findings (validation issues, a watch timeout).
        error: Set exactly when ``ok`` is False.
        meta: Telemetry spans in verbose mode.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None

    @model_validator(mode="after")
    def _error_only_on_failure(self) -> ServiceResult:
        if self.ok and self.error is not None:
            msg = f"Successful result {self.op!r} cannot carry an error"
            raise ValueError(msg)
        return self

    @classmethod
    def fail(
        cls,
        op: str,
        code: str,
        message: str,
        *,
        detail: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> ServiceResult:
        """Shorthand for a failed result."""
        return cls(
            ok=False,
            op=op,
            data=data or {},
            error=ServiceError(code=code, message=message, detail=detail or {}),
        )
