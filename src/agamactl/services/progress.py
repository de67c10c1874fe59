"""ProgressService — installation progress, once or as a live watch.

The watch ties its initial read and its change subscription to one
:class:`CancellationScope`: when the watch ends (finished, timed out, or
the caller is cancelled) a late read result is dropped and no further
updates are delivered.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from agamactl.bus.cancellable import CancellationScope
from agamactl.bus.notifier import SignalError
from agamactl.domain.errors import AgamaError
from agamactl.domain.snapshots import Progress
from agamactl.services.base import BaseService
from agamactl.services.result import ServiceResult
from agamactl.services.telemetry import get_current_span, traced

logger = logging.getLogger(__name__)


class ProgressService(BaseService):
    """Overall (manager) and software progress."""

    @traced
    async def progress(self) -> ServiceResult:
        try:
            progress = await self._client.manager.get_progress()
        except AgamaError as exc:
            return self._failure("progress", exc)
        return ServiceResult(ok=True, op="progress", data=progress.model_dump())

    @traced
    async def software_progress(self) -> ServiceResult:
        try:
            progress = await self._client.software.get_progress()
        except AgamaError as exc:
            return self._failure("software_progress", exc)
        return ServiceResult(ok=True, op="software_progress", data=progress.model_dump())

    @traced
    async def watch(
        self,
        on_update: Callable[[Progress], None],
        *,
        timeout: float | None = None,
    ) -> ServiceResult:
        """Report progress through *on_update* until it finishes or *timeout* expires.

        Undecodable updates are logged and skipped; the last good progress
        is what the result reports.
        """
        op = "watch_progress"
        done = asyncio.Event()
        last: list[Progress] = []
        errors: list[BaseException] = []
        warnings: list[str] = []

        def show(progress: Progress) -> None:
            last[:] = [progress]
            on_update(progress)
            if progress.finished:
                done.set()

        def changed(value: Progress | SignalError) -> None:
            if isinstance(value, SignalError):
                logger.warning("Ignoring undecodable progress update: %s", value.error)
                return
            show(value)

        def failed(exc: BaseException) -> None:
            errors.append(exc)
            done.set()

        with CancellationScope() as scope:
            scope.track(self._client.manager.on_progress_change(changed))
            scope.wrap(self._client.manager.get_progress(), show, failed)
            try:
                await asyncio.wait_for(done.wait(), timeout)
            except TimeoutError:
                warnings.append(f"Stopped watching after {timeout:g}s; installation not finished")

        if errors:
            if isinstance(errors[0], AgamaError):
                return self._failure(op, errors[0])
            raise errors[0]

        span = get_current_span()
        if span is not None:
            span.annotate("timed_out", bool(warnings))

        data = last[0].model_dump() if last else {}
        return ServiceResult(ok=True, op=op, data=data, warnings=warnings)
