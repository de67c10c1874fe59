"""Timing spans for service coroutines, shown with ``--verbose``.

``@traced`` opens a root span around a service method; ``trace_span``
nests child spans for the bus round trips inside it. Span trees end up in
``ServiceResult.meta["telemetry"]``. When telemetry is off, both cost a
single ContextVar lookup.

Spans live in ContextVars, so concurrent tasks started from a traced
coroutine see the span that was current when they were created.
"""

from __future__ import annotations

import asyncio
import functools
import time
from collections.abc import Awaitable, Callable, Generator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, ParamSpec

import structlog

from agamactl.services.result import ServiceResult

_verbose_enabled: ContextVar[bool] = ContextVar("_verbose_enabled", default=False)
_current_span: ContextVar[Span | None] = ContextVar("_current_span", default=None)

_P = ParamSpec("_P")


@dataclass
class Span:
    """One timed step; children are the steps it awaited."""

    name: str
    parent: Span | None = None
    children: list[Span] = field(default_factory=list)
    start_time: float = field(default_factory=time.perf_counter)
    end_time: float | None = None
    annotations: dict[str, Any] = field(default_factory=dict)

    @property
    def duration_ms(self) -> float:
        if self.end_time is None:
            return 0.0
        return (self.end_time - self.start_time) * 1000

    def end(self) -> None:
        if self.end_time is None:
            self.end_time = time.perf_counter()

    def annotate(self, key: str, value: Any) -> None:
        self.annotations[key] = value

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "duration_ms": round(self.duration_ms, 2)}
        if self.annotations:
            data["annotations"] = dict(self.annotations)
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@contextmanager
def trace_span(name: str, **annotations: Any) -> Generator[Span | None]:
    """Time the enclosed block as a child of the current span.

    Yields None when telemetry is off or no traced call is running.
    """
    parent = _current_span.get() if _verbose_enabled.get() else None
    if parent is None:
        yield None
        return

    span = Span(name=name, parent=parent, annotations=dict(annotations))
    parent.children.append(span)
    token = _current_span.set(span)
    try:
        yield span
    finally:
        span.end()
        _current_span.reset(token)


def _finish(span: Span, result: ServiceResult | None, *, cancelled: bool = False) -> None:
    span.end()
    if cancelled:
        span.annotate("cancelled", True)
    elif result is not None and result.error is not None:
        span.annotate("error", result.error.code)
    structlog.get_logger("agamactl.telemetry").debug(
        "span.complete",
        span_name=span.name,
        duration_ms=round(span.duration_ms, 2),
        ok=bool(result and result.ok),
        children=len(span.children),
    )


def traced(
    func: Callable[_P, Awaitable[ServiceResult]],
) -> Callable[_P, Awaitable[ServiceResult]]:
    """Wrap a service coroutine in a root span and attach the tree to its result.

    Failed results are annotated with their error code; exceptions and
    cancellation propagate unchanged.
    """

    @functools.wraps(func)
    async def wrapper(*args: _P.args, **kwargs: _P.kwargs) -> ServiceResult:
        if not _verbose_enabled.get():
            return await func(*args, **kwargs)

        span = Span(name=func.__qualname__)
        token = _current_span.set(span)
        try:
            result = await func(*args, **kwargs)
        except asyncio.CancelledError:
            _finish(span, None, cancelled=True)
            raise
        except BaseException:
            _finish(span, None)
            raise
        finally:
            _current_span.reset(token)

        _finish(span, result)
        meta = {**(result.meta or {}), "telemetry": span.to_dict()}
        return result.model_copy(update={"meta": meta})

    return wrapper


def enable_telemetry() -> None:
    """Turn span collection on for the current context (``--verbose``)."""
    _verbose_enabled.set(True)


def disable_telemetry() -> None:
    _verbose_enabled.set(False)


def get_current_span() -> Span | None:
    """The innermost running span, for annotations; None when telemetry is off."""
    if not _verbose_enabled.get():
        return None
    return _current_span.get()
