"""Tests for telemetry primitives: Span, trace_span, @traced."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Generator

import pytest

from agamactl.services.result import ServiceResult
from agamactl.services.telemetry import (
    Span,
    _current_span,
    disable_telemetry,
    enable_telemetry,
    get_current_span,
    trace_span,
    traced,
)


@pytest.fixture(autouse=True)
def _reset_telemetry_state() -> Generator[None]:
    """Ensure clean telemetry state for every test."""
    yield
    disable_telemetry()
    _current_span.set(None)


class TestSpan:
    def test_duration_before_end_is_zero(self) -> None:
        assert Span(name="test").duration_ms == 0.0

    def test_duration_after_end(self) -> None:
        span = Span(name="test")
        time.sleep(0.005)
        span.end()
        assert span.duration_ms > 0

    def test_to_dict_minimal(self) -> None:
        span = Span(name="root")
        span.end()
        d = span.to_dict()
        assert d["name"] == "root"
        assert "children" not in d
        assert "annotations" not in d

    def test_annotate(self) -> None:
        span = Span(name="root")
        span.annotate("timed_out", True)
        assert span.to_dict()["annotations"] == {"timed_out": True}


class TestTraceSpan:
    def test_disabled_yields_none(self) -> None:
        with trace_span("x") as span:
            assert span is None

    def test_no_root_yields_none(self) -> None:
        enable_telemetry()
        with trace_span("x") as span:
            assert span is None

    def test_annotations_at_creation(self) -> None:
        enable_telemetry()
        root = Span(name="root")
        token = _current_span.set(root)
        try:
            with trace_span("get_storage_actions", interface="org.x.Actions1") as child:
                assert child is not None
        finally:
            _current_span.reset(token)
        assert root.children[0].annotations == {"interface": "org.x.Actions1"}

    def test_nested_under_root(self) -> None:
        enable_telemetry()
        root = Span(name="root")
        token = _current_span.set(root)
        try:
            with trace_span("child") as child:
                assert child is not None
                assert get_current_span() is child
        finally:
            _current_span.reset(token)
        assert [c.name for c in root.children] == ["child"]


class TestTracedDecorator:
    @pytest.mark.asyncio
    async def test_noop_when_disabled(self) -> None:
        @traced
        async def op() -> ServiceResult:
            return ServiceResult(ok=True, op="test")

        result = await op()
        assert result.meta is None

    @pytest.mark.asyncio
    async def test_injects_meta_when_enabled(self) -> None:
        @traced
        async def op() -> ServiceResult:
            with trace_span("get_products"):
                pass
            return ServiceResult(ok=True, op="test", meta={"existing": "data"})

        enable_telemetry()
        result = await op()
        assert result.meta is not None
        assert result.meta["existing"] == "data"
        telemetry = result.meta["telemetry"]
        assert telemetry["name"].endswith("op")
        assert telemetry["children"][0]["name"] == "get_products"

    @pytest.mark.asyncio
    async def test_exception_propagates(self) -> None:
        @traced
        async def op() -> ServiceResult:
            msg = "boom"
            raise ValueError(msg)

        enable_telemetry()
        with pytest.raises(ValueError, match="boom"):
            await op()
        assert _current_span.get() is None

    @pytest.mark.asyncio
    async def test_failed_result_annotated_with_code(self) -> None:
        @traced
        async def op() -> ServiceResult:
            return ServiceResult.fail("test", "CONNECT_ERROR", "Cannot connect")

        enable_telemetry()
        result = await op()
        assert result.meta is not None
        assert result.meta["telemetry"]["annotations"] == {"error": "CONNECT_ERROR"}

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self) -> None:
        started = asyncio.Event()

        @traced
        async def op() -> ServiceResult:
            started.set()
            await asyncio.sleep(10)
            return ServiceResult(ok=True, op="test")

        enable_telemetry()
        task = asyncio.ensure_future(op())
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
