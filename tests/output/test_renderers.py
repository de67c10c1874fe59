"""Tests for operation-specific Rich renderers."""

from agamactl.output.renderers import render_progress, render_quiet, render_result
from agamactl.services.result import ServiceError, ServiceResult

# ── Helpers ───────────────────────────────────────────────────────────


def _ok(op: str, **data: object) -> ServiceResult:
    return ServiceResult(ok=True, op=op, data=dict(data))


def _err(op: str, code: str, message: str, **detail: object) -> ServiceResult:
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code=code, message=message, detail=dict(detail)),
    )


# ── Error rendering ──────────────────────────────────────────────────


class TestErrorRenderer:
    def test_basic_error(self) -> None:
        output = render_result(_err("list_products", "CONNECT_ERROR", "Cannot connect"))
        assert "ERROR" in output
        assert "list_products" in output
        assert "Cannot connect" in output

    def test_verbose_shows_detail(self) -> None:
        result = _err("list_products", "CONNECT_ERROR", "Cannot connect", reason="refused")
        output = render_result(result, verbose=True)
        assert "detail" in output
        assert "reason: refused" in output

    def test_detail_hidden_by_default(self) -> None:
        result = _err("list_products", "CONNECT_ERROR", "Cannot connect", reason="refused")
        assert "refused" not in render_result(result)

    def test_no_error_object(self) -> None:
        assert "Unknown error" in render_result(ServiceResult(ok=False, op="test"))


# ── Software ──────────────────────────────────────────────────────────


class TestProductsRenderer:
    def test_marks_selected(self) -> None:
        result = _ok(
            "list_products",
            items=[
                {"id": "MicroOS", "name": "openSUSE MicroOS", "selected": False},
                {"id": "Tumbleweed", "name": "openSUSE Tumbleweed", "selected": True},
            ],
            count=2,
        )
        output = render_result(result)
        lines = output.splitlines()
        assert any("*" in line and "Tumbleweed" in line for line in lines)
        assert not any("*" in line and "MicroOS" in line for line in lines)
        assert "2 products" in output

    def test_generic_language(self) -> None:
        output = render_result(_ok("get_language", language="en_US"))
        assert "OK" in output
        assert "language: en_US" in output


# ── Storage ───────────────────────────────────────────────────────────


class TestStorageRenderers:
    def test_proposal(self) -> None:
        result = _ok(
            "storage_proposal",
            available_devices=[
                {"id": "/dev/sda", "label": "/dev/sda, 950 GiB, Windows"},
                {"id": "/dev/sdb", "label": "/dev/sdb, 500 GiB"},
            ],
            candidate_devices=["/dev/sda"],
            lvm=True,
        )
        output = render_result(result)
        assert "candidate_devices: /dev/sda" in output
        assert "lvm: yes" in output
        assert "950 GiB" in output

    def test_actions_highlight_deletions(self) -> None:
        result = _ok(
            "storage_actions",
            items=[
                {"text": "Delete partition /dev/sda2", "subvol": False, "delete": True},
                {"text": "Mount /dev/sdb1 as root", "subvol": False, "delete": False},
            ],
            count=2,
            deletions=1,
        )
        output = render_result(result)
        assert "1. Delete partition /dev/sda2  [delete]" in output
        assert "2. Mount /dev/sdb1 as root" in output
        assert "2 actions, 1 destructive" in output

    def test_no_actions(self) -> None:
        output = render_result(_ok("storage_actions", items=[], count=0, deletions=0))
        assert "No actions planned" in output

    def test_validation_clean(self) -> None:
        output = render_result(_ok("storage_validation", items=[], count=0))
        assert "No validation issues" in output

    def test_validation_issues(self) -> None:
        result = _ok("storage_validation", items=[{"message": "No root file system"}], count=1)
        assert "issue No root file system" in render_result(result)

    def test_iscsi(self) -> None:
        output = render_result(_ok("iscsi_initiator", name="iqn.2023-01.test:01", ibft=True))
        assert "initiator_name: iqn.2023-01.test:01" in output
        assert "ibft: yes" in output


# ── Progress ──────────────────────────────────────────────────────────


class TestProgressRenderer:
    def test_step_and_message(self) -> None:
        output = render_progress(
            {"message": "Partitioning", "current": 2, "total": 4, "finished": False}
        )
        assert "[2/4]" in output
        assert "Partitioning" in output
        assert "done" not in output

    def test_finished(self) -> None:
        output = render_progress(
            {"message": "Installing", "current": 4, "total": 4, "finished": True}
        )
        assert "done" in output

    def test_zero_total(self) -> None:
        output = render_progress({"message": "Idle", "current": 0, "total": 0})
        assert "[0/0]" in output

    def test_result_without_data(self) -> None:
        assert "No progress reported" in render_result(_ok("watch_progress"))

    def test_verbose_shows_annotations(self) -> None:
        result = ServiceResult(
            ok=True,
            op="watch_progress",
            data={"message": "Probing", "current": 1, "total": 3, "finished": False},
            meta={
                "telemetry": {
                    "name": "ProgressService.watch",
                    "duration_ms": 5000.0,
                    "annotations": {"timed_out": True},
                }
            },
        )
        output = render_result(result, verbose=True)
        assert "ProgressService.watch" in output
        assert "timed_out=True" in output


# ── Quiet mode ────────────────────────────────────────────────────────


class TestQuietRenderer:
    def test_error(self) -> None:
        result = _err("select_product", "UNKNOWN_PRODUCT", "Unknown product: 'SLES'")
        assert render_quiet(result) == "ERROR: select_product - Unknown product: 'SLES'"

    def test_items_by_id(self) -> None:
        result = _ok("list_products", items=[{"id": "MicroOS"}, {"id": "Tumbleweed"}])
        assert render_quiet(result) == "MicroOS\nTumbleweed"

    def test_actions_by_text(self) -> None:
        result = _ok("storage_actions", items=[{"text": "Mount /dev/sdb1 as root"}])
        assert render_quiet(result) == "Mount /dev/sdb1 as root"

    def test_language(self) -> None:
        assert render_quiet(_ok("get_language", language="en_US")) == "en_US"

    def test_fallback(self) -> None:
        assert render_quiet(_ok("progress", message="Probing")) == "OK: progress"
