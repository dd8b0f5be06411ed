from datetime import datetime

from chembys_sync.resolver import DELHIVERY, DTDC, UNKNOWN
from chembys_sync.run_summary import RunAccumulator, RunSummary, write_summary


def _summary():
    acc = RunAccumulator(started_at=datetime(2026, 3, 14, 9, 30, 0))
    acc.add("101", "686001", DTDC)
    acc.add("103", "690001", UNKNOWN)
    acc.add("104", "682001", DTDC)
    acc.skip("105", "686002", "override-mismatch")
    return acc.freeze()


def test_accumulator_groups_by_carrier_in_order():
    summary = _summary()
    assert summary.order_ids(DTDC) == ["101", "104"]
    assert summary.order_ids(DELHIVERY) == []
    assert summary.order_ids(UNKNOWN) == ["103"]
    assert summary.counts == {DTDC: 2, DELHIVERY: 0, UNKNOWN: 1}
    assert summary.total == 3


def test_unrecognised_carrier_lands_in_unknown():
    acc = RunAccumulator()
    record = acc.add("201", "560001", "BlueDart")
    assert record.carrier == UNKNOWN
    assert acc.freeze().order_ids(UNKNOWN) == ["201"]


def test_frozen_summary_is_detached_from_accumulator():
    acc = RunAccumulator()
    acc.add("101", "686001", DTDC)
    summary = acc.freeze()
    acc.add("102", "686001", DTDC)
    assert summary.order_ids(DTDC) == ["101"]
    assert isinstance(summary.processed[DTDC], tuple)


def test_render_lists_every_carrier_section():
    text = _summary().render()
    lines = text.splitlines()

    assert lines[1] == "Total: 3"
    assert "DTDC (2):" in lines
    assert "  1. Order: 101, Pincode: 686001" in lines
    assert "  2. Order: 104, Pincode: 682001" in lines
    delhivery_at = lines.index("Delhivery (0):")
    assert lines[delhivery_at + 1] == "  (none)"
    assert "Unknown (1):" in lines
    assert "Skipped (1):" in lines
    assert "override-mismatch" in text


def test_render_without_skips_has_no_skipped_section():
    acc = RunAccumulator()
    acc.add("101", "686001", DTDC)
    assert "Skipped" not in acc.freeze().render()


def test_write_summary_creates_timestamped_file(tmp_path):
    summary = _summary()
    target = write_summary(summary, tmp_path / "summaries")

    assert target is not None
    assert target.name == f"processed-orders-{summary.finished_at:%Y-%m-%dT%H-%M-%S}.txt"
    assert target.read_text(encoding="utf-8") == summary.render()
    assert list(target.parent.glob("*.tmp")) == []


def test_write_summary_failure_returns_none(tmp_path):
    blocker = tmp_path / "summaries"
    blocker.write_text("not a directory", encoding="utf-8")

    assert write_summary(_summary(), blocker) is None


def test_empty_run_renders_zero_total():
    summary = RunSummary(
        started_at=datetime(2026, 1, 1),
        finished_at=datetime(2026, 1, 1),
        processed={},
    )
    assert summary.total == 0
    assert summary.render().count("  (none)") == 3
