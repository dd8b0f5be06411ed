from pathlib import Path

import openpyxl
import pytest

from chembys_sync.carrier_lookup import CarrierLookupCache, read_first_column


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class CountingReader:
    def __init__(self, data: dict[str, set[str]]):
        self.data = data
        self.calls = 0

    def __call__(self, path):
        self.calls += 1
        return self.data.get(str(path), set())


def _write_workbook(path: Path, rows, second_sheet=None):
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(row)
    if second_sheet:
        other = wb.create_sheet("Other")
        for row in second_sheet:
            other.append(row)
    wb.save(path)
    return path


def _cache(reader, clock):
    return CarrierLookupCache(
        {"DTDC": Path("dtdc.xlsx"), "Delhivery": Path("delhivery.xlsx")},
        reader=reader,
        clock=clock,
        reload_interval=60,
    )


def test_read_first_column_collects_trimmed_values(tmp_path):
    path = _write_workbook(
        tmp_path / "dtdc.xlsx",
        [
            [686001, "Kochi"],
            [" 690001 ", "Kollam"],
            [None, "blank"],
            [695004.0],
        ],
        second_sheet=[[111111]],
    )
    assert read_first_column(path) == {"686001", "690001", "695004"}


def test_read_first_column_missing_file_is_empty(tmp_path):
    assert read_first_column(tmp_path / "missing.xlsx") == set()


def test_read_first_column_bad_file_is_empty(tmp_path):
    path = tmp_path / "broken.xlsx"
    path.write_text("not a workbook", encoding="utf-8")
    assert read_first_column(path) == set()


def test_ensure_loaded_twice_reads_once():
    reader = CountingReader({"dtdc.xlsx": {"686001"}, "delhivery.xlsx": {"110001"}})
    clock = FakeClock()
    cache = _cache(reader, clock)

    cache.ensure_loaded()
    clock.now += 30
    cache.ensure_loaded()

    # one read per source, for a single load
    assert reader.calls == 2
    assert cache.get("DTDC") == {"686001"}


def test_reload_after_interval():
    reader = CountingReader({"dtdc.xlsx": {"686001"}})
    clock = FakeClock()
    cache = _cache(reader, clock)
    cache.ensure_loaded()

    reader.data["dtdc.xlsx"] = {"686001", "682001"}
    clock.now += 61
    assert cache.get("DTDC") == {"686001", "682001"}
    assert reader.calls == 4


def test_get_within_interval_serves_cached_sets():
    reader = CountingReader({"dtdc.xlsx": {"686001"}})
    clock = FakeClock()
    cache = _cache(reader, clock)

    for _ in range(5):
        cache.get("DTDC")
        cache.get("Delhivery")
    assert reader.calls == 2


def test_invalidate_forces_reload():
    reader = CountingReader({})
    clock = FakeClock()
    cache = _cache(reader, clock)
    cache.ensure_loaded()
    cache.invalidate()
    cache.ensure_loaded()
    assert reader.calls == 4


def test_reader_failure_gives_empty_set_not_absence():
    def reader(path):
        if "delhivery" in str(path):
            raise OSError("disk gone")
        return {"686001"}

    cache = _cache(reader, FakeClock())
    assert cache.get("Delhivery") == frozenset()
    assert cache.get("DTDC") == {"686001"}
    assert set(cache.snapshot()) == {"DTDC", "Delhivery"}


def test_real_workbooks_end_to_end(tmp_path):
    dtdc = _write_workbook(tmp_path / "dtdc.xlsx", [[686001], [686002]])
    cache = CarrierLookupCache(
        {"DTDC": dtdc, "Delhivery": tmp_path / "absent.xlsx"},
        clock=FakeClock(),
    )
    assert cache.get("DTDC") == {"686001", "686002"}
    assert cache.get("Delhivery") == frozenset()


def test_snapshot_cannot_mutate_cache():
    cache = _cache(CountingReader({"dtdc.xlsx": {"686001"}}), FakeClock())
    view = cache.snapshot()
    with pytest.raises(TypeError):
        view["DTDC"] = frozenset({"999999"})
    assert cache.get("DTDC") == {"686001"}
