import asyncio

from chembys_sync import locators as sel
from chembys_sync.address_popup import AddressPopupHandler
from chembys_sync.batch_runner import BatchRunner, OrderRow
from chembys_sync.resolver import DELHIVERY, DTDC, UNKNOWN, CarrierResolver
from chembys_sync.sync_workflow import OrderSyncWorkflow, SyncResult
from fakes import FakeElement, FakeSurface, StaticLookup, address_text, detail_page, order_list_page

LOOKUP = StaticLookup({
    DTDC: {"686001"},
    DELHIVERY: {"110001"},
})


def run(coro):
    return asyncio.run(coro)


class RecordingWorkflow:
    """Stands in for OrderSyncWorkflow; records calls and returns canned results."""

    def __init__(self, results=None, error_for=None):
        self.calls = []
        self.results = results or {}
        self.error_for = error_for or set()

    async def sync(self, order_id, pincode=None, wait_ms=2500):
        self.calls.append((order_id, pincode))
        if order_id in self.error_for:
            raise RuntimeError("Target page, context or browser has been closed")
        return self.results.get(order_id, SyncResult(False, None, "no-sync-button"))


def _runner(page, workflow=None, override=None, **kwargs):
    resolver = CarrierResolver(LOOKUP, override=override)
    kwargs.setdefault("only_ids", set())
    kwargs.setdefault("skip_ids", set())
    kwargs.setdefault("max_rows", 0)
    return BatchRunner(
        page,
        AddressPopupHandler(page),
        workflow or RecordingWorkflow(),
        resolver,
        **kwargs,
    )


def _buttons_clicked(page):
    return [el.text for el in page.clicked if el.attrs.get("data-order-id")]


def test_three_row_scenario():
    page = order_list_page({
        "101": address_text("686001", 200),
        "102": None,
        "103": address_text("690001", 180),
    })
    workflow = RecordingWorkflow()

    summary = run(_runner(page, workflow).run())

    assert summary.order_ids(DTDC) == ["101"]
    assert summary.order_ids(UNKNOWN) == ["103"]
    assert summary.order_ids(DELHIVERY) == []
    assert summary.total == 2
    assert workflow.calls == [("101", "686001"), ("103", "690001")]


def test_process_count_cap_stops_after_first_row():
    page = order_list_page({
        "101": address_text("686001", 200),
        "102": address_text("686001", 200),
        "103": address_text("686001", 200),
    })
    workflow = RecordingWorkflow()

    summary = run(_runner(page, workflow, max_rows=1).run())

    assert _buttons_clicked(page) == ["101"]
    assert workflow.calls == [("101", "686001")]
    assert summary.order_ids(DTDC) == ["101"]


def test_excluded_row_is_never_clicked():
    page = order_list_page({
        "101": address_text("686001", 200),
        "102": address_text("686001", 200),
        "103": address_text("110001", 200),
    })
    workflow = RecordingWorkflow()

    summary = run(_runner(page, workflow, skip_ids={"102"}, max_rows=2).run())

    assert _buttons_clicked(page) == ["101", "103"]
    assert "102" not in summary.order_ids(DTDC) + summary.order_ids(DELHIVERY) + summary.order_ids(UNKNOWN)
    assert summary.order_ids(DELHIVERY) == ["103"]


def test_inclusion_set_limits_rows():
    page = order_list_page({
        "101": address_text("686001", 200),
        "102": address_text("110001", 200),
    })
    summary = run(_runner(page, only_ids={"102"}).run())
    assert _buttons_clicked(page) == ["102"]
    assert summary.order_ids(DELHIVERY) == ["102"]


def test_workflow_carrier_preferred_over_resolution():
    page = order_list_page({"101": address_text("690001", 200)})
    workflow = RecordingWorkflow({"101": SyncResult(True, DELHIVERY)})

    summary = run(_runner(page, workflow).run())

    assert summary.order_ids(DELHIVERY) == ["101"]


def test_row_failure_does_not_abort_batch():
    page = order_list_page({
        "101": address_text("686001", 200),
        "102": address_text("686001", 200),
    })
    workflow = RecordingWorkflow(error_for={"101"})

    summary = run(_runner(page, workflow).run())

    assert summary.order_ids(DTDC) == ["102"]
    assert [call[0] for call in workflow.calls] == ["101", "102"]


def test_override_mismatch_is_skipped_not_synced():
    page = order_list_page({
        "101": address_text("686001", 200),
        "102": address_text("110001", 200),
    })
    workflow = RecordingWorkflow({"102": SyncResult(True, DELHIVERY)})

    summary = run(_runner(page, workflow, override="Delhivery").run())

    assert workflow.calls == [("102", "110001")]
    assert [record.order_id for record in summary.skipped] == ["101"]
    assert summary.skipped[0].reason == "override-mismatch"
    assert summary.order_ids(UNKNOWN) == []
    assert summary.order_ids(DELHIVERY) == ["102"]


def test_row_without_address_button_is_skipped():
    page = order_list_page({"101": address_text("686001", 200)})
    page.elements[sel.ORDER_ROWS].insert(0, FakeElement(children={sel.FIRST_CELL: FakeElement("100")}))
    workflow = RecordingWorkflow()

    summary = run(_runner(page, workflow).run())

    assert workflow.calls == [("101", "686001")]
    assert summary.order_ids(DTDC) == ["101"]


def test_fallback_address_button_is_used():
    button = FakeElement("Address", attrs={"data-id": "201"})
    page = FakeSurface()
    page.elements[sel.ADDRESS_POPUP_CLOSE] = FakeElement("Close")

    def open_popup(surface):
        surface.elements[sel.ADDRESS_POPUP_BODY] = FakeElement(address_text("686001", 200))

    button.on_click = open_popup
    row = FakeElement(
        attrs={"data-order-id": "201"},
        children={sel.ADDRESS_BUTTON_FALLBACK: button},
    )
    page.elements[sel.ORDER_ROWS] = [row]

    summary = run(_runner(page).run())

    assert button.clicks == 1
    assert summary.order_ids(DTDC) == ["201"]


def test_order_id_strategy_priority():
    page = FakeSurface()
    runner = _runner(page)
    button = FakeElement("  Label-7 ", attrs={"title": "T-5"})

    with_attr = FakeElement(attrs={"data-order-id": "row-9"}, children={sel.ADDRESS_BUTTON_FOR_ID: button})
    assert run(runner.order_id_for(OrderRow(1, with_attr))) == "T-5"

    button.attrs.clear()
    assert run(runner.order_id_for(OrderRow(1, with_attr))) == "Label-7"

    row_attr_only = FakeElement(attrs={"data-order-id": "row-9"})
    assert run(runner.order_id_for(OrderRow(1, row_attr_only))) == "row-9"

    cells = FakeElement(children={sel.ORDER_ID_CELL: FakeElement("ORD-3"), sel.FIRST_CELL: FakeElement("1")})
    assert run(runner.order_id_for(OrderRow(1, cells))) == "ORD-3"

    first_only = FakeElement(children={sel.FIRST_CELL: FakeElement(" 42 ")})
    assert run(runner.order_id_for(OrderRow(1, first_only))) == "42"

    assert run(runner.order_id_for(OrderRow(1, FakeElement()))) is None


def test_summary_written_to_directory(tmp_path):
    page = order_list_page({"101": address_text("686001", 200)})
    run(_runner(page, summary_dir=tmp_path).run())

    files = list(tmp_path.glob("processed-orders-*.txt"))
    assert len(files) == 1
    assert "Order: 101, Pincode: 686001" in files[0].read_text(encoding="utf-8")


def test_end_to_end_with_real_workflow():
    page = order_list_page({
        "101": address_text("686001", 200),
        "102": address_text("110001", 200),
    })
    page.child_factory = detail_page
    resolver = CarrierResolver(LOOKUP)
    runner = BatchRunner(
        page,
        AddressPopupHandler(page),
        OrderSyncWorkflow(page, resolver, detail_url_template="https://chembys.test/o/{order_id}"),
        resolver,
        only_ids=set(),
        skip_ids=set(),
        max_rows=0,
    )

    summary = run(runner.run())

    assert summary.order_ids(DTDC) == ["101"]
    assert summary.order_ids(DELHIVERY) == ["102"]
    assert len(page.opened) == 2
    assert all(tab.closed for tab in page.opened)


def test_sync_step_failure_still_records_order():
    page = order_list_page({
        "101": address_text("686001", 200),
        "102": address_text("110001", 200),
    })

    def broken_detail():
        detail = detail_page()
        detail.elements[sel.SYNC_BUTTONS[0]].click_error = RuntimeError("element detached")
        return detail

    page.child_factory = broken_detail
    resolver = CarrierResolver(LOOKUP)
    runner = BatchRunner(
        page,
        AddressPopupHandler(page),
        OrderSyncWorkflow(page, resolver, detail_url_template="https://chembys.test/o/{order_id}"),
        resolver,
        only_ids=set(),
        skip_ids=set(),
        max_rows=0,
    )

    summary = run(runner.run())

    assert summary.order_ids(DTDC) == ["101"]
    assert summary.order_ids(DELHIVERY) == ["102"]
    assert all(tab.closed for tab in page.opened)
