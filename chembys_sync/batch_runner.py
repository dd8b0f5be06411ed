"""
batch_runner.py — Walk the Order List table and sync each order with its courier.

Per row:
  1. Stop once PROCESS_COUNT rows have been processed
  2. Work out the order id (button attributes → button label → row attribute → cells)
  3. Apply ONLY_ORDER_IDS / SKIP_ORDER_IDS
  4. Click the row's address button and read the popup
  5. Resolve carrier; override mismatch → skipped, else run the sync workflow
  6. Record the order under the carrier the workflow picked (or the resolved one)

A failure inside a row is logged and the loop moves on; one bad order never
stops the batch.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from chembys_sync import config
from chembys_sync import locators as sel
from chembys_sync.address_popup import AddressPopupHandler
from chembys_sync.resolver import CarrierResolver
from chembys_sync.run_summary import RunAccumulator, RunSummary, log_summary, write_summary
from chembys_sync.sync_workflow import OrderSyncWorkflow

logger = logging.getLogger("chembys.batch")


@dataclass
class OrderRow:
    index: int  # 1-based, for logs
    element: Any
    order_id: str | None = None


class BatchRunner:

    def __init__(
        self,
        surface,
        popup_handler: AddressPopupHandler,
        workflow: OrderSyncWorkflow,
        resolver: CarrierResolver,
        only_ids: set[str] | None = None,
        skip_ids: set[str] | None = None,
        max_rows: int | None = None,
        summary_dir: Path | None = None,
    ):
        self.surface = surface
        self.popup_handler = popup_handler
        self.workflow = workflow
        self.resolver = resolver
        self.only_ids = set(config.ONLY_ORDER_IDS if only_ids is None else only_ids)
        self.skip_ids = set(config.SKIP_ORDER_IDS if skip_ids is None else skip_ids)
        self.max_rows = config.PROCESS_COUNT if max_rows is None else max_rows
        self.summary_dir = summary_dir
        self.id_strategies = [
            self._id_from_button_attributes,
            self._id_from_button_label,
            self._id_from_row_attribute,
            self._id_from_order_cell,
            self._id_from_first_cell,
        ]

    # ═══════════════════════════════════════════════════════════
    # RUN
    # ═══════════════════════════════════════════════════════════

    async def run(self, rows: list[OrderRow] | None = None) -> RunSummary:
        if rows is None:
            rows = await self.discover_rows()
        logger.info("═══ Processing %d order rows ═══", len(rows))
        if self.max_rows:
            logger.info("PROCESS_COUNT limit: %d", self.max_rows)

        accumulator = RunAccumulator()
        processed = 0

        for row in rows:
            if self.max_rows and processed >= self.max_rows:
                logger.info("PROCESS_COUNT limit reached (%d) — stopping batch", self.max_rows)
                break

            try:
                if row.order_id is None:
                    row.order_id = await self.order_id_for(row)

                if not self._passes_filters(row):
                    continue

                processed += 1
                await self.process_row(row, accumulator)
            except Exception as e:
                logger.warning(
                    "row %d (orderId=%s): error processing order - %s",
                    row.index, row.order_id or "N/A", e,
                )

            try:
                await self.surface.wait(config.ROW_PAUSE_MS)
            except Exception as e:
                logger.debug("Row pause failed: %s", e)

        summary = accumulator.freeze()
        log_summary(summary)
        if self.summary_dir is not None:
            write_summary(summary, self.summary_dir)
        return summary

    async def discover_rows(self) -> list[OrderRow]:
        await self.surface.wait_for(sel.ORDER_ROWS, state="visible", timeout=config.TABLE_TIMEOUT_MS)
        elements = await self.surface.find_all(sel.ORDER_ROWS)
        return [OrderRow(index=i, element=el) for i, el in enumerate(elements, start=1)]

    def _passes_filters(self, row: OrderRow) -> bool:
        if self.only_ids and row.order_id not in self.only_ids:
            logger.debug("row %d (orderId=%s) not in ONLY_ORDER_IDS — skipped", row.index, row.order_id)
            return False
        if row.order_id in self.skip_ids:
            logger.info("row %d (orderId=%s) in SKIP_ORDER_IDS — skipped", row.index, row.order_id)
            return False
        return True

    # ═══════════════════════════════════════════════════════════
    # ONE ROW
    # ═══════════════════════════════════════════════════════════

    async def process_row(self, row: OrderRow, accumulator: RunAccumulator):
        button = await self.surface.find(sel.ADDRESS_BUTTON, root=row.element)
        if not button:
            button = await self.surface.find(sel.ADDRESS_BUTTON_FALLBACK, root=row.element)
        if not button:
            logger.debug("row %d: no address button — nothing to click", row.index)
            return

        await self.surface.click(button)
        await self.surface.wait(config.POPUP_APPEAR_DELAY_MS)

        popup = await self.popup_handler.handle(row.index, row.order_id)
        if not popup.pincode or not row.order_id:
            return

        decision = self.resolver.resolve(popup.pincode)
        if decision.override_mismatch:
            accumulator.skip(row.order_id, popup.pincode, "override-mismatch")
            logger.info(
                "row %d (orderId=%s): pincode %s not covered by forced carrier %s — skipped",
                row.index, row.order_id, popup.pincode, self.resolver.override,
            )
            return

        result = await self.workflow.sync(row.order_id, popup.pincode)
        if not result.synced:
            logger.warning(
                "row %d (orderId=%s): not synced (%s)", row.index, row.order_id, result.reason or "unknown",
            )

        carrier = result.carrier or decision.carrier
        record = accumulator.add(row.order_id, popup.pincode, carrier)
        logger.info(
            "row %d: Order %s, Pincode %s → %s", row.index, record.order_id, record.pincode, record.carrier,
        )

    # ═══════════════════════════════════════════════════════════
    # ORDER ID
    # ═══════════════════════════════════════════════════════════

    async def order_id_for(self, row: OrderRow) -> str | None:
        """First non-empty answer from the id strategies, in priority order."""
        for strategy in self.id_strategies:
            try:
                value = await strategy(row.element)
            except Exception as e:
                logger.debug("row %d: %s failed: %s", row.index, strategy.__name__, e)
                continue
            if value and value.strip():
                return value.strip()
        return None

    async def _id_from_button_attributes(self, element) -> str | None:
        button = await self.surface.find(sel.ADDRESS_BUTTON_FOR_ID, root=element)
        if not button:
            return None
        for attr in sel.ORDER_ID_ATTRIBUTES:
            try:
                value = await self.surface.get_attribute(button, attr)
            except Exception:
                continue
            if value and value.strip():
                return value
        return None

    async def _id_from_button_label(self, element) -> str | None:
        button = await self.surface.find(sel.ADDRESS_BUTTON_FOR_ID, root=element)
        return await self.surface.read_text(button) if button else None

    async def _id_from_row_attribute(self, element) -> str | None:
        return await self.surface.get_attribute(element, sel.ROW_ORDER_ID_ATTRIBUTE)

    async def _id_from_order_cell(self, element) -> str | None:
        cell = await self.surface.find(sel.ORDER_ID_CELL, root=element)
        return await self.surface.read_text(cell) if cell else None

    async def _id_from_first_cell(self, element) -> str | None:
        cell = await self.surface.find(sel.FIRST_CELL, root=element)
        return await self.surface.read_text(cell) if cell else None
