"""
sync_workflow.py — "Sync with Courier" on an order's detail page.

Runs in its own tab so the Order List page (and its open row state) is never
navigated away from. Steps:

  0. Override check      — forced carrier that does not cover the pincode → skip
  1. Open tab + navigate — failure → unsynced ("navigation-failed")
  2. Sync trigger        — absent   → unsynced ("no-sync-button"),
                           click fails → unsynced ("sync-button-click-failed")
  3. Carrier dropdown    — override → resolved pincode → pincode in dropdown
                           text → last option
  4. Confirmation toggle — forced on
  5. Settle wait
  6. Extended flow       — submit, wait modal hide, dismiss confirmation,
                           Fetch, (Delhivery: Generate Invoice + wait for
                           invoice no.), Save
  7. Close sync modal
  8. Close tab           — always, on every exit path

Every step after 2 is best-effort: a failure there skips that step only.
"""

import logging
from dataclasses import dataclass

from chembys_sync import config
from chembys_sync import locators as sel
from chembys_sync.resolver import CARRIER_LABELS, DELHIVERY, CarrierResolver, carrier_from_text
from chembys_sync.surface import SurfaceTimeout, first_present, first_visible

logger = logging.getLogger("chembys.sync")


@dataclass
class SyncResult:
    synced: bool
    carrier: str | None = None
    reason: str | None = None


class OrderSyncWorkflow:

    def __init__(
        self,
        surface,
        resolver: CarrierResolver,
        detail_url_template: str = config.ORDER_DETAIL_URL,
        extended_flow_ids: set[str] | None = None,
        carrier_labels: dict[str, str] | None = None,
    ):
        self.surface = surface
        self.resolver = resolver
        self.detail_url_template = detail_url_template
        self.extended_flow_ids = set(config.EXTENDED_FLOW_ORDER_IDS if extended_flow_ids is None else extended_flow_ids)
        self.carrier_labels = carrier_labels or CARRIER_LABELS

    def detail_url(self, order_id: str) -> str:
        return self.detail_url_template.format(order_id=order_id)

    def needs_extended_flow(self, order_id: str) -> bool:
        return not self.extended_flow_ids or order_id in self.extended_flow_ids

    # ═══════════════════════════════════════════════════════════
    # ENTRY POINT
    # ═══════════════════════════════════════════════════════════

    async def sync(self, order_id: str, pincode: str | None = None, wait_ms: int = config.SYNC_SETTLE_MS) -> SyncResult:
        if self.resolver.override and pincode:
            decision = self.resolver.resolve(pincode)
            if decision.override_mismatch:
                logger.info(
                    "Order %s: pincode %s outside %s coverage — not syncing",
                    order_id, pincode, self.resolver.override,
                )
                return SyncResult(False, None, "override-mismatch")

        detail = None
        try:
            # ── Step 1: open detail page in a new tab ────────
            try:
                detail = await self.surface.open_surface()
                detail.accept_dialogs()
                await detail.goto(self.detail_url(order_id))
            except Exception as e:
                logger.warning("Order %s: could not open detail page: %s", order_id, e)
                return SyncResult(False, None, "navigation-failed")

            # ── Step 2: "Sync with Courier" ──────────────────
            try:
                trigger = await first_visible(detail, sel.SYNC_BUTTONS, timeout=config.SYNC_BUTTON_TIMEOUT_MS)
            except Exception as e:
                logger.warning("Order %s: sync button lookup failed: %s", order_id, e)
                trigger = None
            if not trigger:
                logger.warning("Order %s: sync button not found on detail page", order_id)
                return SyncResult(False, None, "no-sync-button")
            try:
                await detail.click(trigger)
            except Exception as e:
                logger.warning("Order %s: could not open sync modal: %s", order_id, e)
                return SyncResult(False, None, "sync-button-click-failed")

            # ── Step 3: carrier dropdown ─────────────────────
            carrier = await self._choose_carrier(detail, order_id, pincode)

            # ── Step 4: confirmation toggle ──────────────────
            await self._best_effort(order_id, "confirmation toggle", self._force_confirmation(detail))

            # ── Step 5: let the modal react ──────────────────
            await self._best_effort(order_id, "settle wait", detail.wait(wait_ms))

            # ── Step 6: submit / fetch / save ────────────────
            if self.needs_extended_flow(order_id):
                await self._extended_flow(detail, order_id, carrier)

            # ── Step 7: close the sync modal ─────────────────
            await self._best_effort(order_id, "close sync modal", self._close_sync_modal(detail))

            logger.info("Order %s: synced with carrier %s", order_id, carrier or "N/A")
            return SyncResult(True, carrier)

        finally:
            # ── Step 8: always release the tab ───────────────
            if detail is not None:
                try:
                    await detail.close()
                except Exception as e:
                    logger.debug("Order %s: closing detail tab failed: %s", order_id, e)

    # ═══════════════════════════════════════════════════════════
    # CARRIER SELECTION
    # ═══════════════════════════════════════════════════════════

    async def _choose_carrier(self, detail, order_id: str, pincode: str | None) -> str | None:
        """Open the carrier dropdown and pick an option; returns the carrier picked, if any."""
        try:
            control = await detail.wait_for(sel.CARRIER_SELECT, state="visible", timeout=config.CARRIER_SELECT_TIMEOUT_MS)
        except SurfaceTimeout:
            logger.info("Order %s: no carrier dropdown in sync modal", order_id)
            return None
        except Exception as e:
            logger.warning("Order %s: carrier dropdown unavailable: %s", order_id, e)
            return None
        if not control:
            return None

        try:
            await detail.click(control)
            await detail.wait(300)
        except Exception as e:
            logger.debug("Order %s: could not open carrier dropdown: %s", order_id, e)

        strategies = [
            ("override", self._select_by_override),
            ("pincode", self._select_by_pincode),
            ("dropdown text", self._select_by_control_text),
            ("last option", self._select_last_option),
        ]
        for name, strategy in strategies:
            try:
                carrier = await strategy(detail, control, pincode)
            except Exception as e:
                logger.debug("Order %s: carrier strategy '%s' failed: %s", order_id, name, e)
                continue
            if carrier:
                logger.info("Order %s: selected %s (via %s)", order_id, carrier, name)
                return carrier

        logger.warning("Order %s: could not select any carrier", order_id)
        return None

    async def _select_by_override(self, detail, control, pincode):
        if not self.resolver.override or not pincode:
            return None
        decision = self.resolver.resolve(pincode)
        if decision.carrier != self.resolver.override:
            return None
        return await self._click_option_for(detail, decision.carrier)

    async def _select_by_pincode(self, detail, control, pincode):
        if self.resolver.override or not pincode:
            return None
        decision = self.resolver.resolve(pincode)
        if not decision.is_known:
            return None
        return await self._click_option_for(detail, decision.carrier)

    async def _select_by_control_text(self, detail, control, pincode):
        text = await detail.read_text(control)
        decision = self.resolver.resolve(None, context_text=text)
        if not decision.is_known:
            return None
        return await self._click_option_for(detail, decision.carrier)

    async def _select_last_option(self, detail, control, pincode):
        # Never fall back to an arbitrary courier when the run is pinned to one
        if self.resolver.override:
            return None
        options = await detail.find_all(sel.CARRIER_OPTIONS)
        if not options:
            return None
        last = options[-1]
        label = await detail.read_text(last)
        await detail.click(last)
        carrier = carrier_from_text(label, self.carrier_labels)
        logger.info("Fell back to last carrier option '%s' (%s)", label, carrier or "unrecognised")
        return carrier

    async def _click_option_for(self, detail, carrier: str) -> str | None:
        for option in await detail.find_all(sel.CARRIER_OPTIONS):
            label = await detail.read_text(option)
            if carrier_from_text(label, self.carrier_labels) == carrier:
                await detail.click(option)
                return carrier
        return None

    # ═══════════════════════════════════════════════════════════
    # CONFIRM / SUBMIT / FETCH / SAVE
    # ═══════════════════════════════════════════════════════════

    async def _force_confirmation(self, detail):
        toggle = await detail.find(sel.CONFIRM_TOGGLE)
        if toggle:
            await detail.set_checked(toggle, True)

    async def _extended_flow(self, detail, order_id: str, carrier: str | None):
        await self._best_effort(order_id, "submit sync", self._click_if_present(detail, sel.SYNC_SUBMIT))
        await self._best_effort(order_id, "wait for modal to close", self._wait_modal_hidden(detail))
        await self._best_effort(order_id, "dismiss confirmation", self._dismiss_confirmation(detail))
        await self._best_effort(order_id, "fetch", self._click_if_present(detail, sel.FETCH_BUTTON, settle_ms=1000))
        if carrier == DELHIVERY:
            await self._best_effort(order_id, "generate invoice", self._generate_invoice(detail, order_id))
        await self._best_effort(order_id, "save", self._click_if_present(detail, sel.SAVE_BUTTON, settle_ms=1000))

    async def _best_effort(self, order_id: str, step: str, coro):
        try:
            return await coro
        except Exception as e:
            logger.warning("Order %s: step '%s' skipped: %s", order_id, step, e)
            return None

    async def _click_if_present(self, detail, selector: str, settle_ms: int = 300) -> bool:
        button = await detail.find(selector)
        if not button:
            logger.debug("%s not present", selector)
            return False
        await detail.click(button)
        await detail.wait(settle_ms)
        return True

    async def _wait_modal_hidden(self, detail):
        try:
            await detail.wait_for(sel.SYNC_MODAL, state="hidden", timeout=config.MODAL_HIDE_TIMEOUT_MS)
        except SurfaceTimeout:
            await detail.wait(config.MODAL_HIDE_FALLBACK_MS)

    async def _dismiss_confirmation(self, detail):
        button = await first_present(detail, sel.CONFIRMATION_OK)
        if button:
            await detail.click(button)
            await detail.wait(300)

    async def _generate_invoice(self, detail, order_id: str) -> str | None:
        """Delhivery needs an invoice number before Save; poll until the field fills in."""
        if not await self._click_if_present(detail, sel.GENERATE_INVOICE_BUTTON):
            logger.info("Order %s: no Generate Invoice button", order_id)
            return None

        polls = max(config.INVOICE_TIMEOUT_MS // config.INVOICE_POLL_MS, 1)
        for attempt in range(polls + 1):
            field = await detail.find(sel.INVOICE_NUMBER_FIELD)
            if field:
                invoice_no = await detail.read_value(field)
                if invoice_no:
                    logger.info("Order %s: invoice number %s", order_id, invoice_no)
                    return invoice_no
            if attempt < polls:
                await detail.wait(config.INVOICE_POLL_MS)

        logger.warning(
            "Order %s: invoice number still empty after %dms — saving anyway",
            order_id, config.INVOICE_TIMEOUT_MS,
        )
        return None

    async def _close_sync_modal(self, detail):
        try:
            await detail.wait_for(sel.SYNC_MODAL, state="visible", timeout=500)
        except SurfaceTimeout:
            return
        try:
            close_btn = await detail.find(sel.SYNC_MODAL_CLOSE)
            if close_btn:
                await detail.click(close_btn)
                return
        except Exception as e:
            logger.debug("Sync modal close button failed: %s", e)
        try:
            await detail.press_key("Escape")
        except Exception as e:
            logger.debug("Escape on sync modal failed: %s", e)
