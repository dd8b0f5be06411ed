"""
address_popup.py — Read the shipping address popup on the Order List page.

Flow per row (after the row's address button has been clicked):
  1. Wait briefly for #addressShowBody — a missing popup is normal, not an error.
  2. Read its text; anything under POPUP_MIN_TEXT_LENGTH chars is a placeholder
     or error state, so it is closed without looking for a pincode.
  3. Extract pincode candidates; the first one is the order's pincode.
  4. Close the popup (footer button, else Escape). Close failures never propagate.
"""

import re
import logging
from dataclasses import dataclass, field

from chembys_sync import config
from chembys_sync import locators as sel
from chembys_sync.pincode import extract_pincodes, extract_pincodes_by_line
from chembys_sync.surface import SurfaceTimeout

logger = logging.getLogger("chembys.address_popup")

_ALNUM = re.compile(r"[A-Za-z0-9]")


@dataclass
class PopupResult:
    found_address: bool
    pincode: str | None = None
    pincodes: list[str] = field(default_factory=list)
    raw_text: str | None = None


class AddressPopupHandler:

    def __init__(
        self,
        surface,
        timeout_ms: int = config.POPUP_TIMEOUT_MS,
        min_text_length: int = config.POPUP_MIN_TEXT_LENGTH,
    ):
        self.surface = surface
        self.timeout_ms = timeout_ms
        self.min_text_length = min_text_length

    async def handle(self, row_index: int | None = None, order_id: str | None = None) -> PopupResult:
        label = f"row {row_index if row_index is not None else '?'} (orderId={order_id or 'N/A'})"

        try:
            body = await self.surface.wait_for(sel.ADDRESS_POPUP_BODY, state="visible", timeout=self.timeout_ms)
        except SurfaceTimeout:
            logger.debug("No address popup for %s", label)
            return PopupResult(found_address=False)
        if not body:
            return PopupResult(found_address=False)

        raw_text = await self.surface.read_text(body)
        has_address_char = bool(_ALNUM.search(raw_text))

        if len(raw_text) < self.min_text_length:
            logger.info("Skipping %s - address text too short (%d chars)", label, len(raw_text))
            await self.close()
            return PopupResult(found_address=False, raw_text=raw_text)

        pincodes = extract_pincodes(raw_text)
        pincode = pincodes[0] if pincodes else None
        logger.info("Extracted pincode from address popup: %s (%s)", pincode, label)

        per_line = extract_pincodes_by_line(raw_text)
        if len(per_line) > 1:
            for line_no, code in per_line:
                logger.info("  line %d: Pincode %s", line_no, code)

        await self.close()

        return PopupResult(
            found_address=has_address_char,
            pincode=pincode,
            pincodes=pincodes,
            raw_text=raw_text,
        )

    async def close(self):
        """Footer close button first, Escape as fallback. Never raises."""
        try:
            close_btn = await self.surface.find(sel.ADDRESS_POPUP_CLOSE)
            if close_btn:
                await self.surface.click(close_btn)
                await self.surface.wait(150)
                return
        except Exception as e:
            logger.debug("Popup close button failed: %s", e)

        try:
            await self.surface.press_key("Escape")
            await self.surface.wait(100)
        except Exception as e:
            logger.debug("Escape did not close popup: %s", e)
