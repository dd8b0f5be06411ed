"""
surface.py — The small browser capability set the sync engine is written against.

The popup handler, sync workflow and batch runner only ever call the methods on
PlaywrightSurface below; tests swap in an in-memory surface with the same
methods. Element handles are opaque to callers and only passed back in.
"""

import logging

from playwright.async_api import Page, ElementHandle, Dialog
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from chembys_sync import config

logger = logging.getLogger("chembys.surface")


class SurfaceTimeout(Exception):
    """A bounded wait ran out before the element reached the wanted state."""


async def _accept_dialog(dialog: Dialog):
    logger.debug("Accepting %s dialog: %s", dialog.type, dialog.message)
    try:
        await dialog.accept()
    except Exception as e:
        logger.debug("Dialog already handled: %s", e)


class PlaywrightSurface:
    """One Playwright page (tab) exposed through the capability set."""

    def __init__(self, page: Page):
        self.page = page

    # ── Navigation / lifecycle ───────────────────────────────
    async def goto(self, url: str, timeout: int = config.NAVIGATION_TIMEOUT_MS):
        await self.page.goto(url, wait_until="domcontentloaded", timeout=timeout)

    async def open_surface(self) -> "PlaywrightSurface":
        """New tab in the same browser context (shares the login session)."""
        page = await self.page.context.new_page()
        page.set_default_timeout(config.ACTION_TIMEOUT_MS)
        return PlaywrightSurface(page)

    async def close(self):
        await self.page.close()

    def accept_dialogs(self):
        """Auto-accept every alert/confirm/prompt this page raises from now on."""
        self.page.on("dialog", _accept_dialog)

    # ── Lookup ───────────────────────────────────────────────
    async def find(self, selector: str, root: ElementHandle | None = None) -> ElementHandle | None:
        return await (root or self.page).query_selector(selector)

    async def find_all(self, selector: str, root: ElementHandle | None = None) -> list[ElementHandle]:
        return await (root or self.page).query_selector_all(selector)

    async def wait_for(self, selector: str, state: str = "visible", timeout: int = 5000) -> ElementHandle | None:
        """
        Wait for selector to reach state ('visible', 'attached', 'hidden', 'detached').
        Raises SurfaceTimeout if it does not within timeout ms.
        """
        try:
            return await self.page.wait_for_selector(selector, state=state, timeout=timeout)
        except PlaywrightTimeoutError as e:
            raise SurfaceTimeout(f"{selector} not {state} after {timeout}ms") from e

    # ── Element actions ──────────────────────────────────────
    async def click(self, handle: ElementHandle):
        await handle.click()

    async def type_text(self, handle: ElementHandle, text: str, delay: int = 0):
        await handle.type(text, delay=delay)

    async def read_text(self, handle: ElementHandle) -> str:
        return (await handle.inner_text()).strip()

    async def read_value(self, handle: ElementHandle) -> str:
        return (await handle.input_value()).strip()

    async def get_attribute(self, handle: ElementHandle, name: str) -> str | None:
        return await handle.get_attribute(name)

    async def set_checked(self, handle: ElementHandle, checked: bool = True):
        await handle.set_checked(checked)

    # ── Page-level input ─────────────────────────────────────
    async def press_key(self, key: str):
        await self.page.keyboard.press(key)

    async def wait(self, ms: int):
        await self.page.wait_for_timeout(ms)


async def first_present(surface, selectors: list[str], root=None):
    """Try selectors in priority order; return the first handle found, else None."""
    for selector in selectors:
        try:
            handle = await surface.find(selector, root=root)
        except Exception as e:
            logger.debug("Selector %s failed: %s", selector, e)
            continue
        if handle:
            return handle
    return None


async def first_visible(surface, selectors: list[str], timeout: int):
    """Wait for each selector in turn, splitting timeout between them; None if none show up."""
    per_selector = max(timeout // max(len(selectors), 1), 250)
    for selector in selectors:
        try:
            return await surface.wait_for(selector, state="visible", timeout=per_selector)
        except SurfaceTimeout:
            continue
    return None
