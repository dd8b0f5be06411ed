"""
login.py — Chembys admin login and navigation to Orders → Order List.

Flow:
  1. Open {BASE_URL}/login and wait for the network to go idle.
  2. Type username / password (first visible field from locators lists,
     typed with a human-like delay).
  3. Submit (submit button, else Enter in the password field).
  4. Expand "Orders" in the sidebar and open "Order List".
"""

import logging

from playwright.async_api import Page

from chembys_sync import config
from chembys_sync import locators as sel

logger = logging.getLogger("chembys.login")


async def _find_visible(page: Page, selectors: list[str]) -> str | None:
    """Return the first selector that matches a visible element, else None."""
    for selector in selectors:
        element = await page.query_selector(selector)
        if element:
            try:
                if await element.is_visible():
                    return selector
            except Exception:
                continue
    return None


async def _fill(page: Page, selectors: list[str], value: str, what: str):
    selector = await _find_visible(page, selectors)
    if not selector:
        raise RuntimeError(f"{what} field not found on login page")
    await page.click(selector)
    await page.type(selector, value, delay=config.TYPING_DELAY_MS)
    logger.info("%s filled (%s)", what, selector)


async def login(page: Page, username: str | None = None, password: str | None = None) -> bool:
    """
    Log in to the admin panel. Raises RuntimeError if the form cannot be
    filled or the login page is still showing afterwards.
    """
    username = username or config.CHEMBYS_USERNAME
    password = password or config.CHEMBYS_PASSWORD
    if not username or not password:
        raise RuntimeError("CHEMBYS_USERNAME / CHEMBYS_PASSWORD not set in .env")

    logger.info("═══ Logging in to %s ═══", config.BASE_URL)

    # Step 1: login page
    await page.goto(config.LOGIN_URL, wait_until="domcontentloaded", timeout=config.NAVIGATION_TIMEOUT_MS)
    try:
        await page.wait_for_load_state("networkidle")
    except Exception as e:
        logger.debug("networkidle wait timed out on login page: %s", e)

    # Step 2: credentials
    await _fill(page, sel.USERNAME_INPUTS, username, "Username")
    await _fill(page, sel.PASSWORD_INPUTS, password, "Password")

    # Step 3: submit
    submit = await _find_visible(page, sel.SUBMIT_BUTTONS)
    if submit:
        await page.click(submit)
    else:
        password_field = await _find_visible(page, sel.PASSWORD_INPUTS)
        if password_field:
            await page.press(password_field, "Enter")
    try:
        await page.wait_for_load_state("networkidle")
    except Exception as e:
        logger.debug("networkidle wait timed out after submit: %s", e)

    if page.url.rstrip("/").endswith("/login"):
        logger.error("⛔ LOGIN FAILED — still on login page")
        raise RuntimeError("Login failed — check CHEMBYS_USERNAME / CHEMBYS_PASSWORD")

    logger.info("✓ Login successful — current URL: %s", page.url)
    return True


async def open_order_list(page: Page):
    """Open the Order List via the sidebar; fall back to the direct URL."""
    logger.info("Navigating to Orders → Order List...")

    try:
        await page.wait_for_selector(sel.SIDEBAR_MENU, state="visible", timeout=config.TABLE_TIMEOUT_MS)

        orders_menu = await page.query_selector(sel.ORDERS_MENU)
        if orders_menu:
            try:
                await orders_menu.click()
            except Exception as e:
                logger.debug("Could not expand Orders menu: %s", e)

        await page.wait_for_selector(sel.ORDER_LIST_LINK, state="visible", timeout=config.TABLE_TIMEOUT_MS)
        await page.click(sel.ORDER_LIST_LINK)
        logger.info("Clicked 'Order List' in sidebar")
    except Exception as e:
        logger.warning("Sidebar navigation failed (%s) — using direct URL", e)
        await page.goto(config.ORDER_LIST_URL, wait_until="domcontentloaded", timeout=config.NAVIGATION_TIMEOUT_MS)

    try:
        await page.wait_for_load_state("networkidle")
    except Exception as e:
        logger.debug("networkidle wait timed out on order list: %s", e)
