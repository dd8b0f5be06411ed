"""
main.py — Entry point for the Chembys courier sync.

Usage:
    python main.py --run-now          # Log in, walk the Order List, sync every order
    python main.py --run-now --headed # Same, with a visible browser
    python main.py --test-login       # Only log in and open the Order List (headed)
    python main.py --set-base-url     # Write BASE_URL to .env interactively
"""

import os
import sys
import signal
import asyncio
import logging
import argparse
from datetime import datetime
from urllib.parse import urlparse
from logging.handlers import TimedRotatingFileHandler

from chembys_sync import config


logger = logging.getLogger("chembys")


# ── Logging setup ────────────────────────────────────────────
def setup_logging():
    """Configure logging to console + rotating file."""
    log_format = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    root = logging.getLogger("chembys")
    root.setLevel(logging.DEBUG)

    # Console handler
    console = logging.StreamHandler(sys.stdout)
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter(log_format, datefmt=date_format))
    root.addHandler(console)

    # File handler (rotate daily, keep 7 days)
    config.LOG_FILE.parent.mkdir(parents=True, exist_ok=True)
    file_handler = TimedRotatingFileHandler(
        str(config.LOG_FILE),
        when="midnight",
        interval=1,
        backupCount=7,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))
    root.addHandler(file_handler)


def _use_bundled_browsers():
    """Standalone builds ship Chromium in ./browsers next to the project."""
    if config.BROWSERS_DIR.is_dir():
        os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", str(config.BROWSERS_DIR))
        logger.info("Using browsers from: %s", os.environ["PLAYWRIGHT_BROWSERS_PATH"])


def build_runner(page):
    """Wire the lookup cache, resolver, popup handler and sync workflow around one page."""
    from chembys_sync.surface import PlaywrightSurface
    from chembys_sync.carrier_lookup import CarrierLookupCache
    from chembys_sync.resolver import CarrierResolver, DTDC, DELHIVERY
    from chembys_sync.address_popup import AddressPopupHandler
    from chembys_sync.sync_workflow import OrderSyncWorkflow
    from chembys_sync.batch_runner import BatchRunner

    cache = CarrierLookupCache({
        DTDC: config.DTDC_PINCODES_FILE,
        DELHIVERY: config.DELHIVERY_PINCODES_FILE,
    })
    cache.ensure_loaded()
    resolver = CarrierResolver(cache, override=config.FORCE_CARRIER)

    surface = PlaywrightSurface(page)
    return BatchRunner(
        surface,
        AddressPopupHandler(surface),
        OrderSyncWorkflow(surface, resolver),
        resolver,
        summary_dir=config.SUMMARY_DIR,
    )


# ── Core sync run ────────────────────────────────────────────
async def run_sync(headless: bool = True):
    """Execute one full cycle: login → order list → per-order popup + courier sync → summary."""
    from playwright.async_api import async_playwright
    from login import login, open_order_list

    start_time = datetime.now()
    logger.info("══════════════════════════════════════════")
    logger.info("SYNC RUN STARTED at %s", start_time.strftime("%Y-%m-%d %H:%M:%S"))
    logger.info("══════════════════════════════════════════")

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=headless)
        context = await browser.new_context(viewport={"width": 1920, "height": 1080})
        page = await context.new_page()

        try:
            # Step 1: Login
            logger.info("Step 1: Logging in...")
            await login(page)

            # Step 2: Order List
            logger.info("Step 2: Opening Order List...")
            await open_order_list(page)

            # Step 3: Per-order popup + courier sync
            logger.info("Step 3: Processing orders...")
            runner = build_runner(page)
            summary = await runner.run()

            elapsed = (datetime.now() - start_time).total_seconds()
            counts = summary.counts
            logger.info("SYNC RUN COMPLETE — %.1f seconds", elapsed)

            _send_health_webhook(
                status="success",
                message=f"Sync completed in {elapsed:.0f}s — {summary.total} orders "
                        f"(DTDC {counts['DTDC']}, Delhivery {counts['Delhivery']}, "
                        f"Unknown {counts['Unknown']}, skipped {len(summary.skipped)})",
            )

        except Exception as e:
            logger.error("Sync run failed: %s", e, exc_info=True)
            _send_health_webhook(
                status="failure",
                message=f"Sync run FAILED: {e}",
            )
            raise
        finally:
            await context.close()
            await browser.close()


def _send_health_webhook(status: str, message: str):
    """Send a health notification via webhook (if configured)."""
    url = config.HEALTH_WEBHOOK_URL
    if not url:
        return
    try:
        import requests
        payload = {
            "status": status,
            "message": message,
            "timestamp": datetime.now().isoformat(),
            "source": "chembys_sync",
        }
        requests.post(url, json=payload, timeout=10)
        logger.info("Health webhook sent (%s)", status)
    except Exception as e:
        logger.warning("Health webhook failed: %s", e)


# ── Test login flow ──────────────────────────────────────────
async def test_login():
    """Run only the login + navigation in headed (visible) mode for testing."""
    from playwright.async_api import async_playwright
    from login import login, open_order_list

    logger.info("═══ TEST LOGIN MODE (headed) ═══")

    async with async_playwright() as p:
        browser = await p.chromium.launch(headless=False)  # always headed for test
        context = await browser.new_context()
        page = await context.new_page()

        try:
            await login(page)
            await open_order_list(page)
            logger.info("✓ Login test PASSED — Order List open at %s", page.url)
            input("Press Enter to close the browser...")
        except Exception as e:
            logger.error("✗ Login test error: %s", e, exc_info=True)
        finally:
            await context.close()
            await browser.close()


# ── Base URL setup ───────────────────────────────────────────
def normalize_base_url(value: str) -> str | None:
    """Accept 'chembys.shop' or a full URL; return a clean https URL or None if invalid."""
    value = (value or "").strip() or config.DEFAULT_BASE_URL
    if not value.startswith(("http://", "https://")):
        value = f"https://{value}"
    parsed = urlparse(value)
    if not parsed.netloc or " " in parsed.netloc:
        return None
    return value.rstrip("/")


def set_base_url():
    """Prompt for the admin panel URL and write BASE_URL to .env."""
    answer = input(f"Base URL [{config.DEFAULT_BASE_URL}]: ")
    url = normalize_base_url(answer)
    if not url:
        print("Invalid URL. Aborting.")
        sys.exit(2)
    try:
        config.ENV_FILE.write_text(f"BASE_URL={url}\n", encoding="utf-8")
    except OSError as e:
        print(f"Failed to write .env file: {e}")
        sys.exit(1)
    print(f"Wrote {config.ENV_FILE}")
    print(f"Using BASE_URL={url}")


# ── CLI ──────────────────────────────────────────────────────
def main():
    parser = argparse.ArgumentParser(description="Chembys Order List → courier sync")
    parser.add_argument("--run-now", action="store_true", help="Run the sync immediately")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--test-login", action="store_true", help="Test login flow in headed mode")
    parser.add_argument("--set-base-url", action="store_true", help="Write BASE_URL to .env")
    args = parser.parse_args()

    if args.set_base_url:
        set_base_url()
        return

    setup_logging()
    logger.info("Chembys courier sync starting...")
    _use_bundled_browsers()

    # Graceful shutdown
    def shutdown_handler(sig, frame):
        logger.info("Received signal %s — shutting down...", sig)
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)

    if args.test_login:
        asyncio.run(test_login())
    elif args.run_now:
        headless = config.HEADLESS and not args.headed
        try:
            asyncio.run(run_sync(headless=headless))
        except Exception:
            sys.exit(1)
    else:
        parser.print_help()
        print("\nUse --run-now for a single sync run.")


if __name__ == "__main__":
    main()
