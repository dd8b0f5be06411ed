"""
config.py — Central configuration loaded from .env file.
All credentials, paths and run limits are exposed as module-level constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_FILE = BASE_DIR / ".env"
load_dotenv(ENV_FILE)


def _int_env(name: str, default: int = 0) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _id_set(name: str) -> set[str]:
    """Comma-separated order ids from the environment."""
    return {part.strip() for part in os.getenv(name, "").split(",") if part.strip()}


# ── Chembys admin panel ──────────────────────────────────────
DEFAULT_BASE_URL = "https://chembys.shop"
BASE_URL = os.getenv("BASE_URL", DEFAULT_BASE_URL).rstrip("/")
LOGIN_URL = f"{BASE_URL}/login"
ORDER_LIST_URL = f"{BASE_URL}/inventory/order_list"
# {order_id} is substituted per order
ORDER_DETAIL_URL = os.getenv("ORDER_DETAIL_URL", f"{BASE_URL}/inventory/order_details/{{order_id}}")

CHEMBYS_USERNAME = os.getenv("CHEMBYS_USERNAME", "")
CHEMBYS_PASSWORD = os.getenv("CHEMBYS_PASSWORD", "")
TYPING_DELAY_MS = 120

# ── Paths ────────────────────────────────────────────────────
DATA_DIR = BASE_DIR / os.getenv("DATA_DIR", "data/")
LOG_FILE = BASE_DIR / os.getenv("LOG_FILE", "logs/chembys_sync.log")
SUMMARY_DIR = BASE_DIR / os.getenv("SUMMARY_DIR", "summaries/")
DTDC_PINCODES_FILE = DATA_DIR / os.getenv("DTDC_PINCODES_FILE", "dtdc_pincodes.xlsx")
DELHIVERY_PINCODES_FILE = DATA_DIR / os.getenv("DELHIVERY_PINCODES_FILE", "delhivery_pincodes.xlsx")

# Bundled browsers for the standalone build
BROWSERS_DIR = BASE_DIR / "browsers"

# ── Browser ──────────────────────────────────────────────────
HEADLESS = os.getenv("HEADLESS", "false").lower() == "true"

# ── Carrier lookup ───────────────────────────────────────────
LOOKUP_RELOAD_SECONDS = 60
# DTDC or Delhivery (case-insensitive). Anything else is ignored.
FORCE_CARRIER = os.getenv("FORCE_CARRIER", "").strip()

# ── Batch filters ────────────────────────────────────────────
# Non-empty = process only these order ids
ONLY_ORDER_IDS: set[str] = _id_set("ONLY_ORDER_IDS")
SKIP_ORDER_IDS: set[str] = _id_set("SKIP_ORDER_IDS")
# 0 = unlimited. Positive int = max rows to process.
PROCESS_COUNT = _int_env("PROCESS_COUNT", 0)
# Empty = run the submit/fetch/save flow for every order
EXTENDED_FLOW_ORDER_IDS: set[str] = _id_set("EXTENDED_FLOW_ORDER_IDS")

# ── Timeouts (ms) ────────────────────────────────────────────
TABLE_TIMEOUT_MS = 10000
POPUP_TIMEOUT_MS = 1500
POPUP_APPEAR_DELAY_MS = 1000
ROW_PAUSE_MS = 200
POPUP_MIN_TEXT_LENGTH = 150
NAVIGATION_TIMEOUT_MS = 30000
ACTION_TIMEOUT_MS = 10000
SYNC_BUTTON_TIMEOUT_MS = 10000
CARRIER_SELECT_TIMEOUT_MS = 5000
SYNC_SETTLE_MS = 2500
MODAL_HIDE_TIMEOUT_MS = 10000
MODAL_HIDE_FALLBACK_MS = 1500
INVOICE_TIMEOUT_MS = 8000
INVOICE_POLL_MS = 500

# ── Health Monitoring ────────────────────────────────────────
HEALTH_WEBHOOK_URL = os.getenv("HEALTH_WEBHOOK_URL", "")

# Ensure directories exist
for d in [DATA_DIR, LOG_FILE.parent, SUMMARY_DIR]:
    d.mkdir(parents=True, exist_ok=True)
