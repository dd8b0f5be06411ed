"""
locators.py — Selector definitions for the Chembys admin panel.

Where the panel has moved an element between releases, a list of selectors is
given in priority order; callers try them one by one and stop on the first hit.

If the site changes its markup, update the strings here — no core logic changes needed.
"""

# ═══════════════════════════════════════════════════════════════
# LOGIN PAGE
# Page: {BASE_URL}/login
# ═══════════════════════════════════════════════════════════════

USERNAME_INPUTS = [
    'input[name="username"]',
    'input[name="email"]',
    'input[type="email"]',
    'input[type="text"]',
]
PASSWORD_INPUTS = [
    'input[name="password"]',
    'input[type="password"]',
]
SUBMIT_BUTTONS = [
    'button[type="submit"]',
    'button:has-text("Log in")',
    'button:has-text("Login")',
    'input[type="submit"]',
]

# Sidebar: Orders → Order List
SIDEBAR_MENU = "ul.sidebar-menu"
ORDERS_MENU = 'ul.sidebar-menu a:has-text("Orders")'
ORDER_LIST_LINK = (
    'a[href$="/inventory/order_list"], '
    'ul.treeview-menu a:has-text("Order List")'
)


# ═══════════════════════════════════════════════════════════════
# ORDER LIST PAGE
# Page: {BASE_URL}/inventory/order_list
# ═══════════════════════════════════════════════════════════════

ORDER_TABLE = "table#example"
ORDER_ROWS = f"{ORDER_TABLE} tbody tr"

ADDRESS_BUTTON = "td.sorting_1 > button.address-show-btn"
ADDRESS_BUTTON_FALLBACK = "button.address-show-btn, a.address-show-btn"
ADDRESS_BUTTON_FOR_ID = "td.sorting_1 > button.address-show-btn, td.sorting_1 > a.address-show-btn"

# Attributes on the address button that may carry the order id
ORDER_ID_ATTRIBUTES = ["data-order-id", "data-id", "data-order", "title", "aria-label"]
ROW_ORDER_ID_ATTRIBUTE = "data-order-id"
ORDER_ID_CELL = "td.order-id, th.order-id"
FIRST_CELL = "td:first-child"

# Address popup
ADDRESS_POPUP_BODY = "#addressShowBody"
ADDRESS_POPUP_CLOSE = "#addressShowModal > div > div > div.modal-footer > button"


# ═══════════════════════════════════════════════════════════════
# ORDER DETAIL PAGE — "Sync with Courier" modal
# Page: ORDER_DETAIL_URL
# ═══════════════════════════════════════════════════════════════

SYNC_BUTTONS = [
    "#syncCourierBtn",
    'button:has-text("Sync with Courier")',
    'a:has-text("Sync with Courier")',
    'button:has-text("Sync")',
]

SYNC_MODAL = "#syncCourierModal"
CARRIER_SELECT = "#syncCourierModal .courier-select"
CARRIER_OPTIONS = "#syncCourierModal .courier-option"
CONFIRM_TOGGLE = '#syncCourierModal input[type="checkbox"]'
SYNC_SUBMIT = '#syncCourierModal button[type="submit"]'
SYNC_MODAL_CLOSE = "#syncCourierModal .close"

# Post-sync confirmation (sweetalert / bootbox)
CONFIRMATION_OK = [
    ".swal2-confirm",
    ".bootbox .btn-primary",
    'button:has-text("OK")',
]

FETCH_BUTTON = 'button:has-text("Fetch")'
GENERATE_INVOICE_BUTTON = 'button:has-text("Generate Invoice")'
INVOICE_NUMBER_FIELD = 'input[name="invoice_no"]'
SAVE_BUTTON = 'button:has-text("Save")'
