"""
pincode.py — Pull shipping pincodes out of free-form address text.

Labelled matches ("Pincode : 689672") win over bare digit runs, since an
unlabelled 4–6 digit run may just as well be part of a phone or order number.
"""

import re

# ── Patterns (labelled first, bare fallback) ────────────────
LABELLED_PINCODE = re.compile(r"Pincode\s*[:\-]?\s*(\d{4,6})(?!\d)", re.IGNORECASE)
BARE_PINCODE = re.compile(r"(?<!\d)(\d{4,6})(?!\d)")


def _dedupe(values: list[str]) -> list[str]:
    seen = set()
    ordered = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def extract_pincodes(raw_text) -> list[str]:
    """
    Return every distinct pincode in raw_text, in order of first appearance.
    Matches 'Pincode : 689672', 'Pincode:689672', 'pincode - 6896' etc.;
    falls back to any standalone 4–6 digit run when no label is present.
    """
    if not raw_text or not isinstance(raw_text, str):
        return []

    candidates = LABELLED_PINCODE.findall(raw_text)
    if not candidates:
        candidates = BARE_PINCODE.findall(raw_text)

    return _dedupe(candidates)


def extract_pincodes_by_line(raw_text) -> list[tuple[int, str]]:
    """
    Labelled pincodes reported per line (1-based line numbers).
    Multi-address popups put one 'Pincode:' per address line.
    """
    if not raw_text or not isinstance(raw_text, str):
        return []

    found = []
    for line_no, line in enumerate(raw_text.splitlines(), start=1):
        for pincode in _dedupe(LABELLED_PINCODE.findall(line)):
            found.append((line_no, pincode))
    return found
