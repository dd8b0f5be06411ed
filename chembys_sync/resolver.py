"""
resolver.py — Decide which courier ships an order, from its pincode.

Policy (first match wins):
  1. FORCE_CARRIER set  → that carrier if it covers the pincode, otherwise an
                          explicit override mismatch (order is skipped, never
                          re-assigned to the other courier).
  2. DTDC covers it     → DTDC   (also wins when both carriers cover it)
  3. Delhivery covers it → Delhivery
  4. otherwise          → Unknown
"""

import logging
from dataclasses import dataclass
from typing import Mapping

from chembys_sync.carrier_lookup import CarrierLookupCache
from chembys_sync.pincode import extract_pincodes

logger = logging.getLogger("chembys.resolver")

DTDC = "DTDC"
DELHIVERY = "Delhivery"
UNKNOWN = "Unknown"

# Checked in this order; the first carrier listed wins ties
CARRIERS = (DTDC, DELHIVERY)

# Visible UI text → carrier. Matched case-insensitively as a substring.
CARRIER_LABELS = {
    "dtdc": DTDC,
    "delhivery": DELHIVERY,
}


@dataclass(frozen=True)
class CarrierDecision:
    carrier: str
    pincode: str | None
    override_mismatch: bool = False

    @property
    def is_known(self) -> bool:
        return self.carrier in CARRIERS


def normalize_carrier(name: str | None) -> str | None:
    """Map 'dtdc' / 'DELHIVERY ' etc. to the canonical carrier name, or None."""
    if not name:
        return None
    wanted = name.strip().lower()
    for carrier in CARRIERS:
        if carrier.lower() == wanted:
            return carrier
    return None


def carrier_from_text(text: str | None, labels: dict[str, str] = CARRIER_LABELS) -> str | None:
    """Infer the carrier a dropdown option / label refers to."""
    if not text:
        return None
    lowered = text.lower()
    for label, carrier in labels.items():
        if label.lower() in lowered:
            return carrier
    return None


class CarrierResolver:
    """Applies the carrier policy against a CarrierLookupCache."""

    def __init__(self, cache: CarrierLookupCache, override: str | None = None):
        self.cache = cache
        self.override = normalize_carrier(override)
        if override and not self.override:
            logger.warning("Ignoring unrecognised FORCE_CARRIER=%r — using normal resolution", override)
        elif self.override:
            logger.info("Carrier override active: %s", self.override)

    def resolve(self, pincode: str | None, context_text: str | None = None) -> CarrierDecision:
        lookup = self.cache.snapshot()

        if not pincode and context_text:
            pincode = self._recover_pincode(context_text, lookup)

        if not pincode:
            return CarrierDecision(UNKNOWN, None)

        if self.override:
            if pincode in lookup.get(self.override, ()):
                return CarrierDecision(self.override, pincode)
            logger.info("Pincode %s not served by forced carrier %s", pincode, self.override)
            return CarrierDecision(UNKNOWN, pincode, override_mismatch=True)

        for carrier in CARRIERS:
            if pincode in lookup.get(carrier, ()):
                return CarrierDecision(carrier, pincode)

        return CarrierDecision(UNKNOWN, pincode)

    @staticmethod
    def _recover_pincode(context_text: str, lookup: Mapping) -> str | None:
        """Pick a pincode out of surrounding page text, preferring one we have coverage for."""
        candidates = extract_pincodes(context_text)
        for candidate in candidates:
            if any(candidate in lookup.get(carrier, ()) for carrier in CARRIERS):
                logger.debug("Recovered covered pincode %s from page text", candidate)
                return candidate
        return candidates[0] if candidates else None
