"""
carrier_lookup.py — Pincode coverage sets per carrier, read from spreadsheets.

Each carrier has one workbook; the first column of the first sheet lists the
pincodes that carrier serves. Both sets are cached and re-read together once
the reload interval has passed.

Usage:
    cache = CarrierLookupCache({"DTDC": dtdc_path, "Delhivery": delhivery_path})
    if pincode in cache.get("DTDC"): ...
"""

import time
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Mapping

import openpyxl

from chembys_sync import config

logger = logging.getLogger("chembys.carrier_lookup")


def _cell_to_pincode(value) -> str:
    if value is None:
        return ""
    # Excel stores numeric pincodes as floats (686001.0)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def read_first_column(path: Path) -> set[str]:
    """
    Read the first column of every row on the first sheet.
    A missing or unreadable workbook gives an empty set, never an exception.
    """
    path = Path(path)
    if not path.exists():
        logger.warning("Pincode file not found: %s — carrier will have no coverage", path)
        return set()

    try:
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
        try:
            sheet = wb.worksheets[0]
            values = set()
            for row in sheet.iter_rows(min_col=1, max_col=1, values_only=True):
                pincode = _cell_to_pincode(row[0] if row else None)
                if pincode:
                    values.add(pincode)
        finally:
            wb.close()
    except Exception as e:
        logger.warning("Could not read pincode file %s: %s — treating as empty", path, e)
        return set()

    logger.debug("Read %d pincodes from %s", len(values), path.name)
    return values


class CarrierLookupCache:
    """Two carrier → pincode-set tables, refreshed as a unit on a fixed interval."""

    def __init__(
        self,
        sources: dict[str, Path],
        reader: Callable[[Path], set[str]] = read_first_column,
        clock: Callable[[], float] = time.monotonic,
        reload_interval: float = config.LOOKUP_RELOAD_SECONDS,
    ):
        self.sources = dict(sources)
        self.reader = reader
        self.clock = clock
        self.reload_interval = reload_interval
        self.last_loaded_at: float | None = None
        self._sets: dict[str, frozenset[str]] = {}

    # ── Load / refresh ───────────────────────────────────────
    def ensure_loaded(self):
        """Load on first use or once the reload interval has elapsed; no I/O otherwise."""
        if self.last_loaded_at is None:
            self.reload()
        elif self.clock() - self.last_loaded_at > self.reload_interval:
            logger.debug("Pincode cache older than %ss — reloading", self.reload_interval)
            self.reload()

    def reload(self):
        """Re-read every source and swap all sets in at once."""
        fresh = {}
        for carrier, path in self.sources.items():
            try:
                fresh[carrier] = frozenset(self.reader(path))
            except Exception as e:
                logger.warning("Pincode reader failed for %s: %s", carrier, e)
                fresh[carrier] = frozenset()

        self._sets = fresh
        self.last_loaded_at = self.clock()
        logger.info(
            "Pincode lookup loaded: %s",
            ", ".join(f"{carrier}={len(codes)}" for carrier, codes in fresh.items()),
        )

    def invalidate(self):
        """Force the next ensure_loaded() to re-read the sources."""
        self.last_loaded_at = None

    # ── Read ─────────────────────────────────────────────────
    def get(self, carrier: str) -> frozenset[str]:
        self.ensure_loaded()
        return self._sets.get(carrier, frozenset())

    def snapshot(self) -> Mapping[str, frozenset[str]]:
        """Read-only view of both sets from a single load."""
        self.ensure_loaded()
        return MappingProxyType(self._sets)

