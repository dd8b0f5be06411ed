"""
run_summary.py — Per-run record of which orders went to which courier.

The batch runner appends to a RunAccumulator row by row; at the end it freezes
into a RunSummary, which is logged and written to
summaries/processed-orders-<timestamp>.txt. The file is an audit trail for
humans and is never read back.
"""

import logging
from pathlib import Path
from datetime import datetime
from dataclasses import dataclass, field

from chembys_sync.resolver import DTDC, DELHIVERY, UNKNOWN

logger = logging.getLogger("chembys.run_summary")

SUMMARY_CARRIERS = (DTDC, DELHIVERY, UNKNOWN)


@dataclass(frozen=True)
class ProcessedRecord:
    order_id: str
    pincode: str
    carrier: str


@dataclass(frozen=True)
class SkippedRecord:
    order_id: str
    pincode: str | None
    reason: str


@dataclass(frozen=True)
class RunSummary:
    started_at: datetime
    finished_at: datetime
    processed: dict[str, tuple[ProcessedRecord, ...]]
    skipped: tuple[SkippedRecord, ...] = ()

    @property
    def counts(self) -> dict[str, int]:
        return {carrier: len(self.processed.get(carrier, ())) for carrier in SUMMARY_CARRIERS}

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def order_ids(self, carrier: str) -> list[str]:
        return [record.order_id for record in self.processed.get(carrier, ())]

    def render(self) -> str:
        lines = [
            f"Processed orders — run started {self.started_at:%Y-%m-%d %H:%M:%S}, "
            f"finished {self.finished_at:%Y-%m-%d %H:%M:%S}",
            f"Total: {self.total}",
            "",
        ]
        for carrier in SUMMARY_CARRIERS:
            records = self.processed.get(carrier, ())
            lines.append(f"{carrier} ({len(records)}):")
            if not records:
                lines.append("  (none)")
            for i, record in enumerate(records, start=1):
                lines.append(f"  {i}. Order: {record.order_id}, Pincode: {record.pincode}")
            lines.append("")

        if self.skipped:
            lines.append(f"Skipped ({len(self.skipped)}):")
            for i, record in enumerate(self.skipped, start=1):
                lines.append(
                    f"  {i}. Order: {record.order_id}, Pincode: {record.pincode or 'N/A'} — {record.reason}"
                )
            lines.append("")

        return "\n".join(lines)


@dataclass
class RunAccumulator:
    """Mutable per-run collection, owned by one BatchRunner.run() call."""

    started_at: datetime = field(default_factory=datetime.now)
    processed: dict[str, list[ProcessedRecord]] = field(
        default_factory=lambda: {carrier: [] for carrier in SUMMARY_CARRIERS}
    )
    skipped: list[SkippedRecord] = field(default_factory=list)

    def add(self, order_id: str, pincode: str, carrier: str) -> ProcessedRecord:
        if carrier not in self.processed:
            carrier = UNKNOWN
        record = ProcessedRecord(order_id, pincode, carrier)
        self.processed[carrier].append(record)
        return record

    def skip(self, order_id: str, pincode: str | None, reason: str) -> SkippedRecord:
        record = SkippedRecord(order_id, pincode, reason)
        self.skipped.append(record)
        return record

    def freeze(self) -> RunSummary:
        return RunSummary(
            started_at=self.started_at,
            finished_at=datetime.now(),
            processed={carrier: tuple(records) for carrier, records in self.processed.items()},
            skipped=tuple(self.skipped),
        )


def log_summary(summary: RunSummary):
    logger.info("══════════════════════════════════════════")
    logger.info(
        "RUN SUMMARY — DTDC: %d | Delhivery: %d | Unknown: %d | Skipped: %d",
        summary.counts[DTDC], summary.counts[DELHIVERY], summary.counts[UNKNOWN], len(summary.skipped),
    )
    for line in summary.render().splitlines():
        if line:
            logger.info("  %s", line)
    logger.info("══════════════════════════════════════════")


def write_summary(summary: RunSummary, directory: Path) -> Path | None:
    """
    Write the summary to a timestamped file via temp file + rename.
    Returns the path written, or None if writing failed (never raises).
    """
    directory = Path(directory)
    target = directory / f"processed-orders-{summary.finished_at:%Y-%m-%dT%H-%M-%S}.txt"
    tmp_path = target.with_suffix(".txt.tmp")

    try:
        directory.mkdir(parents=True, exist_ok=True)
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(summary.render())
        tmp_path.replace(target)
    except OSError as e:
        logger.error("Could not write run summary to %s: %s", target, e)
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError:
            pass
        return None

    logger.info("Run summary saved to %s", target)
    return target
