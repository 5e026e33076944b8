"""CSV event log of confirmed transactions.

One row per confirmed transaction: timestamp, event type and hash. Writing is
best-effort; a failed write is logged and never interrupts a pipeline run.
"""

import csv
import logging
from pathlib import Path

from accumulator.config import Settings
from accumulator.transactions.models import TransactionRecord

logger = logging.getLogger(__name__)

COLUMN_HEADERS = ["timestamp", "event_type", "tx_hash"]


class AuditSink:
    """Append-only CSV writer, inert when disabled."""

    def __init__(self, path: Path, enabled: bool):
        self.path = path
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuditSink":
        return cls(settings.audit_file, settings.audit.create_event_log)

    def ensure_file(self) -> None:
        """Create the CSV with its header row if it does not exist yet."""
        if not self.enabled or self.path.exists():
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(COLUMN_HEADERS)
            logger.info(f"Created event log: {self.path}")
        except OSError as e:
            logger.error(f"Failed to create event log {self.path}: {e}")

    def append_record(self, record: TransactionRecord) -> None:
        if not self.enabled:
            return
        self.ensure_file()
        try:
            with open(self.path, "a", newline="", encoding="utf-8") as f:
                csv.writer(f).writerow(record.to_row())
        except OSError as e:
            logger.error(f"Failed to write {record.type.value} {record.hash} to event log: {e}")

    def read_records(self) -> list[dict[str, str]]:
        if not self.path.exists():
            return []
        with open(self.path, newline="", encoding="utf-8") as f:
            return list(csv.DictReader(f))
