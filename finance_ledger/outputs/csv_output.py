# finance_ledger/outputs/csv_output.py
import logging
from pathlib import Path

from finance_ledger.utils import format_amount

logger = logging.getLogger(__name__)

HEADER = ["id", "date", "type", "amount", "category", "note"]


class CSVOutput:
    """
    Writes the ledger's transactions to a comma-separated file, one row per
    transaction in storage order, with the category resolved to its name.
    Fields are joined verbatim; nothing is quoted, so a note containing commas
    stays readable as "rest of line" on import.
    """
    def __init__(self, ledger):
        self.ledger = ledger

    def rows(self):
        yield HEADER
        for tx in self.ledger.transactions.list():
            yield [
                str(tx.id),
                tx.date,
                str(int(tx.type)),
                format_amount(tx.amount),
                self.ledger.category_name(tx.category_id),
                tx.note,
            ]

    def export(self, path) -> int:
        """Write the CSV to ``path`` and return the number of transactions written."""
        out_path = Path(path)
        count = 0
        with open(out_path, "w", newline="", encoding="utf-8") as f:
            for row in self.rows():
                f.write(",".join(row) + "\n")
                count += 1
        count -= 1  # header
        logger.info("Exported %d transaction(s) to %s", count, out_path)
        return count
