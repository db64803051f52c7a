# finance_ledger/loaders/csv_loader.py
import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from finance_ledger.core.models import TxnType
from finance_ledger.errors import ValidationError
from finance_ledger.ledger import MAX_NAME_BYTES
from finance_ledger.utils import clip_text, is_valid_date, parse_amount

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    imported: List[int] = field(default_factory=list)
    skipped: List[Tuple[int, str]] = field(default_factory=list)
    created_categories: List[str] = field(default_factory=list)


def _parse_type(raw: str) -> TxnType:
    try:
        return TxnType.from_code(int(raw))
    except ValueError:
        return TxnType.EXPENSE


class CSVLoader:
    """
    Appends transactions from a comma-separated file to a ledger.

    The first line is always a header. Rows are ``date,type,amount,category,note``;
    when the header starts with an ``id`` column (as written by CSVOutput) that
    leading column is dropped. The note is everything after the fourth comma and
    may contain commas itself. Ids in the file are never reused: every imported
    transaction gets a fresh one. Unknown categories are created on the fly.
    """
    def __init__(self, ledger):
        self.ledger = ledger

    def _parse_row(self, line: str, has_id: bool):
        fields = line.split(",", 5 if has_id else 4)
        if has_id:
            fields = fields[1:]
        if len(fields) < 4:
            raise ValidationError("expected date,type,amount,category[,note]")
        date, type_s, amount_s, category = (f.strip() for f in fields[:4])
        note = fields[4] if len(fields) > 4 else ""
        if not is_valid_date(date):
            raise ValidationError(f"invalid date '{date}'")
        amount = parse_amount(amount_s)
        if not category:
            raise ValidationError("empty category")
        return date, _parse_type(type_s), amount, category, note

    def _category_id(self, name: str, result: ImportResult) -> int:
        name = clip_text(name, MAX_NAME_BYTES)
        cat = self.ledger.categories.find_by_name(name)
        if cat is not None:
            return cat.id
        cat_id = self.ledger.categories.add(name)
        result.created_categories.append(name)
        logger.info("Created category '%s' id=%d", name, cat_id)
        return cat_id

    def load(self, path) -> ImportResult:
        result = ImportResult()
        # lines are decoded one by one so a stray non-UTF-8 byte costs only its row
        with open(path, "rb") as f:
            header = f.readline().decode("utf-8-sig", errors="replace")
            has_id = header.split(",", 1)[0].strip().lower() == "id"
            for lineno, raw in enumerate(f, start=2):
                try:
                    line = raw.decode("utf-8").rstrip("\r\n")
                except UnicodeDecodeError:
                    logger.info("Skipping line %d: not valid UTF-8", lineno)
                    result.skipped.append((lineno, "not valid UTF-8"))
                    continue
                if not line.strip():
                    continue
                try:
                    date, txn_type, amount, category, note = self._parse_row(line, has_id)
                except ValidationError as exc:
                    logger.info("Skipping line %d: %s", lineno, exc)
                    result.skipped.append((lineno, str(exc)))
                    continue
                cat_id = self._category_id(category, result)
                result.imported.append(
                    self.ledger.transactions.add(date, txn_type, amount, cat_id, note)
                )
        return result
