# finance_ledger/ledger.py
"""In-memory record stores for categories, transactions and budgets.

Each store keeps its records in a plain list in insertion order. Deletion swaps
the last record into the freed slot, so order after a delete is not stable.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from finance_ledger.core.models import BudgetEntry, Category, Transaction, TxnType
from finance_ledger.errors import (
    NotFoundError,
    ReferentialIntegrityError,
    ValidationError,
)
from finance_ledger.reports import search_transactions
from finance_ledger.utils import (
    clip_text,
    in_range,
    parse_amount,
    storable_amount,
    validate_date,
    validate_month,
)

logger = logging.getLogger(__name__)

MAX_NAME_BYTES = 63
MAX_NOTE_BYTES = 255
UNKNOWN_CATEGORY = "UNKNOWN"


def _swap_remove(items: list, idx: int) -> None:
    items[idx] = items[-1]
    items.pop()


def _coerce_type(value) -> TxnType:
    if isinstance(value, TxnType):
        return value
    if isinstance(value, str):
        key = value.strip().lower()
        if key in ("expense", "ex", "0"):
            return TxnType.EXPENSE
        if key in ("income", "in", "1"):
            return TxnType.INCOME
    elif value in (0, 1):
        return TxnType(value)
    raise ValidationError(f"Invalid transaction type '{value}'")


class CategoryStore:
    def __init__(self, categories: Optional[List[Category]] = None):
        self._items: List[Category] = list(categories or [])
        self._next_id = max((c.id for c in self._items), default=0) + 1

    def __len__(self):
        return len(self._items)

    def _allocate_id(self) -> int:
        taken = {c.id for c in self._items}
        while self._next_id in taken:
            self._next_id += 1
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def _index(self, category_id: int) -> int:
        for idx, cat in enumerate(self._items):
            if cat.id == category_id:
                return idx
        return -1

    def add(self, name: str) -> int:
        name = clip_text((name or "").strip(), MAX_NAME_BYTES)
        if not name:
            raise ValidationError("Category name must not be empty")
        cat = Category(id=self._allocate_id(), name=name)
        self._items.append(cat)
        return cat.id

    def rename(self, category_id: int, new_name: str) -> None:
        new_name = clip_text((new_name or "").strip(), MAX_NAME_BYTES)
        if not new_name:
            raise ValidationError("Category name must not be empty")
        self.get(category_id).name = new_name

    def remove(self, category_id: int, transactions: "TransactionStore") -> None:
        idx = self._index(category_id)
        if idx < 0:
            raise NotFoundError(f"Category {category_id} not found")
        if transactions.uses_category(category_id):
            raise ReferentialIntegrityError(
                f"Category {category_id} is used by transactions and cannot be deleted"
            )
        _swap_remove(self._items, idx)

    def list(self) -> List[Category]:
        return list(self._items)

    def lookup(self, category_id: int) -> Optional[Category]:
        idx = self._index(category_id)
        return self._items[idx] if idx >= 0 else None

    def get(self, category_id: int) -> Category:
        cat = self.lookup(category_id)
        if cat is None:
            raise NotFoundError(f"Category {category_id} not found")
        return cat

    def exists(self, category_id: int) -> bool:
        return self._index(category_id) >= 0

    def name_for(self, category_id: int) -> str:
        cat = self.lookup(category_id)
        return cat.name if cat else UNKNOWN_CATEGORY

    def find_by_name(self, name: str) -> Optional[Category]:
        """Case-insensitive exact match on the category name."""
        wanted = (name or "").casefold()
        return next((c for c in self._items if c.name.casefold() == wanted), None)


class TransactionStore:
    def __init__(self, categories: CategoryStore,
                 transactions: Optional[List[Transaction]] = None):
        self.categories = categories
        self._items: List[Transaction] = list(transactions or [])
        self._next_id = max((t.id for t in self._items), default=0) + 1

    def __len__(self):
        return len(self._items)

    def _allocate_id(self) -> int:
        taken = {t.id for t in self._items}
        while self._next_id in taken:
            self._next_id += 1
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def _index(self, txn_id: int) -> int:
        for idx, txn in enumerate(self._items):
            if txn.id == txn_id:
                return idx
        return -1

    def _check_category(self, category_id) -> int:
        if not self.categories.exists(category_id):
            raise ValidationError(f"Invalid category {category_id}")
        return category_id

    def add(self, date: str, type, amount, category_id: int, note: str = "") -> int:
        # validate everything before touching the store
        date = validate_date(date)
        txn_type = _coerce_type(type)
        amount = parse_amount(amount)
        category_id = self._check_category(category_id)
        txn = Transaction(
            id=self._allocate_id(),
            date=date,
            amount=amount,
            category_id=category_id,
            type=txn_type,
            note=clip_text(note, MAX_NOTE_BYTES),
        )
        self._items.append(txn)
        return txn.id

    def edit(self, txn_id: int, date=None, type=None, amount=None,
             category_id=None, note=None) -> List[str]:
        """
        Replace each supplied field that passes the add-time validation.
        Fields that are supplied but invalid keep their prior value; their names
        are returned so the caller can report them.
        """
        txn = self.get(txn_id)
        rejected = []
        checks = (
            ("date", date, validate_date),
            ("type", type, _coerce_type),
            ("amount", amount, parse_amount),
            ("category_id", category_id, self._check_category),
        )
        for field, value, check in checks:
            if value is None or value == "":
                continue
            try:
                setattr(txn, field, check(value))
            except ValidationError as exc:
                logger.info("Kept %s of transaction %s: %s", field, txn_id, exc)
                rejected.append(field)
        if note:
            txn.note = clip_text(note, MAX_NOTE_BYTES)
        return rejected

    def remove(self, txn_id: int) -> None:
        idx = self._index(txn_id)
        if idx < 0:
            raise NotFoundError(f"Transaction {txn_id} not found")
        _swap_remove(self._items, idx)

    def list(self, start_date: str | None = None,
             end_date: str | None = None) -> List[Transaction]:
        if start_date:
            validate_date(start_date)
        if end_date:
            validate_date(end_date)
        return [t for t in self._items if in_range(t.date, start_date, end_date)]

    def lookup(self, txn_id: int) -> Optional[Transaction]:
        idx = self._index(txn_id)
        return self._items[idx] if idx >= 0 else None

    def get(self, txn_id: int) -> Transaction:
        txn = self.lookup(txn_id)
        if txn is None:
            raise NotFoundError(f"Transaction {txn_id} not found")
        return txn

    def uses_category(self, category_id: int) -> bool:
        return any(t.category_id == category_id for t in self._items)

    def search(self, start_date=None, end_date=None, category=None,
               min_amount=None, max_amount=None, note=None) -> List[Transaction]:
        return search_transactions(
            self, start_date=start_date, end_date=end_date, category=category,
            min_amount=min_amount, max_amount=max_amount, note=note,
        )


class BudgetStore:
    def __init__(self, categories: CategoryStore,
                 entries: Optional[List[BudgetEntry]] = None):
        self.categories = categories
        self._items: List[BudgetEntry] = list(entries or [])

    def __len__(self):
        return len(self._items)

    def set(self, category_id: int, year: int, month: int, amount) -> bool:
        """Upsert the budget for (category, year, month). Returns True when created."""
        if not self.categories.exists(category_id):
            raise ValidationError(f"Invalid category {category_id}")
        year, month = validate_month(year, month)
        amount = storable_amount(amount)
        if amount < 0:
            raise ValidationError("Budget amount must be >= 0")
        for entry in self._items:
            if (entry.category_id, entry.year, entry.month) == (category_id, year, month):
                entry.amount = amount
                return False
        self._items.append(BudgetEntry(category_id, year, month, amount))
        return True

    def list(self) -> List[BudgetEntry]:
        return list(self._items)

    def for_month(self, year: int, month: int) -> List[BudgetEntry]:
        return [b for b in self._items if b.year == year and b.month == month]

    def amount_for(self, category_id: int, year: int, month: int) -> Optional[Decimal]:
        for entry in self._items:
            if (entry.category_id, entry.year, entry.month) == (category_id, year, month):
                return entry.amount
        return None


class Ledger:
    """The three stores, owned together and passed explicitly to every operation."""

    def __init__(self, categories=None, transactions=None, budgets=None):
        self.categories = CategoryStore(categories)
        self.transactions = TransactionStore(self.categories, transactions)
        self.budgets = BudgetStore(self.categories, budgets)

    def remove_category(self, category_id: int) -> None:
        self.categories.remove(category_id, self.transactions)

    def category_name(self, category_id: int) -> str:
        return self.categories.name_for(category_id)
