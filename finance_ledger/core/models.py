# finance_ledger/core/models.py
from dataclasses import dataclass
from decimal import Decimal
from enum import IntEnum


class TxnType(IntEnum):
    EXPENSE = 0
    INCOME = 1

    @classmethod
    def from_code(cls, code):
        return cls.INCOME if code == cls.INCOME else cls.EXPENSE

    @property
    def marker(self):
        return "IN" if self is TxnType.INCOME else "EX"


@dataclass
class Category:
    id: int
    name: str


@dataclass
class Transaction:
    id: int
    date: str
    amount: Decimal
    category_id: int
    type: TxnType = TxnType.EXPENSE
    note: str = ""


@dataclass
class BudgetEntry:
    category_id: int
    year: int
    month: int
    amount: Decimal
