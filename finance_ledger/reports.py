# finance_ledger/reports.py
"""Date-range queries and signed aggregation over a ledger.

Amounts are summed as Decimals, so long runs of additions do not accumulate
binary rounding error. Rounding to cents happens only when formatting.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List

from finance_ledger.core.models import TxnType
from finance_ledger.utils import month_bounds, to_decimal, validate_date, validate_month

ZERO = Decimal("0")


@dataclass
class MonthlySummary:
    year: int
    month: int
    total_income: Decimal = ZERO
    total_expense: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.total_income - self.total_expense


@dataclass
class CategoryNet:
    category_id: int
    name: str
    net: Decimal


@dataclass
class BudgetLine:
    category_id: int
    name: str
    budgeted: Decimal
    used: Decimal

    @property
    def remaining(self) -> Decimal:
        return self.budgeted - self.used


@dataclass
class BudgetReport:
    year: int
    month: int
    lines: List[BudgetLine] = field(default_factory=list)

    @property
    def no_budgets(self) -> bool:
        """True when no budget entry exists for the month."""
        return not self.lines


@dataclass
class MonthReport:
    summary: MonthlySummary
    categories: List[CategoryNet]
    budgets: BudgetReport


def _in_month(transactions, year, month):
    start, next_start = month_bounds(year, month)
    return [t for t in transactions if start <= t.date < next_start]


def monthly_category_net(ledger, category_id: int, year: int, month: int) -> Decimal:
    """
    Net spend of one category in a month: expenses add, income subtracts.
    """
    total = ZERO
    for txn in _in_month(ledger.transactions.list(), year, month):
        if txn.category_id != category_id:
            continue
        if txn.type == TxnType.EXPENSE:
            total += txn.amount
        else:
            total -= txn.amount
    return total


def monthly_summary(ledger, year: int, month: int) -> MonthlySummary:
    summary = MonthlySummary(year=year, month=month)
    for txn in _in_month(ledger.transactions.list(), year, month):
        if txn.type == TxnType.INCOME:
            summary.total_income += txn.amount
        else:
            summary.total_expense += txn.amount
    return summary


def category_summary(ledger, year: int, month: int) -> List[CategoryNet]:
    """Net spend for every known category, including ones with no activity."""
    return [
        CategoryNet(cat.id, cat.name, monthly_category_net(ledger, cat.id, year, month))
        for cat in ledger.categories.list()
    ]


def budget_report(ledger, year: int, month: int) -> BudgetReport:
    year, month = validate_month(year, month)
    report = BudgetReport(year=year, month=month)
    for entry in ledger.budgets.for_month(year, month):
        report.lines.append(
            BudgetLine(
                category_id=entry.category_id,
                name=ledger.category_name(entry.category_id),
                budgeted=entry.amount,
                used=monthly_category_net(ledger, entry.category_id, year, month),
            )
        )
    return report


def month_report(ledger, year: int, month: int) -> MonthReport:
    return MonthReport(
        summary=monthly_summary(ledger, year, month),
        categories=category_summary(ledger, year, month),
        budgets=budget_report(ledger, year, month),
    )


def search_transactions(
    transactions,
    start_date: str | None = None,
    end_date: str | None = None,
    category: str | None = None,
    min_amount=None,
    max_amount=None,
    note: str | None = None,
):
    """Conjunctive search over a TransactionStore.

    Parameters
    ----------
    start_date, end_date:
        Optional inclusive YYYY-MM-DD bounds.
    category:
        Case-insensitive substring of the resolved category name.
    min_amount, max_amount:
        Inclusive amount bounds; ``None`` or ``0`` means unbounded.
    note:
        Case-insensitive substring of the note.
    """
    if start_date:
        validate_date(start_date)
    if end_date:
        validate_date(end_date)
    low = to_decimal(min_amount) if min_amount else ZERO
    high = to_decimal(max_amount) if max_amount else ZERO
    cat_q = (category or "").casefold()
    note_q = (note or "").casefold()

    results = []
    for txn in transactions.list(start_date or None, end_date or None):
        if low > 0 and txn.amount < low:
            continue
        if high > 0 and txn.amount > high:
            continue
        if cat_q and cat_q not in transactions.categories.name_for(txn.category_id).casefold():
            continue
        if note_q and note_q not in txn.note.casefold():
            continue
        results.append(txn)
    return results
