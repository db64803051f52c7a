# finance_ledger/utils.py
import math
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from finance_ledger.errors import ValidationError

_DATE_RX = re.compile(r"(\d{4})-(\d{2})-(\d{2})", re.ASCII)
_CENTS = Decimal("0.01")


def is_valid_date(value) -> bool:
    """
    True for a zero-padded YYYY-MM-DD string with month 1..12 and day 1..31.
    Day counts per month are deliberately not checked.
    """
    if not isinstance(value, str):
        return False
    m = _DATE_RX.fullmatch(value)
    if not m:
        return False
    month, day = int(m.group(2)), int(m.group(3))
    return 1 <= month <= 12 and 1 <= day <= 31


def validate_date(value) -> str:
    if not is_valid_date(value):
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD")
    return value


def validate_month(year, month):
    if not 1 <= int(month) <= 12:
        raise ValidationError(f"Invalid month {month}, expected 1-12")
    if not 1 <= int(year) <= 9999:
        raise ValidationError(f"Invalid year {year}, expected 1-9999")
    return int(year), int(month)


def month_bounds(year: int, month: int):
    """
    Return the half-open interval [first day of month, first day of next month)
    as date strings, wrapping December into January of the next year.
    """
    year, month = validate_month(year, month)
    next_year, next_month = (year + 1, 1) if month == 12 else (year, month + 1)
    return f"{year:04d}-{month:02d}-01", f"{next_year:04d}-{next_month:02d}-01"


def in_range(date_s: str, start: str | None = None, end: str | None = None) -> bool:
    """Inclusive lexicographic range check; zero-padded dates sort chronologically."""
    if start and date_s < start:
        return False
    if end and date_s > end:
        return False
    return True


def to_decimal(value) -> Decimal:
    """Convert ints, floats, strings or Decimals to a finite Decimal."""
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        # shortest repr keeps 42.5 as 42.5 rather than its binary expansion
        result = Decimal(repr(value))
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValidationError(f"Invalid amount '{value}'") from None
    if not result.is_finite():
        raise ValidationError(f"Invalid amount '{value}'")
    return result


def storable_amount(value) -> Decimal:
    """
    Parse an amount that survives the float64 field of the data files unchanged.
    Values that overflow or carry more digits than a double holds are rejected.
    """
    amount = to_decimal(value)
    as_float = float(amount)
    if not math.isfinite(as_float) or to_decimal(as_float) != amount:
        raise ValidationError(f"Amount '{value}' cannot be stored exactly")
    return amount


def parse_amount(value) -> Decimal:
    """Parse a strictly positive, storable amount."""
    amount = storable_amount(value)
    if amount <= 0:
        raise ValidationError("Amount must be > 0")
    return amount


def format_amount(amount) -> str:
    return f"{to_decimal(amount).quantize(_CENTS, rounding=ROUND_HALF_UP):.2f}"


def clip_text(text: str | None, max_bytes: int) -> str:
    """Trim ``text`` to at most ``max_bytes`` of UTF-8 without splitting a character."""
    text = text or ""
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    return raw[:max_bytes].decode("utf-8", errors="ignore")
