# finance_ledger/errors.py


class LedgerError(Exception):
    """Base class for every recoverable ledger failure."""


class ValidationError(LedgerError, ValueError):
    """Bad date, amount, month or an empty required field."""


class NotFoundError(LedgerError, LookupError):
    """No record with the requested id."""


class ReferentialIntegrityError(LedgerError):
    """A category is still referenced by at least one transaction."""
