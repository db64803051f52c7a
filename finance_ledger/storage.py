# finance_ledger/storage.py
"""Fixed-record binary persistence for the three ledger stores.

Every store lives in its own file as a flat run of fixed-size records with no
header, delimiter or length prefix. Layouts mirror the little-endian x86-64
C structs of the legacy data files, padding included, so existing files
load unchanged.

An optional XorMask can be applied to a whole file's bytes. It is a reversible
obfuscation only and gives no confidentiality.
"""
import logging
import os
import struct
import tempfile
from pathlib import Path
from typing import Callable, List

from finance_ledger.core.models import BudgetEntry, Category, Transaction, TxnType
from finance_ledger.ledger import Ledger
from finance_ledger.utils import to_decimal

logger = logging.getLogger(__name__)

CATEGORY_FILE = "categories.dat"
TRANSACTION_FILE = "transactions.dat"
BUDGET_FILE = "budgets.dat"


def _pack_text(text: str, width: int) -> bytes:
    # always leave room for the NUL terminator
    return text.encode("utf-8")[: width - 1]


def _unpack_text(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")


class XorMask:
    """Single-byte XOR applied to every byte; its own inverse."""

    def __init__(self, key):
        if isinstance(key, str):
            if len(key) != 1 or ord(key) > 255:
                raise ValueError(f"Obfuscation key must be a single byte character, got {key!r}")
            key = ord(key)
        key = int(key)
        if not 1 <= key <= 255:
            raise ValueError(f"Obfuscation key must be in 1..255, got {key}")
        self.key = key
        self._table = bytes(b ^ key for b in range(256))

    def apply(self, data: bytes) -> bytes:
        return data.translate(self._table)

    def __repr__(self):
        return f"XorMask(key={self.key})"


class RecordCodec:
    """Encode/decode a list of records to a fixed-size struct layout."""

    def __init__(self, fmt: str, pack: Callable, unpack: Callable):
        self.struct = struct.Struct(fmt)
        self._pack = pack
        self._unpack = unpack

    @property
    def size(self) -> int:
        return self.struct.size

    def encode(self, records) -> bytes:
        return b"".join(self.struct.pack(*self._pack(r)) for r in records)

    def decode(self, data: bytes) -> List:
        """
        Decode every whole record in ``data``. A trailing partial record is
        dropped, and a record whose fields do not parse (e.g. a non-finite
        amount) is skipped with a warning without losing its neighbours.
        """
        usable = len(data) - len(data) % self.size
        records = []
        for index, fields in enumerate(self.struct.iter_unpack(data[:usable])):
            try:
                records.append(self._unpack(*fields))
            except ValueError as exc:
                logger.warning("Skipping unreadable record %d: %s", index, exc)
        return records


CATEGORY_CODEC = RecordCodec(
    "<i64s",
    lambda c: (c.id, _pack_text(c.name, 64)),
    lambda id_, name: Category(id=id_, name=_unpack_text(name)),
)

TRANSACTION_CODEC = RecordCodec(
    "<i11sxdii256s",
    lambda t: (
        t.id,
        _pack_text(t.date, 11),
        float(t.amount),
        t.category_id,
        int(t.type),
        _pack_text(t.note, 256),
    ),
    lambda id_, date, amount, category_id, type_, note: Transaction(
        id=id_,
        date=_unpack_text(date),
        amount=to_decimal(amount),
        category_id=category_id,
        type=TxnType.from_code(type_),
        note=_unpack_text(note),
    ),
)

BUDGET_CODEC = RecordCodec(
    "<iii4xd",
    lambda b: (b.category_id, b.year, b.month, float(b.amount)),
    lambda category_id, year, month, amount: BudgetEntry(
        category_id=category_id, year=year, month=month, amount=to_decimal(amount)
    ),
)


class LedgerStorage:
    """Loads and saves a Ledger as three record files inside ``data_dir``."""

    def __init__(self, data_dir, mask: XorMask | None = None):
        self.data_dir = Path(data_dir)
        self.mask = mask

    @property
    def category_path(self) -> Path:
        return self.data_dir / CATEGORY_FILE

    @property
    def transaction_path(self) -> Path:
        return self.data_dir / TRANSACTION_FILE

    @property
    def budget_path(self) -> Path:
        return self.data_dir / BUDGET_FILE

    def read_records(self, path: Path, codec: RecordCodec) -> List:
        """Return the records in ``path``; a missing or unreadable file yields []."""
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            logger.debug("No data file at %s", path)
            return []
        except OSError as exc:
            logger.warning("Unable to read %s: %s", path, exc)
            return []
        if self.mask:
            data = self.mask.apply(data)
        records = codec.decode(data)
        logger.debug("Loaded %d record(s) from %s", len(records), path)
        return records

    def write_records(self, path: Path, codec: RecordCodec, records) -> bool:
        """Write ``records`` via a temp file renamed over ``path``. False on failure."""
        data = codec.encode(records)
        if self.mask:
            data = self.mask.apply(data)
        tmp_name = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "wb", dir=path.parent, prefix=f".{path.name}.", delete=False
            ) as fp:
                tmp_name = fp.name
                fp.write(data)
            os.replace(tmp_name, path)
        except OSError as exc:
            logger.warning("Unable to save %s: %s", path, exc)
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            return False
        return True

    def load(self) -> Ledger:
        return Ledger(
            categories=self.read_records(self.category_path, CATEGORY_CODEC),
            transactions=self.read_records(self.transaction_path, TRANSACTION_CODEC),
            budgets=self.read_records(self.budget_path, BUDGET_CODEC),
        )

    def save(self, ledger: Ledger) -> bool:
        """Save all three stores. Returns True only if every file was written."""
        results = [
            self.write_records(self.category_path, CATEGORY_CODEC, ledger.categories.list()),
            self.write_records(self.transaction_path, TRANSACTION_CODEC, ledger.transactions.list()),
            self.write_records(self.budget_path, BUDGET_CODEC, ledger.budgets.list()),
        ]
        return all(results)
