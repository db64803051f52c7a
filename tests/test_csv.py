from decimal import Decimal

from finance_ledger.core.models import Transaction, TxnType
from finance_ledger.ledger import Ledger
from finance_ledger.loaders import CSVLoader
from finance_ledger.outputs import CSVOutput


def _food_ledger():
    ledger = Ledger()
    ledger.categories.add("Food")
    ledger.transactions.add("2024-03-15", TxnType.EXPENSE, Decimal("42.50"), 1, "lunch")
    return ledger


def test_export_format(tmp_path):
    out = tmp_path / "out.csv"
    count = CSVOutput(_food_ledger()).export(out)
    assert count == 1
    lines = out.read_text().splitlines()
    assert lines == ["id,date,type,amount,category,note", "1,2024-03-15,0,42.50,Food,lunch"]


def test_export_unknown_category_and_income(tmp_path):
    ledger = Ledger(transactions=[
        Transaction(7, "2024-01-02", Decimal("3.456"), 9, TxnType.INCOME, "a,b")
    ])
    out = tmp_path / "out.csv"
    CSVOutput(ledger).export(out)
    assert out.read_text().splitlines()[1] == "7,2024-01-02,1,3.46,UNKNOWN,a,b"


def test_export_then_import_into_empty_ledger(tmp_path):
    out = tmp_path / "out.csv"
    CSVOutput(_food_ledger()).export(out)

    fresh = Ledger()
    fresh.categories.add("Rent")
    fresh.transactions.add("2024-01-01", "expense", "700", 1)
    result = CSVLoader(fresh).load(out)

    assert result.skipped == []
    assert result.created_categories == ["Food"]
    food = fresh.categories.find_by_name("food")
    assert food is not None and food.name == "Food"
    txn = fresh.transactions.get(result.imported[0])
    assert txn.id == 2
    assert txn.date == "2024-03-15"
    assert txn.amount == Decimal("42.50")
    assert txn.type is TxnType.EXPENSE
    assert txn.note == "lunch"
    assert txn.category_id == food.id


def test_import_without_id_column(tmp_path):
    src = tmp_path / "in.csv"
    src.write_text(
        "date,type,amount,category,note\n"
        "2024-03-01,1,2500,salary,March pay\n"
        "2024-03-02,0,12.5,FOOD,coffee, cake, and tip\n"
        "2024-03-03,0,7,Food,\n"
    )
    ledger = Ledger()
    ledger.categories.add("Food")
    result = CSVLoader(ledger).load(src)

    assert result.created_categories == ["salary"]
    assert len(result.imported) == 3
    pay, cake, plain = (ledger.transactions.get(i) for i in result.imported)
    assert pay.type is TxnType.INCOME and pay.amount == Decimal("2500")
    assert cake.category_id == 1
    assert cake.note == "coffee, cake, and tip"
    assert plain.note == ""


def test_import_skips_and_reports_bad_lines(tmp_path):
    src = tmp_path / "in.csv"
    src.write_text(
        "date,type,amount,category,note\r\n"
        "2024-3-01,0,10,Food,bad date\r\n"
        "2024-03-01,0,-4,Food,negative\r\n"
        "2024-03-01,0,abc,Food,not a number\r\n"
        "2024-03-01,0,5,,no category\r\n"
        "2024-03-01,0\r\n"
        "\r\n"
        "2024-03-05,0,5,NewCat,ok\r\n"
    )
    ledger = Ledger()
    result = CSVLoader(ledger).load(src)

    assert [lineno for lineno, _ in result.skipped] == [2, 3, 4, 5, 6]
    assert "invalid date" in result.skipped[0][1]
    assert len(result.imported) == 1
    assert [c.name for c in ledger.categories.list()] == ["NewCat"]
    assert ledger.transactions.get(result.imported[0]).note == "ok"


def test_import_never_reuses_foreign_ids(tmp_path):
    src = tmp_path / "in.csv"
    src.write_text(
        "id,date,type,amount,category,note\n"
        "500,2024-03-01,0,1,Food,x\n"
        "500,2024-03-02,0,2,Food,y\n"
    )
    ledger = Ledger()
    result = CSVLoader(ledger).load(src)
    assert result.imported == [1, 2]
    assert len(ledger.categories.list()) == 1


def test_import_skips_line_with_invalid_utf8(tmp_path):
    src = tmp_path / "latin1.csv"
    src.write_bytes(
        b"date,type,amount,category,note\n"
        b"2024-03-01,0,4.20,Food,caf\xe9\n"
        b"2024-03-02,0,5,Food,tea\n"
    )
    ledger = Ledger()
    result = CSVLoader(ledger).load(src)
    assert result.skipped == [(2, "not valid UTF-8")]
    assert [t.note for t in ledger.transactions.list()] == ["tea"]


def test_import_accepts_bom_before_id_header(tmp_path):
    src = tmp_path / "bom.csv"
    src.write_bytes(
        "\ufeffid,date,type,amount,category,note\n"
        "7,2024-03-15,0,42.50,Food,lunch\n".encode("utf-8")
    )
    ledger = Ledger()
    result = CSVLoader(ledger).load(src)
    assert result.skipped == []
    txn = ledger.transactions.get(1)
    assert (txn.date, txn.amount, txn.note) == ("2024-03-15", Decimal("42.50"), "lunch")
    assert ledger.category_name(txn.category_id) == "Food"
