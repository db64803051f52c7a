import yaml
from click.testing import CliRunner

from finance_ledger.cli import main as cli
from finance_ledger.storage import LedgerStorage, XorMask


def run(args, data_dir, extra=None):
    runner = CliRunner()
    res = runner.invoke(cli, (extra or []) + ['--data-dir', str(data_dir)] + args)
    return res


def test_cli_full_session(tmp_path):
    data = tmp_path / 'data'

    res = run(['category', 'add', 'Food'], data)
    assert res.exit_code == 0, res.output
    assert "id=1" in res.output

    res = run(['tx', 'add', '--date', '2024-03-15', '--amount', '42.50',
               '--category-id', '1', '--note', 'lunch'], data)
    assert res.exit_code == 0, res.output
    assert "Transaction added (id=1)" in res.output

    res = run(['tx', 'list'], data)
    assert res.exit_code == 0, res.output
    assert 'lunch' in res.output and '42.50' in res.output and 'EX' in res.output

    res = run(['budget', 'set', '1', '2024', '3', '100'], data)
    assert res.exit_code == 0, res.output
    assert 'Budget set.' in res.output
    res = run(['budget', 'set', '1', '2024', '3', '120'], data)
    assert 'Updated budget.' in res.output

    res = run(['report', '2024', '3'], data)
    assert res.exit_code == 0, res.output
    assert 'Total Expense: 42.50' in res.output
    assert 'Net Savings:   -42.50' in res.output
    assert '77.50' in res.output

    res = run(['report', '2024', '4'], data)
    assert 'No budgets set for this month.' in res.output

    out = tmp_path / 'export.csv'
    res = run(['export', str(out)], data)
    assert res.exit_code == 0, res.output
    assert out.read_text().splitlines()[1] == '1,2024-03-15,0,42.50,Food,lunch'

    ledger = LedgerStorage(data).load()
    assert len(ledger.transactions) == 1
    assert len(ledger.budgets) == 1


def test_cli_reports_errors_without_traceback(tmp_path):
    data = tmp_path / 'data'
    run(['category', 'add', 'Food'], data)
    run(['tx', 'add', '--date', '2024-03-15', '--amount', '5', '--category-id', '1'], data)

    res = run(['category', 'remove', '1'], data)
    assert res.exit_code == 1
    assert 'used by transactions' in res.output

    res = run(['tx', 'add', '--date', '2024-3-15', '--amount', '5', '--category-id', '1'], data)
    assert res.exit_code == 1
    assert 'Invalid date' in res.output

    res = run(['tx', 'remove', '99'], data)
    assert res.exit_code == 1
    assert 'not found' in res.output

    assert len(LedgerStorage(data).load().transactions) == 1


def test_cli_edit_and_search(tmp_path):
    data = tmp_path / 'data'
    run(['category', 'add', 'Food'], data)
    run(['tx', 'add', '--date', '2024-03-15', '--amount', '5', '--category-id', '1',
         '--note', 'coffee'], data)

    res = run(['tx', 'edit', '1', '--amount', '-3', '--note', 'espresso'], data)
    assert res.exit_code == 0, res.output
    assert 'Invalid amount' in res.output

    txn = LedgerStorage(data).load().transactions.get(1)
    assert txn.note == 'espresso'
    assert str(txn.amount) == '5.0'

    res = run(['tx', 'search', '--category', 'foo', '--note', 'ESP'], data)
    assert res.exit_code == 0, res.output
    assert 'espresso' in res.output

    res = run(['tx', 'search', '--min-amount', '10'], data)
    assert '(none)' in res.output


def test_cli_import_and_category_listing(tmp_path):
    data = tmp_path / 'data'
    src = tmp_path / 'in.csv'
    src.write_text(
        'date,type,amount,category,note\n'
        '2024-03-01,1,2500,Salary,pay\n'
        'bad,0,1,Food,x\n'
    )
    res = run(['import', str(src)], data)
    assert res.exit_code == 0, res.output
    assert "Created category 'Salary'" in res.output
    assert 'Skipping line 3' in res.output
    assert '1 transaction(s) added' in res.output

    res = run(['category', 'list'], data)
    assert 'Salary' in res.output

    res = run(['import', str(tmp_path / 'missing.csv')], data)
    assert res.exit_code == 1


def test_cli_obfuscation_from_config(tmp_path):
    data = tmp_path / 'data'
    cfg = tmp_path / 'config.yaml'
    cfg.write_text(yaml.safe_dump({
        'data_dir': str(data),
        'obfuscation': {'enabled': True, 'key': 'k'},
    }))

    runner = CliRunner()
    res = runner.invoke(cli, ['--config', str(cfg), 'category', 'add', 'Secret'])
    assert res.exit_code == 0, res.output

    assert LedgerStorage(data, mask=XorMask('k')).load().categories.get(1).name == 'Secret'
    raw = (data / 'categories.dat').read_bytes()
    assert b'Secret' not in raw

    res = runner.invoke(cli, ['--config', str(cfg), 'category', 'list'])
    assert 'Secret' in res.output


def test_cli_budget_list_empty(tmp_path):
    res = run(['budget', 'list'], tmp_path)
    assert res.exit_code == 0
    assert 'No budgets.' in res.output


def test_cli_import_reports_undecodable_line(tmp_path):
    data = tmp_path / 'data'
    src = tmp_path / 'in.csv'
    src.write_bytes(
        b'date,type,amount,category,note\n'
        b'2024-03-01,0,4.20,Food,caf\xe9\n'
        b'2024-03-02,0,5,Food,tea\n'
    )
    res = run(['import', str(src)], data)
    assert res.exit_code == 0, res.output
    assert 'Skipping line 2: not valid UTF-8' in res.output
    assert '1 transaction(s) added' in res.output
    assert len(LedgerStorage(data).load().transactions) == 1


def test_cli_rejects_unstorable_amount(tmp_path):
    data = tmp_path / 'data'
    run(['category', 'add', 'Food'], data)
    res = run(['tx', 'add', '--date', '2024-03-01', '--amount', '1e400',
               '--category-id', '1'], data)
    assert res.exit_code == 1
    assert 'cannot be stored exactly' in res.output
    assert len(LedgerStorage(data).load().transactions) == 0


def test_cli_malformed_config_is_reported(tmp_path):
    cfg = tmp_path / 'config.yaml'
    cfg.write_text('obfuscation: [unclosed\n')
    res = CliRunner().invoke(cli, ['--config', str(cfg), 'category', 'list'])
    assert res.exit_code == 1
    assert isinstance(res.exception, SystemExit)
    assert 'Error:' in res.output


def test_cli_digit_obfuscation_key_is_a_byte_value(tmp_path):
    data = tmp_path / 'data'
    res = run(['category', 'add', 'Secret'], data, extra=['--obfuscation-key', '7'])
    assert res.exit_code == 0, res.output
    assert LedgerStorage(data, mask=XorMask(7)).load().categories.get(1).name == 'Secret'
