# finance_ledger/cli.py
import logging
import os
from contextlib import contextmanager
from datetime import date

import click
import pandas as pd
import yaml
from dotenv import load_dotenv

from finance_ledger.config import load_config, parse_key, resolve_mask
from finance_ledger.errors import LedgerError
from finance_ledger.loaders import CSVLoader
from finance_ledger.outputs import CSVOutput
from finance_ledger.reports import month_report
from finance_ledger.storage import LedgerStorage, XorMask
from finance_ledger.utils import format_amount


def _table(rows, columns) -> str:
    if not rows:
        return " (none)"
    return pd.DataFrame(rows, columns=columns).to_string(index=False)


def _txn_rows(ledger, txns):
    return [
        [t.id, t.date, t.type.marker, format_amount(t.amount),
         ledger.category_name(t.category_id), t.note]
        for t in txns
    ]


_TXN_COLUMNS = ["id", "date", "type", "amount", "category", "note"]


@contextmanager
def _ledger(ctx, save=False):
    """Load the ledger, hand it to the command, and save it back if asked."""
    storage = ctx.obj["storage"]
    ledger = storage.load()
    try:
        yield ledger
    except LedgerError as exc:
        raise click.ClickException(str(exc)) from exc
    if save and not storage.save(ledger):
        click.echo(f"⚠️  Unable to save some data files in {storage.data_dir}", err=True)


@click.group()
@click.option(
    '--config', 'config_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='Path to a YAML config file'
)
@click.option(
    '--data-dir', 'data_dir',
    default=None,
    type=click.Path(file_okay=False),
    help='Directory holding the ledger data files (overrides config)'
)
@click.option(
    '--env-file', 'env_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Optional .env file, e.g. with LEDGERLY_OBFUSCATION_KEY'
)
@click.option(
    '--obfuscation-key', 'obfuscation_key',
    default=None,
    help='XOR obfuscation key (not encryption): a byte value such as 42, or a single non-digit character'
)
@click.option(
    '--no-obfuscation',
    is_flag=True,
    default=False,
    help='Read and write data files without obfuscation'
)
@click.pass_context
def main(ctx, config_path, data_dir, env_file, obfuscation_key, no_obfuscation):
    """
    Personal bookkeeping: record dated transactions by category, keep monthly
    budgets, and report on them. Data lives in three binary files in the data
    directory and is saved after every command that changes it.
    """
    if env_file:
        load_dotenv(env_file)
    logging.basicConfig(level=os.getenv("LEDGERLY_LOG_LEVEL", "WARNING").upper())

    try:
        cfg = load_config(config_path)
        if no_obfuscation:
            mask = None
        elif obfuscation_key:
            mask = XorMask(parse_key(obfuscation_key))
        else:
            mask = resolve_mask(cfg)
    except (ValueError, yaml.YAMLError) as exc:
        raise click.ClickException(str(exc)) from exc

    ctx.ensure_object(dict)
    ctx.obj["config"] = cfg
    ctx.obj["storage"] = LedgerStorage(data_dir or cfg["data_dir"], mask=mask)


# -------------------- categories --------------------

@main.group()
def category():
    """Add, list, rename and remove categories."""


@category.command("add")
@click.argument("name")
@click.pass_context
def category_add(ctx, name):
    with _ledger(ctx, save=True) as ledger:
        cat_id = ledger.categories.add(name)
        click.echo(f"Added category '{ledger.category_name(cat_id)}' (id={cat_id}).")


@category.command("list")
@click.pass_context
def category_list(ctx):
    with _ledger(ctx) as ledger:
        rows = [[c.id, c.name] for c in ledger.categories.list()]
        click.echo("Categories:")
        click.echo(_table(rows, ["id", "name"]))


@category.command("rename")
@click.argument("category_id", type=int)
@click.argument("name")
@click.pass_context
def category_rename(ctx, category_id, name):
    with _ledger(ctx, save=True) as ledger:
        ledger.categories.rename(category_id, name)
        click.echo("Updated.")


@category.command("remove")
@click.argument("category_id", type=int)
@click.pass_context
def category_remove(ctx, category_id):
    with _ledger(ctx, save=True) as ledger:
        ledger.remove_category(category_id)
        click.echo("Deleted.")


# -------------------- transactions --------------------

@main.group()
def tx():
    """Add, list, edit, remove and search transactions."""


@tx.command("add")
@click.option('--date', 'date_s', default=None, help='YYYY-MM-DD, defaults to today')
@click.option('--type', 'txn_type', type=click.Choice(['expense', 'income']), default='expense')
@click.option('--amount', required=True, help='Amount, must be > 0')
@click.option('--category-id', required=True, type=int)
@click.option('--note', default='')
@click.pass_context
def tx_add(ctx, date_s, txn_type, amount, category_id, note):
    date_s = date_s or date.today().isoformat()
    with _ledger(ctx, save=True) as ledger:
        txn_id = ledger.transactions.add(date_s, txn_type, amount, category_id, note)
        click.echo(f"Transaction added (id={txn_id}).")


@tx.command("list")
@click.option('--start', default=None, help='Inclusive start date')
@click.option('--end', default=None, help='Inclusive end date')
@click.pass_context
def tx_list(ctx, start, end):
    with _ledger(ctx) as ledger:
        txns = ledger.transactions.list(start, end)
        click.echo("Transactions:")
        click.echo(_table(_txn_rows(ledger, txns), _TXN_COLUMNS))


@tx.command("edit")
@click.argument("txn_id", type=int)
@click.option('--date', 'date_s', default=None)
@click.option('--type', 'txn_type', type=click.Choice(['expense', 'income']), default=None)
@click.option('--amount', default=None)
@click.option('--category-id', type=int, default=None)
@click.option('--note', default=None)
@click.pass_context
def tx_edit(ctx, txn_id, date_s, txn_type, amount, category_id, note):
    with _ledger(ctx, save=True) as ledger:
        rejected = ledger.transactions.edit(
            txn_id, date=date_s, type=txn_type, amount=amount,
            category_id=category_id, note=note,
        )
        for field in rejected:
            click.echo(f"Invalid {field}, kept previous value.", err=True)
        click.echo("Updated.")


@tx.command("remove")
@click.argument("txn_id", type=int)
@click.pass_context
def tx_remove(ctx, txn_id):
    with _ledger(ctx, save=True) as ledger:
        ledger.transactions.remove(txn_id)
        click.echo("Deleted.")


@tx.command("search")
@click.option('--start', default=None)
@click.option('--end', default=None)
@click.option('--category', default=None, help='Part of the category name')
@click.option('--min-amount', default=None, help='0 to ignore')
@click.option('--max-amount', default=None, help='0 to ignore')
@click.option('--note', default=None, help='Text in note')
@click.pass_context
def tx_search(ctx, start, end, category, min_amount, max_amount, note):
    with _ledger(ctx) as ledger:
        txns = ledger.transactions.search(
            start_date=start, end_date=end, category=category,
            min_amount=min_amount, max_amount=max_amount, note=note,
        )
        click.echo("Search results:")
        click.echo(_table(_txn_rows(ledger, txns), _TXN_COLUMNS))


# -------------------- budgets --------------------

@main.group()
def budget():
    """Set and list monthly category budgets."""


@budget.command("set")
@click.argument("category_id", type=int)
@click.argument("year", type=int)
@click.argument("month", type=int)
@click.argument("amount")
@click.pass_context
def budget_set(ctx, category_id, year, month, amount):
    with _ledger(ctx, save=True) as ledger:
        created = ledger.budgets.set(category_id, year, month, amount)
        click.echo("Budget set." if created else "Updated budget.")


@budget.command("list")
@click.pass_context
def budget_list(ctx):
    with _ledger(ctx) as ledger:
        rows = [
            [f"{b.year:04d}-{b.month:02d}", ledger.category_name(b.category_id),
             format_amount(b.amount)]
            for b in ledger.budgets.list()
        ]
        if not rows:
            click.echo("No budgets.")
            return
        click.echo(_table(rows, ["month", "category", "amount"]))


# -------------------- reports & CSV --------------------

@main.command()
@click.argument("year", type=int)
@click.argument("month", type=int)
@click.pass_context
def report(ctx, year, month):
    """Monthly summary, category summary and budget report for YEAR MONTH."""
    with _ledger(ctx) as ledger:
        rep = month_report(ledger, year, month)
        period = f"{year:04d}-{month:02d}"

        click.echo(f"Monthly Summary for {period}:")
        click.echo(f"  Total Income:  {format_amount(rep.summary.total_income)}")
        click.echo(f"  Total Expense: {format_amount(rep.summary.total_expense)}")
        click.echo(f"  Net Savings:   {format_amount(rep.summary.net)}")

        click.echo(f"\nCategory Summary {period}:")
        if not rep.categories:
            click.echo(" (no categories)")
        else:
            click.echo(_table(
                [[c.name, format_amount(c.net)] for c in rep.categories],
                ["category", "net"],
            ))

        click.echo(f"\nBudget Report {period}:")
        if rep.budgets.no_budgets:
            click.echo("  No budgets set for this month.")
        else:
            click.echo(_table(
                [[line.name, format_amount(line.budgeted), format_amount(line.used),
                  format_amount(line.remaining)] for line in rep.budgets.lines],
                ["category", "budget", "used", "remaining"],
            ))


@main.command("export")
@click.argument("path", required=False, type=click.Path(dir_okay=False))
@click.pass_context
def export_cmd(ctx, path):
    """Export all transactions to a CSV file."""
    path = path or ctx.obj["config"]["export_path"]
    with _ledger(ctx) as ledger:
        try:
            count = CSVOutput(ledger).export(path)
        except OSError as exc:
            raise click.ClickException(f"Unable to open {path} for export: {exc}") from exc
        click.echo(f"Exported {count} transaction(s) to {path}")


@main.command("import")
@click.argument("path", type=click.Path(dir_okay=False))
@click.pass_context
def import_cmd(ctx, path):
    """Append transactions from a CSV file, creating missing categories."""
    with _ledger(ctx, save=True) as ledger:
        try:
            result = CSVLoader(ledger).load(path)
        except OSError as exc:
            raise click.ClickException(f"Open failed for {path}: {exc}") from exc
        for name in result.created_categories:
            click.echo(f"Created category '{name}'")
        for lineno, reason in result.skipped:
            click.echo(f"Skipping line {lineno}: {reason}", err=True)
        click.echo(f"Import complete: {len(result.imported)} transaction(s) added.")
