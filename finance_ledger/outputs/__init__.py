from finance_ledger.outputs.csv_output import CSVOutput

__all__ = ["CSVOutput"]
