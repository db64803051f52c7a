from finance_ledger.loaders.csv_loader import CSVLoader, ImportResult

__all__ = ["CSVLoader", "ImportResult"]
