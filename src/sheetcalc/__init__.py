"""sheetcalc -- spreadsheet cell formula evaluator."""

__version__ = "0.1.0"
