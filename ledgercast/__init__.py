"""Ledgercast - daily cash flow forecasting from synced accounting data."""

__version__ = "0.1.0"
