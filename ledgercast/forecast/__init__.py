"""Forecast module - daily cash flow projection, caching and storage."""
