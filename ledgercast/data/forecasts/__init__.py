"""Persisted daily forecasts."""
