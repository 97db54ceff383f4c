"""Tax module - UK tax obligation rules and calculator."""
