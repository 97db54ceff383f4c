"""Tax obligations and the organisation's tax profile."""
