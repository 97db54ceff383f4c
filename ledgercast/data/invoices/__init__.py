"""Open invoices, bills, repeating schedules and payment behaviour."""
