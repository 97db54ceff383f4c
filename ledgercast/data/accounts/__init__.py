"""Bank accounts, general ledger accounts and bank transactions."""
