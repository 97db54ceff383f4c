"""Persisted financial facts consumed by the forecast engine."""
from ledgercast.data.accounts.models import BankAccount, GLAccount, BankTransaction
from ledgercast.data.invoices.models import SyncedInvoice, RepeatingTransaction, PaymentPattern
from ledgercast.data.budgets.models import CashFlowBudget
from ledgercast.data.tax.models import TaxObligation, OrganisationTaxProfile
from ledgercast.data.forecasts.models import CashFlowForecast

__all__ = [
    "BankAccount",
    "GLAccount",
    "BankTransaction",
    "SyncedInvoice",
    "RepeatingTransaction",
    "PaymentPattern",
    "CashFlowBudget",
    "TaxObligation",
    "OrganisationTaxProfile",
    "CashFlowForecast",
]
