"""
Domain types consumed by the forecast engine.

Everything here is a frozen snapshot: the loader builds these once per
run and the simulation loop only reads them.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from ledgercast.tax.types import TaxObligation


ZERO = Decimal("0")


class Precision(str, Enum):
    """How a figure was obtained."""
    PRECISE = "PRECISE"        # Read directly from ledger or store data
    ESTIMATED = "ESTIMATED"    # Derived from a heuristic or a stale snapshot
    DEGRADED = "DEGRADED"      # Source unavailable, default used


class Direction(str, Enum):
    """Which way the money moves."""
    RECEIVABLE = "RECEIVABLE"
    PAYABLE = "PAYABLE"


class PatternRole(str, Enum):
    """Role of a counterparty in a payment-behaviour pattern."""
    CUSTOMER = "CUSTOMER"
    SUPPLIER = "SUPPLIER"


class BudgetCategory(str, Enum):
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


@dataclass(frozen=True)
class Estimate:
    """A numeric value tagged with its data quality."""
    value: Decimal
    precision: Precision
    basis: str = ""

    @property
    def is_precise(self) -> bool:
        return self.precision == Precision.PRECISE


@dataclass(frozen=True)
class CashPosition:
    """Cash, receivables and payables as of the start of the run."""
    cash: Decimal = ZERO
    accounts_receivable: Decimal = ZERO
    accounts_payable: Decimal = ZERO
    precision: Precision = Precision.PRECISE

    @classmethod
    def degraded(cls) -> "CashPosition":
        """The all-zero position used when the store cannot be reached."""
        return cls(precision=Precision.DEGRADED)

    @property
    def is_degraded(self) -> bool:
        return self.precision == Precision.DEGRADED


@dataclass(frozen=True)
class OpenInvoiceLike:
    """An open receivable or payable. amount_due is always positive."""
    id: str
    counterparty_id: Optional[str]
    counterparty_name: Optional[str]
    issue_date: date
    due_date: date
    amount_due: Decimal
    total_amount: Decimal
    direction: Direction


@dataclass(frozen=True)
class RecurringSchedule:
    """A repeating invoice or bill with a fixed cadence."""
    id: str
    direction: Direction
    counterparty_id: Optional[str]
    interval_unit: str
    interval_count: int
    next_occurrence: date
    amount: Decimal
    end_date: Optional[date] = None


@dataclass(frozen=True)
class PaymentBehaviorPattern:
    """Historical payment timing for one counterparty."""
    counterparty_id: str
    role: PatternRole
    average_days_to_pay: int
    on_time_rate: Decimal
    sample_size: int


@dataclass(frozen=True)
class BudgetLine:
    account_code: str
    category: BudgetCategory
    month_period: str  # "YYYY-MM"
    budgeted_amount: Decimal


@dataclass(frozen=True)
class ForecastFacts:
    """
    Immutable snapshot of everything the simulation loop needs.

    degraded_sources names the loaders that failed and were replaced
    by an empty default.
    """
    today: date
    receivables: Tuple[OpenInvoiceLike, ...] = ()
    payables: Tuple[OpenInvoiceLike, ...] = ()
    recurring: Tuple[RecurringSchedule, ...] = ()
    patterns: Tuple[PaymentBehaviorPattern, ...] = ()
    budgets: Tuple[BudgetLine, ...] = ()
    tax_obligations: Tuple["TaxObligation", ...] = ()
    degraded_sources: Tuple[str, ...] = field(default_factory=tuple)
