"""Tax domain types and the immutable rate table."""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

from ledgercast.forecast.types import Precision


class TaxKind(str, Enum):
    VAT = "VAT"
    PAYROLL = "PAYROLL"
    CORPORATE = "CORPORATE"


class TaxStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class VatScheme(str, Enum):
    STANDARD = "STANDARD"
    CASH = "CASH"
    FLAT_RATE = "FLAT_RATE"
    NONE = "NONE"


class VatReturnPeriod(str, Enum):
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"


@dataclass(frozen=True)
class TaxObligation:
    """
    A future tax payment.

    persisted is True when the obligation came from the store rather
    than from the calculator; only calculated ones get written back.
    """
    kind: TaxKind
    due_date: date
    amount: Decimal
    reference: str
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    status: TaxStatus = TaxStatus.PENDING
    precision: Precision = Precision.PRECISE
    notes: Optional[str] = None
    persisted: bool = False

    @property
    def key(self) -> Tuple[TaxKind, date]:
        """Deduplication key."""
        return (self.kind, self.due_date)


@dataclass(frozen=True)
class TaxProfile:
    """Organisation tax settings. Defaults match a UK company with a March year end."""
    financial_year_end_month: int = 3
    financial_year_end_day: int = 31
    vat_scheme: VatScheme = VatScheme.STANDARD
    vat_returns: VatReturnPeriod = VatReturnPeriod.QUARTERLY
    registration_number: Optional[str] = None


@dataclass(frozen=True)
class LedgerAccount:
    code: str
    name: str
    account_class: str


@dataclass(frozen=True)
class LedgerTransaction:
    date: date
    transaction_type: str  # "RECEIVE" | "SPEND"
    amount: Decimal
    account_code: Optional[str] = None
    description: Optional[str] = None
    status: str = "AUTHORISED"


@dataclass(frozen=True)
class LedgerWindow:
    """Chart of accounts plus the trailing transactions the estimates read."""
    accounts: Tuple[LedgerAccount, ...] = ()
    transactions: Tuple[LedgerTransaction, ...] = ()


@dataclass(frozen=True)
class TaxRates:
    """
    Rates, cadences and heuristics for a single jurisdiction.

    Defaults are the UK regime: VAT due one month and seven days after the
    period end, PAYE/NI on the 22nd of the following month, corporation
    tax nine months and one day after the year end.
    """
    vat_rate: Decimal = Decimal("0.20")
    vat_liability_codes: Tuple[str, ...] = ("820",)
    vat_account_markers: Tuple[str, ...] = ("VAT", "GST")
    vat_lookback_months: int = 3
    vat_due_months: int = 1
    vat_due_days: int = 7

    payroll_liability_codes: Tuple[str, ...] = ("814", "825", "826")
    payroll_account_markers: Tuple[str, ...] = ("PAYE", "NATIONAL INSURANCE")
    payroll_keywords: Tuple[str, ...] = ("salary", "payroll", "wages")
    payroll_estimate_factor: Decimal = Decimal("0.30")
    payroll_lookback_months: int = 1
    payroll_due_day: int = 22

    corporate_small_rate: Decimal = Decimal("0.19")
    corporate_main_rate: Decimal = Decimal("0.25")
    corporate_threshold: Decimal = Decimal("250000")
    profit_lookback_months: int = 12
    corporate_due_months: int = 9
    corporate_due_days: int = 1


UK_TAX_RATES = TaxRates()
