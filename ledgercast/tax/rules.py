"""
Tax rule calculator.

Pure functions deriving upcoming VAT, payroll (PAYE/NI) and corporation
tax obligations from an organisation's tax profile and a window of ledger
activity. Nothing here touches the database: given the same profile,
ledger window and "today" the output is identical, so every rule can be
tested on its own.

Liability estimates return an Estimate tagged PRECISE when they come from a
designated liability account, or ESTIMATED when a heuristic was used.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from dateutil.relativedelta import relativedelta

from ledgercast.forecast.types import Estimate, Precision
from ledgercast.tax.types import (
    LedgerAccount,
    LedgerTransaction,
    LedgerWindow,
    TaxKind,
    TaxObligation,
    TaxProfile,
    TaxRates,
    UK_TAX_RATES,
    VatReturnPeriod,
    VatScheme,
)

CENT = Decimal("0.01")
ZERO = Decimal("0")


# =============================================================================
# Ledger helpers
# =============================================================================

def _authorised(transactions: Iterable[LedgerTransaction]) -> List[LedgerTransaction]:
    return [t for t in transactions if t.status == "AUTHORISED"]


def _net(transactions: Iterable[LedgerTransaction]) -> Decimal:
    """Receipts minus spends."""
    total = ZERO
    for t in transactions:
        total += -t.amount if t.transaction_type == "SPEND" else t.amount
    return total


def _is_liability(account: LedgerAccount) -> bool:
    return account.account_class.upper() == "LIABILITY"


def _matches(account: LedgerAccount, codes: Sequence[str], markers: Sequence[str]) -> bool:
    name = account.name.upper()
    return account.code in codes or any(marker.upper() in name for marker in markers)


def find_vat_account(window: LedgerWindow, rates: TaxRates = UK_TAX_RATES) -> Optional[LedgerAccount]:
    """The designated VAT/GST liability account, if the chart of accounts has one."""
    candidates = [
        a for a in window.accounts
        if _is_liability(a) and _matches(a, rates.vat_liability_codes, rates.vat_account_markers)
    ]
    if not candidates:
        return None
    return sorted(candidates, key=lambda a: a.code)[0]


def find_payroll_accounts(window: LedgerWindow, rates: TaxRates = UK_TAX_RATES) -> List[LedgerAccount]:
    """PAYE / National Insurance liability accounts."""
    return sorted(
        (
            a for a in window.accounts
            if _is_liability(a) and _matches(a, rates.payroll_liability_codes, rates.payroll_account_markers)
        ),
        key=lambda a: a.code,
    )


# =============================================================================
# Liability estimates
# =============================================================================

def estimate_vat_liability(
    window: LedgerWindow,
    today: date,
    rates: TaxRates = UK_TAX_RATES,
) -> Estimate:
    """
    Estimate the VAT liability.

    Prefers the net balance of the VAT liability account. Without one,
    falls back to the VAT rate applied to trailing receipts, averaged
    per month.
    """
    account = find_vat_account(window, rates)
    if account is not None:
        txns = [t for t in _authorised(window.transactions) if t.account_code == account.code]
        return Estimate(
            value=abs(_net(txns)),
            precision=Precision.PRECISE,
            basis=f"Ledger account {account.code} ({account.name})",
        )

    since = today - relativedelta(months=rates.vat_lookback_months)
    sales = sum(
        (
            t.amount for t in _authorised(window.transactions)
            if t.transaction_type == "RECEIVE" and t.date >= since
        ),
        ZERO,
    )
    return Estimate(
        value=sales * rates.vat_rate / rates.vat_lookback_months,
        precision=Precision.ESTIMATED,
        basis=f"{rates.vat_rate:.0%} of receipts over the last {rates.vat_lookback_months} months, monthly average",
    )


def estimate_payroll_liability(
    window: LedgerWindow,
    today: date,
    rates: TaxRates = UK_TAX_RATES,
) -> Estimate:
    """
    Estimate one month of PAYE/NI.

    Prefers last month's net movement on the payroll liability accounts.
    Without them, applies a flat factor to last month's payroll-looking
    spends.
    """
    since = today - relativedelta(months=rates.payroll_lookback_months)
    recent = [t for t in _authorised(window.transactions) if t.date >= since]

    accounts = find_payroll_accounts(window, rates)
    if accounts:
        codes = {a.code for a in accounts}
        txns = [t for t in recent if t.account_code in codes]
        return Estimate(
            value=abs(_net(txns)),
            precision=Precision.PRECISE,
            basis="Ledger accounts " + ", ".join(sorted(codes)),
        )

    keywords = [k.lower() for k in rates.payroll_keywords]
    payroll = sum(
        (
            t.amount for t in recent
            if t.transaction_type == "SPEND"
            and t.description
            and any(k in t.description.lower() for k in keywords)
        ),
        ZERO,
    )
    return Estimate(
        value=payroll * rates.payroll_estimate_factor,
        precision=Precision.ESTIMATED,
        basis=f"{rates.payroll_estimate_factor:.0%} of payroll spend over the last {rates.payroll_lookback_months} month(s)",
    )


def estimate_annual_profit(
    window: LedgerWindow,
    today: date,
    rates: TaxRates = UK_TAX_RATES,
) -> Estimate:
    """Trailing twelve-month receipts minus payments, floored at zero."""
    since = today - relativedelta(months=rates.profit_lookback_months)
    txns = [t for t in _authorised(window.transactions) if t.date >= since]
    return Estimate(
        value=max(ZERO, _net(txns)),
        precision=Precision.ESTIMATED,
        basis=f"Cash receipts less payments over the last {rates.profit_lookback_months} months",
    )


def corporate_tax_rate(profit: Decimal, rates: TaxRates = UK_TAX_RATES) -> Decimal:
    """Two-bracket rate: small-profits rate below the threshold, main rate at or above it."""
    if profit >= rates.corporate_threshold:
        return rates.corporate_main_rate
    return rates.corporate_small_rate


# =============================================================================
# Due dates
# =============================================================================

def vat_due_date(period_end: date, rates: TaxRates = UK_TAX_RATES) -> date:
    """One calendar month and seven days after the period end."""
    return period_end + relativedelta(months=rates.vat_due_months) + timedelta(days=rates.vat_due_days)


def payroll_due_date(month_start: date, rates: TaxRates = UK_TAX_RATES) -> date:
    """The payroll due day of the following month."""
    return (month_start + relativedelta(months=1)).replace(day=rates.payroll_due_day)


def corporate_due_date(year_end: date, rates: TaxRates = UK_TAX_RATES) -> date:
    """Nine months and one day after the financial year end."""
    return year_end + relativedelta(months=rates.corporate_due_months) + timedelta(days=rates.corporate_due_days)


def fiscal_year_end(year: int, profile: TaxProfile) -> date:
    """Year end in the given calendar year, clamped for short months (29 Feb)."""
    month_start = date(year, profile.financial_year_end_month, 1)
    last_day = (month_start + relativedelta(months=1) - timedelta(days=1)).day
    return month_start.replace(day=min(profile.financial_year_end_day, last_day))


def _quarter_start(d: date) -> date:
    return date(d.year, 3 * ((d.month - 1) // 3) + 1, 1)


# =============================================================================
# Obligation rules
# =============================================================================

def vat_obligations(
    profile: TaxProfile,
    liability: Estimate,
    today: date,
    horizon_end: date,
    rates: TaxRates = UK_TAX_RATES,
) -> List[TaxObligation]:
    """VAT returns whose payment falls due within [today, horizon_end]."""
    if profile.vat_scheme == VatScheme.NONE:
        return []

    quarterly = profile.vat_returns == VatReturnPeriod.QUARTERLY
    months = 3 if quarterly else 1
    divisor = 4 if quarterly else 12
    amount = (liability.value / divisor).quantize(CENT)

    # A period that ended up to ~5 weeks ago can still be due inside the horizon
    lookback = today - relativedelta(months=2)
    period_start = _quarter_start(lookback) if quarterly else lookback.replace(day=1)

    obligations = []
    while period_start <= horizon_end:
        period_end = period_start + relativedelta(months=months) - timedelta(days=1)
        due = vat_due_date(period_end, rates)
        if today <= due <= horizon_end:
            if quarterly:
                quarter = (period_start.month - 1) // 3 + 1
                reference = f"VAT Q{quarter} {period_start.year}"
                notes = "Quarterly VAT return"
            else:
                reference = f"VAT {period_start.strftime('%b %Y')}"
                notes = "Monthly VAT return"
            obligations.append(TaxObligation(
                kind=TaxKind.VAT,
                due_date=due,
                amount=amount,
                reference=reference,
                period_start=period_start,
                period_end=period_end,
                precision=liability.precision,
                notes=f"{notes} ({liability.basis})",
            ))
        period_start += relativedelta(months=months)

    return obligations


def payroll_obligations(
    liability: Estimate,
    today: date,
    horizon_end: date,
    rates: TaxRates = UK_TAX_RATES,
) -> List[TaxObligation]:
    """Monthly PAYE/NI payments due within [today, horizon_end]."""
    amount = liability.value.quantize(CENT)
    month_start = (today - relativedelta(months=1)).replace(day=1)

    obligations = []
    while month_start <= horizon_end:
        due = payroll_due_date(month_start, rates)
        if today <= due <= horizon_end:
            obligations.append(TaxObligation(
                kind=TaxKind.PAYROLL,
                due_date=due,
                amount=amount,
                reference=f"PAYE/NI {month_start.strftime('%b %Y')}",
                period_start=month_start,
                period_end=month_start + relativedelta(months=1) - timedelta(days=1),
                precision=liability.precision,
                notes=f"Monthly PAYE and NI payment ({liability.basis})",
            ))
        month_start += relativedelta(months=1)

    return obligations


def corporate_obligations(
    profile: TaxProfile,
    profit: Estimate,
    today: date,
    horizon_end: date,
    rates: TaxRates = UK_TAX_RATES,
) -> List[TaxObligation]:
    """
    Corporation tax for each financial year end in [today, today + 1 year],
    plus any earlier year end whose payment falls due inside the horizon.
    """
    rate = corporate_tax_rate(profit.value, rates)
    amount = (profit.value * rate).quantize(CENT)
    year_limit = today + relativedelta(years=1)

    obligations = []
    for year in range(today.year - 1, today.year + 2):
        year_end = fiscal_year_end(year, profile)
        due = corporate_due_date(year_end, rates)
        upcoming_year_end = today <= year_end <= year_limit
        due_in_horizon = today <= due <= horizon_end
        if not (upcoming_year_end or due_in_horizon):
            continue
        obligations.append(TaxObligation(
            kind=TaxKind.CORPORATE,
            due_date=due,
            amount=amount,
            reference=f"CT FY{year_end.year}",
            period_start=year_end - relativedelta(years=1) + timedelta(days=1),
            period_end=year_end,
            precision=profit.precision,
            notes=f"Corporation tax at {rate:.0%} for year ending {year_end.strftime('%d/%m/%Y')}",
        ))

    return obligations


def calculate_upcoming_obligations(
    horizon_days: int,
    profile: TaxProfile,
    ledger: LedgerWindow,
    today: date,
    rates: TaxRates = UK_TAX_RATES,
) -> List[TaxObligation]:
    """
    Derive every VAT, payroll and corporation tax obligation for the horizon.

    Sorted by (due_date, kind) so callers get a stable order.
    """
    horizon_end = today + timedelta(days=horizon_days)

    obligations: List[TaxObligation] = []
    obligations.extend(vat_obligations(
        profile, estimate_vat_liability(ledger, today, rates), today, horizon_end, rates
    ))
    obligations.extend(payroll_obligations(
        estimate_payroll_liability(ledger, today, rates), today, horizon_end, rates
    ))
    obligations.extend(corporate_obligations(
        profile, estimate_annual_profit(ledger, today, rates), today, horizon_end, rates
    ))

    return sort_obligations(obligations)


def sort_obligations(obligations: Iterable[TaxObligation]) -> List[TaxObligation]:
    return sorted(obligations, key=lambda o: (o.due_date, o.kind.value))


def merge_obligations(
    persisted: Iterable[TaxObligation],
    calculated: Iterable[TaxObligation],
) -> List[TaxObligation]:
    """Deduplicate by (kind, due_date). A persisted record beats a calculated one."""
    merged = {}
    for obligation in persisted:
        merged.setdefault(obligation.key, obligation)
    for obligation in calculated:
        merged.setdefault(obligation.key, obligation)
    return sort_obligations(merged.values())
