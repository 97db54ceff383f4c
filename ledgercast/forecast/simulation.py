"""
Daily simulation loop.

Walks the horizon one calendar day at a time. Each day's closing balance
becomes the next day's opening balance, so the loop is strictly
sequential. It performs no I/O and never awaits; an exception here means
the input snapshot broke an invariant and is allowed to propagate.
"""
import calendar
from collections import defaultdict
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from ledgercast.forecast.errors import validate_horizon
from ledgercast.forecast.parameters import (
    AlertThresholds,
    ConfidenceWeights,
    DEFAULT_PARAMETERS,
    ForecastParameters,
    ScenarioFactors,
)
from ledgercast.forecast.schemas import (
    Alert,
    AlertKind,
    AlertSeverity,
    DailyForecast,
    Inflows,
    Outflows,
    Scenarios,
)
from ledgercast.forecast.types import (
    BudgetCategory,
    BudgetLine,
    CashPosition,
    Direction,
    ForecastFacts,
    OpenInvoiceLike,
    PaymentBehaviorPattern,
    PatternRole,
    RecurringSchedule,
    ZERO,
)
from ledgercast.tax.types import TaxObligation

CENT = Decimal("0.01")

PatternIndex = Dict[Tuple[str, PatternRole], PaymentBehaviorPattern]


class InferredPatternModel(Protocol):
    """Predicts recurring-but-unscheduled expenses from transaction history."""

    def expected_outflow(self, day: date) -> Decimal:
        ...


def inferred_pattern_outflow(day: date, model: Optional[InferredPatternModel] = None) -> Decimal:
    """
    Outflow expected from recurring expenses that have no schedule.

    Not implemented yet: there is no built-in pattern model, so this is
    zero unless a model is supplied. A zero here means "not modelled",
    not "no such expenses".
    """
    if model is None:
        return ZERO
    return model.expected_outflow(day)


# =============================================================================
# Cash movement by date
# =============================================================================

def index_patterns(patterns: Iterable[PaymentBehaviorPattern]) -> PatternIndex:
    """Look-up table keyed by (counterparty_id, role)."""
    return {(p.counterparty_id, p.role): p for p in patterns}


def expected_payment_date(
    item: OpenInvoiceLike, patterns: PatternIndex, role: PatternRole
) -> date:
    """Due date shifted by the counterparty's average days-to-pay, if known."""
    pattern = patterns.get((item.counterparty_id, role)) if item.counterparty_id else None
    if pattern is None:
        return item.due_date
    return item.due_date + timedelta(days=pattern.average_days_to_pay)


def bucket_invoices(
    items: Sequence[OpenInvoiceLike], patterns: PatternIndex, role: PatternRole
) -> Dict[date, Decimal]:
    """Total amount due per expected payment date."""
    buckets: Dict[date, Decimal] = defaultdict(lambda: ZERO)
    for item in items:
        buckets[expected_payment_date(item, patterns, role)] += item.amount_due
    return buckets


def bucket_recurring(
    schedules: Sequence[RecurringSchedule], direction: Direction
) -> Dict[date, Decimal]:
    """Total scheduled amount per next occurrence, for one direction."""
    buckets: Dict[date, Decimal] = defaultdict(lambda: ZERO)
    for schedule in schedules:
        if schedule.direction == direction:
            buckets[schedule.next_occurrence] += schedule.amount
    return buckets


def bucket_tax(obligations: Sequence[TaxObligation]) -> Dict[date, Decimal]:
    buckets: Dict[date, Decimal] = defaultdict(lambda: ZERO)
    for obligation in obligations:
        buckets[obligation.due_date] += obligation.amount
    return buckets


def budget_outflow(
    day: date,
    budgets: Sequence[BudgetLine],
    accounted_outflow: Decimal,
    weight: Decimal,
) -> Decimal:
    """
    Budgeted spend not already covered by known outflows.

    Each EXPENSE line for the month is spread evenly across its days; the
    day's known outflows are taken off, floored at zero, then weighted by
    the budget confidence.
    """
    month = day.strftime("%Y-%m")
    days_in_month = calendar.monthrange(day.year, day.month)[1]

    total = ZERO
    for budget in budgets:
        if budget.category != BudgetCategory.EXPENSE or budget.month_period != month:
            continue
        daily = budget.budgeted_amount / days_in_month
        total += max(ZERO, daily - accounted_outflow) * weight
    return total.quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# Scenarios, confidence and alerts
# =============================================================================

def calculate_scenarios(
    opening_balance: Decimal,
    inflow: Decimal,
    outflow: Decimal,
    factors: ScenarioFactors,
) -> Scenarios:
    return Scenarios(
        best_case=opening_balance + inflow * factors.best_inflow - outflow * factors.best_outflow,
        worst_case=opening_balance + inflow * factors.worst_inflow - outflow * factors.worst_outflow,
    )


def calculate_confidence(
    weights: ConfidenceWeights,
    *,
    invoice_in: Decimal = ZERO,
    recurring_in: Decimal = ZERO,
    bills_out: Decimal = ZERO,
    recurring_out: Decimal = ZERO,
    inferred_out: Decimal = ZERO,
    budget_out: Decimal = ZERO,
) -> Decimal:
    """
    Volume-weighted confidence for the day, rounded to two places.

    Tax outflows carry no category weight and are left out. A day with
    no weighted flow is fully certain.
    """
    weighted = [
        (invoice_in, weights.confirmed_invoice),
        (recurring_in, weights.repeating_schedule),
        (bills_out, weights.confirmed_invoice),
        (recurring_out, weights.repeating_schedule),
        (inferred_out, weights.inferred_pattern),
        (budget_out, weights.budgeted),
    ]
    total = sum((amount for amount, _ in weighted), ZERO)
    if total == 0:
        return Decimal("1.00")

    score = sum((amount * weight for amount, weight in weighted), ZERO) / total
    return score.quantize(CENT, rounding=ROUND_HALF_UP)


def _money(amount: Decimal) -> str:
    return f"{amount:,.2f}"


def generate_alerts(
    *,
    closing_balance: Decimal,
    total_outflow: Decimal,
    tax_outflow: Decimal,
    is_first_day: bool,
    today: date,
    receivables: Sequence[OpenInvoiceLike],
    thresholds: AlertThresholds,
    currency_symbol: str,
) -> List[Alert]:
    alerts: List[Alert] = []

    if closing_balance < thresholds.low_balance:
        state = "negative" if closing_balance < 0 else "low"
        alerts.append(Alert(
            kind=AlertKind.LOW_BALANCE,
            severity=(
                AlertSeverity.CRITICAL
                if closing_balance < thresholds.critical_balance
                else AlertSeverity.WARNING
            ),
            message=f"Cash balance projected to be {state} at {currency_symbol}{_money(closing_balance)}",
            amount=closing_balance,
        ))

    if total_outflow > thresholds.large_payment:
        alerts.append(Alert(
            kind=AlertKind.LARGE_PAYMENT,
            severity=AlertSeverity.INFO,
            message=f"Large payments totaling {currency_symbol}{_money(total_outflow)} scheduled",
            amount=total_outflow,
        ))

    if tax_outflow > 0:
        alerts.append(Alert(
            kind=AlertKind.TAX_DUE,
            severity=AlertSeverity.WARNING,
            message=f"Tax payment of {currency_symbol}{_money(tax_outflow)} due",
            amount=tax_outflow,
        ))

    # Overdue receivables are reported once, on the first day
    if is_first_day:
        overdue = [r for r in receivables if (today - r.due_date).days > thresholds.overdue_days]
        if overdue:
            overdue_amount = sum((r.amount_due for r in overdue), ZERO)
            alerts.append(Alert(
                kind=AlertKind.OVERDUE_INVOICE,
                severity=AlertSeverity.WARNING,
                message=(
                    f"{len(overdue)} invoice{'s' if len(overdue) != 1 else ''} overdue "
                    f"totaling {currency_symbol}{_money(overdue_amount)}"
                ),
                amount=overdue_amount,
            ))

    return alerts


# =============================================================================
# The loop
# =============================================================================

def simulate(
    position: CashPosition,
    facts: ForecastFacts,
    horizon_days: int,
    params: ForecastParameters = DEFAULT_PARAMETERS,
    pattern_model: Optional[InferredPatternModel] = None,
) -> List[DailyForecast]:
    """
    Project the cash position for days 0..horizon_days-1 starting at facts.today.

    Deterministic: the same position and facts always give an equal list.
    """
    validate_horizon(horizon_days)

    patterns = index_patterns(facts.patterns)
    receipts_by_date = bucket_invoices(facts.receivables, patterns, PatternRole.CUSTOMER)
    bills_by_date = bucket_invoices(facts.payables, patterns, PatternRole.SUPPLIER)
    recurring_in_by_date = bucket_recurring(facts.recurring, Direction.RECEIVABLE)
    recurring_out_by_date = bucket_recurring(facts.recurring, Direction.PAYABLE)
    tax_by_date = bucket_tax(facts.tax_obligations)

    weights = params.confidence
    forecast: List[DailyForecast] = []
    balance = position.cash

    for offset in range(horizon_days):
        day = facts.today + timedelta(days=offset)

        invoice_in = receipts_by_date.get(day, ZERO)
        recurring_in = recurring_in_by_date.get(day, ZERO)
        bills_out = bills_by_date.get(day, ZERO)
        recurring_out = recurring_out_by_date.get(day, ZERO)
        tax_out = tax_by_date.get(day, ZERO)
        inferred_out = inferred_pattern_outflow(day, pattern_model)
        budget_out = budget_outflow(
            day,
            facts.budgets,
            bills_out + recurring_out + tax_out + inferred_out,
            weights.budgeted,
        )

        total_in = invoice_in + recurring_in
        total_out = bills_out + recurring_out + tax_out + inferred_out + budget_out
        closing = balance + total_in - total_out

        forecast.append(DailyForecast(
            date=day,
            opening_balance=balance,
            inflows=Inflows(
                from_invoices=invoice_in,
                from_recurring=recurring_in,
                from_other=ZERO,
                total=total_in,
            ),
            outflows=Outflows(
                to_bills=bills_out,
                to_recurring=recurring_out,
                to_tax=tax_out,
                to_inferred_patterns=inferred_out,
                to_budget=budget_out,
                total=total_out,
            ),
            closing_balance=closing,
            scenarios=calculate_scenarios(balance, total_in, total_out, params.scenarios),
            confidence_level=calculate_confidence(
                weights,
                invoice_in=invoice_in,
                recurring_in=recurring_in,
                bills_out=bills_out,
                recurring_out=recurring_out,
                inferred_out=inferred_out,
                budget_out=budget_out,
            ),
            alerts=generate_alerts(
                closing_balance=closing,
                total_outflow=total_out,
                tax_outflow=tax_out,
                is_first_day=offset == 0,
                today=facts.today,
                receivables=facts.receivables,
                thresholds=params.alerts,
                currency_symbol=params.currency_symbol,
            ),
        ))

        balance = closing

    return forecast
