"""
Tests for the daily simulation loop.

Tests cover balance continuity, horizon shape, confidence bounds,
scenario ordering, determinism and the individual cash flow categories.
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal

from ledgercast.forecast.errors import InvalidHorizonError
from ledgercast.forecast.parameters import ConfidenceWeights, DEFAULT_PARAMETERS
from ledgercast.forecast.schemas import AlertKind, AlertSeverity
from ledgercast.forecast.simulation import (
    budget_outflow,
    calculate_confidence,
    inferred_pattern_outflow,
    simulate,
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
    Precision,
    RecurringSchedule,
)
from ledgercast.tax.types import TaxKind, TaxObligation


# =============================================================================
# Helpers
# =============================================================================

def _invoice(amount, due, direction=Direction.RECEIVABLE, id="inv-1", counterparty_id="c-1"):
    return OpenInvoiceLike(
        id=id,
        counterparty_id=counterparty_id,
        counterparty_name="Acme Ltd",
        issue_date=due - timedelta(days=30),
        due_date=due,
        amount_due=Decimal(amount),
        total_amount=Decimal(amount),
        direction=direction,
    )


def _position(cash):
    return CashPosition(cash=Decimal(cash), precision=Precision.PRECISE)


class _FlatModel:
    """Inferred pattern model predicting the same spend every day."""

    def __init__(self, amount):
        self.amount = Decimal(amount)

    def expected_outflow(self, day):
        return self.amount


@pytest.fixture
def busy_facts(today):
    """Facts exercising every category of flow."""
    return ForecastFacts(
        today=today,
        receivables=(
            _invoice("5000", today + timedelta(days=2)),
            _invoice("2000", today - timedelta(days=45), id="inv-2", counterparty_id="c-2"),
        ),
        payables=(
            _invoice("3000", today + timedelta(days=5), direction=Direction.PAYABLE, id="bill-1", counterparty_id="s-1"),
        ),
        recurring=(
            RecurringSchedule(
                id="rep-1",
                direction=Direction.PAYABLE,
                counterparty_id="s-2",
                interval_unit="MONTHLY",
                interval_count=1,
                next_occurrence=today + timedelta(days=7),
                amount=Decimal("1200"),
            ),
        ),
        budgets=(
            BudgetLine(
                account_code="400",
                category=BudgetCategory.EXPENSE,
                month_period=today.strftime("%Y-%m"),
                budgeted_amount=Decimal("3100"),
            ),
        ),
        tax_obligations=(
            TaxObligation(
                kind=TaxKind.PAYROLL,
                due_date=today + timedelta(days=12),
                amount=Decimal("900.00"),
                reference="PAYE/NI Dec 2025",
            ),
        ),
    )


# =============================================================================
# Invariants
# =============================================================================

class TestInvariants:
    """Properties that hold for every forecast."""

    def test_length_and_contiguous_dates(self, position, busy_facts, today):
        forecast = simulate(position, busy_facts, 30)

        assert len(forecast) == 30
        assert forecast[0].date == today
        for i, day in enumerate(forecast):
            assert day.date == today + timedelta(days=i)

    def test_balance_continuity(self, position, busy_facts):
        forecast = simulate(position, busy_facts, 30)

        assert forecast[0].opening_balance == position.cash
        for previous, current in zip(forecast, forecast[1:]):
            assert current.opening_balance == previous.closing_balance
        for day in forecast:
            assert day.closing_balance == day.opening_balance + day.inflows.total - day.outflows.total

    def test_confidence_bounds(self, position, busy_facts):
        forecast = simulate(position, busy_facts, 30)

        assert all(Decimal("0") <= d.confidence_level <= Decimal("1") for d in forecast)

    def test_scenario_ordering(self, position, busy_facts):
        forecast = simulate(position, busy_facts, 30)

        for day in forecast:
            assert day.scenarios.worst_case <= day.closing_balance <= day.scenarios.best_case

    def test_deterministic(self, position, busy_facts):
        assert simulate(position, busy_facts, 30) == simulate(position, busy_facts, 30)

    @pytest.mark.parametrize("horizon", [0, -5, 1.5, "90", True])
    def test_invalid_horizon_rejected(self, position, today, horizon):
        with pytest.raises(InvalidHorizonError):
            simulate(position, ForecastFacts(today=today), horizon)

    def test_single_day_horizon(self, position, today):
        forecast = simulate(position, ForecastFacts(today=today), 1)

        assert len(forecast) == 1
        assert forecast[0].closing_balance == Decimal("10000")


# =============================================================================
# Cash flow categories
# =============================================================================

class TestCashFlows:

    def test_single_receivable(self, position, today):
        facts = ForecastFacts(today=today, receivables=(_invoice("5000", today + timedelta(days=2)),))

        forecast = simulate(position, facts, 5)

        assert forecast[2].inflows.from_invoices == Decimal("5000")
        assert forecast[2].closing_balance == Decimal("15000")
        assert forecast[-1].closing_balance == Decimal("15000")
        assert forecast[2].confidence_level == Decimal("0.95")

    def test_customer_pattern_delays_receipt(self, position, today):
        facts = ForecastFacts(
            today=today,
            receivables=(_invoice("5000", today + timedelta(days=2)),),
            patterns=(
                PaymentBehaviorPattern(
                    counterparty_id="c-1",
                    role=PatternRole.CUSTOMER,
                    average_days_to_pay=3,
                    on_time_rate=Decimal("0.4"),
                    sample_size=12,
                ),
            ),
        )

        forecast = simulate(position, facts, 10)

        assert forecast[2].inflows.total == Decimal("0")
        assert forecast[5].inflows.from_invoices == Decimal("5000")

    def test_supplier_pattern_not_applied_to_receivables(self, position, today):
        facts = ForecastFacts(
            today=today,
            receivables=(_invoice("5000", today + timedelta(days=2)),),
            patterns=(
                PaymentBehaviorPattern(
                    counterparty_id="c-1",
                    role=PatternRole.SUPPLIER,
                    average_days_to_pay=3,
                    on_time_rate=Decimal("0.4"),
                    sample_size=12,
                ),
            ),
        )

        forecast = simulate(position, facts, 10)

        assert forecast[2].inflows.from_invoices == Decimal("5000")

    def test_recurring_schedule_counted_once(self, position, today):
        schedule = RecurringSchedule(
            id="rep-1",
            direction=Direction.RECEIVABLE,
            counterparty_id="c-9",
            interval_unit="WEEKLY",
            interval_count=1,
            next_occurrence=today + timedelta(days=1),
            amount=Decimal("750"),
        )
        facts = ForecastFacts(today=today, recurring=(schedule,))

        forecast = simulate(position, facts, 30)

        assert forecast[1].inflows.from_recurring == Decimal("750")
        assert sum(d.inflows.from_recurring for d in forecast) == Decimal("750")
        assert forecast[1].confidence_level == Decimal("0.98")

    def test_tax_outflow_and_alert(self, position, today):
        facts = ForecastFacts(
            today=today,
            tax_obligations=(
                TaxObligation(
                    kind=TaxKind.VAT,
                    due_date=today + timedelta(days=1),
                    amount=Decimal("2000.00"),
                    reference="VAT Q4 2025",
                ),
            ),
        )

        forecast = simulate(position, facts, 3)

        assert forecast[1].outflows.to_tax == Decimal("2000.00")
        assert forecast[1].closing_balance == Decimal("8000.00")
        tax_alerts = [a for a in forecast[1].alerts if a.kind == AlertKind.TAX_DUE]
        assert len(tax_alerts) == 1
        assert tax_alerts[0].severity == AlertSeverity.WARNING
        # Tax carries no confidence weight
        assert forecast[1].confidence_level == Decimal("1.00")

    def test_budget_fills_uncovered_spend(self, position, today):
        facts = ForecastFacts(
            today=today,
            budgets=(
                BudgetLine(
                    account_code="400",
                    category=BudgetCategory.EXPENSE,
                    month_period="2026-01",
                    budgeted_amount=Decimal("3100"),
                ),
                BudgetLine(
                    account_code="200",
                    category=BudgetCategory.REVENUE,
                    month_period="2026-01",
                    budgeted_amount=Decimal("50000"),
                ),
            ),
        )

        forecast = simulate(position, facts, 2)

        assert forecast[0].outflows.to_budget == Decimal("60.00")
        assert forecast[0].closing_balance == Decimal("9940.00")
        assert forecast[0].confidence_level == Decimal("0.60")

    def test_budget_offset_by_known_outflows(self, today):
        budgets = (
            BudgetLine(
                account_code="400",
                category=BudgetCategory.EXPENSE,
                month_period="2026-01",
                budgeted_amount=Decimal("3100"),
            ),
        )

        assert budget_outflow(today, budgets, Decimal("40"), Decimal("0.60")) == Decimal("36.00")
        assert budget_outflow(today, budgets, Decimal("500"), Decimal("0.60")) == Decimal("0.00")
        assert budget_outflow(date(2026, 2, 1), budgets, Decimal("0"), Decimal("0.60")) == Decimal("0.00")

    def test_inferred_patterns_zero_without_model(self, today):
        assert inferred_pattern_outflow(today) == Decimal("0")

    def test_inferred_pattern_model_used_when_supplied(self, position, today):
        forecast = simulate(position, ForecastFacts(today=today), 3, pattern_model=_FlatModel("10"))

        assert all(d.outflows.to_inferred_patterns == Decimal("10") for d in forecast)
        assert forecast[-1].closing_balance == Decimal("9970")
        assert forecast[0].confidence_level == Decimal("0.75")


# =============================================================================
# Confidence
# =============================================================================

class TestConfidence:

    def test_no_flow_is_fully_certain(self):
        assert calculate_confidence(ConfidenceWeights()) == Decimal("1.00")

    def test_volume_weighted(self):
        confidence = calculate_confidence(
            ConfidenceWeights(),
            invoice_in=Decimal("1000"),
            budget_out=Decimal("1000"),
        )

        # (1000 * 0.95 + 1000 * 0.60) / 2000
        assert confidence == Decimal("0.78")


# =============================================================================
# Alerts
# =============================================================================

class TestAlerts:

    def test_overdue_receivables_reported_on_first_day(self, position, today):
        facts = ForecastFacts(
            today=today,
            receivables=(_invoice("2000", today - timedelta(days=45)),),
        )

        forecast = simulate(position, facts, 5)

        overdue = [a for a in forecast[0].alerts if a.kind == AlertKind.OVERDUE_INVOICE]
        assert len(overdue) == 1
        assert overdue[0].amount == Decimal("2000")
        assert overdue[0].message == "1 invoice overdue totaling £2,000.00"
        assert all(
            a.kind != AlertKind.OVERDUE_INVOICE
            for day in forecast[1:]
            for a in day.alerts
        )

    def test_recently_due_receivable_not_overdue(self, position, today):
        facts = ForecastFacts(
            today=today,
            receivables=(_invoice("2000", today - timedelta(days=30)),),
        )

        forecast = simulate(position, facts, 1)

        assert forecast[0].alerts == []

    def test_low_balance_is_critical(self, today):
        forecast = simulate(_position("800"), ForecastFacts(today=today), 1)

        alerts = forecast[0].alerts
        assert len(alerts) == 1
        assert alerts[0].kind == AlertKind.LOW_BALANCE
        assert alerts[0].severity == AlertSeverity.CRITICAL
        assert alerts[0].message == "Cash balance projected to be low at £800.00"

    def test_balance_under_threshold_is_warning(self, today):
        forecast = simulate(_position("4000"), ForecastFacts(today=today), 1)

        assert forecast[0].alerts[0].severity == AlertSeverity.WARNING

    def test_large_payment_and_negative_balance(self, position, today):
        facts = ForecastFacts(
            today=today,
            payables=(_invoice("12000", today, direction=Direction.PAYABLE, id="bill-1"),),
        )

        forecast = simulate(position, facts, 1)

        kinds = {a.kind: a for a in forecast[0].alerts}
        assert kinds[AlertKind.LARGE_PAYMENT].severity == AlertSeverity.INFO
        assert kinds[AlertKind.LOW_BALANCE].severity == AlertSeverity.CRITICAL
        assert "negative" in kinds[AlertKind.LOW_BALANCE].message

    def test_currency_symbol_from_parameters(self, today):
        from dataclasses import replace

        params = replace(DEFAULT_PARAMETERS, currency_symbol="$")

        forecast = simulate(_position("800"), ForecastFacts(today=today), 1, params)

        assert forecast[0].alerts[0].message.endswith("$800.00")
