"""
Immutable forecast parameters.

Confidence weights, scenario multipliers and alert thresholds are fixed
when the engine is built. Pass a different ForecastParameters to model
another jurisdiction or currency; nothing mutates these at runtime.
"""
from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class ConfidenceWeights:
    """Certainty attached to each category of cash movement."""
    repeating_schedule: Decimal = Decimal("0.98")  # Confirmed schedule
    confirmed_invoice: Decimal = Decimal("0.95")   # Might pay late
    inferred_pattern: Decimal = Decimal("0.75")    # Based on history
    budgeted: Decimal = Decimal("0.60")            # An estimate or goal


@dataclass(frozen=True)
class ScenarioFactors:
    """Multipliers applied to a day's flows for best/worst cases."""
    best_inflow: Decimal = Decimal("1.2")
    best_outflow: Decimal = Decimal("0.9")
    worst_inflow: Decimal = Decimal("0.8")
    worst_outflow: Decimal = Decimal("1.1")


@dataclass(frozen=True)
class AlertThresholds:
    low_balance: Decimal = Decimal("5000")
    critical_balance: Decimal = Decimal("1000")
    large_payment: Decimal = Decimal("10000")
    overdue_days: int = 30


@dataclass(frozen=True)
class ForecastParameters:
    """All constants used by the simulation loop."""
    confidence: ConfidenceWeights = field(default_factory=ConfidenceWeights)
    scenarios: ScenarioFactors = field(default_factory=ScenarioFactors)
    alerts: AlertThresholds = field(default_factory=AlertThresholds)
    currency_symbol: str = "£"


DEFAULT_PARAMETERS = ForecastParameters()
