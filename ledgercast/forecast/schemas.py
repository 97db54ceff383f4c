"""Forecast output and API schemas."""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ledgercast.forecast.types import Precision


class AlertKind(str, Enum):
    LOW_BALANCE = "LOW_BALANCE"
    LARGE_PAYMENT = "LARGE_PAYMENT"
    TAX_DUE = "TAX_DUE"
    OVERDUE_INVOICE = "OVERDUE_INVOICE"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Alert(BaseModel):
    """An alert attached to a single forecast day."""
    model_config = ConfigDict(frozen=True)

    kind: AlertKind
    severity: AlertSeverity
    message: str
    amount: Optional[Decimal] = None


class Inflows(BaseModel):
    model_config = ConfigDict(frozen=True)

    from_invoices: Decimal
    from_recurring: Decimal
    from_other: Decimal
    total: Decimal


class Outflows(BaseModel):
    model_config = ConfigDict(frozen=True)

    to_bills: Decimal
    to_recurring: Decimal
    to_tax: Decimal
    to_inferred_patterns: Decimal
    to_budget: Decimal
    total: Decimal


class Scenarios(BaseModel):
    model_config = ConfigDict(frozen=True)

    best_case: Decimal
    worst_case: Decimal


class DailyForecast(BaseModel):
    """Projected cash movement for one calendar day."""
    model_config = ConfigDict(frozen=True)

    date: date
    opening_balance: Decimal
    inflows: Inflows
    outflows: Outflows
    closing_balance: Decimal
    scenarios: Scenarios
    confidence_level: Decimal = Field(..., ge=0, le=1)
    alerts: List[Alert] = Field(default_factory=list)


class CachedForecast(BaseModel):
    """Payload stored in the forecast cache."""
    generated_at: datetime
    horizon_days: int
    position_precision: Precision = Precision.PRECISE
    degraded_sources: List[str] = Field(default_factory=list)
    days: List[DailyForecast]


# ============================================
# API Schemas
# ============================================

class ForecastDayResponse(BaseModel):
    """A forecast day as returned by the API. Scenarios are optional."""
    date: date
    opening_balance: Decimal
    inflows: Inflows
    outflows: Outflows
    closing_balance: Decimal
    confidence_level: Decimal
    alerts: List[Alert]
    scenarios: Optional[Scenarios] = None


class ForecastSummary(BaseModel):
    """Summary statistics for the forecast."""
    days: int
    lowest_balance: Decimal
    lowest_balance_date: Optional[date]
    total_inflows: Decimal
    total_outflows: Decimal
    average_confidence: Decimal
    critical_alerts: int


class ForecastMeta(BaseModel):
    """Data quality and provenance of the forecast."""
    from_cache: bool
    persisted: bool
    persistence_error: Optional[str] = None
    position_precision: Precision
    degraded_sources: List[str] = Field(default_factory=list)


class ForecastResponse(BaseModel):
    """Complete daily forecast response."""
    forecast: List[ForecastDayResponse]
    summary: ForecastSummary
    meta: ForecastMeta


class ForecastGenerateRequest(BaseModel):
    days: int = Field(90, ge=1, description="Number of days to forecast")
    regenerate: bool = Field(False, description="Discard cached and stored forecasts first")


class ForecastGenerateResponse(BaseModel):
    success: bool
    days_generated: int
    message: str
    persisted: bool
