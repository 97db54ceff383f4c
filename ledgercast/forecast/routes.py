"""Forecast API routes."""
from decimal import Decimal, ROUND_HALF_UP
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from ledgercast.config import settings
from ledgercast.database import AsyncSessionLocal
from ledgercast.forecast.cache import forecast_cache
from ledgercast.forecast.engine import CashFlowEngine, ForecastRunResult, build_engine
from ledgercast.forecast.errors import InvalidHorizonError
from ledgercast.forecast.schemas import (
    AlertSeverity,
    DailyForecast,
    ForecastDayResponse,
    ForecastGenerateRequest,
    ForecastGenerateResponse,
    ForecastMeta,
    ForecastResponse,
    ForecastSummary,
)
from ledgercast.forecast.types import ZERO

router = APIRouter()


def get_forecast_engine() -> CashFlowEngine:
    return build_engine(AsyncSessionLocal, cache=forecast_cache)


def summarize(days: List[DailyForecast]) -> ForecastSummary:
    """Lowest point, totals and alert counts across the horizon."""
    if not days:
        return ForecastSummary(
            days=0,
            lowest_balance=ZERO,
            lowest_balance_date=None,
            total_inflows=ZERO,
            total_outflows=ZERO,
            average_confidence=Decimal("1.00"),
            critical_alerts=0,
        )

    lowest = min(days, key=lambda d: d.closing_balance)
    average_confidence = sum((d.confidence_level for d in days), ZERO) / len(days)
    return ForecastSummary(
        days=len(days),
        lowest_balance=lowest.closing_balance,
        lowest_balance_date=lowest.date,
        total_inflows=sum((d.inflows.total for d in days), ZERO),
        total_outflows=sum((d.outflows.total for d in days), ZERO),
        average_confidence=average_confidence.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP),
        critical_alerts=sum(
            1 for d in days for a in d.alerts if a.severity == AlertSeverity.CRITICAL
        ),
    )


def build_response(result: ForecastRunResult, include_scenarios: bool = False) -> ForecastResponse:
    forecast = []
    for day in result.days:
        data = day.model_dump(exclude={"scenarios"})
        if include_scenarios:
            data["scenarios"] = day.scenarios
        forecast.append(ForecastDayResponse(**data))

    return ForecastResponse(
        forecast=forecast,
        summary=summarize(result.days),
        meta=ForecastMeta(
            from_cache=result.from_cache,
            persisted=result.persisted,
            persistence_error=result.persistence_error,
            position_precision=result.position_precision,
            degraded_sources=result.degraded_sources,
        ),
    )


@router.get("", response_model=ForecastResponse)
async def get_forecast(
    days: int = Query(settings.FORECAST_DEFAULT_DAYS, description="Number of days to forecast"),
    scenarios: bool = Query(False, description="Include best/worst case balances"),
    engine: CashFlowEngine = Depends(get_forecast_engine),
):
    """
    Get the daily cash flow forecast.

    Served from cache when a forecast for the same horizon was generated
    within the cache TTL.
    """
    try:
        result = await engine.get_or_compute(days)
    except InvalidHorizonError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return build_response(result, include_scenarios=scenarios)


@router.post("", response_model=ForecastGenerateResponse)
async def generate_forecast(
    request: ForecastGenerateRequest,
    engine: CashFlowEngine = Depends(get_forecast_engine),
):
    """Generate (or regenerate) and store the daily forecast."""
    try:
        if request.regenerate:
            result = await engine.regenerate(request.days)
        else:
            result = await engine.get_or_compute(request.days)
    except InvalidHorizonError as e:
        raise HTTPException(status_code=422, detail=str(e))

    if result.persisted:
        message = f"Generated {len(result.days)}-day forecast"
    elif result.from_cache:
        message = f"Returned cached {len(result.days)}-day forecast"
    else:
        message = f"Generated {len(result.days)}-day forecast but could not store it: {result.persistence_error}"

    return ForecastGenerateResponse(
        success=True,
        days_generated=len(result.days),
        message=message,
        persisted=result.persisted,
    )
