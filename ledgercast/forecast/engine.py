"""
Cash flow forecast engine.

Orchestrates one forecast run:
1. Serve a fresh cached forecast for the same horizon if there is one
2. Otherwise load the position and facts concurrently
3. Run the daily simulation loop
4. Cache the result, then persist it in one bounded transaction

A failed write never fails the run. The caller gets the days along with
persisted=False and the error message.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional
import logging

from pydantic import ValidationError

from ledgercast.config import settings
from ledgercast.forecast.cache import ForecastCache, forecast_cache, forecast_key, utc_now
from ledgercast.forecast.errors import PersistenceError, validate_horizon
from ledgercast.forecast.loader import PositionLoader, SessionFactory
from ledgercast.forecast.parameters import DEFAULT_PARAMETERS, ForecastParameters
from ledgercast.forecast.schemas import CachedForecast, DailyForecast
from ledgercast.forecast.simulation import InferredPatternModel, simulate
from ledgercast.forecast.store import ForecastStore
from ledgercast.forecast.types import Precision
from ledgercast.tax.calculator import UKTaxCalculator

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300


@dataclass
class ForecastRunResult:
    """Outcome of a forecast run, including data quality and storage status."""
    days: List[DailyForecast]
    from_cache: bool
    persisted: bool
    persistence_error: Optional[str] = None
    position_precision: Precision = Precision.PRECISE
    degraded_sources: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "days": [d.model_dump(mode="json") for d in self.days],
            "from_cache": self.from_cache,
            "persisted": self.persisted,
            "persistence_error": self.persistence_error,
            "position_precision": self.position_precision.value,
            "degraded_sources": list(self.degraded_sources),
        }


class ForecastService:
    """
    Cache-or-compute wrapper around the loader and simulation loop.

    One instance can serve many runs; "today" is re-read on every run
    unless pinned with today=.
    """

    def __init__(
        self,
        session_factory: SessionFactory,
        cache: Optional[ForecastCache] = None,
        params: ForecastParameters = DEFAULT_PARAMETERS,
        tax_calculator: Optional[UKTaxCalculator] = None,
        store: Optional[ForecastStore] = None,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        persist_timeout_seconds: float = 30.0,
        max_days: Optional[int] = None,
        today: Optional[date] = None,
        clock: Callable[[], datetime] = utc_now,
        pattern_model: Optional[InferredPatternModel] = None,
    ):
        self.session_factory = session_factory
        self.cache = cache if cache is not None else forecast_cache
        self.params = params
        self.tax_calculator = tax_calculator or UKTaxCalculator(session_factory)
        self.store = store or ForecastStore(
            session_factory,
            timeout_seconds=persist_timeout_seconds,
            tax_calculator=self.tax_calculator,
        )
        self.cache_ttl_seconds = cache_ttl_seconds
        self.max_days = max_days
        self._today = today
        self.clock = clock
        self.pattern_model = pattern_model

    @property
    def today(self) -> date:
        return self._today or date.today()

    async def get_or_compute(self, horizon_days: int) -> ForecastRunResult:
        """
        Return a cached forecast younger than the TTL, or compute a new one.

        Raises:
            InvalidHorizonError: horizon_days is not an int in range
        """
        validate_horizon(horizon_days, self.max_days)
        key = forecast_key(horizon_days)

        cached = await self._read_cache(key)
        if cached is not None:
            logger.debug(f"Forecast cache hit for {key}")
            return ForecastRunResult(
                days=cached.days,
                from_cache=True,
                persisted=False,
                position_precision=cached.position_precision,
                degraded_sources=list(cached.degraded_sources),
            )

        return await self._compute(horizon_days, key)

    async def regenerate(self, horizon_days: int) -> ForecastRunResult:
        """Discard the cached and stored forecasts from today on, then recompute."""
        validate_horizon(horizon_days, self.max_days)
        key = forecast_key(horizon_days)

        await self.cache.invalidate(key)
        try:
            removed = await self.store.delete_from(self.today)
            logger.info(f"Removed {removed} stored forecast days from {self.today}")
        except PersistenceError as e:
            logger.error(f"Could not clear stored forecasts before regenerating: {e}")

        return await self._compute(horizon_days, key)

    async def _read_cache(self, key: str) -> Optional[CachedForecast]:
        raw = await self.cache.get(key)
        if raw is None:
            return None

        try:
            payload = CachedForecast.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            await self.cache.invalidate(key)
            return None

        age = (self.clock() - payload.generated_at).total_seconds()
        if age >= self.cache_ttl_seconds:
            return None
        return payload

    async def _compute(self, horizon_days: int, key: str) -> ForecastRunResult:
        loader = PositionLoader(self.session_factory, today=self.today, snapshot_cache=self.cache)
        position, facts = await loader.load_facts(horizon_days, self.tax_calculator)

        if facts.degraded_sources:
            logger.warning(
                f"Forecasting {horizon_days} days with degraded sources: "
                + ", ".join(facts.degraded_sources)
            )

        days = simulate(position, facts, horizon_days, self.params, self.pattern_model)

        payload = CachedForecast(
            generated_at=self.clock(),
            horizon_days=horizon_days,
            position_precision=position.precision,
            degraded_sources=list(facts.degraded_sources),
            days=days,
        )
        await self.cache.set(key, payload.model_dump_json(), self.cache_ttl_seconds)

        result = ForecastRunResult(
            days=days,
            from_cache=False,
            persisted=True,
            position_precision=position.precision,
            degraded_sources=list(facts.degraded_sources),
        )
        try:
            await self.store.persist(days, facts.tax_obligations)
        except PersistenceError as e:
            logger.error(f"Forecast computed but not persisted: {e}")
            result.persisted = False
            result.persistence_error = str(e)

        return result


class CashFlowEngine(ForecastService):
    """Public entry point for daily cash flow forecasts."""

    async def generate_forecast(self, horizon_days: int) -> List[DailyForecast]:
        result = await self.get_or_compute(horizon_days)
        return result.days


def build_engine(session_factory: SessionFactory, **overrides) -> CashFlowEngine:
    """Engine wired from application settings."""
    params = ForecastParameters(currency_symbol=settings.CURRENCY_SYMBOL)
    options = dict(
        params=params,
        cache_ttl_seconds=settings.FORECAST_CACHE_TTL_SECONDS,
        persist_timeout_seconds=settings.FORECAST_PERSIST_TIMEOUT_SECONDS,
        max_days=settings.FORECAST_MAX_DAYS,
    )
    options.update(overrides)
    return CashFlowEngine(session_factory, **options)
