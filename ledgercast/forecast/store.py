"""
Durable storage for daily forecasts.

All days of a run, plus any newly derived tax obligations, are written in
a single transaction bounded by a timeout. Rows are keyed by date and
upserted so a rerun overwrites rather than duplicates.
"""
from datetime import date
from typing import Callable, Optional, Sequence, TYPE_CHECKING
import asyncio
import logging

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgercast.data.base import generate_id
from ledgercast.data.forecasts.models import CashFlowForecast
from ledgercast.forecast.errors import PersistenceError
from ledgercast.forecast.schemas import DailyForecast

if TYPE_CHECKING:
    from ledgercast.tax.calculator import UKTaxCalculator
    from ledgercast.tax.types import TaxObligation

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]

_UPDATE_COLUMNS = [
    "opening_balance",
    "from_invoices",
    "from_recurring",
    "from_other",
    "total_inflows",
    "to_bills",
    "to_recurring",
    "to_tax",
    "to_inferred_patterns",
    "to_budget",
    "total_outflows",
    "closing_balance",
    "best_case",
    "worst_case",
    "confidence_level",
    "alerts",
]


def forecast_row(day: DailyForecast) -> dict:
    """Flatten a forecast day into a cash_flow_forecasts row."""
    return {
        "id": generate_id("fc"),
        "date": day.date,
        "opening_balance": day.opening_balance,
        "from_invoices": day.inflows.from_invoices,
        "from_recurring": day.inflows.from_recurring,
        "from_other": day.inflows.from_other,
        "total_inflows": day.inflows.total,
        "to_bills": day.outflows.to_bills,
        "to_recurring": day.outflows.to_recurring,
        "to_tax": day.outflows.to_tax,
        "to_inferred_patterns": day.outflows.to_inferred_patterns,
        "to_budget": day.outflows.to_budget,
        "total_outflows": day.outflows.total,
        "closing_balance": day.closing_balance,
        "best_case": day.scenarios.best_case,
        "worst_case": day.scenarios.worst_case,
        "confidence_level": day.confidence_level,
        "alerts": [alert.model_dump(mode="json") for alert in day.alerts],
    }


class ForecastStore:
    """Batched, time-bounded persistence of forecast days."""

    def __init__(
        self,
        session_factory: SessionFactory,
        timeout_seconds: float = 30.0,
        tax_calculator: Optional["UKTaxCalculator"] = None,
    ):
        self.session_factory = session_factory
        self.timeout_seconds = timeout_seconds
        self.tax_calculator = tax_calculator

    async def persist(
        self,
        days: Sequence[DailyForecast],
        obligations: Sequence["TaxObligation"] = (),
    ) -> None:
        """
        Upsert every day (and derived tax obligation) in one transaction.

        Raises:
            PersistenceError: the write failed or exceeded the timeout
        """
        if not days:
            return
        try:
            await asyncio.wait_for(self._write(days, obligations), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise PersistenceError(
                f"Persisting {len(days)} forecast days timed out after {self.timeout_seconds}s"
            ) from e
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Persisting {len(days)} forecast days failed: {e}") from e

    async def _write(
        self,
        days: Sequence[DailyForecast],
        obligations: Sequence["TaxObligation"],
    ) -> None:
        async with self.session_factory() as db:
            async with db.begin():
                stmt = insert(CashFlowForecast).values([forecast_row(d) for d in days])
                stmt = stmt.on_conflict_do_update(
                    index_elements=["date"],
                    set_={column: stmt.excluded[column] for column in _UPDATE_COLUMNS},
                )
                await db.execute(stmt)

                if self.tax_calculator is not None and obligations:
                    await self.tax_calculator.store_tax_obligations(db, obligations)

        logger.info(f"Persisted {len(days)} forecast days from {days[0].date} to {days[-1].date}")

    async def delete_from(self, start: date) -> int:
        """Remove stored forecasts dated on or after start."""
        try:
            async with self.session_factory() as db:
                async with db.begin():
                    result = await db.execute(
                        delete(CashFlowForecast).where(CashFlowForecast.date >= start)
                    )
        except (SQLAlchemyError, OSError) as e:
            raise PersistenceError(f"Clearing forecasts from {start} failed: {e}") from e
        return result.rowcount or 0
