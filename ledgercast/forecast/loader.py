"""
Position loader.

Reads the current cash position and every forward-looking fact the
simulation needs. All queries are read-only and independent, so
load_facts issues them together and waits for the slowest one. Each
query gets its own session because an AsyncSession cannot run two
statements at once.

Store failures never abort a run: the position falls back to the last
snapshot that loaded (ESTIMATED) or to zero (DEGRADED), and a failed
fact query becomes an empty tuple recorded in degraded_sources.
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Awaitable, Callable, List, Optional, Tuple, TypeVar, TYPE_CHECKING
import asyncio
import json
import logging

from dateutil.relativedelta import relativedelta
from sqlalchemy import select, func, and_, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgercast.data.accounts.models import BankAccount
from ledgercast.data.budgets.models import CashFlowBudget
from ledgercast.data.invoices.models import SyncedInvoice, RepeatingTransaction, PaymentPattern
from ledgercast.forecast.errors import SourceUnavailableError
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
    ZERO,
)

if TYPE_CHECKING:
    from ledgercast.forecast.cache import ForecastCache
    from ledgercast.tax.calculator import UKTaxCalculator
    from ledgercast.tax.types import TaxObligation

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]
T = TypeVar("T")

POSITION_SNAPSHOT_KEY = "position:last-known"
POSITION_SNAPSHOT_TTL_SECONDS = 7 * 24 * 60 * 60

_INVOICE_TYPES = {
    Direction.RECEIVABLE: "ACCREC",
    Direction.PAYABLE: "ACCPAY",
}
_DIRECTIONS = {v: k for k, v in _INVOICE_TYPES.items()}


def months_in_horizon(today: date, horizon_days: int) -> List[str]:
    """Every YYYY-MM touched by days 0..horizon_days-1."""
    last_day = today + timedelta(days=max(horizon_days, 1) - 1)
    months = []
    current = today.replace(day=1)
    while current <= last_day:
        months.append(current.strftime("%Y-%m"))
        current += relativedelta(months=1)
    return months


def _invoice_from_record(record: SyncedInvoice) -> OpenInvoiceLike:
    return OpenInvoiceLike(
        id=record.id,
        counterparty_id=record.contact_id,
        counterparty_name=record.contact_name,
        issue_date=record.issue_date,
        due_date=record.due_date,
        amount_due=Decimal(record.amount_due),
        total_amount=Decimal(record.total),
        direction=_DIRECTIONS[record.invoice_type],
    )


def _pattern_from_record(record: PaymentPattern) -> PaymentBehaviorPattern:
    return PaymentBehaviorPattern(
        counterparty_id=record.contact_id,
        role=PatternRole(record.pattern_type),
        # Shifts are whole calendar days
        average_days_to_pay=int(round(Decimal(record.average_days_to_pay))),
        on_time_rate=Decimal(record.on_time_rate),
        sample_size=record.sample_size,
    )


class PositionLoader:
    """Loads the cash position and forward-looking facts for one forecast run."""

    def __init__(
        self,
        session_factory: SessionFactory,
        today: Optional[date] = None,
        snapshot_cache: Optional["ForecastCache"] = None,
    ):
        self.session_factory = session_factory
        self.today = today or date.today()
        self.snapshot_cache = snapshot_cache

    # ==========================================================================
    # Cash position
    # ==========================================================================

    async def load_current_position(self) -> CashPosition:
        """
        Active bank balances plus open receivables and payables.

        Falls back to the last-known snapshot, then to the zero position.
        """
        try:
            position = await self._query_position()
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"Cash position unavailable, using fallback: {e}")
            return await self._fallback_position()

        if self.snapshot_cache is not None:
            await self.snapshot_cache.set(
                POSITION_SNAPSHOT_KEY,
                _encode_position(position),
                POSITION_SNAPSHOT_TTL_SECONDS,
            )
        return position

    async def _query_position(self) -> CashPosition:
        async with self.session_factory() as db:
            result = await db.execute(
                select(func.sum(BankAccount.balance))
                .where(BankAccount.status == "ACTIVE")
            )
            cash = result.scalar() or ZERO

            result = await db.execute(
                select(SyncedInvoice.invoice_type, func.sum(SyncedInvoice.amount_due))
                .where(SyncedInvoice.status == "OPEN")
                .group_by(SyncedInvoice.invoice_type)
            )
            totals = {invoice_type: amount or ZERO for invoice_type, amount in result.all()}

        return CashPosition(
            cash=Decimal(cash),
            accounts_receivable=Decimal(totals.get("ACCREC", ZERO)),
            accounts_payable=Decimal(totals.get("ACCPAY", ZERO)),
            precision=Precision.PRECISE,
        )

    async def _fallback_position(self) -> CashPosition:
        if self.snapshot_cache is not None:
            cached = await self.snapshot_cache.get(POSITION_SNAPSHOT_KEY)
            if cached:
                logger.warning("Using last-known cash position snapshot")
                return _decode_position(cached)
        logger.warning("No cash position snapshot available, forecasting from zero")
        return CashPosition.degraded()

    # ==========================================================================
    # Forward-looking facts
    # ==========================================================================

    async def load_open_receivables(self) -> Tuple[OpenInvoiceLike, ...]:
        return await self._load_open_invoices(Direction.RECEIVABLE)

    async def load_open_payables(self) -> Tuple[OpenInvoiceLike, ...]:
        return await self._load_open_invoices(Direction.PAYABLE)

    async def _load_open_invoices(self, direction: Direction) -> Tuple[OpenInvoiceLike, ...]:
        """Open items with something still due, earliest due date first."""
        async with self.session_factory() as db:
            result = await db.execute(
                select(SyncedInvoice)
                .where(
                    and_(
                        SyncedInvoice.invoice_type == _INVOICE_TYPES[direction],
                        SyncedInvoice.status == "OPEN",
                        SyncedInvoice.amount_due > 0,
                    )
                )
                .order_by(SyncedInvoice.due_date, SyncedInvoice.id)
            )
            records = result.scalars().all()

        items = [_invoice_from_record(r) for r in records if Decimal(r.amount_due) > 0]
        return tuple(sorted(items, key=lambda i: (i.due_date, i.id)))

    async def load_recurring_schedules(self, horizon_days: int) -> Tuple[RecurringSchedule, ...]:
        """Authorised schedules whose next occurrence falls inside the horizon."""
        end_date = self.today + timedelta(days=horizon_days)
        async with self.session_factory() as db:
            result = await db.execute(
                select(RepeatingTransaction)
                .where(
                    and_(
                        RepeatingTransaction.status == "AUTHORISED",
                        RepeatingTransaction.next_scheduled_date >= self.today,
                        RepeatingTransaction.next_scheduled_date <= end_date,
                        or_(
                            RepeatingTransaction.end_date.is_(None),
                            RepeatingTransaction.end_date >= self.today,
                        ),
                    )
                )
                .order_by(RepeatingTransaction.next_scheduled_date, RepeatingTransaction.id)
            )
            records = result.scalars().all()

        schedules = []
        for r in records:
            if r.next_scheduled_date is None or not (self.today <= r.next_scheduled_date <= end_date):
                continue
            if r.end_date is not None and r.end_date < self.today:
                continue
            schedules.append(RecurringSchedule(
                id=r.id,
                direction=_DIRECTIONS[r.transaction_type],
                counterparty_id=r.contact_id,
                interval_unit=r.schedule_unit,
                interval_count=r.schedule_interval,
                next_occurrence=r.next_scheduled_date,
                end_date=r.end_date,
                amount=Decimal(r.amount),
            ))
        return tuple(schedules)

    async def load_payment_patterns(self) -> Tuple[PaymentBehaviorPattern, ...]:
        async with self.session_factory() as db:
            result = await db.execute(
                select(PaymentPattern).order_by(PaymentPattern.contact_id, PaymentPattern.pattern_type)
            )
            records = result.scalars().all()
        return tuple(_pattern_from_record(r) for r in records)

    async def load_budgets(self, horizon_days: int) -> Tuple[BudgetLine, ...]:
        """Budget lines for every month the horizon touches."""
        months = months_in_horizon(self.today, horizon_days)
        async with self.session_factory() as db:
            result = await db.execute(
                select(CashFlowBudget)
                .where(CashFlowBudget.month_year.in_(months))
                .order_by(CashFlowBudget.month_year, CashFlowBudget.account_code, CashFlowBudget.id)
            )
            records = result.scalars().all()
        return tuple(
            BudgetLine(
                account_code=r.account_code,
                category=BudgetCategory(r.category),
                month_period=r.month_year,
                budgeted_amount=Decimal(r.budgeted_amount),
            )
            for r in records
        )

    # ==========================================================================
    # Fan-out
    # ==========================================================================

    async def load_facts(
        self,
        horizon_days: int,
        tax_calculator: Optional["UKTaxCalculator"] = None,
    ) -> Tuple[CashPosition, ForecastFacts]:
        """
        Run every load concurrently and join them into one immutable snapshot.
        """
        degraded: List[str] = []

        async def tax_obligations() -> Tuple["TaxObligation", ...]:
            if tax_calculator is None:
                return ()
            obligations = await tax_calculator.calculate_upcoming_obligations(
                horizon_days, today=self.today
            )
            return tuple(obligations)

        (
            position,
            receivables,
            payables,
            recurring,
            patterns,
            budgets,
            obligations,
        ) = await asyncio.gather(
            self.load_current_position(),
            self._guarded("receivables", self.load_open_receivables, degraded),
            self._guarded("payables", self.load_open_payables, degraded),
            self._guarded("recurring_schedules", lambda: self.load_recurring_schedules(horizon_days), degraded),
            self._guarded("payment_patterns", self.load_payment_patterns, degraded),
            self._guarded("budgets", lambda: self.load_budgets(horizon_days), degraded),
            self._guarded("tax_obligations", tax_obligations, degraded),
        )

        if position.precision != Precision.PRECISE:
            degraded.append("position")

        facts = ForecastFacts(
            today=self.today,
            receivables=receivables,
            payables=payables,
            recurring=recurring,
            patterns=patterns,
            budgets=budgets,
            tax_obligations=obligations,
            degraded_sources=tuple(sorted(degraded)),
        )
        return position, facts

    async def _guarded(
        self,
        source: str,
        load: Callable[[], Awaitable[Tuple[T, ...]]],
        degraded: List[str],
    ) -> Tuple[T, ...]:
        """Run a fact query, replacing a store failure with an empty tuple."""
        try:
            return await load()
        except SourceUnavailableError as e:
            logger.warning(f"{e}; continuing without {source}")
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"{source} unavailable, continuing without it: {e}")
        degraded.append(source)
        return ()


def _encode_position(position: CashPosition) -> str:
    return json.dumps({
        "cash": str(position.cash),
        "accounts_receivable": str(position.accounts_receivable),
        "accounts_payable": str(position.accounts_payable),
    })


def _decode_position(raw: str) -> CashPosition:
    data = json.loads(raw)
    return CashPosition(
        cash=Decimal(data["cash"]),
        accounts_receivable=Decimal(data["accounts_receivable"]),
        accounts_payable=Decimal(data["accounts_payable"]),
        precision=Precision.ESTIMATED,
    )
