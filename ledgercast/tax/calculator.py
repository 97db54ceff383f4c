"""
UK tax obligation calculator.

Loads the organisation's tax profile, a trailing window of ledger activity
and any pending obligations already on file, then applies the pure rules
in ledgercast.tax.rules. Persisted obligations win over calculated ones
with the same (kind, due_date).
"""
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Sequence
import logging

from dateutil.relativedelta import relativedelta
from sqlalchemy import select, and_
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ledgercast.data.accounts.models import GLAccount, BankTransaction
from ledgercast.data.base import generate_id
from ledgercast.data.tax.models import TaxObligation as TaxObligationRecord, OrganisationTaxProfile
from ledgercast.forecast.errors import SourceUnavailableError
from ledgercast.forecast.types import Precision
from ledgercast.tax import rules
from ledgercast.tax.types import (
    LedgerAccount,
    LedgerTransaction,
    LedgerWindow,
    TaxKind,
    TaxObligation,
    TaxProfile,
    TaxRates,
    TaxStatus,
    UK_TAX_RATES,
    VatReturnPeriod,
    VatScheme,
)

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AsyncSession]


def profile_from_record(record: Optional[OrganisationTaxProfile]) -> TaxProfile:
    """Map the stored profile row to a TaxProfile, defaulting when absent."""
    if record is None:
        return TaxProfile()
    return TaxProfile(
        financial_year_end_month=record.financial_year_end_month,
        financial_year_end_day=record.financial_year_end_day,
        vat_scheme=VatScheme(record.vat_scheme),
        vat_returns=VatReturnPeriod(record.vat_returns),
        registration_number=record.registration_number,
    )


def obligation_from_record(record: TaxObligationRecord) -> TaxObligation:
    return TaxObligation(
        kind=TaxKind(record.obligation_type),
        due_date=record.due_date,
        amount=Decimal(record.amount),
        reference=record.reference,
        period_start=record.period_start,
        period_end=record.period_end,
        status=TaxStatus(record.status),
        precision=Precision(record.precision or Precision.PRECISE.value),
        notes=record.notes,
        persisted=True,
    )


class UKTaxCalculator:
    """
    Calculates upcoming VAT, PAYE/NI and corporation tax obligations.

    Each call opens its own session so it can run alongside the other
    forecast loaders.
    """

    def __init__(self, session_factory: SessionFactory, rates: TaxRates = UK_TAX_RATES):
        self.session_factory = session_factory
        self.rates = rates

    # ==========================================================================
    # Queries
    # ==========================================================================

    async def load_profile(self, db: AsyncSession) -> TaxProfile:
        result = await db.execute(select(OrganisationTaxProfile).limit(1))
        return profile_from_record(result.scalar_one_or_none())

    async def load_ledger_window(self, db: AsyncSession, today: date) -> LedgerWindow:
        """GL accounts plus authorised transactions for the trailing profit window."""
        since = today - relativedelta(months=self.rates.profit_lookback_months)

        result = await db.execute(select(GLAccount).order_by(GLAccount.code))
        accounts = tuple(
            LedgerAccount(code=a.code, name=a.name, account_class=a.account_class)
            for a in result.scalars().all()
        )

        result = await db.execute(
            select(BankTransaction)
            .where(
                and_(
                    BankTransaction.date >= since,
                    BankTransaction.status == "AUTHORISED",
                )
            )
            .order_by(BankTransaction.date, BankTransaction.id)
        )
        transactions = tuple(
            LedgerTransaction(
                date=t.date,
                transaction_type=t.transaction_type,
                amount=Decimal(t.amount),
                account_code=t.account_code,
                description=t.description,
                status=t.status,
            )
            for t in result.scalars().all()
        )

        return LedgerWindow(accounts=accounts, transactions=transactions)

    async def load_pending_obligations(
        self, db: AsyncSession, today: date, horizon_end: date
    ) -> List[TaxObligation]:
        result = await db.execute(
            select(TaxObligationRecord)
            .where(
                and_(
                    TaxObligationRecord.status == TaxStatus.PENDING.value,
                    TaxObligationRecord.due_date >= today,
                    TaxObligationRecord.due_date <= horizon_end,
                )
            )
            .order_by(TaxObligationRecord.due_date)
        )
        return [obligation_from_record(r) for r in result.scalars().all()]

    # ==========================================================================
    # Calculation
    # ==========================================================================

    async def calculate_upcoming_obligations(
        self, horizon_days: int, today: Optional[date] = None
    ) -> List[TaxObligation]:
        """
        Calculated obligations merged with pending ones already on file.

        Raises:
            SourceUnavailableError: the store could not be queried
        """
        today = today or date.today()
        horizon_end = today + timedelta(days=horizon_days)

        try:
            async with self.session_factory() as db:
                profile = await self.load_profile(db)
                ledger = await self.load_ledger_window(db, today)
                persisted = await self.load_pending_obligations(db, today, horizon_end)
        except (SQLAlchemyError, OSError) as e:
            raise SourceUnavailableError("tax_obligations", e) from e

        calculated = rules.calculate_upcoming_obligations(
            horizon_days, profile, ledger, today, self.rates
        )
        estimated = [o for o in calculated if o.precision != Precision.PRECISE]
        if estimated:
            logger.info(
                f"{len(estimated)} tax obligation(s) estimated heuristically: "
                + ", ".join(o.reference for o in estimated)
            )

        return rules.merge_obligations(persisted, calculated)

    # ==========================================================================
    # Persistence
    # ==========================================================================

    async def store_tax_obligations(
        self, db: AsyncSession, obligations: Sequence[TaxObligation]
    ) -> int:
        """
        Insert calculated obligations keyed by (kind, due_date).

        Runs inside the caller's transaction. An existing row for the same
        key is never modified, whatever its status, so stored obligations
        outside the loaded horizon keep their amounts. Returns the number of
        obligations offered for insert.
        """
        derived = [o for o in obligations if not o.persisted]
        if not derived:
            return 0

        stmt = insert(TaxObligationRecord).values([
            {
                "id": generate_id("tax"),
                "obligation_type": o.kind.value,
                "due_date": o.due_date,
                "amount": o.amount,
                "period_start": o.period_start,
                "period_end": o.period_end,
                "reference": o.reference,
                "notes": o.notes,
                "status": o.status.value,
                "precision": o.precision.value,
            }
            for o in derived
        ])
        stmt = stmt.on_conflict_do_nothing(index_elements=["obligation_type", "due_date"])
        await db.execute(stmt)
        return len(derived)
