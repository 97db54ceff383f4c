"""Daily cash flow forecast model."""
from sqlalchemy import Column, String, DateTime, Date, Numeric
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from ledgercast.database import Base
from ledgercast.data.base import generate_id


class CashFlowForecast(Base):
    """One forecast day. Rows are upserted by date, never duplicated."""

    __tablename__ = "cash_flow_forecasts"

    id = Column(String, primary_key=True, default=lambda: generate_id("fc"))
    date = Column(Date, nullable=False, unique=True, index=True)

    opening_balance = Column(Numeric(precision=15, scale=2), nullable=False)

    # Inflows
    from_invoices = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    from_recurring = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    from_other = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    total_inflows = Column(Numeric(precision=15, scale=2), nullable=False, default=0)

    # Outflows
    to_bills = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    to_recurring = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    to_tax = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    to_inferred_patterns = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    to_budget = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    total_outflows = Column(Numeric(precision=15, scale=2), nullable=False, default=0)

    closing_balance = Column(Numeric(precision=15, scale=2), nullable=False)
    best_case = Column(Numeric(precision=15, scale=2), nullable=False)
    worst_case = Column(Numeric(precision=15, scale=2), nullable=False)
    confidence_level = Column(Numeric(precision=4, scale=2), nullable=False)

    alerts = Column(JSONB, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())
