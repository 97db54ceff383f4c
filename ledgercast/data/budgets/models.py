"""Cash flow budget model."""
from sqlalchemy import Column, String, Numeric, Index

from ledgercast.database import Base
from ledgercast.data.base import generate_id


class CashFlowBudget(Base):
    """Budgeted amount for one account code in one month."""

    __tablename__ = "cash_flow_budgets"

    id = Column(String, primary_key=True, default=lambda: generate_id("bud"))
    account_code = Column(String, nullable=False)
    account_name = Column(String, nullable=True)
    category = Column(String, nullable=False)  # "REVENUE" | "EXPENSE"
    month_year = Column(String, nullable=False)  # "YYYY-MM"
    budgeted_amount = Column(Numeric(precision=15, scale=2), nullable=False)

    __table_args__ = (
        Index("ix_cash_flow_budgets_month_year", "month_year"),
    )
