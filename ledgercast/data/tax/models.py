"""Tax obligation and tax profile models."""
from sqlalchemy import Column, String, DateTime, Date, Numeric, Integer, Text, UniqueConstraint
from sqlalchemy.sql import func

from ledgercast.database import Base
from ledgercast.data.base import generate_id


class TaxObligation(Base):
    """A future tax payment, either entered by hand or derived by the calculator."""

    __tablename__ = "tax_obligations"

    id = Column(String, primary_key=True, default=lambda: generate_id("tax"))
    obligation_type = Column(String, nullable=False)  # "VAT" | "PAYROLL" | "CORPORATE"
    due_date = Column(Date, nullable=False)
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    period_start = Column(Date, nullable=True)
    period_end = Column(Date, nullable=True)
    reference = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="PENDING")  # "PENDING" | "PAID"
    precision = Column(String, nullable=False, default="PRECISE")  # "PRECISE" | "ESTIMATED" | "DEGRADED"
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("obligation_type", "due_date", name="uq_tax_obligation_type_due_date"),
    )


class OrganisationTaxProfile(Base):
    """Tax registration details for the organisation (single row)."""

    __tablename__ = "organisation_tax_profiles"

    id = Column(String, primary_key=True, default=lambda: generate_id("org"))
    financial_year_end_month = Column(Integer, nullable=False, default=3)
    financial_year_end_day = Column(Integer, nullable=False, default=31)
    vat_scheme = Column(String, nullable=False, default="STANDARD")  # "STANDARD" | "CASH" | "FLAT_RATE" | "NONE"
    vat_returns = Column(String, nullable=False, default="QUARTERLY")  # "MONTHLY" | "QUARTERLY"
    registration_number = Column(String, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
