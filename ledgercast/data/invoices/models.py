"""Invoice, repeating transaction and payment pattern models."""
from sqlalchemy import Column, String, DateTime, Date, Numeric, Integer, Index, UniqueConstraint
from sqlalchemy.sql import func

from ledgercast.database import Base
from ledgercast.data.base import generate_id


class SyncedInvoice(Base):
    """
    Invoice or bill synced from the accounting system.

    ACCREC rows are receivables (money owed to us), ACCPAY rows are
    payables (money we owe).
    """

    __tablename__ = "synced_invoices"

    id = Column(String, primary_key=True, default=lambda: generate_id("inv"))
    invoice_type = Column(String, nullable=False)  # "ACCREC" | "ACCPAY"
    status = Column(String, nullable=False, default="OPEN")  # "OPEN" | "PAID" | "VOIDED"
    contact_id = Column(String, nullable=True)
    contact_name = Column(String, nullable=True)
    invoice_number = Column(String, nullable=True)
    issue_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    amount_due = Column(Numeric(precision=15, scale=2), nullable=False)
    total = Column(Numeric(precision=15, scale=2), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_synced_invoices_type_status", "invoice_type", "status"),
        Index("ix_synced_invoices_due_date", "due_date"),
    )


class RepeatingTransaction(Base):
    """Repeating invoice or bill template with its next scheduled date."""

    __tablename__ = "repeating_transactions"

    id = Column(String, primary_key=True, default=lambda: generate_id("rep"))
    transaction_type = Column(String, nullable=False)  # "ACCREC" | "ACCPAY"
    contact_id = Column(String, nullable=True)
    contact_name = Column(String, nullable=True)
    schedule_unit = Column(String, nullable=False, default="MONTHLY")  # "WEEKLY" | "MONTHLY"
    schedule_interval = Column(Integer, nullable=False, default=1)
    next_scheduled_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    status = Column(String, nullable=False, default="AUTHORISED")


class PaymentPattern(Base):
    """Aggregated payment behaviour for a contact."""

    __tablename__ = "payment_patterns"

    id = Column(String, primary_key=True, default=lambda: generate_id("pat"))
    contact_id = Column(String, nullable=False)
    pattern_type = Column(String, nullable=False)  # "CUSTOMER" | "SUPPLIER"
    average_days_to_pay = Column(Numeric(precision=7, scale=2), nullable=False, default=0)
    on_time_rate = Column(Numeric(precision=5, scale=4), nullable=False, default=1)
    sample_size = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("contact_id", "pattern_type", name="uq_payment_pattern_contact_type"),
    )
