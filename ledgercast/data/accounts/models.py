"""Account and ledger models synced from the accounting system."""
from sqlalchemy import Column, String, DateTime, Date, Numeric, Text, Index
from sqlalchemy.sql import func

from ledgercast.database import Base
from ledgercast.data.base import generate_id


class BankAccount(Base):
    """Bank account with its latest synced balance."""

    __tablename__ = "bank_accounts"

    id = Column(String, primary_key=True, default=lambda: generate_id("bank"))
    name = Column(String, nullable=False)
    code = Column(String, nullable=True)
    balance = Column(Numeric(precision=15, scale=2), nullable=False, default=0)
    currency = Column(String, nullable=False, default="GBP")
    status = Column(String, nullable=False, default="ACTIVE")  # "ACTIVE" | "ARCHIVED"
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())


class GLAccount(Base):
    """Chart-of-accounts entry. Liability accounts drive the tax estimates."""

    __tablename__ = "gl_accounts"

    code = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    account_class = Column(String, nullable=False)  # "ASSET" | "LIABILITY" | "EQUITY" | "REVENUE" | "EXPENSE"
    status = Column(String, nullable=False, default="ACTIVE")


class BankTransaction(Base):
    """Cash movement on a bank account."""

    __tablename__ = "bank_transactions"

    id = Column(String, primary_key=True, default=lambda: generate_id("txn"))
    date = Column(Date, nullable=False)
    transaction_type = Column(String, nullable=False)  # "RECEIVE" | "SPEND"
    account_code = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    amount = Column(Numeric(precision=15, scale=2), nullable=False)
    status = Column(String, nullable=False, default="AUTHORISED")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_bank_transactions_date", "date"),
        Index("ix_bank_transactions_account_code", "account_code"),
    )
