"""add_cashflow_forecast_tables

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2026-10-19 00:01:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Synced ledger data (read by the forecast engine)
    op.create_table(
        'bank_accounts',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('code', sa.String(), nullable=True),
        sa.Column('balance', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('currency', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'gl_accounts',
        sa.Column('code', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('account_class', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.PrimaryKeyConstraint('code')
    )

    op.create_table(
        'bank_transactions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('transaction_type', sa.String(), nullable=False),
        sa.Column('account_code', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_bank_transactions_date', 'bank_transactions', ['date'])
    op.create_index('ix_bank_transactions_account_code', 'bank_transactions', ['account_code'])

    op.create_table(
        'synced_invoices',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('invoice_type', sa.String(), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('contact_id', sa.String(), nullable=True),
        sa.Column('contact_name', sa.String(), nullable=True),
        sa.Column('invoice_number', sa.String(), nullable=True),
        sa.Column('issue_date', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('amount_due', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('total', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_synced_invoices_type_status', 'synced_invoices', ['invoice_type', 'status'])
    op.create_index('ix_synced_invoices_due_date', 'synced_invoices', ['due_date'])

    op.create_table(
        'repeating_transactions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('transaction_type', sa.String(), nullable=False),
        sa.Column('contact_id', sa.String(), nullable=True),
        sa.Column('contact_name', sa.String(), nullable=True),
        sa.Column('schedule_unit', sa.String(), nullable=False),
        sa.Column('schedule_interval', sa.Integer(), nullable=False),
        sa.Column('next_scheduled_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'payment_patterns',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('contact_id', sa.String(), nullable=False),
        sa.Column('pattern_type', sa.String(), nullable=False),
        sa.Column('average_days_to_pay', sa.Numeric(precision=7, scale=2), nullable=False),
        sa.Column('on_time_rate', sa.Numeric(precision=5, scale=4), nullable=False),
        sa.Column('sample_size', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('contact_id', 'pattern_type', name='uq_payment_pattern_contact_type')
    )

    op.create_table(
        'cash_flow_budgets',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('account_code', sa.String(), nullable=False),
        sa.Column('account_name', sa.String(), nullable=True),
        sa.Column('category', sa.String(), nullable=False),
        sa.Column('month_year', sa.String(), nullable=False),
        sa.Column('budgeted_amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_cash_flow_budgets_month_year', 'cash_flow_budgets', ['month_year'])

    # Tax
    op.create_table(
        'organisation_tax_profiles',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('financial_year_end_month', sa.Integer(), nullable=False),
        sa.Column('financial_year_end_day', sa.Integer(), nullable=False),
        sa.Column('vat_scheme', sa.String(), nullable=False),
        sa.Column('vat_returns', sa.String(), nullable=False),
        sa.Column('registration_number', sa.String(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table(
        'tax_obligations',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('obligation_type', sa.String(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=True),
        sa.Column('period_end', sa.Date(), nullable=True),
        sa.Column('reference', sa.String(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('precision', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('obligation_type', 'due_date', name='uq_tax_obligation_type_due_date')
    )

    # Forecast output
    op.create_table(
        'cash_flow_forecasts',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('opening_balance', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('from_invoices', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('from_recurring', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('from_other', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('total_inflows', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('to_bills', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('to_recurring', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('to_tax', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('to_inferred_patterns', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('to_budget', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('total_outflows', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('closing_balance', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('best_case', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('worst_case', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('confidence_level', sa.Numeric(precision=4, scale=2), nullable=False),
        sa.Column('alerts', JSONB, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_cash_flow_forecasts_date', 'cash_flow_forecasts', ['date'], unique=True)


def downgrade() -> None:
    op.drop_index('ix_cash_flow_forecasts_date', table_name='cash_flow_forecasts')
    op.drop_table('cash_flow_forecasts')
    op.drop_table('tax_obligations')
    op.drop_table('organisation_tax_profiles')
    op.drop_index('ix_cash_flow_budgets_month_year', table_name='cash_flow_budgets')
    op.drop_table('cash_flow_budgets')
    op.drop_table('payment_patterns')
    op.drop_table('repeating_transactions')
    op.drop_index('ix_synced_invoices_due_date', table_name='synced_invoices')
    op.drop_index('ix_synced_invoices_type_status', table_name='synced_invoices')
    op.drop_table('synced_invoices')
    op.drop_index('ix_bank_transactions_account_code', table_name='bank_transactions')
    op.drop_index('ix_bank_transactions_date', table_name='bank_transactions')
    op.drop_table('bank_transactions')
    op.drop_table('gl_accounts')
    op.drop_table('bank_accounts')
