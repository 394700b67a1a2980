"""Ledger core tables

Revision ID: 20261019_0900
Revises:
Create Date: 2026-10-19 09:00:00.000000

This migration creates the complete ledger schema:
- ledger_transactions / ledger_entries: append-only double-entry postings
- payroll_records: per-employee monthly payroll linked to its posting
- qit_returns: stored quarterly income tax declarations
- company_capital, capital_contributions, shareholders: share capital register
- beneficial_owners: beneficial ownership register
- dividend_declarations / dividend_distributions: dividend lifecycle
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_0900'
down_revision = None
branch_labels = None
depends_on = None


def table_exists(table_name: str) -> bool:
    """Check if a table exists."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    return table_name in inspector.get_table_names()


def _money(name: str, nullable: bool = False, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(18, 2), nullable=nullable, **kwargs)


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # ===========================================
    # LEDGER
    # ===========================================
    if not table_exists('ledger_transactions'):
        op.create_table('ledger_transactions',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('company_id', sa.Uuid(), nullable=False),
            sa.Column('transaction_date', sa.Date(), nullable=False),
            sa.Column('reference', sa.String(100), nullable=False),
            sa.Column('description', sa.String(500), nullable=False),
            sa.Column('source_type', sa.String(20), nullable=False),
            sa.Column('source_id', sa.String(128), nullable=False),
            _money('total_debit'),
            _money('total_credit'),
            sa.Column('currency', sa.String(3), nullable=False, server_default='RWF'),
            sa.Column('reverses_transaction_id', sa.Uuid(),
                      sa.ForeignKey('ledger_transactions.id', ondelete='RESTRICT'), nullable=True),
            sa.Column('reversal_reason', sa.Text(), nullable=True),
            sa.Column('posted_at', sa.DateTime(timezone=True), nullable=False),
            sa.UniqueConstraint('company_id', 'source_type', 'source_id',
                                name='uq_ledger_transactions_idempotency_key'),
        )
        op.create_index('ix_ledger_transactions_company_date', 'ledger_transactions',
                        ['company_id', 'transaction_date'])

    if not table_exists('ledger_entries'):
        op.create_table('ledger_entries',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('company_id', sa.Uuid(), nullable=False),
            sa.Column('transaction_id', sa.Uuid(),
                      sa.ForeignKey('ledger_transactions.id', ondelete='RESTRICT'), nullable=False),
            sa.Column('line_number', sa.Integer(), nullable=False),
            sa.Column('entry_date', sa.Date(), nullable=False),
            sa.Column('account_code', sa.String(10), nullable=False),
            sa.Column('account_name', sa.String(100), nullable=False),
            _money('debit', server_default='0'),
            _money('credit', server_default='0'),
            sa.Column('reference', sa.String(100), nullable=False),
            sa.Column('description', sa.String(500), nullable=False),
            sa.Column('source_type', sa.String(20), nullable=False),
            sa.Column('source_id', sa.String(128), nullable=False),
            sa.Column('party_id', sa.String(128), nullable=True),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        )
        op.create_index('ix_ledger_entries_transaction_id', 'ledger_entries', ['transaction_id'])
        op.create_index('ix_ledger_entries_company_date', 'ledger_entries', ['company_id', 'entry_date'])
        op.create_index('ix_ledger_entries_company_account_date', 'ledger_entries',
                        ['company_id', 'account_code', 'entry_date'])
        op.create_index('ix_ledger_entries_company_source', 'ledger_entries',
                        ['company_id', 'source_type', 'source_id'])

    # ===========================================
    # PAYROLL & TAX
    # ===========================================
    if not table_exists('payroll_records'):
        op.create_table('payroll_records',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('company_id', sa.Uuid(), nullable=False, index=True),
            sa.Column('employee_id', sa.String(128), nullable=False),
            sa.Column('employee_name', sa.String(200), nullable=True),
            sa.Column('period', sa.String(7), nullable=False, index=True),
            _money('gross_salary'),
            _money('paye'),
            _money('rssb_employee'),
            _money('rssb_employer'),
            _money('net_salary'),
            sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('ledger_transaction_id', sa.Uuid(),
                      sa.ForeignKey('ledger_transactions.id'), nullable=True, index=True),
            *_timestamps(),
            sa.UniqueConstraint('company_id', 'employee_id', 'period',
                                name='uq_payroll_records_employee_period'),
        )

    if not table_exists('qit_returns'):
        op.create_table('qit_returns',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('company_id', sa.Uuid(), nullable=False, index=True),
            sa.Column('quarter', sa.String(2), nullable=False),
            sa.Column('year', sa.Integer(), nullable=False),
            _money('estimated_income'),
            sa.Column('tax_rate', sa.Numeric(7, 4), nullable=False),
            _money('tax_amount'),
            sa.Column('due_date', sa.Date(), nullable=False),
            sa.Column('paid', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('paid_date', sa.Date(), nullable=True),
            sa.Column('proof_reference', sa.String(200), nullable=True),
            *_timestamps(),
            sa.UniqueConstraint('company_id', 'quarter', 'year',
                                name='uq_qit_returns_company_quarter_year'),
        )

    # ===========================================
    # SHARE CAPITAL
    # ===========================================
    if not table_exists('company_capital'):
        op.create_table('company_capital',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('company_id', sa.Uuid(), nullable=False, index=True),
            sa.Column('authorized_shares', sa.BigInteger(), nullable=False),
            _money('share_price'),
            sa.Column('issued_shares', sa.BigInteger(), nullable=False, server_default='0'),
            _money('paid_up_capital', server_default='0'),
            sa.Column('currency', sa.String(3), nullable=False, server_default='RWF'),
            sa.Column('capital_type', sa.String(30), nullable=False, server_default='ordinary'),
            *_timestamps(),
            sa.UniqueConstraint('company_id', name='uq_company_capital_company_id'),
        )

    if not table_exists('capital_contributions'):
        op.create_table('capital_contributions',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('company_id', sa.Uuid(), nullable=False, index=True),
            sa.Column('shareholder_ref', sa.String(128), nullable=False, index=True),
            sa.Column('shareholder_name', sa.String(200), nullable=False),
            _money('amount'),
            sa.Column('shares_allocated', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('contribution_type', sa.String(20), nullable=False, server_default='cash'),
            sa.Column('contribution_date', sa.Date(), nullable=False),
            sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
            sa.Column('description', sa.Text(), nullable=True),
            sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('ledger_transaction_id', sa.Uuid(),
                      sa.ForeignKey('ledger_transactions.id'), nullable=True),
            *_timestamps(),
        )

    if not table_exists('shareholders'):
        op.create_table('shareholders',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('company_id', sa.Uuid(), nullable=False, index=True),
            sa.Column('shareholder_ref', sa.String(128), nullable=False),
            sa.Column('name', sa.String(200), nullable=False),
            sa.Column('shares_held', sa.BigInteger(), nullable=False, server_default='0'),
            sa.Column('ownership_percentage', sa.Numeric(9, 4), nullable=False, server_default='0'),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('is_director', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('is_beneficial_owner', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('entry_date', sa.Date(), nullable=False),
            *_timestamps(),
            sa.UniqueConstraint('company_id', 'shareholder_ref', name='uq_shareholders_company_ref'),
        )

    if not table_exists('beneficial_owners'):
        op.create_table('beneficial_owners',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('company_id', sa.Uuid(), nullable=False, index=True),
            sa.Column('full_name', sa.String(200), nullable=False),
            sa.Column('nationality', sa.String(100), nullable=False),
            sa.Column('id_number', sa.String(50), nullable=False),
            sa.Column('relationship_to_company', sa.String(100), nullable=False),
            sa.Column('ownership_percentage', sa.Numeric(7, 4), nullable=False, server_default='0'),
            sa.Column('control_percentage', sa.Numeric(7, 4), nullable=False, server_default='0'),
            sa.Column('has_significant_control', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('verification_status', sa.String(20), nullable=False, server_default='pending'),
            sa.Column('date_of_birth', sa.Date(), nullable=True),
            sa.Column('address', sa.Text(), nullable=True),
            *_timestamps(),
        )

    # ===========================================
    # DIVIDENDS
    # ===========================================
    if not table_exists('dividend_declarations'):
        op.create_table('dividend_declarations',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('company_id', sa.Uuid(), nullable=False, index=True),
            sa.Column('declaration_date', sa.Date(), nullable=False),
            _money('profit_amount'),
            sa.Column('dividend_percentage', sa.Numeric(7, 4), nullable=False),
            _money('dividend_pool'),
            sa.Column('approved_by', sa.String(200), nullable=False),
            sa.Column('notes', sa.Text(), nullable=True),
            sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
            sa.Column('ledger_transaction_id', sa.Uuid(),
                      sa.ForeignKey('ledger_transactions.id'), nullable=True),
            *_timestamps(),
        )

    if not table_exists('dividend_distributions'):
        op.create_table('dividend_distributions',
            sa.Column('id', sa.Uuid(), primary_key=True),
            sa.Column('company_id', sa.Uuid(), nullable=False, index=True),
            sa.Column('declaration_id', sa.Uuid(),
                      sa.ForeignKey('dividend_declarations.id', ondelete='CASCADE'), nullable=False, index=True),
            sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('shareholder_ref', sa.String(128), nullable=False),
            sa.Column('shareholder_name', sa.String(200), nullable=False),
            sa.Column('shares_held_at_time', sa.BigInteger(), nullable=False),
            _money('amount'),
            sa.Column('is_paid', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('paid_on', sa.Date(), nullable=True),
            sa.Column('payment_proof_url', sa.String(500), nullable=True),
            sa.Column('ledger_transaction_id', sa.Uuid(),
                      sa.ForeignKey('ledger_transactions.id'), nullable=True),
            *_timestamps(),
        )


def downgrade() -> None:
    for table in (
        'dividend_distributions',
        'dividend_declarations',
        'beneficial_owners',
        'shareholders',
        'capital_contributions',
        'company_capital',
        'qit_returns',
        'payroll_records',
        'ledger_entries',
        'ledger_transactions',
    ):
        if table_exists(table):
            op.drop_table(table)
