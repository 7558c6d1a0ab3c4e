"""Initial settlement schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-18 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

PAYMENT_METHODS = ('STRIPE', 'PAYMONGO', 'PAYPAL', 'CREDIT')


def _timestamps():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create settlement tables."""
    op.create_table(
        'users',
        *_timestamps(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('telegram_id', sa.String(50), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('is_tenant', sa.Boolean(), nullable=False),
        sa.Column('is_landlord', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_user_telegram_id', 'users', ['telegram_id'])

    op.create_table(
        'occupancies',
        *_timestamps(),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('landlord_id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('renewal_status', sa.String(30), nullable=True),
        sa.Column('renewal_requested', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['landlord_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_occupancy_tenant_property', 'occupancies', ['tenant_id', 'property_id'])

    # payment_records first; its FK to payment_requests is added below (cycle)
    op.create_table(
        'payment_records',
        *_timestamps(),
        sa.Column('payment_request_id', sa.Integer(), nullable=False),
        sa.Column('gateway_reference', sa.String(255), nullable=False),
        sa.Column('external_transaction_id', sa.String(255), nullable=True),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('landlord_id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('credit_applied', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('method', sa.Enum(*PAYMENT_METHODS, name='paymentmethod'), nullable=False),
        sa.Column('status', sa.Enum('RECORDED', name='recordstatus'), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('water_bill', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('electrical_bill', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('other_bills', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('bills_description', sa.String(500), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['landlord_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('payment_request_id', 'gateway_reference', name='uq_payment_record_settlement'),
    )
    op.create_index('idx_payment_record_tenant_paid', 'payment_records', ['tenant_id', 'paid_at'])
    op.create_index('idx_payment_record_landlord_paid', 'payment_records', ['landlord_id', 'paid_at'])

    op.create_table(
        'payment_requests',
        *_timestamps(),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('landlord_id', sa.Integer(), nullable=False),
        sa.Column('property_id', sa.Integer(), nullable=False),
        sa.Column('occupancy_id', sa.Integer(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('rent_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('advance_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('security_deposit_amount', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('water_bill', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('electrical_bill', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('wifi_bill', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('other_bills', sa.Numeric(precision=12, scale=2), nullable=True),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('status', sa.Enum('PENDING', 'PENDING_CONFIRMATION', 'PAID', name='billstatus'), nullable=False),
        # Enum type already created with payment_records
        sa.Column('payment_method', postgresql.ENUM(*PAYMENT_METHODS, name='paymentmethod', create_type=False), nullable=True),
        sa.Column('tenant_reference_number', sa.String(255), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_id', sa.Integer(), nullable=True),
        sa.Column('is_move_in_payment', sa.Boolean(), nullable=False),
        sa.Column('is_advance_payment', sa.Boolean(), nullable=False),
        sa.Column('is_renewal_payment', sa.Boolean(), nullable=False),
        sa.Column('advance_source_id', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['tenant_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['landlord_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['occupancy_id'], ['occupancies.id'], ),
        sa.ForeignKeyConstraint(['payment_id'], ['payment_records.id'], ),
        sa.ForeignKeyConstraint(['advance_source_id'], ['payment_requests.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_payment_request_tenant_status', 'payment_requests', ['tenant_id', 'status'])
    op.create_index('idx_payment_request_occupancy_due', 'payment_requests', ['occupancy_id', 'due_date'])

    with op.batch_alter_table('payment_records') as batch_op:
        batch_op.create_foreign_key(
            'fk_payment_records_payment_request_id', 'payment_requests',
            ['payment_request_id'], ['id'],
        )

    op.create_table(
        'tenant_balances',
        *_timestamps(),
        sa.Column('tenant_id', sa.Integer(), nullable=False),
        sa.Column('occupancy_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('last_updated', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['tenant_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['occupancy_id'], ['occupancies.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tenant_id', 'occupancy_id', name='uq_tenant_balance_key'),
    )

    op.create_table(
        'audit_logs',
        *_timestamps(),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    """Drop settlement tables."""
    op.drop_table('audit_logs')
    op.drop_table('tenant_balances')
    with op.batch_alter_table('payment_records') as batch_op:
        batch_op.drop_constraint('fk_payment_records_payment_request_id', type_='foreignkey')
    op.drop_table('payment_requests')
    op.drop_table('payment_records')
    op.drop_table('occupancies')
    op.drop_table('users')
    sa.Enum(name='billstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='paymentmethod').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='recordstatus').drop(op.get_bind(), checkfirst=True)
