"""create_dues_ledger

Revision ID: 8c1d2e3f4a5b
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c1d2e3f4a5b'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'user',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('last_name', sa.String(length=100), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=9), nullable=True),
        sa.Column('approved', sa.Boolean(), nullable=True),
        sa.Column('date_joined', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_user_email', 'user', ['email'], unique=True)

    op.create_table(
        'member_category',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(length=30), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('rank', sa.Integer(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_member_category_code', 'member_category', ['code'], unique=True)
    op.create_index('ix_member_category_name', 'member_category', ['name'], unique=True)

    op.create_table(
        'member',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_number', sa.String(length=30), nullable=True),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('category_id', sa.Uuid(), nullable=True),
        sa.Column('status', sa.String(length=9), nullable=False),
        sa.Column('outstanding_balance', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['member_category.id']),
        sa.ForeignKeyConstraint(['user_id'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_member_member_number', 'member', ['member_number'], unique=True)
    op.create_index('ix_member_user_id', 'member', ['user_id'], unique=True)
    op.create_index('ix_member_category_id', 'member', ['category_id'], unique=False)

    op.create_table(
        'dues_plan',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=150), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('billing_cycle', sa.String(length=9), nullable=False),
        sa.Column('target_category_id', sa.Uuid(), nullable=True),
        sa.Column('active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['target_category_id'], ['member_category.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_dues_plan_code', 'dues_plan', ['code'], unique=True)

    op.create_table(
        'dues_assessment',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('plan_id', sa.Uuid(), nullable=False),
        sa.Column('period', sa.String(length=20), nullable=False),
        sa.Column('target_type', sa.String(length=10), nullable=False),
        sa.Column('target_category_id', sa.Uuid(), nullable=True),
        sa.Column('requested_member_ids', sa.Text(), nullable=True),
        sa.Column('assigned_count', sa.Integer(), nullable=False),
        sa.Column('skipped_count', sa.Integer(), nullable=False),
        sa.Column('created_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['plan_id'], ['dues_plan.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['target_category_id'], ['member_category.id']),
        sa.ForeignKeyConstraint(['created_by'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_dues_assessment_plan_id', 'dues_assessment', ['plan_id'], unique=False)

    op.create_table(
        'assigned_due',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('plan_id', sa.Uuid(), nullable=False),
        sa.Column('category_id', sa.Uuid(), nullable=True),
        sa.Column('assessment_id', sa.Uuid(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('period', sa.String(length=20), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(length=7), nullable=False),
        sa.Column('reference', sa.String(length=200), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('waived_at', sa.DateTime(), nullable=True),
        sa.Column('waived_by', sa.Uuid(), nullable=True),
        sa.Column('waiver_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['member.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['plan_id'], ['dues_plan.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['category_id'], ['member_category.id']),
        sa.ForeignKeyConstraint(['assessment_id'], ['dues_assessment.id']),
        sa.ForeignKeyConstraint(['waived_by'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('member_id', 'plan_id', 'period', name='uq_assigned_due_member_plan_period'),
        sa.UniqueConstraint('reference'),
    )
    op.create_index('ix_assigned_due_member_id', 'assigned_due', ['member_id'], unique=False)
    op.create_index('ix_assigned_due_plan_id', 'assigned_due', ['plan_id'], unique=False)
    op.create_index('ix_assigned_due_category_id', 'assigned_due', ['category_id'], unique=False)
    op.create_index('ix_assigned_due_assessment_id', 'assigned_due', ['assessment_id'], unique=False)
    op.create_index('ix_assigned_due_status', 'assigned_due', ['status'], unique=False)
    op.create_index('idx_assigned_due_member_status', 'assigned_due', ['member_id', 'status'], unique=False)

    op.create_table(
        'payment',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('member_id', sa.Uuid(), nullable=False),
        sa.Column('plan_id', sa.Uuid(), nullable=True),
        sa.Column('assigned_due_id', sa.Uuid(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False),
        sa.Column('method', sa.String(length=13), nullable=False),
        sa.Column('paid_at', sa.Date(), nullable=False),
        sa.Column('reference', sa.String(length=100), nullable=True),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('cross_posted', sa.Boolean(), nullable=False),
        sa.Column('recorded_by', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('reversed_at', sa.DateTime(), nullable=True),
        sa.Column('reversed_by', sa.Uuid(), nullable=True),
        sa.Column('reversal_reason', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['member.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['plan_id'], ['dues_plan.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['assigned_due_id'], ['assigned_due.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['recorded_by'], ['user.id']),
        sa.ForeignKeyConstraint(['reversed_by'], ['user.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payment_member_id', 'payment', ['member_id'], unique=False)
    op.create_index('ix_payment_plan_id', 'payment', ['plan_id'], unique=False)
    op.create_index('ix_payment_assigned_due_id', 'payment', ['assigned_due_id'], unique=False)
    op.create_index('ix_payment_paid_at', 'payment', ['paid_at'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_payment_paid_at', table_name='payment')
    op.drop_index('ix_payment_assigned_due_id', table_name='payment')
    op.drop_index('ix_payment_plan_id', table_name='payment')
    op.drop_index('ix_payment_member_id', table_name='payment')
    op.drop_table('payment')

    op.drop_index('idx_assigned_due_member_status', table_name='assigned_due')
    op.drop_index('ix_assigned_due_status', table_name='assigned_due')
    op.drop_index('ix_assigned_due_assessment_id', table_name='assigned_due')
    op.drop_index('ix_assigned_due_category_id', table_name='assigned_due')
    op.drop_index('ix_assigned_due_plan_id', table_name='assigned_due')
    op.drop_index('ix_assigned_due_member_id', table_name='assigned_due')
    op.drop_table('assigned_due')

    op.drop_index('ix_dues_assessment_plan_id', table_name='dues_assessment')
    op.drop_table('dues_assessment')

    op.drop_index('ix_dues_plan_code', table_name='dues_plan')
    op.drop_table('dues_plan')

    op.drop_index('ix_member_category_id', table_name='member')
    op.drop_index('ix_member_user_id', table_name='member')
    op.drop_index('ix_member_member_number', table_name='member')
    op.drop_table('member')

    op.drop_index('ix_member_category_name', table_name='member_category')
    op.drop_index('ix_member_category_code', table_name='member_category')
    op.drop_table('member_category')

    op.drop_index('ix_user_email', table_name='user')
    op.drop_table('user')
