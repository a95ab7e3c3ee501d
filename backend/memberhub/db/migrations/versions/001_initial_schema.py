"""Initial schema migration

Revision ID: 001
Revises:
Create Date: 2024-01-01 00:00:00.000000

Tables:
- organizations, users
- membership_types, custom_fields
- memberships, linked_members
- workflows, workflow_executions
- audit_log
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


userrole = sa.Enum('member', 'admin', 'super_admin', name='userrole')
userstatus = sa.Enum('pending', 'active', 'inactive', 'suspended', name='userstatus')
membershipstatus = sa.Enum('pending', 'active', 'rejected', 'expired', name='membershipstatus')
paymentstatus = sa.Enum('unpaid', 'paid', 'partial', 'refunded', 'waived', name='paymentstatus')
workflowexecutionstatus = sa.Enum('pending', 'running', 'completed', 'failed', name='workflowexecutionstatus')


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated', sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # Organizations table
    op.create_table(
        'organizations',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('name', sa.String(200), nullable=False, unique=True, index=True),
        sa.Column('slug', sa.String(100), nullable=True, unique=True),
        sa.Column('settings', sa.JSON(), nullable=True),
        *_timestamps(),
    )

    # Users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('organization_id', sa.String(15), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('role', userrole, nullable=False, server_default='member', index=True),
        sa.Column('status', userstatus, nullable=False, server_default='pending', index=True),
        *_timestamps(),
    )

    # Membership types and their custom fields
    op.create_table(
        'membership_types',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('organization_id', sa.String(15), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('duration_months', sa.Integer(), nullable=False, server_default='12'),
        sa.Column('max_members', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('requires_approval', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('settings', sa.JSON(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint('organization_id', 'slug', name='uq_membership_types_org_slug'),
    )
    op.create_table(
        'custom_fields',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('organization_id', sa.String(15), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('membership_type_id', sa.String(15), sa.ForeignKey('membership_types.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('field_name', sa.String(100), nullable=False),
        sa.Column('field_label', sa.String(200), nullable=False),
        sa.Column('field_type', sa.String(50), nullable=False, server_default='text'),
        sa.Column('field_options', sa.JSON(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('display_order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('validation_rules', sa.JSON(), nullable=True),
        *_timestamps(),
    )

    # Memberships and linked members
    op.create_table(
        'memberships',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('organization_id', sa.String(15), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', sa.String(15), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('membership_type_id', sa.String(15), sa.ForeignKey('membership_types.id'), nullable=False, index=True),
        sa.Column('status', membershipstatus, nullable=False, server_default='pending', index=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True, index=True),
        sa.Column('payment_status', paymentstatus, nullable=False, server_default='unpaid'),
        sa.Column('amount_paid', sa.Numeric(10, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('custom_data', sa.JSON(), nullable=True),
        sa.Column('approved_by', sa.String(15), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'linked_members',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('membership_id', sa.String(15), sa.ForeignKey('memberships.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column('relationship', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('custom_data', sa.JSON(), nullable=True),
        *_timestamps(),
    )

    # Workflows
    op.create_table(
        'workflows',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('organization_id', sa.String(15), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('trigger_type', sa.String(100), nullable=False, index=True),
        sa.Column('trigger_config', sa.JSON(), nullable=True),
        sa.Column('actions', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        'workflow_executions',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('workflow_id', sa.String(15), sa.ForeignKey('workflows.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', sa.String(15), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('status', workflowexecutionstatus, nullable=False, server_default='pending', index=True),
        sa.Column('trigger_data', sa.JSON(), nullable=True),
        sa.Column('error', sa.Text(), nullable=True),
        *_timestamps(),
    )

    # Audit log
    op.create_table(
        'audit_log',
        sa.Column('id', sa.String(15), primary_key=True),
        sa.Column('organization_id', sa.String(15), sa.ForeignKey('organizations.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('user_id', sa.String(15), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True, index=True),
        sa.Column('action', sa.String(100), nullable=False, index=True),
        sa.Column('entity_type', sa.String(50), nullable=False, index=True),
        sa.Column('entity_id', sa.String(15), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('ip_address', sa.String(45), nullable=True),
        sa.Column('user_agent', sa.String(500), nullable=True),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table('audit_log')
    op.drop_table('workflow_executions')
    op.drop_table('workflows')
    op.drop_table('linked_members')
    op.drop_table('memberships')
    op.drop_table('custom_fields')
    op.drop_table('membership_types')
    op.drop_table('users')
    op.drop_table('organizations')

    bind = op.get_bind()
    if bind.dialect.name != "postgresql":
        return
    for enum_type in (workflowexecutionstatus, paymentstatus, membershipstatus, userstatus, userrole):
        enum_type.drop(bind, checkfirst=True)
