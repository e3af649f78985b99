"""Initial schema: identity, subscriptions, quotas, usage and audit tables

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables used by metering, entitlements and billing webhooks."""

    op.create_table(
        'users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(255)),
        sa.Column('role', sa.String(20), server_default='member', nullable=False),
        sa.Column('provider', sa.String(50)),
        sa.Column('api_keys', sa.Text()),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'workspaces',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('owner_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('plan', sa.String(50), server_default='Free', nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_workspaces_slug', 'workspaces', ['slug'], unique=True)
    op.create_index('ix_workspaces_owner_id', 'workspaces', ['owner_id'])

    op.create_table(
        'workspace_members',
        sa.Column('workspace_id', sa.String(), sa.ForeignKey('workspaces.id'), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('role', sa.String(20), server_default='member', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_workspace_members_user_id', 'workspace_members', ['user_id'])

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.String(), primary_key=True),

        # Scope: exactly one of these is set
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id')),
        sa.Column('workspace_id', sa.String(), sa.ForeignKey('workspaces.id')),

        # Polar IDs
        sa.Column('polar_subscription_id', sa.String(), nullable=False),
        sa.Column('polar_customer_id', sa.String(), nullable=False),

        # Subscription details
        sa.Column('status', sa.String(30), server_default='active', nullable=False),
        sa.Column('plan', sa.String(30), server_default='free', nullable=False),

        # Billing period dates
        sa.Column('current_period_start', sa.DateTime(timezone=True)),
        sa.Column('current_period_end', sa.DateTime(timezone=True)),
        sa.Column('cancel_at_period_end', sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            '(user_id IS NULL) <> (workspace_id IS NULL)',
            name='ck_subscriptions_single_scope',
        ),
    )
    op.create_index(
        'ix_subscriptions_polar_subscription_id',
        'subscriptions',
        ['polar_subscription_id'],
        unique=True,
    )
    op.create_index('ix_subscriptions_polar_customer_id', 'subscriptions', ['polar_customer_id'])
    op.create_index('ix_subscriptions_workspace_status', 'subscriptions', ['workspace_id', 'status'])
    op.create_index('ix_subscriptions_user_status', 'subscriptions', ['user_id', 'status'])

    op.create_table(
        'usage_quotas',
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), primary_key=True),
        sa.Column('ai_requests_used', sa.Integer(), server_default='0', nullable=False),
        sa.Column('ai_requests_limit', sa.Integer(), nullable=False),
        sa.Column('reset_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('warning_80_sent', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('warning_90_sent', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('warning_100_sent', sa.Boolean(), server_default=sa.false(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_usage_quotas_reset_at', 'usage_quotas', ['reset_at'])

    op.create_table(
        'usage_logs',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('resource_type', sa.String(30), nullable=False),
        sa.Column('resource_id', sa.String(255)),
        sa.Column('quantity', sa.Integer(), server_default='1', nullable=False),
        sa.Column('metadata', JSON_TYPE),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_usage_logs_user_id', 'usage_logs', ['user_id'])
    op.create_index('ix_usage_logs_resource_type', 'usage_logs', ['resource_type'])
    op.create_index('ix_usage_logs_timestamp', 'usage_logs', ['timestamp'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id')),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('resource_type', sa.String(50)),
        sa.Column('resource_id', sa.String(255)),
        sa.Column('changes', JSON_TYPE),
        sa.Column('ip_address', sa.String(64)),
        sa.Column('user_agent', sa.Text()),
        sa.Column('timestamp', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_timestamp', 'audit_logs', ['timestamp'])

    op.create_table(
        'webhook_events',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('source', sa.String(30), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('payload', JSON_TYPE),
        sa.Column('status', sa.String(20), server_default='pending', nullable=False),
        sa.Column('last_error', sa.Text()),
        sa.Column('processed_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_webhook_events_status', 'webhook_events', ['status'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_table('webhook_events')
    op.drop_table('audit_logs')
    op.drop_table('usage_logs')
    op.drop_table('usage_quotas')
    op.drop_table('subscriptions')
    op.drop_table('workspace_members')
    op.drop_table('workspaces')
    op.drop_table('users')
