# SessionGuard - Session Security Subsystem
# Copyright (c) 2026 George Scott Foley
# ORCID: 0009-0006-4957-0540
# Email: Georgescottfoley@proton.me
# Licensed under the MIT License - see LICENSE file for details

"""User sessions table

Revision ID: 001_user_sessions
Revises:
Create Date: 2026-10-18

Server-side session store with identity signals, risk score and
bounded activity history.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = '001_user_sessions'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create user_sessions and its lookup indexes."""

    op.create_table(
        'user_sessions',
        sa.Column('session_id', sa.String(64), primary_key=True),
        sa.Column('user_id', sa.String(100), nullable=False),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('role', sa.String(50), nullable=False, server_default='user'),

        # Identity signals
        sa.Column('ip_address', sa.String(45), nullable=False,
                  comment='Client IP (IPv4 or IPv6)'),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('device_fingerprint', sa.String(64), nullable=True,
                  comment='sha256 of user agent, language, encoding and IP'),

        # Lifecycle
        sa.Column('login_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_activity', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True,
                  comment='Absolute expiry, fixed at creation'),
        sa.Column('logout_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('logout_reason', sa.String(100), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active',
                  comment='active, expired, logged_out, terminated'),

        # Documents
        sa.Column('location_data', sa.JSON(), nullable=True),
        sa.Column('session_metadata', sa.JSON(), nullable=True),
        sa.Column('security_events', sa.JSON(), nullable=True),
        sa.Column('activity_log', sa.JSON(), nullable=True),
        sa.Column('anomaly_flags', sa.JSON(), nullable=True),
        sa.Column('risk_score', sa.Integer(), nullable=False, server_default='0'),

        # Optimistic concurrency
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),

        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('NOW()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('NOW()')),
    )

    op.create_index('idx_user_sessions_user_id', 'user_sessions', ['user_id'])
    op.create_index('idx_user_sessions_username_status', 'user_sessions', ['username', 'status'])
    op.create_index('idx_user_sessions_status', 'user_sessions', ['status'])
    op.create_index('idx_user_sessions_login_time', 'user_sessions', ['login_time'])
    op.create_index('idx_user_sessions_last_activity', 'user_sessions', ['last_activity'])
    op.create_index('idx_user_sessions_ip_address', 'user_sessions', ['ip_address'])
    op.create_index('idx_user_sessions_risk_score', 'user_sessions', ['risk_score'])

    # Partial index for the concurrency cap and the idle sweep
    op.execute("""
        CREATE INDEX idx_user_sessions_active
        ON user_sessions (username, last_activity)
        WHERE status = 'active'
    """)


def downgrade():
    """Drop user_sessions."""
    op.execute("DROP INDEX IF EXISTS idx_user_sessions_active")
    op.drop_index('idx_user_sessions_risk_score', table_name='user_sessions')
    op.drop_index('idx_user_sessions_ip_address', table_name='user_sessions')
    op.drop_index('idx_user_sessions_last_activity', table_name='user_sessions')
    op.drop_index('idx_user_sessions_login_time', table_name='user_sessions')
    op.drop_index('idx_user_sessions_status', table_name='user_sessions')
    op.drop_index('idx_user_sessions_username_status', table_name='user_sessions')
    op.drop_index('idx_user_sessions_user_id', table_name='user_sessions')
    op.drop_table('user_sessions')
