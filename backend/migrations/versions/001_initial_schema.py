"""Initial schema - creates all tables for Bridge.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2025-10-02

This single migration creates the complete database schema including:
- Users with subscription and usage state
- Documents, their translation results and share links
- Dead-lettered webhook events
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(JSONB, 'postgresql')


def upgrade() -> None:
    # ========== USERS ==========
    op.create_table(
        'users',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('email_verified', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('role', sa.String(20), nullable=False, server_default='customer'),
        sa.Column('banned', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('subscription_plan', sa.String(20), nullable=False, server_default='free'),
        sa.Column('subscription_status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('subscription_start_date', sa.DateTime, nullable=True),
        sa.Column('subscription_end_date', sa.DateTime, nullable=True),
        sa.Column('trial_ends_at', sa.DateTime, nullable=True),
        sa.Column('stripe_customer_id', sa.String(255), nullable=True),
        sa.Column('stripe_subscription_id', sa.String(255), nullable=True),
        sa.Column('translation_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('translation_limit', sa.Integer, nullable=False, server_default='5'),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_stripe_customer_id', 'users', ['stripe_customer_id'])

    # ========== DOCUMENTS ==========
    op.create_table(
        'documents',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('family_id', sa.String(36), nullable=True),
        sa.Column('blob_url', sa.String(1024), nullable=False),
        sa.Column('filename', sa.String(255), nullable=False),
        sa.Column('mime_type', sa.String(100), nullable=False),
        sa.Column('file_size', sa.Integer, nullable=False),
        sa.Column('page_count', sa.Integer, nullable=True),
        sa.Column('uploaded_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_documents_user_id', 'documents', ['user_id'])
    op.create_index('idx_documents_user_id_uploaded_at', 'documents', ['user_id', 'uploaded_at'])

    # ========== RESULTS ==========
    op.create_table(
        'results',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'document_id', sa.String(36),
            sa.ForeignKey('documents.id', ondelete='CASCADE'),
            nullable=False, unique=True,
        ),
        sa.Column('translation_html', sa.Text, nullable=False),
        sa.Column('summary', JSON_TYPE, nullable=False),
        sa.Column('detected_language', sa.String(16), nullable=False),
        sa.Column('target_language', sa.String(16), nullable=False, server_default='en'),
        sa.Column('domain', sa.String(20), nullable=True),
        sa.Column('confidence', sa.Integer, nullable=False),
        sa.Column('processing_time_ms', sa.Integer, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    # ========== SHARES ==========
    op.create_table(
        'shares',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column(
            'document_id', sa.String(36),
            sa.ForeignKey('documents.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('created_by', sa.String(64), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('token', sa.String(128), nullable=False),
        sa.Column('expires_at', sa.DateTime, nullable=False),
        sa.Column('can_download', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('view_count', sa.Integer, nullable=False, server_default='0'),
        sa.Column('last_viewed_at', sa.DateTime, nullable=True),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_shares_document_id', 'shares', ['document_id'])
    op.create_index('ix_shares_token', 'shares', ['token'], unique=True)

    # ========== WEBHOOK FAILURES ==========
    op.create_table(
        'webhook_failures',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('provider', sa.String(32), nullable=False),
        sa.Column('event_id', sa.String(255), nullable=True),
        sa.Column('event_type', sa.String(100), nullable=True),
        sa.Column('payload', JSON_TYPE, nullable=True),
        sa.Column('error_message', sa.Text, nullable=False),
        sa.Column('created_at', sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column('resolved_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_webhook_failures_provider', 'webhook_failures', ['provider'])


def downgrade() -> None:
    op.drop_table('webhook_failures')
    op.drop_table('shares')
    op.drop_table('results')
    op.drop_table('documents')
    op.drop_table('users')
