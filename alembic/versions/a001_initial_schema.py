"""Initial schema creation

Revision ID: a001
Revises: 
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'a001'
down_revision = None
branch_labels = None
depends_on = None

# SQLAlchemy Enum columns persist member names
USER_ROLES = ('WORKER', 'SUPERVISOR', 'ADMIN', 'INTERNAL_AUDITOR')
CERTIFICATION_STATUSES = ('ACTIVE', 'EXPIRED', 'REVOKED', 'PENDING_VERIFICATION')
REMINDER_TIERS = ('SIXTY_DAY', 'THIRTY_DAY', 'SEVEN_DAY', 'EXPIRED')
REMINDER_STATUSES = ('PENDING', 'SENDING', 'SENT', 'FAILED')


def upgrade() -> None:
    """Create initial database schema."""

    # Create companies table
    op.create_table(
        'companies',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('domain', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('safety_manager_name', sa.String(255), nullable=True),
        sa.Column('safety_manager_email', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    # Create users table
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('company_id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('first_name', sa.String(255), nullable=False),
        sa.Column('last_name', sa.String(255), nullable=False),
        sa.Column('role', sa.Enum(*USER_ROLES, name='userrole'), nullable=False),
        sa.Column('supervisor_id', sa.String(36), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['supervisor_id'], ['users.id'])
    )
    op.create_index('ix_users_company_id', 'users', ['company_id'])
    op.create_index('ix_users_role', 'users', ['role'])

    # Create certification_types table
    op.create_table(
        'certification_types',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),
        sa.Column('category', sa.String(100), nullable=False),
        sa.Column('alert_at_60_days', sa.Boolean(), nullable=False),
        sa.Column('alert_at_30_days', sa.Boolean(), nullable=False),
        sa.Column('alert_at_7_days', sa.Boolean(), nullable=False),
        sa.Column('alert_on_expiry', sa.Boolean(), nullable=False),
        sa.Column('required_for_work', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_certification_types_code', 'certification_types', ['code'])

    # Create certifications table
    op.create_table(
        'certifications',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('worker_id', sa.String(36), nullable=False),
        sa.Column('certification_type_id', sa.String(36), nullable=False),
        sa.Column('company_id', sa.String(36), nullable=False),
        sa.Column('certificate_number', sa.String(100), nullable=True),
        sa.Column('issue_date', sa.Date(), nullable=True),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('status', sa.Enum(*CERTIFICATION_STATUSES, name='certificationstatus'), nullable=False),
        sa.Column('alert_60_sent', sa.Boolean(), nullable=False),
        sa.Column('alert_30_sent', sa.Boolean(), nullable=False),
        sa.Column('alert_7_sent', sa.Boolean(), nullable=False),
        sa.Column('alert_expired_sent', sa.Boolean(), nullable=False),
        sa.Column('last_alert_sent_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['worker_id'], ['users.id']),
        sa.ForeignKeyConstraint(['certification_type_id'], ['certification_types.id']),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id'])
    )
    op.create_index('ix_certifications_worker_id', 'certifications', ['worker_id'])
    op.create_index('ix_certifications_company_id', 'certifications', ['company_id'])
    op.create_index('ix_certifications_expiry_date', 'certifications', ['expiry_date'])
    op.create_index('ix_certifications_status', 'certifications', ['status'])

    # Create certification_reminders table
    op.create_table(
        'certification_reminders',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('certification_id', sa.String(36), nullable=False),
        sa.Column('company_id', sa.String(36), nullable=False),
        sa.Column('tier', sa.Enum(*REMINDER_TIERS, name='remindertier'), nullable=False),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('status', sa.Enum(*REMINDER_STATUSES, name='reminderstatus'), nullable=False),
        sa.Column('claimed_at', sa.DateTime(), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('send_attempts', sa.Integer(), nullable=False),
        sa.Column('acknowledged', sa.Boolean(), nullable=False),
        sa.Column('acknowledged_at', sa.DateTime(), nullable=True),
        sa.Column('acknowledged_by', sa.String(36), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['certification_id'], ['certifications.id']),
        sa.ForeignKeyConstraint(['company_id'], ['companies.id']),
        sa.ForeignKeyConstraint(['acknowledged_by'], ['users.id']),
        sa.UniqueConstraint('certification_id', 'tier', name='uq_reminder_certification_tier')
    )
    op.create_index('ix_certification_reminders_certification_id', 'certification_reminders', ['certification_id'])
    op.create_index('ix_certification_reminders_company_id', 'certification_reminders', ['company_id'])
    op.create_index('ix_certification_reminders_scheduled_date', 'certification_reminders', ['scheduled_date'])
    op.create_index('ix_certification_reminders_status', 'certification_reminders', ['status'])

    # Create notification_logs table
    op.create_table(
        'notification_logs',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('reminder_id', sa.String(64), nullable=True),
        sa.Column('certification_id', sa.String(36), nullable=True),
        sa.Column('worker_id', sa.String(36), nullable=True),
        sa.Column('company_id', sa.String(36), nullable=True),
        sa.Column('tier', sa.String(20), nullable=False),
        sa.Column('recipients', sa.Text(), nullable=False),
        sa.Column('subject', sa.String(500), nullable=False),
        sa.Column('delivery_status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('provider', sa.String(50), nullable=True),
        sa.Column('sent_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notification_logs_reminder_id', 'notification_logs', ['reminder_id'])
    op.create_index('ix_notification_logs_certification_id', 'notification_logs', ['certification_id'])
    op.create_index('ix_notification_logs_company_id', 'notification_logs', ['company_id'])
    op.create_index('ix_notification_logs_sent_at', 'notification_logs', ['sent_at'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table('notification_logs')
    op.drop_table('certification_reminders')
    op.drop_table('certifications')
    op.drop_table('certification_types')
    op.drop_table('users')
    op.drop_table('companies')
