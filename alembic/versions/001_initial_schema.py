"""Initial hiring pipeline schema

Revision ID: 001_initial_schema
Revises: 
Create Date: 2026-10-17 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
    return sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True)


def _fk(name: str, target: str, ondelete: str, nullable: bool = False) -> sa.Column:
    return sa.Column(
        name, sa.BigInteger(), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable
    )


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create every table of the hiring pipeline."""
    op.create_table(
        'users',
        _id(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('user_type', sa.String(length=20), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('linkedin_url', sa.String(length=500), nullable=True),
        sa.Column('portfolio_url', sa.String(length=500), nullable=True),
        sa.Column('resume_path', sa.String(length=500), nullable=True),
        sa.Column('profile_summary', sa.Text(), nullable=True),
        sa.Column('company_name', sa.String(length=255), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('idx_users_user_type', 'users', ['user_type'])

    op.create_table(
        'organizations',
        _id(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('industry', sa.String(length=255), nullable=True),
        sa.Column('company_size', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='inactive'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_organizations_name'),
    )
    op.create_index('idx_organizations_status', 'organizations', ['status'])

    op.create_table(
        'departments',
        _id(),
        _fk('organization_id', 'organizations.id', 'CASCADE'),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('organization_id', 'name', name='uq_departments_org_name'),
    )
    op.create_index('idx_departments_organization', 'departments', ['organization_id'])

    op.create_table(
        'user_organizations',
        _id(),
        _fk('user_id', 'users.id', 'CASCADE'),
        _fk('organization_id', 'organizations.id', 'CASCADE'),
        _fk('department_id', 'departments.id', 'SET NULL', nullable=True),
        sa.Column('role', sa.String(length=50), nullable=False, server_default='member'),
        sa.Column('is_primary', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'organization_id', name='uq_user_organizations'),
    )
    op.create_index('idx_user_orgs_user', 'user_organizations', ['user_id'])
    op.create_index('idx_user_orgs_org', 'user_organizations', ['organization_id'])

    op.create_table(
        'job_requests',
        _id(),
        _fk('organization_id', 'organizations.id', 'CASCADE'),
        _fk('department_id', 'departments.id', 'SET NULL', nullable=True),
        _fk('requested_by_user_id', 'users.id', 'CASCADE'),
        _fk('hiring_manager_user_id', 'users.id', 'SET NULL', nullable=True),
        _fk('assigned_to_hr_user_id', 'users.id', 'SET NULL', nullable=True),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('job_description', sa.Text(), nullable=False),
        sa.Column('requirements', sa.Text(), nullable=True),
        sa.Column('timeline_to_hire', sa.String(length=100), nullable=True),
        sa.Column('priority', sa.String(length=20), nullable=False, server_default='normal'),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='received'),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('candidates_delivered_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_job_requests_org', 'job_requests', ['organization_id'])
    op.create_index('idx_job_requests_dept', 'job_requests', ['department_id'])
    op.create_index('idx_job_requests_status', 'job_requests', ['status'])
    op.create_index('idx_job_requests_assigned_hr', 'job_requests', ['assigned_to_hr_user_id'])

    op.create_table(
        'candidates',
        _id(),
        _fk('job_request_id', 'job_requests.id', 'CASCADE'),
        _fk('user_id', 'users.id', 'SET NULL', nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=50), nullable=True),
        sa.Column('linkedin_url', sa.String(length=500), nullable=True),
        sa.Column('portfolio_url', sa.String(length=500), nullable=True),
        sa.Column('resume_path', sa.String(length=500), nullable=True),
        sa.Column('profile_summary', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='delivered'),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('viewed_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('job_request_id', 'user_id', name='uq_candidates_job_user'),
    )
    op.create_index('idx_candidates_job_request', 'candidates', ['job_request_id'])
    op.create_index('idx_candidates_user', 'candidates', ['user_id'])
    op.create_index('idx_candidates_status', 'candidates', ['status'])

    op.create_table(
        'interviews',
        _id(),
        _fk('job_request_id', 'job_requests.id', 'CASCADE'),
        _fk('candidate_id', 'candidates.id', 'CASCADE'),
        _fk('scheduled_by_user_id', 'users.id', 'CASCADE'),
        sa.Column('scheduled_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('meeting_link', sa.String(length=500), nullable=True),
        sa.Column('meeting_platform', sa.String(length=50), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='scheduled'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('feedback', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_interviews_job_request', 'interviews', ['job_request_id'])
    op.create_index('idx_interviews_candidate', 'interviews', ['candidate_id'])
    op.create_index('idx_interviews_scheduled_at', 'interviews', ['scheduled_at'])
    op.create_index('idx_interviews_status', 'interviews', ['status'])

    op.create_table(
        'interview_participants',
        _id(),
        _fk('interview_id', 'interviews.id', 'CASCADE'),
        _fk('user_id', 'users.id', 'CASCADE'),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='attendee'),
        sa.Column('confirmed', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('interview_id', 'user_id', name='uq_interview_participant'),
    )
    op.create_index('idx_interview_participants_user', 'interview_participants', ['user_id'])

    op.create_table(
        'site_staff',
        _id(),
        _fk('user_id', 'users.id', 'CASCADE'),
        _fk('candidate_id', 'candidates.id', 'CASCADE'),
        _fk('job_request_id', 'job_requests.id', 'CASCADE'),
        _fk('organization_id', 'organizations.id', 'CASCADE'),
        sa.Column('position_title', sa.String(length=255), nullable=False),
        sa.Column('hired_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('resigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='active'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_site_staff_user_id', 'site_staff', ['user_id'])
    op.create_index('idx_site_staff_organization_id', 'site_staff', ['organization_id'])
    op.create_index('idx_site_staff_status', 'site_staff', ['status'])

    op.create_table(
        'tickets',
        _id(),
        _fk('created_by_user_id', 'users.id', 'CASCADE'),
        sa.Column('ticket_type', sa.String(length=10), nullable=False),
        sa.Column('subject', sa.String(length=255), nullable=True),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='open'),
        _fk('assigned_to_user_id', 'users.id', 'SET NULL', nullable=True),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_tickets_created_by', 'tickets', ['created_by_user_id'])
    op.create_index('idx_tickets_assigned_to', 'tickets', ['assigned_to_user_id'])
    op.create_index('idx_tickets_status', 'tickets', ['status'])

    op.create_table(
        'ticket_messages',
        _id(),
        _fk('ticket_id', 'tickets.id', 'CASCADE'),
        _fk('sender_user_id', 'users.id', 'CASCADE'),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_ticket_messages_ticket', 'ticket_messages', ['ticket_id', 'created_at'])

    op.create_table(
        'user_invitations',
        _id(),
        _fk('organization_id', 'organizations.id', 'CASCADE'),
        _fk('invited_by_user_id', 'users.id', 'CASCADE'),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=50), nullable=False),
        sa.Column('token', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        _fk('verified_by_admin_id', 'users.id', 'SET NULL', nullable=True),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('token', name='uq_user_invitations_token'),
    )
    op.create_index('idx_invitations_org', 'user_invitations', ['organization_id'])
    op.create_index('idx_invitations_email', 'user_invitations', ['email'])
    op.create_index('idx_invitations_status', 'user_invitations', ['status'])

    op.create_table(
        'notifications',
        _id(),
        _fk('user_id', 'users.id', 'CASCADE'),
        sa.Column('type', sa.String(length=50), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('related_entity_type', sa.String(length=50), nullable=True),
        sa.Column('related_entity_id', sa.BigInteger(), nullable=True),
        sa.Column('read', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_notifications_user_read', 'notifications', ['user_id', 'read'])
    op.create_index('idx_notifications_created', 'notifications', ['created_at'])
    op.create_index('idx_notifications_entity', 'notifications', ['related_entity_type', 'related_entity_id'])

    op.create_table(
        'activity_logs',
        _id(),
        _fk('user_id', 'users.id', 'SET NULL', nullable=True),
        sa.Column('user_type', sa.String(length=20), nullable=True),
        _fk('organization_id', 'organizations.id', 'SET NULL', nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.BigInteger(), nullable=True),
        sa.Column('old_value', sa.JSON(), nullable=True),
        sa.Column('new_value', sa.JSON(), nullable=True),
        sa.Column('details', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_activity_logs_entity', 'activity_logs', ['entity_type', 'entity_id'])
    op.create_index('idx_activity_logs_org', 'activity_logs', ['organization_id'])
    op.create_index('idx_activity_logs_user', 'activity_logs', ['user_id'])
    op.create_index('idx_activity_logs_created', 'activity_logs', ['created_at'])


def downgrade() -> None:
    """Drop every table, dependents first."""
    for table in (
        'activity_logs',
        'notifications',
        'user_invitations',
        'ticket_messages',
        'tickets',
        'site_staff',
        'interview_participants',
        'interviews',
        'candidates',
        'job_requests',
        'user_organizations',
        'departments',
        'organizations',
        'users',
    ):
        op.drop_table(table)
