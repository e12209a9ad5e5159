"""create_application_workflow_tables

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-10-19 09:12:44.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


APPLICATION_STATUSES = (
    'PENDING',
    'UNDER_REVIEW',
    'INTERVIEW_SCHEDULED',
    'INTERVIEW_COMPLETED',
    'ACCEPTED',
    'HIRED',
    'REJECTED',
)
ACTOR_ROLES = ('APPLICANT', 'HR', 'ADMIN')

application_status = postgresql.ENUM(*APPLICATION_STATUSES, name='applicationstatus', create_type=False)
actor_role = postgresql.ENUM(*ACTOR_ROLES, name='actorrole', create_type=False)


def upgrade() -> None:
    """Upgrade schema."""
    # Both tables share the status type, so create the enums once up front
    postgresql.ENUM(*APPLICATION_STATUSES, name='applicationstatus').create(op.get_bind(), checkfirst=True)
    postgresql.ENUM(*ACTOR_ROLES, name='actorrole').create(op.get_bind(), checkfirst=True)

    op.create_table(
        'applications',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('job_id', sa.UUID(), nullable=False),
        sa.Column('applicant_id', sa.UUID(), nullable=False),
        sa.Column('status', application_status, nullable=False, server_default='PENDING'),
        sa.Column('version', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_applications_id', 'applications', ['id'])
    op.create_index('ix_applications_job_id', 'applications', ['job_id'])
    op.create_index('ix_applications_applicant_id', 'applications', ['applicant_id'])
    op.create_index('ix_applications_status', 'applications', ['status'])
    op.create_index('ix_applications_created_at', 'applications', ['created_at'])

    op.create_table(
        'application_audit_entries',
        sa.Column('id', sa.UUID(), nullable=False),
        sa.Column('application_id', sa.UUID(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('from_status', application_status, nullable=False),
        sa.Column('to_status', application_status, nullable=False),
        sa.Column('action', sa.String(length=50), nullable=False),
        sa.Column('performed_by_role', actor_role, nullable=False),
        sa.Column('performed_by_id', sa.String(length=255), nullable=False),
        sa.Column('performed_by_name', sa.String(length=255), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id']),
        sa.UniqueConstraint('application_id', 'sequence', name='uq_audit_application_sequence'),
    )
    op.create_index('ix_application_audit_entries_id', 'application_audit_entries', ['id'])
    op.create_index('ix_application_audit_entries_application_id', 'application_audit_entries', ['application_id'])
    op.create_index('ix_application_audit_entries_performed_by_id', 'application_audit_entries', ['performed_by_id'])
    op.create_index('ix_application_audit_entries_created_at', 'application_audit_entries', ['created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_application_audit_entries_created_at', 'application_audit_entries')
    op.drop_index('ix_application_audit_entries_performed_by_id', 'application_audit_entries')
    op.drop_index('ix_application_audit_entries_application_id', 'application_audit_entries')
    op.drop_index('ix_application_audit_entries_id', 'application_audit_entries')
    op.drop_table('application_audit_entries')

    op.drop_index('ix_applications_created_at', 'applications')
    op.drop_index('ix_applications_status', 'applications')
    op.drop_index('ix_applications_applicant_id', 'applications')
    op.drop_index('ix_applications_job_id', 'applications')
    op.drop_index('ix_applications_id', 'applications')
    op.drop_table('applications')

    sa.Enum(name='actorrole').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='applicationstatus').drop(op.get_bind(), checkfirst=True)
