"""create scheduling tables

Revision ID: a1c4e9d2b7f3
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c4e9d2b7f3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    ]


def upgrade() -> None:
    op.create_table('subscriptions',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('student', sa.UUID(), nullable=False),
    sa.Column('teacher', sa.UUID(), nullable=True),
    sa.Column('course', sa.String(length=100), nullable=False),
    sa.Column('package', sa.String(length=100), nullable=False),
    sa.Column('course_label', sa.String(length=200), nullable=True),
    sa.Column('session_duration_min', sa.Integer(), nullable=False, server_default='60'),
    sa.Column('weeks_total', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('sessions_total', sa.Integer(), nullable=False),
    sa.Column('sessions_remaining', sa.Integer(), nullable=False),
    sa.Column('postpone_total', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('postpone_remaining', sa.Integer(), nullable=False, server_default='0'),
    sa.Column('status', sa.String(length=50), nullable=False, server_default='draft'),
    sa.Column('payment_reference', sa.String(length=100), nullable=True),
    *_timestamps(),
    sa.PrimaryKeyConstraint('id'),
    sa.CheckConstraint('sessions_remaining >= 0 AND sessions_remaining <= sessions_total', name='sessions_remaining_range'),
    sa.CheckConstraint('postpone_remaining >= 0 AND postpone_remaining <= postpone_total', name='postpone_remaining_range'),
    )
    op.create_index('idx_subscriptions_student', 'subscriptions', ['student'], unique=False)
    op.create_index('idx_subscriptions_teacher', 'subscriptions', ['teacher'], unique=False)

    op.create_table('subscription_weeks',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('subscription', sa.UUID(), nullable=False),
    sa.Column('week_index', sa.Integer(), nullable=False),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='draft'),
    sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('teacher_comment', sa.String(length=1000), nullable=True),
    *_timestamps(),
    sa.PrimaryKeyConstraint('id'),
    sa.ForeignKeyConstraint(['subscription'], ['subscriptions.id'], ondelete='CASCADE'),
    sa.UniqueConstraint('subscription', 'week_index', name='uq_subscription_week_index'),
    )

    op.create_table('week_slots',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('week', sa.UUID(), nullable=False),
    sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('end_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('note', sa.String(length=1000), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.ForeignKeyConstraint(['week'], ['subscription_weeks.id'], ondelete='CASCADE'),
    sa.CheckConstraint('end_at > start_at', name='slot_end_after_start'),
    )
    op.create_index('idx_week_slots_week_start', 'week_slots', ['week', 'start_at'], unique=False)

    op.create_table('sessions',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('subscription', sa.UUID(), nullable=False),
    sa.Column('source_slot', sa.UUID(), nullable=True),
    sa.Column('start_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('end_at', sa.DateTime(timezone=True), nullable=False),
    sa.Column('status', sa.String(length=50), nullable=False, server_default='scheduled'),
    sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('postpone_reason', sa.String(length=1000), nullable=True),
    sa.Column('postpone_requested_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('postpone_approved_at', sa.DateTime(timezone=True), nullable=True),
    sa.Column('zoom_meeting_id', sa.String(length=100), nullable=True),
    sa.Column('zoom_join_url', sa.String(length=1000), nullable=True),
    sa.Column('zoom_start_url', sa.String(length=2000), nullable=True),
    *_timestamps(),
    sa.PrimaryKeyConstraint('id'),
    sa.ForeignKeyConstraint(['subscription'], ['subscriptions.id'], ondelete='CASCADE'),
    sa.UniqueConstraint('source_slot'),
    sa.CheckConstraint('end_at > start_at', name='session_end_after_start'),
    )
    op.create_index('idx_sessions_subscription_start', 'sessions', ['subscription', 'start_at'], unique=False)
    op.create_index('idx_sessions_status_end', 'sessions', ['status', 'end_at'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_sessions_status_end', table_name='sessions')
    op.drop_index('idx_sessions_subscription_start', table_name='sessions')
    op.drop_table('sessions')

    op.drop_index('idx_week_slots_week_start', table_name='week_slots')
    op.drop_table('week_slots')

    op.drop_table('subscription_weeks')

    op.drop_index('idx_subscriptions_teacher', table_name='subscriptions')
    op.drop_index('idx_subscriptions_student', table_name='subscriptions')
    op.drop_table('subscriptions')
