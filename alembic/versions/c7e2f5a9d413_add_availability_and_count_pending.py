"""add teacher availability rules and session count_pending

Revision ID: c7e2f5a9d413
Revises: a1c4e9d2b7f3
Create Date: 2026-10-17 15:30:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'c7e2f5a9d413'
down_revision: Union[str, None] = 'a1c4e9d2b7f3'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column('sessions', sa.Column('count_pending', sa.Boolean(), nullable=False, server_default=sa.false()))

    op.create_table('teacher_availability_rules',
    sa.Column('id', sa.UUID(), nullable=False),
    sa.Column('teacher', sa.UUID(), nullable=False),
    sa.Column('weekday', sa.Integer(), nullable=False),
    sa.Column('start_time', sa.Time(), nullable=False),
    sa.Column('end_time', sa.Time(), nullable=False),
    sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.CheckConstraint('weekday >= 0 AND weekday <= 6', name='availability_weekday_range'),
    sa.CheckConstraint('end_time > start_time', name='availability_end_after_start'),
    )
    op.create_index('idx_availability_teacher_weekday', 'teacher_availability_rules', ['teacher', 'weekday'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_availability_teacher_weekday', table_name='teacher_availability_rules')
    op.drop_table('teacher_availability_rules')

    op.drop_column('sessions', 'count_pending')
