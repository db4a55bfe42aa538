"""initial schema

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('users',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('name', sa.String(length=255), nullable=True),
    sa.Column('photo', sa.String(length=1024), nullable=True),
    sa.Column('role', sa.String(length=20), nullable=False, server_default='student'),
    sa.Column('last_login', sa.DateTime(timezone=True), nullable=True),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('email')
    )
    op.create_index('idx_users_role', 'users', ['role'], unique=False)

    op.create_table('study_sessions',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('title', sa.String(length=255), nullable=False),
    sa.Column('description', sa.Text(), nullable=True),
    sa.Column('tutor_name', sa.String(length=255), nullable=True),
    sa.Column('tutor_email', sa.String(length=255), nullable=False),
    sa.Column('registration_start_date', sa.DateTime(timezone=True), nullable=True),
    sa.Column('registration_end_date', sa.DateTime(timezone=True), nullable=True),
    sa.Column('class_start_date', sa.DateTime(timezone=True), nullable=True),
    sa.Column('class_end_date', sa.DateTime(timezone=True), nullable=True),
    sa.Column('duration', sa.String(length=50), nullable=True),
    sa.Column('fee', sa.String(length=32), nullable=False, server_default='0'),
    sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
    sa.Column('rejection_reason', sa.Text(), nullable=True),
    sa.Column('rejection_feedback', sa.Text(), nullable=True),
    sa.Column('average_rating', sa.Float(), nullable=False, server_default='0'),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_study_sessions_status_start', 'study_sessions', ['status', 'registration_start_date'], unique=False)
    op.create_index('idx_study_sessions_tutor', 'study_sessions', ['tutor_email'], unique=False)

    op.create_table('session_reviews',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('session_id', sa.Uuid(), nullable=False),
    sa.Column('position', sa.Integer(), nullable=False),
    sa.Column('student_name', sa.String(length=255), nullable=True),
    sa.Column('review_text', sa.Text(), nullable=True),
    sa.Column('rating', sa.Float(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.ForeignKeyConstraint(['session_id'], ['study_sessions.id'], ondelete='CASCADE'),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('session_id', 'position', name='uq_session_reviews_position')
    )

    op.create_table('booked_sessions',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('session_id', sa.Uuid(), nullable=False),
    sa.Column('student_email', sa.String(length=255), nullable=False),
    sa.Column('student_name', sa.String(length=255), nullable=True),
    sa.Column('tutor_email', sa.String(length=255), nullable=True),
    sa.Column('payment_status', sa.String(length=10), nullable=False, server_default='unpaid'),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id'),
    sa.UniqueConstraint('session_id', 'student_email', name='uq_booked_sessions_session_student')
    )
    op.create_index('idx_booked_sessions_student', 'booked_sessions', ['student_email'], unique=False)

    op.create_table('materials',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('session_id', sa.Uuid(), nullable=False),
    sa.Column('tutor_email', sa.String(length=255), nullable=False),
    sa.Column('title', sa.String(length=255), nullable=False),
    sa.Column('link', sa.String(length=2048), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_materials_session', 'materials', ['session_id'], unique=False)
    op.create_index('idx_materials_tutor', 'materials', ['tutor_email'], unique=False)

    op.create_table('transactions',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('student_email', sa.String(length=255), nullable=False),
    sa.Column('session_id', sa.Uuid(), nullable=False),
    sa.Column('session_title', sa.String(length=255), nullable=True),
    sa.Column('amount', sa.Numeric(10, 2), nullable=False),
    sa.Column('date', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('payment_reference', sa.String(length=255), nullable=True),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_transactions_student_date', 'transactions', ['student_email', 'date'], unique=False)

    op.create_table('notes',
    sa.Column('id', sa.Uuid(), nullable=False),
    sa.Column('email', sa.String(length=255), nullable=False),
    sa.Column('title', sa.String(length=255), nullable=False),
    sa.Column('description', sa.Text(), nullable=False),
    sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_notes_email', 'notes', ['email'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_notes_email', table_name='notes')
    op.drop_table('notes')
    op.drop_index('idx_transactions_student_date', table_name='transactions')
    op.drop_table('transactions')
    op.drop_index('idx_materials_tutor', table_name='materials')
    op.drop_index('idx_materials_session', table_name='materials')
    op.drop_table('materials')
    op.drop_index('idx_booked_sessions_student', table_name='booked_sessions')
    op.drop_table('booked_sessions')
    op.drop_table('session_reviews')
    op.drop_index('idx_study_sessions_tutor', table_name='study_sessions')
    op.drop_index('idx_study_sessions_status_start', table_name='study_sessions')
    op.drop_table('study_sessions')
    op.drop_index('idx_users_role', table_name='users')
    op.drop_table('users')
