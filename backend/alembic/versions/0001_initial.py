"""initial schema

Revision ID: 0001
Revises:
Create Date: 2025-07-01 09:00:00
"""
from alembic import op
import sqlalchemy as sa

revision = '0001'
down_revision = None
branch_labels = None
depends_on = None

session_type = sa.Enum('normal', 'bilan', name='session_type')
reservation_status = sa.Enum('confirmed', 'cancelled', name='reservation_status')
cancelled_by = sa.Enum('client', 'admin', 'system', name='cancelled_by')


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role', sa.Enum('client', 'coach', 'admin', name='user_role'), nullable=False, server_default=sa.text("'client'")),
        sa.Column('username', sa.Text(), nullable=False, unique=True),
        sa.Column('email', sa.Text(), unique=True),
        sa.Column('full_name', sa.Text()),
        sa.Column('phone', sa.Text()),
        sa.Column('age', sa.Integer()),
        sa.Column('gender', sa.Enum('male', 'female', 'other', name='user_gender')),
        sa.Column('goal', sa.Text()),
        sa.Column('solo_points', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('team_points', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('points', sa.Integer(), nullable=False, server_default=sa.text('0')),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        'coaches',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL'), unique=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('specialty', sa.Text(), nullable=False),
        sa.Column('bio', sa.Text()),
        sa.Column('email', sa.Text()),
        sa.Column('photo', sa.Text()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('coach_id', sa.Integer(), sa.ForeignKey('coaches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('full_name', sa.Text()),
        sa.Column('email', sa.Text()),
        sa.Column('phone', sa.Text()),
        sa.Column('age', sa.Integer()),
        sa.Column('gender', sa.Text()),
        sa.Column('goal', sa.Text()),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.Time(), nullable=False),
        sa.Column('session_type', session_type, nullable=False, server_default=sa.text("'normal'")),
        sa.Column('reservation_type', sa.Enum('individual', 'group', name='reservation_type'), nullable=False, server_default=sa.text("'individual'")),
        sa.Column('status', reservation_status, nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column('is_free', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('created_by', sa.Text(), nullable=False, server_default=sa.text("'client'")),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('cancelled_at', sa.DateTime()),
        sa.Column('cancelled_by', cancelled_by),
    )
    op.create_index('idx_reservations_coach_date', 'reservations', ['coach_id', 'date', 'status'])

    op.create_table(
        'coach_availability',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('coach_id', sa.Integer(), sa.ForeignKey('coaches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('session_type', session_type, nullable=False, server_default=sa.text("'normal'")),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('available', 'booked', 'overlapping', 'unavailable', name='slot_status'), nullable=False, server_default=sa.text("'available'")),
        sa.Column('is_free', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('is_derived', sa.Boolean(), nullable=False, server_default=sa.text('0')),
        sa.Column('reservation_id', sa.Integer(), sa.ForeignKey('reservations.id', ondelete='SET NULL')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.UniqueConstraint('coach_id', 'date', 'start_time', 'session_type', name='unique_slot_with_type'),
    )
    op.create_index('idx_coach_availability_coach_date_status', 'coach_availability', ['coach_id', 'date', 'status'])

    op.create_table(
        'point_transactions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('point_type', sa.Enum('solo', 'team', name='point_type'), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('kind', sa.Enum('debit', 'credit', 'adjustment', name='point_tx_kind'), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('reservation_id', sa.Integer(), sa.ForeignKey('reservations.id', ondelete='SET NULL')),
        sa.Column('description', sa.Text()),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        'group_courses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('coach_id', sa.Integer(), sa.ForeignKey('coaches.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('time', sa.Time(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default=sa.text('60')),
        sa.Column('max_participants', sa.Integer(), nullable=False, server_default=sa.text('10')),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
    )

    op.create_table(
        'group_reservations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_id', sa.Integer(), sa.ForeignKey('group_courses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('status', reservation_status, nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.current_timestamp()),
        sa.Column('cancelled_at', sa.DateTime()),
        sa.Column('cancelled_by', cancelled_by),
    )
    op.create_index('idx_group_reservations_course_status', 'group_reservations', ['course_id', 'status'])


def downgrade() -> None:
    op.drop_index('idx_group_reservations_course_status', table_name='group_reservations')
    op.drop_table('group_reservations')
    op.drop_table('group_courses')
    op.drop_table('point_transactions')
    op.drop_index('idx_coach_availability_coach_date_status', table_name='coach_availability')
    op.drop_table('coach_availability')
    op.drop_index('idx_reservations_coach_date', table_name='reservations')
    op.drop_table('reservations')
    op.drop_table('coaches')
    op.drop_table('users')
