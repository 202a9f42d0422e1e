"""initial schema

Revision ID: 3f9c1a7e2b40
Revises: 
Create Date: 2026-10-19 10:12:41.302118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9c1a7e2b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('timezone', sa.String(), nullable=True),
        sa.Column('reminder_enabled', sa.Boolean(), nullable=False),
        sa.Column('reminder_time', sa.String(length=5), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'challenges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('duration_days', sa.Integer(), nullable=False),
        sa.Column('invite_token', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint('duration_days >= 1', name='ck_challenge_duration_positive'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_challenges_id', 'challenges', ['id'])
    op.create_index('ix_challenges_user_id', 'challenges', ['user_id'])
    op.create_index('ix_challenges_invite_token', 'challenges', ['invite_token'], unique=True)

    op.create_table(
        'tasks',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('challenge_id', sa.Integer(), sa.ForeignKey('challenges.id', ondelete='CASCADE'), nullable=False),
        sa.Column('label', sa.String(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('target_value', sa.Float(), nullable=False),
        sa.Column('unit', sa.String(), nullable=True),
        sa.Column('is_required', sa.Boolean(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint("type IN ('checkbox','number')", name='ck_task_type'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_tasks_id', 'tasks', ['id'])
    op.create_index('ix_tasks_challenge_id', 'tasks', ['challenge_id'])

    op.create_table(
        'challenge_members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('challenge_id', sa.Integer(), sa.ForeignKey('challenges.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(length=64), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('challenge_id', 'user_id', name='uq_challenge_member'),
    )
    op.create_index('ix_challenge_members_id', 'challenge_members', ['id'])
    op.create_index('ix_challenge_members_challenge_id', 'challenge_members', ['challenge_id'])
    op.create_index('ix_challenge_members_user_id', 'challenge_members', ['user_id'])

    op.create_table(
        'daily_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('challenge_id', sa.Integer(), sa.ForeignKey('challenges.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(length=64), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('is_complete', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('challenge_id', 'user_id', 'date', name='uq_entry_challenge_user_date'),
    )
    op.create_index('ix_daily_entries_id', 'daily_entries', ['id'])
    op.create_index('ix_daily_entries_challenge_id', 'daily_entries', ['challenge_id'])
    op.create_index('ix_daily_entries_user_id', 'daily_entries', ['user_id'])

    op.create_table(
        'task_completions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('daily_entry_id', sa.Integer(), sa.ForeignKey('daily_entries.id', ondelete='CASCADE'), nullable=False),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('value', sa.Float(), nullable=False),
        sa.Column('is_completed', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('daily_entry_id', 'task_id', name='uq_completion_entry_task'),
    )
    op.create_index('ix_task_completions_id', 'task_completions', ['id'])
    op.create_index('ix_task_completions_daily_entry_id', 'task_completions', ['daily_entry_id'])
    op.create_index('ix_task_completions_task_id', 'task_completions', ['task_id'])

    op.create_table(
        'fitness_providers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('provider', sa.String(length=32), nullable=False),
        sa.Column('access_token', sa.String(), nullable=True),
        sa.Column('refresh_token', sa.String(), nullable=True),
        sa.Column('token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('athlete_id', sa.String(), nullable=True),
        sa.Column('connected_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('last_sync_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.CheckConstraint("provider IN ('strava','apple_health')", name='ck_fitness_provider'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'provider', name='uq_fitness_provider_user'),
    )
    op.create_index('ix_fitness_providers_id', 'fitness_providers', ['id'])
    op.create_index('ix_fitness_providers_user_id', 'fitness_providers', ['user_id'])

    op.create_table(
        'fitness_activities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(length=64), sa.ForeignKey('profiles.id'), nullable=False),
        sa.Column('provider', sa.String(length=32), nullable=False),
        sa.Column('provider_activity_id', sa.String(), nullable=False),
        sa.Column('activity_type', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('duration_seconds', sa.Float(), nullable=True),
        sa.Column('distance_meters', sa.Float(), nullable=True),
        sa.Column('calories_burned', sa.Float(), nullable=True),
        sa.Column('steps_count', sa.Integer(), nullable=True),
        sa.Column('heart_rate_avg', sa.Float(), nullable=True),
        sa.Column('heart_rate_max', sa.Float(), nullable=True),
        sa.Column('raw_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'provider', 'provider_activity_id', name='uq_fitness_activity_provider_id'),
    )
    op.create_index('ix_fitness_activities_id', 'fitness_activities', ['id'])
    op.create_index('ix_fitness_activities_user_id', 'fitness_activities', ['user_id'])
    op.create_index('ix_fitness_activities_start_date', 'fitness_activities', ['start_date'])

    op.create_table(
        'fitness_task_mappings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('task_id', sa.Integer(), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('activity_type', sa.String(), nullable=False),
        sa.Column('metric', sa.String(length=16), nullable=False),
        sa.Column('multiplier', sa.Float(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.CheckConstraint("metric IN ('distance','duration','steps','calories')", name='ck_mapping_metric'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('task_id'),
    )
    op.create_index('ix_fitness_task_mappings_id', 'fitness_task_mappings', ['id'])


def downgrade() -> None:
    op.drop_table('fitness_task_mappings')
    op.drop_table('fitness_activities')
    op.drop_table('fitness_providers')
    op.drop_table('task_completions')
    op.drop_table('daily_entries')
    op.drop_table('challenge_members')
    op.drop_table('tasks')
    op.drop_table('challenges')
    op.drop_table('profiles')
