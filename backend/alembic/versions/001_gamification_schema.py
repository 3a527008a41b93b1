"""Gamification schema

Revision ID: 001
Revises:
Create Date: 2025-06-02 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Learner display profiles
    op.create_table(
        'users',
        sa.Column('id', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('profile_photo', sa.String(500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_users')
    )

    op.create_table(
        'user_points',
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('total_points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('current_level', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('points_to_next_level', sa.Integer(), nullable=False, server_default='100'),
        sa.Column('current_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('longest_streak', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_activity_date', sa.Date(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('user_id', name='pk_user_points')
    )

    op.create_table(
        'achievements',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('icon', sa.String(50), nullable=False),
        sa.Column('badge_url', sa.String(500), nullable=True),
        sa.Column('category', sa.String(50), nullable=False),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('requirement', sa.Integer(), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rarity', sa.String(20), nullable=False, server_default='common'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('order', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_achievements')
    )
    op.create_index('idx_achievements_type_active', 'achievements', ['type', 'is_active'])

    op.create_table(
        'user_achievements',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('achievement_id', sa.String(36), nullable=False),
        sa.Column('progress', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('points_earned', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_user_achievements'),
        sa.ForeignKeyConstraint(
            ['achievement_id'], ['achievements.id'],
            name='fk_user_achievements_achievement_id_achievements'
        ),
        sa.UniqueConstraint('user_id', 'achievement_id', name='uq_user_achievements_user_achievement')
    )
    op.create_index('idx_user_achievements_user', 'user_achievements', ['user_id'])

    op.create_table(
        'leaderboard_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('period', sa.String(20), nullable=False),
        sa.Column('period_key', sa.String(20), nullable=False),
        sa.Column('points', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('rank', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_leaderboard_entries'),
        sa.UniqueConstraint('user_id', 'period', 'period_key', name='uq_leaderboard_entries_user_period')
    )
    op.create_index(
        'idx_leaderboard_entries_period_rank', 'leaderboard_entries', ['period', 'period_key', 'rank']
    )

    op.create_table(
        'points_transactions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(20), nullable=False),
        sa.Column('activity_type', sa.String(50), nullable=True),
        sa.Column('reference_id', sa.String(255), nullable=True),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_points_transactions')
    )
    op.create_index(
        'idx_points_transactions_user_created', 'points_transactions', ['user_id', 'created_at']
    )
    op.create_index(
        'idx_points_transactions_reference', 'points_transactions',
        ['user_id', 'activity_type', 'reference_id']
    )


def downgrade():
    op.drop_index('idx_points_transactions_reference', table_name='points_transactions')
    op.drop_index('idx_points_transactions_user_created', table_name='points_transactions')
    op.drop_table('points_transactions')
    op.drop_index('idx_leaderboard_entries_period_rank', table_name='leaderboard_entries')
    op.drop_table('leaderboard_entries')
    op.drop_index('idx_user_achievements_user', table_name='user_achievements')
    op.drop_table('user_achievements')
    op.drop_index('idx_achievements_type_active', table_name='achievements')
    op.drop_table('achievements')
    op.drop_table('user_points')
    op.drop_table('users')
