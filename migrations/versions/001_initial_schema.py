"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


item_category = postgresql.ENUM('dsa', 'lld', 'hld', 'miscellaneous', name='item_category', create_type=False)
progress_status = postgresql.ENUM('pending', 'in-progress', 'done', name='progress_status', create_type=False)
test_status = postgresql.ENUM('pending', 'completed', 'abandoned', name='test_status', create_type=False)
user_role = postgresql.ENUM('user', 'admin', name='user_role', create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in (item_category, progress_status, test_status, user_role):
        enum_type.create(bind, checkfirst=True)

    # Create users table
    op.create_table('users',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('role', user_role, server_default='user', nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('avatar', sa.String(length=1024), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username')
    )

    # Create items table
    op.create_table('items',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('link', sa.Text(), nullable=False),
        sa.Column('category', item_category, nullable=False),
        sa.Column('subcategory', sa.String(length=100), nullable=False),
        sa.Column('attachments', postgresql.JSONB(), server_default='{}', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_items_category_subcategory', 'items', ['category', 'subcategory'], unique=False)

    # Create user_progress table
    op.create_table('user_progress',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('status', progress_status, server_default='pending', nullable=False),
        sa.Column('starred', sa.Boolean(), server_default='false', nullable=False),
        sa.Column('notes', sa.Text(), server_default='', nullable=False),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'item_id', name='unique_user_item')
    )
    op.create_index('idx_user_progress_user_status', 'user_progress', ['user_id', 'status'], unique=False)
    # At most one in-progress item per user
    op.create_index(
        'uq_user_progress_in_progress',
        'user_progress',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text("status = 'in-progress'"),
    )

    # Create user_stats table
    op.create_table('user_stats',
        sa.Column('user_id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('current_streak', sa.Integer(), server_default='0', nullable=False),
        sa.Column('longest_streak', sa.Integer(), server_default='0', nullable=False),
        sa.Column('last_activity_date', sa.Date(), nullable=True),
        sa.Column('completed_all_count', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('current_streak >= 0', name='check_current_streak'),
        sa.CheckConstraint('longest_streak >= 0', name='check_longest_streak'),
        sa.CheckConstraint('completed_all_count >= 0', name='check_completed_all'),
        sa.PrimaryKeyConstraint('user_id')
    )

    # Create test_sessions table
    op.create_table('test_sessions',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('session_id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('item_id', sa.Integer(), nullable=False),
        sa.Column('status', test_status, server_default='pending', nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('idx_test_sessions_user_status', 'test_sessions', ['user_id', 'status'], unique=False)
    op.create_index('idx_test_sessions_session', 'test_sessions', ['session_id'], unique=False)


def downgrade() -> None:
    op.drop_index('idx_test_sessions_session', table_name='test_sessions')
    op.drop_index('idx_test_sessions_user_status', table_name='test_sessions')
    op.drop_table('test_sessions')
    op.drop_table('user_stats')
    op.drop_index('uq_user_progress_in_progress', table_name='user_progress')
    op.drop_index('idx_user_progress_user_status', table_name='user_progress')
    op.drop_table('user_progress')
    op.drop_index('idx_items_category_subcategory', table_name='items')
    op.drop_table('items')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (user_role, test_status, progress_status, item_category):
        enum_type.drop(bind, checkfirst=True)
