"""circleshare baseline

Revision ID: 0001_circleshare_baseline
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001_circleshare_baseline'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- users ---
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('username', sa.String(), unique=True, nullable=False),
        sa.Column('display_name', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )

    # --- friendships ---
    op.create_table(
        'friendships',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('requester_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('addressee_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_low_id', sa.Integer(), nullable=False),
        sa.Column('user_high_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('user_low_id', 'user_high_id', name='uq_friendships_pair'),
        sa.CheckConstraint('requester_id <> addressee_id', name='ck_friendships_not_self'),
    )
    op.create_index('ix_friendships_requester_id', 'friendships', ['requester_id'])
    op.create_index('ix_friendships_addressee_id', 'friendships', ['addressee_id'])
    op.create_index('ix_friendships_status', 'friendships', ['status'])

    # --- circles ---
    op.create_table(
        'circles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('owner_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('is_shared', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_subscribable', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_circles_owner_id', 'circles', ['owner_id'])

    op.create_table(
        'circle_memberships',
        sa.Column('circle_id', sa.Integer(), sa.ForeignKey('circles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('is_moderator', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_circle_memberships_user_id', 'circle_memberships', ['user_id'])

    # --- content ---
    op.create_table(
        'content_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('author_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('kind', sa.String(length=20), nullable=False, server_default='post'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_content_items_author_id', 'content_items', ['author_id'])

    op.create_table(
        'content_shares',
        sa.Column('content_id', sa.Integer(), sa.ForeignKey('content_items.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('circle_id', sa.Integer(), sa.ForeignKey('circles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('shared_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_content_shares_circle_id', 'content_shares', ['circle_id'])

    # --- notifications ---
    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('kind', sa.String(length=40), nullable=False),
        sa.Column('circle_id', sa.Integer(), sa.ForeignKey('circles.id', ondelete='CASCADE'), nullable=True),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_notifications_user_kind', 'notifications', ['user_id', 'kind'])
    op.create_index('ix_notifications_circle_id', 'notifications', ['circle_id'])


def downgrade() -> None:
    op.drop_index('ix_notifications_circle_id', table_name='notifications')
    op.drop_index('ix_notifications_user_kind', table_name='notifications')
    op.drop_table('notifications')

    op.drop_index('ix_content_shares_circle_id', table_name='content_shares')
    op.drop_table('content_shares')
    op.drop_index('ix_content_items_author_id', table_name='content_items')
    op.drop_table('content_items')

    op.drop_index('ix_circle_memberships_user_id', table_name='circle_memberships')
    op.drop_table('circle_memberships')
    op.drop_index('ix_circles_owner_id', table_name='circles')
    op.drop_table('circles')

    op.drop_index('ix_friendships_status', table_name='friendships')
    op.drop_index('ix_friendships_addressee_id', table_name='friendships')
    op.drop_index('ix_friendships_requester_id', table_name='friendships')
    op.drop_table('friendships')

    op.drop_table('users')
