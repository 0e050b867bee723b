"""Initial schema: users, friendships, rooms, memberships, messages, live sessions, notifications, devices

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('username', sa.String(), nullable=False),
        sa.Column('display_name', sa.String(), nullable=True),
        sa.Column('role', sa.String(), nullable=False, server_default='member'),
        sa.Column('last_seen_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_last_seen_at', 'users', ['last_seen_at'])

    op.create_table(
        'friendships',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('requester_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('recipient_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('pair_key', sa.String(), nullable=False, unique=True),
        sa.Column('status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('requester_id <> recipient_id', name='ck_friendships_not_self'),
    )
    op.create_index('ix_friendships_requester_id', 'friendships', ['requester_id'])
    op.create_index('ix_friendships_recipient_id', 'friendships', ['recipient_id'])
    op.create_index('ix_friendships_status', 'friendships', ['status'])

    op.create_table(
        'rooms',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('room_id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('privacy', sa.String(), nullable=False, server_default='public'),
        sa.Column('require_approval', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('max_members', sa.Integer(), nullable=False, server_default='50'),
        sa.Column('active_member_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('owner_id', sa.String(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('active_member_count >= 0', name='ck_rooms_count_non_negative'),
        sa.CheckConstraint('active_member_count <= max_members', name='ck_rooms_count_within_max'),
    )
    op.create_index('ix_rooms_room_id', 'rooms', ['room_id'], unique=True)
    op.create_index('ix_rooms_privacy', 'rooms', ['privacy'])
    op.create_index('ix_rooms_owner_id', 'rooms', ['owner_id'])

    op.create_table(
        'room_memberships',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('room_id', sa.String(), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', sa.String(), nullable=False, server_default='member'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('pending_approval', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('left_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('user_id', 'room_id', name='uq_room_memberships_user_room'),
    )
    op.create_index('ix_room_memberships_user_id', 'room_memberships', ['user_id'])
    op.create_index('ix_room_memberships_room_id', 'room_memberships', ['room_id'])

    op.create_table(
        'messages',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('room_id', sa.String(), sa.ForeignKey('rooms.id', ondelete='CASCADE'), nullable=True),
        sa.Column('to_user_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=True),
        sa.Column('author_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=True),
        sa.Column('reactions', sa.JSON(), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('room_id', 'sequence', name='uq_messages_room_sequence'),
        sa.CheckConstraint('(room_id IS NULL) <> (to_user_id IS NULL)', name='ck_messages_single_target'),
    )
    op.create_index('ix_messages_room_id', 'messages', ['room_id'])
    op.create_index('ix_messages_to_user_id', 'messages', ['to_user_id'])
    op.create_index('ix_messages_author_id', 'messages', ['author_id'])
    op.create_index('ix_messages_direct_pair', 'messages', ['author_id', 'to_user_id', 'created_at'])

    op.create_table(
        'live_sessions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('owner_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('privacy', sa.String(), nullable=False, server_default='public'),
        sa.Column('is_live', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('live_owner_id', sa.String(), nullable=True, unique=True),
        sa.Column('started_at', sa.DateTime(), nullable=False),
        sa.Column('last_heartbeat_at', sa.DateTime(), nullable=False),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_live_sessions_owner_id', 'live_sessions', ['owner_id'])
    op.create_index('ix_live_sessions_is_live', 'live_sessions', ['is_live'])
    op.create_index('ix_live_sessions_live_heartbeat', 'live_sessions', ['is_live', 'last_heartbeat_at'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table(
        'devices',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('push_token', sa.String(), nullable=False, unique=True),
        sa.Column('platform', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_devices_user_id', 'devices', ['user_id'])


def downgrade() -> None:
    op.drop_table('devices')
    op.drop_table('notifications')
    op.drop_table('live_sessions')
    op.drop_table('messages')
    op.drop_table('room_memberships')
    op.drop_table('rooms')
    op.drop_table('friendships')
    op.drop_table('users')
