"""Create users, profiles and the interest lifecycle tables

Revision ID: a0b1c2d3e4f5
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a0b1c2d3e4f5'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# SQLAlchemy persists enum member names
APPROVAL_STATUSES = ('pending', 'approved', 'rejected')
INTEREST_STATUSES = ('pending', 'accepted', 'rejected', 'withdrawn')
DELIVERY_STATUSES = ('pending', 'delivered', 'failed')
NOTIFICATION_TYPES = (
    'NEW_INTEREST', 'INTEREST_ACCEPTED', 'INTEREST_REJECTED',
    'INTEREST_WITHDRAWN', 'CONNECTION_WITHDRAWN', 'MUTUAL_MATCH',
)


def upgrade() -> None:
    """Create all tables."""

    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=True),
        sa.Column('approval_status', sa.Enum(*APPROVAL_STATUSES, name='approvalstatus'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('is_suspended', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('linkedin_profile', sa.String(length=255), nullable=True),
        sa.Column('facebook_instagram', sa.String(length=255), nullable=True),
        sa.Column('referral_code', sa.String(length=32), nullable=True),
        sa.Column('referred_by', sa.String(length=32), nullable=True),
        sa.Column('referral_boost_start', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_profiles_id', 'profiles', ['id'])
    op.create_index('ix_profiles_user_id', 'profiles', ['user_id'], unique=True)
    op.create_index('ix_profiles_approval_status', 'profiles', ['approval_status'])
    op.create_index('ix_profiles_referral_code', 'profiles', ['referral_code'], unique=True)
    op.create_index('ix_profiles_referred_by', 'profiles', ['referred_by'])

    op.create_table(
        'interests',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('sender_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('receiver_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum(*INTEREST_STATUSES, name='intereststatus'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['sender_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['receiver_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sender_id', 'receiver_id', name='unique_sender_receiver_interest'),
        sa.CheckConstraint('sender_id <> receiver_id', name='ck_interest_not_self')
    )
    op.create_index('ix_interests_id', 'interests', ['id'])
    op.create_index('ix_interests_sender_id', 'interests', ['sender_id'])
    op.create_index('ix_interests_receiver_id', 'interests', ['receiver_id'])
    op.create_index('ix_interests_status', 'interests', ['status'])
    op.create_index('ix_interests_created_at', 'interests', ['created_at'])
    op.create_index('idx_interests_receiver_created', 'interests', ['receiver_id', 'created_at'])

    op.create_table(
        'declined_profiles',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('declined_user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('source', sa.String(length=50), nullable=True),
        sa.Column('hidden_from_reconsider', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['declined_user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'declined_user_id', name='unique_user_declined_user')
    )
    op.create_index('ix_declined_profiles_id', 'declined_profiles', ['id'])
    op.create_index('ix_declined_profiles_user_id', 'declined_profiles', ['user_id'])
    op.create_index('ix_declined_profiles_declined_user_id', 'declined_profiles', ['declined_user_id'])
    op.create_index('ix_declined_profiles_created_at', 'declined_profiles', ['created_at'])

    op.create_table(
        'user_stats',
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('interests_sent', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('interests_received', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('mutual_matches', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id')
    )

    op.create_table(
        'engagement_points',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('kind', sa.String(length=50), nullable=False),
        sa.Column('interest_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('points', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id', 'kind', 'interest_id', name='unique_points_award')
    )
    op.create_index('ix_engagement_points_id', 'engagement_points', ['id'])
    op.create_index('ix_engagement_points_user_id', 'engagement_points', ['user_id'])

    op.create_table(
        'notifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.Enum(*NOTIFICATION_TYPES, name='notificationtype'), nullable=False),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column(
            'delivery_status',
            sa.Enum(*DELIVERY_STATUSES, name='deliverystatus'),
            nullable=False,
            server_default='pending',
        ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_notifications_id', 'notifications', ['id'])
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_type', 'notifications', ['type'])
    op.create_index('ix_notifications_is_read', 'notifications', ['is_read'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_table('notifications')
    op.drop_table('engagement_points')
    op.drop_table('user_stats')
    op.drop_table('declined_profiles')
    op.drop_table('interests')
    op.drop_table('profiles')
    op.drop_table('users')

    bind = op.get_bind()
    sa.Enum(name='notificationtype').drop(bind, checkfirst=True)
    sa.Enum(name='deliverystatus').drop(bind, checkfirst=True)
    sa.Enum(name='intereststatus').drop(bind, checkfirst=True)
    sa.Enum(name='approvalstatus').drop(bind, checkfirst=True)
