"""create_chat_tables

Revision ID: 5e1c2a9d7b40
Revises:
Create Date: 2026-10-18 10:12:31.482913

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5e1c2a9d7b40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'threads',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('hash', sa.String(length=64), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('is_locked', sa.Boolean(), nullable=False),
        sa.Column('permissions', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('hash'),
    )
    op.create_index(op.f('ix_threads_id'), 'threads', ['id'], unique=False)
    op.create_index('ix_threads_type', 'threads', ['type'], unique=False)
    op.create_index('ix_threads_created_at', 'threads', ['created_at'], unique=False)

    op.create_table(
        'thread_participants',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('thread_id', sa.Uuid(), nullable=False),
        sa.Column('actor_type', sa.String(length=100), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('joined_at', sa.DateTime(), nullable=False),
        sa.Column('left_at', sa.DateTime(), nullable=True),
        sa.Column('chat_lock_pin', sa.String(length=255), nullable=True),
        sa.Column('public_key', sa.Text(), nullable=True),
        sa.Column('security_code', sa.String(length=60), nullable=True),
        sa.ForeignKeyConstraint(['thread_id'], ['threads.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('thread_id', 'actor_type', 'actor_id', name='uq_thread_participant'),
    )
    op.create_index(op.f('ix_thread_participants_id'), 'thread_participants', ['id'], unique=False)
    op.create_index(
        'ix_thread_participants_actor', 'thread_participants', ['actor_type', 'actor_id'],
        unique=False,
    )

    op.create_table(
        'messages',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('thread_id', sa.Uuid(), nullable=False),
        sa.Column('sender_type', sa.String(length=100), nullable=False),
        sa.Column('sender_id', sa.String(length=64), nullable=False),
        sa.Column('author_type', sa.String(length=100), nullable=True),
        sa.Column('author_id', sa.String(length=64), nullable=True),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('encrypted', sa.Boolean(), nullable=False),
        sa.Column('encryption_driver', sa.String(length=50), nullable=True),
        sa.Column('deleted_at', sa.DateTime(), nullable=True),
        sa.Column('deleted_by_type', sa.String(length=100), nullable=True),
        sa.Column('deleted_by_id', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['thread_id'], ['threads.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_messages_id'), 'messages', ['id'], unique=False)
    op.create_index(
        'ix_messages_thread_created', 'messages', ['thread_id', 'created_at'], unique=False
    )
    op.create_index('ix_messages_sender', 'messages', ['sender_type', 'sender_id'], unique=False)
    op.create_index('ix_messages_deleted_at', 'messages', ['deleted_at'], unique=False)

    op.create_table(
        'message_versions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('message_id', sa.Uuid(), nullable=False),
        sa.Column('payload', sa.JSON(), nullable=False),
        sa.Column('edited_by_type', sa.String(length=100), nullable=False),
        sa.Column('edited_by_id', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_message_versions_id'), 'message_versions', ['id'], unique=False)
    op.create_index(
        'ix_message_versions_message_created', 'message_versions', ['message_id', 'created_at'],
        unique=False,
    )

    op.create_table(
        'message_deliveries',
        sa.Column('message_id', sa.Uuid(), nullable=False),
        sa.Column('actor_type', sa.String(length=100), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=False),
        sa.Column('delivered_at', sa.DateTime(), nullable=True),
        sa.Column('read_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('message_id', 'actor_type', 'actor_id'),
    )
    op.create_index(
        'ix_message_deliveries_actor', 'message_deliveries', ['actor_type', 'actor_id'],
        unique=False,
    )
    op.create_index(
        'ix_message_deliveries_read_at', 'message_deliveries', ['read_at'], unique=False
    )

    op.create_table(
        'message_deletions',
        sa.Column('message_id', sa.Uuid(), nullable=False),
        sa.Column('actor_type', sa.String(length=100), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=False),
        sa.Column('deleted_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('message_id', 'actor_type', 'actor_id'),
    )
    op.create_index(
        'ix_message_deletions_actor', 'message_deletions', ['actor_type', 'actor_id'],
        unique=False,
    )

    op.create_table(
        'message_attachments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('message_id', sa.Uuid(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('disk', sa.String(length=50), nullable=False),
        sa.Column('path', sa.String(length=500), nullable=False),
        sa.Column('filename', sa.String(length=255), nullable=True),
        sa.Column('mime_type', sa.String(length=100), nullable=True),
        sa.Column('size', sa.Integer(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('width', sa.Integer(), nullable=True),
        sa.Column('height', sa.Integer(), nullable=True),
        sa.Column('thumbnail_path', sa.String(length=500), nullable=True),
        sa.Column('blurhash', sa.String(length=100), nullable=True),
        sa.Column('caption', sa.Text(), nullable=True),
        sa.Column('view_once', sa.Boolean(), nullable=False),
        sa.Column('viewed_at', sa.DateTime(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('order', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_message_attachments_id'), 'message_attachments', ['id'], unique=False)
    op.create_index(
        'ix_message_attachments_message_order', 'message_attachments', ['message_id', 'order'],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index('ix_message_attachments_message_order', table_name='message_attachments')
    op.drop_index(op.f('ix_message_attachments_id'), table_name='message_attachments')
    op.drop_table('message_attachments')

    op.drop_index('ix_message_deletions_actor', table_name='message_deletions')
    op.drop_table('message_deletions')

    op.drop_index('ix_message_deliveries_read_at', table_name='message_deliveries')
    op.drop_index('ix_message_deliveries_actor', table_name='message_deliveries')
    op.drop_table('message_deliveries')

    op.drop_index('ix_message_versions_message_created', table_name='message_versions')
    op.drop_index(op.f('ix_message_versions_id'), table_name='message_versions')
    op.drop_table('message_versions')

    op.drop_index('ix_messages_deleted_at', table_name='messages')
    op.drop_index('ix_messages_sender', table_name='messages')
    op.drop_index('ix_messages_thread_created', table_name='messages')
    op.drop_index(op.f('ix_messages_id'), table_name='messages')
    op.drop_table('messages')

    op.drop_index('ix_thread_participants_actor', table_name='thread_participants')
    op.drop_index(op.f('ix_thread_participants_id'), table_name='thread_participants')
    op.drop_table('thread_participants')

    op.drop_index('ix_threads_created_at', table_name='threads')
    op.drop_index('ix_threads_type', table_name='threads')
    op.drop_index(op.f('ix_threads_id'), table_name='threads')
    op.drop_table('threads')
