"""add_version_tags_reactions_saves

Revision ID: 9b3f6d1e2c85
Revises: 5e1c2a9d7b40
Create Date: 2026-10-18 16:40:07.219364

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '9b3f6d1e2c85'
down_revision: Union[str, None] = '5e1c2a9d7b40'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column(
        'message_versions',
        sa.Column('sequence', sa.Integer(), nullable=False, server_default='0'),
    )
    op.add_column(
        'message_versions',
        sa.Column('encrypted', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.add_column(
        'message_versions',
        sa.Column('encryption_driver', sa.String(length=50), nullable=True),
    )
    # Number existing edits in creation order, ties broken by id
    op.execute(
        """
        UPDATE message_versions
        SET sequence = (
            SELECT COUNT(*) FROM message_versions AS earlier
            WHERE earlier.message_id = message_versions.message_id
            AND (
                earlier.created_at < message_versions.created_at
                OR (
                    earlier.created_at = message_versions.created_at
                    AND earlier.id <= message_versions.id
                )
            )
        )
        """
    )
    op.create_index(
        'ix_message_versions_message_sequence', 'message_versions', ['message_id', 'sequence'],
        unique=False,
    )

    op.create_table(
        'message_reactions',
        sa.Column('message_id', sa.Uuid(), nullable=False),
        sa.Column('actor_type', sa.String(length=100), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=False),
        sa.Column('reaction_type', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('message_id', 'actor_type', 'actor_id'),
    )
    op.create_index(
        'ix_message_reactions_actor', 'message_reactions', ['actor_type', 'actor_id'],
        unique=False,
    )
    op.create_index(
        'ix_message_reactions_message_type', 'message_reactions',
        ['message_id', 'reaction_type'], unique=False,
    )

    op.create_table(
        'message_saves',
        sa.Column('message_id', sa.Uuid(), nullable=False),
        sa.Column('actor_type', sa.String(length=100), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['message_id'], ['messages.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('message_id', 'actor_type', 'actor_id'),
    )
    op.create_index(
        'ix_message_saves_actor_created', 'message_saves',
        ['actor_type', 'actor_id', 'created_at'], unique=False,
    )


def downgrade() -> None:
    op.drop_index('ix_message_saves_actor_created', table_name='message_saves')
    op.drop_table('message_saves')

    op.drop_index('ix_message_reactions_message_type', table_name='message_reactions')
    op.drop_index('ix_message_reactions_actor', table_name='message_reactions')
    op.drop_table('message_reactions')

    op.drop_index('ix_message_versions_message_sequence', table_name='message_versions')
    with op.batch_alter_table('message_versions') as batch_op:
        batch_op.drop_column('encryption_driver')
        batch_op.drop_column('encrypted')
        batch_op.drop_column('sequence')
