"""Initial poll schema

Revision ID: 3b7e2c91f4a0
Revises:
Create Date: 2026-10-16 09:12:31.402118
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '3b7e2c91f4a0'
down_revision: Union[str, Sequence, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def lifecycle_column() -> sa.Column:
    return sa.Column('lifecycle', sa.String(length=16), server_default='active', nullable=False)


def timestamp_columns() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
    ]


def key_columns() -> list:
    return [
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('uuid', sa.UUID(), server_default=sa.text('gen_random_uuid()'), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('poll',
        sa.Column('question', sa.Text(), nullable=False),
        sa.Column('extra_info', sa.Text(), nullable=True),
        sa.Column('owner_id', sa.UUID(), nullable=False),
        *timestamp_columns(),
        lifecycle_column(),
        *key_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid')
    )
    op.create_index('ix_poll_owner_lifecycle', 'poll', ['owner_id', 'lifecycle'])
    op.create_index('ix_poll_created_at', 'poll', ['created_at'])

    op.create_table('poll_options',
        sa.Column('poll_id', sa.Integer(), nullable=False),
        sa.Column('order_key', sa.Integer(), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('confidence', sa.String(length=32), nullable=True),
        sa.Column('count', sa.Integer(), server_default='0', nullable=False),
        *timestamp_columns(),
        lifecycle_column(),
        *key_columns(),
        sa.CheckConstraint('count >= 0', name='ck_poll_options_count_non_negative'),
        sa.ForeignKeyConstraint(['poll_id'], ['poll.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid')
    )
    op.create_index('ix_poll_options_poll_lifecycle', 'poll_options', ['poll_id', 'lifecycle'])

    op.create_table('poll_tag',
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('owner_id', sa.UUID(), nullable=False),
        *timestamp_columns(),
        lifecycle_column(),
        *key_columns(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('name', 'owner_id', name='uq_poll_tag_name_owner')
    )

    op.create_table('poll_tag_map',
        sa.Column('poll_id', sa.Integer(), nullable=False),
        sa.Column('tag_id', sa.Integer(), nullable=False),
        sa.Column('owner_id', sa.UUID(), nullable=False),
        *timestamp_columns(),
        lifecycle_column(),
        *key_columns(),
        sa.ForeignKeyConstraint(['poll_id'], ['poll.id'], ),
        sa.ForeignKeyConstraint(['tag_id'], ['poll_tag.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid'),
        sa.UniqueConstraint('poll_id', 'tag_id', 'owner_id', name='uq_poll_tag_map_poll_tag_owner')
    )
    op.create_index('ix_poll_tag_map_tag_id', 'poll_tag_map', ['tag_id'])

    op.create_table('votes',
        sa.Column('poll_id', sa.Integer(), nullable=False),
        sa.Column('option_id', sa.Integer(), nullable=False),
        sa.Column('voter_id', sa.UUID(), nullable=False),
        *timestamp_columns(),
        lifecycle_column(),
        *key_columns(),
        sa.ForeignKeyConstraint(['poll_id'], ['poll.id'], ),
        sa.ForeignKeyConstraint(['option_id'], ['poll_options.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('uuid')
    )
    op.create_index('ix_votes_option_id', 'votes', ['option_id'])
    op.create_index(
        'uq_votes_active_voter',
        'votes',
        ['poll_id', 'voter_id'],
        unique=True,
        postgresql_where=sa.text("lifecycle = 'active'"),
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('uq_votes_active_voter', table_name='votes')
    op.drop_index('ix_votes_option_id', table_name='votes')
    op.drop_table('votes')
    op.drop_index('ix_poll_tag_map_tag_id', table_name='poll_tag_map')
    op.drop_table('poll_tag_map')
    op.drop_table('poll_tag')
    op.drop_index('ix_poll_options_poll_lifecycle', table_name='poll_options')
    op.drop_table('poll_options')
    op.drop_index('ix_poll_created_at', table_name='poll')
    op.drop_index('ix_poll_owner_lifecycle', table_name='poll')
    op.drop_table('poll')
