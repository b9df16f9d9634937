"""Create collaboration and version history tables

Revision ID: a1c3e5f7b9d2
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a1c3e5f7b9d2'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Users (owned by the identity service; created here for standalone deployments)
    op.create_table('users',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('display_name', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id', name='pk_users')
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Documents
    op.create_table('prompts',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('is_public', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('category_id', sa.String(64), nullable=True),
        sa.Column('parameters', sa.JSON(), nullable=True),
        sa.Column('attachments', sa.JSON(), nullable=True),
        sa.Column('preview_asset_url', sa.String(1024), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], name='fk_prompts_owner_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_prompts')
    )
    op.create_index('ix_prompts_owner_id', 'prompts', ['owner_id'], unique=False)

    # Collaborative sessions
    op.create_table('collaborative_sessions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('document_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_activity', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['document_id'], ['prompts.id'], name='fk_collaborative_sessions_document_id_prompts', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_collaborative_sessions')
    )
    op.create_index('ix_collaborative_sessions_document_id', 'collaborative_sessions', ['document_id'], unique=False)
    op.create_index(
        'uq_collaborative_sessions_active_document',
        'collaborative_sessions',
        ['document_id'],
        unique=True,
        postgresql_where=sa.text('is_active'),
    )

    # Participants
    op.create_table('collaborative_participants',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('joined_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_seen', sa.DateTime(timezone=True), nullable=False),
        sa.Column('cursor_position', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.ForeignKeyConstraint(['session_id'], ['collaborative_sessions.id'], name='fk_collaborative_participants_session_id_collaborative_sessions', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_collaborative_participants'),
        sa.UniqueConstraint('session_id', 'user_id', name='uq_collaborative_participants_session_user')
    )
    op.create_index('ix_collaborative_participants_session_active', 'collaborative_participants', ['session_id', 'is_active'], unique=False)

    # Advisory locks
    op.create_table('collaborative_locks',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('session_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('start_position', sa.Integer(), nullable=False),
        sa.Column('end_position', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.CheckConstraint('start_position >= 0', name='ck_collaborative_locks_start_non_negative'),
        sa.CheckConstraint('end_position >= start_position', name='ck_collaborative_locks_range_ordered'),
        sa.ForeignKeyConstraint(['session_id'], ['collaborative_sessions.id'], name='fk_collaborative_locks_session_id_collaborative_sessions', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_collaborative_locks')
    )
    op.create_index('ix_collaborative_locks_session_active', 'collaborative_locks', ['session_id', 'is_active'], unique=False)

    # Version history
    op.create_table('prompt_versions',
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('document_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('version_number', sa.Integer(), nullable=False),
        sa.Column('content', sa.Text(), nullable=False, server_default=''),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('tags', sa.JSON(), nullable=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('category_id', sa.String(64), nullable=True),
        sa.Column('parameters', sa.JSON(), nullable=True),
        sa.Column('author_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('author_name', sa.String(255), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('changes_summary', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['document_id'], ['prompts.id'], name='fk_prompt_versions_document_id_prompts', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_prompt_versions'),
        sa.UniqueConstraint('document_id', 'version_number', name='uq_prompt_versions_document_number')
    )
    op.create_index('ix_prompt_versions_document_id', 'prompt_versions', ['document_id'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index('ix_prompt_versions_document_id', table_name='prompt_versions')
    op.drop_table('prompt_versions')
    op.drop_index('ix_collaborative_locks_session_active', table_name='collaborative_locks')
    op.drop_table('collaborative_locks')
    op.drop_index('ix_collaborative_participants_session_active', table_name='collaborative_participants')
    op.drop_table('collaborative_participants')
    op.drop_index('uq_collaborative_sessions_active_document', table_name='collaborative_sessions')
    op.drop_index('ix_collaborative_sessions_document_id', table_name='collaborative_sessions')
    op.drop_table('collaborative_sessions')
    op.drop_index('ix_prompts_owner_id', table_name='prompts')
    op.drop_table('prompts')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
