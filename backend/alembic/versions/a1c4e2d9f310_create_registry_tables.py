"""create_registry_tables

Revision ID: a1c4e2d9f310
Revises:
Create Date: 2026-10-18 10:12:41.503118

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'a1c4e2d9f310'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'connection_targets',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('host', sa.String(length=255), nullable=False),
        sa.Column('port', sa.Integer(), nullable=False),
        sa.Column('database', sa.String(length=255), nullable=False),
        sa.Column('username', sa.String(length=255), nullable=False),
        sa.Column('encrypted_password', sa.Text(), nullable=False),
        sa.Column('ssl_enabled', sa.Boolean(), nullable=False),
        sa.Column('origin', sa.String(length=50), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_connection_targets_id'), 'connection_targets', ['id'], unique=False)

    op.create_table(
        'apps',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('database_id', sa.Integer(), nullable=True),
        sa.Column('auth_enabled', sa.Boolean(), nullable=False),
        sa.Column('public_access', sa.Boolean(), nullable=False),
        sa.Column('icon', sa.String(length=100), nullable=True),
        sa.Column('theme', sa.String(length=100), nullable=True),
        sa.Column('components', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['database_id'], ['connection_targets.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_apps_database_id'), 'apps', ['database_id'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_apps_database_id'), table_name='apps')
    op.drop_table('apps')
    op.drop_index(op.f('ix_connection_targets_id'), table_name='connection_targets')
    op.drop_table('connection_targets')
