"""create galleries and photos

Revision ID: 3f1a9c2b7d40
Revises:
Create Date: 2026-10-19 10:12:41.518203

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2b7d40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema: create galleries and photos tables."""
    op.create_table(
        'galleries',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('photographer_name', sa.String(), nullable=False),
        sa.Column('brand_color', sa.String(length=32), nullable=False),
        sa.Column('photo_count', sa.Integer(), nullable=False),
        sa.Column('paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('id'),
    )
    op.create_table(
        'photos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('gallery_id', sa.Uuid(), nullable=False),
        sa.Column('filename', sa.String(), nullable=False),
        sa.Column('storage_path', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['gallery_id'], ['galleries.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('storage_path'),
    )
    op.create_index(op.f('ix_photos_gallery_id'), 'photos', ['gallery_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema: drop photos and galleries tables."""
    op.drop_index(op.f('ix_photos_gallery_id'), table_name='photos')
    op.drop_table('photos')
    op.drop_table('galleries')
