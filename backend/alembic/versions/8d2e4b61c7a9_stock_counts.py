"""Stock counts and their ledger link

Revision ID: 8d2e4b61c7a9
Revises: 3f1c9a7e5b20
Create Date: 2026-10-17 16:40:03.118920

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# Revision identifiers used by Alembic
revision: str = '8d2e4b61c7a9'
down_revision: Union[str, Sequence[str], None] = '3f1c9a7e5b20'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'stock_counts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('count_number', sa.String(), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum('PLANNING', 'IN_PROGRESS', 'PENDING_APPROVAL', 'COMPLETED', 'CANCELLED',
                                    name='stockcountstatus'), nullable=False),
        sa.Column('count_date', sa.DateTime(), nullable=False),
        sa.Column('count_time', sa.String(), nullable=False),
        sa.Column('cutoff_datetime', sa.DateTime(), nullable=False),
        sa.Column('notes', sa.String(), nullable=True),
        sa.Column('counted_by', sa.Integer(), nullable=True),
        sa.Column('approved_by', sa.Integer(), nullable=True),
        sa.Column('approved_date', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id']),
        sa.ForeignKeyConstraint(['counted_by'], ['users.id']),
        sa.ForeignKeyConstraint(['approved_by'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_stock_counts_id'), 'stock_counts', ['id'], unique=False)
    op.create_index(op.f('ix_stock_counts_count_number'), 'stock_counts', ['count_number'], unique=True)

    op.create_table(
        'stock_count_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('stock_count_id', sa.Integer(), nullable=False),
        sa.Column('material_id', sa.Integer(), nullable=False),
        sa.Column('system_stock', sa.Float(), nullable=False),
        sa.Column('counted_stock', sa.Float(), nullable=False),
        sa.Column('difference', sa.Float(), nullable=False),
        sa.Column('reason', sa.String(), nullable=True),
        sa.Column('is_completed', sa.Boolean(), nullable=False),
        sa.Column('is_manually_added', sa.Boolean(), nullable=False),
        sa.Column('counted_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['stock_count_id'], ['stock_counts.id']),
        sa.ForeignKeyConstraint(['material_id'], ['materials.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('stock_count_id', 'material_id', name='uq_stock_count_material'),
    )
    op.create_index(op.f('ix_stock_count_items_id'), 'stock_count_items', ['id'], unique=False)
    op.create_index(op.f('ix_stock_count_items_stock_count_id'), 'stock_count_items', ['stock_count_id'], unique=False)

    with op.batch_alter_table('stock_movements') as batch_op:
        batch_op.add_column(sa.Column('stock_count_id', sa.Integer(), nullable=True))
        batch_op.create_index(batch_op.f('ix_stock_movements_stock_count_id'), ['stock_count_id'], unique=False)
        batch_op.create_foreign_key('fk_stock_movements_stock_count_id', 'stock_counts', ['stock_count_id'], ['id'])


def downgrade() -> None:
    """Downgrade schema."""
    with op.batch_alter_table('stock_movements') as batch_op:
        batch_op.drop_constraint('fk_stock_movements_stock_count_id', type_='foreignkey')
        batch_op.drop_index(batch_op.f('ix_stock_movements_stock_count_id'))
        batch_op.drop_column('stock_count_id')

    op.drop_table('stock_count_items')
    op.drop_table('stock_counts')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        sa.Enum(name='stockcountstatus').drop(bind, checkfirst=True)
