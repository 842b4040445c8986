"""create room_snapshot

Revision ID: 5b7e2c91d0aa
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '5b7e2c91d0aa'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    insp = sa.inspect(bind)
    if 'room_snapshot' in insp.get_table_names():
        return
    op.create_table(
        'room_snapshot',
        sa.Column('code', sa.String(length=32), nullable=False),
        sa.Column('payload', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.Float(), nullable=False),
        sa.Column('updated_at', sa.Float(), nullable=False),
        sa.PrimaryKeyConstraint('code'),
    )
    with op.batch_alter_table('room_snapshot') as batch_op:
        batch_op.create_index('ix_room_snapshot_expires_at', ['expires_at'], unique=False)


def downgrade():
    with op.batch_alter_table('room_snapshot') as batch_op:
        batch_op.drop_index('ix_room_snapshot_expires_at')
    op.drop_table('room_snapshot')
