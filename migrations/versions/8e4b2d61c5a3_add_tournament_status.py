"""Add admin status override to tournament

Revision ID: 8e4b2d61c5a3
Revises: 3c1f9a2b7d10
Create Date: 2026-10-20 10:30:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8e4b2d61c5a3'
down_revision = '3c1f9a2b7d10'
branch_labels = None
depends_on = None


def upgrade():
    with op.batch_alter_table('tournament', schema=None) as batch_op:
        batch_op.add_column(sa.Column('status', sa.String(length=16), nullable=True))


def downgrade():
    with op.batch_alter_table('tournament', schema=None) as batch_op:
        batch_op.drop_column('status')
