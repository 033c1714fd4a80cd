"""create bot_subscribers table

Revision ID: 20261019_subscribers
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261019_subscribers'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the subscriber registry table."""
    op.create_table(
        'bot_subscribers',
        sa.Column('chat_id', sa.String(64), primary_key=True),
        sa.Column('chat_type', sa.String(32), nullable=True),
        sa.Column('title', sa.String(255), nullable=True),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('source', sa.String(64), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_bot_subscribers_is_active', 'bot_subscribers', ['is_active'])


def downgrade():
    """Drop the subscriber registry table."""
    op.drop_index('ix_bot_subscribers_is_active', table_name='bot_subscribers')
    op.drop_table('bot_subscribers')
