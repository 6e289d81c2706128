"""focus entries

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'focus_entries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.String(255), nullable=False),
        sa.Column('lane', sa.String(255), nullable=False, server_default=''),
        sa.Column('next_action', sa.Text(), nullable=False, server_default=''),
        sa.Column('last_win', sa.Text(), nullable=False, server_default=''),
        sa.Column('brain_dump', sa.Text(), nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_focus_entries_user_id', 'focus_entries', ['user_id'])
    op.create_index('idx_focus_entries_user_created', 'focus_entries', ['user_id', 'created_at'])


def downgrade() -> None:
    op.drop_index('idx_focus_entries_user_created', table_name='focus_entries')
    op.drop_index('ix_focus_entries_user_id', table_name='focus_entries')
    op.drop_table('focus_entries')
