"""create_calendar_events

Revision ID: 5e1a7c2b9d40
Revises:
Create Date: 2026-10-18 10:12:41.218734

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5e1a7c2b9d40'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'calendar_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('calendar_id', sa.String(length=255), nullable=False),
        sa.Column('event_id', sa.String(length=255), nullable=False),
        sa.Column('summary', sa.Text(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('amount_expected', sa.BigInteger(), nullable=True),
        sa.Column('amount_paid', sa.BigInteger(), nullable=True),
        sa.Column('attended', sa.Boolean(), nullable=True),
        sa.Column('dosage_value', sa.Float(), nullable=True),
        sa.Column('dosage_unit', sa.String(length=20), nullable=True),
        sa.Column('treatment_stage', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('calendar_id', 'event_id', name='uq_calendar_events_calendar_event'),
    )
    op.create_index('ix_calendar_events_category', 'calendar_events', ['category'])
    op.create_index(
        'ix_calendar_events_calendar_id_event_id', 'calendar_events', ['calendar_id', 'event_id']
    )


def downgrade() -> None:
    op.drop_index('ix_calendar_events_calendar_id_event_id', table_name='calendar_events')
    op.drop_index('ix_calendar_events_category', table_name='calendar_events')
    op.drop_table('calendar_events')
