"""Ticket queue schema with cached smart sort scores

Revision ID: ticket_queue_001
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates:
1. tickets
2. ticket_messages (actor + timestamp used for reply statistics)
3. ticket_nudges (customer expedite requests)
4. ticket_smart_scores (one cached score row per ticket, upsert key = ticket_id)
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = 'ticket_queue_001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'tickets',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('short_id', sa.String(20), nullable=False),
        sa.Column('subject', sa.String(500), nullable=False, server_default=''),
        sa.Column('status', sa.String(32), nullable=False, server_default='pending_assign',
                  comment='pending_assign, assigned, replied_by_staff, replied_by_customer, closed'),
        sa.Column('creator_uid', sa.Integer(), nullable=False),
        sa.Column('category_id', sa.String(36), nullable=True),
        sa.Column('assigned_to_uid', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_tickets_short_id', 'tickets', ['short_id'], unique=True)
    op.create_index('ix_tickets_status', 'tickets', ['status'])
    op.create_index('ix_tickets_creator_uid', 'tickets', ['creator_uid'])
    op.create_index('ix_tickets_assigned_to_uid', 'tickets', ['assigned_to_uid'])
    op.create_index('ix_tickets_created_at', 'tickets', ['created_at'])

    op.create_table(
        'ticket_messages',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('ticket_id', sa.String(36), sa.ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('actor', sa.String(20), nullable=False,
                  comment='customer, staff, system, anonymous'),
        sa.Column('author_uid', sa.Integer(), nullable=True),
        sa.Column('body', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_ticket_messages_ticket_id', 'ticket_messages', ['ticket_id'])
    op.create_index('ix_ticket_messages_created_at', 'ticket_messages', ['created_at'])

    op.create_table(
        'ticket_nudges',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('ticket_id', sa.String(36), sa.ForeignKey('tickets.id', ondelete='CASCADE'), nullable=False),
        sa.Column('requester_uid', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_ticket_nudges_ticket_id', 'ticket_nudges', ['ticket_id'])
    op.create_index('ix_ticket_nudges_created_at', 'ticket_nudges', ['created_at'])

    op.create_table(
        'ticket_smart_scores',
        sa.Column('ticket_id', sa.String(36), sa.ForeignKey('tickets.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('urgency_score', sa.Float(), nullable=False),
        sa.Column('time_score', sa.Float(), nullable=False,
                  comment='0.7 * updated_at_ms + 0.3 * created_at_ms, tie-break only'),
        sa.Column('computed_at', sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('ticket_smart_scores')
    op.drop_index('ix_ticket_nudges_created_at', table_name='ticket_nudges')
    op.drop_index('ix_ticket_nudges_ticket_id', table_name='ticket_nudges')
    op.drop_table('ticket_nudges')
    op.drop_index('ix_ticket_messages_created_at', table_name='ticket_messages')
    op.drop_index('ix_ticket_messages_ticket_id', table_name='ticket_messages')
    op.drop_table('ticket_messages')
    op.drop_index('ix_tickets_created_at', table_name='tickets')
    op.drop_index('ix_tickets_assigned_to_uid', table_name='tickets')
    op.drop_index('ix_tickets_creator_uid', table_name='tickets')
    op.drop_index('ix_tickets_status', table_name='tickets')
    op.drop_index('ix_tickets_short_id', table_name='tickets')
    op.drop_table('tickets')
