"""Per-owner order counters for default card display order.

Revision ID: 002_card_order_sequences
Revises: 001_initial
Create Date: 2026-10-15

Replaces computing max(order)+1 at insert time, which let two concurrent
creates for one owner pick the same order. Seeds each owner's counter from
their existing cards.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002_card_order_sequences"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "card_order_sequences",
        sa.Column("owner", sa.String(128), primary_key=True),
        sa.Column("last_value", sa.Integer, nullable=False, server_default="0"),
    )
    op.execute(
        'INSERT INTO card_order_sequences (owner, last_value) '
        'SELECT owner, MAX("order") FROM cards GROUP BY owner'
    )


def downgrade() -> None:
    op.drop_table("card_order_sequences")
