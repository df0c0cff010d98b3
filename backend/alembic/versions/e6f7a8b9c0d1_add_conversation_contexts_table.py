"""Add conversation_contexts table

Revision ID: e6f7a8b9c0d1
Revises:
Create Date: 2026-10-19 09:00:00.000000

Stores the set of active graph node ids per (tenant, conversation) so
follow-up turns can stay consistent with concepts already discussed.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "e6f7a8b9c0d1"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "conversation_contexts",
        sa.Column("conversation_id", sa.String(128), nullable=False),
        sa.Column("tenant_id", sa.String(128), nullable=False),
        sa.Column(
            "active_node_ids",
            postgresql.ARRAY(sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'"),
        ),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("conversation_id", "tenant_id"),
    )
    op.create_index("ix_conversation_contexts_tenant_id", "conversation_contexts", ["tenant_id"])


def downgrade() -> None:
    op.drop_index("ix_conversation_contexts_tenant_id", table_name="conversation_contexts")
    op.drop_table("conversation_contexts")
