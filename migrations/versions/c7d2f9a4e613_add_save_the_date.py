"""add save the date

Revision ID: c7d2f9a4e613
Revises: a1c3e5f70b21
Create Date: 2026-10-19 09:41:07.318552

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = 'c7d2f9a4e613'
down_revision: Union[str, Sequence[str], None] = 'a1c3e5f70b21'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add the save-the-date switch, the per-family send date and the new enum values."""
    if op.get_bind().dialect.name == "postgresql":
        op.execute("ALTER TYPE eventtypeenum ADD VALUE IF NOT EXISTS 'SAVE_THE_DATE_SENT'")
        op.execute("ALTER TYPE templatetypeenum ADD VALUE IF NOT EXISTS 'SAVE_THE_DATE'")
    op.add_column(
        "weddings",
        sa.Column("save_the_date_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.add_column("families", sa.Column("save_the_date_sent", sa.DateTime(), nullable=True))


def downgrade() -> None:
    """Drop the new columns. PostgreSQL cannot drop enum values; they stay unused."""
    with op.batch_alter_table("families") as batch_op:
        batch_op.drop_column("save_the_date_sent")
    with op.batch_alter_table("weddings") as batch_op:
        batch_op.drop_column("save_the_date_enabled")
