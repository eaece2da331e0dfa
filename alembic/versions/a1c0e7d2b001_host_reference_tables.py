"""host reference tables: records / record_attributes / users

Revision ID: a1c0e7d2b001
Revises:
Create Date: 2024-05-01 09:00:00
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "a1c0e7d2b001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "records",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("parent_id", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=False), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_records_kind", "records", ["kind"])
    op.create_index("ix_records_parent_id", "records", ["parent_id"])
    op.create_index("ix_records_kind_created", "records", ["kind", "created_at"])

    op.create_table(
        "record_attributes",
        sa.Column(
            "record_id",
            sa.Integer,
            sa.ForeignKey("records.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("name", sa.String(191), primary_key=True),
        sa.Column("value", sa.Text, nullable=True),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(175), nullable=False, server_default=""),
        sa.Column("first_name", sa.String(175), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(175), nullable=False, server_default=""),
        sa.Column("display_name", sa.String(250), nullable=False, server_default=""),
    )


def downgrade():
    op.drop_table("users")
    op.drop_table("record_attributes")
    op.drop_index("ix_records_kind_created", table_name="records")
    op.drop_index("ix_records_parent_id", table_name="records")
    op.drop_index("ix_records_kind", table_name="records")
    op.drop_table("records")
