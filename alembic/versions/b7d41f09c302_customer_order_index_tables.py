"""customer order index / subscription index / index options

Revision ID: b7d41f09c302
Revises: a1c0e7d2b001
Create Date: 2024-05-01 09:30:00
"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "b7d41f09c302"
down_revision = "a1c0e7d2b001"
branch_labels = None
depends_on = None

ORDER_INDEX_COLUMNS = [
    "order_number",
    "user_id",
    "customer_email",
    "billing_email",
    "customer_name",
    "billing_name",
    "shipping_name",
    "billing_city",
    "shipping_city",
    "billing_postcode",
    "shipping_postcode",
]

SUBSCRIPTION_INDEX_COLUMNS = [
    "order_total",
    "start_date",
    "trial_end_date",
    "next_payment_date",
    "end_date",
    "last_payment_date",
]


def upgrade():
    op.create_table(
        "customer_order_index",
        sa.Column("order_id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("order_number", sa.String(64), nullable=False),
        sa.Column("user_id", sa.Integer, nullable=False),
        sa.Column("customer_email", sa.String(175), nullable=False),
        sa.Column("billing_email", sa.String(175), nullable=False),
        sa.Column("customer_name", sa.String(175), nullable=False),
        sa.Column("billing_name", sa.String(175), nullable=False),
        sa.Column("shipping_name", sa.String(175), nullable=False),
        sa.Column("billing_city", sa.String(100), nullable=False),
        sa.Column("shipping_city", sa.String(100), nullable=False),
        sa.Column("billing_postcode", sa.String(20), nullable=False),
        sa.Column("shipping_postcode", sa.String(20), nullable=False),
    )
    for col in ORDER_INDEX_COLUMNS:
        op.create_index(f"ix_customer_order_index_{col}", "customer_order_index", [col])

    op.create_table(
        "subscription_index",
        sa.Column("subscription_id", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("order_total", sa.Numeric(12, 2), nullable=True),
        sa.Column("start_date", sa.DateTime, nullable=True),
        sa.Column("trial_end_date", sa.DateTime, nullable=True),
        sa.Column("next_payment_date", sa.DateTime, nullable=True),
        sa.Column("end_date", sa.DateTime, nullable=True),
        sa.Column("last_payment_date", sa.DateTime, nullable=True),
    )
    for col in SUBSCRIPTION_INDEX_COLUMNS:
        op.create_index(f"ix_subscription_index_{col}", "subscription_index", [col])

    op.create_table(
        "index_options",
        sa.Column("name", sa.String(191), primary_key=True),
        sa.Column("value", sa.Text, nullable=False),
    )


def downgrade():
    op.drop_table("index_options")

    for col in reversed(SUBSCRIPTION_INDEX_COLUMNS):
        op.drop_index(f"ix_subscription_index_{col}", table_name="subscription_index")
    op.drop_table("subscription_index")

    for col in reversed(ORDER_INDEX_COLUMNS):
        op.drop_index(f"ix_customer_order_index_{col}", table_name="customer_order_index")
    op.drop_table("customer_order_index")
