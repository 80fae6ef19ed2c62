"""Rice batches per truck, payment tracking and customer linking.

Existing transactions keep their rice_type / unit_price and get no
batch rows; their weights keep rice_batch_id NULL.

Revision ID: 0002
Revises: 0001
Create Date: 2026-09-20
"""

revision = "0002"
down_revision = "0001"
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    op.create_table(
        "rice_batches",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "transaction_id",
            sa.String(36),
            sa.ForeignKey("transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rice_type", sa.String(100), nullable=False),
        sa.Column("unit_price", sa.Float(), nullable=False),
        sa.Column("batch_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_rice_batches_transaction_id", "rice_batches", ["transaction_id"])

    op.add_column(
        "weighing_details",
        sa.Column(
            "rice_batch_id",
            sa.String(36),
            sa.ForeignKey("rice_batches.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )

    # Legacy pricing columns become optional for batch-priced rows
    op.alter_column("transactions", "rice_type", existing_type=sa.String(100), nullable=True)
    op.alter_column("transactions", "unit_price", existing_type=sa.Float(), nullable=True)

    op.add_column("transactions", sa.Column("completed_at", sa.DateTime(), nullable=True))
    op.add_column(
        "transactions",
        sa.Column("payment_status", sa.String(20), nullable=False, server_default="unpaid"),
    )
    op.add_column("transactions", sa.Column("payment_date", sa.DateTime(), nullable=True))
    op.add_column(
        "transactions",
        sa.Column(
            "customer_id",
            sa.String(36),
            sa.ForeignKey("customers.id", ondelete="SET NULL"),
            nullable=True,
        ),
    )
    op.create_index("ix_transactions_payment_status", "transactions", ["payment_status"])
    op.create_index("ix_transactions_customer_id", "transactions", ["customer_id"])


def downgrade() -> None:
    op.drop_index("ix_transactions_customer_id", table_name="transactions")
    op.drop_index("ix_transactions_payment_status", table_name="transactions")
    op.drop_column("transactions", "customer_id")
    op.drop_column("transactions", "payment_date")
    op.drop_column("transactions", "payment_status")
    op.drop_column("transactions", "completed_at")
    op.drop_column("weighing_details", "rice_batch_id")
    op.drop_table("rice_batches")
