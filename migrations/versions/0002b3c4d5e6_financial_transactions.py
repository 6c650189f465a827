"""financial_transactions

Cash ledger; approving a project's RECIBO books an income entry here.

Revision ID: 0002b3c4d5e6
Revises: 0001a2b3c4d5
Create Date: 2026-10-19 14:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0002b3c4d5e6"
down_revision = "0001a2b3c4d5"
branch_labels = None
depends_on = None


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)

    if "financial_transactions" not in inspector.get_table_names():
        op.create_table(
            "financial_transactions",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=True),
            sa.Column("description", sa.String(length=255), nullable=True),
            sa.Column("amount", sa.Float(), nullable=False),
            sa.Column("type", sa.String(length=10), nullable=False),
            sa.Column("category", sa.String(length=60), nullable=True),
            sa.Column("status", sa.String(length=10), nullable=False),
            sa.Column("payment_method", sa.String(length=20), nullable=True),
            sa.Column("due_date", sa.Date(), nullable=True),
            sa.Column("payment_date", sa.Date(), nullable=True),
            sa.Column("scope", sa.String(length=20), nullable=True, comment="Empresa or Pessoal"),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.CheckConstraint("type IN ('income', 'expense')", name="ck_financial_transaction_type"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_financial_transactions_user_id", "financial_transactions", ["user_id"])
        op.create_index("ix_financial_transactions_project_id", "financial_transactions", ["project_id"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)

    if "financial_transactions" in inspector.get_table_names():
        op.drop_table("financial_transactions")
