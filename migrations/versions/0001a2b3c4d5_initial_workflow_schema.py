"""initial_workflow_schema

Create reference tables, projects + project_steps, credit cards and the
audit log.

Revision ID: 0001a2b3c4d5
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect as sa_inspect


# revision identifiers, used by Alembic.
revision = "0001a2b3c4d5"
down_revision = None
branch_labels = None
depends_on = None


def _owner():
    return sa.Column("user_id", sa.String(length=64), nullable=True)


def _created():
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=True)


def upgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    if "clients" not in existing_tables:
        op.create_table(
            "clients",
            sa.Column("id", sa.Integer(), nullable=False),
            _owner(),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("cpf_cnpj", sa.String(length=20), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("marital_status", sa.String(length=40), nullable=True),
            sa.Column("profession", sa.String(length=100), nullable=True),
            sa.Column("rg", sa.String(length=40), nullable=True),
            sa.Column("email", sa.String(length=200), nullable=True),
            sa.Column("phone", sa.String(length=40), nullable=True),
            sa.Column("nationality", sa.String(length=60), nullable=True),
            _created(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_clients_user_id", "clients", ["user_id"])

    if "rural_properties" not in existing_tables:
        op.create_table(
            "rural_properties",
            sa.Column("id", sa.Integer(), nullable=False),
            _owner(),
            sa.Column("client_id", sa.Integer(), nullable=True),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("area_ha", sa.Float(), nullable=True),
            sa.Column("registration_number", sa.String(length=60), nullable=True),
            sa.Column("municipality", sa.String(length=100), nullable=True),
            sa.Column("uf", sa.String(length=2), nullable=True),
            sa.Column("cri", sa.String(length=200), nullable=True),
            sa.Column("comarca", sa.String(length=100), nullable=True),
            sa.Column("incra_code", sa.String(length=40), nullable=True),
            _created(),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_rural_properties_user_id", "rural_properties", ["user_id"])

    if "professionals" not in existing_tables:
        op.create_table(
            "professionals",
            sa.Column("id", sa.Integer(), nullable=False),
            _owner(),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("crea", sa.String(length=40), nullable=True),
            sa.Column("cpf", sa.String(length=20), nullable=True),
            sa.Column("address", sa.Text(), nullable=True),
            sa.Column("phone", sa.String(length=40), nullable=True),
            sa.Column("email", sa.String(length=200), nullable=True),
            sa.Column("professional_title", sa.String(length=100), nullable=True),
            sa.Column("credential_code", sa.String(length=20), nullable=True),
            _created(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_professionals_user_id", "professionals", ["user_id"])

    if "services" not in existing_tables:
        op.create_table(
            "services",
            sa.Column("id", sa.Integer(), nullable=False),
            _owner(),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("items_json", sa.Text(), nullable=True),
            sa.Column("base_price", sa.Float(), nullable=True),
            _created(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_services_user_id", "services", ["user_id"])

    if "registries" not in existing_tables:
        op.create_table(
            "registries",
            sa.Column("id", sa.Integer(), nullable=False),
            _owner(),
            sa.Column("name", sa.String(length=200), nullable=False),
            sa.Column("cns", sa.String(length=20), nullable=True),
            sa.Column("municipality", sa.String(length=100), nullable=True),
            sa.Column("uf", sa.String(length=2), nullable=True),
            _created(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_registries_user_id", "registries", ["user_id"])
        op.create_index("ix_registries_cns", "registries", ["cns"])

    if "budget_item_templates" not in existing_tables:
        op.create_table(
            "budget_item_templates",
            sa.Column("id", sa.Integer(), nullable=False),
            _owner(),
            sa.Column("description", sa.String(length=200), nullable=False),
            sa.Column("default_price", sa.Float(), nullable=False),
            sa.Column("category", sa.String(length=60), nullable=True),
            _created(),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_budget_item_templates_user_id", "budget_item_templates", ["user_id"])

    if "projects" not in existing_tables:
        op.create_table(
            "projects",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("client_id", sa.Integer(), nullable=True),
            sa.Column("property_id", sa.Integer(), nullable=True),
            sa.Column("professional_id", sa.Integer(), nullable=True),
            sa.Column("service_id", sa.Integer(), nullable=True),
            sa.Column("registry_id", sa.Integer(), nullable=True),
            sa.Column("title", sa.String(length=200), nullable=False),
            sa.Column("project_number", sa.String(length=20), nullable=True),
            sa.Column("certification_number", sa.String(length=60), nullable=True),
            sa.Column("certification_date", sa.Date(), nullable=True),
            sa.Column("art_number", sa.String(length=60), nullable=True),
            sa.Column("current_step_index", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("deadline", sa.Date(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sa.CheckConstraint("current_step_index >= 0", name="ck_project_step_index"),
            sa.ForeignKeyConstraint(["client_id"], ["clients.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["property_id"], ["rural_properties.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["professional_id"], ["professionals.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="SET NULL"),
            sa.ForeignKeyConstraint(["registry_id"], ["registries.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_projects_user_id", "projects", ["user_id"])

    if "project_steps" not in existing_tables:
        op.create_table(
            "project_steps",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("position", sa.Integer(), nullable=False),
            sa.Column("step_kind", sa.String(length=30), nullable=False),
            sa.Column("label", sa.String(length=200), nullable=False),
            sa.Column("status", sa.String(length=30), nullable=False, server_default="not_started"),
            sa.Column("notes", sa.Text(), nullable=True),
            sa.Column("has_document", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("document_number", sa.String(length=60), nullable=True),
            sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.CheckConstraint(
                "status IN ('not_started','in_progress','pending',"
                "'waiting_approval','rejected','completed')",
                name="ck_project_step_status",
            ),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("project_id", "position", name="uq_project_step_position"),
        )
        op.create_index("ix_project_steps_project_id", "project_steps", ["project_id"])

    if "credit_cards" not in existing_tables:
        op.create_table(
            "credit_cards",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("name", sa.String(length=100), nullable=False),
            sa.Column("credit_limit", sa.Float(), nullable=False),
            sa.Column("closing_day", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("due_day", sa.Integer(), nullable=False, server_default="10"),
            _created(),
            sa.CheckConstraint("closing_day BETWEEN 1 AND 31", name="ck_credit_card_closing_day"),
            sa.CheckConstraint("due_day BETWEEN 1 AND 31", name="ck_credit_card_due_day"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_credit_cards_user_id", "credit_cards", ["user_id"])

    if "credit_card_expenses" not in existing_tables:
        op.create_table(
            "credit_card_expenses",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("user_id", sa.String(length=64), nullable=False),
            sa.Column("card_id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=True),
            sa.Column("description", sa.String(length=200), nullable=True),
            sa.Column("category", sa.String(length=60), nullable=True),
            sa.Column("amount", sa.Float(), nullable=False),
            sa.Column("installments", sa.Integer(), nullable=False, server_default="1"),
            sa.Column("date", sa.Date(), nullable=False),
            _created(),
            sa.ForeignKeyConstraint(["card_id"], ["credit_cards.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("ix_credit_card_expenses_user_id", "credit_card_expenses", ["user_id"])
        op.create_index("ix_credit_card_expenses_card_id", "credit_card_expenses", ["card_id"])

    if "audit_logs" not in existing_tables:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("project_id", sa.Integer(), nullable=True),
            sa.Column("entity_type", sa.String(length=30), nullable=False),
            sa.Column("entity_id", sa.String(length=36), nullable=False),
            sa.Column("action", sa.String(length=60), nullable=False),
            sa.Column("actor_user_id", sa.String(length=64), nullable=True),
            sa.Column("diff_json", sa.Text(), nullable=True),
            sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
            sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="SET NULL"),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index("idx_audit_entity", "audit_logs", ["entity_type", "entity_id"])
        op.create_index("idx_audit_project", "audit_logs", ["project_id"])
        op.create_index("idx_audit_action", "audit_logs", ["action"])
        op.create_index("ix_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"])


def downgrade():
    bind = op.get_bind()
    inspector = sa_inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table in (
        "audit_logs",
        "credit_card_expenses",
        "credit_cards",
        "project_steps",
        "projects",
        "budget_item_templates",
        "registries",
        "services",
        "professionals",
        "rural_properties",
        "clients",
    ):
        if table in existing_tables:
            op.drop_table(table)
