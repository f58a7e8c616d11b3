"""Initial production workflow tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create production workflow tables."""
    # Create orders table
    op.create_table(
        "orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_number", sa.String(length=50), nullable=False),
        sa.Column("org_id", sa.String(length=255), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_orders_order_number", "orders", ["order_number"])

    # Create order_workflow table
    op.create_table(
        "order_workflow",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("component", sa.String(length=50), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("assigned_to", sa.String(length=255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_order_workflow_order_component",
        "order_workflow",
        ["order_id", "component"],
        unique=True,
    )
    op.create_index("ix_order_workflow_order_status", "order_workflow", ["order_id", "status"])

    # Create workflow_steps table
    op.create_table(
        "workflow_steps",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("step_key", sa.String(length=50), nullable=False),
        sa.Column("component", sa.String(length=50), nullable=False),
        sa.Column("step_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("technical_report_required", sa.Boolean(), nullable=False, default=False),
        sa.Column("quality_checklist_required", sa.Boolean(), nullable=False, default=False),
        sa.Column("estimated_hours", sa.Float(), nullable=False, default=0.0),
        sa.Column("display_order", sa.Integer(), nullable=False, default=0),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_workflow_steps_step_component",
        "workflow_steps",
        ["step_key", "component"],
        unique=True,
    )

    # Create status_prerequisites table
    op.create_table(
        "status_prerequisites",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("from_status_key", sa.String(length=50), nullable=False),
        sa.Column("to_status_key", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False, default="workflow"),
        sa.Column("component", sa.String(length=50), nullable=True),
        sa.Column("transition_type", sa.String(length=50), nullable=False, default="automatic"),
        sa.Column("priority", sa.Integer(), nullable=False, default=0),
        sa.Column("is_active", sa.Boolean(), nullable=False, default=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_status_prerequisites_from_entity",
        "status_prerequisites",
        ["from_status_key", "entity_type", "is_active"],
    )

    # Create status_config table
    op.create_table(
        "status_config",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("status_key", sa.String(length=50), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False, default="workflow"),
        sa.Column("status_label", sa.String(length=255), nullable=False),
        sa.Column("allow_component_split", sa.Boolean(), nullable=False, default=True),
        sa.Column("display_order", sa.Integer(), nullable=False, default=0),
        sa.Column("estimated_hours", sa.Float(), nullable=False, default=0.0),
        sa.Column("is_active", sa.Boolean(), nullable=False, default=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_status_config_status_entity",
        "status_config",
        ["status_key", "entity_type"],
        unique=True,
    )

    # Create workflow_checklists table
    op.create_table(
        "workflow_checklists",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("step_key", sa.String(length=50), nullable=False),
        sa.Column("component", sa.String(length=50), nullable=False),
        sa.Column("checklist_name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("technical_standard", sa.String(length=255), nullable=True),
        sa.Column("is_mandatory", sa.Boolean(), nullable=False, default=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, default=True),
        sa.Column("blocks_workflow_advance", sa.Boolean(), nullable=False, default=False),
        sa.Column("requires_supervisor_approval", sa.Boolean(), nullable=False, default=False),
        sa.Column("version", sa.Integer(), nullable=False, default=1),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_workflow_checklists_step_component",
        "workflow_checklists",
        ["step_key", "component"],
    )

    # Create workflow_checklist_responses table
    op.create_table(
        "workflow_checklist_responses",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workflow_instance_id", sa.Uuid(), nullable=False),
        sa.Column("checklist_id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=True),
        sa.Column("component", sa.String(length=50), nullable=True),
        sa.Column("step_key", sa.String(length=50), nullable=True),
        sa.Column("responses", JSONType, nullable=False),
        sa.Column("measurements", JSONType, nullable=False),
        sa.Column("non_conformities", JSONType, nullable=False),
        sa.Column("overall_status", sa.String(length=50), nullable=False, default="pending"),
        sa.Column("filled_by", sa.String(length=255), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["workflow_instance_id"], ["order_workflow.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["checklist_id"], ["workflow_checklists.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_checklist_responses_instance_checklist",
        "workflow_checklist_responses",
        ["workflow_instance_id", "checklist_id"],
        unique=True,
    )

    # Create workflow_status_history table
    op.create_table(
        "workflow_status_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workflow_instance_id", sa.Uuid(), nullable=False),
        sa.Column("old_status", sa.String(length=50), nullable=False),
        sa.Column("new_status", sa.String(length=50), nullable=False),
        sa.Column("changed_by", sa.String(length=255), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("changed_at", sa.DateTime(timezone=True), nullable=False),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["workflow_instance_id"], ["order_workflow.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_workflow_status_history_instance",
        "workflow_status_history",
        ["workflow_instance_id", "changed_at"],
    )

    # Create technical_reports table
    op.create_table(
        "technical_reports",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workflow_instance_id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("component", sa.String(length=50), nullable=False),
        sa.Column("report_type", sa.String(length=50), nullable=False),
        sa.Column("report_number", sa.String(length=100), nullable=False),
        sa.Column("report_data", JSONType, nullable=False),
        sa.Column("conformity_status", sa.String(length=50), nullable=False, default="pending"),
        sa.Column("generated_automatically", sa.Boolean(), nullable=False, default=False),
        sa.Column("org_id", sa.String(length=255), nullable=True),
        sa.Column("approved_by", sa.String(length=255), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["workflow_instance_id"], ["order_workflow.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["order_id"], ["orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_technical_reports_instance_type",
        "technical_reports",
        ["workflow_instance_id", "report_type"],
        unique=True,
    )
    op.create_index("ix_technical_reports_order", "technical_reports", ["order_id"])


def downgrade() -> None:
    """Drop production workflow tables."""
    op.drop_table("technical_reports")
    op.drop_table("workflow_status_history")
    op.drop_table("workflow_checklist_responses")
    op.drop_table("workflow_checklists")
    op.drop_table("status_config")
    op.drop_table("status_prerequisites")
    op.drop_table("workflow_steps")
    op.drop_table("order_workflow")
    op.drop_table("orders")
