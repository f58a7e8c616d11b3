"""SQLAlchemy models for production workflow persistence.

This module defines the database models backing the workflow engine:
- OrderModel: Minimal view of the service order (tenant attribution)
- WorkflowInstanceModel: One component's progress within an order
- StatusDefinitionModel: Production steps configured per component
- StatusPrerequisiteModel: Allowed transitions between statuses
- StatusConfigModel: Per-status configuration (component split)
- ChecklistModel / ChecklistResponseModel: Inspection gates and their answers
- StatusHistoryModel: Append-only audit trail of status changes
- TechnicalReportModel: Reports generated when gated steps complete
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from advanced_alchemy.base import UUIDAuditBase
from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import JSON, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rework_workflow.core.types import ChecklistStatus, Component, ConformityStatus, TransitionType

__all__ = [
    "ChecklistModel",
    "ChecklistResponseModel",
    "OrderModel",
    "StatusConfigModel",
    "StatusDefinitionModel",
    "StatusHistoryModel",
    "StatusPrerequisiteModel",
    "TechnicalReportModel",
    "WorkflowInstanceModel",
]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


def _enum(enum_class: type[Any]) -> Enum:
    """Non-native enum column storing member values."""
    return Enum(
        enum_class,
        native_enum=False,
        length=50,
        values_callable=lambda members: [member.value for member in members],
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderModel(UUIDAuditBase):
    """Service order, reduced to what the workflow engine needs.

    Attributes:
        order_number: Human-facing order number.
        org_id: Tenant owning the order.
        workflows: Workflow instances of the order's components.
    """

    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(String(50), index=True)
    org_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    workflows: Mapped[list[WorkflowInstanceModel]] = relationship(
        back_populates="order",
        lazy="noload",
    )


class WorkflowInstanceModel(UUIDAuditBase):
    """Progress of one engine component through the production stages.

    Attributes:
        order_id: Foreign key to the service order.
        component: The component being reworked.
        status: Key of the current production stage.
        started_at: When work on the current stage began.
        completed_at: When work on the current stage finished.
        assigned_to: Operator responsible for the current stage.
        notes: Free-form notes.
    """

    __tablename__ = "order_workflow"
    __table_args__ = (
        Index("ix_order_workflow_order_component", "order_id", "component", unique=True),
        Index("ix_order_workflow_order_status", "order_id", "status"),
    )

    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"))
    component: Mapped[Component] = mapped_column(_enum(Component))
    status: Mapped[str] = mapped_column(String(50))
    started_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    assigned_to: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    order: Mapped[OrderModel] = relationship(back_populates="workflows", lazy="noload")
    history: Mapped[list[StatusHistoryModel]] = relationship(
        back_populates="instance",
        lazy="noload",
        order_by="StatusHistoryModel.changed_at",
    )


class StatusDefinitionModel(UUIDAuditBase):
    """A production step as configured for one component.

    Attributes:
        step_key: Status key of the step.
        component: Component the step applies to.
        step_name: Human label.
        description: Longer description of the work.
        technical_report_required: Whether completing the step generates a report.
        quality_checklist_required: Whether the step has inspection checklists.
        estimated_hours: Expected duration of the step.
        display_order: Position of the step in the pipeline.
    """

    __tablename__ = "workflow_steps"
    __table_args__ = (Index("ix_workflow_steps_step_component", "step_key", "component", unique=True),)

    step_key: Mapped[str] = mapped_column(String(50))
    component: Mapped[Component] = mapped_column(_enum(Component))
    step_name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    technical_report_required: Mapped[bool] = mapped_column(default=False)
    quality_checklist_required: Mapped[bool] = mapped_column(default=False)
    estimated_hours: Mapped[float] = mapped_column(default=0.0)
    display_order: Mapped[int] = mapped_column(default=0)


class StatusPrerequisiteModel(UUIDAuditBase):
    """A directed edge of the status graph.

    Attributes:
        from_status_key: Status the edge leaves.
        to_status_key: Status the edge enters.
        entity_type: Entity the edge applies to.
        component: Component the edge is restricted to; None applies to all.
        transition_type: How the edge may be taken.
        priority: Explicit ordering among edges leaving the same status.
        is_active: Inactive edges are ignored.
    """

    __tablename__ = "status_prerequisites"
    __table_args__ = (Index("ix_status_prerequisites_from_entity", "from_status_key", "entity_type", "is_active"),)

    from_status_key: Mapped[str] = mapped_column(String(50))
    to_status_key: Mapped[str] = mapped_column(String(50))
    entity_type: Mapped[str] = mapped_column(String(50), default="workflow")
    component: Mapped[Component | None] = mapped_column(_enum(Component), nullable=True)
    transition_type: Mapped[TransitionType] = mapped_column(
        _enum(TransitionType),
        default=TransitionType.AUTOMATIC,
    )
    priority: Mapped[int] = mapped_column(default=0)
    is_active: Mapped[bool] = mapped_column(default=True)


class StatusConfigModel(UUIDAuditBase):
    """Configuration of one status.

    Attributes:
        status_key: The configured status.
        entity_type: Entity the status belongs to.
        status_label: Human label.
        allow_component_split: Whether components of one order may sit at
            different statuses while in this stage.
        display_order: Position on the board.
        estimated_hours: Expected stage duration.
        is_active: Inactive configurations are ignored.
    """

    __tablename__ = "status_config"
    __table_args__ = (Index("ix_status_config_status_entity", "status_key", "entity_type", unique=True),)

    status_key: Mapped[str] = mapped_column(String(50))
    entity_type: Mapped[str] = mapped_column(String(50), default="workflow")
    status_label: Mapped[str] = mapped_column(String(255))
    allow_component_split: Mapped[bool] = mapped_column(default=True)
    display_order: Mapped[int] = mapped_column(default=0)
    estimated_hours: Mapped[float] = mapped_column(default=0.0)
    is_active: Mapped[bool] = mapped_column(default=True)


class ChecklistModel(UUIDAuditBase):
    """An inspection checklist required at a step for a component.

    Attributes:
        step_key: Status key the checklist belongs to.
        component: Component the checklist applies to.
        checklist_name: Human name, reported when the gate blocks.
        description: What the checklist verifies.
        technical_standard: Standard the inspection follows.
        is_mandatory: Whether the checklist must be filled in.
        is_active: Inactive checklists are ignored.
        blocks_workflow_advance: Whether an unapproved response blocks advancement.
        requires_supervisor_approval: Whether a supervisor must approve the response.
        version: Checklist revision.
    """

    __tablename__ = "workflow_checklists"
    __table_args__ = (Index("ix_workflow_checklists_step_component", "step_key", "component"),)

    step_key: Mapped[str] = mapped_column(String(50))
    component: Mapped[Component] = mapped_column(_enum(Component))
    checklist_name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    technical_standard: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_mandatory: Mapped[bool] = mapped_column(default=True)
    is_active: Mapped[bool] = mapped_column(default=True)
    blocks_workflow_advance: Mapped[bool] = mapped_column(default=False)
    requires_supervisor_approval: Mapped[bool] = mapped_column(default=False)
    version: Mapped[int] = mapped_column(default=1)


class ChecklistResponseModel(UUIDAuditBase):
    """A checklist filled in for one workflow instance.

    Attributes:
        workflow_instance_id: Foreign key to the workflow instance.
        checklist_id: Foreign key to the checklist.
        order_id: Denormalized order for reporting.
        component: Denormalized component.
        step_key: Step the response was filled in at.
        responses: Item answers keyed by item code.
        measurements: Measured values keyed by item code.
        non_conformities: Recorded non-conformities.
        overall_status: Verdict of the response.
        filled_by: Operator who filled in the checklist.
    """

    __tablename__ = "workflow_checklist_responses"
    __table_args__ = (
        Index(
            "ix_checklist_responses_instance_checklist",
            "workflow_instance_id",
            "checklist_id",
            unique=True,
        ),
    )

    workflow_instance_id: Mapped[UUID] = mapped_column(ForeignKey("order_workflow.id", ondelete="CASCADE"))
    checklist_id: Mapped[UUID] = mapped_column(ForeignKey("workflow_checklists.id", ondelete="CASCADE"))
    order_id: Mapped[UUID | None] = mapped_column(nullable=True)
    component: Mapped[Component | None] = mapped_column(_enum(Component), nullable=True)
    step_key: Mapped[str | None] = mapped_column(String(50), nullable=True)
    responses: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    measurements: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    non_conformities: Mapped[list[Any]] = mapped_column(JSONType, default=list)
    overall_status: Mapped[ChecklistStatus] = mapped_column(
        _enum(ChecklistStatus),
        default=ChecklistStatus.PENDING,
    )
    filled_by: Mapped[str | None] = mapped_column(String(255), nullable=True)


class StatusHistoryModel(UUIDAuditBase):
    """Append-only record of one real status change.

    Attributes:
        workflow_instance_id: Foreign key to the workflow instance.
        old_status: Status before the change.
        new_status: Status after the change.
        changed_by: Actor who caused the change.
        reason: Why the change happened.
        changed_at: When the change happened.
    """

    __tablename__ = "workflow_status_history"
    __table_args__ = (Index("ix_workflow_status_history_instance", "workflow_instance_id", "changed_at"),)

    workflow_instance_id: Mapped[UUID] = mapped_column(ForeignKey("order_workflow.id", ondelete="CASCADE"))
    old_status: Mapped[str] = mapped_column(String(50))
    new_status: Mapped[str] = mapped_column(String(50))
    changed_by: Mapped[str] = mapped_column(String(255))
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_at: Mapped[datetime] = mapped_column(DateTimeUTC(timezone=True), default=_utcnow)

    instance: Mapped[WorkflowInstanceModel] = relationship(back_populates="history", lazy="noload")


class TechnicalReportModel(UUIDAuditBase):
    """Technical report generated when a step that requires one is completed.

    Attributes:
        workflow_instance_id: Foreign key to the workflow instance.
        order_id: Foreign key to the service order.
        component: Component the report documents.
        report_type: Step key the report documents.
        report_number: Human-facing report number.
        report_data: Structured report content.
        conformity_status: Conformity verdict.
        generated_automatically: Whether the engine generated the report.
        org_id: Tenant owning the report.
        approved_by: Who approved the report, once approved.
        approved_at: When the report was approved.
    """

    __tablename__ = "technical_reports"
    __table_args__ = (
        Index("ix_technical_reports_instance_type", "workflow_instance_id", "report_type", unique=True),
        Index("ix_technical_reports_order", "order_id"),
    )

    workflow_instance_id: Mapped[UUID] = mapped_column(ForeignKey("order_workflow.id", ondelete="CASCADE"))
    order_id: Mapped[UUID] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"))
    component: Mapped[Component] = mapped_column(_enum(Component))
    report_type: Mapped[str] = mapped_column(String(50))
    report_number: Mapped[str] = mapped_column(String(100))
    report_data: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    conformity_status: Mapped[ConformityStatus] = mapped_column(
        _enum(ConformityStatus),
        default=ConformityStatus.PENDING,
    )
    generated_automatically: Mapped[bool] = mapped_column(default=False)
    org_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
