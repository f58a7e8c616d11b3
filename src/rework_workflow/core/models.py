"""Storage-agnostic records exchanged between the engine and the data store.

The :class:`~rework_workflow.core.protocols.WorkflowStore` returns these plain
dataclasses so the engine never touches ORM objects directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from rework_workflow.core.types import ChecklistStatus, Component, ConformityStatus, TransitionType

__all__ = [
    "AllowedTransition",
    "ChecklistRequirement",
    "ChecklistResponseData",
    "StatusConfigData",
    "StatusDefinitionData",
    "StatusHistoryEntry",
    "TechnicalReportData",
    "TransitionEdge",
    "WorkflowInstanceData",
]


@dataclass
class WorkflowInstanceData:
    """One component's progress within one service order.

    Attributes:
        id: Unique identifier of the workflow instance.
        order_id: The service order the component belongs to.
        component: The engine component being reworked.
        status: Key of the current production stage.
        started_at: When work on the current stage began, if it has.
        completed_at: When work on the current stage finished, if it has.
        assigned_to: Operator responsible for the current stage.
        notes: Free-form notes.
        updated_at: Last modification timestamp.
    """

    id: UUID
    order_id: UUID
    component: Component
    status: str
    started_at: datetime | None = None
    completed_at: datetime | None = None
    assigned_to: str | None = None
    notes: str | None = None
    updated_at: datetime | None = None

    @property
    def is_started(self) -> bool:
        return self.started_at is not None

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None


@dataclass(frozen=True)
class TransitionEdge:
    """A configured, directed edge of the status graph.

    Attributes:
        id: Identifier of the prerequisite row.
        from_status: Status the edge leaves.
        to_status: Status the edge enters.
        entity_type: Entity the edge applies to (``"workflow"`` for components).
        transition_type: How the edge may be taken.
        component: Component the edge is restricted to, or None for all.
        priority: Explicit ordering; the lowest priority wins.
    """

    id: UUID
    from_status: str
    to_status: str
    entity_type: str
    transition_type: TransitionType
    component: Component | None = None
    priority: int = 0

    @property
    def requires_approval(self) -> bool:
        return self.transition_type == TransitionType.APPROVAL_REQUIRED


@dataclass(frozen=True)
class StatusConfigData:
    """Per-status configuration.

    Attributes:
        status_key: The status the configuration applies to.
        entity_type: Entity the status belongs to.
        status_label: Human label.
        allow_component_split: Whether components of one order may sit at
            different statuses while in this stage.
        display_order: Position on the board.
        estimated_hours: Expected stage duration.
    """

    status_key: str
    entity_type: str
    status_label: str
    allow_component_split: bool = True
    display_order: int = 0
    estimated_hours: float = 0.0


@dataclass(frozen=True)
class StatusDefinitionData:
    """A production step as configured for a component."""

    step_key: str
    component: Component
    step_name: str
    technical_report_required: bool = False
    quality_checklist_required: bool = False


@dataclass(frozen=True)
class ChecklistRequirement:
    """An inspection checklist attached to a step and component."""

    id: UUID
    step_key: str
    component: Component
    checklist_name: str
    is_mandatory: bool = True
    is_active: bool = True
    blocks_workflow_advance: bool = False


@dataclass(frozen=True)
class ChecklistResponseData:
    """A filled-in checklist for one workflow instance."""

    id: UUID
    workflow_instance_id: UUID
    checklist_id: UUID
    overall_status: ChecklistStatus
    step_key: str | None = None
    responses: dict[str, Any] = field(default_factory=dict)
    measurements: dict[str, Any] = field(default_factory=dict)
    non_conformities: list[Any] = field(default_factory=list)
    updated_at: datetime | None = None

    @property
    def is_approved(self) -> bool:
        return self.overall_status == ChecklistStatus.APPROVED


@dataclass(frozen=True)
class StatusHistoryEntry:
    """An immutable audit record of one real status change."""

    workflow_instance_id: UUID
    old_status: str
    new_status: str
    changed_by: str
    reason: str | None
    changed_at: datetime
    id: UUID | None = None


@dataclass
class TechnicalReportData:
    """A technical report row generated for a completed step."""

    workflow_instance_id: UUID
    order_id: UUID
    component: Component
    report_type: str
    report_number: str
    report_data: dict[str, Any]
    conformity_status: ConformityStatus
    generated_automatically: bool = True
    org_id: str | None = None
    id: UUID | None = None


@dataclass(frozen=True)
class AllowedTransition:
    """An outgoing edge together with the configuration of its target status."""

    edge: TransitionEdge
    target_config: StatusConfigData | None = None
