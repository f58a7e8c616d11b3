"""Domain events for the production workflow.

The engine emits these events on an optional event bus instead of producing
user-facing notifications. Subscribers can use them for notifications, logging,
dashboards or integration with other systems.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, ClassVar
from uuid import UUID

if TYPE_CHECKING:
    from rework_workflow.core.protocols import EventBus

__all__ = [
    "AdvanceBlocked",
    "ApprovalRequested",
    "ComponentsSynchronized",
    "StatusChanged",
    "StepCompleted",
    "StepStarted",
    "TechnicalReportGenerated",
    "WorkflowEvent",
    "emit_event",
]

logger = logging.getLogger(__name__)


@dataclass
class WorkflowEvent:
    """Base class for all production workflow events.

    Attributes:
        order_id: The service order the event relates to.
        timestamp: When the event occurred.
    """

    event_type: ClassVar[str] = "workflow.event"

    order_id: UUID
    timestamp: datetime


@dataclass
class StatusChanged(WorkflowEvent):
    """Event emitted when a component moves to another status.

    Attributes:
        instance_id: The workflow instance that moved.
        old_status: Status before the change.
        new_status: Status after the change.
        changed_by: Actor recorded in the history.
        reason: Reason recorded in the history.

    Example:
        >>> event = StatusChanged(
        ...     order_id=uuid4(),
        ...     timestamp=datetime.now(timezone.utc),
        ...     instance_id=uuid4(),
        ...     old_status="entrada",
        ...     new_status="metrologia",
        ...     changed_by="system",
        ... )
    """

    event_type: ClassVar[str] = "workflow.status_changed"

    instance_id: UUID
    old_status: str
    new_status: str
    changed_by: str
    reason: str | None = None


@dataclass
class StepStarted(WorkflowEvent):
    """Event emitted when work on the current stage begins."""

    event_type: ClassVar[str] = "workflow.step_started"

    instance_id: UUID
    status: str


@dataclass
class StepCompleted(WorkflowEvent):
    """Event emitted when work on the current stage is finished."""

    event_type: ClassVar[str] = "workflow.step_completed"

    instance_id: UUID
    status: str


@dataclass
class AdvanceBlocked(WorkflowEvent):
    """Event emitted when the checklist gate refuses an advance.

    Attributes:
        instance_id: The workflow instance that could not advance.
        status: The status it remains at.
        reasons: Names of the unmet checklists.
    """

    event_type: ClassVar[str] = "workflow.advance_blocked"

    instance_id: UUID
    status: str
    reasons: list[str] = field(default_factory=list)


@dataclass
class ApprovalRequested(WorkflowEvent):
    """Event emitted when the next transition waits for a manual approval."""

    event_type: ClassVar[str] = "workflow.approval_requested"

    instance_id: UUID
    from_status: str
    to_status: str


@dataclass
class TechnicalReportGenerated(WorkflowEvent):
    """Event emitted when a technical report is created for a completed step."""

    event_type: ClassVar[str] = "workflow.technical_report_generated"

    instance_id: UUID
    report_id: UUID
    report_type: str
    conformity_status: str


@dataclass
class ComponentsSynchronized(WorkflowEvent):
    """Event emitted when all components of an order are moved together.

    Attributes:
        from_status: Status the components left.
        to_status: Status the components entered.
        instance_ids: Workflow instances that were moved.
    """

    event_type: ClassVar[str] = "workflow.components_synchronized"

    from_status: str
    to_status: str
    instance_ids: list[UUID] = field(default_factory=list)


async def emit_event(event_bus: EventBus | None, event: WorkflowEvent) -> None:
    """Emit ``event`` on ``event_bus`` under its event type, if a bus is configured.

    Events describe changes that are already committed, so delivery is best-effort:
    a failing subscriber is logged and never reaches the caller.

    Args:
        event_bus: The event bus, or None.
        event: The event to emit.
    """
    if event_bus is None:
        return
    try:
        await event_bus.emit(event.event_type, event=event)
    except Exception:
        logger.exception("Delivery of %s for order %s failed", event.event_type, event.order_id)
