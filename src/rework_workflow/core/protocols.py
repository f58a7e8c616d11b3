"""Core protocols for rework-workflow.

This module defines the Protocol-based interfaces the engine depends on: the
narrow data store used by every engine component, and the optional event bus.
Using Protocol keeps the engine storage-agnostic; the SQLAlchemy implementation
lives in :mod:`rework_workflow.db.store`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from rework_workflow.core.models import (
        ChecklistRequirement,
        ChecklistResponseData,
        StatusConfigData,
        StatusDefinitionData,
        StatusHistoryEntry,
        TechnicalReportData,
        TransitionEdge,
        WorkflowInstanceData,
    )
    from rework_workflow.core.types import Component


__all__ = ["EventBus", "WorkflowStore"]


@runtime_checkable
class EventBus(Protocol):
    """Protocol for the event bus the engine publishes domain events on."""

    async def emit(self, event_type: str, **kwargs: Any) -> None:
        """Publish an event.

        Args:
            event_type: Dotted event name, e.g. ``"workflow.status_changed"``.
            **kwargs: Event payload; the engine passes the event object as ``event``.
        """
        ...


@runtime_checkable
class WorkflowStore(Protocol):
    """Narrow repository interface used by the workflow engine.

    Reads return plain records from :mod:`rework_workflow.core.models`. Writes are
    staged in the store's current transaction until :meth:`commit`; callers
    :meth:`rollback` on failure. Every method raises
    :class:`~rework_workflow.exceptions.PersistenceError` when the backend fails.
    """

    async def get_instance(self, instance_id: UUID) -> WorkflowInstanceData | None:
        """Load a workflow instance with its latest persisted state."""
        ...

    async def find_siblings(self, order_id: UUID, status: str | None = None) -> Sequence[WorkflowInstanceData]:
        """List the workflow instances of an order, optionally only those at ``status``."""
        ...

    async def set_status(
        self,
        instance_id: UUID,
        expected_status: str,
        new_status: str,
        *,
        now: datetime,
    ) -> bool:
        """Move an instance to ``new_status`` if it is still at ``expected_status``.

        The same write clears ``started_at`` and ``completed_at``.

        Returns:
            True if the row was updated, False if the compare-and-swap lost.
        """
        ...

    async def update_instance(self, instance_id: UUID, values: dict[str, Any], *, now: datetime) -> bool:
        """Write ``values`` on an instance and stamp ``updated_at``.

        Returns:
            True if the instance exists.
        """
        ...

    async def find_edge(
        self,
        from_status: str,
        entity_type: str,
        component: Component | None = None,
    ) -> TransitionEdge | None:
        """Return the first active edge leaving ``from_status``."""
        ...

    async def find_edges(
        self,
        entity_type: str,
        from_status: str | None = None,
        component: Component | None = None,
    ) -> Sequence[TransitionEdge]:
        """List active edges ordered by priority, creation time and id."""
        ...

    async def get_status_config(self, status_key: str, entity_type: str) -> StatusConfigData | None:
        """Return the configuration of a status."""
        ...

    async def get_status_definition(self, step_key: str, component: Component) -> StatusDefinitionData | None:
        """Return the step definition for a status and component."""
        ...

    async def find_checklist_requirements(self, step_key: str, component: Component) -> Sequence[ChecklistRequirement]:
        """List the active, mandatory checklists of a step and component."""
        ...

    async def find_checklist_response(self, instance_id: UUID, checklist_id: UUID) -> ChecklistResponseData | None:
        """Return the response of an instance to a checklist."""
        ...

    async def find_latest_checklist_response(
        self,
        instance_id: UUID,
        step_key: str | None = None,
    ) -> ChecklistResponseData | None:
        """Return the most recently updated response of an instance."""
        ...

    async def insert_history(self, entry: StatusHistoryEntry) -> StatusHistoryEntry:
        """Append a status history entry."""
        ...

    async def list_history(self, instance_id: UUID) -> Sequence[StatusHistoryEntry]:
        """List the status history of an instance, newest first."""
        ...

    async def find_technical_report(self, instance_id: UUID, report_type: str) -> TechnicalReportData | None:
        """Return the report generated for an instance and step."""
        ...

    async def insert_technical_report(self, report: TechnicalReportData) -> TechnicalReportData | None:
        """Insert a technical report.

        Returns:
            The stored report, or None if one already exists for the same
            instance and step.
        """
        ...

    async def get_order_tenant(self, order_id: UUID) -> tuple[bool, str | None]:
        """Resolve the tenant of an order.

        Returns:
            ``(exists, org_id)``.
        """
        ...

    async def commit(self) -> None:
        """Commit the current transaction."""
        ...

    async def rollback(self) -> None:
        """Roll back the current transaction."""
        ...
