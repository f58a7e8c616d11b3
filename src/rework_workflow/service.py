"""Facade over the production workflow engine.

:class:`ProductionWorkflowService` wires the engine components over one database
session and is what route handlers and background jobs call.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, TypeVar

from rework_workflow.config import EngineConfig
from rework_workflow.db.store import SQLAlchemyWorkflowStore
from rework_workflow.engine.controller import AutoAdvanceController
from rework_workflow.engine.gate import ChecklistGate
from rework_workflow.engine.locks import InstanceLocks
from rework_workflow.engine.reports import TechnicalReportTrigger
from rework_workflow.engine.rules import TransitionRules
from rework_workflow.engine.status_store import _UNSET, WorkflowStatusStore
from rework_workflow.engine.sync import ComponentSynchronizer
from rework_workflow.exceptions import OperationTimeoutError

if TYPE_CHECKING:
    from collections.abc import Awaitable
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from rework_workflow.core.models import (
        AllowedTransition,
        StatusHistoryEntry,
        TransitionEdge,
        WorkflowInstanceData,
    )
    from rework_workflow.core.protocols import EventBus, WorkflowStore
    from rework_workflow.core.results import AdvanceResult, GateResult, HistorySummary, StatusChange, SyncResult
    from rework_workflow.core.types import Component

__all__ = ["ProductionWorkflowService"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProductionWorkflowService:
    """Entry point of the production workflow engine.

    Every public coroutine is bounded by ``config.operation_timeout``. A call that
    runs out of time is cancelled, its open transaction is rolled back, and
    ``OperationTimeoutError`` is raised.

    Example:
        >>> async with session_factory() as session:
        ...     service = ProductionWorkflowService(session)
        ...     await service.start_step(instance_id)
        ...     result = await service.complete_step(instance_id, changed_by="joao")
        ...     if result.advanced:
        ...         print(result.to_status)

    Attributes:
        store: The workflow store.
        config: Engine configuration.
        event_bus: Optional event bus for emitting workflow events.
        locks: Lock registry; share one across services to serialize writers.
        status_store: Instance layer.
        gate: Checklist gate.
        rules: Transition rules.
        reports: Technical report trigger.
        synchronizer: Multi-component synchronizer.
        controller: Auto-advance controller.
    """

    def __init__(
        self,
        session: AsyncSession | None = None,
        config: EngineConfig | None = None,
        event_bus: EventBus | None = None,
        locks: InstanceLocks | None = None,
        *,
        store: WorkflowStore | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            session: Database session the default store runs on.
            config: Engine configuration.
            event_bus: Optional event bus for events.
            locks: Lock registry shared with other services of the process.
            store: Store to use instead of one built on ``session``.

        Raises:
            ValueError: If neither ``session`` nor ``store`` is given.
        """
        if store is None:
            if session is None:
                msg = "ProductionWorkflowService needs a session or a store"
                raise ValueError(msg)
            store = SQLAlchemyWorkflowStore(session)

        self.store = store
        self.config = config or EngineConfig()
        self.event_bus = event_bus
        self.locks = locks or InstanceLocks()

        self.status_store = WorkflowStatusStore(store, self.config, event_bus)
        self.gate = ChecklistGate(store)
        self.rules = TransitionRules(store, self.config)
        self.reports = TechnicalReportTrigger(store, self.config, event_bus)
        self.synchronizer = ComponentSynchronizer(
            store,
            self.status_store,
            self.rules,
            self.gate,
            self.locks,
            self.config,
            event_bus,
        )
        self.controller = AutoAdvanceController(
            self.status_store,
            self.gate,
            self.rules,
            self.reports,
            self.synchronizer,
            self.locks,
            self.config,
            event_bus,
        )

    # =========================================================================
    # Instance
    # =========================================================================

    async def get_instance(self, instance_id: UUID) -> WorkflowInstanceData:
        """Load a workflow instance, raising ``WorkflowInstanceNotFoundError`` if missing."""
        return await self._run("get_instance", self.status_store.get(instance_id))

    async def start_step(self, instance_id: UUID) -> WorkflowInstanceData:
        """Mark work on the instance's current stage as started."""

        async def locked() -> WorkflowInstanceData:
            async with self.locks.instance(instance_id):
                return await self.status_store.start(instance_id)

        return await self._run("start_step", locked())

    async def complete_step(
        self,
        instance_id: UUID,
        *,
        auto_advance: bool = True,
        changed_by: str | None = None,
        expected_status: str | None = None,
    ) -> AdvanceResult | None:
        """Mark the open stage as finished and optionally advance the instance.

        See :meth:`AutoAdvanceController.complete_step`.

        Args:
            instance_id: The workflow instance ID.
            auto_advance: Advance along the next edge after completing.
            changed_by: Actor recorded in the history.
            expected_status: The status the caller finished. Without it the current
                stage must have been started.

        Returns:
            The advance result, ``STALE`` when there is no such open stage, or None
            when the stage was completed and ``auto_advance`` is False.
        """
        return await self._run(
            "complete_step",
            self.controller.complete_step(
                instance_id,
                changed_by,
                expected_status=expected_status,
                auto_advance=auto_advance,
            ),
        )

    async def complete_and_advance(
        self,
        instance_id: UUID,
        changed_by: str | None = None,
        *,
        expected_status: str | None = None,
    ) -> AdvanceResult:
        """Advance an instance with a completed stage if its checklists allow it.

        See :meth:`AutoAdvanceController.complete_and_advance`.
        """
        return await self._run(
            "complete_and_advance",
            self.controller.complete_and_advance(instance_id, changed_by, expected_status=expected_status),
        )

    async def approve_transition(
        self,
        instance_id: UUID,
        approved_by: str,
        reason: str | None = None,
    ) -> AdvanceResult:
        """Apply an approval-gated transition.

        See :meth:`AutoAdvanceController.approve_transition`.
        """
        return await self._run(
            "approve_transition",
            self.controller.approve_transition(instance_id, approved_by, reason),
        )

    async def set_status(
        self,
        instance_id: UUID,
        new_status: str,
        reason: str | None = None,
        changed_by: str | None = None,
    ) -> StatusChange:
        """Move an instance to ``new_status`` without consulting the transition rules.

        Serialized with the auto-advance of the same instance.
        """

        async def locked() -> StatusChange:
            async with self.locks.instance(instance_id):
                return await self.status_store.set_status(instance_id, new_status, reason, changed_by)

        return await self._run("set_status", locked())

    async def update_details(
        self,
        instance_id: UUID,
        *,
        assigned_to: str | None = _UNSET,
        notes: str | None = _UNSET,
    ) -> WorkflowInstanceData:
        """Edit the assignee and notes of an instance; omitted fields are kept."""
        return await self._run(
            "update_details",
            self.status_store.update_details(instance_id, assigned_to=assigned_to, notes=notes),
        )

    # =========================================================================
    # Rules and gate
    # =========================================================================

    async def evaluate_gate(self, instance_id: UUID) -> GateResult:
        """Evaluate the checklist gate of the instance's current stage."""

        async def evaluate() -> GateResult:
            instance = await self.status_store.get(instance_id)
            return await self.gate.evaluate(instance.status, instance.component, instance.id)

        return await self._run("evaluate_gate", evaluate())

    async def next_status(
        self,
        current_status: str,
        entity_type: str | None = None,
        component: Component | None = None,
    ) -> TransitionEdge | None:
        """Return the edge taken from ``current_status``, or None for a terminal status."""
        return await self._run("next_status", self.rules.next_status(current_status, entity_type, component))

    async def allowed_transitions(
        self,
        current_status: str,
        entity_type: str | None = None,
        component: Component | None = None,
    ) -> list[AllowedTransition]:
        """List the active edges leaving ``current_status`` with their target configuration."""
        return await self._run(
            "allowed_transitions",
            self.rules.allowed_transitions(current_status, entity_type, component),
        )

    async def find_ambiguous_transitions(
        self,
        entity_type: str | None = None,
    ) -> dict[tuple[str, Component | None], list[TransitionEdge]]:
        """Report statuses whose next edge is decided by the fallback ordering."""
        return await self._run("find_ambiguous_transitions", self.rules.find_ambiguous(entity_type))

    # =========================================================================
    # Orders
    # =========================================================================

    async def sync_order(self, order_id: UUID, pivot_status: str, changed_by: str | None = None) -> SyncResult:
        """Advance the components of an order at ``pivot_status`` together, if required."""
        return await self._run("sync_order", self.synchronizer.sync_order(order_id, pivot_status, changed_by))

    async def advance_order(self, order_id: UUID, changed_by: str | None = None) -> SyncResult:
        """Advance every component of an order after its budget has been approved."""
        return await self._run("advance_order", self.synchronizer.advance_order(order_id, changed_by))

    # =========================================================================
    # History
    # =========================================================================

    async def get_history(self, instance_id: UUID) -> list[StatusHistoryEntry]:
        """List the status history of an instance, newest first."""
        return await self._run("get_history", self.status_store.get_history(instance_id))

    async def history_summary(self, instance_id: UUID) -> HistorySummary | None:
        """Summarize the status history of an instance; None when it has none."""
        return await self._run("history_summary", self.status_store.history_summary(instance_id))

    async def _run(self, operation: str, coro: Awaitable[T]) -> T:
        timeout = self.config.operation_timeout
        if timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout)
        except asyncio.TimeoutError:
            logger.warning("Workflow operation %s timed out after %.1fs", operation, timeout)
            await self.status_store.rollback_quietly()
            raise OperationTimeoutError(operation, timeout) from None

