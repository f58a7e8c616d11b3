"""Auto-advance controller for production workflow instances."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from rework_workflow.config import EngineConfig
from rework_workflow.core.events import AdvanceBlocked, ApprovalRequested, emit_event
from rework_workflow.core.results import AdvanceResult
from rework_workflow.core.types import AdvanceOutcome, TransitionType
from rework_workflow.exceptions import InvalidTransitionError, PersistenceError

if TYPE_CHECKING:
    from uuid import UUID

    from rework_workflow.core.models import TransitionEdge, WorkflowInstanceData
    from rework_workflow.core.protocols import EventBus
    from rework_workflow.engine.gate import ChecklistGate
    from rework_workflow.engine.locks import InstanceLocks
    from rework_workflow.engine.reports import TechnicalReportTrigger
    from rework_workflow.engine.rules import TransitionRules
    from rework_workflow.engine.status_store import WorkflowStatusStore
    from rework_workflow.engine.sync import ComponentSynchronizer

__all__ = ["AutoAdvanceController"]

logger = logging.getLogger(__name__)


class AutoAdvanceController:
    """Advances a workflow instance to its next status once its step is done.

    An advance runs in this order: checklist gate, next-edge resolution, approval
    check, status change, technical report, sibling synchronization. The gate,
    the terminal-status case and approval-gated edges end the attempt without
    mutating anything. Only a completed current stage is advanced; a repeated
    call that finds the instance at a fresh stage returns ``STALE``. Calls for
    the same instance are serialized.

    Attributes:
        status_store: Instance layer applying the status change.
        gate: Checklist gate.
        rules: Transition rules.
        reports: Technical report trigger.
        synchronizer: Multi-component synchronizer.
        locks: Lock registry serializing advances per instance.
        config: Engine configuration.
        event_bus: Optional event bus for emitting workflow events.
    """

    def __init__(
        self,
        status_store: WorkflowStatusStore,
        gate: ChecklistGate,
        rules: TransitionRules,
        reports: TechnicalReportTrigger,
        synchronizer: ComponentSynchronizer,
        locks: InstanceLocks,
        config: EngineConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.status_store = status_store
        self.gate = gate
        self.rules = rules
        self.reports = reports
        self.synchronizer = synchronizer
        self.locks = locks
        self.config = config or EngineConfig()
        self.event_bus = event_bus

    async def complete_step(
        self,
        instance_id: UUID,
        changed_by: str | None = None,
        *,
        expected_status: str | None = None,
        auto_advance: bool = True,
    ) -> AdvanceResult | None:
        """Mark the open stage as finished and optionally advance the instance.

        The stage being finished is ``expected_status`` when given, otherwise the
        current stage, which must have been started. A repeated or late call finds
        the instance elsewhere and returns ``STALE`` without touching it.

        Args:
            instance_id: The workflow instance ID.
            changed_by: Actor recorded in the history; defaults to the system actor.
            expected_status: The status the caller finished.
            auto_advance: Advance along the next edge after completing.

        Returns:
            The advance result; ``STALE`` when there is no such open stage; None when
            the stage was completed and ``auto_advance`` is False.

        Raises:
            WorkflowInstanceNotFoundError: If the instance does not exist.
            ConcurrentTransitionError: If another writer moved the instance first.
            PersistenceError: If the store fails.
        """
        async with self.locks.instance(instance_id):
            instance = await self.status_store.get(instance_id)
            if expected_status is None:
                is_open = instance.is_started
            else:
                is_open = instance.status == expected_status
            if not is_open:
                return self._stale(instance, expected_status)

            instance = await self.status_store.complete(instance_id)
            if not auto_advance:
                return None
            return await self._advance_completed(instance, changed_by)

    async def complete_and_advance(
        self,
        instance_id: UUID,
        changed_by: str | None = None,
        *,
        expected_status: str | None = None,
    ) -> AdvanceResult:
        """Advance an instance with a completed stage along its next edge.

        Args:
            instance_id: The workflow instance ID.
            changed_by: Actor recorded in the history; defaults to the system actor.
            expected_status: The status the caller finished; ``STALE`` if the
                instance is no longer there.

        Returns:
            ``ADVANCED`` with the report and sync results, or ``BLOCKED``,
            ``NO_NEXT_STATUS``, ``REQUIRES_APPROVAL`` or ``STALE`` when nothing
            changed.

        Raises:
            WorkflowInstanceNotFoundError: If the instance does not exist.
            ConcurrentTransitionError: If another writer moved the instance first.
            PersistenceError: If the store fails.
        """
        async with self.locks.instance(instance_id):
            instance = await self.status_store.get(instance_id)
            moved = expected_status is not None and instance.status != expected_status
            if moved or not instance.is_completed:
                return self._stale(instance, expected_status)
            return await self._advance_completed(instance, changed_by)

    async def _advance_completed(self, instance: WorkflowInstanceData, changed_by: str | None) -> AdvanceResult:
        blocked = await self._check_gate(instance)
        if blocked is not None:
            return blocked

        edge = await self.rules.next_status(instance.status, component=instance.component)
        if edge is None:
            logger.debug("Workflow instance %s has no status after '%s'", instance.id, instance.status)
            return AdvanceResult(AdvanceOutcome.NO_NEXT_STATUS, instance.id, instance.status)

        if edge.requires_approval:
            logger.info(
                "Workflow instance %s needs approval to move from '%s' to '%s'",
                instance.id,
                instance.status,
                edge.to_status,
            )
            return await self._emit_approval_requested(instance, edge)

        if edge.transition_type == TransitionType.AUTOMATIC:
            reason = f"Automatic advance after completing '{instance.status}'"
        else:
            reason = f"Manual advance after completing '{instance.status}'"
        return await self._advance(instance, edge, reason=reason, changed_by=changed_by)

    @staticmethod
    def _stale(instance: WorkflowInstanceData, expected_status: str | None) -> AdvanceResult:
        logger.info(
            "Workflow instance %s at '%s' has no finished stage to advance (expected '%s')",
            instance.id,
            instance.status,
            expected_status or instance.status,
        )
        return AdvanceResult(AdvanceOutcome.STALE, instance.id, instance.status)

    async def approve_transition(
        self,
        instance_id: UUID,
        approved_by: str,
        reason: str | None = None,
    ) -> AdvanceResult:
        """Apply an approval-gated transition on behalf of an approver.

        The checklist gate still applies.

        Args:
            instance_id: The workflow instance ID.
            approved_by: The approver, recorded as the history actor.
            reason: Optional approval note appended to the history reason.

        Returns:
            ``ADVANCED`` with the report and sync results, or ``BLOCKED``.

        Raises:
            WorkflowInstanceNotFoundError: If the instance does not exist.
            InvalidTransitionError: If the next edge does not require approval.
            ConcurrentTransitionError: If another writer moved the instance first.
            PersistenceError: If the store fails.
        """
        async with self.locks.instance(instance_id):
            instance = await self.status_store.get(instance_id)

            blocked = await self._check_gate(instance)
            if blocked is not None:
                return blocked

            edge = await self.rules.next_status(instance.status, component=instance.component)
            if edge is None:
                raise InvalidTransitionError(instance.status, reason="no status follows it")
            if not edge.requires_approval:
                raise InvalidTransitionError(instance.status, edge.to_status, reason="transition does not require approval")

            history_reason = f"Approved by {approved_by}"
            if reason:
                history_reason = f"{history_reason}: {reason}"
            return await self._advance(instance, edge, reason=history_reason, changed_by=approved_by)

    async def _check_gate(self, instance: WorkflowInstanceData) -> AdvanceResult | None:
        verdict = await self.gate.evaluate(instance.status, instance.component, instance.id)
        if verdict.allowed:
            return None

        logger.info(
            "Workflow instance %s blocked at '%s' by checklists: %s",
            instance.id,
            instance.status,
            ", ".join(verdict.reasons),
        )
        await emit_event(
            self.event_bus,
            AdvanceBlocked(
                order_id=instance.order_id,
                timestamp=_now(),
                instance_id=instance.id,
                status=instance.status,
                reasons=list(verdict.reasons),
            ),
        )
        return AdvanceResult(AdvanceOutcome.BLOCKED, instance.id, instance.status, reasons=verdict.reasons)

    async def _emit_approval_requested(self, instance: WorkflowInstanceData, edge: TransitionEdge) -> AdvanceResult:
        await emit_event(
            self.event_bus,
            ApprovalRequested(
                order_id=instance.order_id,
                timestamp=_now(),
                instance_id=instance.id,
                from_status=instance.status,
                to_status=edge.to_status,
            ),
        )
        return AdvanceResult(
            AdvanceOutcome.REQUIRES_APPROVAL,
            instance.id,
            instance.status,
            to_status=edge.to_status,
            edge=edge,
        )

    async def _advance(
        self,
        instance: WorkflowInstanceData,
        edge: TransitionEdge,
        *,
        reason: str,
        changed_by: str | None,
    ) -> AdvanceResult:
        now = _now()
        try:
            entry = await self.status_store.stage_transition(
                instance,
                edge.to_status,
                reason=reason,
                changed_by=changed_by,
                now=now,
            )
            await self.status_store.store.commit()
        except PersistenceError:
            await self.status_store.rollback_quietly()
            raise
        await self.status_store.publish_change(instance.order_id, entry)

        report = await self.reports.maybe_generate(instance.id, instance.status, instance.component, instance.order_id)

        try:
            sync = await self.synchronizer.sync_order(instance.order_id, instance.status, changed_by=changed_by)
        except PersistenceError:
            logger.error(
                "Workflow instance %s advanced to '%s' but its siblings at '%s' could not be synchronized; "
                "order %s needs manual reconciliation",
                instance.id,
                edge.to_status,
                instance.status,
                instance.order_id,
            )
            raise

        return AdvanceResult(
            AdvanceOutcome.ADVANCED,
            instance.id,
            instance.status,
            to_status=edge.to_status,
            edge=edge,
            report=report,
            sync=sync,
        )


def _now() -> datetime:
    return datetime.now(timezone.utc)
