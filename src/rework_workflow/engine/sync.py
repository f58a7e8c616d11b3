"""Multi-component synchronizer.

Moves every component of an order together when the status configuration does
not allow components of one order to sit at different statuses.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from rework_workflow.config import EngineConfig
from rework_workflow.core.events import ComponentsSynchronized, emit_event
from rework_workflow.core.results import SyncResult
from rework_workflow.core.types import SyncOutcome
from rework_workflow.exceptions import PersistenceError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from rework_workflow.core.models import StatusHistoryEntry, WorkflowInstanceData
    from rework_workflow.core.protocols import EventBus, WorkflowStore
    from rework_workflow.engine.gate import ChecklistGate
    from rework_workflow.engine.locks import InstanceLocks
    from rework_workflow.engine.rules import TransitionRules
    from rework_workflow.engine.status_store import WorkflowStatusStore

__all__ = ["ComponentSynchronizer"]

logger = logging.getLogger(__name__)


class ComponentSynchronizer:
    """Bulk-advances the components of an order that must stay together.

    A bulk move happens only when every sibling at the pivot status is completed
    and neither the pivot status nor the next status allows component split.
    All moves of one bulk advance are committed in a single transaction.

    Attributes:
        store: The workflow store.
        status_store: Instance layer used to stage each status change.
        rules: Transition rules resolving the next status.
        gate: Checklist gate every sibling must pass.
        locks: Lock registry serializing bulk moves per order.
        config: Engine configuration.
        event_bus: Optional event bus for emitting workflow events.
    """

    def __init__(
        self,
        store: WorkflowStore,
        status_store: WorkflowStatusStore,
        rules: TransitionRules,
        gate: ChecklistGate,
        locks: InstanceLocks,
        config: EngineConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        self.store = store
        self.status_store = status_store
        self.rules = rules
        self.gate = gate
        self.locks = locks
        self.config = config or EngineConfig()
        self.event_bus = event_bus

    async def sync_order(
        self,
        order_id: UUID,
        pivot_status: str,
        changed_by: str | None = None,
    ) -> SyncResult:
        """Advance all components of an order at ``pivot_status`` together, if required.

        Args:
            order_id: The service order.
            pivot_status: The status whose siblings are checked.
            changed_by: Actor recorded in the history.

        Returns:
            ``SYNCED`` with the moved instances, ``NOT_READY`` when a sibling is
            unfinished, gated, or has nowhere to go, or ``SPLIT_ALLOWED`` when the
            components may advance individually.

        Raises:
            PersistenceError: If the bulk move fails; no sibling is moved.
        """
        async with self.locks.order(order_id):
            siblings = await self.store.find_siblings(order_id, pivot_status)
            if not siblings or any(not sibling.is_completed for sibling in siblings):
                return SyncResult(SyncOutcome.NOT_READY, order_id, pivot_status)

            if await self._split_allowed(pivot_status):
                return SyncResult(SyncOutcome.SPLIT_ALLOWED, order_id, pivot_status)

            targets = set()
            for sibling in siblings:
                edge = await self.rules.next_status(pivot_status, component=sibling.component)
                if edge is None or edge.requires_approval:
                    return SyncResult(SyncOutcome.NOT_READY, order_id, pivot_status)
                targets.add(edge.to_status)

            if len(targets) > 1:
                return SyncResult(SyncOutcome.SPLIT_ALLOWED, order_id, pivot_status)
            to_status = targets.pop()

            if await self._split_allowed(to_status):
                return SyncResult(SyncOutcome.SPLIT_ALLOWED, order_id, pivot_status)

            for sibling in siblings:
                verdict = await self.gate.evaluate(pivot_status, sibling.component, sibling.id)
                if not verdict.allowed:
                    return SyncResult(SyncOutcome.NOT_READY, order_id, pivot_status)

            return await self._move_all(
                order_id,
                siblings,
                pivot_status,
                to_status,
                reason=f"Synchronized advance of all components from '{pivot_status}' to '{to_status}'",
                changed_by=changed_by,
            )

    async def advance_order(self, order_id: UUID, changed_by: str | None = None) -> SyncResult:
        """Advance the components of an order after its budget has been approved.

        The pivot is the status of ``instances[0]``, the first instance in component
        order (``block``, ``camshaft``, ``crankshaft``, ``head``, ``rod``; ties by
        creation time). Only the instances at the pivot follow the first active edge
        leaving it. Components at any other status stay where they are, so a whole
        order only moves together once its components share a status.

        Args:
            order_id: The service order.
            changed_by: Actor recorded in the history.

        Returns:
            ``SYNCED`` with the moved instances, or ``NOT_READY`` when the order has
            no components or the pivot status has no next status.

        Raises:
            PersistenceError: If the bulk move fails; no component is moved.
        """
        async with self.locks.order(order_id):
            instances = await self.store.find_siblings(order_id)
            if not instances:
                return SyncResult(SyncOutcome.NOT_READY, order_id)

            pivot_status = instances[0].status
            edge = await self.rules.next_status(pivot_status)
            if edge is None:
                return SyncResult(SyncOutcome.NOT_READY, order_id, pivot_status)

            at_pivot = [instance for instance in instances if instance.status == pivot_status]
            return await self._move_all(
                order_id,
                at_pivot,
                pivot_status,
                edge.to_status,
                reason=f"Order advanced after budget approval from '{pivot_status}' to '{edge.to_status}'",
                changed_by=changed_by,
            )

    async def _split_allowed(self, status_key: str) -> bool:
        config = await self.store.get_status_config(status_key, self.config.entity_type)
        # Unconfigured statuses never force a bulk move.
        return config is None or config.allow_component_split

    async def _move_all(
        self,
        order_id: UUID,
        instances: Sequence[WorkflowInstanceData],
        from_status: str,
        to_status: str,
        *,
        reason: str,
        changed_by: str | None,
    ) -> SyncResult:
        now = datetime.now(timezone.utc)
        entries: list[StatusHistoryEntry] = []
        try:
            for instance in instances:
                entries.append(
                    await self.status_store.stage_transition(
                        instance,
                        to_status,
                        reason=reason,
                        changed_by=changed_by,
                        now=now,
                    )
                )
            await self.store.commit()
        except PersistenceError:
            await self.status_store.rollback_quietly()
            logger.exception("Bulk advance of order %s from '%s' to '%s' rolled back", order_id, from_status, to_status)
            raise

        for entry in entries:
            await self.status_store.publish_change(order_id, entry)

        instance_ids = tuple(instance.id for instance in instances)
        logger.info("Order %s: %d components advanced from '%s' to '%s'", order_id, len(instance_ids), from_status, to_status)
        await emit_event(
            self.event_bus,
            ComponentsSynchronized(
                order_id=order_id,
                timestamp=now,
                from_status=from_status,
                to_status=to_status,
                instance_ids=list(instance_ids),
            ),
        )
        return SyncResult(SyncOutcome.SYNCED, order_id, from_status, to_status, instance_ids)
