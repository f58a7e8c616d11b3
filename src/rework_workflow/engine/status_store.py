"""Instance layer of the production workflow.

:class:`WorkflowStatusStore` mutates a single workflow instance: its status, its
stage timestamps and its free-form details. Every real status change writes one
history entry in the same transaction as the status itself.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from rework_workflow.config import EngineConfig
from rework_workflow.core.events import StatusChanged, StepCompleted, StepStarted, emit_event
from rework_workflow.core.models import StatusHistoryEntry
from rework_workflow.core.results import HistorySummary, StatusChange
from rework_workflow.exceptions import ConcurrentTransitionError, PersistenceError, WorkflowInstanceNotFoundError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from rework_workflow.core.models import WorkflowInstanceData
    from rework_workflow.core.protocols import EventBus, WorkflowStore

__all__ = ["WorkflowStatusStore", "summarize_history"]

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def summarize_history(history: Sequence[StatusHistoryEntry]) -> HistorySummary | None:
    """Aggregate a status history.

    Args:
        history: History entries in any order.

    Returns:
        The summary, or None for an empty history.
    """
    if not history:
        return None

    entries = sorted(history, key=lambda e: e.changed_at)
    first, last = entries[0], entries[-1]
    stage_durations = [
        (entry.new_status, following.changed_at - entry.changed_at)
        for entry, following in zip(entries, entries[1:])
    ]
    return HistorySummary(
        total_transitions=len(entries),
        first_status=first.new_status,
        current_status=last.new_status,
        first_change_at=first.changed_at,
        last_change_at=last.changed_at,
        total_duration=last.changed_at - first.changed_at,
        stage_durations=stage_durations,
    )


class WorkflowStatusStore:
    """Reads and mutates single workflow instances.

    Attributes:
        store: The workflow store.
        config: Engine configuration.
        event_bus: Optional event bus for emitting workflow events.
    """

    def __init__(
        self,
        store: WorkflowStore,
        config: EngineConfig | None = None,
        event_bus: EventBus | None = None,
    ) -> None:
        """Initialize the status store.

        Args:
            store: The workflow store.
            config: Engine configuration.
            event_bus: Optional event bus for events.
        """
        self.store = store
        self.config = config or EngineConfig()
        self.event_bus = event_bus

    async def get(self, instance_id: UUID) -> WorkflowInstanceData:
        """Load a workflow instance.

        Args:
            instance_id: The workflow instance ID.

        Returns:
            The instance.

        Raises:
            WorkflowInstanceNotFoundError: If the instance does not exist.
        """
        instance = await self.store.get_instance(instance_id)
        if instance is None:
            raise WorkflowInstanceNotFoundError(instance_id)
        return instance

    async def set_status(
        self,
        instance_id: UUID,
        new_status: str,
        reason: str | None = None,
        changed_by: str | None = None,
    ) -> StatusChange:
        """Move an instance to ``new_status``.

        Setting the current status only touches ``updated_at`` and writes no history.
        A real change clears the stage timestamps and appends one history entry,
        both committed together.

        Args:
            instance_id: The workflow instance ID.
            new_status: The status to move to.
            reason: Reason recorded in the history.
            changed_by: Actor recorded in the history; defaults to the system actor.

        Returns:
            The status change.

        Raises:
            WorkflowInstanceNotFoundError: If the instance does not exist.
            ConcurrentTransitionError: If another writer changed the status first.
            PersistenceError: If the store fails.
        """
        instance = await self.get(instance_id)
        now = _utcnow()

        if instance.status == new_status:
            try:
                await self.store.update_instance(instance_id, {}, now=now)
                await self.store.commit()
            except PersistenceError:
                await self.rollback_quietly()
                raise
            return StatusChange(instance_id, instance.status, new_status, changed=False)

        try:
            entry = await self.stage_transition(instance, new_status, reason=reason, changed_by=changed_by, now=now)
            await self.store.commit()
        except PersistenceError:
            await self.rollback_quietly()
            raise

        await self.publish_change(instance.order_id, entry)
        return StatusChange(instance_id, instance.status, new_status, changed=True, changed_at=now)

    async def stage_transition(
        self,
        instance: WorkflowInstanceData,
        new_status: str,
        *,
        reason: str | None = None,
        changed_by: str | None = None,
        now: datetime | None = None,
    ) -> StatusHistoryEntry:
        """Write a status change and its history entry without committing.

        The status update is a compare-and-swap against ``instance.status``.

        Args:
            instance: The instance as read by the caller.
            new_status: The status to move to.
            reason: Reason recorded in the history.
            changed_by: Actor recorded in the history.
            now: Timestamp of the change.

        Returns:
            The staged history entry.

        Raises:
            ConcurrentTransitionError: If the instance is no longer at ``instance.status``.
        """
        now = now or _utcnow()
        swapped = await self.store.set_status(instance.id, instance.status, new_status, now=now)
        if not swapped:
            raise ConcurrentTransitionError(instance.id, instance.status)

        return await self.store.insert_history(
            StatusHistoryEntry(
                workflow_instance_id=instance.id,
                old_status=instance.status,
                new_status=new_status,
                changed_by=changed_by or self.config.system_actor,
                reason=reason,
                changed_at=now,
            )
        )

    async def publish_change(self, order_id: UUID, entry: StatusHistoryEntry) -> None:
        """Emit the event for a committed status change."""
        logger.info(
            "Workflow instance %s moved from '%s' to '%s' by %s",
            entry.workflow_instance_id,
            entry.old_status,
            entry.new_status,
            entry.changed_by,
        )
        await emit_event(
            self.event_bus,
            StatusChanged(
                order_id=order_id,
                timestamp=entry.changed_at,
                instance_id=entry.workflow_instance_id,
                old_status=entry.old_status,
                new_status=entry.new_status,
                changed_by=entry.changed_by,
                reason=entry.reason,
            ),
        )

    async def start(self, instance_id: UUID) -> WorkflowInstanceData:
        """Mark work on the current stage as started.

        Args:
            instance_id: The workflow instance ID.

        Returns:
            The updated instance.
        """
        now = _utcnow()
        instance = await self._write(instance_id, {"started_at": now, "completed_at": None}, now)
        await emit_event(
            self.event_bus,
            StepStarted(order_id=instance.order_id, timestamp=now, instance_id=instance_id, status=instance.status),
        )
        return instance

    async def complete(self, instance_id: UUID) -> WorkflowInstanceData:
        """Mark work on the current stage as finished; the status is unchanged.

        A stage completed without being started is stamped as started at the same
        time, so ``completed_at`` is never set without ``started_at``.

        Args:
            instance_id: The workflow instance ID.

        Returns:
            The updated instance.
        """
        instance = await self.get(instance_id)
        now = _utcnow()
        values: dict[str, Any] = {"completed_at": now}
        if instance.started_at is None:
            values["started_at"] = now

        instance = await self._write(instance_id, values, now)
        await emit_event(
            self.event_bus,
            StepCompleted(order_id=instance.order_id, timestamp=now, instance_id=instance_id, status=instance.status),
        )
        return instance

    async def update_details(
        self,
        instance_id: UUID,
        *,
        assigned_to: str | None = _UNSET,
        notes: str | None = _UNSET,
    ) -> WorkflowInstanceData:
        """Edit the assignee and notes of an instance.

        Only the fields that are passed are written.

        Args:
            instance_id: The workflow instance ID.
            assigned_to: New assignee, or None to clear it.
            notes: New notes, or None to clear them.

        Returns:
            The updated instance.
        """
        values: dict[str, Any] = {}
        if assigned_to is not _UNSET:
            values["assigned_to"] = assigned_to
        if notes is not _UNSET:
            values["notes"] = notes
        return await self._write(instance_id, values, _utcnow())

    async def get_history(self, instance_id: UUID) -> list[StatusHistoryEntry]:
        """List the status history of an instance, newest first."""
        return list(await self.store.list_history(instance_id))

    async def history_summary(self, instance_id: UUID) -> HistorySummary | None:
        """Summarize the status history of an instance."""
        return summarize_history(await self.store.list_history(instance_id))

    async def rollback_quietly(self) -> None:
        """Roll back the current transaction, logging if the rollback itself fails."""
        try:
            await self.store.rollback()
        except PersistenceError:
            logger.exception("Rollback failed; workflow data may need manual reconciliation")

    async def _write(self, instance_id: UUID, values: dict[str, Any], now: datetime) -> WorkflowInstanceData:
        try:
            found = await self.store.update_instance(instance_id, values, now=now)
            if not found:
                raise WorkflowInstanceNotFoundError(instance_id)
            await self.store.commit()
        except (PersistenceError, WorkflowInstanceNotFoundError):
            await self.rollback_quietly()
            raise
        return await self.get(instance_id)
