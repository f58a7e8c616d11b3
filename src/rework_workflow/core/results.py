"""Typed results returned by the workflow engine.

Expected control-flow branches (a blocked gate, a terminal status, a pending
approval) are reported through these values instead of exceptions. Presentation
of the results is left to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

from rework_workflow.core.types import AdvanceOutcome, ReportOutcome, SyncOutcome
from rework_workflow.exceptions import ApprovalRequiredError, GateBlockedError, NoNextStatusError, StaleStepError

if TYPE_CHECKING:
    from rework_workflow.core.models import TransitionEdge

__all__ = [
    "AdvanceResult",
    "GateResult",
    "HistorySummary",
    "ReportResult",
    "StatusChange",
    "SyncResult",
]


@dataclass(frozen=True)
class GateResult:
    """Verdict of the checklist gate.

    Attributes:
        allowed: True when no blocking checklist is unmet.
        reasons: Names of the unmet blocking checklists.
        informational: Names of mandatory checklists that do not block advancement.
    """

    allowed: bool
    reasons: tuple[str, ...] = ()
    informational: tuple[str, ...] = ()

    @classmethod
    def allow(cls, informational: tuple[str, ...] = ()) -> GateResult:
        return cls(allowed=True, informational=informational)

    @classmethod
    def block(cls, reasons: tuple[str, ...], informational: tuple[str, ...] = ()) -> GateResult:
        return cls(allowed=False, reasons=reasons, informational=informational)


@dataclass(frozen=True)
class StatusChange:
    """Outcome of a single ``set_status`` call.

    Attributes:
        instance_id: The workflow instance.
        old_status: Status before the call.
        new_status: Status after the call.
        changed: False for no-op updates, which write no history.
        changed_at: When the change was recorded; None for no-op updates.
    """

    instance_id: UUID
    old_status: str
    new_status: str
    changed: bool
    changed_at: datetime | None = None


@dataclass(frozen=True)
class ReportResult:
    """Outcome of the technical report trigger."""

    outcome: ReportOutcome
    report_id: UUID | None = None
    error: str | None = None

    @property
    def generated(self) -> bool:
        return self.outcome == ReportOutcome.GENERATED


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a multi-component synchronization.

    Attributes:
        outcome: What the synchronizer did.
        order_id: The service order.
        pivot_status: The status the siblings were checked at.
        to_status: Status the siblings were moved to, for ``SYNCED``.
        instance_ids: Instances that were moved, for ``SYNCED``.
    """

    outcome: SyncOutcome
    order_id: UUID
    pivot_status: str | None = None
    to_status: str | None = None
    instance_ids: tuple[UUID, ...] = ()

    @property
    def synced(self) -> bool:
        return self.outcome == SyncOutcome.SYNCED


@dataclass(frozen=True)
class AdvanceResult:
    """Outcome of ``complete_and_advance`` or ``approve_transition``.

    Attributes:
        outcome: Which branch the controller took.
        instance_id: The workflow instance.
        from_status: Status before the attempt.
        to_status: New status for ``ADVANCED``, or the status awaiting
            approval for ``REQUIRES_APPROVAL``.
        reasons: Unmet checklist names for ``BLOCKED``.
        edge: The edge that was resolved, if any.
        report: Result of the technical report trigger, for ``ADVANCED``.
        sync: Result of the sibling synchronization, for ``ADVANCED``.
    """

    outcome: AdvanceOutcome
    instance_id: UUID
    from_status: str
    to_status: str | None = None
    reasons: tuple[str, ...] = ()
    edge: TransitionEdge | None = None
    report: ReportResult | None = None
    sync: SyncResult | None = None

    @property
    def advanced(self) -> bool:
        return self.outcome == AdvanceOutcome.ADVANCED

    def raise_for_outcome(self) -> AdvanceResult:
        """Raise the exception matching a soft outcome.

        Returns:
            The result itself when it is ``ADVANCED``.

        Raises:
            GateBlockedError: For ``BLOCKED``.
            NoNextStatusError: For ``NO_NEXT_STATUS``.
            ApprovalRequiredError: For ``REQUIRES_APPROVAL``.
            StaleStepError: For ``STALE``.
        """
        if self.outcome == AdvanceOutcome.BLOCKED:
            raise GateBlockedError(self.instance_id, self.reasons)
        if self.outcome == AdvanceOutcome.NO_NEXT_STATUS:
            raise NoNextStatusError(self.from_status)
        if self.outcome == AdvanceOutcome.REQUIRES_APPROVAL:
            raise ApprovalRequiredError(self.from_status, self.to_status or "")
        if self.outcome == AdvanceOutcome.STALE:
            raise StaleStepError(self.instance_id, self.from_status)
        return self


@dataclass(frozen=True)
class HistorySummary:
    """Aggregate view over the status history of one instance.

    Attributes:
        total_transitions: Number of recorded status changes.
        first_status: Status entered by the oldest recorded change.
        current_status: Status entered by the newest recorded change.
        first_change_at: Timestamp of the oldest change.
        last_change_at: Timestamp of the newest change.
        total_duration: Time between the oldest and newest change.
        stage_durations: Time spent in each closed stage, oldest first.
    """

    total_transitions: int
    first_status: str
    current_status: str
    first_change_at: datetime
    last_change_at: datetime
    total_duration: timedelta
    stage_durations: list[tuple[str, timedelta]] = field(default_factory=list)
