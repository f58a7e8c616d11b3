"""Core type definitions for rework-workflow.

This module defines the enums shared by the persistence layer and the workflow
engine: engine components, transition kinds, checklist and conformity states, and
the outcomes reported by the engine operations.
"""

from __future__ import annotations

import sys
from enum import Enum

# StrEnum backport for Python < 3.11
if sys.version_info >= (3, 11):
    from enum import StrEnum
else:

    class StrEnum(str, Enum):
        """String enumeration compatibility for Python < 3.11."""

        def __str__(self) -> str:
            return str(self.value)


__all__ = [
    "AdvanceOutcome",
    "ChecklistStatus",
    "Component",
    "ConformityStatus",
    "ReportOutcome",
    "SyncOutcome",
    "TransitionType",
]


class Component(StrEnum):
    """Engine part types reworked by the shop.

    Attributes:
        BLOCK: Engine block.
        CRANKSHAFT: Crankshaft.
        ROD: Connecting rod.
        CAMSHAFT: Camshaft.
        HEAD: Cylinder head.
    """

    BLOCK = "block"
    CRANKSHAFT = "crankshaft"
    ROD = "rod"
    CAMSHAFT = "camshaft"
    HEAD = "head"


class TransitionType(StrEnum):
    """How a configured status edge may be taken.

    Attributes:
        AUTOMATIC: Taken as soon as the current step is completed and gated.
        MANUAL: Taken when an operator completes the step.
        APPROVAL_REQUIRED: Needs an explicit approval before it is taken.
        CONDITIONAL: Taken like a manual edge; conditions are evaluated by the caller.
    """

    AUTOMATIC = "automatic"
    MANUAL = "manual"
    APPROVAL_REQUIRED = "approval_required"
    CONDITIONAL = "conditional"


class ChecklistStatus(StrEnum):
    """Overall status of a checklist response."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    APPROVED = "approved"
    REJECTED = "rejected"


class ConformityStatus(StrEnum):
    """Conformity verdict recorded on a technical report."""

    CONFORMING = "conforming"
    NON_CONFORMING = "non_conforming"
    PENDING = "pending"


class AdvanceOutcome(StrEnum):
    """Result of an auto-advance attempt.

    Attributes:
        ADVANCED: The instance moved to the next status.
        BLOCKED: A mandatory blocking checklist is unmet.
        NO_NEXT_STATUS: No active outgoing edge is configured.
        REQUIRES_APPROVAL: The next edge needs a manual approval.
        STALE: The instance has no finished stage to advance from, or it left the
            stage the caller finished. Nothing changed.
    """

    ADVANCED = "advanced"
    BLOCKED = "blocked"
    NO_NEXT_STATUS = "no_next_status"
    REQUIRES_APPROVAL = "requires_approval"
    STALE = "stale"


class SyncOutcome(StrEnum):
    """Result of a multi-component synchronization attempt.

    Attributes:
        SYNCED: Every sibling was moved to the next status.
        NOT_READY: Some sibling is unfinished, or there is nowhere to go.
        SPLIT_ALLOWED: The components may stay at different statuses.
    """

    SYNCED = "synced"
    NOT_READY = "not_ready"
    SPLIT_ALLOWED = "split_allowed"


class ReportOutcome(StrEnum):
    """Result of a technical report trigger."""

    GENERATED = "generated"
    SKIPPED = "skipped"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"
