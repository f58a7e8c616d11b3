"""Core domain module for rework-workflow.

This module exports the fundamental building blocks of the production workflow:
types, storage-agnostic records, typed results, events and protocols.
"""

from __future__ import annotations

from rework_workflow.core.events import (
    AdvanceBlocked,
    ApprovalRequested,
    ComponentsSynchronized,
    StatusChanged,
    StepCompleted,
    StepStarted,
    TechnicalReportGenerated,
    WorkflowEvent,
    emit_event,
)
from rework_workflow.core.models import (
    AllowedTransition,
    ChecklistRequirement,
    ChecklistResponseData,
    StatusConfigData,
    StatusDefinitionData,
    StatusHistoryEntry,
    TechnicalReportData,
    TransitionEdge,
    WorkflowInstanceData,
)
from rework_workflow.core.protocols import EventBus, WorkflowStore
from rework_workflow.core.results import (
    AdvanceResult,
    GateResult,
    HistorySummary,
    ReportResult,
    StatusChange,
    SyncResult,
)
from rework_workflow.core.types import (
    AdvanceOutcome,
    ChecklistStatus,
    Component,
    ConformityStatus,
    ReportOutcome,
    SyncOutcome,
    TransitionType,
)

__all__ = [
    "AdvanceBlocked",
    "AdvanceOutcome",
    "AdvanceResult",
    "AllowedTransition",
    "ApprovalRequested",
    "ChecklistRequirement",
    "ChecklistResponseData",
    "ChecklistStatus",
    "Component",
    "ComponentsSynchronized",
    "ConformityStatus",
    "EventBus",
    "GateResult",
    "HistorySummary",
    "ReportOutcome",
    "ReportResult",
    "StatusChange",
    "StatusChanged",
    "StatusConfigData",
    "StatusDefinitionData",
    "StatusHistoryEntry",
    "StepCompleted",
    "StepStarted",
    "SyncOutcome",
    "SyncResult",
    "TechnicalReportData",
    "TechnicalReportGenerated",
    "TransitionEdge",
    "TransitionType",
    "WorkflowEvent",
    "WorkflowInstanceData",
    "WorkflowStore",
    "emit_event",
]
