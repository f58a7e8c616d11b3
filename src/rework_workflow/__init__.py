"""Rework Workflow - Production workflow engine for engine-rework shops.

This package moves the components of a service order (block, crankshaft, rod,
camshaft, head) through configured production stages.

Key Features:
    - Configurable status graph with automatic, manual and approval-gated edges
    - Mandatory inspection checklists gating advancement
    - Automatic technical report generation for completed steps
    - Synchronized advancement of components that must stay together
    - Append-only status history with compare-and-swap status updates
    - Litestar plugin providing the service through dependency injection

Example:
    >>> from rework_workflow import ProductionWorkflowService
    >>>
    >>> service = ProductionWorkflowService(session)
    >>> await service.start_step(instance_id)
    >>> result = await service.complete_step(instance_id, changed_by="maria")
    >>> result.outcome
    <AdvanceOutcome.ADVANCED: 'advanced'>
"""

from __future__ import annotations

from rework_workflow.__metadata__ import __project__, __version__
from rework_workflow.config import EngineConfig
from rework_workflow.core.results import AdvanceResult, GateResult, HistorySummary, ReportResult, StatusChange, SyncResult
from rework_workflow.core.types import (
    AdvanceOutcome,
    ChecklistStatus,
    Component,
    ConformityStatus,
    ReportOutcome,
    SyncOutcome,
    TransitionType,
)
from rework_workflow.exceptions import (
    ApprovalRequiredError,
    ConcurrentTransitionError,
    GateBlockedError,
    InvalidTransitionError,
    NoNextStatusError,
    NotFoundError,
    OperationTimeoutError,
    OrderNotFoundError,
    PersistenceError,
    ReworkWorkflowError,
    StaleStepError,
    WorkflowInstanceNotFoundError,
)
from rework_workflow.plugin import ProductionWorkflowPlugin, ProductionWorkflowPluginConfig
from rework_workflow.service import ProductionWorkflowService

__all__ = (
    "AdvanceOutcome",
    "AdvanceResult",
    "ApprovalRequiredError",
    "ChecklistStatus",
    "Component",
    "ConcurrentTransitionError",
    "ConformityStatus",
    "EngineConfig",
    "GateBlockedError",
    "GateResult",
    "HistorySummary",
    "InvalidTransitionError",
    "NoNextStatusError",
    "NotFoundError",
    "OperationTimeoutError",
    "OrderNotFoundError",
    "PersistenceError",
    "ProductionWorkflowPlugin",
    "ProductionWorkflowPluginConfig",
    "ProductionWorkflowService",
    "ReportOutcome",
    "ReportResult",
    "ReworkWorkflowError",
    "StaleStepError",
    "StatusChange",
    "SyncOutcome",
    "SyncResult",
    "TransitionType",
    "WorkflowInstanceNotFoundError",
    "__project__",
    "__version__",
)
