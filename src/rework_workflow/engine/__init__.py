"""Production workflow engine components.

This module provides the components that move a workflow instance through its
production stages: the status store, the checklist gate, the transition rules,
the auto-advance controller, the technical report trigger and the multi-component
synchronizer.
"""

from __future__ import annotations

from rework_workflow.engine.controller import AutoAdvanceController
from rework_workflow.engine.gate import ChecklistGate
from rework_workflow.engine.locks import InstanceLocks
from rework_workflow.engine.reports import TechnicalReportTrigger
from rework_workflow.engine.rules import TransitionRules
from rework_workflow.engine.status_store import WorkflowStatusStore, summarize_history
from rework_workflow.engine.sync import ComponentSynchronizer

__all__ = [
    "AutoAdvanceController",
    "ChecklistGate",
    "ComponentSynchronizer",
    "InstanceLocks",
    "TechnicalReportTrigger",
    "TransitionRules",
    "WorkflowStatusStore",
    "summarize_history",
]
