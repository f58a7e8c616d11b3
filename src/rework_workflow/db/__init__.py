"""Database persistence layer for rework-workflow.

This module provides SQLAlchemy models and advanced-alchemy repositories for the
production workflow tables, and the store adapting them to the engine.
"""

from __future__ import annotations

from rework_workflow.db.models import (
    ChecklistModel,
    ChecklistResponseModel,
    OrderModel,
    StatusConfigModel,
    StatusDefinitionModel,
    StatusHistoryModel,
    StatusPrerequisiteModel,
    TechnicalReportModel,
    WorkflowInstanceModel,
)
from rework_workflow.db.repositories import (
    ChecklistRepository,
    ChecklistResponseRepository,
    OrderRepository,
    StatusConfigRepository,
    StatusDefinitionRepository,
    StatusHistoryRepository,
    StatusPrerequisiteRepository,
    TechnicalReportRepository,
    WorkflowInstanceRepository,
)
from rework_workflow.db.store import SQLAlchemyWorkflowStore

__all__ = [
    "ChecklistModel",
    "ChecklistRepository",
    "ChecklistResponseModel",
    "ChecklistResponseRepository",
    "OrderModel",
    "OrderRepository",
    "SQLAlchemyWorkflowStore",
    "StatusConfigModel",
    "StatusConfigRepository",
    "StatusDefinitionModel",
    "StatusDefinitionRepository",
    "StatusHistoryModel",
    "StatusHistoryRepository",
    "StatusPrerequisiteModel",
    "StatusPrerequisiteRepository",
    "TechnicalReportModel",
    "TechnicalReportRepository",
    "WorkflowInstanceModel",
    "WorkflowInstanceRepository",
]
