"""Repository implementations for production workflow persistence.

This module provides async repositories for the workflow tables using
advanced-alchemy's repository pattern. They expose the filtered and ordered
lookups the workflow store needs on top of the generic CRUD methods.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import and_, or_, select, update

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

if TYPE_CHECKING:
    from collections.abc import Sequence

    from rework_workflow.core.types import Component

__all__ = [
    "ChecklistRepository",
    "ChecklistResponseRepository",
    "OrderRepository",
    "StatusConfigRepository",
    "StatusDefinitionRepository",
    "StatusHistoryRepository",
    "StatusPrerequisiteRepository",
    "TechnicalReportRepository",
    "WorkflowInstanceRepository",
]


class OrderRepository(SQLAlchemyAsyncRepository[OrderModel]):
    """Repository for service orders."""

    model_type = OrderModel


class WorkflowInstanceRepository(SQLAlchemyAsyncRepository[WorkflowInstanceModel]):
    """Repository for workflow instance CRUD operations.

    Reads bypass the session identity map so that rows changed by conditional
    UPDATE statements, or by other sessions, are returned with their stored values.
    """

    model_type = WorkflowInstanceModel

    async def get_fresh(self, instance_id: UUID) -> WorkflowInstanceModel | None:
        """Load an instance, refreshing any copy already in the session.

        Args:
            instance_id: The instance ID.

        Returns:
            The instance or None if not found.
        """
        stmt = (
            select(WorkflowInstanceModel)
            .where(WorkflowInstanceModel.id == instance_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_order(
        self,
        order_id: UUID,
        status: str | None = None,
    ) -> Sequence[WorkflowInstanceModel]:
        """Find the instances of an order.

        Args:
            order_id: The order ID.
            status: Optional status filter.

        Returns:
            List of instances ordered by component.
        """
        conditions = [WorkflowInstanceModel.order_id == order_id]

        if status is not None:
            conditions.append(WorkflowInstanceModel.status == status)

        stmt = (
            select(WorkflowInstanceModel)
            .where(and_(*conditions))
            .order_by(WorkflowInstanceModel.component, WorkflowInstanceModel.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def compare_and_set_status(
        self,
        instance_id: UUID,
        expected_status: str,
        new_status: str,
        now: datetime,
    ) -> bool:
        """Move an instance to a new status if it is still at the expected one.

        The new stage has not been started, so both stage timestamps are cleared.

        Args:
            instance_id: The instance ID.
            expected_status: The status the caller read.
            new_status: The status to write.
            now: Modification timestamp.

        Returns:
            True if the row was updated.
        """
        stmt = (
            update(WorkflowInstanceModel)
            .where(
                and_(
                    WorkflowInstanceModel.id == instance_id,
                    WorkflowInstanceModel.status == expected_status,
                )
            )
            .values(status=new_status, started_at=None, completed_at=None, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1

    async def update_fields(self, instance_id: UUID, values: dict[str, Any], now: datetime) -> bool:
        """Write the given columns on an instance and stamp ``updated_at``.

        Args:
            instance_id: The instance ID.
            values: Column values to write.
            now: Modification timestamp.

        Returns:
            True if the instance exists.
        """
        stmt = (
            update(WorkflowInstanceModel)
            .where(WorkflowInstanceModel.id == instance_id)
            .values(**values, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1


class StatusPrerequisiteRepository(SQLAlchemyAsyncRepository[StatusPrerequisiteModel]):
    """Repository for status graph edges."""

    model_type = StatusPrerequisiteModel

    async def find_active(
        self,
        entity_type: str,
        from_status: str | None = None,
        component: Component | None = None,
        limit: int | None = None,
    ) -> Sequence[StatusPrerequisiteModel]:
        """Find active edges in priority order.

        Edges restricted to a component only match that component; edges
        without a component match every component.

        Args:
            entity_type: The entity type.
            from_status: Optional source status filter.
            component: Optional component filter.
            limit: Optional maximum number of edges.

        Returns:
            Edges ordered by priority, creation time and id.
        """
        conditions = [
            StatusPrerequisiteModel.entity_type == entity_type,
            StatusPrerequisiteModel.is_active == True,  # noqa: E712
        ]

        if from_status is not None:
            conditions.append(StatusPrerequisiteModel.from_status_key == from_status)

        if component is not None:
            conditions.append(
                or_(
                    StatusPrerequisiteModel.component.is_(None),
                    StatusPrerequisiteModel.component == component,
                )
            )

        stmt = (
            select(StatusPrerequisiteModel)
            .where(and_(*conditions))
            .order_by(
                StatusPrerequisiteModel.priority,
                StatusPrerequisiteModel.created_at,
                StatusPrerequisiteModel.id,
            )
        )
        if limit is not None:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return result.scalars().all()


class StatusConfigRepository(SQLAlchemyAsyncRepository[StatusConfigModel]):
    """Repository for per-status configuration."""

    model_type = StatusConfigModel

    async def get_active(self, status_key: str, entity_type: str) -> StatusConfigModel | None:
        """Get the active configuration of a status.

        Args:
            status_key: The status key.
            entity_type: The entity type.

        Returns:
            The configuration or None.
        """
        stmt = select(StatusConfigModel).where(
            and_(
                StatusConfigModel.status_key == status_key,
                StatusConfigModel.entity_type == entity_type,
                StatusConfigModel.is_active == True,  # noqa: E712
            )
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class StatusDefinitionRepository(SQLAlchemyAsyncRepository[StatusDefinitionModel]):
    """Repository for production step definitions."""

    model_type = StatusDefinitionModel


class ChecklistRepository(SQLAlchemyAsyncRepository[ChecklistModel]):
    """Repository for inspection checklists."""

    model_type = ChecklistModel

    async def find_mandatory(self, step_key: str, component: Component) -> Sequence[ChecklistModel]:
        """Find the active, mandatory checklists of a step and component.

        Args:
            step_key: The step key.
            component: The component.

        Returns:
            List of checklists ordered by creation time.
        """
        stmt = (
            select(ChecklistModel)
            .where(
                and_(
                    ChecklistModel.step_key == step_key,
                    ChecklistModel.component == component,
                    ChecklistModel.is_active == True,  # noqa: E712
                    ChecklistModel.is_mandatory == True,  # noqa: E712
                )
            )
            .order_by(ChecklistModel.created_at, ChecklistModel.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()


class ChecklistResponseRepository(SQLAlchemyAsyncRepository[ChecklistResponseModel]):
    """Repository for checklist responses."""

    model_type = ChecklistResponseModel

    async def find_latest(
        self,
        instance_id: UUID,
        step_key: str | None = None,
    ) -> ChecklistResponseModel | None:
        """Find the most recently updated response of an instance.

        Args:
            instance_id: The workflow instance ID.
            step_key: Optional step filter.

        Returns:
            The response or None.
        """
        conditions = [ChecklistResponseModel.workflow_instance_id == instance_id]

        if step_key is not None:
            conditions.append(ChecklistResponseModel.step_key == step_key)

        stmt = (
            select(ChecklistResponseModel)
            .where(and_(*conditions))
            .order_by(ChecklistResponseModel.updated_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class StatusHistoryRepository(SQLAlchemyAsyncRepository[StatusHistoryModel]):
    """Repository for the status audit trail."""

    model_type = StatusHistoryModel

    async def find_by_instance(self, instance_id: UUID) -> Sequence[StatusHistoryModel]:
        """Find the history of an instance.

        Args:
            instance_id: The workflow instance ID.

        Returns:
            History entries, newest first.
        """
        stmt = (
            select(StatusHistoryModel)
            .where(StatusHistoryModel.workflow_instance_id == instance_id)
            .order_by(StatusHistoryModel.changed_at.desc(), StatusHistoryModel.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()


class TechnicalReportRepository(SQLAlchemyAsyncRepository[TechnicalReportModel]):
    """Repository for technical reports."""

    model_type = TechnicalReportModel
