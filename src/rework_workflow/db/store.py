"""SQLAlchemy implementation of the workflow store.

This module adapts the advanced-alchemy repositories to the narrow
:class:`~rework_workflow.core.protocols.WorkflowStore` interface used by the
engine. All repositories share one ``AsyncSession``; writes stay in its current
transaction until :meth:`SQLAlchemyWorkflowStore.commit`.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from advanced_alchemy.exceptions import AdvancedAlchemyError, DuplicateKeyError, IntegrityError
from sqlalchemy import exc as sa_exc

from rework_workflow.core.models import (
    ChecklistRequirement,
    ChecklistResponseData,
    StatusConfigData,
    StatusDefinitionData,
    StatusHistoryEntry,
    TechnicalReportData,
    TransitionEdge,
    WorkflowInstanceData,
)
from rework_workflow.db.models import StatusHistoryModel, TechnicalReportModel
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
from rework_workflow.exceptions import PersistenceError

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession

    from rework_workflow.core.types import Component
    from rework_workflow.db.models import (
        ChecklistModel,
        ChecklistResponseModel,
        StatusPrerequisiteModel,
        WorkflowInstanceModel,
    )

__all__ = ["SQLAlchemyWorkflowStore"]


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Translate backend failures into ``PersistenceError``."""
    try:
        yield
    except (AdvancedAlchemyError, sa_exc.SQLAlchemyError) as e:
        raise PersistenceError(operation, cause=e) from e


def _instance_data(model: WorkflowInstanceModel) -> WorkflowInstanceData:
    return WorkflowInstanceData(
        id=model.id,
        order_id=model.order_id,
        component=model.component,
        status=model.status,
        started_at=model.started_at,
        completed_at=model.completed_at,
        assigned_to=model.assigned_to,
        notes=model.notes,
        updated_at=model.updated_at,
    )


def _edge(model: StatusPrerequisiteModel) -> TransitionEdge:
    return TransitionEdge(
        id=model.id,
        from_status=model.from_status_key,
        to_status=model.to_status_key,
        entity_type=model.entity_type,
        transition_type=model.transition_type,
        component=model.component,
        priority=model.priority,
    )


def _requirement(model: ChecklistModel) -> ChecklistRequirement:
    return ChecklistRequirement(
        id=model.id,
        step_key=model.step_key,
        component=model.component,
        checklist_name=model.checklist_name,
        is_mandatory=model.is_mandatory,
        is_active=model.is_active,
        blocks_workflow_advance=model.blocks_workflow_advance,
    )


def _response(model: ChecklistResponseModel) -> ChecklistResponseData:
    return ChecklistResponseData(
        id=model.id,
        workflow_instance_id=model.workflow_instance_id,
        checklist_id=model.checklist_id,
        overall_status=model.overall_status,
        step_key=model.step_key,
        responses=model.responses or {},
        measurements=model.measurements or {},
        non_conformities=model.non_conformities or [],
        updated_at=model.updated_at,
    )


def _history(model: StatusHistoryModel) -> StatusHistoryEntry:
    return StatusHistoryEntry(
        id=model.id,
        workflow_instance_id=model.workflow_instance_id,
        old_status=model.old_status,
        new_status=model.new_status,
        changed_by=model.changed_by,
        reason=model.reason,
        changed_at=model.changed_at,
    )


def _report(model: TechnicalReportModel) -> TechnicalReportData:
    return TechnicalReportData(
        id=model.id,
        workflow_instance_id=model.workflow_instance_id,
        order_id=model.order_id,
        component=model.component,
        report_type=model.report_type,
        report_number=model.report_number,
        report_data=model.report_data or {},
        conformity_status=model.conformity_status,
        generated_automatically=model.generated_automatically,
        org_id=model.org_id,
    )


class SQLAlchemyWorkflowStore:
    """Workflow store backed by SQLAlchemy and advanced-alchemy repositories.

    Attributes:
        session: SQLAlchemy async session shared by all repositories.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the store.

        Args:
            session: SQLAlchemy async session.
        """
        self.session = session

        # Initialize repositories
        self._orders = OrderRepository(session=session)
        self._instances = WorkflowInstanceRepository(session=session)
        self._edges = StatusPrerequisiteRepository(session=session)
        self._status_configs = StatusConfigRepository(session=session)
        self._definitions = StatusDefinitionRepository(session=session)
        self._checklists = ChecklistRepository(session=session)
        self._responses = ChecklistResponseRepository(session=session)
        self._history = StatusHistoryRepository(session=session)
        self._reports = TechnicalReportRepository(session=session)

    async def get_instance(self, instance_id: UUID) -> WorkflowInstanceData | None:
        with _store_errors("get_instance"):
            model = await self._instances.get_fresh(instance_id)
        return _instance_data(model) if model else None

    async def find_siblings(self, order_id: UUID, status: str | None = None) -> Sequence[WorkflowInstanceData]:
        with _store_errors("find_siblings"):
            models = await self._instances.find_by_order(order_id, status)
        return [_instance_data(m) for m in models]

    async def set_status(
        self,
        instance_id: UUID,
        expected_status: str,
        new_status: str,
        *,
        now: datetime,
    ) -> bool:
        with _store_errors("set_status"):
            return await self._instances.compare_and_set_status(instance_id, expected_status, new_status, now)

    async def update_instance(self, instance_id: UUID, values: dict[str, Any], *, now: datetime) -> bool:
        with _store_errors("update_instance"):
            return await self._instances.update_fields(instance_id, values, now)

    async def find_edge(
        self,
        from_status: str,
        entity_type: str,
        component: Component | None = None,
    ) -> TransitionEdge | None:
        with _store_errors("find_edge"):
            models = await self._edges.find_active(entity_type, from_status, component, limit=1)
        return _edge(models[0]) if models else None

    async def find_edges(
        self,
        entity_type: str,
        from_status: str | None = None,
        component: Component | None = None,
    ) -> Sequence[TransitionEdge]:
        with _store_errors("find_edges"):
            models = await self._edges.find_active(entity_type, from_status, component)
        return [_edge(m) for m in models]

    async def get_status_config(self, status_key: str, entity_type: str) -> StatusConfigData | None:
        with _store_errors("get_status_config"):
            model = await self._status_configs.get_active(status_key, entity_type)
        if model is None:
            return None
        return StatusConfigData(
            status_key=model.status_key,
            entity_type=model.entity_type,
            status_label=model.status_label,
            allow_component_split=model.allow_component_split,
            display_order=model.display_order,
            estimated_hours=model.estimated_hours,
        )

    async def get_status_definition(self, step_key: str, component: Component) -> StatusDefinitionData | None:
        with _store_errors("get_status_definition"):
            model = await self._definitions.get_one_or_none(step_key=step_key, component=component)
        if model is None:
            return None
        return StatusDefinitionData(
            step_key=model.step_key,
            component=model.component,
            step_name=model.step_name,
            technical_report_required=model.technical_report_required,
            quality_checklist_required=model.quality_checklist_required,
        )

    async def find_checklist_requirements(self, step_key: str, component: Component) -> Sequence[ChecklistRequirement]:
        with _store_errors("find_checklist_requirements"):
            models = await self._checklists.find_mandatory(step_key, component)
        return [_requirement(m) for m in models]

    async def find_checklist_response(self, instance_id: UUID, checklist_id: UUID) -> ChecklistResponseData | None:
        with _store_errors("find_checklist_response"):
            model = await self._responses.get_one_or_none(
                workflow_instance_id=instance_id,
                checklist_id=checklist_id,
            )
        return _response(model) if model else None

    async def find_latest_checklist_response(
        self,
        instance_id: UUID,
        step_key: str | None = None,
    ) -> ChecklistResponseData | None:
        with _store_errors("find_latest_checklist_response"):
            model = await self._responses.find_latest(instance_id, step_key)
        return _response(model) if model else None

    async def insert_history(self, entry: StatusHistoryEntry) -> StatusHistoryEntry:
        model = StatusHistoryModel(
            workflow_instance_id=entry.workflow_instance_id,
            old_status=entry.old_status,
            new_status=entry.new_status,
            changed_by=entry.changed_by,
            reason=entry.reason,
            changed_at=entry.changed_at,
        )
        with _store_errors("insert_history"):
            model = await self._history.add(model, auto_commit=False)
        return _history(model)

    async def list_history(self, instance_id: UUID) -> Sequence[StatusHistoryEntry]:
        with _store_errors("list_history"):
            models = await self._history.find_by_instance(instance_id)
        return [_history(m) for m in models]

    async def find_technical_report(self, instance_id: UUID, report_type: str) -> TechnicalReportData | None:
        with _store_errors("find_technical_report"):
            model = await self._reports.get_one_or_none(
                workflow_instance_id=instance_id,
                report_type=report_type,
            )
        return _report(model) if model else None

    async def insert_technical_report(self, report: TechnicalReportData) -> TechnicalReportData | None:
        model = TechnicalReportModel(
            workflow_instance_id=report.workflow_instance_id,
            order_id=report.order_id,
            component=report.component,
            report_type=report.report_type,
            report_number=report.report_number,
            report_data=report.report_data,
            conformity_status=report.conformity_status,
            generated_automatically=report.generated_automatically,
            org_id=report.org_id,
        )
        try:
            with _store_errors("insert_technical_report"):
                model = await self._reports.add(model, auto_commit=False)
        except PersistenceError as e:
            # Unique (workflow_instance_id, report_type): another trigger got there first.
            if isinstance(e.cause, (DuplicateKeyError, IntegrityError, sa_exc.IntegrityError)):
                await self.rollback()
                return None
            raise
        return _report(model)

    async def get_order_tenant(self, order_id: UUID) -> tuple[bool, str | None]:
        with _store_errors("get_order_tenant"):
            order = await self._orders.get_one_or_none(id=order_id)
        if order is None:
            return False, None
        return True, order.org_id

    async def commit(self) -> None:
        with _store_errors("commit"):
            await self.session.commit()

    async def rollback(self) -> None:
        with _store_errors("rollback"):
            await self.session.rollback()
