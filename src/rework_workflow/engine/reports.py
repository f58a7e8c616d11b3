"""Technical report trigger for completed production steps."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from rework_workflow.config import EngineConfig
from rework_workflow.core.events import TechnicalReportGenerated, emit_event
from rework_workflow.core.models import TechnicalReportData
from rework_workflow.core.results import ReportResult
from rework_workflow.core.types import ConformityStatus, ReportOutcome
from rework_workflow.exceptions import OrderNotFoundError, PersistenceError, ReworkWorkflowError

if TYPE_CHECKING:
    from uuid import UUID

    from rework_workflow.core.models import ChecklistResponseData
    from rework_workflow.core.protocols import EventBus, WorkflowStore
    from rework_workflow.core.types import Component

__all__ = ["TechnicalReportTrigger"]

logger = logging.getLogger(__name__)


class TechnicalReportTrigger:
    """Generates a technical report when a step that requires one is completed.

    At most one report exists per workflow instance and step; repeated triggers
    return ``ALREADY_EXISTS``. Runs after the status transition has been committed
    and never undoes it: failures are logged and returned as ``FAILED``.

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
        self.store = store
        self.config = config or EngineConfig()
        self.event_bus = event_bus

    async def maybe_generate(
        self,
        instance_id: UUID,
        step_key: str,
        component: Component,
        order_id: UUID,
    ) -> ReportResult:
        """Generate the report of a completed step if its definition requires one.

        Args:
            instance_id: The workflow instance that completed the step.
            step_key: The completed step.
            component: The instance's component.
            order_id: The instance's order.

        Returns:
            The report outcome.
        """
        try:
            return await self._generate(instance_id, step_key, component, order_id)
        except ReworkWorkflowError as e:
            try:
                await self.store.rollback()
            except PersistenceError:
                logger.exception("Rollback after failed technical report for instance %s failed", instance_id)
            logger.warning(
                "Technical report for instance %s step '%s' was not generated: %s",
                instance_id,
                step_key,
                e,
            )
            return ReportResult(ReportOutcome.FAILED, error=str(e))

    async def _generate(
        self,
        instance_id: UUID,
        step_key: str,
        component: Component,
        order_id: UUID,
    ) -> ReportResult:
        definition = await self.store.get_status_definition(step_key, component)
        if definition is None or not definition.technical_report_required:
            return ReportResult(ReportOutcome.SKIPPED)

        existing = await self.store.find_technical_report(instance_id, step_key)
        if existing is not None:
            return ReportResult(ReportOutcome.ALREADY_EXISTS, report_id=existing.id)

        response = await self.store.find_latest_checklist_response(instance_id, step_key)
        if response is None:
            response = await self.store.find_latest_checklist_response(instance_id)

        exists, org_id = await self.store.get_order_tenant(order_id)
        if not exists:
            raise OrderNotFoundError(order_id)

        conformity = (
            ConformityStatus.CONFORMING if response is not None and response.is_approved else ConformityStatus.PENDING
        )
        now = datetime.now(timezone.utc)
        report = await self.store.insert_technical_report(
            TechnicalReportData(
                workflow_instance_id=instance_id,
                order_id=order_id,
                component=component,
                report_type=step_key,
                report_number=self._report_number(instance_id, step_key),
                report_data=self._report_data(definition.step_name, step_key, component, response, now),
                conformity_status=conformity,
                generated_automatically=True,
                org_id=org_id,
            )
        )
        if report is None:
            return ReportResult(ReportOutcome.ALREADY_EXISTS)
        await self.store.commit()

        logger.info("Generated technical report %s for instance %s step '%s'", report.id, instance_id, step_key)
        await emit_event(
            self.event_bus,
            TechnicalReportGenerated(
                order_id=order_id,
                timestamp=now,
                instance_id=instance_id,
                report_id=report.id,  # type: ignore[arg-type]
                report_type=step_key,
                conformity_status=str(conformity),
            ),
        )
        return ReportResult(ReportOutcome.GENERATED, report_id=report.id)

    def _report_number(self, instance_id: UUID, step_key: str) -> str:
        return f"{self.config.report_number_prefix}-{instance_id.hex[:8].upper()}-{step_key.upper()}"

    @staticmethod
    def _report_data(
        step_name: str,
        step_key: str,
        component: Component,
        response: ChecklistResponseData | None,
        generated_at: datetime,
    ) -> dict[str, Any]:
        checklist: dict[str, Any] | None = None
        if response is not None:
            checklist = {
                "checklist_id": str(response.checklist_id),
                "overall_status": str(response.overall_status),
                "responses": response.responses,
                "measurements": response.measurements,
                "non_conformities": response.non_conformities,
            }
        return {
            "step_key": step_key,
            "step_name": step_name,
            "component": str(component),
            "checklist": checklist,
            "generated_at": generated_at.isoformat(),
        }
