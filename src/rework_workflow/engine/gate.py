"""Checklist gate deciding whether inspections block advancement."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rework_workflow.core.results import GateResult

if TYPE_CHECKING:
    from uuid import UUID

    from rework_workflow.core.protocols import WorkflowStore
    from rework_workflow.core.types import Component

__all__ = ["ChecklistGate"]


class ChecklistGate:
    """Blocks advancement while mandatory blocking checklists are unapproved.

    Only active, mandatory checklists are considered. Of those, checklists flagged
    ``blocks_workflow_advance`` need an ``approved`` response from the instance;
    the others are reported as informational and never block.
    """

    def __init__(self, store: WorkflowStore) -> None:
        self.store = store

    async def evaluate(self, step_key: str, component: Component, instance_id: UUID) -> GateResult:
        """Evaluate the gate of a step for one workflow instance.

        Args:
            step_key: The step being left.
            component: The instance's component.
            instance_id: The workflow instance ID.

        Returns:
            ``GateResult`` listing the unmet checklist names when blocked.
        """
        reasons: list[str] = []
        informational: list[str] = []

        for requirement in await self.store.find_checklist_requirements(step_key, component):
            if not requirement.blocks_workflow_advance:
                informational.append(requirement.checklist_name)
                continue

            response = await self.store.find_checklist_response(instance_id, requirement.id)
            if response is None or not response.is_approved:
                reasons.append(requirement.checklist_name)

        if reasons:
            return GateResult.block(tuple(reasons), tuple(informational))
        return GateResult.allow(tuple(informational))
