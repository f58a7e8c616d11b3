"""Transition rules: lookups over the configured status graph."""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from rework_workflow.config import EngineConfig
from rework_workflow.core.models import AllowedTransition

if TYPE_CHECKING:
    from rework_workflow.core.models import TransitionEdge
    from rework_workflow.core.protocols import WorkflowStore
    from rework_workflow.core.types import Component

__all__ = ["TransitionRules"]


class TransitionRules:
    """Resolves the next status from the active status prerequisites.

    When several active edges leave the same status, the one with the lowest
    ``priority`` wins, then the oldest, then the lowest id. Use
    :meth:`find_ambiguous` to detect configurations where that fallback decides.

    Attributes:
        store: The workflow store.
        config: Engine configuration providing the default entity type.
    """

    def __init__(self, store: WorkflowStore, config: EngineConfig | None = None) -> None:
        self.store = store
        self.config = config or EngineConfig()

    async def next_status(
        self,
        current_status: str,
        entity_type: str | None = None,
        component: Component | None = None,
    ) -> TransitionEdge | None:
        """Return the edge to take from ``current_status``.

        Args:
            current_status: The status being left.
            entity_type: Entity type of the edges; defaults to the configured one.
            component: Restrict to edges that apply to this component.

        Returns:
            The winning edge, or None for a terminal or unconfigured status.
        """
        return await self.store.find_edge(current_status, entity_type or self.config.entity_type, component)

    async def allowed_transitions(
        self,
        current_status: str,
        entity_type: str | None = None,
        component: Component | None = None,
    ) -> list[AllowedTransition]:
        """List every active edge leaving ``current_status`` with its target configuration.

        Args:
            current_status: The status being left.
            entity_type: Entity type of the edges; defaults to the configured one.
            component: Restrict to edges that apply to this component.

        Returns:
            Allowed transitions in priority order.
        """
        entity_type = entity_type or self.config.entity_type
        edges = await self.store.find_edges(entity_type, current_status, component)
        return [
            AllowedTransition(edge=edge, target_config=await self.store.get_status_config(edge.to_status, entity_type))
            for edge in edges
        ]

    async def find_ambiguous(self, entity_type: str | None = None) -> dict[tuple[str, Component | None], list[TransitionEdge]]:
        """Find statuses whose next edge is decided by the fallback ordering.

        Args:
            entity_type: Entity type to check; defaults to the configured one.

        Returns:
            Mapping of ``(from_status, component)`` to the competing edges sharing
            the winning priority. Empty when the configuration is unambiguous.
        """
        edges = await self.store.find_edges(entity_type or self.config.entity_type)

        grouped: dict[tuple[str, Component | None], list[TransitionEdge]] = defaultdict(list)
        for edge in edges:
            grouped[(edge.from_status, edge.component)].append(edge)

        ambiguous: dict[tuple[str, Component | None], list[TransitionEdge]] = {}
        for key, group in grouped.items():
            top = min(edge.priority for edge in group)
            tied = [edge for edge in group if edge.priority == top]
            if len(tied) > 1:
                ambiguous[key] = tied
        return ambiguous
