"""Tests for the multi-component synchronizer."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from rework_workflow.core.types import Component, SyncOutcome, TransitionType
from rework_workflow.exceptions import ConcurrentTransitionError

if TYPE_CHECKING:
    from collections.abc import Callable

    from rework_workflow.db.models import OrderModel
    from rework_workflow.service import ProductionWorkflowService

    from .conftest import MockEventBus, WorkflowSeeder


pytestmark = pytest.mark.integration


async def _locked_pipeline(seed: WorkflowSeeder) -> None:
    """usinagem -> montagem with both statuses forbidding component split."""
    await seed.edge("usinagem", "montagem")
    await seed.status_config("usinagem", allow_component_split=False)
    await seed.status_config("montagem", allow_component_split=False)


class TestSyncOrder:
    """Tests for ComponentSynchronizer.sync_order."""

    async def test_completed_siblings_move_together(
        self,
        service: ProductionWorkflowService,
        seed: WorkflowSeeder,
        mock_event_bus: MockEventBus,
    ) -> None:
        """Test both components at usinagem move to montagem with one history row each."""
        await _locked_pipeline(seed)
        order = await seed.order()
        block = await seed.instance(order, "usinagem", Component.BLOCK, completed=True)
        head = await seed.instance(order, "usinagem", Component.HEAD, completed=True)

        result = await service.sync_order(order.id, "usinagem")

        assert result.outcome == SyncOutcome.SYNCED
        assert result.to_status == "montagem"
        assert set(result.instance_ids) == {block.id, head.id}
        for instance in (block, head):
            fresh = await service.get_instance(instance.id)
            history = await service.get_history(instance.id)
            assert fresh.status == "montagem"
            assert fresh.completed_at is None
            assert [(h.old_status, h.new_status) for h in history] == [("usinagem", "montagem")]
        assert len(mock_event_bus.of_type("workflow.status_changed")) == 2
        synced = mock_event_bus.of_type("workflow.components_synchronized")
        assert len(synced) == 1
        assert synced[0].to_status == "montagem"

    async def test_unfinished_sibling_blocks_sync(
        self,
        service: ProductionWorkflowService,
        seed: WorkflowSeeder,
    ) -> None:
        """Test nothing moves while a sibling has not completed its stage."""
        await _locked_pipeline(seed)
        order = await seed.order()
        block = await seed.instance(order, "usinagem", Component.BLOCK, completed=True)
        await seed.instance(order, "usinagem", Component.HEAD, started=True)

        result = await service.sync_order(order.id, "usinagem")

        assert result.outcome == SyncOutcome.NOT_READY
        assert (await service.get_instance(block.id)).status == "usinagem"
        assert await service.get_history(block.id) == []

    async def test_no_siblings_at_pivot(self, service: ProductionWorkflowService, seed: WorkflowSeeder) -> None:
        """Test an empty pivot is not ready."""
        await _locked_pipeline(seed)
        order = await seed.order()
        await seed.instance(order, "montagem", completed=True)

        result = await service.sync_order(order.id, "usinagem")

        assert result.outcome == SyncOutcome.NOT_READY

    async def test_split_allowed_at_pivot(self, service: ProductionWorkflowService, seed: WorkflowSeeder) -> None:
        """Test a pivot that allows split never forces a bulk move."""
        await seed.edge("usinagem", "montagem")
        await seed.status_config("usinagem", allow_component_split=True)
        await seed.status_config("montagem", allow_component_split=False)
        order = await seed.order()
        await seed.instance(order, "usinagem", Component.BLOCK, completed=True)
        await seed.instance(order, "usinagem", Component.HEAD, completed=True)

        result = await service.sync_order(order.id, "usinagem")

        assert result.outcome == SyncOutcome.SPLIT_ALLOWED

    async def test_split_allowed_at_next_status(self, service: ProductionWorkflowService, seed: WorkflowSeeder) -> None:
        """Test components are never bulk-moved into a status that allows split."""
        await seed.edge("usinagem", "montagem")
        await seed.status_config("usinagem", allow_component_split=False)
        await seed.status_config("montagem", allow_component_split=True)
        order = await seed.order()
        block = await seed.instance(order, "usinagem", Component.BLOCK, completed=True)
        await seed.instance(order, "usinagem", Component.HEAD, completed=True)

        result = await service.sync_order(order.id, "usinagem")

        assert result.outcome == SyncOutcome.SPLIT_ALLOWED
        assert (await service.get_instance(block.id)).status == "usinagem"

    async def test_missing_config_allows_split(self, service: ProductionWorkflowService, seed: WorkflowSeeder) -> None:
        """Test an unconfigured pivot status is treated as allowing split."""
        await seed.edge("usinagem", "montagem")
        order = await seed.order()
        await seed.instance(order, "usinagem", Component.BLOCK, completed=True)

        result = await service.sync_order(order.id, "usinagem")

        assert result.outcome == SyncOutcome.SPLIT_ALLOWED

    async def test_no_next_edge(self, service: ProductionWorkflowService, seed: WorkflowSeeder) -> None:
        """Test a terminal pivot is not ready."""
        await seed.status_config("usinagem", allow_component_split=False)
        order = await seed.order()
        await seed.instance(order, "usinagem", completed=True)

        result = await service.sync_order(order.id, "usinagem")

        assert result.outcome == SyncOutcome.NOT_READY

    async def test_approval_edge_is_not_bulk_applied(
        self,
        service: ProductionWorkflowService,
        seed: WorkflowSeeder,
    ) -> None:
        """Test approval-gated edges are never taken by the synchronizer."""
        await seed.edge("usinagem", "montagem", TransitionType.APPROVAL_REQUIRED)
        await seed.status_config("usinagem", allow_component_split=False)
        await seed.status_config("montagem", allow_component_split=False)
        order = await seed.order()
        await seed.instance(order, "usinagem", completed=True)

        result = await service.sync_order(order.id, "usinagem")

        assert result.outcome == SyncOutcome.NOT_READY

    async def test_gated_sibling_blocks_sync(self, service: ProductionWorkflowService, seed: WorkflowSeeder) -> None:
        """Test a sibling with an unmet blocking checklist keeps everyone in place."""
        await _locked_pipeline(seed)
        order = await seed.order()
        await seed.instance(order, "usinagem", Component.BLOCK, completed=True)
        await seed.instance(order, "usinagem", Component.HEAD, completed=True)
        await seed.checklist("usinagem", "Valve seat check", Component.HEAD)

        result = await service.sync_order(order.id, "usinagem")

        assert result.outcome == SyncOutcome.NOT_READY

    async def test_diverging_component_edges(self, service: ProductionWorkflowService, seed: WorkflowSeeder) -> None:
        """Test components heading to different statuses are left to advance alone."""
        await _locked_pipeline(seed)
        await seed.edge("usinagem", "brunimento", component=Component.BLOCK, priority=-1)
        order = await seed.order()
        await seed.instance(order, "usinagem", Component.BLOCK, completed=True)
        await seed.instance(order, "usinagem", Component.HEAD, completed=True)

        result = await service.sync_order(order.id, "usinagem")

        assert result.outcome == SyncOutcome.SPLIT_ALLOWED

    async def test_lost_race_on_second_sibling_rolls_back_all(
        self,
        service: ProductionWorkflowService,
        seed: WorkflowSeeder,
        mock_event_bus: MockEventBus,
        lose_race_on_transition: Callable[[int], None],
    ) -> None:
        """Test a sibling moved by another writer undoes the move already staged for the first."""
        await _locked_pipeline(seed)
        order = await seed.order()
        order_id = order.id
        block_id = (await seed.instance(order, "usinagem", Component.BLOCK, completed=True)).id
        head_id = (await seed.instance(order, "usinagem", Component.HEAD, completed=True)).id
        lose_race_on_transition(2)

        with pytest.raises(ConcurrentTransitionError) as exc_info:
            await service.sync_order(order_id, "usinagem")

        assert exc_info.value.instance_id == head_id
        for instance_id in (block_id, head_id):
            assert (await service.get_instance(instance_id)).status == "usinagem"
            assert await service.get_history(instance_id) == []
        assert mock_event_bus.events == []


class TestAdvanceOrder:
    """Tests for ComponentSynchronizer.advance_order."""

    async def _order_at(self, seed: WorkflowSeeder, status: str) -> OrderModel:
        order = await seed.order()
        await seed.instance(order, status, Component.BLOCK)
        await seed.instance(order, status, Component.CRANKSHAFT)
        await seed.instance(order, status, Component.HEAD)
        return order

    async def test_moves_every_component(self, service: ProductionWorkflowService, seed: WorkflowSeeder) -> None:
        """Test budget approval moves all components along the next edge."""
        await seed.edge("orcamento", "usinagem", TransitionType.APPROVAL_REQUIRED)
        order = await self._order_at(seed, "orcamento")

        result = await service.advance_order(order.id, changed_by="gerente")

        assert result.outcome == SyncOutcome.SYNCED
        assert result.pivot_status == "orcamento"
        assert result.to_status == "usinagem"
        assert len(result.instance_ids) == 3
        for instance_id in result.instance_ids:
            history = await service.get_history(instance_id)
            assert (await service.get_instance(instance_id)).status == "usinagem"
            assert [h.changed_by for h in history] == ["gerente"]

    async def test_only_components_at_first_component_status_move(
        self,
        service: ProductionWorkflowService,
        seed: WorkflowSeeder,
    ) -> None:
        """Test the block sets the pivot and a head at another status stays behind."""
        await seed.edge("orcamento", "usinagem", TransitionType.APPROVAL_REQUIRED)
        await seed.edge("metrologia", "orcamento")
        order = await seed.order()
        head = await seed.instance(order, "metrologia", Component.HEAD)
        block = await seed.instance(order, "orcamento", Component.BLOCK)
        crankshaft = await seed.instance(order, "orcamento", Component.CRANKSHAFT)

        result = await service.advance_order(order.id)

        assert result.pivot_status == "orcamento"
        assert set(result.instance_ids) == {block.id, crankshaft.id}
        assert (await service.get_instance(head.id)).status == "metrologia"
        assert await service.get_history(head.id) == []

    async def test_no_instances(self, service: ProductionWorkflowService, seed: WorkflowSeeder) -> None:
        """Test an order without components is not ready."""
        order = await seed.order()

        result = await service.advance_order(order.id)

        assert result.outcome == SyncOutcome.NOT_READY

    async def test_no_edge(self, service: ProductionWorkflowService, seed: WorkflowSeeder) -> None:
        """Test an order whose status has no next edge is not ready."""
        order = await self._order_at(seed, "pronto")

        result = await service.advance_order(order.id)

        assert result.outcome == SyncOutcome.NOT_READY
        assert result.pivot_status == "pronto"
