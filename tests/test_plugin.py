"""Tests for the ProductionWorkflowPlugin integration with Litestar.

These tests verify that the plugin registers the workflow service and the
shared lock registry as Litestar dependencies.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID

import pytest
from litestar import Litestar, get, post
from litestar.di import Provide
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED
from litestar.testing import AsyncTestClient

from rework_workflow import (
    EngineConfig,
    ProductionWorkflowPlugin,
    ProductionWorkflowPluginConfig,
    ProductionWorkflowService,
)
from rework_workflow.engine.locks import InstanceLocks

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from .conftest import WorkflowSeeder


pytestmark = pytest.mark.integration


# =============================================================================
# Test Fixtures - Route Handlers
# =============================================================================


@post("/instances/{instance_id:uuid}/advance")
async def advance_instance(instance_id: UUID, workflow_service: ProductionWorkflowService) -> dict[str, Any]:
    result = await workflow_service.complete_and_advance(instance_id, changed_by="api")
    return {"outcome": result.outcome.value, "to_status": result.to_status}


@get("/locks")
async def get_locks(workflow_locks: InstanceLocks, workflow_service: ProductionWorkflowService) -> dict[str, Any]:
    return {
        "shared": workflow_service.locks is workflow_locks,
        "timeout": workflow_service.config.operation_timeout,
    }


def _app(session: AsyncSession, plugin: ProductionWorkflowPlugin) -> Litestar:
    return Litestar(
        route_handlers=[advance_instance, get_locks],
        dependencies={"db_session": Provide(lambda: session, sync_to_thread=False)},
        plugins=[plugin],
    )


# =============================================================================
# Tests
# =============================================================================


class TestProductionWorkflowPluginConfig:
    """Tests for ProductionWorkflowPluginConfig."""

    def test_defaults(self) -> None:
        """Test the default dependency keys and engine configuration."""
        config = ProductionWorkflowPluginConfig()

        assert config.dependency_key_service == "workflow_service"
        assert config.dependency_key_locks == "workflow_locks"
        assert config.engine == EngineConfig()
        assert config.event_bus is None


class TestProductionWorkflowPlugin:
    """Tests for ProductionWorkflowPlugin."""

    def test_registers_dependencies(self) -> None:
        """Test on_app_init registers both providers under the configured keys."""
        plugin = ProductionWorkflowPlugin(
            ProductionWorkflowPluginConfig(dependency_key_service="svc", dependency_key_locks="lk"),
        )

        app = Litestar(route_handlers=[], plugins=[plugin])

        assert "svc" in app.dependencies
        assert "lk" in app.dependencies

    async def test_service_advances_instance(self, async_session: AsyncSession, seed: WorkflowSeeder) -> None:
        """Test a route handler can advance an instance through the injected service."""
        await seed.edge("entrada", "metrologia")
        order = await seed.order()
        instance = await seed.instance(order, "entrada", completed=True)
        instance_id = instance.id

        app = _app(async_session, ProductionWorkflowPlugin())

        async with AsyncTestClient(app=app) as client:
            response = await client.post(f"/instances/{instance_id}/advance")

            assert response.status_code == HTTP_201_CREATED
            assert response.json() == {"outcome": "advanced", "to_status": "metrologia"}

        service = ProductionWorkflowService(async_session)
        history = await service.get_history(instance_id)
        assert [(h.new_status, h.changed_by) for h in history] == [("metrologia", "api")]

    async def test_services_share_plugin_locks(self, async_session: AsyncSession) -> None:
        """Test every provided service uses the plugin's lock registry and engine config."""
        plugin = ProductionWorkflowPlugin(
            ProductionWorkflowPluginConfig(engine=EngineConfig(operation_timeout=5.0)),
        )
        app = _app(async_session, plugin)

        async with AsyncTestClient(app=app) as client:
            response = await client.get("/locks")

            assert response.status_code == HTTP_200_OK
            assert response.json() == {"shared": True, "timeout": 5.0}

        assert isinstance(plugin.locks, InstanceLocks)
