"""Litestar plugin for production workflow integration.

This module provides the ProductionWorkflowPlugin, which makes a
:class:`~rework_workflow.service.ProductionWorkflowService` available to route
handlers through dependency injection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol
from sqlalchemy.ext.asyncio import AsyncSession

from rework_workflow.config import EngineConfig
from rework_workflow.engine.locks import InstanceLocks
from rework_workflow.service import ProductionWorkflowService

if TYPE_CHECKING:
    from litestar.config.app import AppConfig

    from rework_workflow.core.protocols import EventBus

__all__ = ["ProductionWorkflowPlugin", "ProductionWorkflowPluginConfig"]


@dataclass
class ProductionWorkflowPluginConfig:
    """Configuration for the ProductionWorkflowPlugin.

    Attributes:
        engine: Engine configuration passed to every service.
        event_bus: Optional event bus the services emit workflow events on.
        dependency_key_service: The key used for dependency injection of the
            ProductionWorkflowService. Defaults to "workflow_service".
        dependency_key_locks: The key used for dependency injection of the
            shared InstanceLocks. Defaults to "workflow_locks".
    """

    engine: EngineConfig = field(default_factory=EngineConfig)
    event_bus: EventBus | None = None
    dependency_key_service: str = "workflow_service"
    dependency_key_locks: str = "workflow_locks"


class ProductionWorkflowPlugin(InitPluginProtocol):
    """Litestar plugin for the production workflow engine.

    The service provider depends on a ``db_session`` dependency holding an
    ``AsyncSession``, as registered by advanced-alchemy's ``SQLAlchemyPlugin``.
    All services built by the plugin share one lock registry, so advances of the
    same instance are serialized across requests.

    Example:
        Using in a route handler::

            from litestar import Litestar, post
            from rework_workflow import ProductionWorkflowPlugin, ProductionWorkflowService


            @post("/workflows/{instance_id:uuid}/complete")
            async def complete(instance_id: UUID, workflow_service: ProductionWorkflowService) -> dict:
                result = await workflow_service.complete_step(instance_id)
                return {"outcome": result.outcome, "status": result.to_status}


            app = Litestar(
                route_handlers=[complete],
                plugins=[SQLAlchemyPlugin(config=alchemy_config), ProductionWorkflowPlugin()],
            )
    """

    __slots__ = ("_config", "_locks")

    def __init__(self, config: ProductionWorkflowPluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or ProductionWorkflowPluginConfig()
        self._locks = InstanceLocks()

    @property
    def locks(self) -> InstanceLocks:
        """Get the lock registry shared by every provided service."""
        return self._locks

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Register the dependency providers.

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """

        def provide_locks() -> InstanceLocks:
            return self._locks

        def provide_service(db_session: AsyncSession) -> ProductionWorkflowService:
            return ProductionWorkflowService(
                db_session,
                config=self._config.engine,
                event_bus=self._config.event_bus,
                locks=self._locks,
            )

        app_config.dependencies[self._config.dependency_key_locks] = Provide(
            provide_locks,
            sync_to_thread=False,
        )
        app_config.dependencies[self._config.dependency_key_service] = Provide(
            provide_service,
            sync_to_thread=False,
        )
        return app_config
