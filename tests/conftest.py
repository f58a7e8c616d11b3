"""Shared test fixtures for rework-workflow test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from uuid import uuid4

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from rework_workflow.core.types import ChecklistStatus, Component, TransitionType
from rework_workflow.db.models import (
    ChecklistModel,
    ChecklistResponseModel,
    OrderModel,
    StatusConfigModel,
    StatusDefinitionModel,
    StatusPrerequisiteModel,
    WorkflowInstanceModel,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from sqlalchemy.ext.asyncio import AsyncEngine

    from rework_workflow.db.store import SQLAlchemyWorkflowStore
    from rework_workflow.service import ProductionWorkflowService


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Create an async SQLite in-memory engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    # Enable foreign keys for SQLite
    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(WorkflowInstanceModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory bound to the test engine."""
    return async_sessionmaker(
        bind=async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def async_session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    """Create an async session for testing."""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(async_session: AsyncSession) -> SQLAlchemyWorkflowStore:
    """Create a workflow store on the test session."""
    from rework_workflow.db.store import SQLAlchemyWorkflowStore

    return SQLAlchemyWorkflowStore(async_session)


# =============================================================================
# Seed Data
# =============================================================================


class WorkflowSeeder:
    """Writes configuration and instance rows for tests."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def _save(self, model: Any) -> Any:
        self.session.add(model)
        await self.session.commit()
        return model

    async def order(self, org_id: str | None = "org-1") -> OrderModel:
        return await self._save(OrderModel(order_number=f"OS-{uuid4().hex[:6]}", org_id=org_id))

    async def instance(
        self,
        order: OrderModel,
        status: str = "entrada",
        component: Component = Component.BLOCK,
        *,
        started: bool = False,
        completed: bool = False,
    ) -> WorkflowInstanceModel:
        now = datetime.now(timezone.utc)
        return await self._save(
            WorkflowInstanceModel(
                order_id=order.id,
                component=component,
                status=status,
                started_at=now if started or completed else None,
                completed_at=now if completed else None,
            )
        )

    async def edge(
        self,
        from_status: str,
        to_status: str,
        transition_type: TransitionType = TransitionType.AUTOMATIC,
        *,
        component: Component | None = None,
        priority: int = 0,
        is_active: bool = True,
        entity_type: str = "workflow",
    ) -> StatusPrerequisiteModel:
        return await self._save(
            StatusPrerequisiteModel(
                from_status_key=from_status,
                to_status_key=to_status,
                entity_type=entity_type,
                component=component,
                transition_type=transition_type,
                priority=priority,
                is_active=is_active,
            )
        )

    async def status_config(
        self,
        status_key: str,
        *,
        allow_component_split: bool = True,
        entity_type: str = "workflow",
    ) -> StatusConfigModel:
        return await self._save(
            StatusConfigModel(
                status_key=status_key,
                entity_type=entity_type,
                status_label=status_key.title(),
                allow_component_split=allow_component_split,
            )
        )

    async def definition(
        self,
        step_key: str,
        component: Component = Component.BLOCK,
        *,
        technical_report_required: bool = False,
    ) -> StatusDefinitionModel:
        return await self._save(
            StatusDefinitionModel(
                step_key=step_key,
                component=component,
                step_name=step_key.title(),
                technical_report_required=technical_report_required,
                quality_checklist_required=False,
            )
        )

    async def checklist(
        self,
        step_key: str,
        name: str,
        component: Component = Component.BLOCK,
        *,
        blocks: bool = True,
        mandatory: bool = True,
        active: bool = True,
    ) -> ChecklistModel:
        return await self._save(
            ChecklistModel(
                step_key=step_key,
                component=component,
                checklist_name=name,
                is_mandatory=mandatory,
                is_active=active,
                blocks_workflow_advance=blocks,
            )
        )

    async def response(
        self,
        instance: WorkflowInstanceModel,
        checklist: ChecklistModel,
        overall_status: ChecklistStatus = ChecklistStatus.APPROVED,
    ) -> ChecklistResponseModel:
        return await self._save(
            ChecklistResponseModel(
                workflow_instance_id=instance.id,
                checklist_id=checklist.id,
                order_id=instance.order_id,
                component=instance.component,
                step_key=checklist.step_key,
                responses={"item_1": "ok"},
                measurements={"bore_mm": 82.01},
                non_conformities=[],
                overall_status=overall_status,
            )
        )


@pytest.fixture
def seed(async_session: AsyncSession) -> WorkflowSeeder:
    """Create a seeder writing to the test session."""
    return WorkflowSeeder(async_session)


# =============================================================================
# Engine Fixtures
# =============================================================================


class MockEventBus:
    """Mock event bus for testing."""

    def __init__(self) -> None:
        """Initialize mock event bus."""
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def emit(self, event_type: str, **kwargs: Any) -> None:
        """Emit an event."""
        self.events.append((event_type, kwargs))

    def of_type(self, event_type: str) -> list[Any]:
        """Return the event objects emitted under ``event_type``."""
        return [kwargs["event"] for emitted, kwargs in self.events if emitted == event_type]


@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Create mock event bus.

    Returns:
        MockEventBus instance
    """
    return MockEventBus()


@pytest.fixture
def service(async_session: AsyncSession, mock_event_bus: MockEventBus) -> ProductionWorkflowService:
    """Create a workflow service on the test session with a mock event bus."""
    from rework_workflow.service import ProductionWorkflowService

    return ProductionWorkflowService(async_session, event_bus=mock_event_bus)


@pytest.fixture
def lose_race_on_transition(
    service: ProductionWorkflowService,
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[[int], None]:
    """Make the n-th staged status change of ``service`` lose its compare-and-swap.

    Returns:
        Function taking the 1-based number of the call that fails.
    """
    from rework_workflow.exceptions import ConcurrentTransitionError

    def arm(failing_call: int) -> None:
        stage_transition = service.status_store.stage_transition
        calls = 0

        async def staged(instance: Any, new_status: str, **kwargs: Any) -> Any:
            nonlocal calls
            calls += 1
            if calls == failing_call:
                raise ConcurrentTransitionError(instance.id, instance.status)
            return await stage_transition(instance, new_status, **kwargs)

        monkeypatch.setattr(service.status_store, "stage_transition", staged)

    return arm


# Pytest configuration
def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers.

    Args:
        config: Pytest config object
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
