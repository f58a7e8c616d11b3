"""Configuration for the production workflow engine."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["EngineConfig"]


@dataclass
class EngineConfig:
    """Configuration shared by the workflow engine components.

    Attributes:
        entity_type: Entity type used to look up status edges and status
            configuration for components. Defaults to ``"workflow"``.
        system_actor: Actor recorded in the status history when no user is given.
        operation_timeout: Seconds each service operation may take before it is
            aborted with ``OperationTimeoutError``. None disables the timeout.
        report_number_prefix: Prefix of generated technical report numbers.

    Example:
        >>> config = EngineConfig(operation_timeout=10.0, system_actor="auto-advance")
    """

    entity_type: str = "workflow"
    system_actor: str = "system"
    operation_timeout: float | None = 30.0
    report_number_prefix: str = "RT"
