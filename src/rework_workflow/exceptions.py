"""Exception hierarchy for rework-workflow.

Hard errors (``NotFoundError``, ``PersistenceError`` and their subclasses) abort
the operation that raised them. The soft outcomes of auto-advancement
(``GateBlockedError``, ``NoNextStatusError``, ``ApprovalRequiredError``,
``StaleStepError``) are returned as typed results by the engine and are only
raised on request through
:meth:`~rework_workflow.core.results.AdvanceResult.raise_for_outcome`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

__all__ = (
    "ApprovalRequiredError",
    "ConcurrentTransitionError",
    "GateBlockedError",
    "InvalidTransitionError",
    "NoNextStatusError",
    "NotFoundError",
    "OperationTimeoutError",
    "OrderNotFoundError",
    "PersistenceError",
    "ReworkWorkflowError",
    "StaleStepError",
    "WorkflowInstanceNotFoundError",
)


class ReworkWorkflowError(Exception):
    """Base exception for all rework-workflow errors.

    All exceptions raised by rework-workflow inherit from this class, so callers
    can catch every workflow-related error with a single except clause.
    """


class NotFoundError(ReworkWorkflowError):
    """Raised when a referenced record does not exist.

    Fatal for the current operation; no mutation has been performed.
    """


class WorkflowInstanceNotFoundError(NotFoundError):
    """Raised when a workflow instance is not found.

    Attributes:
        instance_id: The ID of the workflow instance that was not found.
    """

    def __init__(self, instance_id: str | UUID) -> None:
        """Initialize the exception with instance details.

        Args:
            instance_id: The ID of the workflow instance that was not found.
        """
        self.instance_id = instance_id
        super().__init__(f"Workflow instance '{instance_id}' not found")


class OrderNotFoundError(NotFoundError):
    """Raised when a service order is not found.

    Attributes:
        order_id: The ID of the order that was not found.
    """

    def __init__(self, order_id: str | UUID) -> None:
        """Initialize the exception with order details.

        Args:
            order_id: The ID of the order that was not found.
        """
        self.order_id = order_id
        super().__init__(f"Order '{order_id}' not found")


class PersistenceError(ReworkWorkflowError):
    """Raised when the underlying data store fails.

    The transaction of the failing operation has been rolled back. Writes committed
    by earlier steps of the same logical operation are not undone.

    Attributes:
        operation: Short name of the store operation that failed.
        cause: The underlying exception, if any.
    """

    def __init__(self, operation: str, cause: Exception | None = None, detail: str | None = None) -> None:
        """Initialize the exception with store failure details.

        Args:
            operation: Short name of the store operation that failed.
            cause: The underlying exception, if any.
            detail: Human-readable detail, used instead of ``cause`` in the message.
        """
        self.operation = operation
        self.cause = cause
        msg = f"Store operation '{operation}' failed"
        if detail:
            msg += f": {detail}"
        elif cause:
            msg += f": {cause}"
        super().__init__(msg)


class ConcurrentTransitionError(PersistenceError):
    """Raised when a compare-and-swap status update loses a race.

    Another writer moved the instance away from ``expected_status`` between the
    read and the write.

    Attributes:
        instance_id: The workflow instance being updated.
        expected_status: The status the writer expected to replace.
    """

    def __init__(self, instance_id: str | UUID, expected_status: str) -> None:
        self.instance_id = instance_id
        self.expected_status = expected_status
        super().__init__(
            "set_status",
            detail=f"workflow instance '{instance_id}' is no longer at status '{expected_status}'",
        )


class GateBlockedError(ReworkWorkflowError):
    """Raised when mandatory blocking checklists are unmet.

    Attributes:
        instance_id: The workflow instance that could not advance.
        reasons: Names of the unmet checklists.
    """

    def __init__(self, instance_id: str | UUID, reasons: Sequence[str]) -> None:
        """Initialize the exception with the unmet checklists.

        Args:
            instance_id: The workflow instance that could not advance.
            reasons: Names of the unmet checklists.
        """
        self.instance_id = instance_id
        self.reasons = list(reasons)
        super().__init__(f"Workflow instance '{instance_id}' blocked by checklists: {', '.join(self.reasons)}")


class NoNextStatusError(ReworkWorkflowError):
    """Raised when no active outgoing edge is configured for a status.

    Attributes:
        status: The status without a next step.
    """

    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__(f"No next status configured after '{status}'")


class ApprovalRequiredError(ReworkWorkflowError):
    """Raised when the next transition needs a manual approval.

    Attributes:
        from_status: The current status.
        to_status: The status awaiting approval.
    """

    def __init__(self, from_status: str, to_status: str) -> None:
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Transition from '{from_status}' to '{to_status}' requires approval")


class StaleStepError(ReworkWorkflowError):
    """Raised when the step a caller finished is no longer the open stage of the instance.

    Attributes:
        instance_id: The workflow instance.
        status: The status the instance is at.
    """

    def __init__(self, instance_id: str | UUID, status: str) -> None:
        self.instance_id = instance_id
        self.status = status
        super().__init__(f"Workflow instance '{instance_id}' has no finished step to advance from at '{status}'")


class InvalidTransitionError(ReworkWorkflowError):
    """Raised when a requested transition is not allowed by the configuration.

    Attributes:
        from_status: The status being transitioned from.
        to_status: The status being transitioned to, if known.
    """

    def __init__(self, from_status: str, to_status: str | None = None, reason: str | None = None) -> None:
        """Initialize the exception with transition details.

        Args:
            from_status: The status being transitioned from.
            to_status: The status being transitioned to, if known.
            reason: Additional context about why the transition is invalid.
        """
        self.from_status = from_status
        self.to_status = to_status
        msg = f"Invalid transition from '{from_status}'"
        if to_status:
            msg += f" to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class OperationTimeoutError(ReworkWorkflowError):
    """Raised when a workflow operation exceeds its configured timeout.

    Attributes:
        operation: Name of the operation that timed out.
        timeout: The timeout in seconds.
    """

    def __init__(self, operation: str, timeout: float) -> None:
        self.operation = operation
        self.timeout = timeout
        super().__init__(f"Operation '{operation}' timed out after {timeout:g}s")
