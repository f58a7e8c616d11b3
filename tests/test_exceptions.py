"""Tests for exception hierarchy."""

from __future__ import annotations

from uuid import uuid4

import pytest


@pytest.mark.unit
class TestReworkWorkflowError:
    """Tests for base ReworkWorkflowError exception."""

    def test_base_exception_creation(self) -> None:
        """Test creating base ReworkWorkflowError."""
        from rework_workflow.exceptions import ReworkWorkflowError

        error = ReworkWorkflowError("Test error message")

        assert str(error) == "Test error message"
        assert isinstance(error, Exception)

    @pytest.mark.parametrize(
        "name",
        [
            "NotFoundError",
            "PersistenceError",
            "GateBlockedError",
            "NoNextStatusError",
            "ApprovalRequiredError",
            "StaleStepError",
            "InvalidTransitionError",
            "OperationTimeoutError",
        ],
    )
    def test_all_errors_inherit_from_base(self, name: str) -> None:
        """Test every public error can be caught as ReworkWorkflowError."""
        import rework_workflow.exceptions as exceptions

        assert issubclass(getattr(exceptions, name), exceptions.ReworkWorkflowError)


@pytest.mark.unit
class TestNotFoundErrors:
    """Tests for the not-found family."""

    def test_instance_not_found(self) -> None:
        """Test WorkflowInstanceNotFoundError carries the instance ID."""
        from rework_workflow.exceptions import NotFoundError, WorkflowInstanceNotFoundError

        instance_id = uuid4()
        error = WorkflowInstanceNotFoundError(instance_id)

        assert error.instance_id == instance_id
        assert str(instance_id) in str(error)
        assert isinstance(error, NotFoundError)

    def test_order_not_found(self) -> None:
        """Test OrderNotFoundError carries the order ID."""
        from rework_workflow.exceptions import NotFoundError, OrderNotFoundError

        error = OrderNotFoundError("order-1")

        assert error.order_id == "order-1"
        assert "order-1" in str(error)
        assert isinstance(error, NotFoundError)


@pytest.mark.unit
class TestPersistenceErrors:
    """Tests for store failures."""

    def test_persistence_error_with_cause(self) -> None:
        """Test the cause is kept and shown in the message."""
        from rework_workflow.exceptions import PersistenceError

        cause = RuntimeError("connection reset")
        error = PersistenceError("commit", cause=cause)

        assert error.operation == "commit"
        assert error.cause is cause
        assert "commit" in str(error)
        assert "connection reset" in str(error)

    def test_concurrent_transition_is_persistence_error(self) -> None:
        """Test a lost compare-and-swap is reported as a store failure."""
        from rework_workflow.exceptions import ConcurrentTransitionError, PersistenceError

        instance_id = uuid4()
        error = ConcurrentTransitionError(instance_id, "entrada")

        assert isinstance(error, PersistenceError)
        assert error.operation == "set_status"
        assert error.expected_status == "entrada"
        assert "entrada" in str(error)


@pytest.mark.unit
class TestSoftOutcomeErrors:
    """Tests for the errors raised by AdvanceResult.raise_for_outcome."""

    def test_gate_blocked_lists_reasons(self) -> None:
        """Test GateBlockedError lists the unmet checklists."""
        from rework_workflow.exceptions import GateBlockedError

        error = GateBlockedError(uuid4(), ("Bore inspection", "Crack test"))

        assert error.reasons == ["Bore inspection", "Crack test"]
        assert "Bore inspection, Crack test" in str(error)

    def test_no_next_status(self) -> None:
        """Test NoNextStatusError names the terminal status."""
        from rework_workflow.exceptions import NoNextStatusError

        error = NoNextStatusError("pronto")

        assert error.status == "pronto"
        assert "pronto" in str(error)

    def test_approval_required(self) -> None:
        """Test ApprovalRequiredError names both statuses."""
        from rework_workflow.exceptions import ApprovalRequiredError

        error = ApprovalRequiredError("orcamento", "usinagem")

        assert "orcamento" in str(error)
        assert "usinagem" in str(error)

    def test_stale_step(self) -> None:
        """Test StaleStepError names the status the instance is at."""
        from rework_workflow.exceptions import StaleStepError

        instance_id = uuid4()
        error = StaleStepError(instance_id, "metrologia")

        assert error.instance_id == instance_id
        assert error.status == "metrologia"
        assert "metrologia" in str(error)


@pytest.mark.unit
class TestInvalidTransitionError:
    """Tests for InvalidTransitionError."""

    def test_message_with_all_parts(self) -> None:
        """Test the message includes both statuses and the reason."""
        from rework_workflow.exceptions import InvalidTransitionError

        error = InvalidTransitionError("entrada", "metrologia", reason="transition does not require approval")

        assert str(error) == "Invalid transition from 'entrada' to 'metrologia': transition does not require approval"

    def test_message_without_target(self) -> None:
        """Test the target status is optional."""
        from rework_workflow.exceptions import InvalidTransitionError

        error = InvalidTransitionError("pronto")

        assert str(error) == "Invalid transition from 'pronto'"
        assert error.to_status is None


@pytest.mark.unit
def test_operation_timeout_message() -> None:
    """Test OperationTimeoutError reports operation and timeout."""
    from rework_workflow.exceptions import OperationTimeoutError

    error = OperationTimeoutError("complete_and_advance", 2.5)

    assert error.timeout == 2.5
    assert str(error) == "Operation 'complete_and_advance' timed out after 2.5s"
