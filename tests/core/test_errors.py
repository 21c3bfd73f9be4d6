"""Tests for the structured error hierarchy."""

import pytest

from recur.core.errors import (
    ActionAlreadySpecifiedError,
    CallbackFault,
    CancelledOperationResumeError,
    ConfigError,
    DuplicateOperationNameError,
    ErrorCategory,
    ErrorContext,
    InvalidConfigError,
    InvalidIntervalError,
    MissingWorkError,
    OperationError,
    RecurError,
    UninitializedOperationError,
    UnnamedOperationError,
    ValidationError,
)


class TestErrorContext:
    def test_empty_context(self):
        assert ErrorContext().to_dict() == {}

    def test_only_set_fields(self):
        ctx = ErrorContext(operation="sync", interval_seconds=5.0)
        assert ctx.to_dict() == {"operation": "sync", "interval_seconds": 5.0}

    def test_metadata_merged(self):
        ctx = ErrorContext(operation="sync", metadata={"attempt": 2})
        assert ctx.to_dict() == {"operation": "sync", "attempt": 2}


class TestRecurError:
    def test_defaults(self):
        error = RecurError("Something broke")

        assert str(error) == "Something broke"
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.cause is None

    def test_with_context(self):
        error = RecurError("x").with_context(operation="sync", owner="billing")

        assert error.context.operation == "sync"
        assert error.context.metadata == {"owner": "billing"}

    def test_cause_is_chained(self):
        cause = ValueError("root")
        error = RecurError("wrapped", cause=cause)

        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "root"

    def test_to_dict(self):
        error = DuplicateOperationNameError("sync")
        d = error.to_dict()

        assert d["error_type"] == "DuplicateOperationNameError"
        assert d["category"] == "ORCHESTRATION"
        assert d["retryable"] is False
        assert d["context"] == {"operation": "sync"}

    def test_repr(self):
        assert repr(RecurError("x")) == "RecurError('x', category=INTERNAL)"


class TestOperationErrors:
    @pytest.mark.parametrize(
        "error",
        [
            UninitializedOperationError(),
            DuplicateOperationNameError("a"),
            CancelledOperationResumeError("a"),
            ActionAlreadySpecifiedError("a"),
            MissingWorkError("a"),
        ],
    )
    def test_lifecycle_errors_are_orchestration(self, error):
        assert isinstance(error, OperationError)
        assert error.category == ErrorCategory.ORCHESTRATION

    def test_duplicate_name_message(self):
        error = DuplicateOperationNameError("RecurringExceptionTest")

        assert "RecurringExceptionTest" in str(error)
        assert error.operation_name == "RecurringExceptionTest"

    def test_cancelled_resume_context(self):
        error = CancelledOperationResumeError("sync")
        assert error.context.status == "CANCELLED"

    def test_callback_fault_from_exception(self):
        exc = KeyError("missing")
        fault = CallbackFault.from_exception("sync", exc)

        assert fault.category == ErrorCategory.CALLBACK
        assert fault.cause is exc
        assert "KeyError" in fault.message
        assert fault.to_dict()["context"] == {"operation": "sync"}


class TestValidationErrors:
    def test_unnamed(self):
        error = UnnamedOperationError("")

        assert isinstance(error, ValidationError)
        assert error.field == "name"
        assert error.to_dict()["value"] == "''"

    def test_invalid_interval(self):
        error = InvalidIntervalError("sync", -1)

        assert error.category == ErrorCategory.VALIDATION
        assert error.field == "interval"
        assert error.value == -1
        assert error.context.operation == "sync"

    def test_invalid_config(self):
        error = InvalidConfigError("level", "LOUD")

        assert isinstance(error, ConfigError)
        assert error.category == ErrorCategory.CONFIG
        assert "LOUD" in str(error)
