"""
Tests for error classification and user notifications.
"""

from datetime import datetime, timedelta

from business_logic.edit_applier import EditRejectedError, FieldPathError
from business_logic.error_handler import ErrorCategory, ErrorHandler, ErrorInfo, ErrorSeverity


class TestErrorHandler:
    """Test cases for ErrorHandler."""

    def setup_method(self):
        """Set up test fixtures."""
        self.handler = ErrorHandler(history_limit=3)

    def test_rejected_edit_carries_guidance(self):
        error = EditRejectedError("Type mismatch", guidance="Pass a plain number.")

        info = self.handler.classify_error(error, "apply edit")

        assert info.category == ErrorCategory.EDIT_ERROR
        assert info.user_message == "Type mismatch"
        assert info.suggested_action == "Pass a plain number."
        assert not info.retry_possible

    def test_field_path_error_is_user_error(self):
        info = self.handler.classify_error(FieldPathError("Malformed field path"), "apply edit")

        assert info.category == ErrorCategory.USER_ERROR

    def test_data_and_validation_errors(self):
        assert self.handler.classify_error(TypeError("bad shape")).category == ErrorCategory.DATA_ERROR
        assert self.handler.classify_error(KeyError("missing")).category == ErrorCategory.DATA_ERROR
        assert self.handler.classify_error(ValueError("negative")).category == ErrorCategory.VALIDATION_ERROR

    def test_unexpected_error_is_retryable(self):
        info = self.handler.classify_error(RuntimeError("boom"), "cascade")

        assert info.category == ErrorCategory.SYSTEM_ERROR
        assert info.retry_possible
        assert info.technical_details == "boom"

    def test_notification_for_warning(self):
        info = self.handler.classify_error(EditRejectedError("Index out of range", guidance="Use index 0."))

        notification = self.handler.create_user_notification(info)

        assert notification['type'] == 'warning'
        assert notification['title'] == "Edit Rejected"
        assert notification['action'] == "Use index 0."
        assert notification['dismissible']
        assert 'technical_details' not in notification

    def test_notification_for_error_includes_details(self):
        notification = self.handler.create_user_notification(self.handler.classify_error(TypeError("bad")))

        assert notification['type'] == 'error'
        assert notification['technical_details'] == "bad"
        assert not notification['dismissible']

    def test_history_is_bounded(self):
        for i in range(5):
            self.handler.log_error(self.handler.classify_error(ValueError(str(i))), "test")

        assert len(self.handler.error_history) == 3
        assert self.handler.error_history[0].user_message == "2"

    def test_statistics(self):
        self.handler.log_error(self.handler.classify_error(ValueError("a")), "test")
        self.handler.log_error(self.handler.classify_error(RuntimeError("b")), "test")
        old = ErrorInfo(
            category=ErrorCategory.DATA_ERROR,
            severity=ErrorSeverity.ERROR,
            message="old",
            user_message="old",
            timestamp=datetime.now() - timedelta(days=2)
        )
        self.handler.log_error(old, "test")

        stats = self.handler.get_error_statistics()

        assert stats['total_errors'] == 3
        assert stats['recent_errors_24h'] == 2
        assert stats['category_breakdown'] == {'validation_error': 1, 'system_error': 1}

    def test_clear_history(self):
        self.handler.log_error(self.handler.classify_error(ValueError("a")), "test")

        self.handler.clear_history()

        assert self.handler.get_error_statistics() == {'total_errors': 0}
