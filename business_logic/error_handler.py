"""
Error handling and user feedback for media plan edits.

This module classifies failures at the edit boundary and in the cascade into
structured ErrorInfo records, builds reviewer-facing notifications and keeps
a bounded error history for monitoring.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from .edit_applier import EditError, EditRejectedError, FieldPathError

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity of an edit or cascade failure."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Where a failure came from."""
    EDIT_ERROR = "edit_error"
    VALIDATION_ERROR = "validation_error"
    DATA_ERROR = "data_error"
    SYSTEM_ERROR = "system_error"
    USER_ERROR = "user_error"


@dataclass
class ErrorInfo:
    """Structured description of one failure."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    technical_details: Optional[str] = None
    suggested_action: Optional[str] = None
    retry_possible: bool = False
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()


class ErrorHandler:
    """
    Centralized error handling and user feedback.

    Edits rejected at the boundary are never retried automatically; the
    notification carries the guidance a reviewer or agent needs to fix the
    request.
    """

    def __init__(self, history_limit: int = 100):
        self.error_history = []
        self.history_limit = history_limit

    def handle_edit_error(self, error: EditError, context: str = "") -> ErrorInfo:
        """
        Handle an edit that could not be applied.

        Args:
            error: The edit exception
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        if isinstance(error, FieldPathError):
            return ErrorInfo(
                category=ErrorCategory.USER_ERROR,
                severity=ErrorSeverity.WARNING,
                message=f"Malformed field path in {context}: {str(error)}",
                user_message=str(error),
                suggested_action='Use dot-separated keys with optional indexes, e.g. "platformBreakdown[0].monthlyBudget".',
                retry_possible=False
            )

        guidance = error.guidance if isinstance(error, EditRejectedError) else None
        return ErrorInfo(
            category=ErrorCategory.EDIT_ERROR,
            severity=ErrorSeverity.WARNING,
            message=f"Edit rejected in {context}: {str(error)}",
            user_message=str(error),
            suggested_action=guidance,
            retry_possible=False
        )

    def handle_data_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Handle malformed plan or onboarding data.

        Args:
            error: The data exception
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        return ErrorInfo(
            category=ErrorCategory.DATA_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Invalid media plan data in {context}: {str(error)}",
            user_message="The media plan or onboarding data does not have the expected shape.",
            technical_details=str(error),
            suggested_action="Regenerate the plan or correct the reported field, then try again.",
            retry_possible=False
        )

    def handle_validation_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Handle a value rejected by a numeric or range check.

        Args:
            error: The validation exception
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        return ErrorInfo(
            category=ErrorCategory.VALIDATION_ERROR,
            severity=ErrorSeverity.WARNING,
            message=f"Validation error in {context}: {str(error)}",
            user_message=str(error),
            suggested_action="Correct the value and resubmit the edit.",
            retry_possible=False
        )

    def classify_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Map an exception raised at the edit boundary to ErrorInfo.

        Args:
            error: The exception to classify
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        if isinstance(error, EditError):
            return self.handle_edit_error(error, context)

        if isinstance(error, (TypeError, KeyError)):
            return self.handle_data_error(error, context)

        if isinstance(error, ValueError):
            return self.handle_validation_error(error, context)

        return ErrorInfo(
            category=ErrorCategory.SYSTEM_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Unexpected error in {context}: {str(error)}",
            user_message="The media plan could not be updated because of an unexpected error.",
            technical_details=str(error),
            suggested_action="Retry the edit. If it fails again, report the technical details.",
            retry_possible=True
        )

    def create_user_notification(self, error_info: ErrorInfo) -> Dict[str, Any]:
        """
        Build the notification shown to the reviewer or returned to the agent.

        Args:
            error_info: Structured error information

        Returns:
            Dictionary with notification data for the reviewer
        """
        notification_type_map = {
            ErrorSeverity.INFO: "info",
            ErrorSeverity.WARNING: "warning",
            ErrorSeverity.ERROR: "error",
            ErrorSeverity.CRITICAL: "error"
        }

        notification = {
            'type': notification_type_map[error_info.severity],
            'title': self._get_error_title(error_info),
            'message': error_info.user_message,
            'timestamp': error_info.timestamp.isoformat(),
            'dismissible': error_info.severity in [ErrorSeverity.INFO, ErrorSeverity.WARNING],
            'retry_possible': error_info.retry_possible
        }

        if error_info.suggested_action:
            notification['action'] = error_info.suggested_action

        if error_info.technical_details and error_info.severity in [ErrorSeverity.ERROR, ErrorSeverity.CRITICAL]:
            notification['technical_details'] = error_info.technical_details

        return notification

    def _get_error_title(self, error_info: ErrorInfo) -> str:
        title_map = {
            ErrorCategory.EDIT_ERROR: "Edit Rejected",
            ErrorCategory.VALIDATION_ERROR: "Validation Error",
            ErrorCategory.DATA_ERROR: "Data Error",
            ErrorCategory.SYSTEM_ERROR: "System Error",
            ErrorCategory.USER_ERROR: "Input Error"
        }

        return title_map.get(error_info.category, "Error")

    def log_error(self, error_info: ErrorInfo, context: str = ""):
        """
        Record a failure in the bounded history and log it at its severity.

        Args:
            error_info: Structured error information
            context: Additional context
        """
        self.error_history.append(error_info)

        if len(self.error_history) > self.history_limit:
            self.error_history = self.error_history[-self.history_limit:]

        log_message = f"{context}: {error_info.message}"

        if error_info.severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
        elif error_info.severity == ErrorSeverity.ERROR:
            logger.error(log_message)
        elif error_info.severity == ErrorSeverity.WARNING:
            logger.warning(log_message)
        else:
            logger.info(log_message)

    def get_error_statistics(self) -> Dict[str, Any]:
        """
        Summarize recorded failures by category and severity.

        Returns:
            Counts over the whole history and the last 24 hours
        """
        if not self.error_history:
            return {'total_errors': 0}

        category_counts = {}
        severity_counts = {}

        recent_errors = [
            err for err in self.error_history
            if err.timestamp > datetime.now() - timedelta(hours=24)
        ]

        for error in recent_errors:
            category_counts[error.category.value] = category_counts.get(error.category.value, 0) + 1
            severity_counts[error.severity.value] = severity_counts.get(error.severity.value, 0) + 1

        return {
            'total_errors': len(self.error_history),
            'recent_errors_24h': len(recent_errors),
            'category_breakdown': category_counts,
            'severity_breakdown': severity_counts
        }

    def clear_history(self):
        self.error_history = []


# Global error handler instance
error_handler = ErrorHandler()
