"""
Centralized error handling and user feedback system.

This module defines the planner's exception types and turns them into
structured, user-friendly notifications for the UI. Nothing here retries:
every retry is a manual repeat of the user action.
"""

import logging
from typing import Dict, Any, Optional, List
from enum import Enum
from dataclasses import dataclass
from datetime import datetime, timedelta

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class PlannerError(Exception):
    """Base class for recoverable planner errors."""
    pass


class SourceUnavailableError(PlannerError):
    """The site source could not be fetched or parsed."""
    pass


class CsvSchemaError(PlannerError):
    """An uploaded site list is missing required headers."""

    def __init__(self, missing: List[str], found: List[str]):
        self.missing = list(missing)
        self.found = list(found)
        super().__init__(
            f"CSV is missing required headers: {', '.join(self.missing)}. "
            f"Found: {', '.join(self.found) or 'none'}"
        )


class GeocodeNotFoundError(PlannerError):
    """The geocoder returned no candidates for a postcode."""

    def __init__(self, postcode: str):
        self.postcode = postcode
        super().__init__("Postcode not found")


class GeocodeFailedError(PlannerError):
    """The geocoding request failed or returned an unreadable response."""

    def __init__(self, postcode: str, reason: str = ""):
        self.postcode = postcode
        self.reason = reason
        super().__init__("Failed to geocode postcode")


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for better classification."""
    SOURCE_UNAVAILABLE = "source_unavailable"
    GEOCODE_NOT_FOUND = "geocode_not_found"
    GEOCODE_FAILED = "geocode_failed"
    VALIDATION_REJECTED = "validation_rejected"
    CSV_SCHEMA_INVALID = "csv_schema_invalid"
    SYSTEM_ERROR = "system_error"


@dataclass
class ErrorInfo:
    """Structured error information."""
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    user_message: str
    technical_details: Optional[str] = None
    suggested_action: Optional[str] = None
    timestamp: datetime = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()


class ErrorHandler:
    """
    Centralized error classification and user feedback.

    Maps planner exceptions to ErrorInfo records, keeps a bounded
    history for diagnostics and builds UI notifications.
    """

    def __init__(self, max_history: int = 100):
        self.error_history: List[ErrorInfo] = []
        self.max_history = max_history

    def classify_error(self, error: Exception, context: str = "") -> ErrorInfo:
        """
        Classify an error and return appropriate ErrorInfo.

        Args:
            error: The exception to classify
            context: Additional context about the operation

        Returns:
            ErrorInfo object with structured error information
        """
        if isinstance(error, CsvSchemaError):
            return ErrorInfo(
                category=ErrorCategory.CSV_SCHEMA_INVALID,
                severity=ErrorSeverity.ERROR,
                message=f"CSV schema invalid in {context}: {str(error)}",
                user_message=str(error),
                suggested_action="Download the CSV template and make sure the header row matches it.",
            )

        if isinstance(error, SourceUnavailableError):
            return ErrorInfo(
                category=ErrorCategory.SOURCE_UNAVAILABLE,
                severity=ErrorSeverity.ERROR,
                message=f"Site source unavailable in {context}: {str(error)}",
                user_message=f"Failed to load site data. {str(error)}",
                technical_details=str(error),
                suggested_action="Check the site source URL or network connection, or upload a CSV file.",
            )

        if isinstance(error, GeocodeNotFoundError):
            return ErrorInfo(
                category=ErrorCategory.GEOCODE_NOT_FOUND,
                severity=ErrorSeverity.WARNING,
                message=f"No geocoding result for '{error.postcode}'",
                user_message=str(error),
                suggested_action="Check the postcode spelling and try again.",
            )

        if isinstance(error, GeocodeFailedError):
            return ErrorInfo(
                category=ErrorCategory.GEOCODE_FAILED,
                severity=ErrorSeverity.WARNING,
                message=f"Geocoding failed for '{error.postcode}': {error.reason}",
                user_message=str(error),
                technical_details=error.reason or None,
                suggested_action="Check your internet connection and try again.",
            )

        if isinstance(error, (ValueError, TypeError)):
            return ErrorInfo(
                category=ErrorCategory.VALIDATION_REJECTED,
                severity=ErrorSeverity.INFO,
                message=f"Input rejected in {context}: {str(error)}",
                user_message=str(error),
            )

        # Generic system error
        return ErrorInfo(
            category=ErrorCategory.SYSTEM_ERROR,
            severity=ErrorSeverity.ERROR,
            message=f"Unexpected error in {context}: {str(error)}",
            user_message="An unexpected error occurred. Please try again.",
            technical_details=str(error),
            suggested_action="Repeat the action. If the problem persists, reload the page.",
        )

    def create_user_notification(self, error_info: ErrorInfo) -> Dict[str, Any]:
        """
        Create a user-friendly notification from error information.

        Args:
            error_info: Structured error information

        Returns:
            Dictionary with notification data for UI display
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
        }

        if error_info.suggested_action:
            notification['action'] = error_info.suggested_action

        return notification

    def _get_error_title(self, error_info: ErrorInfo) -> str:
        """Get appropriate title for error notification."""
        title_map = {
            ErrorCategory.SOURCE_UNAVAILABLE: "Site Data Unavailable",
            ErrorCategory.GEOCODE_NOT_FOUND: "Postcode Not Found",
            ErrorCategory.GEOCODE_FAILED: "Geocoding Error",
            ErrorCategory.VALIDATION_REJECTED: "Input Ignored",
            ErrorCategory.CSV_SCHEMA_INVALID: "Invalid CSV File",
            ErrorCategory.SYSTEM_ERROR: "System Error",
        }

        return title_map.get(error_info.category, "Error")

    def log_error(self, error_info: ErrorInfo, context: str = ""):
        """
        Log error information for monitoring and debugging.

        Args:
            error_info: Structured error information
            context: Additional context
        """
        self.error_history.append(error_info)

        # Keep only recent errors
        if len(self.error_history) > self.max_history:
            self.error_history = self.error_history[-self.max_history:]

        log_message = f"{context}: {error_info.message}"

        if error_info.severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
        elif error_info.severity == ErrorSeverity.ERROR:
            logger.error(log_message)
        elif error_info.severity == ErrorSeverity.WARNING:
            logger.warning(log_message)
        else:
            logger.info(log_message)

    def handle(self, error: Exception, context: str = "") -> Dict[str, Any]:
        """Classify, log and build a notification in one step."""
        error_info = self.classify_error(error, context)
        self.log_error(error_info, context)
        return self.create_user_notification(error_info)

    def get_error_statistics(self) -> Dict[str, Any]:
        """
        Get error statistics for monitoring.

        Returns:
            Dictionary with error statistics
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
            'severity_breakdown': severity_counts,
        }


# Global error handler instance
error_handler = ErrorHandler()
