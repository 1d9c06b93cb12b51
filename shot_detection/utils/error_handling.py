"""
Error Handling Utilities
This module provides the package exception types and centralized, user-friendly error records.
"""

import logging
import traceback
from typing import Dict, List, Optional, Any, Callable, Tuple
from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime

logger = logging.getLogger(__name__)


class ShotDetectionError(Exception):
    """Base class for errors raised by this package."""


class AnnotationStoreError(ShotDetectionError):
    """Invalid use of the annotation store (e.g. seeding twice)."""


class DetectionResponseError(ShotDetectionError):
    """Detection service payload could not be parsed."""


class ServiceError(ShotDetectionError):
    """External service call failed."""

    def __init__(self, message: str, status_code: int = 0, endpoint: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.endpoint = endpoint


class ErrorSeverity(Enum):
    """Error severity levels."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

class ErrorCategory(Enum):
    """Error categories for classification."""
    NETWORK = "network"
    API = "api"
    DATA = "data"
    EDITING = "editing"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"

@dataclass
class ErrorContext:
    """Context information for an error."""
    component: str
    operation: str
    user_action: Optional[str] = None
    additional_data: Optional[Dict[str, Any]] = None

@dataclass
class ErrorRecord:
    """Record of an error occurrence."""
    error_id: str
    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    original_exception: Optional[Exception]
    context: Optional[ErrorContext]
    timestamp: datetime
    stack_trace: Optional[str] = None
    user_friendly_message: Optional[str] = None
    suggested_actions: List[str] = field(default_factory=list)
    resolved: bool = False

class ErrorHandlingSystem:
    """
    Centralized error handling for the detection and save flows.
    Classifies exceptions, keeps a bounded history and notifies listeners.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the error handling system.

        Args:
            config: Configuration dictionary
        """
        self.config = config or {}

        self.error_history: List[ErrorRecord] = []
        self.max_history_size = self.config.get('max_error_history', 100)
        self.error_statistics: Dict[str, Any] = {
            'total_errors': 0,
            'by_category': {},
            'by_severity': {},
            'by_component': {},
        }

        self.error_translations = self._load_error_translations()
        self.log_errors = self.config.get('log_errors', True)
        self.notification_callbacks: List[Callable] = []
        self._error_counter = 0

    def _load_error_translations(self) -> Dict[str, Dict[str, Any]]:
        """Load user-facing messages and recovery suggestions."""
        return {
            'ServiceError': {
                'category': ErrorCategory.API,
                'severity': ErrorSeverity.ERROR,
                'user_message': 'The service could not complete the request.',
                'suggested_actions': ['Try again', 'Check your connection'],
            },
            'DetectionResponseError': {
                'category': ErrorCategory.DATA,
                'severity': ErrorSeverity.ERROR,
                'user_message': 'Could not analyze the image. Please try again.',
                'suggested_actions': ['Retake the photo', 'Try again'],
            },
            'AnnotationStoreError': {
                'category': ErrorCategory.EDITING,
                'severity': ErrorSeverity.WARNING,
                'user_message': 'The detections could not be updated.',
                'suggested_actions': ['Retake the photo'],
            },
            'ConnectionError': {
                'category': ErrorCategory.NETWORK,
                'severity': ErrorSeverity.ERROR,
                'user_message': 'Unable to reach the server.',
                'suggested_actions': ['Check your connection', 'Try again'],
            },
            'Timeout': {
                'category': ErrorCategory.NETWORK,
                'severity': ErrorSeverity.WARNING,
                'user_message': 'The server took too long to respond.',
                'suggested_actions': ['Try again'],
            },
            'ValidationError': {
                'category': ErrorCategory.DATA,
                'severity': ErrorSeverity.ERROR,
                'user_message': 'Received data in an unexpected format.',
                'suggested_actions': ['Try again'],
            },
        }

    def handle_error(self,
                     exception: Exception,
                     component: str = "unknown",
                     operation: str = "unknown",
                     user_action: Optional[str] = None,
                     additional_data: Optional[Dict[str, Any]] = None) -> ErrorRecord:
        """
        Handle an error with logging and user-friendly messaging.

        Args:
            exception: The exception that occurred
            component: Component where error occurred
            operation: Operation being performed
            user_action: User action that triggered the error
            additional_data: Additional context data

        Returns:
            ErrorRecord with all error information
        """
        self._error_counter += 1
        error_id = f"ERR_{int(datetime.now().timestamp())}_{self._error_counter}"

        context = ErrorContext(
            component=component,
            operation=operation,
            user_action=user_action,
            additional_data=additional_data
        )

        category, severity, user_message, suggested_actions = self._classify_error(exception)

        stack_trace = None
        if self.log_errors and exception.__traceback__ is not None:
            stack_trace = ''.join(traceback.format_exception(type(exception), exception, exception.__traceback__))

        error_record = ErrorRecord(
            error_id=error_id,
            category=category,
            severity=severity,
            message=str(exception),
            original_exception=exception,
            context=context,
            timestamp=datetime.now(),
            stack_trace=stack_trace,
            user_friendly_message=user_message,
            suggested_actions=suggested_actions
        )

        self._store_error(error_record)
        self._log_error(error_record)
        self._send_notifications(error_record)

        return error_record

    def _classify_error(self, exception: Exception) -> Tuple[ErrorCategory, ErrorSeverity, str, List[str]]:
        """Classify error and generate user-friendly message."""
        # Walk the MRO so subclasses (e.g. requests' ConnectTimeout) pick up their parent's entry
        for klass in type(exception).__mro__:
            error_info = self.error_translations.get(klass.__name__)
            if error_info:
                return (
                    error_info['category'],
                    error_info['severity'],
                    error_info['user_message'],
                    list(error_info['suggested_actions'])
                )

        if isinstance(exception, OSError):
            return ErrorCategory.NETWORK, ErrorSeverity.ERROR, "A network error occurred.", ["Check your connection"]
        elif isinstance(exception, ValueError):
            return ErrorCategory.DATA, ErrorSeverity.ERROR, "Invalid data provided.", ["Check input data"]
        elif isinstance(exception, KeyError):
            return ErrorCategory.CONFIGURATION, ErrorSeverity.ERROR, "Missing required configuration.", ["Check settings"]
        else:
            return ErrorCategory.UNKNOWN, ErrorSeverity.ERROR, f"An error occurred: {exception}", ["Try again"]

    def _store_error(self, error_record: ErrorRecord):
        """Store error record in history."""
        self.error_history.append(error_record)

        if len(self.error_history) > self.max_history_size:
            self.error_history.pop(0)

        stats = self.error_statistics
        stats['total_errors'] += 1
        category = error_record.category.value
        stats['by_category'][category] = stats['by_category'].get(category, 0) + 1
        severity = error_record.severity.value
        stats['by_severity'][severity] = stats['by_severity'].get(severity, 0) + 1
        component = error_record.context.component
        stats['by_component'][component] = stats['by_component'].get(component, 0) + 1

    def _log_error(self, error_record: ErrorRecord):
        """Log error with appropriate level."""
        if not self.log_errors:
            return

        log_message = f"{error_record.error_id} [{error_record.category.value}] {error_record.message}"
        if error_record.context:
            log_message += f" (Component: {error_record.context.component}, Operation: {error_record.context.operation})"

        if error_record.severity == ErrorSeverity.CRITICAL:
            logger.critical(log_message)
        elif error_record.severity == ErrorSeverity.ERROR:
            logger.error(log_message)
        elif error_record.severity == ErrorSeverity.WARNING:
            logger.warning(log_message)
        else:
            logger.info(log_message)

        if error_record.stack_trace and error_record.severity in [ErrorSeverity.ERROR, ErrorSeverity.CRITICAL]:
            logger.debug(f"Stack trace for {error_record.error_id}:\n{error_record.stack_trace}")

    def _send_notifications(self, error_record: ErrorRecord):
        """Send error notifications to registered callbacks."""
        for callback in self.notification_callbacks:
            try:
                callback(error_record)
            except Exception as e:
                logger.error(f"Error in notification callback: {e}")

    def add_notification_callback(self, callback: Callable):
        """Register a callback receiving every ErrorRecord."""
        self.notification_callbacks.append(callback)

    def get_error_history(self, limit: Optional[int] = None,
                          category: Optional[ErrorCategory] = None) -> List[ErrorRecord]:
        """Get recorded errors, newest last."""
        history = self.error_history
        if category is not None:
            history = [record for record in history if record.category == category]
        if limit is not None:
            history = history[-limit:]
        return list(history)

    def get_error_statistics(self) -> Dict[str, Any]:
        """Get a copy of the error statistics."""
        return {
            'total_errors': self.error_statistics['total_errors'],
            'by_category': dict(self.error_statistics['by_category']),
            'by_severity': dict(self.error_statistics['by_severity']),
            'by_component': dict(self.error_statistics['by_component']),
        }

    def resolve_error(self, error_id: str) -> bool:
        """Mark an error as resolved."""
        for record in self.error_history:
            if record.error_id == error_id:
                record.resolved = True
                logger.info(f"Error resolved: {error_id}")
                return True
        return False

    def clear_error_history(self):
        """Clear error history and statistics."""
        self.error_history.clear()
        self.error_statistics = {
            'total_errors': 0,
            'by_category': {},
            'by_severity': {},
            'by_component': {},
        }
