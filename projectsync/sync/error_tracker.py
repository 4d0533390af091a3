"""
Error taxonomy and error tracking for sync runs.

Three families of failures exist:
- Argument errors (``InvalidSelectorError``): raised before any network activity.
- Platform errors (``CtpApiError`` and subclasses): raised by the HTTP client and
  propagated unmodified by the orchestration core.
- Configuration errors (``ConfigurationError``): missing credentials or invalid settings.

``ErrorTracker`` aggregates what went wrong during a run so the CLI can print a
report after the clients have been released.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Dict, Any


class ErrorSeverity(Enum):
    """
    Defines the severity of an error.
    """
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class SyncError:
    """
    A structured object representing a single error that occurred during a sync run.
    """
    message: str
    source_id: Optional[str] = None
    severity: ErrorSeverity = ErrorSeverity.ERROR
    details: Dict[str, Any] = field(default_factory=dict)
    recovery_suggestion: Optional[str] = None

    def to_dict(self):
        return {
            "message": self.message,
            "source_id": self.source_id,
            "severity": self.severity.value,
            "details": self.details,
            "recovery_suggestion": self.recovery_suggestion
        }


# Custom Exception Classes
class SyncException(Exception):
    """Base class for all custom sync exceptions."""
    def __init__(self, message: str, source_id: Optional[str] = None, recovery_suggestion: Optional[str] = None):
        self.message = message
        self.source_id = source_id
        self.recovery_suggestion = recovery_suggestion
        super().__init__(self.message)


class ConfigurationError(SyncException):
    """Indicates missing credentials or an invalid configuration file."""
    pass


class InvalidSelectorError(SyncException, ValueError):
    """Indicates a blank or unknown value for the sync module option."""
    pass


class CtpApiError(SyncException):
    """A non-successful response from the commercetools HTTP API."""
    status_code: Optional[int] = None

    def __init__(self, message: str = "", status_code: Optional[int] = None, body: Optional[Dict[str, Any]] = None,
                 source_id: Optional[str] = None):
        if status_code is not None:
            self.status_code = status_code
        self.body = body or {}
        super().__init__(message or f"commercetools API responded with status {self.status_code}", source_id=source_id)


class BadRequestError(CtpApiError):
    status_code = 400


class NotFoundError(CtpApiError):
    status_code = 404


class ConcurrentModificationError(CtpApiError):
    status_code = 409


class BadGatewayError(CtpApiError):
    status_code = 502


class ServiceUnavailableError(CtpApiError):
    status_code = 503


class GatewayTimeoutError(CtpApiError):
    status_code = 504


ERRORS_BY_STATUS = {
    400: BadRequestError,
    404: NotFoundError,
    409: ConcurrentModificationError,
    502: BadGatewayError,
    503: ServiceUnavailableError,
    504: GatewayTimeoutError,
}

# Statuses the client retries before giving up
RETRYABLE_ERRORS = (BadGatewayError, ServiceUnavailableError, GatewayTimeoutError)


def error_for_status(status_code: int, body: Optional[Dict[str, Any]] = None) -> CtpApiError:
    """
    Build the exception matching an HTTP status returned by the platform.
    """
    body = body or {}
    message = body.get("message") or f"commercetools API responded with status {status_code}"
    error_class = ERRORS_BY_STATUS.get(status_code, CtpApiError)
    return error_class(message, status_code=status_code, body=body)


class ErrorTracker:
    """
    A centralized tracker for aggregating errors during a sync run.
    """
    def __init__(self):
        self.errors: List[SyncError] = []

    def report(self, message: str, source_id: Optional[str] = None, severity: ErrorSeverity = ErrorSeverity.ERROR, details: Optional[Dict[str, Any]] = None, recovery_suggestion: Optional[str] = None):
        """
        Report a new error.
        """
        error = SyncError(
            message=message,
            source_id=source_id,
            severity=severity,
            details=details or {},
            recovery_suggestion=recovery_suggestion
        )
        self.errors.append(error)

    def report_exception(self, exc: BaseException, source_id: Optional[str] = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        """
        Report an error from an exception, keeping SyncException context when present.
        """
        if isinstance(exc, SyncException):
            self.report(
                message=exc.message,
                source_id=exc.source_id or source_id,
                severity=severity,
                details={"exception": type(exc).__name__},
                recovery_suggestion=exc.recovery_suggestion
            )
        else:
            self.report(
                message=str(exc) or type(exc).__name__,
                source_id=source_id,
                severity=severity,
                details={"exception": type(exc).__name__}
            )

    def get_errors(self, min_severity: ErrorSeverity = ErrorSeverity.WARNING) -> List[SyncError]:
        """
        Get all errors at or above a certain severity level.
        """
        severity_map = {
            ErrorSeverity.WARNING: 1,
            ErrorSeverity.ERROR: 2,
            ErrorSeverity.CRITICAL: 3
        }
        min_level = severity_map.get(min_severity, 1)
        return [e for e in self.errors if severity_map.get(e.severity, 1) >= min_level]

    def has_critical_errors(self) -> bool:
        """
        Check if any critical errors have been reported.
        """
        return any(e.severity == ErrorSeverity.CRITICAL for e in self.errors)

    def generate_report(self) -> Dict[str, Any]:
        """
        Generate a summary report of all errors.
        """
        report = {
            "total_errors": len(self.errors),
            "critical_count": len(self.get_errors(ErrorSeverity.CRITICAL)),
            "error_count": len(self.get_errors(ErrorSeverity.ERROR)) - len(self.get_errors(ErrorSeverity.CRITICAL)),
            "warning_count": len(self.get_errors(ErrorSeverity.WARNING)) - len(self.get_errors(ErrorSeverity.ERROR)),
            "errors": [e.to_dict() for e in self.errors]
        }
        return report
