"""
Custom Exceptions for the Job Pipeline

Pipeline error taxonomy with error codes, categories and a fatal flag.
Fatal errors stop the running command; the rest are per-item failures
that the Processor counts and moves past.
"""

from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels for log triage."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification and handling."""
    NETWORK = "network"
    AUTHENTICATION = "authentication"
    BROWSER = "browser"
    EXTRACTION = "extraction"
    CONFLICT = "conflict"
    CACHE = "cache"
    EXTERNAL_SERVICE = "external_service"
    CONFIGURATION = "configuration"


class PipelineException(Exception):
    """
    Base exception for all pipeline errors.

    Carries structured error information so the CLI and the Processor can
    decide between counting a failure and aborting the run.
    """

    fatal: bool = False

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.EXTERNAL_SERVICE,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        details: Optional[Dict[str, Any]] = None,
        fatal: Optional[bool] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.category = category
        self.severity = severity
        self.details = details or {}
        if fatal is not None:
            self.fatal = fatal
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "fatal": self.fatal,
            "timestamp": self.timestamp.isoformat(),
            "details": self.details,
        }


# Network
class TransientNetworkError(PipelineException):
    """HTTP timeout or connection reset while talking to the backend."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code="TRANSIENT_NETWORK",
            category=ErrorCategory.NETWORK,
            severity=ErrorSeverity.LOW,
            **kwargs
        )


# Authentication
class AuthChallengeError(PipelineException):
    """Login hit a verification challenge that could not be answered."""

    fatal = True

    def __init__(self, message: str = "Login verification challenge could not be completed", **kwargs):
        super().__init__(
            message=message,
            error_code="AUTH_CHALLENGE",
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.HIGH,
            **kwargs
        )


class AuthFailedError(PipelineException):
    """Credentials were rejected or the session was lost."""

    fatal = True

    def __init__(self, message: str = "LinkedIn login failed", **kwargs):
        super().__init__(
            message=message,
            error_code="AUTH_FAILED",
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.HIGH,
            **kwargs
        )


# Browser
class BrowserError(PipelineException):
    """Script evaluation or interaction failed inside the browser."""

    def __init__(self, message: str, error_code: str = "BROWSER_ERROR", **kwargs):
        super().__init__(
            message=message,
            error_code=error_code,
            category=ErrorCategory.BROWSER,
            severity=ErrorSeverity.LOW,
            **kwargs
        )


class NavigationTimeoutError(BrowserError):
    """A page never reached its ready state within the deadline."""

    def __init__(self, url: str, timeout: float, **kwargs):
        super().__init__(
            message=f"Navigation to {url} timed out after {timeout:.0f}s",
            error_code="NAVIGATION_TIMEOUT",
            details={"url": url, "timeout_seconds": timeout},
            **kwargs
        )
        self.url = url


# Extraction
class ExtractionEmptyError(PipelineException):
    """The rendered page yielded neither a title nor a company."""

    def __init__(self, identifier: str, **kwargs):
        super().__init__(
            message=f"No title or company found for posting {identifier}",
            error_code="EXTRACTION_EMPTY",
            category=ErrorCategory.EXTRACTION,
            severity=ErrorSeverity.LOW,
            details={"identifier": identifier},
            **kwargs
        )
        self.identifier = identifier


# Backend
class AlreadyExistsError(PipelineException):
    """The backend already holds this posting."""

    def __init__(self, identifier: str, **kwargs):
        super().__init__(
            message=f"Job already exists (LinkedIn ID: {identifier})",
            error_code="ALREADY_EXISTS",
            category=ErrorCategory.CONFLICT,
            severity=ErrorSeverity.LOW,
            details={"identifier": identifier},
            **kwargs
        )
        self.identifier = identifier


class GatewayUnavailableError(PipelineException):
    """The backend could not be reached at all."""

    fatal = True

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code="GATEWAY_UNAVAILABLE",
            category=ErrorCategory.EXTERNAL_SERVICE,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


class GatewayResponseError(PipelineException):
    """The backend answered with an unexpected status or body."""

    def __init__(self, status_code: int, message: str, **kwargs):
        super().__init__(
            message=f"API error {status_code}: {message}",
            error_code="GATEWAY_RESPONSE",
            category=ErrorCategory.EXTERNAL_SERVICE,
            severity=ErrorSeverity.MEDIUM,
            details={"status_code": status_code},
            **kwargs
        )
        self.status_code = status_code


# Cache
class QueueUnavailableError(PipelineException):
    """The shared cache holding the work queue is unreachable."""

    fatal = True

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            error_code="QUEUE_UNAVAILABLE",
            category=ErrorCategory.CACHE,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


# Configuration
class ConfigMissingError(PipelineException):
    """Required configuration values are absent."""

    fatal = True

    def __init__(self, missing: List[str], **kwargs):
        super().__init__(
            message=f"Missing required configuration: {', '.join(missing)}",
            error_code="CONFIG_MISSING",
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            details={"missing": missing},
            **kwargs
        )
        self.missing = missing
