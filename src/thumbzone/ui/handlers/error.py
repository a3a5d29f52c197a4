"""
Centralized error handling and classification for thumbzone application.

Every failure the gallery can report is one of the exception classes below.
Classification works on exception types and on the typed store error kind,
never on the wording of an error message.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from thumbzone.logging_config import get_logger, log_error

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Error categories for classification and handling."""

    VALIDATION = "validation"
    ENCODING = "encoding"
    STORE = "store"
    CRITIQUE = "critique"
    SYSTEM = "system"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Error severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class StoreErrorKind(Enum):
    """Why a document store operation failed."""

    UNREACHABLE = "unreachable"
    REJECTED = "rejected"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UNKNOWN = "unknown"


@dataclass
class ErrorInfo:
    """Structured error information."""

    category: ErrorCategory
    severity: ErrorSeverity
    code: str
    message: str
    user_message: str
    details: dict[str, Any]
    timestamp: datetime
    recoverable: bool = True
    retry_suggested: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert error info to dictionary."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
            "recoverable": self.recoverable,
            "retry_suggested": self.retry_suggested,
        }


class ThumbZoneError(Exception):
    """Base exception class for thumbzone application."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
        retry_suggested: bool = False,
        original_exception: Exception | None = None,
    ):
        super().__init__(message)
        self.category = category
        self.severity = severity
        self.code = code or f"{category.value}_error"
        self.user_message = user_message or self._generate_user_message()
        self.details = details or {}
        self.recoverable = recoverable
        self.retry_suggested = retry_suggested
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        self._log_error()

    def _generate_user_message(self) -> str:
        """Generate user-friendly error message."""
        user_messages = {
            ErrorCategory.VALIDATION: "Please check the values you entered.",
            ErrorCategory.ENCODING: "The selected image could not be read.",
            ErrorCategory.STORE: "Could not communicate with the database.",
            ErrorCategory.CRITIQUE: "The critique could not be generated.",
            ErrorCategory.SYSTEM: "A system error occurred.",
            ErrorCategory.UNKNOWN: "An unexpected error occurred.",
        }
        return user_messages.get(self.category, "An error occurred.")

    def _log_error(self) -> None:
        """Log the error; low severity errors are user input problems and only warn."""
        error_context = {
            "category": self.category.value,
            "severity": self.severity.value,
            "code": self.code,
            "recoverable": self.recoverable,
            **self.details,
        }
        if self.original_exception:
            error_context["original_exception"] = str(self.original_exception)

        if self.severity is ErrorSeverity.LOW:
            logger.warning("error_raised", error_type=type(self).__name__, error_message=str(self), **error_context)
        else:
            log_error(self, error_context)

    def get_error_info(self) -> ErrorInfo:
        """Get structured error information."""
        return ErrorInfo(
            category=self.category,
            severity=self.severity,
            code=self.code,
            message=str(self),
            user_message=self.user_message,
            details=self.details,
            timestamp=self.timestamp,
            recoverable=self.recoverable,
            retry_suggested=self.retry_suggested,
        )


class ValidationError(ThumbZoneError):
    """User input that cannot be accepted: bad title, category or image."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        field: str | None = None,
        original_exception: Exception | None = None,
    ):
        self.field = field
        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.LOW,
            code=code or "validation_failed",
            user_message=user_message or message,
            details={**(details or {}), **({"field": field} if field else {})},
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class PayloadTooLargeError(ValidationError):
    """The encoded image exceeds the document size ceiling."""

    def __init__(self, size: int, limit: int, user_message: str | None = None):
        self.size = size
        self.limit = limit
        super().__init__(
            f"Encoded image is too large ({size} bytes, limit {limit} bytes)",
            code="payload_too_large",
            user_message=user_message
            or f"The image is too large to store ({size / 1024:.0f} KB encoded, limit {limit / 1024:.0f} KB).",
            details={"size": size, "limit": limit},
            field="image",
        )


class EncodingError(ThumbZoneError):
    """The selected file could not be read or decoded."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.ENCODING,
            severity=ErrorSeverity.MEDIUM,
            code=code or "encoding_failed",
            user_message=user_message or "The selected image could not be read. Please choose another file.",
            details=details,
            recoverable=True,
            retry_suggested=False,
            original_exception=original_exception,
        )


class DocumentStoreError(ThumbZoneError):
    """A document store operation failed; ``kind`` says why."""

    _USER_MESSAGES = {
        StoreErrorKind.UNREACHABLE: "Could not reach the database. Check your connection and configuration.",
        StoreErrorKind.REJECTED: "The database rejected the request.",
        StoreErrorKind.PAYLOAD_TOO_LARGE: "The image is too large for the database.",
        StoreErrorKind.UNKNOWN: "An unknown database error occurred.",
    }

    def __init__(
        self,
        message: str,
        kind: StoreErrorKind = StoreErrorKind.UNKNOWN,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        self.kind = kind
        super().__init__(
            message=message,
            category=ErrorCategory.STORE,
            severity=ErrorSeverity.HIGH,
            code=code or f"store_{kind.value}",
            user_message=user_message or self._USER_MESSAGES[kind],
            details={"kind": kind.value, **(details or {})},
            recoverable=True,
            retry_suggested=kind is StoreErrorKind.UNREACHABLE,
            original_exception=original_exception,
        )


class CritiqueError(ThumbZoneError):
    """The critique service failed or returned output outside its schema."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        user_message: str | None = None,
        details: dict[str, Any] | None = None,
        original_exception: Exception | None = None,
    ):
        super().__init__(
            message=message,
            category=ErrorCategory.CRITIQUE,
            severity=ErrorSeverity.MEDIUM,
            code=code or "critique_failed",
            user_message=user_message or "The critique could not be generated. Please try again later.",
            details=details,
            recoverable=True,
            retry_suggested=True,
            original_exception=original_exception,
        )


class ErrorHandler:
    """Centralized error handler for the application."""

    def __init__(self) -> None:
        self.error_counts: dict[str, int] = {}
        self.logger = get_logger(__name__)

    def handle_error(
        self,
        error: Exception,
        context: dict[str, Any] | None = None,
    ) -> ErrorInfo:
        """
        Handle and classify errors.

        Args:
            error: Exception to handle
            context: Additional context information

        Returns:
            ErrorInfo: Structured error information
        """
        if isinstance(error, ThumbZoneError):
            error_info = error.get_error_info()
        else:
            error_info = self._classify_error(error, context or {}).get_error_info()

        self._track_error(error_info.code)
        return error_info

    def _classify_error(self, error: Exception, context: dict[str, Any]) -> ThumbZoneError:
        """Wrap a foreign exception by its type."""
        details = {"original_type": type(error).__name__, **context}

        if isinstance(error, (ConnectionError, TimeoutError)):
            return DocumentStoreError(
                str(error), kind=StoreErrorKind.UNREACHABLE, details=details, original_exception=error
            )

        if isinstance(error, (UnicodeError, EOFError)):
            return EncodingError(str(error), details=details, original_exception=error)

        if isinstance(error, (MemoryError, SystemError, OSError)):
            return ThumbZoneError(
                str(error),
                category=ErrorCategory.SYSTEM,
                severity=ErrorSeverity.CRITICAL,
                details=details,
                recoverable=False,
                original_exception=error,
            )

        return ThumbZoneError(
            str(error),
            category=ErrorCategory.UNKNOWN,
            severity=ErrorSeverity.MEDIUM,
            details=details,
            original_exception=error,
        )

    def _track_error(self, error_code: str) -> None:
        """Track error occurrence for monitoring."""
        self.error_counts[error_code] = self.error_counts.get(error_code, 0) + 1

        if self.error_counts[error_code] % 10 == 0:
            self.logger.warning("frequent_error_detected", error_code=error_code, count=self.error_counts[error_code])

    def get_error_statistics(self) -> dict[str, int]:
        """Get error occurrence statistics."""
        return self.error_counts.copy()

    def reset_statistics(self) -> None:
        """Reset error statistics."""
        self.error_counts.clear()


error_handler = ErrorHandler()


def handle_error(error: Exception, context: dict[str, Any] | None = None) -> ErrorInfo:
    """Global error handling function."""
    return error_handler.handle_error(error, context)


def get_error_handler() -> ErrorHandler:
    """Get the global error handler instance."""
    return error_handler
