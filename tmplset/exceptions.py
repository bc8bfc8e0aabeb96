"""Custom exceptions for tmplset with structured error codes."""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Error codes for structured error reporting."""

    # Generic errors
    TEMPLATE_ERROR = "TEMPLATE_ERROR"

    # Loader errors
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    TEMPLATE_IO_ERROR = "TEMPLATE_IO_ERROR"

    # Compilation errors
    TEMPLATE_PARSE_ERROR = "TEMPLATE_PARSE_ERROR"
    EMPTY_CHAIN = "EMPTY_CHAIN"

    # Render errors
    TEMPLATE_EXECUTION_ERROR = "TEMPLATE_EXECUTION_ERROR"

    # Configuration errors
    CONFIG_ERROR = "CONFIG_ERROR"
    CONFIG_INVALID = "CONFIG_INVALID"


class TmplException(Exception):
    """Base exception for template errors.

    All custom exceptions should inherit from this class so callers can
    catch every failure of a render with a single except clause.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.TEMPLATE_ERROR,
        details: dict[str, Any] | None = None,
    ):
        """Initialize template exception.

        Args:
            message: Human-readable error message
            code: Error code from ErrorCode enum
            details: Additional error context/details
        """
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class LoadException(TmplException):
    """Template source could not be loaded."""

    def __init__(
        self,
        message: str,
        name: str,
        code: ErrorCode = ErrorCode.TEMPLATE_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ):
        self.name = name
        super().__init__(message, code, {"name": name, **(details or {})})


class ParseException(TmplException):
    """A chain member has malformed template syntax."""

    def __init__(
        self,
        message: str,
        name: str | None = None,
        lineno: int | None = None,
        code: ErrorCode = ErrorCode.TEMPLATE_PARSE_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.name = name
        self.lineno = lineno
        super().__init__(message, code, {"name": name, "lineno": lineno, **(details or {})})


class ExecutionException(TmplException):
    """The engine failed while rendering a compiled chain against a view."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, code=ErrorCode.TEMPLATE_EXECUTION_ERROR, details=details)


class ConfigurationException(TmplException):
    """Configuration errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIG_ERROR,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, code, details)
