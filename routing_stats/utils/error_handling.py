#!/usr/bin/env python3
"""
Routing Stats Error Handling Utilities

Provides the exception hierarchy, standardized error formatting and
parameter validation used across the CLI, the report service and the daemon.

Error Format Standards:
- INFO: "✓ {message}"                    # Success messages
- WARNING: "⚠ {message}"                 # Warning messages
- ERROR: "✗ {message}"                   # Error messages
- FATAL: "✗ Fatal: {message}"            # Critical errors
- USAGE: "Usage: {usage_help}"           # Usage guidance
"""

import os
import logging
from pathlib import Path
from typing import Optional, Dict, Any, Union
from functools import wraps


class ErrorSeverity:
    """Error severity levels for consistent classification"""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"
    USAGE = "usage"


class RoutingStatsError(Exception):
    """Base exception class for routing-stats with standardized error handling"""

    def __init__(self, message: str, severity: str = ErrorSeverity.ERROR,
                 guidance: Optional[str] = None, technical_details: Optional[str] = None):
        self.message = message
        self.severity = severity
        self.guidance = guidance
        self.technical_details = technical_details
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Structured form for API responses"""
        result = {
            'error': type(self).__name__,
            'message': self.message,
            'severity': self.severity,
        }
        if self.guidance:
            result['guidance'] = self.guidance
        return result


class ValidationError(RoutingStatsError):
    """Raised when parameter validation fails"""

    def __init__(self, message: str, parameter: str = None, guidance: str = None):
        self.parameter = parameter
        super().__init__(message, ErrorSeverity.ERROR, guidance)


class MalformedPrefix(ValidationError):
    """Text does not parse as an IP address, prefix or address range"""

    def __init__(self, text: str, reason: str = None):
        self.text = text
        message = f"Malformed prefix '{text}'"
        if reason:
            message += f": {reason}"
        super().__init__(message, "prefix",
                         "Use address/length (e.g. 193.0.0.0/21) or first-last address notation")


class MalformedAsn(ValidationError):
    """Text does not parse as an AS number or AS number range"""

    def __init__(self, text: str, reason: str = None):
        self.text = text
        message = f"Malformed AS number '{text}'"
        if reason:
            message += f": {reason}"
        super().__init__(message, "asn",
                         "Use a 32-bit AS number such as AS3333, or a range like AS64496-AS64511")


class InvalidScope(ValidationError):
    """A scope string contains a token that is not a prefix, range or ASN"""

    def __init__(self, token: str, cause: Optional[ValidationError] = None):
        self.token = token
        self.cause = cause
        message = f"Invalid scope entry '{token}'"
        if cause is not None:
            message += f" ({cause.message})"
        super().__init__(
            message, "scope",
            "Separate entries with commas; each entry must be a prefix, an address "
            "range, an ASN or an ASN range"
        )

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result['token'] = self.token
        return result


class IndexBuildFailure(RoutingStatsError):
    """Raised when a record violates an index invariant or a builder is misused"""
    pass


class ConfigurationError(RoutingStatsError):
    """Raised when configuration is invalid or missing"""
    pass


class SnapshotUnavailable(RoutingStatsError):
    """Raised when a report is requested before any dataset was published"""

    def __init__(self, message: str = "No routing dataset has been loaded yet"):
        super().__init__(message, ErrorSeverity.ERROR,
                         "Wait for the initial load to finish or check the daemon log")


class ErrorFormatter:
    """Centralized error message formatting with consistent symbols and styles"""

    SYMBOLS = {
        ErrorSeverity.INFO: "✓",
        ErrorSeverity.WARNING: "⚠",
        ErrorSeverity.ERROR: "✗",
        ErrorSeverity.FATAL: "✗ Fatal:",
        ErrorSeverity.USAGE: "Usage:"
    }

    @classmethod
    def format_message(cls, message: str, severity: str = ErrorSeverity.ERROR,
                       guidance: Optional[str] = None) -> str:
        """Format a message with the appropriate symbol and structure"""
        symbol = cls.SYMBOLS.get(severity, "•")
        formatted = f"{symbol} {message}"

        if guidance:
            formatted += f"\n  Suggestion: {guidance}"

        return formatted

    @classmethod
    def format_error(cls, error: Union[Exception, RoutingStatsError],
                     hide_technical: bool = True) -> str:
        """Format an exception with appropriate level of detail"""
        if isinstance(error, RoutingStatsError):
            formatted = cls.format_message(error.message, error.severity, error.guidance)
            if not hide_technical and error.technical_details:
                formatted += f"\n  Technical: {error.technical_details}"
            return formatted

        error_type = type(error).__name__
        message = str(error)

        if isinstance(error, FileNotFoundError):
            guidance = "Check that the file path is correct and the file exists"
            return cls.format_message(f"File not found: {message}",
                                      ErrorSeverity.ERROR, guidance)
        elif isinstance(error, PermissionError):
            guidance = "Check file permissions or run with appropriate privileges"
            return cls.format_message(f"Permission denied: {message}",
                                      ErrorSeverity.ERROR, guidance)
        elif isinstance(error, ValueError):
            guidance = "Verify input parameters and try again"
            return cls.format_message(f"Invalid input: {message}",
                                      ErrorSeverity.ERROR, guidance)
        elif isinstance(error, KeyboardInterrupt):
            return cls.format_message("Operation interrupted by user", ErrorSeverity.WARNING)
        else:
            if hide_technical:
                return cls.format_message("Unexpected error occurred", ErrorSeverity.ERROR,
                                          "Check logs for details or run with --verbose")
            else:
                return cls.format_message(f"Unexpected {error_type}: {message}",
                                          ErrorSeverity.ERROR)


class ParameterValidator:
    """Parameter validation with range checks and user guidance"""

    @staticmethod
    def validate_positive(value: int, parameter_name: str) -> int:
        """Validate worker counts, chunk sizes and similar knobs"""
        if value is None or value <= 0:
            raise ValidationError(
                f"{parameter_name} must be a positive integer, got {value}",
                parameter_name,
                f"Use a positive integer for {parameter_name}"
            )
        return value

    @staticmethod
    def validate_port(port: int, parameter_name: str = "port") -> int:
        """Validate port numbers"""
        if not (1 <= port <= 65535):
            raise ValidationError(
                f"Port must be between 1-65535, got {port}",
                parameter_name,
                "Use a valid port number (e.g., 8080)"
            )
        return port

    @staticmethod
    def validate_file_exists(file_path: Union[str, Path], parameter_name: str = "file") -> Path:
        """Validate that a file exists and is readable"""
        path = Path(file_path)

        if not path.exists():
            raise ValidationError(
                f"File does not exist: {path}",
                parameter_name,
                "Check the file path and ensure the file exists"
            )

        if not path.is_file():
            raise ValidationError(
                f"Path is not a file: {path}",
                parameter_name,
                "Provide a path to a file, not a directory"
            )

        if not os.access(path, os.R_OK):
            raise ValidationError(
                f"Cannot read file: {path}",
                parameter_name,
                "Check file permissions or run with appropriate privileges"
            )

        return path


def handle_errors(logger_name: str = None, hide_technical: bool = True):
    """Decorator for standardized error handling in command functions"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            logger = logging.getLogger(logger_name or f'routing-stats.{func.__name__}')

            try:
                return func(*args, **kwargs)
            except RoutingStatsError as e:
                logger.error(f"{e.severity.title()} in {func.__name__}: {e.message}")
                print(ErrorFormatter.format_error(e, hide_technical))

                if e.severity == ErrorSeverity.FATAL:
                    return 2
                elif e.severity == ErrorSeverity.ERROR:
                    return 1
                else:
                    return 0

            except KeyboardInterrupt:
                logger.info(f"Command {func.__name__} interrupted by user")
                print(ErrorFormatter.format_message("Operation interrupted by user",
                                                    ErrorSeverity.WARNING))
                return 130

            except Exception as e:
                logger.error(f"Unexpected error in {func.__name__}: {e}")
                print(ErrorFormatter.format_error(e, hide_technical))
                return 1

        return wrapper
    return decorator


def print_success(message: str):
    """Print a success message with consistent formatting"""
    print(ErrorFormatter.format_message(message, ErrorSeverity.INFO))


def print_warning(message: str, guidance: str = None):
    """Print a warning message with consistent formatting"""
    print(ErrorFormatter.format_message(message, ErrorSeverity.WARNING, guidance))


def validate_common_args(args):
    """Validate common command-line arguments"""
    validator = ParameterValidator()

    for name in ('announcements',):
        for path in getattr(args, name, None) or []:
            validator.validate_file_exists(path, name)

    for name in ('vrps', 'delegations'):
        path = getattr(args, name, None)
        if path:
            validator.validate_file_exists(path, name)

    if getattr(args, 'workers', None) is not None:
        args.workers = validator.validate_positive(args.workers, "workers")

    if getattr(args, 'min_peers', None) is not None and args.min_peers < 0:
        raise ValidationError(
            f"min_peers must not be negative, got {args.min_peers}",
            "min_peers",
            "Use 0 to keep every announcement"
        )

    if getattr(args, 'port', None) is not None:
        args.port = validator.validate_port(args.port, "port")

    return args


__all__ = [
    'ErrorSeverity', 'RoutingStatsError', 'ValidationError', 'MalformedPrefix',
    'MalformedAsn', 'InvalidScope', 'IndexBuildFailure', 'ConfigurationError',
    'SnapshotUnavailable', 'ErrorFormatter', 'ParameterValidator', 'handle_errors',
    'print_success', 'print_warning', 'validate_common_args'
]
