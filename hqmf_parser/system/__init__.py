"""
System-level helpers: version, error taxonomy and debug logging.
"""

from .version import __version__
from .error_handling import (
    ErrorSeverity,
    ErrorCategory,
    ErrorContext,
    HQMFParserError,
    XMLParsingError,
    FatalDataError,
    UnknownDefinitionError,
    UnknownValueTypeError,
    MissingOccurrenceError,
    ConflictingDerivationError,
    ExportError,
    DiagnosticWarning,
    ErrorHandler,
    create_error_context,
)
from .debug_logger import HQMFDebugLogger, get_debug_logger

__all__ = [
    "__version__",
    "ErrorSeverity",
    "ErrorCategory",
    "ErrorContext",
    "HQMFParserError",
    "XMLParsingError",
    "FatalDataError",
    "UnknownDefinitionError",
    "UnknownValueTypeError",
    "MissingOccurrenceError",
    "ConflictingDerivationError",
    "ExportError",
    "DiagnosticWarning",
    "ErrorHandler",
    "create_error_context",
    "HQMFDebugLogger",
    "get_debug_logger",
]
