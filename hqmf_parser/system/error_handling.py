"""
Standardized error handling for the HQMF data criteria parser.

Fatal data errors abort the whole extraction pass; diagnostic warnings are
collected and logged while extraction continues.
"""

import logging
import traceback
from datetime import datetime
from typing import Optional, Dict, Any, List
from enum import Enum
from dataclasses import dataclass, field


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for better classification."""
    XML_PARSING = "xml_parsing"
    DATA_VALIDATION = "data_validation"
    DEFINITION_RESOLUTION = "definition_resolution"
    OCCURRENCE_RESOLUTION = "occurrence_resolution"
    VALUE_PARSING = "value_parsing"
    EXPORT_OPERATION = "export_operation"
    SYSTEM = "system"


@dataclass
class ErrorContext:
    """Context information for errors."""
    operation: str
    criterion_id: Optional[str] = None
    element_path: Optional[str] = None
    source_name: Optional[str] = None
    user_data: Optional[Dict[str, Any]] = None


@dataclass
class DiagnosticWarning:
    """Non-fatal extraction problem, recorded on the extraction context."""
    criterion_id: str
    message: str
    reference_id: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "criterion_id": self.criterion_id,
            "message": self.message,
            "reference_id": self.reference_id,
        }


class HQMFParserError(Exception):
    """Base exception class for the HQMF parser."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        context: Optional[ErrorContext] = None,
        original_exception: Optional[Exception] = None,
    ):
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context
        self.original_exception = original_exception
        super().__init__(self.message)

    def get_technical_details(self) -> Dict[str, Any]:
        details = {
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
        }

        if self.context:
            details["context"] = {
                "operation": self.context.operation,
                "criterion_id": self.context.criterion_id,
                "element_path": self.context.element_path,
                "source_name": self.context.source_name,
            }

        if self.original_exception:
            details["original_exception"] = {
                "type": type(self.original_exception).__name__,
                "message": str(self.original_exception),
                "traceback": traceback.format_exc(),
            }

        return details


class XMLParsingError(HQMFParserError):
    """The document could not be decoded or parsed as an HQMF document."""

    def __init__(self, message: str, element_name: str = None, **kwargs):
        self.element_name = element_name
        kwargs.setdefault("severity", ErrorSeverity.HIGH)
        super().__init__(message=message, category=ErrorCategory.XML_PARSING, **kwargs)

    def get_technical_details(self) -> Dict[str, Any]:
        details = super().get_technical_details()
        details["element_name"] = self.element_name
        return details


class FatalDataError(HQMFParserError):
    """Malformed or unsupported document content; aborts the extraction pass."""

    def __init__(self, message: str, criterion_id: Optional[str] = None, **kwargs):
        self.criterion_id = criterion_id
        kwargs.setdefault("category", ErrorCategory.DATA_VALIDATION)
        kwargs.setdefault("severity", ErrorSeverity.CRITICAL)
        super().__init__(message=message, **kwargs)


class UnknownDefinitionError(FatalDataError):
    """Definition or demographic code with no known clinical category."""

    def __init__(self, message: str, code: Optional[str] = None, **kwargs):
        self.code = code
        super().__init__(message, category=ErrorCategory.DEFINITION_RESOLUTION, **kwargs)


class UnknownValueTypeError(FatalDataError):
    """Value element carrying an unsupported xsi:type."""

    def __init__(self, value_type: str, **kwargs):
        self.value_type = value_type
        super().__init__(f"Unknown value type [{value_type}]", category=ErrorCategory.VALUE_PARSING, **kwargs)


class MissingOccurrenceError(FatalDataError):
    """Specific occurrence of a non-variable criterion with no occurrence mapping."""

    def __init__(self, source_id: str, **kwargs):
        self.source_id = source_id
        super().__init__(
            f"Could not find occurrence mapping for {source_id}",
            category=ErrorCategory.OCCURRENCE_RESOLUTION,
            **kwargs,
        )


class ConflictingDerivationError(FatalDataError):
    """More than one distinct derivation operator on a single entry."""

    def __init__(self, operators: List[str], **kwargs):
        self.operators = operators
        super().__init__(
            f"More than one derivation operator in data criteria: {', '.join(operators)}",
            **kwargs,
        )


class ExportError(HQMFParserError):
    """Specific error for export operation issues."""

    def __init__(self, message: str, export_type: str = None, **kwargs):
        self.export_type = export_type
        super().__init__(message=message, category=ErrorCategory.EXPORT_OPERATION, **kwargs)


class ErrorHandler:
    """Centralised error logging."""

    def __init__(self, logger_name: str = "hqmf_parser"):
        self.logger = logging.getLogger(logger_name)
        self._error_count = 0
        self._session_errors = []

    @property
    def error_count(self) -> int:
        return self._error_count

    def handle_error(self, error: HQMFParserError) -> None:
        technical_details = error.get_technical_details()
        self._error_count += 1
        self._session_errors.append(
            {"timestamp": datetime.now().isoformat(), "error": error, "details": technical_details}
        )

        if error.severity == ErrorSeverity.CRITICAL:
            self.logger.critical(f"Critical error: {technical_details}")
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error(f"High severity error: {technical_details}")
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning(f"Medium severity error: {technical_details}")
        else:
            self.logger.info(f"Low severity error: {technical_details}")


def create_error_context(
    operation: str,
    criterion_id: str = None,
    element_path: str = None,
    **kwargs,
) -> ErrorContext:
    """Helper function to create error context."""
    return ErrorContext(
        operation=operation,
        criterion_id=criterion_id,
        element_path=element_path,
        source_name=kwargs.get("source_name"),
        user_data=kwargs.get("user_data"),
    )
