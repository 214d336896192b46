"""
Debug Logging Utility
Provides optional debug logging for tracing data criteria extraction.
"""

import logging
import os
import sys
from typing import Dict, Any, List, Optional
import json

from .version import __version__


DEBUG_ENV_VAR = "HQMF_PARSER_DEBUG"


class HQMFDebugLogger:
    """
    Debug logger for the HQMF data criteria extraction process.
    Provides structured logging for audit trails and troubleshooting.
    """

    def __init__(self, enable_debug: bool = False):
        """
        Initialise the debug logger.

        Args:
            enable_debug: Whether to enable debug logging
        """
        self.enable_debug = enable_debug
        self.logger = logging.getLogger('hqmf_parser')

        if self.enable_debug:
            self.logger.setLevel(logging.DEBUG)
            self.logger.propagate = False

            formatter = logging.Formatter(
                '[%(levelname)s][%(name)s] %(message)s'
            )

            # Keep a single managed handler so formatting stays consistent.
            self.logger.handlers = [
                h for h in self.logger.handlers if not getattr(h, "_hqmf_debug_handler", False)
            ]

            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(logging.DEBUG)
            console_handler.setFormatter(formatter)
            console_handler._hqmf_debug_handler = True  # type: ignore[attr-defined]

            self.logger.addHandler(console_handler)

    def log_extraction_start(self, source_name: Optional[str], entry_count: int) -> None:
        """Log the start of a document extraction pass."""
        if not self.enable_debug:
            return

        self.logger.info(f"hqmf_parser {__version__}: extracting {entry_count} data criteria entries "
                         f"from {source_name or 'unnamed document'}")

    def log_entry_resolved(self, criterion_id: str, definition: Optional[str], status: Optional[str]) -> None:
        if not self.enable_debug:
            return

        self.logger.debug(f"Resolved {criterion_id}: definition={definition} status={status}")

    def log_missing_reference(self, criterion_id: str, reference_id: Optional[str]) -> None:
        """Log a pointer entry whose target is not registered."""
        if not self.enable_debug:
            return

        self.logger.debug(f"MISSING_DC_REF: {reference_id} (from {criterion_id})")

    def log_pruning_result(self, removed_ids: List[str]) -> None:
        """Log which criteria were pruned as redundant."""
        if not self.enable_debug:
            return

        self.logger.info(f"Redundancy pruning removed {len(removed_ids)} data criteria")
        for criterion_id in removed_ids:
            self.logger.debug(f"Pruned redundant data criterion: {criterion_id}")

    def log_extraction_summary(self, summary: Dict[str, Any]) -> None:
        """Log the extraction summary."""
        if not self.enable_debug:
            return

        self.logger.info(f"Extraction summary: {json.dumps(summary, sort_keys=True)}")

    def log_error(self, error: Exception, context: str = "") -> None:
        """Log errors with context."""
        if not self.enable_debug:
            return

        context_msg = f" in {context}" if context else ""
        self.logger.error(f"Error{context_msg}: {str(error)}", exc_info=True)


def get_debug_logger(enable_debug: Optional[bool] = None) -> HQMFDebugLogger:
    """
    Get a debug logger instance.

    When ``enable_debug`` is not given the ``HQMF_PARSER_DEBUG`` environment
    variable decides ("1", "true", "yes" enable it).
    """
    if enable_debug is None:
        enable_debug = os.getenv(DEBUG_ENV_VAR, "").strip().lower() in ("1", "true", "yes")

    return HQMFDebugLogger(enable_debug)
