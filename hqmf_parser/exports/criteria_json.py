"""
JSON export of a parsed HQMF document.
Produces the presentation form of measure metadata, data criteria, source
data criteria, occurrences and diagnostics.
"""

import json
import logging
from datetime import datetime
from typing import Optional, Tuple

from ..parsing.pipeline import HQMFDocument
from ..system.error_handling import ExportError

logger = logging.getLogger(__name__)


def export_criteria_json(document: HQMFDocument, indent: Optional[int] = 2) -> str:
    try:
        return json.dumps(document.to_dict(), indent=indent, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ExportError(
            f"Failed to serialise data criteria for {document.metadata.id}: {e}",
            export_type="json",
            original_exception=e,
        ) from e


def generate_criteria_json(document: HQMFDocument, xml_filename: Optional[str] = None) -> Tuple[str, str]:
    """
    Build a download-ready JSON export.

    Returns (filename, json_string).
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    stem = (xml_filename or document.metadata.id or "hqmf").replace(" ", "_").replace(".xml", "")
    filename = f"data_criteria_{stem}_{timestamp}.json"

    json_string = export_criteria_json(document)
    logger.info(f"Generated JSON export {filename} ({len(document.data_criteria)} data criteria)")
    return filename, json_string
