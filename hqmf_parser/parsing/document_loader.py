"""
Document loader for the parsing pipeline.
Handles XML parsing and namespace capture, and checks the document is an HQMF
QualityMeasureDocument.
"""

import io
import xml.etree.ElementTree as ET
from typing import Dict, Tuple, Optional

from ..system.error_handling import XMLParsingError, create_error_context
from .namespace_utils import NAMESPACES, CDA_NS, local_name

ROOT_ELEMENT = "QualityMeasureDocument"


class DocumentLoadError(XMLParsingError):
    pass


def load_document(xml_content: str, source_name: Optional[str] = None) -> Tuple[ET.Element, Dict[str, str]]:
    if not xml_content or not xml_content.strip():
        raise DocumentLoadError("Empty XML content provided")

    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as exc:
        raise DocumentLoadError(
            f"XML parse failed: {exc}",
            context=create_error_context("load_document", source_name=source_name),
            original_exception=exc,
        ) from exc

    if root.tag != f"{{{CDA_NS}}}{ROOT_ELEMENT}":
        raise DocumentLoadError(
            f"Expected an HQMF {ROOT_ELEMENT} root element, found {local_name(root.tag)}",
            element_name=root.tag,
            context=create_error_context("load_document", source_name=source_name),
        )

    return root, _extract_namespaces(xml_content)


def _extract_namespaces(xml_content: str) -> Dict[str, str]:
    namespaces: Dict[str, str] = {}
    for _event, (prefix, uri) in ET.iterparse(io.StringIO(xml_content), events=("start-ns",)):
        namespaces[prefix or ""] = uri
    # The query prefixes always resolve regardless of what the document declared
    namespaces.update(NAMESPACES)
    return namespaces
