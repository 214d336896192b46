"""
Namespace-aware query helpers for HQMF XML.

All lookups go through ElementQuery so that paths can use the ``cda:``,
``xsi:`` and ``qdm:`` prefixes for both elements and attributes.
"""

import re
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

CDA_NS = "urn:hl7-org:v3"
XSI_NS = "http://www.w3.org/2001/XMLSchema-instance"
QDM_NS = "urn:hhs-qdm:hqmf-r2-extensions:v1"

NAMESPACES: Dict[str, str] = {"cda": CDA_NS, "xsi": XSI_NS, "qdm": QDM_NS}

# Reserved id standing in for any reference to the measure period
MEASURE_PERIOD_ID = "MeasurePeriod"

_ILLEGAL_ID_CHARS = re.compile(r"[^A-Za-z0-9_.\-]")


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` part from an element or attribute tag."""
    return tag.split("}", 1)[1] if tag.startswith("{") else tag


def normalise_id(value: Optional[str]) -> Optional[str]:
    """
    Make an identifier safe to use as a criterion key.

    Characters outside ``[A-Za-z0-9_.-]`` are removed and ids starting with a
    digit get a ``prefix_`` so they remain valid identifiers downstream.
    """
    if value is None:
        return None
    stripped = _ILLEGAL_ID_CHARS.sub("", value)
    if stripped[:1].isdigit():
        stripped = f"prefix_{stripped}"
    return stripped


def _qualify_attribute(name: str, namespaces: Dict[str, str]) -> str:
    if ":" in name:
        prefix, local = name.split(":", 1)
        uri = namespaces.get(prefix)
        if uri:
            return f"{{{uri}}}{local}"
    return name


class ElementQuery:
    """Generic find_one / find_all / attribute interface over one element."""

    def __init__(self, element: ET.Element, namespaces: Optional[Dict[str, str]] = None):
        self.element = element
        self.namespaces = namespaces or NAMESPACES

    def find_one(self, path: str) -> Optional[ET.Element]:
        if path in ("", "."):
            return self.element
        return self.element.find(path, self.namespaces)

    def find_all(self, path: str) -> List[ET.Element]:
        return list(self.element.findall(path, self.namespaces))

    def attribute(self, path: str) -> Optional[str]:
        """
        Read an attribute addressed as ``element/path/@attr`` (or ``@attr``
        on the element itself). Returns None when the element or attribute
        is missing.
        """
        if "@" not in path:
            raise ValueError(f"Attribute path must name an attribute: {path}")
        element_path, _, attr_name = path.rpartition("@")
        element_path = element_path.rstrip("/")
        node = self.find_one(element_path)
        if node is None:
            return None
        return node.get(_qualify_attribute(attr_name, self.namespaces))

    def text(self, path: str) -> Optional[str]:
        node = self.find_one(path)
        if node is None or node.text is None:
            return None
        return node.text.strip()


def query(element: ET.Element, namespaces: Optional[Dict[str, str]] = None) -> ElementQuery:
    return ElementQuery(element, namespaces)


def raw_id(id_element: Optional[ET.Element]) -> Optional[str]:
    """``extension_root`` for an II element, or None when both parts are absent."""
    if id_element is None:
        return None
    extension = id_element.get("extension")
    root = id_element.get("root")
    if extension is None and root is None:
        return None
    return f"{extension or ''}_{root or ''}"


def reference_id(id_element: Optional[ET.Element]) -> Optional[str]:
    """Normalised id of a referenced criterion, mapping measure period references to the sentinel."""
    identifier = normalise_id(raw_id(id_element))
    if identifier is not None and identifier.lower().startswith("measureperiod"):
        return MEASURE_PERIOD_ID
    return identifier
