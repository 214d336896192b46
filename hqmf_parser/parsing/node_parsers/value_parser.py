"""
Typed value parser.

Dispatches on the value element's ``xsi:type``: PQ/TS scalars, IVL_PQ/IVL_INT
ranges, CD codes, and ANY/IVL_TS as "any non-null". Any other type aborts the
extraction with UnknownValueTypeError.
"""

import re
import xml.etree.ElementTree as ET
from typing import Optional

from ...metadata.models import SimpleValue, RangeValue, CodedValue, AnyValue, EffectiveTime, CriterionValue
from ...system.error_handling import UnknownValueTypeError
from ..namespace_utils import query, XSI_NS

XSI_TYPE = f"{{{XSI_NS}}}type"
ANY_NON_NULL_FLAVOR = "ANY.NONNULL"

_LEADING_INT = re.compile(r"\s*([-+]?\d+)")


def _leading_int(value: Optional[str]) -> int:
    match = _LEADING_INT.match(value or "")
    return int(match.group(1)) if match else 0


def value_type_of(node: ET.Element) -> Optional[str]:
    return node.get(XSI_TYPE)


def parse_simple_value(
    node: ET.Element,
    default_type: str = "PQ",
    force_inclusive: bool = False,
    closed: bool = False,
) -> SimpleValue:
    unit = node.get("unit")
    # lengthOfStayQuantity is authored with a spelled out unit
    if unit == "days":
        unit = "d"
    return SimpleValue(
        type=value_type_of(node) or default_type,
        value=node.get("value"),
        unit=unit,
        inclusive=force_inclusive or closed,
        expression=query(node).attribute("cda:expression/@value"),
    )


def parse_range(node: ET.Element, range_type: Optional[str] = None) -> RangeValue:
    range_type = range_type or value_type_of(node) or "IVL_PQ"
    q = query(node)
    if range_type == "IVL_TS":
        bounds = q.find_one("cda:phase")
        bounds_type = "TS"
    elif range_type == "IVL_PQ":
        bounds = None
        bounds_type = "PQ"
    else:
        bounds = q.find_one("cda:uncertainRange")
        bounds_type = "PQ"
    if bounds is None:
        bounds = node

    bq = query(bounds)
    low_node = bq.find_one("cda:low")
    high_node = bq.find_one("cda:high")
    width_node = bq.find_one("cda:width")

    same_bounds = (
        low_node is not None
        and high_node is not None
        and low_node.get("value") is not None
        and low_node.get("value") == high_node.get("value")
    )

    low = None
    if low_node is not None:
        low = parse_simple_value(
            low_node, bounds_type, closed=same_bounds or bounds.get("lowClosed") == "true"
        )
    high = None
    if high_node is not None:
        high = parse_simple_value(
            high_node, bounds_type, closed=same_bounds or bounds.get("highClosed") == "true"
        )

    # A zero low bound adds nothing once a positive high bound is present
    if high is not None and high.value and _leading_int(high.value) > 0:
        if low is not None and low.value is not None and _leading_int(low.value) == 0:
            low = None

    width = parse_simple_value(width_node, "PQ") if width_node is not None else None
    return RangeValue(type=range_type, low=low, high=high, width=width)


def parse_coded(node: ET.Element) -> CodedValue:
    q = query(node)
    return CodedValue(
        type=value_type_of(node) or "CD",
        system=node.get("codeSystem"),
        code=node.get("code"),
        code_list_id=node.get("valueSet"),
        title=q.attribute("cda:displayName/@value"),
        null_flavor=node.get("nullFlavor"),
        original_text=q.attribute("cda:originalText/@value") or q.text("cda:originalText"),
    )


def parse_effective_time(node: Optional[ET.Element]) -> Optional[EffectiveTime]:
    if node is None:
        return None
    q = query(node)
    low = q.find_one("cda:low")
    high = q.find_one("cda:high")
    width = q.find_one("cda:width")
    if low is None and high is None and width is None:
        return None
    return EffectiveTime(
        low=parse_simple_value(low, "TS") if low is not None else None,
        high=parse_simple_value(high, "TS") if high is not None else None,
        width=parse_simple_value(width, "PQ") if width is not None else None,
    )


def parse_value(element: ET.Element, path: str) -> Optional[CriterionValue]:
    """Parse the value found at ``path`` under ``element``; None when absent or untyped."""
    node = query(element).find_one(path)
    if node is None:
        return None
    if node.get("flavorId") == ANY_NON_NULL_FLAVOR:
        return AnyValue()
    value_type = value_type_of(node)
    if value_type is None:
        return None

    if value_type == "PQ":
        return parse_simple_value(node, "PQ", force_inclusive=True)
    if value_type == "TS":
        return parse_simple_value(node, "TS")
    if value_type in ("IVL_PQ", "IVL_INT"):
        return parse_range(node)
    if value_type == "CD":
        return parse_coded(node)
    if value_type in ("ANY", "IVL_TS"):
        return AnyValue()
    raise UnknownValueTypeError(value_type)
