"""
Measure-level metadata parser.
Reads identifiers, version, title, measure period and measure attributes from
the QualityMeasureDocument root.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Optional

from ...metadata.models import (
    AnyValue,
    CodedValue,
    EffectiveTime,
    EncapsulatedData,
    GenericValue,
    Identifier,
    MeasureAttribute,
    MeasureMetadata,
    SimpleValue,
)
from ..namespace_utils import ElementQuery
from .value_parser import parse_effective_time

logger = logging.getLogger(__name__)

CMS_ID_ATTRIBUTE = "eMeasure Identifier"


def default_measure_period() -> EffectiveTime:
    """Calendar 2012; calculation engines substitute the real period at run time."""
    return EffectiveTime(
        low=SimpleValue(type="TS", value="201201010000"),
        high=SimpleValue(type="TS", value="201212312359"),
        width=SimpleValue(type="PQ", value="1", unit="a"),
    )


def _identifier(q: ElementQuery, element: str) -> Optional[str]:
    extension = q.attribute(f"{element}/@extension")
    if extension:
        return extension
    root = q.attribute(f"{element}/@root")
    return root.upper() if root else None


def _version_number(value: Optional[str]) -> int:
    try:
        return int(value) if value else 0
    except ValueError:
        # Versions such as "1.0.001" keep their leading integer
        digits = value.split(".", 1)[0]
        return int(digits) if digits.isdigit() else 0


def parse_measure_metadata(
    root: ET.Element,
    source_name: Optional[str] = None,
    use_default_measure_period: bool = True,
) -> MeasureMetadata:
    q = ElementQuery(root)
    version_number = _version_number(q.attribute("cda:versionNumber/@value"))

    if use_default_measure_period:
        measure_period = default_measure_period()
    else:
        measure_period = parse_effective_time(q.find_one("cda:controlVariable/cda:measurePeriod/cda:value"))

    metadata = MeasureMetadata(
        id=_identifier(q, "cda:id") or "",
        set_id=_identifier(q, "cda:setId"),
        version_number=version_number,
        title=q.attribute("cda:title/@value"),
        description=q.attribute("cda:text/@value") or "",
        measure_period=measure_period,
        source_name=source_name,
    )

    for node in q.find_all("cda:subjectOf/cda:measureAttribute"):
        attribute = parse_measure_attribute(node)
        metadata.attributes.append(attribute)
        if attribute.name and CMS_ID_ATTRIBUTE in attribute.name:
            metadata.cms_id = f"CMS{attribute.value}v{version_number}"

    logger.debug(f"Measure {metadata.id} v{version_number}: {len(metadata.attributes)} attributes")
    return metadata


def parse_measure_attribute(node: ET.Element) -> MeasureAttribute:
    q = ElementQuery(node)
    code = q.attribute("cda:code/@code")
    name = q.attribute("cda:code/cda:displayName/@value")
    value = q.attribute("cda:value/@value")

    identifier = None
    if q.find_one("cda:id") is not None:
        identifier = Identifier(
            type=q.attribute("cda:id/@xsi:type"),
            root=q.attribute("cda:id/@root"),
            extension=q.attribute("cda:id/@extension"),
        )

    coded = None
    if q.find_one("cda:code") is not None:
        null_flavor = q.attribute("cda:code/@nullFlavor")
        original_text = q.attribute("cda:code/cda:originalText/@value")
        coded = CodedValue(
            type=q.attribute("cda:code/@xsi:type") or "CD",
            system=q.attribute("cda:code/@codeSystem"),
            code=code,
            code_list_id=q.attribute("cda:code/@valueSet"),
            title=name,
            null_flavor=null_flavor,
            original_text=original_text,
        )
        code = code if code is not None else null_flavor
        name = name if name is not None else original_text

    typed_value = None
    if q.find_one("cda:value") is not None:
        value_type = q.attribute("cda:value/@xsi:type")
        if value_type == "II":
            if value is None:
                value = q.attribute("cda:value/@extension")
            typed_value = Identifier(
                type=value_type,
                root=q.attribute("cda:value/@root"),
                extension=q.attribute("cda:value/@extension"),
            )
        elif value_type == "ED":
            typed_value = EncapsulatedData(type=value_type, value=value, media_type=q.attribute("cda:value/@mediaType"))
        elif value_type == "CD":
            typed_value = CodedValue(
                type="CD",
                system=q.attribute("cda:value/@codeSystem"),
                code=q.attribute("cda:value/@code"),
                code_list_id=q.attribute("cda:value/@valueSet"),
                title=q.attribute("cda:value/cda:displayName/@value"),
            )
        elif value:
            typed_value = GenericValue(type=value_type, value=value)
        else:
            typed_value = AnyValue(type=value_type or "ANYNonNull")

    return MeasureAttribute(
        id=q.attribute("cda:id/@root"),
        code=code,
        value=value,
        name=name,
        identifier=identifier,
        coded=coded,
        typed_value=typed_value,
    )
