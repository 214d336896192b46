"""
Field value extraction.

Named QDM attributes of a criterion (reason, facility location, length of
stay, ...) come from three shapes: coded outbound relationships, participation
relationships keyed by role class code, and a few direct child elements.
"""

import logging
from typing import Dict

from ...metadata.models import FieldValue, TypedReference
from ...metadata.value_fields import VALUE_FIELDS, DIRECT_FIELD_ELEMENTS, REASON_FIELD, FULFILLS_FIELD
from ..namespace_utils import ElementQuery, reference_id
from .entry_preprocessor import PreparedEntry
from .value_parser import parse_value, parse_coded, parse_simple_value, parse_range, value_type_of

logger = logging.getLogger(__name__)


def extract_field_values(prepared: PreparedEntry, negation: bool) -> Dict[str, FieldValue]:
    fields: Dict[str, FieldValue] = {}
    relationships = prepared.query.find_all("cda:outboundRelationship")

    for relationship in relationships:
        rq = ElementQuery(relationship)
        if rq.find_one("*/cda:code") is None:
            continue
        field_name = VALUE_FIELDS.get(rq.attribute("*/cda:code/@code"))
        if field_name is None or (negation and field_name == REASON_FIELD):
            continue
        value = parse_value(relationship, "*/cda:value")
        if value is None:
            value = parse_value(relationship, "*/cda:effectiveTime")
        fields[field_name] = value

    for relationship in relationships:
        rq = ElementQuery(relationship)
        if rq.find_one("*/cda:participation") is None:
            continue
        field_name = VALUE_FIELDS.get(rq.attribute("*/cda:participation/cda:role/@classCode"))
        if field_name is None:
            continue
        role_code = rq.find_one("*/cda:participation/cda:role/cda:code")
        if role_code is not None:
            fields[field_name] = parse_coded(role_code)

    fields.update(_direct_field_values(prepared))

    fulfills = prepared.query.find_one("cda:outboundRelationship[@typeCode='FLFS']/cda:criteriaReference")
    if fulfills is not None:
        fields[FULFILLS_FIELD] = TypedReference(
            reference_id=reference_id(ElementQuery(fulfills).find_one("cda:id")),
            type=fulfills.get("classCode"),
            mood=fulfills.get("moodCode"),
        )

    # Relationships with a known code but no parseable value carry nothing
    return {name: value for name, value in fields.items() if value is not None}


def _direct_field_values(prepared: PreparedEntry) -> Dict[str, FieldValue]:
    fields: Dict[str, FieldValue] = {}
    for element_name, field_name in DIRECT_FIELD_ELEMENTS.items():
        node = prepared.query.find_one(f"cda:{element_name}")
        if node is None:
            continue
        value_type = value_type_of(node)
        if element_name == "lengthOfStayQuantity":
            if value_type and value_type.startswith("IVL"):
                fields[field_name] = parse_range(node)
            else:
                fields[field_name] = parse_simple_value(node, "PQ")
        else:
            fields[field_name] = parse_coded(node)
    return fields
