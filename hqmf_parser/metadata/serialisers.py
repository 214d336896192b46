"""
Serialisers for extraction outputs into presentation dicts and export rows.
"""

import re
from typing import List, Dict, Any, Optional

from .definitions import Definition
from .models import DataCriterion, CodedValue, ExtractionResult
from .value_fields import field_title

VALUE_SET_SUFFIX = re.compile(r"(.*) \w+ [Vv]alue [Ss]et")
TRANSFER_DEFINITIONS = (Definition.TRANSFER_FROM, Definition.TRANSFER_TO)

CRITERIA_COLUMNS = [
    "ID", "Title", "Description", "Definition", "Status", "Code List ID", "Negation",
    "Negation Code List ID", "Derivation Operator", "Children", "Variable", "Specific Occurrence",
    "Specific Occurrence Const", "Source Data Criteria", "Value", "Temporal References",
    "Subset Operators", "Comments",
]
FIELD_VALUE_COLUMNS = ["Criterion ID", "Field", "Field Title", "Value Type", "Value"]
OCCURRENCE_COLUMNS = ["Source Criterion", "Occurrence", "Used By"]


def _presentation_title_and_description(criterion: DataCriterion) -> Dict[str, Optional[str]]:
    """Drop "<x> Value Set" from titles and fold the bare title into the description."""
    title = criterion.title or ""
    exact_desc = " ".join(title.split(" ")[:-3])
    definition = criterion.definition_name or ""
    if definition.startswith("patient_characteristic") and not title.endswith("Value Set"):
        exact_desc = title

    match = VALUE_SET_SUFFIX.match(title)
    if match:
        title = match.group(1)

    return {"title": title, "description": f"{criterion.description}: {exact_desc}"}


def criterion_to_dict(criterion: DataCriterion) -> Dict[str, Any]:
    """
    Presentation form of a criterion.

    Derivation criteria lose their code list id, transfer criteria carry
    their code list as a coded field value, and empty collections are omitted.
    """
    title = criterion.title
    description = criterion.description
    if not (criterion.is_variable or criterion.derivation_operator):
        presented = _presentation_title_and_description(criterion)
        title, description = presented["title"], presented["description"]

    code_list_id = criterion.code_list_id
    field_values = {name: value.to_dict() for name, value in criterion.field_values.items()}
    if criterion.definition in TRANSFER_DEFINITIONS:
        field_values[criterion.definition_name.upper()] = CodedValue.for_code_list(code_list_id, title).to_dict()
        code_list_id = None
    if criterion.derivation_operator:
        code_list_id = None

    data = {
        "id": criterion.id,
        "title": title,
        "description": description,
        "code_list_id": code_list_id,
        "children_criteria": list(criterion.children_criteria) or None,
        "derivation_operator": criterion.derivation_operator.value if criterion.derivation_operator else None,
        "definition": criterion.definition_name,
        "status": criterion.status,
        "value": criterion.value.to_dict() if criterion.value is not None else None,
        "field_values": field_values or None,
        "effective_time": criterion.effective_time.to_dict() if criterion.effective_time else None,
        "inline_code_list": criterion.inline_code_list,
        "negation": criterion.negation,
        "negation_code_list_id": criterion.negation_code_list_id,
        "temporal_references": [tr.to_dict() for tr in criterion.temporal_references] or None,
        "subset_operators": [so.to_dict() for so in criterion.subset_operators] or None,
        "specific_occurrence": criterion.specific_occurrence,
        "specific_occurrence_const": criterion.specific_occurrence_const,
        "source_data_criteria": criterion.source_data_criteria,
        "comments": list(criterion.comments) or None,
        "variable": criterion.is_variable,
    }
    return {key: value for key, value in data.items() if value is not None}


def _join(values: List[str]) -> str:
    return ", ".join(v for v in values if v)


def _describe_value(value: Any) -> str:
    if value is None:
        return ""
    data = value.to_dict()
    if "code_list_id" in data:
        return f"{data.get('title') or ''} [{data['code_list_id']}]".strip()
    if "low" in data or "high" in data:
        low = data.get("low", {})
        high = data.get("high", {})
        return f"{low.get('value', '')} {low.get('unit') or ''} .. {high.get('value', '')} {high.get('unit') or ''}".strip()
    if "reference" in data:
        return f"{data.get('type') or ''} -> {data['reference']}"
    if "value" in data:
        return f"{data.get('value') or ''} {data.get('unit') or ''}".strip()
    return data.get("type", "")


def serialise_criteria_rows(criteria: List[DataCriterion]) -> List[Dict[str, Any]]:
    """One row per criterion, columns matching the Data Criteria export sheet."""
    rows: List[Dict[str, Any]] = []
    for criterion in criteria:
        rows.append({
            "ID": criterion.id,
            "Title": criterion.title or "",
            "Description": criterion.description or "",
            "Definition": criterion.definition_name or "",
            "Status": criterion.status or "",
            "Code List ID": criterion.code_list_id or "",
            "Negation": criterion.negation,
            "Negation Code List ID": criterion.negation_code_list_id or "",
            "Derivation Operator": criterion.derivation_operator.value if criterion.derivation_operator else "",
            "Children": _join(criterion.children_criteria),
            "Variable": criterion.is_variable,
            "Specific Occurrence": criterion.specific_occurrence or "",
            "Specific Occurrence Const": criterion.specific_occurrence_const or "",
            "Source Data Criteria": criterion.source_data_criteria or "",
            "Value": _describe_value(criterion.value),
            "Temporal References": _join(
                [f"{tr.type} {tr.reference_id}" for tr in criterion.temporal_references]
            ),
            "Subset Operators": _join([so.type or "" for so in criterion.subset_operators]),
            "Comments": " | ".join(criterion.comments),
        })
    return rows


def serialise_field_value_rows(criteria: List[DataCriterion]) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for criterion in criteria:
        for name, value in criterion.field_values.items():
            rows.append({
                "Criterion ID": criterion.id,
                "Field": name,
                "Field Title": field_title(name),
                "Value Type": getattr(value, "type", "") or "",
                "Value": _describe_value(value),
            })
    return rows


def serialise_occurrence_rows(result: ExtractionResult) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for source_id, letter in result.occurrences.items():
        users = [
            dc.id for dc in result.data_criteria
            if dc.source_data_criteria == source_id and dc.specific_occurrence == letter
        ]
        rows.append({
            "Source Criterion": source_id,
            "Occurrence": letter,
            "Used By": _join(users),
        })
    return rows
