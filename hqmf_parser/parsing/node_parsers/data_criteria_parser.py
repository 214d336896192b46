"""
Data criterion parser for the pipeline.

Drives the per-entry components in order: preprocessing, occurrence/source
resolution, structural extraction, field values, definition resolution and
the post-processing fix-ups that depend on all of them.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Iterable

from ...metadata.code_systems import code_system_for
from ...metadata.definitions import Definition, DerivationOperator
from ...metadata.models import DataCriterion
from ..extraction_context import ExtractionContext
from ..namespace_utils import ElementQuery, normalise_id
from .definition_resolver import resolve_definition
from .entry_preprocessor import (
    PreparedEntry,
    preprocess_entry,
    extract_description,
    extract_negation,
    extract_child_criteria,
    extract_derivation_operator,
    extract_temporal_references,
    extract_subset_operators,
    extract_effective_time,
)
from .field_value_parser import extract_field_values
from .occurrence_resolver import resolve_specific_or_source
from .value_parser import parse_value
from .variable_grouper import mark_do_not_group

logger = logging.getLogger(__name__)

TRANSFER_DEFINITIONS = (Definition.TRANSFER_FROM, Definition.TRANSFER_TO)


def index_template_ids(entries: Iterable[ET.Element], context: ExtractionContext) -> None:
    """Record each entry's declared template ids so occurrences can inherit their source's."""
    for entry in entries:
        prepared = preprocess_entry(entry)
        context.template_ids_by_source.setdefault(prepared.id, prepared.template_ids)


def parse_data_criterion(entry: ET.Element, context: ExtractionContext) -> DataCriterion:
    prepared = preprocess_entry(entry)
    criterion = DataCriterion(
        id=prepared.id,
        status=prepared.status,
        comments=list(prepared.comments),
        template_ids=list(prepared.template_ids),
        local_variable_name=prepared.local_variable_name,
    )
    criterion.description = extract_description(prepared)
    criterion.negation, criterion.negation_code_list_id = extract_negation(prepared)
    resolve_specific_or_source(prepared, criterion, context)
    criterion.temporal_references = extract_temporal_references(prepared)
    criterion.derivation_operator = extract_derivation_operator(prepared)
    criterion.field_values = extract_field_values(prepared, criterion.negation)
    criterion.children_criteria = extract_child_criteria(prepared)
    criterion.is_variable = prepared.is_variable
    criterion.subset_operators = extract_subset_operators(prepared)
    criterion.effective_time = extract_effective_time(prepared)

    resolve_definition(prepared, criterion, context)
    _post_process(prepared, criterion, context)

    logger.debug(f"Parsed {criterion.id}: definition={criterion.definition_name} status={criterion.status}")
    return criterion


def _post_process(prepared: PreparedEntry, criterion: DataCriterion, context: ExtractionContext) -> None:
    _apply_value_set_mappings(prepared, criterion, context)

    criterion.children_criteria = [normalise_id(child) for child in criterion.children_criteria]
    if criterion.specific_occurrence_const is not None:
        criterion.specific_occurrence_const = normalise_id(criterion.specific_occurrence_const)

    _set_intersection(prepared, criterion)
    mark_do_not_group(criterion, context.registry)
    _resolve_presentation_fields(prepared, criterion)


def _mapping_templates(prepared: PreparedEntry, criterion: DataCriterion, context: ExtractionContext) -> List[str]:
    templates = list(prepared.template_ids)
    if not templates and criterion.specific_occurrence and criterion.source_data_criteria:
        inherited = context.template_ids_by_source.get(criterion.source_data_criteria) or []
        templates = inherited[:1]
    return templates


def _apply_value_set_mappings(prepared: PreparedEntry, criterion: DataCriterion, context: ExtractionContext) -> None:
    """Move the code list path and read the result value where a template says so."""
    q = prepared.query
    for template_id in _mapping_templates(prepared, criterion, context):
        mapping = context.value_set_helper.mapping_for_template(template_id)
        if not mapping:
            continue
        valueset_path = mapping.get("valueset_path")
        if valueset_path and q.find_one(valueset_path) is not None:
            prepared.code_list_path = valueset_path
        result_path = mapping.get("result_path")
        if result_path:
            criterion.value = parse_value(prepared.criteria, result_path)


def _set_intersection(prepared: PreparedEntry, criterion: DataCriterion) -> None:
    """Grouping criteria without templates are plain unions or intersections."""
    if prepared.template_ids:
        return
    if criterion.derivation_operator == DerivationOperator.XPRODUCT:
        criterion.derivation_operator = DerivationOperator.INTERSECT
    if not criterion.description:
        criterion.description = "Intersect" if criterion.derivation_operator == DerivationOperator.INTERSECT else "Union"


def _resolve_presentation_fields(prepared: PreparedEntry, criterion: DataCriterion) -> None:
    q = prepared.query
    path = prepared.code_list_path
    criterion.title = (
        criterion.title
        or q.attribute(f"{path}/cda:displayName/@value")
        or criterion.description
        or criterion.id
    )
    criterion.code_list_id = criterion.code_list_id or q.attribute(f"{path}/@valueSet")
    if criterion.definition in TRANSFER_DEFINITIONS and not criterion.code_list_id:
        criterion.code_list_id = _transfer_code_list_id(prepared)
    criterion.inline_code_list = _inline_code_list(q, path)


def _transfer_code_list_id(prepared: PreparedEntry) -> Optional[str]:
    for relationship in prepared.query.find_all("cda:outboundRelationship"):
        for target in relationship:
            if isinstance(target.tag, str) and target.tag.endswith("Criteria"):
                value_set = ElementQuery(target).attribute("cda:value/@valueSet")
                if value_set:
                    return value_set
    return None


def _inline_code_list(q: ElementQuery, path: str) -> Optional[Dict[str, List[str]]]:
    code_system = q.attribute(f"{path}/@codeSystem")
    code_system_name = code_system_for(code_system) if code_system else None
    code_system_name = code_system_name or q.attribute(f"{path}/@codeSystemName")
    code = q.attribute(f"{path}/@code")
    if code_system_name and code:
        return {code_system_name: [code]}
    return None
