"""
Definition resolver.

Works out what kind of clinical data a criterion describes, in three tiers:
1) template ids found in the template registry (the last match wins)
2) the sentinel variable / satisfies-any / satisfies-all templates, only
   while no earlier template id has matched
3) the entry's definition code, or the criterion it points at

An unrecognised definition code is fatal: a clinical category is never guessed.
"""

import logging
from typing import Optional

from ...metadata.definitions import (
    Definition,
    DEMOGRAPHIC_CODE_DEFINITIONS,
    DEMOGRAPHICS_ENTRY_TYPE,
    ENTRY_TYPE_DEFINITIONS,
    MEDICATION_ENTRY_TYPES,
    is_known_definition,
    parse_definition,
)
from ...metadata.models import DataCriterion
from ...metadata.template_registry import KnownTemplate
from ...system.error_handling import UnknownDefinitionError
from ..extraction_context import ExtractionContext
from ..namespace_utils import ElementQuery, normalise_id, raw_id
from .entry_preprocessor import PreparedEntry

logger = logging.getLogger(__name__)

GROUPER_CRITERIA = "grouperCriteria"
GROUP_PREFIX = "GROUP_"


def resolve_definition(prepared: PreparedEntry, criterion: DataCriterion, context: ExtractionContext) -> None:
    if not resolve_from_templates(prepared, criterion, context):
        resolve_from_definition(prepared, criterion, context)


def resolve_from_templates(prepared: PreparedEntry, criterion: DataCriterion, context: ExtractionContext) -> bool:
    found = False
    for template_id in prepared.template_ids:
        template = context.template_registry.lookup(template_id, "r2")
        if template is not None:
            criterion.definition = template.definition
            criterion.status = template.status
            found = True
            continue
        # Sentinel templates only apply while nothing has matched yet
        if found:
            continue
        known = context.template_registry.lookup_known_template(template_id)
        if known is not None:
            apply_known_template(criterion, known)
            found = True
    return found


def apply_known_template(criterion: DataCriterion, known: KnownTemplate) -> None:
    if known.only_replaces is not None:
        if criterion.derivation_operator == known.only_replaces:
            criterion.derivation_operator = known.forced_operator
    elif known.forced_operator is not None:
        criterion.derivation_operator = known.forced_operator

    if known.definition is not None:
        criterion.definition = known.definition
    elif known.default_definition is not None and criterion.definition is None:
        criterion.definition = known.default_definition

    if known.marks_variable:
        criterion.is_variable = True
    if known.negation_override is not None:
        criterion.negation = known.negation_override


def _first_reference_id(prepared: PreparedEntry) -> Optional[str]:
    reference = prepared.query.find_one("cda:outboundRelationship/cda:criteriaReference")
    if reference is None:
        return None
    return normalise_id(raw_id(ElementQuery(reference).find_one("cda:id")))


def resolve_from_definition(prepared: PreparedEntry, criterion: DataCriterion, context: ExtractionContext) -> None:
    if criterion.is_variable and criterion.specific_occurrence:
        _copy_from_specific_variable(prepared, criterion, context)

    if prepared.criteria_type == GROUPER_CRITERIA:
        if criterion.definition is None:
            criterion.definition = Definition.DERIVED
        return

    entry_type = prepared.query.attribute("cda:definition/*/cda:id/@extension")
    _apply_entry_type(prepared, criterion, context, entry_type)


def _apply_entry_type(
    prepared: PreparedEntry,
    criterion: DataCriterion,
    context: ExtractionContext,
    entry_type: Optional[str],
) -> None:
    if is_known_definition(entry_type):
        criterion.definition = parse_definition(entry_type)
    elif entry_type in MEDICATION_ENTRY_TYPES:
        criterion.definition = Definition.MEDICATION
        if not criterion.status:
            criterion.status = MEDICATION_ENTRY_TYPES[entry_type]
    elif entry_type is None:
        _definition_from_reference(prepared, criterion, context)
    elif entry_type == DEMOGRAPHICS_ENTRY_TYPE:
        criterion.definition = _definition_for_demographic(prepared)
    elif entry_type in ENTRY_TYPE_DEFINITIONS:
        criterion.definition = ENTRY_TYPE_DEFINITIONS[entry_type]
    else:
        raise UnknownDefinitionError(
            f"Unknown data criteria template identifier [{entry_type}]",
            code=entry_type,
            criterion_id=prepared.id,
        )


def _definition_for_demographic(prepared: PreparedEntry) -> Definition:
    code = prepared.entry_query.attribute("cda:observationCriteria/cda:code/@code")
    definition = DEMOGRAPHIC_CODE_DEFINITIONS.get(code)
    if definition is None:
        raise UnknownDefinitionError(
            f"Unknown demographic identifier [{code}]",
            code=code,
            criterion_id=prepared.id,
        )
    return definition


def _definition_from_reference(prepared: PreparedEntry, criterion: DataCriterion, context: ExtractionContext) -> None:
    """A pure pointer takes its definition from the criterion it references."""
    reference_id = _first_reference_id(prepared)
    reference = context.registry.get(reference_id)
    if reference is None:
        if not criterion.is_variable:
            context.warn(prepared.id, f"MISSING_DC_REF: {reference_id}", reference_id=reference_id)
        criterion.definition = Definition.VARIABLE
        return

    criterion.definition = reference.definition
    criterion.status = reference.status
    if criterion.specific_occurrence:
        criterion.title = reference.title
        criterion.description = reference.description
        criterion.code_list_id = reference.code_list_id


def _copy_from_specific_variable(prepared: PreparedEntry, criterion: DataCriterion, context: ExtractionContext) -> None:
    reference_id = _first_reference_id(prepared)
    reference = context.registry.get(reference_id)
    # A derived reference is wrapped; take the grouping node instead
    if reference is not None and reference.definition == Definition.DERIVED:
        reference = context.registry.get(f"{GROUP_PREFIX}{reference_id}")
    if reference is None:
        return

    if not reference.children_criteria:
        criterion.children_criteria = [reference.id]
        return

    criterion.field_values = dict(reference.field_values)
    criterion.temporal_references = list(reference.temporal_references)
    criterion.subset_operators = list(reference.subset_operators)
    criterion.derivation_operator = reference.derivation_operator
    criterion.definition = reference.definition
    criterion.description = reference.description
    criterion.status = reference.status
    criterion.children_criteria = list(reference.children_criteria)
