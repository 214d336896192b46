"""
Specific occurrence and source resolution.

Entries that restate an earlier criterion ("Occurrence A of Encounter X")
point back at it through an OCCR relationship. Every occurrence of the same
source must share a stable letter, so the first letter seen for a source is
recorded in the document's OccurrenceMap and reused by later entries.
Entries must therefore be resolved strictly in document order.
"""

import logging
import re
from typing import Optional

from ...metadata.models import DataCriterion
from ...system.error_handling import MissingOccurrenceError
from ..extraction_context import ExtractionContext, DEFAULT_OCCURRENCE
from ..namespace_utils import ElementQuery, normalise_id, raw_id
from .entry_preprocessor import PreparedEntry

logger = logging.getLogger(__name__)

VARIABLE_ID_PATTERN = re.compile(r"^occ[A-Z]of_qdm_var_")
VARIABLE_LVN_PATTERN = re.compile(r"^occ[A-Z]of_qdm_var")
VARIABLE_LETTER_OFFSET = 3
OCCURRENCE_LETTER_OFFSET = 10
_LABELLED_SOURCE = re.compile(r"^Occurrence[A-Z]_")


def obtain_occurrence_identifier(
    stripped_id: str,
    stripped_lvn: str,
    stripped_source: str,
    is_variable: bool,
) -> Optional[str]:
    """
    Extract the occurrence letter encoded in an entry's id or local variable name.

    Variables are labelled ``occXof_qdm_var_...``; ordinary criteria are
    labelled ``OccurrenceX_<source>`` (id) or ``OccurrenceXof<source>``
    (local variable name), or the source id itself may carry an ``OccurrenceX_`` label.
    Returns None when no label is present.
    """
    if is_variable:
        if VARIABLE_ID_PATTERN.match(stripped_id):
            return stripped_id[VARIABLE_LETTER_OFFSET]
        if VARIABLE_LVN_PATTERN.match(stripped_lvn):
            return stripped_lvn[VARIABLE_LETTER_OFFSET]
        return None

    source = re.escape(stripped_source)
    if re.match(rf"^Occurrence[A-Z]_{source}", stripped_id):
        return stripped_id[OCCURRENCE_LETTER_OFFSET]
    if re.match(rf"^Occurrence[A-Z]of{source}", stripped_lvn):
        return stripped_lvn[OCCURRENCE_LETTER_OFFSET]
    if _LABELLED_SOURCE.match(stripped_source):
        return stripped_source[OCCURRENCE_LETTER_OFFSET]
    return None


def resolve_specific_or_source(
    prepared: PreparedEntry,
    criterion: DataCriterion,
    context: ExtractionContext,
) -> Optional[str]:
    """
    Apply the OCCR (specific occurrence) or SOURCE relationship of an entry.

    Returns the source id when a specific occurrence was assigned.
    """
    q = prepared.query
    occurrence_relation = q.find_one("cda:outboundRelationship[@typeCode='OCCR']")
    if occurrence_relation is not None:
        return _apply_occurrence(prepared, criterion, context, ElementQuery(occurrence_relation))

    for relationship in q.find_all("cda:outboundRelationship"):
        rq = ElementQuery(relationship)
        if rq.attribute("cda:subsetCode/@code") == "SOURCE":
            criterion.source_data_criteria = normalise_id(raw_id(rq.find_one("cda:criteriaReference/cda:id")))
            break
    return None


def _apply_occurrence(
    prepared: PreparedEntry,
    criterion: DataCriterion,
    context: ExtractionContext,
    relation: ElementQuery,
) -> Optional[str]:
    source_ref = relation.find_one("cda:criteriaReference/cda:id")
    source_id = normalise_id(raw_id(source_ref))
    if source_id is None or context.registry.get(source_id) is None:
        # Nothing to anchor the occurrence to yet
        return None

    specific_occurrence_const = relation.attribute("cda:localVariableName/@controlInformationRoot")
    specific_occurrence = relation.attribute("cda:localVariableName/@controlInformationExtension")
    is_variable = prepared.is_variable
    source_extension = source_ref.get("extension")

    letter = obtain_occurrence_identifier(
        normalise_id(prepared.raw_id),
        normalise_id(prepared.local_variable_name) or "",
        normalise_id(source_extension) or "",
        is_variable,
    )

    if letter:
        context.occurrences.seed(source_id, letter)
        specific_occurrence = specific_occurrence or letter
        specific_occurrence_const = source_id.upper()
    else:
        if is_variable:
            context.occurrences.seed(source_id, DEFAULT_OCCURRENCE)
        mapped = context.occurrences.get(source_id)
        if mapped is None:
            raise MissingOccurrenceError(source_id, criterion_id=prepared.id)
        specific_occurrence = specific_occurrence or mapped

    criterion.source_data_criteria = source_id
    criterion.specific_occurrence = specific_occurrence or DEFAULT_OCCURRENCE
    criterion.specific_occurrence_const = specific_occurrence_const or source_id.upper()
    logger.debug(f"{prepared.id} is occurrence {criterion.specific_occurrence} of {source_id}")
    return source_id
