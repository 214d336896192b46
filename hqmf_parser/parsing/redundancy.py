"""
Redundancy pruning.

Removes criteria that nothing references and that another criterion with the
same code list already covers. Demographic kinds that a measure always needs
are never removed.
"""

import json
import logging
from typing import Any, Iterable, List, Tuple

from ..metadata.definitions import PROTECTED_DEFINITIONS
from ..metadata.models import DataCriterion

logger = logging.getLogger(__name__)


def _textual(value: Any) -> str:
    return json.dumps(value, sort_keys=True)


def _same_value(criterion: DataCriterion, other: DataCriterion) -> bool:
    if criterion.value is None:
        return True
    other_value = other.value.to_dict() if other.value is not None else None
    return _textual(criterion.value.to_dict()) == _textual(other_value)


def _same_field_values(criterion: DataCriterion, other: DataCriterion) -> bool:
    if not criterion.field_values:
        return True
    mine = {name: value.to_dict() for name, value in criterion.field_values.items()}
    theirs = {name: value.to_dict() for name, value in other.field_values.items()}
    return _textual(mine) == _textual(theirs)


def is_covered_by(criterion: DataCriterion, other: DataCriterion) -> bool:
    """True when ``other`` carries everything ``criterion`` does."""
    if criterion.definition != other.definition or criterion.status != other.status:
        return False
    if sorted(criterion.children_criteria) != sorted(other.children_criteria):
        return False
    if criterion.is_variable or criterion.derivation_operator is not None:
        return False
    if criterion.subset_operators or criterion.temporal_references:
        return False
    if not _same_value(criterion, other) or not _same_field_values(criterion, other):
        return False
    return criterion.negation_code_list_id is None or criterion.negation_code_list_id == other.negation_code_list_id


def prune_redundant_criteria(
    criteria: List[DataCriterion],
    reference_ids: Iterable[str],
) -> Tuple[List[DataCriterion], List[str]]:
    """
    Return the surviving criteria in order, and the ids that were removed.

    Criteria are checked in order against the current survivors plus the
    criteria not yet checked, so of two mutually covering criteria the later
    one survives.
    """
    referenced = set(reference_ids)
    survivors: List[DataCriterion] = []
    removed: List[str] = []

    for index, criterion in enumerate(criteria):
        candidates = survivors + criteria[index + 1:]
        if _is_redundant(criterion, referenced, candidates):
            removed.append(criterion.id)
            logger.debug(f"Pruned redundant data criterion {criterion.id}")
        else:
            survivors.append(criterion)

    return survivors, removed


def _is_redundant(criterion: DataCriterion, referenced: set, candidates: List[DataCriterion]) -> bool:
    if criterion.id in referenced:
        return False
    if criterion.definition in PROTECTED_DEFINITIONS:
        return False
    return any(
        other is not criterion
        and other.code_list_id == criterion.code_list_id
        and is_covered_by(criterion, other)
        for other in candidates
    )
