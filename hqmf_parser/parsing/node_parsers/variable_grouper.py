"""
Variable grouper synthesis.

A named variable participates in the criteria graph through a synthetic
``GROUP_<id>`` union node. Variables that merely alias a single referenced
criterion are marked do-not-group and take that criterion's attributes
instead of getting a wrapper.
"""

import logging
from typing import Optional

from ...metadata.definitions import Definition, DerivationOperator
from ...metadata.models import DataCriterion
from ..extraction_context import CriteriaRegistry

logger = logging.getLogger(__name__)

GROUP_PREFIX = "GROUP_"


def grouper_id(criterion_id: str) -> str:
    return f"{GROUP_PREFIX}{criterion_id}"


def mark_do_not_group(criterion: DataCriterion, registry: CriteriaRegistry) -> None:
    """Flag derived criteria that are just a pass-through to their source criterion."""
    if criterion.definition != Definition.DERIVED:
        return
    if not criterion.children_criteria and criterion.source_data_criteria:
        criterion.children_criteria.append(criterion.source_data_criteria)
    if len(criterion.children_criteria) != 1:
        return
    if criterion.source_data_criteria and criterion.children_criteria[0] != criterion.source_data_criteria:
        return

    reference = registry.get(criterion.children_criteria[0])
    if reference is None:
        return
    criterion.do_not_group = True
    if criterion.derivation_operator is None:
        criterion.derivation_operator = reference.derivation_operator
    criterion.description = reference.description
    criterion.is_variable = reference.is_variable


def copy_child_info(criterion: DataCriterion, child: DataCriterion) -> None:
    """Back-fill unset attributes of a variable from the criterion it wraps."""
    criterion.definition = criterion.definition or child.definition
    criterion.status = criterion.status or child.status
    criterion.code_list_id = criterion.code_list_id or child.code_list_id
    if not criterion.temporal_references:
        criterion.temporal_references = list(child.temporal_references)
    if not criterion.subset_operators:
        criterion.subset_operators = list(child.subset_operators)
    if criterion.derivation_operator is None:
        criterion.derivation_operator = child.derivation_operator
    criterion.is_variable = criterion.is_variable or child.is_variable
    if criterion.value is None:
        criterion.value = child.value


def _apply_do_not_group(criterion: DataCriterion, registry: CriteriaRegistry) -> None:
    children = criterion.children_criteria
    if len(children) != 1 or not children[0]:
        return
    if registry.get(grouper_id(children[0])) is not None:
        children[0] = grouper_id(children[0])
        return
    reference = registry.get(children[0])
    if reference is None:
        return
    copy_child_info(criterion, reference)
    criterion.children_criteria = list(reference.children_criteria)


def synthesize_grouper(criterion: DataCriterion, registry: CriteriaRegistry) -> Optional[DataCriterion]:
    """
    Build the GROUP_ wrapper for a variable, or None when no wrapper applies.

    A variable whose sole child is itself a grouper takes that grouper's
    definition and status and drops its children, so it is not wrapped twice.
    """
    if not criterion.is_variable:
        return None
    if criterion.do_not_group:
        _apply_do_not_group(criterion, registry)
        return None

    children = criterion.children_criteria
    if len(children) == 1 and children[0].startswith(GROUP_PREFIX):
        reference = registry.get(children[0])
        if reference is None:
            logger.debug(f"Variable {criterion.id} wraps unregistered grouper {children[0]}")
            return None
        copy_child_info(criterion, reference)
        criterion.definition = reference.definition
        criterion.status = reference.status
        criterion.children_criteria = []

    wrapper_id = grouper_id(criterion.id)
    return DataCriterion(
        id=wrapper_id,
        title=criterion.title,
        description=criterion.description,
        definition=Definition.DERIVED,
        status=None,
        derivation_operator=DerivationOperator.UNION,
        children_criteria=[wrapper_id],
        source_data_criteria=criterion.id,
        local_variable_name=criterion.local_variable_name,
        template_ids=list(criterion.template_ids),
        comments=list(criterion.comments),
    )
