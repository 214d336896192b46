"""
Source data criteria derivation.

Builds the list of source criteria (each entry stripped of its temporal
references and subset operators) and collapses structurally identical ones
onto the first occurrence. The collapse map rewrites ``source_data_criteria``
links during the main pass.
"""

import json
import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Sequence, Tuple

from ..metadata.models import DataCriterion
from ..metadata.template_registry import TemplateRegistry
from ..metadata.value_set_helper import ValueSetHelper
from .extraction_context import ExtractionContext
from .node_parsers.data_criteria_parser import parse_data_criterion, index_template_ids
from .node_parsers.variable_grouper import synthesize_grouper

logger = logging.getLogger(__name__)


def strip_non_source_elements(criterion: DataCriterion) -> DataCriterion:
    stripped = criterion.clone()
    stripped.temporal_references = []
    stripped.subset_operators = []
    return stripped


def _signature(criterion: DataCriterion) -> str:
    return json.dumps(
        {
            "code_list_id": criterion.code_list_id,
            "definition": criterion.definition_name,
            "status": criterion.status,
            "negation": criterion.negation,
            "negation_code_list_id": criterion.negation_code_list_id,
            "value": criterion.value.to_dict() if criterion.value is not None else None,
            "field_values": {name: fv.to_dict() for name, fv in criterion.field_values.items()},
            "children_criteria": criterion.children_criteria,
            "variable": criterion.is_variable,
        },
        sort_keys=True,
    )


def derive_source_list(
    entries: Sequence[ET.Element],
    template_registry: Optional[TemplateRegistry] = None,
    value_set_helper: Optional[ValueSetHelper] = None,
) -> Tuple[List[DataCriterion], Dict[str, str]]:
    """
    Parse ``entries`` on a private, quiet context and collapse duplicates.

    Returns the source criteria list and a map of collapsed id -> canonical id.
    """
    context = ExtractionContext.create(template_registry, value_set_helper, quiet=True)
    index_template_ids(entries, context)

    candidates: List[DataCriterion] = []
    for entry in entries:
        criterion = parse_data_criterion(entry, context)
        context.registry.insert_if_more_specific(criterion)
        candidates.append(strip_non_source_elements(criterion))
        if criterion.is_variable:
            grouper = synthesize_grouper(criterion, context.registry)
            if grouper is not None:
                context.registry.put(criterion)
                context.registry.put(grouper)
                candidates.append(strip_non_source_elements(grouper))

    source_list: List[DataCriterion] = []
    collapse_map: Dict[str, str] = {}
    canonical_by_signature: Dict[str, DataCriterion] = {}
    for candidate in candidates:
        signature = _signature(candidate) if candidate.code_list_id else None
        canonical = canonical_by_signature.get(signature) if signature else None
        if canonical is not None and canonical.id != candidate.id:
            collapse_map[candidate.id] = canonical.id
            continue
        if signature and canonical is None:
            canonical_by_signature[signature] = candidate
        source_list.append(candidate)

    logger.debug(f"Derived {len(source_list)} source data criteria, collapsed {len(collapse_map)}")
    return source_list, collapse_map
