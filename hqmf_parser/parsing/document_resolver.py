"""
Document resolver.

Runs the per-entry pipeline over a document's data criteria entries in
document order, owns the document's registry, occurrence map and reference
set, synthesises variable groupers, and prunes redundant criteria once every
entry has been seen.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, Iterable, List, Optional, Sequence

from ..metadata.definitions import Definition
from ..metadata.models import DataCriterion, ExtractionResult
from ..system.debug_logger import HQMFDebugLogger, get_debug_logger
from .extraction_context import ExtractionContext
from .node_parsers.data_criteria_parser import parse_data_criterion, index_template_ids
from .node_parsers.variable_grouper import synthesize_grouper
from .redundancy import prune_redundant_criteria

logger = logging.getLogger(__name__)


class DocumentResolver:
    """Single-pass, single-document resolver. Create a new one per document."""

    def __init__(
        self,
        context: ExtractionContext,
        collapse_map: Optional[Dict[str, str]] = None,
        source_data_criteria: Optional[List[DataCriterion]] = None,
        debug_logger: Optional[HQMFDebugLogger] = None,
    ):
        self.context = context
        self.collapse_map = dict(collapse_map or {})
        self.source_data_criteria = list(source_data_criteria or [])
        self.debug_logger = debug_logger or get_debug_logger()
        self._criteria: List[DataCriterion] = []
        self._finalised = False

    @property
    def criteria(self) -> List[DataCriterion]:
        return list(self._criteria)

    def process_entries(self, entries: Sequence[ET.Element]) -> List[DataCriterion]:
        self.debug_logger.log_extraction_start(self.context.source_name, len(entries))
        index_template_ids(entries, self.context)
        for entry in entries:
            self.process_entry(entry)
        return self.criteria

    def process_entry(self, entry: ET.Element) -> DataCriterion:
        if self._finalised:
            raise RuntimeError("DocumentResolver has already been finalised")

        criterion = parse_data_criterion(entry, self.context)
        registry = self.context.registry
        registry.insert_if_more_specific(criterion)

        if criterion.id in self.collapse_map:
            criterion.source_data_criteria = self.collapse_map[criterion.id]

        self._criteria.append(criterion)
        self.debug_logger.log_entry_resolved(criterion.id, criterion.definition_name, criterion.status)

        grouper = None
        if criterion.is_variable:
            grouper = synthesize_grouper(criterion, registry)
            if grouper is not None:
                registry.put(criterion)
                registry.put(grouper)
                self._criteria.append(grouper)

        self._record_references(criterion)
        if grouper is not None:
            self._record_references(grouper)
        return criterion

    def _record_references(self, criterion: DataCriterion) -> None:
        self.context.reference_ids.extend(criterion.children_criteria)
        self.context.reference_ids.extend(tr.reference_id for tr in criterion.temporal_references)

    def add_reference_ids(self, reference_ids: Iterable[str]) -> None:
        """Record ids referenced from outside the data criteria section (population preconditions)."""
        self.context.reference_ids.extend(reference_ids)

    def finalise(self) -> ExtractionResult:
        reference_ids = self.context.reference_ids.unique()
        survivors, pruned = prune_redundant_criteria(self._criteria, reference_ids)
        update_single_child_derivations(survivors, self.source_data_criteria)
        self._criteria = survivors
        self._finalised = True

        self.debug_logger.log_pruning_result(pruned)
        for criterion in survivors:
            for child in criterion.children_criteria:
                if self.context.registry.get(child) is None:
                    self.debug_logger.log_missing_reference(criterion.id, child)

        result = ExtractionResult(
            data_criteria=list(survivors),
            source_data_criteria=list(self.source_data_criteria),
            occurrences=self.context.occurrences.as_dict(),
            reference_ids=reference_ids,
            diagnostics=list(self.context.diagnostics),
            pruned_ids=pruned,
        )
        self.debug_logger.log_extraction_summary(result.summary())
        return result


def update_single_child_derivations(
    criteria: Sequence[DataCriterion],
    source_data_criteria: Sequence[DataCriterion],
) -> None:
    """
    Point derived criteria with a single child at the source criterion titled after that child.

    The matching source criterion supplies the children, status, title,
    description, derivation operator and definition; its code list fills an
    unset one.
    """
    for criterion in criteria:
        if criterion.definition != Definition.DERIVED or len(criterion.children_criteria) != 1:
            continue
        for source in source_data_criteria:
            if not criterion.children_criteria or source.title != criterion.children_criteria[0]:
                continue
            logger.debug(f"Updating {criterion.id} from source data criterion {source.id}")
            criterion.children_criteria = list(source.children_criteria)
            criterion.status = source.status
            criterion.title = source.title
            criterion.description = source.description
            criterion.derivation_operator = source.derivation_operator
            criterion.definition = source.definition
            criterion.code_list_id = criterion.code_list_id or source.code_list_id


def resolve_entries(
    entries: Sequence[ET.Element],
    context: ExtractionContext,
    collapse_map: Optional[Dict[str, str]] = None,
    population_reference_ids: Iterable[str] = (),
) -> ExtractionResult:
    resolver = DocumentResolver(context, collapse_map)
    resolver.process_entries(entries)
    resolver.add_reference_ids(population_reference_ids)
    return resolver.finalise()
